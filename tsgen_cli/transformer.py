"""Structural edits on TypeScript source text."""

from __future__ import annotations

import logging
import textwrap
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .models import AnalysisResult, Declaration
from .operations import (
    AddExport,
    AddImport,
    AddMethod,
    AddProperty,
    Operation,
    RemoveImport,
    Rename,
    TransformFailure,
    TransformResult,
    UnknownOperation,
    Wrap,
    validate_operation,
)
from .parser import TypeScriptParser, iter_nodes, node_text, parse_tree, string_value
from .printer import INDENT, generate_export_statement, generate_import_statement

logger = logging.getLogger(__name__)

Edit = Tuple[int, int, str]

RENAME_LOOKUP_ORDER = ("function", "class", "interface", "type-alias")
RENAMEABLE_NODES = {"identifier", "type_identifier", "shorthand_property_identifier"}
OPENING_BRACKETS = {"(": ")", "<": ">", "{": "}", "[": "]"}


class TransformError(ValueError):
    """A single operation could not be applied to the document."""


class SourceDocument:
    """Mutable source text with a lazily refreshed parse.

    Edits are byte-offset splices against the UTF-8 encoding. Any edit drops
    the cached trees, so the next lookup re-parses the current text.
    """

    def __init__(self, text: str):
        self._data = text.encode("utf-8")
        self._root: Optional[Any] = None
        self._analysis: Optional[AnalysisResult] = None

    @property
    def text(self) -> str:
        return self._data.decode("utf-8")

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def root(self) -> Any:
        if self._root is None:
            self._root = parse_tree(self.text).root_node
        return self._root

    @property
    def analysis(self) -> AnalysisResult:
        if self._analysis is None:
            self._analysis = TypeScriptParser().parse_source(self.text, "transform.ts")
        return self._analysis

    def apply(self, edits: Iterable[Edit]) -> None:
        """Apply non-overlapping ``(start, end, replacement)`` edits."""
        data = self._data
        for start, end, replacement in sorted(edits, key=lambda e: (e[0], e[1]), reverse=True):
            data = data[:start] + replacement.encode("utf-8") + data[end:]
        self._data = data
        self._root = None
        self._analysis = None

    def splice(self, start: int, end: int, replacement: str) -> None:
        self.apply([(start, end, replacement)])

    def line_start(self, offset: int) -> int:
        return self._data.rfind(b"\n", 0, offset) + 1

    def get_indent(self, offset: int) -> str:
        """Leading whitespace of the line containing *offset*."""
        start = self.line_start(offset)
        end = start
        while end < len(self._data) and self._data[end:end + 1] in (b" ", b"\t"):
            end += 1
        return self._data[start:end].decode("utf-8")


# ===================================================================
# Helpers
# ===================================================================

def split_parameters(params: str) -> List[str]:
    """Split a parameter list on commas that are not nested in brackets."""
    parts: List[str] = []
    depth = 0
    current = ""
    for char in params:
        if char in OPENING_BRACKETS:
            depth += 1
        elif char == ">" and current.endswith("="):
            pass
        elif char in OPENING_BRACKETS.values() and depth > 0:
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        current += char
    if current.strip():
        parts.append(current.strip())
    return [p for p in parts if p]


def render_parameters(params: str) -> str:
    """Normalize ``"a: string, b"`` into typed parameters (``unknown`` when untyped)."""
    rendered = []
    for part in split_parameters(params):
        if ":" not in part and "=" not in part:
            part = f"{part}: unknown"
        rendered.append(part)
    return ", ".join(rendered)


def _import_statements(root: Any) -> List[Tuple[Any, str]]:
    found = []
    for stmt in root.named_children:
        if stmt.type != "import_statement":
            continue
        source = stmt.child_by_field_name("source")
        if source is not None:
            found.append((stmt, string_value(source)))
    return found


def _is_directive(node: Any) -> bool:
    """True for a bare string statement such as ``'use strict';``."""
    if node.type != "expression_statement":
        return False
    named = [c for c in node.named_children if c.type != "comment"]
    return len(named) == 1 and named[0].type == "string"


def _find_child(node: Any, *types: str) -> Optional[Any]:
    for child in node.named_children:
        if child.type in types:
            return child
    return None


# ===================================================================
# Transformer
# ===================================================================

class Transformer:
    """Applies operations in order against one :class:`SourceDocument`."""

    def __init__(self, source: str):
        self.document = SourceDocument(source)
        self._handlers: Dict[type, Callable[[Any], None]] = {
            AddImport: self.add_import,
            RemoveImport: self.remove_import,
            AddExport: self.add_export,
            AddProperty: self.add_property,
            AddMethod: self.add_method,
            Rename: self.rename,
            Wrap: self.wrap,
            UnknownOperation: self.unknown,
        }

    def apply(self, op: Operation) -> None:
        handler = self._handlers.get(type(op))
        if handler is None:
            raise TransformError(f"Unknown operation type: {getattr(op, 'type', op)}")
        handler(op)

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def add_import(self, op: AddImport) -> None:
        doc = self.document
        imports = _import_statements(doc.root)
        existing = next((stmt for stmt, spec in imports if spec == op.module_specifier), None)

        if existing is not None:
            self._merge_named_imports(existing, op)
            return

        statement = generate_import_statement(
            op.module_specifier,
            named_imports=op.named_imports,
            default_import=op.default_import,
            namespace_import=op.namespace_import,
            is_type_only=op.is_type_only,
        )
        following = next((stmt for stmt, spec in imports if spec > op.module_specifier), None)
        if following is not None:
            doc.splice(following.start_byte, following.start_byte, statement + "\n")
        elif imports:
            last = imports[-1][0]
            doc.splice(last.end_byte, last.end_byte, "\n" + statement)
        else:
            self._insert_at_top(statement)

    def _insert_at_top(self, statement: str) -> None:
        doc = self.document
        leading = None
        # imports go after leading comments and the directive prologue
        for child in doc.root.children:
            if child.type not in ("comment", "hash_bang_line") and not _is_directive(child):
                break
            leading = child
        if leading is not None:
            doc.splice(leading.end_byte, leading.end_byte, "\n\n" + statement)
        elif doc.data.strip():
            doc.splice(0, 0, statement + "\n\n")
        else:
            doc.splice(0, len(doc.data), statement + "\n")

    def _merge_named_imports(self, stmt: Any, op: AddImport) -> None:
        record = TypeScriptParser._import_record(stmt)
        new_names: List[str] = []
        for name in op.named_imports:
            if name not in record.named_imports and name not in new_names:
                new_names.append(name)
        if not new_names:
            return
        if record.namespace_import is not None:
            raise TransformError(
                f"Cannot add named imports to namespace import of '{op.module_specifier}'"
            )

        doc = self.document
        clause = _find_child(stmt, "import_clause")
        named = _find_child(clause, "named_imports") if clause is not None else None
        default = _find_child(clause, "identifier") if clause is not None else None

        if named is not None:
            specifiers = [s for s in named.named_children if s.type == "import_specifier"]
            if specifiers:
                doc.splice(specifiers[-1].end_byte, specifiers[-1].end_byte, ", " + ", ".join(new_names))
            else:
                doc.splice(named.start_byte, named.end_byte, "{ " + ", ".join(new_names) + " }")
        elif default is not None:
            doc.splice(default.end_byte, default.end_byte, ", { " + ", ".join(new_names) + " }")
        else:
            statement = generate_import_statement(
                op.module_specifier, named_imports=new_names, is_type_only=record.is_type_only
            )
            doc.splice(stmt.start_byte, stmt.end_byte, statement)

    def remove_import(self, op: RemoveImport) -> None:
        stmt = next(
            (s for s, spec in _import_statements(self.document.root) if spec == op.module_specifier),
            None,
        )
        if stmt is None:
            logger.debug("No import of '%s' to remove", op.module_specifier)
            return
        if not op.named_imports:
            self._remove_statement(stmt)
            return

        clause = _find_child(stmt, "import_clause")
        named = _find_child(clause, "named_imports") if clause is not None else None
        default = _find_child(clause, "identifier") if clause is not None else None
        specifiers = [s for s in named.named_children if s.type == "import_specifier"] if named is not None else []

        kept = []
        for spec in specifiers:
            name = spec.child_by_field_name("name")
            if name is None or node_text(name) not in op.named_imports:
                kept.append(spec)

        if not kept and default is None:
            self._remove_statement(stmt)
        elif len(kept) == len(specifiers):
            return
        elif kept:
            self.document.splice(
                named.start_byte, named.end_byte, "{ " + ", ".join(node_text(s) for s in kept) + " }"
            )
        else:
            self.document.splice(default.end_byte, named.end_byte, "")

    def _remove_statement(self, stmt: Any) -> None:
        data = self.document.data
        end = stmt.end_byte
        if data[end:end + 2] == b"\r\n":
            end += 2
        elif data[end:end + 1] == b"\n":
            end += 1
        self.document.splice(stmt.start_byte, end, "")

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def add_export(self, op: AddExport) -> None:
        if op.declaration:
            addition = f"\nexport {'default ' if op.is_default else ''}{op.declaration}"
        else:
            addition = generate_export_statement(named_exports=[op.name])
        self._append(addition)

    def _append(self, text: str) -> None:
        doc = self.document
        current = doc.data
        separator = "\n" if current and not current.endswith(b"\n") else ""
        doc.splice(len(current), len(current), separator + text + "\n")

    # ------------------------------------------------------------------
    # Class members
    # ------------------------------------------------------------------

    def _class(self, name: str) -> Declaration:
        cls = self.document.analysis.tree.find("class", name)
        if cls is None or cls.body_range is None:
            raise TransformError(f"Class '{name}' not found")
        return cls

    def _indents(self, cls: Declaration) -> Tuple[str, str]:
        """Return the class line's indent and the indent of its members."""
        doc = self.document
        members = doc.analysis.tree.children(cls)
        class_indent = doc.get_indent(cls.start_byte)
        member_indent = doc.get_indent(members[0].start_byte) if members else class_indent + INDENT
        return class_indent, member_indent

    def _indent_step(self, cls: Declaration) -> str:
        class_indent, member_indent = self._indents(cls)
        if len(member_indent) > len(class_indent) and member_indent.startswith(class_indent):
            return member_indent[len(class_indent):]
        return INDENT

    def _insert_member(self, cls: Declaration, lines: List[str], blank_line: bool) -> None:
        """Place *lines* (relative indent) as the last member of *cls*."""
        doc = self.document
        class_indent, member_indent = self._indents(cls)

        open_brace, close_brace = cls.body_range[0], cls.body_range[1] - 1
        content_end = close_brace
        while content_end > open_brace + 1 and doc.data[content_end - 1:content_end].isspace():
            content_end -= 1

        block = "\n".join(member_indent + line if line else "" for line in lines)
        prefix = "\n\n" if blank_line and content_end > open_brace + 1 else "\n"
        doc.splice(content_end, close_brace, f"{prefix}{block}\n{class_indent}")

    def add_property(self, op: AddProperty) -> None:
        cls = self._class(op.target_class)
        declaration = f"{'readonly ' if op.is_readonly else ''}{op.property_name}: {op.property_type}"
        if op.initializer is not None:
            declaration += f" = {op.initializer}"
        self._insert_member(cls, [declaration + ";"], blank_line=False)

    def add_method(self, op: AddMethod) -> None:
        cls = self._class(op.target_class)
        step = self._indent_step(cls)
        signature = f"{op.method_name}({render_parameters(op.parameters)}): {op.return_type} {{"
        body = textwrap.dedent(op.body).strip("\n")
        lines = [signature]
        lines.extend(step + line if line.strip() else "" for line in body.split("\n") if body)
        lines.append("}")
        has_members = bool(self.document.analysis.tree.children(cls))
        self._insert_member(cls, lines, blank_line=has_members)

    # ------------------------------------------------------------------
    # Rename
    # ------------------------------------------------------------------

    def rename(self, op: Rename) -> None:
        if op.scope == "class" and op.target_class:
            self._rename_member(op)
        else:
            self._rename_symbol(op)

    def _rename_symbol(self, op: Rename) -> None:
        tree = self.document.analysis.tree
        decl = None
        for kind in RENAME_LOOKUP_ORDER:
            decl = tree.find(kind, op.old_name)
            if decl is not None:
                break
        if decl is None:
            raise TransformError(f"Symbol '{op.old_name}' not found at file scope")

        edits: List[Edit] = []
        for node in iter_nodes(self.document.root):
            if node.type not in RENAMEABLE_NODES or node_text(node) != op.old_name:
                continue
            if node.type in ("identifier", "type_identifier"):
                edits.append((node.start_byte, node.end_byte, op.new_name))
            elif node.type == "shorthand_property_identifier":
                edits.append((node.start_byte, node.end_byte, f"{op.old_name}: {op.new_name}"))
        self.document.apply(edits)

    def _rename_member(self, op: Rename) -> None:
        tree = self.document.analysis.tree
        cls = self._class(op.target_class)
        member = tree.find_member(cls, "method", op.old_name) or tree.find_member(
            cls, "property", op.old_name
        )
        if member is None or member.name_range is None:
            raise TransformError(f"Symbol '{op.old_name}' not found in class '{op.target_class}'")

        # Receivers are not type-checked: every `<expr>.<old_name>` in the unit is renamed.
        edits: List[Edit] = [(member.name_range[0], member.name_range[1], op.new_name)]
        for node in iter_nodes(self.document.root):
            if node.type != "member_expression":
                continue
            prop = node.child_by_field_name("property")
            if prop is not None and prop.type == "property_identifier" and node_text(prop) == op.old_name:
                edits.append((prop.start_byte, prop.end_byte, op.new_name))
        self.document.apply(edits)

    # ------------------------------------------------------------------
    # Unsupported
    # ------------------------------------------------------------------

    def wrap(self, op: Wrap) -> None:
        raise TransformError("Wrap transform not yet implemented")

    def unknown(self, op: UnknownOperation) -> None:
        raise TransformError(f"Unknown operation type: {op.type}")


def transform(source: str, operations: Iterable[Any]) -> TransformResult:
    """Apply *operations* to *source* in order.

    Each operation that cannot be applied is recorded as a
    :class:`TransformFailure`; the remaining operations still run against
    the text as edited so far. Operations may be operation objects or wire
    dictionaries.

    Raises:
        MalformedOperationError: if any operation lacks a required field.
            Nothing is applied in that case.
    """
    ops = [validate_operation(op) for op in operations]
    transformer = Transformer(source)
    applied = 0
    failures: List[TransformFailure] = []

    for op in ops:
        try:
            transformer.apply(op)
        except TransformError as exc:
            logger.info("%s operation failed: %s", op.type, exc)
            failures.append(TransformFailure(operation=op, message=str(exc)))
        else:
            applied += 1

    return TransformResult(
        source=transformer.document.text,
        applied_operations=applied,
        failed_operations=failures,
    )
