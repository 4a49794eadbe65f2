"""TypeScript declaration parser built on Tree-sitter.

Turns source text into a :class:`~tsgen_cli.models.AnalysisResult`:

- a declaration tree (classes, interfaces, functions, type aliases, enums,
  exported variables, plus class/interface members)
- import and export tables read straight off the import/export statements
- file-level metrics, including an aggregate cyclomatic complexity

Tree-sitter is error tolerant, so the parser never raises on odd input.
Constructs it does not model are simply left out of the tree.
"""

from __future__ import annotations

import importlib
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from .models import (
    AnalysisResult,
    Declaration,
    DeclarationTree,
    ExportRecord,
    ImportRecord,
    Metrics,
)

logger = logging.getLogger(__name__)

GRAMMAR_MODULE = "tree_sitter_typescript"

CLASS_NODES = {"class_declaration", "abstract_class_declaration"}
FUNCTION_NODES = {"function_declaration", "generator_function_declaration"}
VARIABLE_NODES = {"lexical_declaration", "variable_declaration"}

METHOD_MEMBERS = {"method_definition", "method_signature", "abstract_method_signature"}
PROPERTY_MEMBERS = {"public_field_definition", "property_signature"}

# Decision points counted by the complexity estimate.
BRANCH_NODES = {
    "if_statement",
    "for_statement",
    "for_in_statement",
    "for_of_statement",
    "while_statement",
    "do_statement",
    "switch_case",
    "catch_clause",
    "ternary_expression",
}
LOGICAL_OPERATORS = {"&&", "||"}


class GrammarUnavailableError(RuntimeError):
    """Raised when the Tree-sitter TypeScript grammar cannot be loaded."""


# ===================================================================
# Grammar loading
# ===================================================================

def load_language(dialect: str = "typescript") -> Any:
    """Load the Tree-sitter ``Language`` for *dialect* (``typescript`` or ``tsx``)."""
    try:
        from tree_sitter import Language  # type: ignore[import-untyped]
    except ImportError as exc:
        raise GrammarUnavailableError(
            "tree-sitter is not installed. Install with: pip install tree-sitter"
        ) from exc

    try:
        mod = importlib.import_module(GRAMMAR_MODULE)
    except ImportError as exc:
        raise GrammarUnavailableError(
            f"Grammar package '{GRAMMAR_MODULE}' is not installed. "
            f"Install with: pip install {GRAMMAR_MODULE.replace('_', '-')}"
        ) from exc

    factory = getattr(mod, f"language_{dialect}", None)
    if factory is None:
        raise GrammarUnavailableError(f"No Tree-sitter grammar for dialect '{dialect}'")
    logger.debug("Loaded tree-sitter grammar for %s", dialect)
    return Language(factory())


@lru_cache(maxsize=None)
def _ts_parser(dialect: str) -> Any:
    language = load_language(dialect)
    from tree_sitter import Parser as TSParser  # type: ignore[import-untyped]

    return TSParser(language)


def parse_tree(source: str, dialect: str = "typescript") -> Any:
    """Return the raw Tree-sitter tree for *source*."""
    tree = _ts_parser(dialect).parse(source.encode("utf-8"))
    if tree.root_node.has_error:
        logger.debug("Source contains syntax errors; continuing best-effort")
    return tree


# ===================================================================
# Node helpers
# ===================================================================

def node_text(node: Any) -> str:
    return node.text.decode("utf-8")


def string_value(node: Any) -> str:
    """Strip the quotes off a string literal node."""
    raw = node_text(node)
    if len(raw) >= 2 and raw[0] in "'\"`" and raw[-1] == raw[0]:
        return raw[1:-1]
    return raw


def has_token(node: Any, token: str) -> bool:
    """True if *node* has a direct (usually anonymous) child of type *token*."""
    return any(child.type == token for child in node.children)


def type_text(annotation: Optional[Any]) -> Optional[str]:
    """Return the type written in a ``: T`` annotation, without the colon."""
    if annotation is None:
        return None
    raw = node_text(annotation)
    return raw[1:].strip() if raw.startswith(":") else raw.strip()


def iter_nodes(root: Any) -> Iterator[Any]:
    """Pre-order traversal of every node under *root* (inclusive)."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def doc_comment(node: Any) -> Optional[str]:
    """Description text of the ``/** ... */`` comment right before *node*."""
    prev = node.prev_named_sibling
    if prev is None or prev.type != "comment":
        return None
    raw = node_text(prev)
    if not raw.startswith("/**"):
        return None

    lines: List[str] = []
    for line in raw[3:-2].splitlines():
        line = line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        if line.startswith("@"):
            break
        lines.append(line)
    return "\n".join(lines).strip()


def _lines(node: Any) -> Tuple[int, int]:
    return node.start_point[0] + 1, node.end_point[0] + 1


def _byte_range(node: Optional[Any]) -> Optional[Tuple[int, int]]:
    if node is None:
        return None
    return node.start_byte, node.end_byte


def _parameters(params_node: Optional[Any]) -> List[Dict[str, Optional[str]]]:
    if params_node is None:
        return []
    params: List[Dict[str, Optional[str]]] = []
    for param in params_node.named_children:
        if param.type not in ("required_parameter", "optional_parameter"):
            continue
        pattern = param.child_by_field_name("pattern")
        params.append({
            "name": node_text(pattern) if pattern is not None else node_text(param),
            "type": type_text(param.child_by_field_name("type")),
        })
    return params


def _accessibility(node: Any) -> Optional[str]:
    for child in node.named_children:
        if child.type == "accessibility_modifier":
            return node_text(child)
    return None


# ===================================================================
# Parser
# ===================================================================

class TypeScriptParser:
    """Builds a :class:`DeclarationTree` plus import/export tables from text.

    Each call to :meth:`parse_source` creates a fresh tree; nothing is cached
    between calls apart from the compiled grammar.
    """

    def __init__(self, dialect: str = "typescript") -> None:
        self.dialect = dialect

    def parse_file(self, file_path: Path) -> AnalysisResult:
        source = Path(file_path).read_text(encoding="utf-8")
        return self.parse_source(source, str(file_path))

    def parse_source(self, source: str, file_path: str = "source.ts") -> AnalysisResult:
        root = parse_tree(source, self.dialect).root_node
        decls = DeclarationTree()
        imports: List[ImportRecord] = []
        exports: List[ExportRecord] = []
        local_exports: Set[str] = set()

        for stmt in root.named_children:
            if stmt.type == "import_statement":
                record = self._import_record(stmt)
                if record is not None:
                    imports.append(record)
            elif stmt.type == "export_statement":
                exports.extend(self._export_records(stmt))
                local_exports.update(self._local_export_names(stmt))
                inner = stmt.child_by_field_name("declaration")
                if inner is not None:
                    self._declaration(decls, inner, outer=stmt, exported=True)
            else:
                self._declaration(decls, stmt, outer=stmt, exported=False)

        roots = decls.roots()
        # `class A {}` followed by `export { A };` exports A as well
        for decl in roots:
            if decl.name in local_exports:
                decl.is_exported = True

        metrics = Metrics(
            lines_of_code=len(source.splitlines()),
            function_count=sum(1 for d in roots if d.kind == "function"),
            class_count=sum(1 for d in roots if d.kind == "class"),
            import_count=len(imports),
            export_count=len(exports),
            cyclomatic_complexity=estimate_complexity(root),
        )
        return AnalysisResult(
            file_path=file_path,
            tree=decls,
            imports=imports,
            exports=exports,
            metrics=metrics,
        )

    # ------------------------------------------------------------------
    # Top-level declarations
    # ------------------------------------------------------------------

    def _declaration(self, decls: DeclarationTree, node: Any, outer: Any, exported: bool) -> None:
        start_line, end_line = _lines(outer)
        common = {
            "is_exported": exported,
            "doc": doc_comment(outer),
            "start_byte": outer.start_byte,
            "end_byte": outer.end_byte,
        }
        name_node = node.child_by_field_name("name")
        if name_node is None and node.type not in VARIABLE_NODES:
            return

        if node.type in CLASS_NODES:
            self._class(decls, node, name_node, start_line, end_line, common)

        elif node.type == "interface_declaration":
            self._interface(decls, node, name_node, start_line, end_line, common)

        elif node.type in FUNCTION_NODES:
            decls.add(
                "function", node_text(name_node), start_line, end_line,
                name_range=_byte_range(name_node),
                body_range=_byte_range(node.child_by_field_name("body")),
                metadata={
                    "is_async": has_token(node, "async"),
                    "is_generator": node.type == "generator_function_declaration",
                    "parameters": _parameters(node.child_by_field_name("parameters")),
                    "return_type": type_text(node.child_by_field_name("return_type")),
                },
                **common,
            )

        elif node.type == "type_alias_declaration":
            value = node.child_by_field_name("value")
            decls.add(
                "type-alias", node_text(name_node), start_line, end_line,
                name_range=_byte_range(name_node),
                metadata={"type": node_text(value) if value is not None else None},
                **common,
            )

        elif node.type == "enum_declaration":
            body = node.child_by_field_name("body")
            members: List[str] = []
            if body is not None:
                for member in body.named_children:
                    if member.type == "comment":
                        continue
                    if member.type == "enum_assignment":
                        member = member.child_by_field_name("name")
                    members.append(string_value(member))
            decls.add(
                "enum", node_text(name_node), start_line, end_line,
                name_range=_byte_range(name_node),
                body_range=_byte_range(body),
                metadata={"members": members, "is_const": has_token(node, "const")},
                **common,
            )

        elif node.type in VARIABLE_NODES and exported:
            kind_node = node.child_by_field_name("kind")
            declaration_kind = node_text(kind_node) if kind_node is not None else "var"
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                var_name = declarator.child_by_field_name("name")
                decls.add(
                    "variable", node_text(var_name), start_line, end_line,
                    name_range=_byte_range(var_name),
                    metadata={
                        "declaration_kind": declaration_kind,
                        "type": type_text(declarator.child_by_field_name("type")),
                    },
                    **common,
                )

    def _class(
        self,
        decls: DeclarationTree,
        node: Any,
        name_node: Any,
        start_line: int,
        end_line: int,
        common: Dict[str, Any],
    ) -> None:
        extends: Optional[str] = None
        implements: List[str] = []
        for child in node.named_children:
            if child.type != "class_heritage":
                continue
            for clause in child.named_children:
                if clause.type == "extends_clause":
                    extends = node_text(clause)[len("extends"):].strip()
                elif clause.type == "implements_clause":
                    implements = [node_text(t) for t in clause.named_children if t.type != "comment"]

        body = node.child_by_field_name("body")
        cls = decls.add(
            "class", node_text(name_node), start_line, end_line,
            name_range=_byte_range(name_node),
            body_range=_byte_range(body),
            metadata={
                "is_abstract": node.type == "abstract_class_declaration",
                "extends": extends,
                "implements": implements,
            },
            **common,
        )
        if body is not None:
            self._members(decls, cls, body)

    def _interface(
        self,
        decls: DeclarationTree,
        node: Any,
        name_node: Any,
        start_line: int,
        end_line: int,
        common: Dict[str, Any],
    ) -> None:
        extends: List[str] = []
        for child in node.named_children:
            if child.type == "extends_type_clause":
                extends = [node_text(t) for t in child.named_children if t.type != "comment"]

        body = node.child_by_field_name("body")
        iface = decls.add(
            "interface", node_text(name_node), start_line, end_line,
            name_range=_byte_range(name_node),
            body_range=_byte_range(body),
            metadata={"extends": extends},
            **common,
        )
        if body is not None:
            self._members(decls, iface, body)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def _members(self, decls: DeclarationTree, owner: Declaration, body: Any) -> None:
        for member in body.named_children:
            name_node = member.child_by_field_name("name")
            if name_node is None:
                continue
            start_line, end_line = _lines(member)
            common = {
                "doc": doc_comment(member),
                "start_byte": member.start_byte,
                "end_byte": member.end_byte,
                "name_range": _byte_range(name_node),
            }

            if member.type in METHOD_MEMBERS:
                decls.add(
                    "method", node_text(name_node), start_line, end_line,
                    parent_id=owner.decl_id,
                    body_range=_byte_range(member.child_by_field_name("body")),
                    metadata={
                        "is_static": has_token(member, "static"),
                        "is_async": has_token(member, "async"),
                        "is_optional": has_token(member, "?"),
                        "accessibility": _accessibility(member),
                        "parameters": _parameters(member.child_by_field_name("parameters")),
                        "return_type": type_text(member.child_by_field_name("return_type")),
                    },
                    **common,
                )
            elif member.type in PROPERTY_MEMBERS:
                value = member.child_by_field_name("value")
                decls.add(
                    "property", node_text(name_node), start_line, end_line,
                    parent_id=owner.decl_id,
                    metadata={
                        "is_static": has_token(member, "static"),
                        "is_readonly": has_token(member, "readonly"),
                        "is_optional": has_token(member, "?"),
                        "accessibility": _accessibility(member),
                        "type": type_text(member.child_by_field_name("type")),
                        "initializer": node_text(value) if value is not None else None,
                    },
                    **common,
                )

    # ------------------------------------------------------------------
    # Import / export tables
    # ------------------------------------------------------------------

    @staticmethod
    def _import_record(stmt: Any) -> Optional[ImportRecord]:
        source = stmt.child_by_field_name("source")
        if source is None:
            source = next((c for c in stmt.named_children if c.type == "string"), None)
        if source is None:
            # import x = require("...") and friends
            return None

        record = ImportRecord(
            module_specifier=string_value(source),
            is_type_only=has_token(stmt, "type"),
        )
        clause = next((c for c in stmt.named_children if c.type == "import_clause"), None)
        if clause is None:
            return record

        for part in clause.named_children:
            if part.type == "identifier":
                record.default_import = node_text(part)
            elif part.type == "namespace_import":
                ident = next((c for c in part.named_children if c.type == "identifier"), None)
                if ident is not None:
                    record.namespace_import = node_text(ident)
            elif part.type == "named_imports":
                for spec in part.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name = spec.child_by_field_name("name")
                    if name is not None:
                        record.named_imports.append(node_text(name))
        return record

    @staticmethod
    def _local_export_names(stmt: Any) -> List[str]:
        """Local names exported by ``export { a, b as c }`` or ``export default a``."""
        if stmt.child_by_field_name("source") is not None:
            return []
        value = stmt.child_by_field_name("value")
        if value is not None and value.type == "identifier":
            return [node_text(value)]

        names: List[str] = []
        for child in stmt.named_children:
            if child.type != "export_clause":
                continue
            for spec in child.named_children:
                name = spec.child_by_field_name("name") if spec.type == "export_specifier" else None
                if name is not None:
                    names.append(node_text(name))
        return names

    @staticmethod
    def _export_records(stmt: Any) -> List[ExportRecord]:
        is_default = has_token(stmt, "default")
        declaration = stmt.child_by_field_name("declaration")

        if is_default:
            name = "default"
            if declaration is not None:
                name_node = declaration.child_by_field_name("name")
                if name_node is not None:
                    name = node_text(name_node)
            else:
                value = stmt.child_by_field_name("value")
                if value is not None and value.type == "identifier":
                    name = node_text(value)
            return [ExportRecord(name=name, is_default=True)]

        if declaration is not None:
            if declaration.type in VARIABLE_NODES:
                return [
                    ExportRecord(name=node_text(d.child_by_field_name("name")))
                    for d in declaration.named_children
                    if d.type == "variable_declarator"
                ]
            name_node = declaration.child_by_field_name("name")
            if name_node is None:
                return []
            return [ExportRecord(name=node_text(name_node))]

        source = stmt.child_by_field_name("source")
        source_module = string_value(source) if source is not None else None
        type_only = has_token(stmt, "type")
        records: List[ExportRecord] = []

        for child in stmt.named_children:
            if child.type == "export_clause":
                for spec in child.named_children:
                    if spec.type != "export_specifier":
                        continue
                    alias = spec.child_by_field_name("alias")
                    name = alias if alias is not None else spec.child_by_field_name("name")
                    records.append(ExportRecord(
                        name=node_text(name),
                        is_type_only=type_only,
                        is_re_export=source_module is not None,
                        source_module=source_module,
                    ))
            elif child.type == "namespace_export":
                ident = next((c for c in child.named_children if c.type != "comment"), None)
                records.append(ExportRecord(
                    name=node_text(ident) if ident is not None else "*",
                    is_type_only=type_only,
                    is_re_export=True,
                    source_module=source_module,
                ))

        if not records and has_token(stmt, "*"):
            records.append(ExportRecord(
                name="*",
                is_type_only=type_only,
                is_re_export=True,
                source_module=source_module,
            ))
        return records


def estimate_complexity(root: Any) -> int:
    """Aggregate cyclomatic complexity for a whole source unit.

    Base 1, plus one for each branch, loop, case clause, catch clause,
    ternary, and ``&&`` / ``||`` expression anywhere in the tree.
    """
    complexity = 1
    for node in iter_nodes(root):
        if node.type in BRANCH_NODES:
            complexity += 1
        elif node.type == "binary_expression":
            operator = node.child_by_field_name("operator")
            if operator is not None and operator.type in LOGICAL_OPERATORS:
                complexity += 1
    return complexity


# ===================================================================
# Module-level entry points
# ===================================================================

def parse_source(source: str, file_path: str = "source.ts") -> AnalysisResult:
    """Parse TypeScript *source* into an :class:`AnalysisResult`."""
    return TypeScriptParser().parse_source(source, file_path)


def parse_file(file_path: Path) -> AnalysisResult:
    """Read *file_path* as UTF-8 and parse it."""
    path = Path(file_path)
    dialect = "tsx" if path.suffix == ".tsx" else "typescript"
    return TypeScriptParser(dialect).parse_file(path)
