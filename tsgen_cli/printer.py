"""Deterministic printing of TypeScript source and boilerplate snippets.

``format_source`` re-serializes a Tree-sitter token stream with fixed rules
(two-space indent, one statement per line, normalized spacing). The snippet
helpers render doc comments and import/export statements; the transformer
uses them so inserted code looks the same as generated code.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .parser import node_text, parse_tree

logger = logging.getLogger(__name__)

INDENT = "  "
MAX_INLINE_NAMES = 3

# Brace containers that always print one member per line.
BLOCK_CONTAINERS = {"statement_block", "class_body", "interface_body", "enum_body", "switch_body"}
# Brace containers that stay on one line when written on one line.
FLEX_CONTAINERS = {"object", "object_pattern", "object_type", "named_imports", "export_clause"}
# Nodes printed verbatim.
ATOMIC_NODES = {"string", "template_string", "template_literal_type", "regex", "comment"}

CALLEE_KINDS = {
    "identifier",
    "property_identifier",
    "private_property_identifier",
    "type_identifier",
    "this",
    "super",
    "import",
}
GENERIC_NODES = {"type_arguments", "type_parameters"}
SPACED_PUNCT_PARENTS = {"ternary_expression", "conditional_type"}
UNARY_SYMBOLS = {"!", "-", "+", "~"}
# Member separators stay on the line of the member they follow.
SEPARATORS = {";", ","}


# ===================================================================
# Formatter
# ===================================================================

class _Formatter:
    """Single-use token printer for one syntax tree."""

    def __init__(self, root: Any) -> None:
        self.root = root
        self._block_cache: Dict[Tuple[str, int, int], bool] = {}
        self.lines: List[str] = []
        self.current = ""
        self.depth = 0
        self.break_pending = False

    # -- tree queries ---------------------------------------------------

    def tokens(self) -> Iterator[Any]:
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.child_count == 0 or node.type in ATOMIC_NODES:
                if node.end_byte > node.start_byte:
                    yield node
                continue
            stack.extend(reversed(node.children))

    def is_block(self, node: Any) -> bool:
        key = (node.type, node.start_byte, node.end_byte)
        cached = self._block_cache.get(key)
        if cached is not None:
            return cached
        if node.type in BLOCK_CONTAINERS:
            result = True
        elif node.type in FLEX_CONTAINERS:
            result = node.start_point[0] != node.end_point[0] or any(
                self._has_block_descendant(child) for child in node.children
            )
        else:
            result = False
        self._block_cache[key] = result
        return result

    def _has_block_descendant(self, node: Any) -> bool:
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type in BLOCK_CONTAINERS:
                return True
            stack.extend(current.children)
        return False

    @staticmethod
    def _is_case_body(parent: Any, child: Any) -> bool:
        if parent.type not in ("switch_case", "switch_default") or not child.is_named:
            return False
        value = parent.child_by_field_name("value")
        return value is None or value.start_byte != child.start_byte or value.end_byte != child.end_byte

    def starts_statement(self, token: Any) -> bool:
        if token.type in SEPARATORS:
            return False
        node = token
        while node.parent is not None and node.start_byte == token.start_byte:
            parent = node.parent
            if parent.type == "program":
                return True
            if node.type not in ("{", "}") and self.is_block(parent):
                return True
            if self._is_case_body(parent, node):
                return True
            node = parent
        return False

    def indent_of(self, token: Any) -> int:
        depth = 0
        child, parent = token, token.parent
        while parent is not None:
            if self.is_block(parent):
                if child.type not in ("{", "}"):
                    depth += 1
            elif self._is_case_body(parent, child):
                depth += 1
            child, parent = parent, parent.parent
        return depth

    # -- spacing --------------------------------------------------------

    @staticmethod
    def space_between(prev: Any, cur: Any) -> bool:
        p, c = prev.type, cur.type
        prev_parent = prev.parent.type if prev.parent is not None else ""
        cur_parent = cur.parent.type if cur.parent is not None else ""

        if p in ("(", "[", ".", "?.", "...", "@"):
            return False
        if c in (")", "]", ",", ";", ".", "?."):
            return False
        if p == "{" and c == "}" and prev_parent == cur_parent:
            return False
        if c == "(" and (p in CALLEE_KINDS or p in (")", "]") or (p == ">" and prev_parent in GENERIC_NODES)):
            return False
        if c == "[" and cur_parent in ("subscript_expression", "array_type", "lookup_type"):
            return False
        if c == "<" and cur_parent in GENERIC_NODES:
            # only a generic arrow function opens its type parameters after an operator
            return p not in CALLEE_KINDS
        if c == ">" and cur_parent in GENERIC_NODES:
            return False
        if p == "<" and prev_parent in GENERIC_NODES:
            return False
        if c in (":", "?") and cur_parent not in SPACED_PUNCT_PARENTS:
            return False
        if c == "!" and cur_parent != "unary_expression":
            return False
        if p in UNARY_SYMBOLS and prev_parent == "unary_expression":
            # `- -x` must not collapse into the `--` operator
            return p in ("-", "+") and node_text(cur).startswith(p)
        if c in ("++", "--") and cur_parent == "update_expression" and cur.end_byte == cur.parent.end_byte:
            return False
        if p in ("++", "--") and prev_parent == "update_expression" and prev.start_byte == prev.parent.start_byte:
            return False
        if c == "template_string" and cur_parent == "call_expression":
            return False
        return True

    # -- emission -------------------------------------------------------

    def _flush(self) -> None:
        if self.current:
            self.lines.append(f"{INDENT * self.depth}{self.current}".rstrip())
        self.current = ""

    def _comment_text(self, text: str, depth: int) -> str:
        if "\n" not in text or not text.startswith("/*"):
            return text
        first, *rest = text.split("\n")
        pad = INDENT * depth
        out = [first]
        for line in rest:
            stripped = line.strip()
            out.append(f"{pad} {stripped}" if stripped.startswith("*") else f"{pad}{stripped}")
        return "\n".join(out)

    def run(self) -> str:
        prev: Optional[Any] = None
        for token in self.tokens():
            text = node_text(token)
            is_comment = token.type == "comment"

            if is_comment and prev is not None and token.start_point[0] == prev.end_point[0]:
                self.current += " " + self._comment_text(text, self.depth)
                self.break_pending = self.break_pending or text.startswith("//")
                prev = token
                continue

            closes_block = (
                token.type == "}"
                and token.parent is not None
                and self.is_block(token.parent)
                and not (prev is not None and prev.type == "{" and prev.parent == token.parent)
            )
            statement = self.starts_statement(token)
            if self.current and (self.break_pending or statement or closes_block or is_comment):
                self._flush()
                if (
                    (statement or is_comment)
                    and prev is not None
                    and prev.type != "{"
                    and token.start_point[0] - prev.end_point[0] >= 2
                ):
                    self.lines.append("")
            self.break_pending = False

            if not self.current:
                self.depth = self.indent_of(token)
                self.current = self._comment_text(text, self.depth) if is_comment else text
            else:
                sep = " " if self.space_between(prev, token) else ""
                self.current += sep + text

            if is_comment:
                self.break_pending = True
            prev = token

        self._flush()
        while self.lines and not self.lines[-1]:
            self.lines.pop()
        return "\n".join(self.lines) + "\n" if self.lines else ""


def format_source(source: str) -> str:
    """Return *source* re-printed in canonical layout.

    Two-space indentation, one statement or member per line, normalized
    spacing, at most one blank line between statements, and a trailing
    newline. Strings, template literals, regexes and comments are kept as
    written. Input with syntax errors only gets trailing whitespace trimmed.
    """
    tree = parse_tree(source)
    if tree.root_node.has_error:
        logger.warning("Source has syntax errors; only trimming whitespace")
        lines = [line.rstrip() for line in source.splitlines()]
        while lines and not lines[-1]:
            lines.pop()
        return "\n".join(lines) + "\n" if lines else ""
    return _Formatter(tree.root_node).run()


# ===================================================================
# Snippets
# ===================================================================

def add_license_header(source: str, header: str) -> str:
    """Prepend *header* as a block comment unless *source* opens with a comment."""
    if source.lstrip().startswith(("/*", "//")):
        return source
    body = "\n".join(f" * {line}" if line.strip() else " *" for line in header.split("\n"))
    return f"/**\n{body}\n */\n\n{source}"


def generate_doc(
    description: str,
    params: Optional[Sequence[Dict[str, str]]] = None,
    returns: Optional[Dict[str, str]] = None,
    example: Optional[str] = None,
    deprecated: Optional[str] = None,
    since: Optional[str] = None,
) -> str:
    """Render a ``/** ... */`` documentation block.

    Args:
        description: Summary line.
        params: ``{"name", "type", "description"}`` entries, one ``@param`` each.
        returns: ``{"type", "description"}`` for the ``@returns`` line.
        example: Code placed in a fenced ``@example`` section.
        deprecated: Text for ``@deprecated``.
        since: Version for ``@since``.

    Omitted options produce no lines at all.
    """
    lines = ["/**", f" * {description}"]

    if params:
        lines.append(" *")
        for param in params:
            lines.append(f" * @param {param['name']} - {param.get('description', '')}".rstrip())

    if returns:
        lines.append(f" * @returns {returns.get('description', '')}".rstrip())

    if example:
        lines.append(" *")
        lines.append(" * @example")
        lines.append(" * ```typescript")
        for line in example.split("\n"):
            lines.append(f" * {line}".rstrip())
        lines.append(" * ```")

    if deprecated:
        lines.append(f" * @deprecated {deprecated}")

    if since:
        lines.append(f" * @since {since}")

    lines.append(" */")
    return "\n".join(lines)


def _name_list(names: Sequence[str]) -> str:
    if len(names) <= MAX_INLINE_NAMES:
        return "{ " + ", ".join(names) + " }"
    return "{\n" + "".join(f"{INDENT}{name},\n" for name in names) + "}"


def generate_import_statement(
    module_specifier: str,
    named_imports: Optional[Sequence[str]] = None,
    default_import: Optional[str] = None,
    namespace_import: Optional[str] = None,
    is_type_only: bool = False,
) -> str:
    """Render an import statement.

    Binding precedence: a default binding (with any named bindings), else a
    namespace binding alone, else named bindings alone. With no bindings at
    all a side-effect import is produced.
    """
    keyword = "import type" if is_type_only else "import"
    named = list(named_imports or [])

    if default_import:
        bindings = default_import + (f", {_name_list(named)}" if named else "")
    elif namespace_import:
        bindings = f"* as {namespace_import}"
    elif named:
        bindings = _name_list(named)
    else:
        return f"import '{module_specifier}';"
    return f"{keyword} {bindings} from '{module_specifier}';"


def generate_export_statement(
    named_exports: Optional[Sequence[str]] = None,
    default_export: Optional[str] = None,
    source_module: Optional[str] = None,
    is_type_only: bool = False,
) -> str:
    """Render an export statement (default, named, re-export, or star re-export)."""
    if default_export:
        return f"export default {default_export};"

    keyword = "export type" if is_type_only else "export"
    named = list(named_exports or [])
    if named:
        clause = _name_list(named)
    elif source_module:
        clause = "*"
    else:
        clause = "{}"

    if source_module:
        return f"{keyword} {clause} from '{source_module}';"
    return f"{keyword} {clause};"
