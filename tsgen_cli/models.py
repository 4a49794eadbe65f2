"""Core data models shared by the parser, transformer, and analyzer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

DECLARATION_KINDS = (
    "class",
    "interface",
    "function",
    "variable",
    "type-alias",
    "enum",
    "method",
    "property",
)


@dataclass
class Declaration:
    """A single declaration stored in a :class:`DeclarationTree` arena.

    Parent/child links are arena ids rather than object references, so a
    declaration never points back at its owner.
    """

    decl_id: int
    kind: str
    name: str
    start_line: int
    end_line: int
    is_exported: bool = False
    doc: Optional[str] = None
    parent_id: Optional[int] = None
    child_ids: List[int] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    # Byte offsets into the source the tree was built from.
    start_byte: int = 0
    end_byte: int = 0
    name_range: Optional[Tuple[int, int]] = None
    body_range: Optional[Tuple[int, int]] = None

    @property
    def identifier(self) -> str:
        return f"{self.kind}:{self.name}"

    @property
    def span(self) -> int:
        return self.end_line - self.start_line


class DeclarationTree:
    """Append-only arena of declarations with lookup indexes.

    Two indexes are maintained as nodes are added:

    * ``(kind, name) -> id`` for top-level declarations (first one wins)
    * ``(owner id, kind, name) -> id`` for class/interface members

    Member lookup through the index replaces a linear scan of each class
    body; at the sizes this tool handles either would do.
    """

    def __init__(self) -> None:
        self._nodes: List[Declaration] = []
        self._roots: List[int] = []
        self._top_index: Dict[Tuple[str, str], int] = {}
        self._member_index: Dict[Tuple[int, str, str], int] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def add(
        self,
        kind: str,
        name: str,
        start_line: int,
        end_line: int,
        parent_id: Optional[int] = None,
        **fields: Any,
    ) -> Declaration:
        if kind not in DECLARATION_KINDS:
            raise ValueError(f"Unsupported declaration kind: {kind}")
        decl = Declaration(
            decl_id=len(self._nodes),
            kind=kind,
            name=name,
            start_line=start_line,
            end_line=end_line,
            parent_id=parent_id,
            **fields,
        )
        self._nodes.append(decl)

        if parent_id is None:
            self._roots.append(decl.decl_id)
            self._top_index.setdefault((kind, name), decl.decl_id)
        else:
            parent = self._nodes[parent_id]
            if not (parent.start_line <= start_line and end_line <= parent.end_line):
                raise ValueError(
                    f"{kind} '{name}' ({start_line}-{end_line}) is outside "
                    f"{parent.identifier} ({parent.start_line}-{parent.end_line})"
                )
            parent.child_ids.append(decl.decl_id)
            self._member_index.setdefault((parent_id, kind, name), decl.decl_id)
        return decl

    def get(self, decl_id: int) -> Declaration:
        return self._nodes[decl_id]

    def roots(self) -> List[Declaration]:
        return [self._nodes[i] for i in self._roots]

    def children(self, decl: Declaration) -> List[Declaration]:
        return [self._nodes[i] for i in decl.child_ids]

    def walk(self) -> Iterator[Declaration]:
        """Yield every declaration in document order (parents before children)."""
        stack = list(reversed(self._roots))
        while stack:
            decl = self._nodes[stack.pop()]
            yield decl
            stack.extend(reversed(decl.child_ids))

    def find(self, kind: str, name: str) -> Optional[Declaration]:
        decl_id = self._top_index.get((kind, name))
        return self._nodes[decl_id] if decl_id is not None else None

    def find_member(self, owner: Declaration, kind: str, name: str) -> Optional[Declaration]:
        decl_id = self._member_index.get((owner.decl_id, kind, name))
        return self._nodes[decl_id] if decl_id is not None else None

    def to_dict(self, decl: Declaration) -> Dict[str, Any]:
        return {
            "kind": decl.kind,
            "name": decl.name,
            "start_line": decl.start_line,
            "end_line": decl.end_line,
            "is_exported": decl.is_exported,
            "doc": decl.doc,
            "children": [self.to_dict(child) for child in self.children(decl)],
            "metadata": dict(decl.metadata),
        }


@dataclass
class ImportRecord:
    module_specifier: str
    named_imports: List[str] = field(default_factory=list)
    default_import: Optional[str] = None
    namespace_import: Optional[str] = None
    is_type_only: bool = False


@dataclass
class ExportRecord:
    name: str
    is_default: bool = False
    is_type_only: bool = False
    is_re_export: bool = False
    source_module: Optional[str] = None


@dataclass(frozen=True)
class Metrics:
    """Derived counts for one source unit."""

    lines_of_code: int
    function_count: int
    class_count: int
    import_count: int
    export_count: int
    cyclomatic_complexity: int


@dataclass
class AnalysisResult:
    """Parser output: declaration tree, import/export tables, and metrics."""

    file_path: str
    tree: DeclarationTree
    imports: List[ImportRecord]
    exports: List[ExportRecord]
    metrics: Metrics

    @property
    def declarations(self) -> List[Declaration]:
        return self.tree.roots()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "declarations": [self.tree.to_dict(d) for d in self.declarations],
            "imports": [vars(i).copy() for i in self.imports],
            "exports": [vars(e).copy() for e in self.exports],
            "metrics": vars(self.metrics).copy(),
        }


@dataclass
class Issue:
    type: str
    severity: str
    message: str
    node: Optional[str] = None
    line: Optional[int] = None


@dataclass
class AnalysisReport:
    file_path: str
    issues: List[Issue]
    metrics: Metrics
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "issues": [vars(i).copy() for i in self.issues],
            "metrics": vars(self.metrics).copy(),
            "summary": self.summary,
        }


@dataclass
class StructureDiff:
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "modified": list(self.modified),
        }
