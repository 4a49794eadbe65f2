"""Transform operations and results.

Operations form a closed set of dataclasses; ``Wrap`` is part of the set even
though it always fails when applied. Wire dictionaries (as read from a JSON
operations file) are turned into operations with :func:`operation_from_dict`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Literal, Optional, Union


class MalformedOperationError(ValueError):
    """An operation object is missing a required field or is not a mapping."""


@dataclass
class AddImport:
    module_specifier: str
    named_imports: List[str] = field(default_factory=list)
    default_import: Optional[str] = None
    namespace_import: Optional[str] = None
    is_type_only: bool = False
    type: Literal["add-import"] = "add-import"


@dataclass
class RemoveImport:
    module_specifier: str
    named_imports: List[str] = field(default_factory=list)
    type: Literal["remove-import"] = "remove-import"


@dataclass
class AddExport:
    name: str
    is_default: bool = False
    declaration: Optional[str] = None
    type: Literal["add-export"] = "add-export"


@dataclass
class AddProperty:
    target_class: str
    property_name: str
    property_type: str
    initializer: Optional[str] = None
    is_readonly: bool = False
    type: Literal["add-property"] = "add-property"


@dataclass
class AddMethod:
    target_class: str
    method_name: str
    parameters: str = ""
    return_type: str = "void"
    body: str = ""
    type: Literal["add-method"] = "add-method"


@dataclass
class Rename:
    old_name: str
    new_name: str
    scope: Literal["file", "class"] = "file"
    target_class: Optional[str] = None
    type: Literal["rename"] = "rename"


@dataclass
class Wrap:
    target_function: str
    wrapper_template: str
    type: Literal["wrap"] = "wrap"


@dataclass
class UnknownOperation:
    """Placeholder for an operation tag this engine does not recognise."""

    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


Operation = Union[
    AddImport, RemoveImport, AddExport, AddProperty, AddMethod, Rename, Wrap, UnknownOperation
]

OPERATION_TYPES = {
    "add-import": AddImport,
    "remove-import": RemoveImport,
    "add-export": AddExport,
    "add-property": AddProperty,
    "add-method": AddMethod,
    "rename": Rename,
    "wrap": Wrap,
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def operation_from_dict(data: Dict[str, Any]) -> Operation:
    """Build an operation from a wire dictionary.

    Keys may be camelCase (``moduleSpecifier``) or snake_case
    (``module_specifier``). Unrecognised ``type`` tags yield an
    :class:`UnknownOperation` so the transform can report them as failures.

    Raises:
        MalformedOperationError: if *data* is not a mapping, has no ``type``,
            or lacks a field the operation requires.
    """
    if not isinstance(data, dict):
        raise MalformedOperationError(f"Operation must be a mapping, got {type(data).__name__}")
    op_type = data.get("type")
    if not op_type:
        raise MalformedOperationError("Operation is missing required field 'type'")

    cls = OPERATION_TYPES.get(op_type)
    if cls is None:
        return UnknownOperation(type=str(op_type), payload=dict(data))

    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name == "type":
            continue
        for key in (_camel(f.name), f.name):
            if data.get(key) is not None:
                kwargs[f.name] = data[key]
                break
    try:
        op = cls(**kwargs)
    except TypeError as exc:
        raise MalformedOperationError(f"Malformed '{op_type}' operation: {exc}") from exc
    return validate_operation(op)


def validate_operation(op: Any) -> Operation:
    """Coerce *op* into an operation, checking required fields are present."""
    if isinstance(op, dict):
        return operation_from_dict(op)
    if isinstance(op, UnknownOperation):
        return op
    if not isinstance(op, tuple(OPERATION_TYPES.values())):
        raise MalformedOperationError(f"Not a transform operation: {op!r}")
    for f in fields(op):
        if f.name == "type":
            continue
        value = getattr(op, f.name)
        if f.type == "str" and not isinstance(value, str):
            raise MalformedOperationError(f"'{op.type}' operation requires field '{f.name}'")
        if f.type == "List[str]" and not isinstance(value, list):
            raise MalformedOperationError(f"'{op.type}' field '{f.name}' must be a list")
    return op


def operation_to_dict(op: Operation) -> Dict[str, Any]:
    return asdict(op)


@dataclass
class TransformFailure:
    operation: Operation
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"operation": operation_to_dict(self.operation), "message": self.message}


@dataclass
class TransformResult:
    """Outcome of a transform batch.

    ``applied_operations + len(failed_operations)`` always equals the number
    of operations requested.
    """

    source: str
    applied_operations: int
    failed_operations: List[TransformFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed_operations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "source": self.source,
            "applied_operations": self.applied_operations,
            "failed_operations": [f.to_dict() for f in self.failed_operations],
        }
