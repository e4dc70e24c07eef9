"""Raw nodes of the JSON API map.

The API map describes every declaration as a tagged object whose
``json_type`` decides which other keys are meaningful. Each tag family is
read into its own frozen dataclass so the rest of the code never has to
guess which optional keys a node carries.

Example
-------
::

    from lvbind.nodes import parse_document

    document = parse_document(open("lv_api.json", encoding="utf-8").read())
    for func in document.functions:
        print(func.name)
"""

from __future__ import (
    annotations,
)

import json
from dataclasses import (
    dataclass,
    field,
)
from typing import (
    Any,
    Optional,
)

GROUPS = (
    "enums",
    "functions",
    "structures",
    "unions",
    "variables",
    "typedefs",
    "forward_decls",
    "macros",
)


class SchemaError(ValueError):
    """The API map does not have the expected tagged-node shape."""


# =============================================================================
# Node Variants
# =============================================================================


@dataclass(frozen=True)
class RawNode:
    """Fields shared by every node: the tag, an optional name and docstring."""

    kind: str
    name: Optional[str] = None
    docstring: Optional[str] = None


@dataclass(frozen=True)
class TypeName(RawNode):
    """A named leaf: ``primitive_type``, ``lvgl_type``, ``stdlib_type`` or ``special_type``."""

    quals: tuple[str, ...] = ()


@dataclass(frozen=True)
class TypedNode(RawNode):
    """A node owning at most one nested ``type`` node."""

    type: Optional[RawNode] = None


@dataclass(frozen=True)
class Pointer(TypedNode):
    quals: tuple[str, ...] = ()


@dataclass(frozen=True)
class Array(TypedNode):
    dim: Optional[str] = None
    quals: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReturnType(TypedNode):
    """Wrapper around a function's return type. Not an indirection."""


@dataclass(frozen=True)
class FunctionPointer(TypedNode):
    args: Optional[tuple[RawNode, ...]] = None
    quals: tuple[str, ...] = ()


@dataclass(frozen=True)
class Arg(TypedNode):
    quals: tuple[str, ...] = ()


@dataclass(frozen=True)
class Field(TypedNode):
    bitsize: Optional[str] = None


@dataclass(frozen=True)
class EnumMember(RawNode):
    pass


@dataclass(frozen=True)
class StructDecl(TypedNode):
    fields: Optional[tuple[RawNode, ...]] = None


@dataclass(frozen=True)
class UnionDecl(TypedNode):
    fields: Optional[tuple[RawNode, ...]] = None


@dataclass(frozen=True)
class EnumDecl(TypedNode):
    members: Optional[tuple[RawNode, ...]] = None


@dataclass(frozen=True)
class FunctionDecl(TypedNode):
    args: Optional[tuple[RawNode, ...]] = None
    storage: tuple[str, ...] = ()


@dataclass(frozen=True)
class TypedefDecl(TypedNode):
    quals: tuple[str, ...] = ()


@dataclass(frozen=True)
class VariableDecl(TypedNode):
    quals: tuple[str, ...] = ()
    storage: tuple[str, ...] = ()


@dataclass(frozen=True)
class ForwardDecl(TypedNode):
    pass


@dataclass(frozen=True)
class MacroDecl(RawNode):
    pass


# json_type -> node class
NODE_CLASSES: dict[str, type[RawNode]] = {
    "primitive_type": TypeName,
    "lvgl_type": TypeName,
    "stdlib_type": TypeName,
    "special_type": TypeName,
    "pointer": Pointer,
    "array": Array,
    "ret_type": ReturnType,
    "function_pointer": FunctionPointer,
    "arg": Arg,
    "field": Field,
    "enum_member": EnumMember,
    "struct": StructDecl,
    "union": UnionDecl,
    "enum": EnumDecl,
    "function": FunctionDecl,
    "typedef": TypedefDecl,
    "variable": VariableDecl,
    "forward_decl": ForwardDecl,
    "macro": MacroDecl,
}

# Keys holding a list of child nodes.
_CHILD_LISTS = ("args", "fields", "members")
# Keys holding a list of strings.
_STRING_LISTS = ("quals", "storage")


@dataclass(frozen=True)
class ApiDocument:
    """The parsed API map: one tuple of nodes per top-level group."""

    enums: tuple[RawNode, ...] = ()
    functions: tuple[RawNode, ...] = ()
    structures: tuple[RawNode, ...] = ()
    unions: tuple[RawNode, ...] = ()
    variables: tuple[RawNode, ...] = ()
    typedefs: tuple[RawNode, ...] = ()
    forward_decls: tuple[RawNode, ...] = ()
    macros: tuple[RawNode, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def __len__(self) -> int:
        return sum(len(getattr(self, group)) for group in GROUPS)


# =============================================================================
# Parsing
# =============================================================================


def _optional_text(data: dict[str, Any], key: str, path: str) -> Optional[str]:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    if key in ("bitsize", "dim") and isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    raise SchemaError(f"{path}.{key}: expected a string, got {type(value).__name__}")


def _string_list(data: dict[str, Any], key: str, path: str) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise SchemaError(f"{path}.{key}: expected a list of strings")
    return tuple(value)


def _node_list(data: dict[str, Any], key: str, path: str) -> Optional[tuple[RawNode, ...]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise SchemaError(f"{path}.{key}: expected a list, got {type(value).__name__}")
    return tuple(parse_node(item, f"{path}.{key}[{i}]") for i, item in enumerate(value))


def parse_node(data: Any, path: str = "$") -> RawNode:
    """Read one tagged node (and everything it owns) from decoded JSON.

    Keys that the node's kind does not use are ignored.

    :param data: Decoded JSON object.
    :param path: JSON path used in error messages.
    :raises SchemaError: If the node or one of its children is malformed.
    """
    if not isinstance(data, dict):
        raise SchemaError(f"{path}: expected an object, got {type(data).__name__}")
    kind = data.get("json_type")
    if kind is None:
        raise SchemaError(f"{path}: missing json_type")
    cls = NODE_CLASSES.get(kind)
    if cls is None:
        raise SchemaError(f"{path}: unknown json_type {kind!r}")

    kwargs: dict[str, Any] = {
        "kind": kind,
        "name": _optional_text(data, "name", path),
        "docstring": _optional_text(data, "docstring", path),
    }
    names = cls.__dataclass_fields__
    if "type" in names and data.get("type") is not None:
        kwargs["type"] = parse_node(data["type"], f"{path}.type")
    for key in _CHILD_LISTS:
        if key in names:
            kwargs[key] = _node_list(data, key, path)
    for key in _STRING_LISTS:
        if key in names:
            kwargs[key] = _string_list(data, key, path)
    for key in ("bitsize", "dim"):
        if key in names:
            kwargs[key] = _optional_text(data, key, path)
    return cls(**kwargs)


def parse_document(text: str) -> ApiDocument:
    """Parse the JSON API map.

    Missing groups read as empty. Unknown top-level keys are kept in
    :attr:`ApiDocument.extra` untouched.

    :param text: The JSON document.
    :returns: The document's node tree.
    :raises SchemaError: If the text is not JSON or does not match the
        tagged-node shape. Nothing is salvaged in that case.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SchemaError(f"$: expected an object, got {type(data).__name__}")

    groups: dict[str, Any] = {}
    for group in GROUPS:
        items = data.get(group)
        if items is None:
            groups[group] = ()
            continue
        if not isinstance(items, list):
            raise SchemaError(f"{group}: expected a list, got {type(items).__name__}")
        groups[group] = tuple(parse_node(item, f"{group}[{i}]") for i, item in enumerate(items))

    extra = {key: value for key, value in data.items() if key not in GROUPS}
    return ApiDocument(extra=extra, **groups)
