"""Resolution of nested API-map type nodes into flat type strings.

A node such as an argument wraps a chain of type nodes ending in a named
leaf. Every unnamed link is one level of indirection (pointer, array,
function pointer, return-type wrapper) and adds one trailing ``*``::

    arg -> pointer -> pointer -> lvgl_type "lv_obj_t"    =>  "lv_obj_t**"

A function's return type is resolved from its ``ret_type`` node, so that
wrapper is the starting point and never counted.
"""

from __future__ import (
    annotations,
)

from lvbind.nodes import (
    RawNode,
    TypedNode,
)


class TypeResolutionError(ValueError):
    """A node that should wrap a type does not."""

    def __init__(self, node: RawNode) -> None:
        self.node = node
        name = f" {node.name!r}" if node.name else ""
        super().__init__(f"{node.kind}{name} has no type to resolve")


def _wrapped(node: RawNode) -> RawNode:
    if not isinstance(node, TypedNode) or node.type is None:
        raise TypeResolutionError(node)
    return node.type


def resolve_type(node: RawNode) -> str:
    """Resolve the type wrapped by ``node`` into a flat string.

    The chain is walked iteratively, so there is no depth limit.

    :param node: A node owning a nested ``type`` node.
    :returns: The name of the first named node in the chain, followed by one
        ``*`` per unnamed indirection crossed to reach it.
    :raises TypeResolutionError: If ``node`` (or an unnamed link of its
        chain) wraps no type.
    """
    current = _wrapped(node)
    depth = 0
    while current.name is None:
        depth += 1
        current = _wrapped(current)
    return current.name + "*" * depth
