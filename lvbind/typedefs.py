"""Typedef classification.

Typedefs from the API map fall in two buckets:

* **unnamed** - the underlying type looks like a primitive or aggregate
  (it contains one of :data:`UNNAMED_TYPE_MARKERS`). These are kept as an
  ordered list of ``(underlying_type, alias)`` pairs, duplicates included.
* **named** - everything else, e.g. opaque library types. These form a
  mapping from underlying type to alias; a second alias for the same type
  replaces the first and is reported as a :class:`~lvbind.ir.TypedefCollision`.
"""

from __future__ import (
    annotations,
)

from collections.abc import (
    Iterable,
)

from lvbind.ir import (
    MalformedEntity,
    TypedefCollision,
    TypedefTable,
)
from lvbind.nodes import (
    RawNode,
)
from lvbind.types import (
    TypeResolutionError,
    resolve_type,
)

# Substrings of a resolved type that mark it as primitive/aggregate.
UNNAMED_TYPE_MARKERS: tuple[str, ...] = (
    "struct",
    "int*",
    "uint8_t",
    "uint16_t",
    "uint32_t",
    "float",
    "double",
    "uintptr_t",
    "intptr_t",
    "void*",
    "int",
    "union",
    "int8_t",
)


def is_unnamed_type(type_string: str) -> bool:
    return any(marker in type_string for marker in UNNAMED_TYPE_MARKERS)


def classify_typedefs(
    typedefs: Iterable[RawNode],
) -> tuple[TypedefTable, list[TypedefCollision], list[MalformedEntity]]:
    """Bucket typedef nodes into a :class:`~lvbind.ir.TypedefTable`.

    :param typedefs: Typedef nodes in document order.
    :returns: The table, the collisions met while filling it, and the
        typedefs that had to be skipped.
    """
    table = TypedefTable()
    collisions: list[TypedefCollision] = []
    errors: list[MalformedEntity] = []

    for index, typedef in enumerate(typedefs):
        if typedef.name is None:
            errors.append(MalformedEntity("typedefs", index, None, "name"))
            continue
        try:
            kind = resolve_type(typedef)
        except TypeResolutionError as e:
            errors.append(MalformedEntity("typedefs", index, typedef.name, "type", str(e)))
            continue

        if is_unnamed_type(kind):
            table.unnamed.append((kind, typedef.name))
            continue

        previous = table.named.get(kind)
        if previous is not None:
            collisions.append(TypedefCollision(kind, previous, typedef.name))
        table.named[kind] = typedef.name

    return table, collisions, errors
