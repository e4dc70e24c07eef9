"""Canonical Intermediate Representation (IR) for a C library's public API.

This module defines the IR that both ingestion backends produce. A
downstream emitter consumes it to render bindings for another language.

Design Principles
-----------------
* **Source-agnostic**: The schema (JSON API map) backend and the header
  (tree-sitter) backend converge on the same records.
* **Flat type strings**: Types are already resolved to strings such as
  ``"lv_obj_t*"``; pointer indirection is expressed by trailing ``*``.
* **Immutable values**: Records are frozen dataclasses owned by the caller.
  Nothing in them refers back to the input document or source text.

Declaration Types
-----------------
* :class:`Enum` - Enumeration with named members
* :class:`Struct` - Structure with (bit)fields
* :class:`Function` - Function declaration

Diagnostics
-----------
* :class:`MalformedEntity` - schema entity skipped because a field is missing
  or invalid
* :class:`UnparseableDeclaration` - header declaration skipped because the
  syntax tree does not have the expected shape
* :class:`TypedefCollision` - two named typedefs for the same underlying type

Example
-------
Ingest an API map and inspect declarations::

    from lvbind.backends import get_backend

    backend = get_backend("schema")
    result = backend.parse(text, "lv_api.json")

    for func in result.api_map.functions:
        print(f"{func.return_type} {func.identifier}")
"""

from __future__ import (
    annotations,
)

from dataclasses import (
    dataclass,
    field,
)
from typing import (
    Optional,
    Protocol,
    Union,
)

# Identifier given to enums the API map leaves unnamed.
ANONYMOUS = "anonymous"

# =============================================================================
# Source Location
# =============================================================================


@dataclass(frozen=True)
class SourceLocation:
    """Location of a declaration in a header file.

    :param file: Path (or name) of the source file.
    :param line: Line number (1-indexed).
    :param byte_offset: Offset of the declaration's first byte in the
        UTF-8 encoded file.
    """

    file: str
    line: int
    byte_offset: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


# =============================================================================
# Declarations
# =============================================================================


@dataclass(frozen=True)
class EnumMember:
    """Single enumeration member.

    The API map carries no constant values, so ``value`` is always None
    for ingested enums. It is kept so an emitter can fill it in.

    :param name: The member name.
    :param value: Literal value text, or None.
    """

    name: str
    value: Optional[str] = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.name} = {self.value}"
        return self.name


@dataclass(frozen=True)
class Enum:
    """Enumeration declaration.

    :param identifier: Enum name, or ``"anonymous"``.
    :param underlying_type: Resolved underlying type (usually ``"int"``).
    :param members: Members in declaration order.

    Example
    -------
    ::

        align = Enum("lv_align_t", "int", [EnumMember("LV_ALIGN_DEFAULT")])
    """

    identifier: str
    underlying_type: str
    members: list[EnumMember] = field(default_factory=list)

    def __str__(self) -> str:
        return f"enum {self.identifier}"


@dataclass(frozen=True)
class FuncArg:
    """Function argument.

    :param identifier: Argument name, or None for unnamed arguments.
    :param type: Resolved type string.
    """

    identifier: Optional[str]
    type: str

    def __str__(self) -> str:
        if self.identifier:
            return f"{self.type} {self.identifier}"
        return self.type


@dataclass(frozen=True)
class Function:
    """Function declaration.

    :param identifier: The function name.
    :param return_type: Resolved return type string.
    :param args: Arguments in declaration order.
    :param location: Where the declaration was found. Only the header
        backend sets it, and it does not take part in equality, so the same
        prototype found in two headers yields two equal records.

    Example
    -------
    ::

        create = Function("lv_obj_create", "lv_obj_t*", [
            FuncArg("parent", "lv_obj_t*"),
        ])
    """

    identifier: str
    return_type: str
    args: list[FuncArg] = field(default_factory=list)
    location: Optional[SourceLocation] = field(default=None, compare=False)

    def __str__(self) -> str:
        args = ", ".join(str(a) for a in self.args)
        return f"{self.return_type} {self.identifier}({args})"


@dataclass(frozen=True)
class StructField:
    """Struct field.

    :param identifier: Field name.
    :param type: Resolved type string.
    :param bit_width: Width of a bitfield (0..255), or None.
    """

    identifier: str
    type: str
    bit_width: Optional[int] = None

    def __str__(self) -> str:
        if self.bit_width is not None:
            return f"{self.type} {self.identifier} : {self.bit_width}"
        return f"{self.type} {self.identifier}"


@dataclass(frozen=True)
class Struct:
    """Struct declaration.

    :param identifier: Struct name.
    :param fields: Fields in declaration order.
    """

    identifier: str
    fields: list[StructField] = field(default_factory=list)

    def __str__(self) -> str:
        return f"struct {self.identifier}"


def elide_void_marker(args: list[FuncArg]) -> list[FuncArg]:
    """Drop the C ``(void)`` empty-parameter marker.

    Only a list made of exactly one unnamed ``void`` argument is treated as
    the marker. Any other list is returned unchanged.
    """
    if len(args) == 1 and args[0].identifier is None and args[0].type == "void":
        return []
    return args


@dataclass(frozen=True)
class ApiMap:
    """The canonical model: enums, functions and structs in input order."""

    enums: list[Enum] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)
    structs: list[Struct] = field(default_factory=list)

    def __str__(self) -> str:
        return f"ApiMap({len(self.enums)} enums, {len(self.functions)} functions, {len(self.structs)} structs)"


# =============================================================================
# Typedef Table
# =============================================================================


@dataclass
class TypedefTable:
    """Aliases computed from the API map's typedefs.

    ``named`` maps a resolved underlying type to its (last seen) alias.
    ``unnamed`` keeps, in order and with duplicates, the typedefs whose
    underlying type looks like a primitive or aggregate.

    This is a lookup table for consumers that want alias substitution; the
    canonical entities are not rewritten with it.
    """

    named: dict[str, str] = field(default_factory=dict)
    unnamed: list[tuple[str, str]] = field(default_factory=list)

    def alias_for(self, type_string: str) -> Optional[str]:
        """Return the named alias of ``type_string``, if there is one."""
        return self.named.get(type_string)

    def __len__(self) -> int:
        return len(self.named) + len(self.unnamed)


# =============================================================================
# Diagnostics
# =============================================================================


@dataclass(frozen=True)
class MalformedEntity:
    """A schema entity skipped because a required field is missing or invalid.

    :param collection: Name of the pass (``"enums"``, ``"functions"``,
        ``"structs"``, ``"typedefs"``).
    :param index: Position of the entity inside its input group.
    :param identifier: Identifier of the entity if it was known.
    :param missing_field: Path of the offending field, e.g. ``"args[1].type"``.
    :param detail: Extra description for invalid (as opposed to missing) values.
    """

    collection: str
    index: int
    identifier: Optional[str]
    missing_field: str
    detail: Optional[str] = None

    def __str__(self) -> str:
        who = self.identifier or "(unnamed)"
        msg = f"{self.collection}[{self.index}] {who}: missing or invalid {self.missing_field}"
        if self.detail:
            msg = f"{msg} ({self.detail})"
        return msg


@dataclass(frozen=True)
class UnparseableDeclaration:
    """A header declaration skipped because of an unexpected tree shape.

    :param file: Source file name.
    :param byte_offset: Offset of the declaration node.
    :param line: Line of the declaration node (1-indexed).
    :param reason: Which structural expectation failed.
    """

    file: str
    byte_offset: int
    line: int = 0
    reason: str = ""

    def __str__(self) -> str:
        return f"{self.file}:{self.line} (byte {self.byte_offset}): {self.reason}"


@dataclass(frozen=True)
class TypedefCollision:
    """Two named typedefs resolve to the same underlying type.

    The later alias wins; this record is reporting only.
    """

    underlying_type: str
    previous_alias: str
    alias: str

    def __str__(self) -> str:
        return f"duplicate typedef for {self.underlying_type}: {self.previous_alias} replaced by {self.alias}"


IngestError = Union[MalformedEntity, UnparseableDeclaration]


# =============================================================================
# Ingestion Result
# =============================================================================


@dataclass
class IngestResult:
    """What a backend returns for one input.

    :param api_map: The canonical model built from the input.
    :param typedefs: Typedef table (schema backend only).
    :param errors: Entities skipped during ingestion.
    :param warnings: Non-fatal findings such as typedef collisions.
    """

    api_map: ApiMap = field(default_factory=ApiMap)
    typedefs: Optional[TypedefTable] = None
    errors: list[IngestError] = field(default_factory=list)
    warnings: list[TypedefCollision] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when no entity had to be skipped."""
        return not self.errors

    @property
    def functions(self) -> list[Function]:
        return self.api_map.functions

    def merge(self, other: IngestResult) -> IngestResult:
        """Concatenate two results, ``self`` first. Nothing is deduplicated."""
        typedefs = self.typedefs
        if other.typedefs is not None:
            if typedefs is None:
                typedefs = TypedefTable(dict(other.typedefs.named), list(other.typedefs.unnamed))
            else:
                typedefs = TypedefTable(
                    {**typedefs.named, **other.typedefs.named},
                    typedefs.unnamed + other.typedefs.unnamed,
                )
        return IngestResult(
            api_map=ApiMap(
                enums=self.api_map.enums + other.api_map.enums,
                functions=self.api_map.functions + other.api_map.functions,
                structs=self.api_map.structs + other.api_map.structs,
            ),
            typedefs=typedefs,
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
        )

    def __str__(self) -> str:
        return f"IngestResult({self.api_map}, {len(self.errors)} errors, {len(self.warnings)} warnings)"


# =============================================================================
# Parser Backend Protocol
# =============================================================================


class ParserBackend(Protocol):  # pylint: disable=too-few-public-methods
    """Protocol defining the interface for ingestion backends.

    Available Backends
    ------------------
    * ``schema`` - JSON API map (enums, functions, structs, typedefs)
    * ``tree-sitter`` - C headers parsed with tree-sitter (functions only)

    Example
    -------
    ::

        from lvbind.backends import get_backend

        backend = get_backend("tree-sitter")
        result = backend.parse("int foo(void);", "test.h")
    """

    # pylint: disable=unnecessary-ellipsis

    def parse(self, code: str, filename: str) -> IngestResult:
        """Ingest one input and return the canonical model.

        :param code: Input text (JSON document or header source).
        :param filename: Name used in diagnostics. Does not need to exist.
        :returns: Result holding the model and per-entity diagnostics.
        :raises ValueError: If the input cannot be parsed at all.
        """
        ...

    @property
    def name(self) -> str:
        """Human-readable name of this backend (e.g., ``"schema"``)."""
        ...

    @property
    def produces_types(self) -> bool:
        """Whether this backend yields enums, structs and typedefs."""
        ...
