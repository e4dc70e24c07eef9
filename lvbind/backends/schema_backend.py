# pylint: disable=cyclic-import
# Cyclic import is intentional - backends register themselves when loaded
"""JSON API map backend.

This backend reads the structured API map (as produced for LVGL by its
``gen_json`` tooling) and derives the canonical model from it:

* every enum with its members,
* every function with its return type and arguments,
* every structure with its fields and bit widths,
* a typedef table kept alongside the model.

An entity missing a required field is skipped and reported as a
:class:`~lvbind.ir.MalformedEntity`; the rest of the document is still
converted.

Example
-------
::

    from lvbind.backends.schema_backend import SchemaBackend

    backend = SchemaBackend()
    result = backend.parse(text, "lv_api.json")
    for error in result.errors:
        print(error)
"""

from __future__ import (
    annotations,
)

from collections.abc import (
    Sequence,
)
from typing import (
    Optional,
)

from lvbind.backends import (
    register_backend,
)
from lvbind.ir import (
    ANONYMOUS,
    ApiMap,
    Enum,
    EnumMember,
    FuncArg,
    Function,
    IngestResult,
    MalformedEntity,
    Struct,
    StructField,
    elide_void_marker,
)
from lvbind.nodes import (
    ApiDocument,
    EnumDecl,
    FunctionDecl,
    RawNode,
    StructDecl,
    parse_document,
)
from lvbind.typedefs import (
    classify_typedefs,
)
from lvbind.types import (
    TypeResolutionError,
    resolve_type,
)

# Bit widths are stored in 8 bits
MAX_BIT_WIDTH = 255


class _SkipEntity(Exception):
    """Raised while converting one entity; turned into a MalformedEntity."""

    def __init__(self, missing_field: str, detail: Optional[str] = None) -> None:
        super().__init__(missing_field)
        self.missing_field = missing_field
        self.detail = detail


def _require(value, missing_field: str):
    if value is None:
        raise _SkipEntity(missing_field)
    return value


def _resolve(node: RawNode, field_path: str) -> str:
    try:
        return resolve_type(node)
    except TypeResolutionError as e:
        raise _SkipEntity(field_path, str(e)) from e


def parse_bit_width(text: str) -> int:
    """Parse a bitfield width given as digit text.

    :raises ValueError: If the text is not a decimal number in ``0..255``.
    """
    stripped = text.strip()
    if not (stripped.isascii() and stripped.isdigit()):
        raise ValueError(f"{text!r} is not a bit width")
    width = int(stripped)
    if width > MAX_BIT_WIDTH:
        raise ValueError(f"bit width {width} does not fit in 8 bits")
    return width


class SchemaConverter:
    """Converts an :class:`~lvbind.nodes.ApiDocument` into the lvbind IR.

    Each pass walks one group of the document in order. An entity that
    cannot be converted is recorded in :attr:`errors` and left out.

    :param filename: Name of the document, for diagnostics.

    Note
    ----
    This class is internal to the schema backend. Use
    :class:`SchemaBackend` for the public API.
    """

    def __init__(self, filename: str = "<api map>") -> None:
        self.filename = filename
        self.errors: list[MalformedEntity] = []

    def convert(self, document: ApiDocument) -> IngestResult:
        """Run every pass over ``document``."""
        api_map = ApiMap(
            enums=self.convert_enums(document.enums),
            functions=self.convert_functions(document.functions),
            structs=self.convert_structs(document.structures),
        )
        typedefs, collisions, typedef_errors = classify_typedefs(document.typedefs)
        self.errors.extend(typedef_errors)
        return IngestResult(api_map=api_map, typedefs=typedefs, errors=list(self.errors), warnings=collisions)

    def _report(self, collection: str, index: int, identifier: Optional[str], skip: _SkipEntity) -> None:
        self.errors.append(MalformedEntity(collection, index, identifier, skip.missing_field, skip.detail))

    # -------------------------------------------------------------------------
    # Enums
    # -------------------------------------------------------------------------

    def convert_enums(self, nodes: Sequence[RawNode]) -> list[Enum]:
        enums: list[Enum] = []
        for index, node in enumerate(nodes):
            try:
                enums.append(self._convert_enum(node))
            except _SkipEntity as skip:
                self._report("enums", index, node.name, skip)
        return enums

    def _convert_enum(self, node: RawNode) -> Enum:
        identifier = node.name or ANONYMOUS
        if not isinstance(node, EnumDecl):
            raise _SkipEntity("json_type", f"expected enum, got {node.kind}")
        underlying = _resolve(node, "type")
        members = []
        for i, member in enumerate(_require(node.members, "members")):
            # The API map carries no member values
            members.append(EnumMember(_require(member.name, f"members[{i}].name")))
        return Enum(identifier=identifier, underlying_type=underlying, members=members)

    # -------------------------------------------------------------------------
    # Functions
    # -------------------------------------------------------------------------

    def convert_functions(self, nodes: Sequence[RawNode]) -> list[Function]:
        functions: list[Function] = []
        for index, node in enumerate(nodes):
            try:
                functions.append(self._convert_function(node))
            except _SkipEntity as skip:
                self._report("functions", index, node.name, skip)
        return functions

    def _convert_function(self, node: RawNode) -> Function:
        identifier = _require(node.name, "name")
        if not isinstance(node, FunctionDecl):
            raise _SkipEntity("json_type", f"expected function, got {node.kind}")
        return_type = _resolve(_require(node.type, "type"), "type")
        args = [
            FuncArg(identifier=arg.name, type=_resolve(arg, f"args[{i}].type")) for i, arg in enumerate(node.args or ())
        ]
        return Function(identifier=identifier, return_type=return_type, args=elide_void_marker(args))

    # -------------------------------------------------------------------------
    # Structs
    # -------------------------------------------------------------------------

    def convert_structs(self, nodes: Sequence[RawNode]) -> list[Struct]:
        structs: list[Struct] = []
        for index, node in enumerate(nodes):
            try:
                structs.append(self._convert_struct(node))
            except _SkipEntity as skip:
                self._report("structs", index, node.name, skip)
        return structs

    def _convert_struct(self, node: RawNode) -> Struct:
        identifier = _require(node.name, "name")
        if not isinstance(node, StructDecl):
            raise _SkipEntity("json_type", f"expected struct, got {node.kind}")
        fields = []
        for i, field_node in enumerate(_require(node.fields, "fields")):
            bit_width = None
            bitsize = getattr(field_node, "bitsize", None)
            if bitsize is not None:
                try:
                    bit_width = parse_bit_width(bitsize)
                except ValueError as e:
                    raise _SkipEntity(f"fields[{i}].bitsize", str(e)) from e
            fields.append(
                StructField(
                    identifier=_require(field_node.name, f"fields[{i}].name"),
                    type=_resolve(field_node, f"fields[{i}].type"),
                    bit_width=bit_width,
                )
            )
        return Struct(identifier=identifier, fields=fields)


class SchemaBackend:
    """Ingestion backend for the JSON API map.

    Produces enums, functions, structs and a typedef table.

    Example
    -------
    ::

        backend = SchemaBackend()
        result = backend.parse(open("lv_api.json").read(), "lv_api.json")
        print(result.api_map)
    """

    @property
    def name(self) -> str:
        return "schema"

    @property
    def produces_types(self) -> bool:
        return True

    def parse(self, code: str, filename: str = "<api map>") -> IngestResult:
        """Parse and convert one API map document.

        :param code: JSON text of the API map.
        :param filename: Document name for diagnostics.
        :returns: The canonical model plus skipped entities and warnings.
        :raises lvbind.nodes.SchemaError: If the document itself is malformed.
        """
        document = parse_document(code)
        converter = SchemaConverter(filename)
        return converter.convert(document)


# Register this backend as the default
register_backend("schema", SchemaBackend, is_default=True)
