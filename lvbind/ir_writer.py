"""IR to JSON writer.

Renders an :class:`~lvbind.ir.IngestResult` as a JSON document so the
canonical model can be inspected or handed to an emitter running in
another process.

Example
-------
::

    from lvbind.ir_writer import write_json
    from lvbind.backends import get_backend

    result = get_backend("schema").parse(text, "lv_api.json")
    print(write_json(result))
"""

from __future__ import (
    annotations,
)

import json
from typing import (
    Any,
    Optional,
)

from lvbind.ir import (
    Enum,
    Function,
    IngestResult,
    MalformedEntity,
    Struct,
    TypedefTable,
    UnparseableDeclaration,
)


def _enum(enum: Enum) -> dict[str, Any]:
    return {
        "identifier": enum.identifier,
        "type": enum.underlying_type,
        "members": [{"name": m.name, "value": m.value} for m in enum.members],
    }


def _function(func: Function) -> dict[str, Any]:
    out: dict[str, Any] = {
        "identifier": func.identifier,
        "return_type": func.return_type,
        "args": [{"identifier": a.identifier, "type": a.type} for a in func.args],
    }
    if func.location is not None:
        out["location"] = {"file": func.location.file, "line": func.location.line}
    return out


def _struct(struct: Struct) -> dict[str, Any]:
    return {
        "identifier": struct.identifier,
        "fields": [{"identifier": f.identifier, "type": f.type, "bit_width": f.bit_width} for f in struct.fields],
    }


def _typedefs(table: Optional[TypedefTable]) -> Optional[dict[str, Any]]:
    if table is None:
        return None
    return {
        "named": dict(table.named),
        "unnamed": [list(pair) for pair in table.unnamed],
    }


def _error(error: Any) -> dict[str, Any]:
    if isinstance(error, MalformedEntity):
        return {
            "kind": "malformed_entity",
            "collection": error.collection,
            "index": error.index,
            "identifier": error.identifier,
            "field": error.missing_field,
            "detail": error.detail,
        }
    if isinstance(error, UnparseableDeclaration):
        return {
            "kind": "unparseable_declaration",
            "file": error.file,
            "byte_offset": error.byte_offset,
            "line": error.line,
            "reason": error.reason,
        }
    raise TypeError(f"Unknown diagnostic: {error!r}")


def to_dict(result: IngestResult) -> dict[str, Any]:
    """Convert a result into plain JSON-compatible data."""
    return {
        "enums": [_enum(e) for e in result.api_map.enums],
        "functions": [_function(f) for f in result.api_map.functions],
        "structs": [_struct(s) for s in result.api_map.structs],
        "typedefs": _typedefs(result.typedefs),
        "errors": [_error(e) for e in result.errors],
        "warnings": [str(w) for w in result.warnings],
    }


def write_json(result: IngestResult, indent: Optional[int] = 2) -> str:
    """Render ``result`` as JSON text (with a trailing newline)."""
    return json.dumps(to_dict(result), indent=indent) + "\n"
