"""Tests for reading the JSON API map into raw nodes."""

import json

import pytest

from lvbind.nodes import (
    ApiDocument,
    Arg,
    EnumDecl,
    Field,
    FunctionDecl,
    MacroDecl,
    Pointer,
    ReturnType,
    SchemaError,
    StructDecl,
    TypeName,
    parse_document,
    parse_node,
)


class TestParseDocument:
    def test_groups(self, lvgl_api_map):
        doc = parse_document(json.dumps(lvgl_api_map))
        assert isinstance(doc, ApiDocument)
        assert len(doc.enums) == 1
        assert len(doc.functions) == 2
        assert len(doc.structures) == 1
        assert len(doc.typedefs) == 2
        assert len(doc.macros) == 1
        assert len(doc) == 7

    def test_node_classes(self, lvgl_api_map):
        doc = parse_document(json.dumps(lvgl_api_map))
        assert isinstance(doc.enums[0], EnumDecl)
        assert isinstance(doc.functions[0], FunctionDecl)
        assert isinstance(doc.functions[0].type, ReturnType)
        assert isinstance(doc.functions[0].type.type, Pointer)
        assert isinstance(doc.functions[0].args[0], Arg)
        assert isinstance(doc.structures[0], StructDecl)
        assert isinstance(doc.structures[0].fields[1], Field)
        assert doc.structures[0].fields[1].bitsize == "3"
        assert isinstance(doc.macros[0], MacroDecl)

    def test_missing_groups_are_empty(self):
        doc = parse_document('{"functions": []}')
        assert doc.enums == ()
        assert doc.macros == ()

    def test_extra_keys_kept(self):
        doc = parse_document('{"version": "9.2", "functions": []}')
        assert doc.extra == {"version": "9.2"}

    def test_order_preserved(self):
        text = json.dumps(
            {"macros": [{"name": n, "json_type": "macro"} for n in ("C", "A", "B")]},
        )
        assert [m.name for m in parse_document(text).macros] == ["C", "A", "B"]

    def test_invalid_json(self):
        with pytest.raises(SchemaError, match="invalid JSON"):
            parse_document("{not json")

    def test_root_must_be_object(self):
        with pytest.raises(SchemaError):
            parse_document("[]")

    def test_group_must_be_list(self):
        with pytest.raises(SchemaError, match="functions"):
            parse_document('{"functions": {}}')

    def test_unknown_json_type(self):
        with pytest.raises(SchemaError, match=r"functions\[0\]: unknown json_type 'method'"):
            parse_document('{"functions": [{"name": "f", "json_type": "method"}]}')

    def test_missing_json_type_reports_path(self):
        text = json.dumps({"functions": [{"name": "f", "json_type": "function", "args": [{"name": "x"}]}]})
        with pytest.raises(SchemaError, match=r"functions\[0\]\.args\[0\]: missing json_type"):
            parse_document(text)


class TestParseNode:
    def test_type_name_quals(self):
        node = parse_node({"name": "char", "json_type": "primitive_type", "quals": ["const"]})
        assert isinstance(node, TypeName)
        assert node.quals == ("const",)

    def test_irrelevant_keys_ignored(self):
        node = parse_node({"name": "int", "json_type": "primitive_type", "fields": [], "bitsize": "3"})
        assert not hasattr(node, "fields")
        assert not hasattr(node, "bitsize")

    def test_numeric_bitsize_read_as_text(self):
        node = parse_node({"name": "f", "json_type": "field", "bitsize": 4})
        assert node.bitsize == "4"

    def test_wrong_name_type(self):
        with pytest.raises(SchemaError, match="name"):
            parse_node({"name": 3, "json_type": "function"})

    def test_wrong_quals_type(self):
        with pytest.raises(SchemaError, match="quals"):
            parse_node({"name": "int", "json_type": "primitive_type", "quals": "const"})

    def test_children_not_shared(self):
        data = {"name": "s", "json_type": "struct", "fields": [{"name": "a", "json_type": "field"}]}
        assert parse_node(data) == parse_node(data)
        assert parse_node(data) is not parse_node(data)
