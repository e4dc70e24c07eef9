"""Tests for the JSON API map backend."""

import json

import pytest

from lvbind.backends.schema_backend import (
    SchemaBackend,
    parse_bit_width,
)
from lvbind.ir import (
    Enum,
    EnumMember,
    FuncArg,
    Function,
    MalformedEntity,
    Struct,
    StructField,
)
from lvbind.nodes import (
    SchemaError,
)

INT = {"name": "int", "json_type": "primitive_type"}
VOID = {"name": "void", "json_type": "primitive_type"}


def ret(type_node):
    return {"json_type": "ret_type", "type": type_node}


def arg(name, type_node):
    return {"name": name, "json_type": "arg", "type": type_node}


def pointer(type_node):
    return {"json_type": "pointer", "type": type_node}


def function(name, return_type, args=None):
    node = {"name": name, "json_type": "function", "type": ret(return_type)}
    if args is not None:
        node["args"] = args
    return node


def field(name, type_node, bitsize=None):
    return {"name": name, "json_type": "field", "type": type_node, "bitsize": bitsize}


class TestSchemaBackendBasic:
    def setup_method(self):
        self.backend = SchemaBackend()

    def test_backend_properties(self):
        assert self.backend.name == "schema"
        assert self.backend.produces_types is True

    def test_lvgl_api_map(self, lvgl_api_map):
        result = self.backend.parse(json.dumps(lvgl_api_map), "lv_api.json")
        assert result.ok
        assert result.api_map.enums == [
            Enum("_lv_align_t", "int", [EnumMember("LV_ALIGN_DEFAULT"), EnumMember("LV_ALIGN_TOP_LEFT")])
        ]
        assert result.api_map.functions == [
            Function("lv_obj_create", "lv_obj_t*", [FuncArg("parent", "lv_obj_t*")]),
            Function("lv_init", "void", []),
        ]
        assert result.api_map.structs == [
            Struct("_lv_area_t", [StructField("x1", "int32_t", None), StructField("flag", "uint8_t", 3)])
        ]
        assert result.typedefs.named == {"_lv_obj_t": "lv_obj_t"}
        assert result.typedefs.unnamed == [("int32_t", "lv_value_precise_t")]

    def test_deterministic(self, lvgl_api_map):
        text = json.dumps(lvgl_api_map)
        first = self.backend.parse(text, "lv_api.json")
        second = self.backend.parse(text, "lv_api.json")
        assert first.api_map == second.api_map
        assert first.typedefs == second.typedefs
        assert first.errors == second.errors

    def test_empty_document(self):
        result = self.backend.parse("{}", "empty.json")
        assert result.ok
        assert result.api_map.functions == []
        assert len(result.typedefs) == 0

    def test_unparseable_document_is_fatal(self):
        with pytest.raises(SchemaError):
            self.backend.parse('{"enums": [{"json_type": "nonsense"}]}', "bad.json")


class TestEnums:
    def setup_method(self):
        self.backend = SchemaBackend()

    def test_anonymous_enum(self, api_map_text):
        text = api_map_text(
            enums=[{"json_type": "enum", "type": INT, "members": [{"name": "A", "json_type": "enum_member"}]}]
        )
        enum = self.backend.parse(text, "t.json").api_map.enums[0]
        assert enum.identifier == "anonymous"
        assert enum.members == [EnumMember("A", None)]

    def test_member_order_preserved(self, api_map_text):
        members = [{"name": n, "json_type": "enum_member"} for n in ("Z", "A", "M")]
        text = api_map_text(enums=[{"name": "e", "json_type": "enum", "type": INT, "members": members}])
        enum = self.backend.parse(text, "t.json").api_map.enums[0]
        assert [m.name for m in enum.members] == ["Z", "A", "M"]
        assert all(m.value is None for m in enum.members)

    def test_missing_members(self, api_map_text):
        text = api_map_text(enums=[{"name": "e", "json_type": "enum", "type": INT}])
        result = self.backend.parse(text, "t.json")
        assert result.api_map.enums == []
        assert result.errors == [MalformedEntity("enums", 0, "e", "members")]

    def test_missing_underlying_type(self, api_map_text):
        text = api_map_text(enums=[{"name": "e", "json_type": "enum", "members": []}])
        result = self.backend.parse(text, "t.json")
        assert result.errors[0].missing_field == "type"


class TestFunctions:
    def setup_method(self):
        self.backend = SchemaBackend()

    def parse_functions(self, api_map_text, *functions):
        return self.backend.parse(api_map_text(functions=list(functions)), "t.json")

    def test_void_marker_elided(self, api_map_text):
        result = self.parse_functions(api_map_text, function("f", VOID, [arg(None, VOID)]))
        assert result.api_map.functions == [Function("f", "void", [])]

    def test_void_marker_not_elided_with_more_args(self, api_map_text):
        result = self.parse_functions(api_map_text, function("f", VOID, [arg(None, VOID), arg("x", INT)]))
        assert result.api_map.functions[0].args == [FuncArg(None, "void"), FuncArg("x", "int")]

    def test_named_void_arg_kept(self, api_map_text):
        result = self.parse_functions(api_map_text, function("f", VOID, [arg("v", VOID)]))
        assert result.api_map.functions[0].args == [FuncArg("v", "void")]

    def test_void_pointer_arg_kept(self, api_map_text):
        result = self.parse_functions(api_map_text, function("f", VOID, [arg(None, pointer(VOID))]))
        assert result.api_map.functions[0].args == [FuncArg(None, "void*")]

    def test_missing_args_is_empty(self, api_map_text):
        result = self.parse_functions(api_map_text, function("f", INT))
        assert result.ok
        assert result.api_map.functions == [Function("f", "int", [])]

    def test_pointer_return_type(self, api_map_text):
        char = {"name": "char", "json_type": "primitive_type"}
        result = self.parse_functions(api_map_text, function("lv_strdup", pointer(pointer(char))))
        assert result.api_map.functions[0].return_type == "char**"

    def test_function_pointer_arg(self, api_map_text):
        callback = {"json_type": "function_pointer", "type": ret(VOID)}
        result = self.parse_functions(api_map_text, function("lv_timer_create", VOID, [arg("cb", callback)]))
        assert result.api_map.functions[0].args == [FuncArg("cb", "void**")]

    def test_missing_return_type(self, api_map_text):
        result = self.parse_functions(api_map_text, {"name": "f", "json_type": "function"})
        assert result.api_map.functions == []
        assert result.errors == [MalformedEntity("functions", 0, "f", "type")]

    def test_missing_name_does_not_abort(self, api_map_text):
        nameless = function(None, INT)
        result = self.parse_functions(api_map_text, function("a", INT), nameless, function("b", INT))
        assert [f.identifier for f in result.api_map.functions] == ["a", "b"]
        assert result.errors == [MalformedEntity("functions", 1, None, "name")]

    def test_arg_without_type(self, api_map_text):
        broken = function("lv_obj_del", VOID, [arg("obj", None)])
        result = self.parse_functions(api_map_text, broken)
        assert result.api_map.functions == []
        error = result.errors[0]
        assert error.collection == "functions"
        assert error.identifier == "lv_obj_del"
        assert error.missing_field == "args[0].type"


class TestStructs:
    def setup_method(self):
        self.backend = SchemaBackend()

    def parse_structs(self, api_map_text, *structs):
        return self.backend.parse(api_map_text(structures=list(structs)), "t.json")

    def struct(self, *fields, name="s"):
        return {"name": name, "json_type": "struct", "fields": list(fields)}

    def test_bit_width(self, api_map_text):
        result = self.parse_structs(api_map_text, self.struct(field("flag", INT, "3")))
        assert result.api_map.structs[0].fields == [StructField("flag", "int", 3)]

    def test_no_bit_width(self, api_map_text):
        result = self.parse_structs(api_map_text, self.struct(field("x", INT)))
        assert result.api_map.structs[0].fields[0].bit_width is None

    def test_non_numeric_bit_width_is_error(self, api_map_text):
        result = self.parse_structs(api_map_text, self.struct(field("flag", INT, "abc")), self.struct(name="ok"))
        assert [s.identifier for s in result.api_map.structs] == ["ok"]
        error = result.errors[0]
        assert error.collection == "structs"
        assert error.missing_field == "fields[0].bitsize"
        assert "abc" in error.detail

    def test_oversized_bit_width_is_error(self, api_map_text):
        result = self.parse_structs(api_map_text, self.struct(field("flag", INT, "300")))
        assert result.api_map.structs == []
        assert "8 bits" in result.errors[0].detail

    def test_missing_fields(self, api_map_text):
        result = self.parse_structs(api_map_text, {"name": "opaque", "json_type": "struct"})
        assert result.errors == [MalformedEntity("structs", 0, "opaque", "fields")]

    def test_missing_struct_name(self, api_map_text):
        result = self.parse_structs(api_map_text, self.struct(field("x", INT), name=None))
        assert result.errors[0].missing_field == "name"

    def test_missing_field_name(self, api_map_text):
        result = self.parse_structs(api_map_text, self.struct(field(None, INT)))
        assert result.errors == [MalformedEntity("structs", 0, "s", "fields[0].name")]

    def test_errors_accumulate_across_passes(self, api_map_text):
        text = api_map_text(
            enums=[{"name": "e", "json_type": "enum", "type": INT}],
            functions=[function(None, INT)],
            structures=[{"name": "s", "json_type": "struct"}],
            typedefs=[{"json_type": "typedef", "type": INT}],
        )
        result = self.backend.parse(text, "t.json")
        assert [e.collection for e in result.errors] == ["enums", "functions", "structs", "typedefs"]


class TestTypedefs:
    def test_collision_is_warning(self, api_map_text):
        obj = {"name": "_lv_obj_t", "json_type": "lvgl_type"}
        text = api_map_text(
            typedefs=[
                {"name": "lv_obj_t", "json_type": "typedef", "type": obj},
                {"name": "lv_widget_t", "json_type": "typedef", "type": obj},
            ]
        )
        result = SchemaBackend().parse(text, "t.json")
        assert result.ok
        assert result.typedefs.named == {"_lv_obj_t": "lv_widget_t"}
        assert len(result.warnings) == 1
        assert result.warnings[0].previous_alias == "lv_obj_t"


class TestParseBitWidth:
    @pytest.mark.parametrize("text,expected", [("0", 0), ("3", 3), (" 8 ", 8), ("255", 255)])
    def test_valid(self, text, expected):
        assert parse_bit_width(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "-1", "3.0", "256", "0x3"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_bit_width(text)
