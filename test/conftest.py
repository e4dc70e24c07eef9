"""Shared pytest fixtures for lvbind tests."""

import json

import pytest

from lvbind.backends import get_backend, is_backend_available


@pytest.fixture
def schema_backend():
    return get_backend("schema")


@pytest.fixture
def ts_backend():
    """The tree-sitter backend.

    Fails if tree-sitter is not installed; exclude with:
        pytest -m "not treesitter"
    """
    if not is_backend_available("tree-sitter"):
        pytest.fail("tree-sitter backend not available - use pytest -m 'not treesitter' to exclude")
    return get_backend("tree-sitter")


@pytest.fixture
def api_map_text():
    """Build API map JSON text from keyword groups."""

    def build(**groups):
        return json.dumps(groups)

    return build


@pytest.fixture
def lvgl_api_map():
    """A small API map shaped like LVGL's gen_json output."""
    return {
        "enums": [
            {
                "name": "_lv_align_t",
                "json_type": "enum",
                "docstring": "",
                "type": {"name": "int", "json_type": "primitive_type"},
                "members": [
                    {"name": "LV_ALIGN_DEFAULT", "json_type": "enum_member", "docstring": ""},
                    {"name": "LV_ALIGN_TOP_LEFT", "json_type": "enum_member", "docstring": ""},
                ],
            }
        ],
        "functions": [
            {
                "name": "lv_obj_create",
                "json_type": "function",
                "docstring": "Create a base object",
                "type": {
                    "json_type": "ret_type",
                    "docstring": "",
                    "type": {
                        "json_type": "pointer",
                        "type": {"name": "lv_obj_t", "json_type": "lvgl_type", "quals": []},
                    },
                },
                "args": [
                    {
                        "name": "parent",
                        "json_type": "arg",
                        "docstring": "",
                        "type": {
                            "json_type": "pointer",
                            "type": {"name": "lv_obj_t", "json_type": "lvgl_type", "quals": []},
                        },
                    }
                ],
            },
            {
                "name": "lv_init",
                "json_type": "function",
                "type": {
                    "json_type": "ret_type",
                    "type": {"name": "void", "json_type": "primitive_type"},
                },
                "args": [
                    {
                        "name": None,
                        "json_type": "arg",
                        "type": {"name": "void", "json_type": "primitive_type"},
                    }
                ],
            },
        ],
        "structures": [
            {
                "name": "_lv_area_t",
                "json_type": "struct",
                "type": {"name": "struct", "json_type": "primitive_type"},
                "fields": [
                    {
                        "name": "x1",
                        "json_type": "field",
                        "type": {"name": "int32_t", "json_type": "stdlib_type"},
                        "bitsize": None,
                    },
                    {
                        "name": "flag",
                        "json_type": "field",
                        "type": {"name": "uint8_t", "json_type": "stdlib_type"},
                        "bitsize": "3",
                    },
                ],
            }
        ],
        "unions": [],
        "variables": [],
        "typedefs": [
            {
                "name": "lv_obj_t",
                "json_type": "typedef",
                "type": {"name": "_lv_obj_t", "json_type": "lvgl_type"},
            },
            {
                "name": "lv_value_precise_t",
                "json_type": "typedef",
                "type": {"name": "int32_t", "json_type": "stdlib_type"},
            },
        ],
        "forward_decls": [],
        "macros": [{"name": "LV_VERSION_MAJOR", "json_type": "macro", "docstring": ""}],
    }
