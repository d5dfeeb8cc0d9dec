"""
tests.test_config_parser
~~~~~~~~~~~~~~~~~~~~~~~~
Unit tests for the YAML → field catalogue pipeline.  No database access.

Covers:
- infer_type / stringify_value / json_safe / build_path
- classify (NodeKind)
- extract_field / extract_leaf
- YAMLConfigParser (paths, special nodes, ordering, idempotence)
- FieldSetValidator
"""
from __future__ import annotations

import pytest

from apps.config_parser.services import (
    FieldSetValidator,
    YAMLConfigParser,
    YAMLParseError,
    group_fields_by_group,
)
from apps.config_parser.services.field_extractor import extract_field, extract_leaf
from apps.config_parser.services.field_types import (
    FIELD_TYPES,
    build_path,
    infer_type,
    json_safe,
    stringify_value,
)
from apps.config_parser.services.node_classifier import NodeKind, classify


SAMPLE_YAML = """
metadata:
  owner: teamA
groups:
  net: Networking
timeout:
  type: number
  default: 30
  required: true
network:
  mtu:
    type: number
    default: 1500
    group: net
    can_be_update: false
  interfaces:
    - eth0
    - eth1
admin_password:
  type: password
  required: true
retries: 3
"""


def _without_order(parsed) -> dict:
    fields = parsed.to_dict()["fields"]
    for payload in fields.values():
        payload.pop("order")
    return fields


# ===========================================================================
# Type inference and paths
# ===========================================================================

class TestFieldTypes:

    @pytest.mark.parametrize(
        "value, expected",
        [
            (True, "boolean"),
            (False, "boolean"),
            (3, "number"),
            (2.5, "number"),
            ("eth0", "string"),
            ([1, 2], "array"),
            ({"a": 1}, "object"),
            (None, "string"),
            (object(), "string"),
        ],
    )
    def test_infer_type_is_total(self, value, expected):
        assert infer_type(value) == expected
        assert infer_type(value) in FIELD_TYPES

    def test_build_path(self):
        assert build_path("", "database") == "database"
        assert build_path("database", "port") == "database.port"
        assert build_path("ports", 8080) == "ports.8080"

    def test_stringify_value(self):
        assert stringify_value(None) == ""
        assert stringify_value(True) == "true"
        assert stringify_value(30) == "30"
        assert stringify_value("x") == "x"
        assert stringify_value({"b": 1, "a": [1]}) == '{"a": [1], "b": 1}'
        assert stringify_value(b"hello") == "aGVsbG8="

    def test_json_safe(self):
        value = {1: b"hello", "tags": {"b", "a"}, "pair": (1, 2), "n": None}
        assert json_safe(value) == {"1": "aGVsbG8=", "tags": ["a", "b"], "pair": [1, 2], "n": None}


# ===========================================================================
# Classification
# ===========================================================================

class TestClassify:

    def test_root_mapping_is_container_even_with_property_keys(self):
        assert classify("", {"type": "number"}) is NodeKind.CONTAINER

    def test_descriptor_needs_property_key(self):
        assert classify("timeout", {"Type": "number"}) is NodeKind.FIELD_DESCRIPTOR
        assert classify("database", {"host": "localhost"}) is NodeKind.CONTAINER

    def test_special_marker_in_path(self):
        assert classify("metadata", {"owner": "teamA"}) is NodeKind.SPECIAL
        assert classify("app.Settings", {"type": "x"}) is NodeKind.SPECIAL

    def test_scalars(self):
        assert classify("retries", 3) is NodeKind.LEAF
        assert classify("retries", None) is NodeKind.IGNORED
        assert classify("", "root scalar") is NodeKind.IGNORED
        assert classify("servers", ["a"]) is NodeKind.CONTAINER


# ===========================================================================
# Field extraction
# ===========================================================================

class TestExtractField:

    def test_aliases_are_case_insensitive(self):
        fd = extract_field(
            "port",
            {"TYPE": "number", "Default": 80, "Help": "Listen port", "Mandatory": True,
             "choices": [80, 443], "Category": "net"},
            order=4,
        )
        assert fd.type == "number"
        assert fd.default_value == 80
        assert fd.description == "Listen port"
        assert fd.required is True
        assert fd.options == [80, 443]
        assert fd.group == "net"
        assert fd.order == 4

    def test_explicit_non_default_type_is_preserved(self):
        fd = extract_field("secret", {"type": "password", "default": 1234}, order=0)
        assert fd.type == "password"

    def test_string_type_is_reinferred_from_default(self):
        fd = extract_field("port", {"type": "string", "default": 8080}, order=0)
        assert fd.type == "number"

    def test_visible_is_literal_synonym_of_hidden(self):
        fd = extract_field("x", {"type": "string", "visible": True}, order=0)
        assert fd.hidden is True

    def test_wrong_shapes_are_ignored(self):
        fd = extract_field(
            "x",
            {"default": 1, "required": "yes", "options": "a,b", "order": True},
            order=7,
        )
        assert fd.required is False
        assert fd.options == []
        assert fd.order == 7

    def test_unknown_keys_go_to_metadata(self):
        fd = extract_field("x", {"type": "string", "can_be_update": False, "unit": "ms"}, order=0)
        assert fd.metadata == {"can_be_update": False, "unit": "ms"}

    def test_extract_leaf(self):
        fd = extract_leaf("retries", 3, order=1)
        assert (fd.path, fd.type, fd.default_value, fd.required) == ("retries", "number", 3, False)


# ===========================================================================
# Parser
# ===========================================================================

class TestYAMLConfigParser:

    def test_timeout_and_metadata_scenario(self):
        parsed = YAMLConfigParser.parse(
            {"timeout": {"type": "number", "default": 30, "required": True},
             "metadata": {"owner": "teamA"}}
        )
        assert list(parsed.fields) == ["timeout"]
        fd = parsed.fields["timeout"]
        assert fd.type == "number"
        assert fd.default_value == 30
        assert fd.required is True
        assert parsed.metadata == {"owner": "teamA"}

    def test_bare_leaf_scenario(self):
        parsed = YAMLConfigParser.parse({"retries": 3})
        fd = parsed.fields["retries"]
        assert (fd.type, fd.default_value, fd.required) == ("number", 3, False)

    def test_sample_document(self):
        parsed = YAMLConfigParser.parse_text(SAMPLE_YAML)
        assert list(parsed.fields) == [
            "timeout",
            "network.mtu",
            "network.interfaces.[0]",
            "network.interfaces.[1]",
            "admin_password",
            "retries",
        ]
        assert parsed.groups == {"net": "Networking"}
        assert parsed.metadata == {"owner": "teamA"}
        assert parsed.fields["network.mtu"].metadata == {"can_be_update": False}
        assert parsed.fields["network.interfaces.[1]"].default_value == "eth1"

    def test_paths_are_non_empty_and_unique(self):
        parsed = YAMLConfigParser.parse_text(
            "servers:\n  - host: a\n    port: 1\n  - host: b\n    port: 2\n"
        )
        paths = list(parsed.fields)
        assert all(paths)
        assert len(paths) == len(set(paths))
        assert "servers.[0].host" in paths and "servers.[1].host" in paths

    def test_order_follows_document_order(self):
        parsed = YAMLConfigParser.parse_text(SAMPLE_YAML)
        orders = [fd.order for fd in parsed.fields.values()]
        assert orders == sorted(orders)

    def test_parse_is_idempotent_up_to_order(self):
        first = YAMLConfigParser.parse_text(SAMPLE_YAML)
        second = YAMLConfigParser.parse_text(SAMPLE_YAML)
        assert _without_order(first) == _without_order(second)

    def test_none_values_are_ignored(self):
        parsed = YAMLConfigParser.parse_text("a: null\nb: 1\n")
        assert list(parsed.fields) == ["b"]

    def test_empty_document(self):
        parsed = YAMLConfigParser.parse_text("")
        assert parsed.fields == {}

    def test_version_and_schema_from_config_block(self):
        parsed = YAMLConfigParser.parse_text("config:\n  version: '2'\n  schema: vnf/v1\n")
        assert parsed.version == "2"
        assert parsed.schema == "vnf/v1"
        assert parsed.fields == {}

    def test_root_scalar_version_stays_a_field(self):
        parsed = YAMLConfigParser.parse_text("version: '1'\n")
        assert parsed.version == ""
        assert parsed.fields["version"].default_value == "1"

    def test_timestamps_stay_strings(self):
        parsed = YAMLConfigParser.parse_text("released: 2024-01-01\n")
        assert parsed.fields["released"].default_value == "2024-01-01"
        assert parsed.fields["released"].type == "string"

    def test_invalid_yaml_raises(self):
        with pytest.raises(YAMLParseError):
            YAMLConfigParser.load("a: [1, 2\n")

    def test_load_file(self, tmp_path):
        path = tmp_path / "vnf.yaml"
        path.write_text(SAMPLE_YAML)
        assert YAMLConfigParser.load_file(path)["retries"] == 3
        with pytest.raises(YAMLParseError):
            YAMLConfigParser.load_file(tmp_path / "missing.yaml")

    def test_group_fields_by_group(self):
        grouped = group_fields_by_group(YAMLConfigParser.parse_text(SAMPLE_YAML))
        assert [fd.path for fd in grouped["net"]] == ["network.mtu"]
        assert "timeout" in [fd.path for fd in grouped["default"]]


# ===========================================================================
# Validator
# ===========================================================================

class TestFieldSetValidator:

    def test_required_without_default_warns_once(self):
        parsed = YAMLConfigParser.parse({"token": {"type": "string", "required": True}})
        warnings = FieldSetValidator.validate(parsed)
        assert len(warnings) == 1
        assert "token" in warnings[0]

    def test_array_without_options_warns(self):
        parsed = YAMLConfigParser.parse({"dns": {"type": "array", "default": ["1.1.1.1"]}})
        assert FieldSetValidator.validate(parsed) == [
            "field 'dns' is of array type but defines no options"
        ]

    def test_clean_document_has_no_warnings(self):
        parsed = YAMLConfigParser.parse({"retries": 3, "timeout": {"type": "number", "default": 5}})
        assert FieldSetValidator.validate(parsed) == []
