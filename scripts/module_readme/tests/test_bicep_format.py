"""Tests for bicep_format.py module."""

from ..bicep_format import format_bicep_key, format_bicep_property, format_bicep_value
from ..bicep_literal import parse_bicep_value


class TestFormatBicepValue:
    """Tests for format_bicep_value function."""

    def test_scalars(self):
        """Test null, booleans and numbers."""
        assert format_bicep_value(None) == ["null"]
        assert format_bicep_value(True) == ["true"]
        assert format_bicep_value(False) == ["false"]
        assert format_bicep_value(42) == ["42"]
        assert format_bicep_value(1.5) == ["1.5"]

    def test_string_escaping(self):
        """Test quotes, interpolation markers and backslashes are escaped."""
        assert format_bicep_value("it's") == ["'it\\'s'"]
        assert format_bicep_value("${literal}") == ["'\\${literal}'"]
        assert format_bicep_value("C:\\temp") == ["'C:\\\\temp'"]

    def test_multiline_string(self):
        """Test line breaks are written as escapes on a single line."""
        assert format_bicep_value("line one\nline two") == ["'line one\\nline two'"]
        assert format_bicep_value("a\r\n\tb") == ["'a\\r\\n\\tb'"]

    def test_nested_multiline_string_keeps_its_value(self):
        """Test a multi-line string nested in objects reads back unchanged."""
        value = {"outer": {"script": "line1\nline2"}}

        lines = format_bicep_value(value)

        assert parse_bicep_value("\n".join(lines)) == value

    def test_empty_collections(self):
        """Test empty arrays and objects stay on one line."""
        assert format_bicep_value([]) == ["[]"]
        assert format_bicep_value({}) == ["{}"]

    def test_nested(self):
        """Test nested values are indented two spaces per level."""
        value = {"ipRules": [{"action": "Allow", "value": "40.74.28.0/23"}], "bypass": "AzureServices"}

        assert format_bicep_value(value) == [
            "{",
            "  ipRules: [",
            "    {",
            "      action: 'Allow'",
            "      value: '40.74.28.0/23'",
            "    }",
            "  ]",
            "  bypass: 'AzureServices'",
            "}",
        ]


def test_format_bicep_key():
    """Test keys are quoted only when they are not plain identifiers."""
    assert format_bicep_key("Environment") == "Environment"
    assert format_bicep_key("hidden-title") == "'hidden-title'"


def test_format_bicep_property():
    """Test continuation lines of a property carry its indent."""
    assert format_bicep_property("tags", {"hidden-title": "x"}, "    ") == [
        "    tags: {",
        "      'hidden-title': 'x'",
        "    }",
    ]
