"""Render Python values as Bicep object-literal syntax."""

import re
from typing import Any, List

INDENT = "  "

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_STRING_ESCAPES = (("\\", "\\\\"), ("'", "\\'"), ("${", "\\${"), ("\r", "\\r"), ("\n", "\\n"), ("\t", "\\t"))


def format_bicep_string(value: str) -> List[str]:
    """Format a string literal on a single line.

    Line breaks are written as escapes so that the value survives being
    nested at any indentation level.
    """
    escaped = value
    for raw, replacement in _STRING_ESCAPES:
        escaped = escaped.replace(raw, replacement)
    return [f"'{escaped}'"]


def format_bicep_key(key: str) -> str:
    """Format an object key, quoting it when it is not a plain identifier."""
    if _IDENTIFIER_PATTERN.match(key):
        return key
    return format_bicep_string(key)[0]


def format_bicep_value(value: Any) -> List[str]:
    """Format a value as Bicep lines, two spaces per nesting level.

    Args:
        value: A JSON-compatible value (dict, list, str, int, float, bool or None).

    Returns:
        The lines of the literal. Scalars and empty collections are one line.
    """
    if value is None:
        return ["null"]
    if isinstance(value, bool):
        return ["true" if value else "false"]
    if isinstance(value, (int, float)):
        return [str(value)]
    if isinstance(value, str):
        return format_bicep_string(value)
    if isinstance(value, (list, tuple)):
        if not value:
            return ["[]"]
        lines = ["["]
        for item in value:
            lines.extend(INDENT + line for line in format_bicep_value(item))
        lines.append("]")
        return lines
    if isinstance(value, dict):
        if not value:
            return ["{}"]
        lines = ["{"]
        for key, item in value.items():
            lines.extend(format_bicep_property(key, item, INDENT))
        lines.append("}")
        return lines
    return format_bicep_string(str(value))


def format_bicep_property(key: str, value: Any, indent: str = "") -> List[str]:
    """Format a 'key: value' object property, continuation lines indented with it."""
    value_lines = format_bicep_value(value)
    lines = [f"{indent}{format_bicep_key(key)}: {value_lines[0]}"]
    lines.extend(indent + line for line in value_lines[1:])
    return lines
