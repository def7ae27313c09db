"""Render parameter definitions as Markdown tables and detail lists."""

import logging
from typing import Any, List, Mapping, Sequence, Tuple

from .bicep_format import format_bicep_value
from .constants import CATEGORY_ORDER, EMPTY_SECTION_PLACEHOLDER
from .section_merge import escape_headings, github_anchor
from .type_resolver import (
    ANY_OTHER_PROPERTY,
    DiscriminatedShape,
    ObjectShape,
    ParameterDefinition,
    strip_category,
    validate_categories,
)
from .utils import table_cell

logger = logging.getLogger(__name__)

PARAMETER_TABLE_HEADER = ["| Parameter | Type | Description |", "| :-- | :-- | :-- |"]
VARIANT_TABLE_HEADER = ["| Variant | Description |", "| :-- | :-- |"]
CODE_BLOCK_LANGUAGE = "Bicep"
LIST_INDENT = "  "


def parameter_anchor(qualified_name: str) -> str:
    return github_anchor(f"Parameter: `{qualified_name}`")


def variant_anchor(qualified_variant: str) -> str:
    return github_anchor(f"Variant: `{qualified_variant}`")


def is_arm_expression(value: Any) -> bool:
    """Whether a value is an ARM template expression such as '[resourceGroup().location]'."""
    return isinstance(value, str) and value.startswith("[") and value.endswith("]") and not value.startswith("[[")


def order_parameters(parameters: Mapping[str, ParameterDefinition]) -> List[Tuple[str, List[ParameterDefinition]]]:
    """Group parameters by category.

    Groups follow the fixed category precedence, then custom categories
    alphabetically. Parameters are alphabetical within a group, with the
    schema for undeclared properties last.

    Args:
        parameters: Parameters keyed by name.

    Returns:
        (category, parameters) pairs in rendering order.
    """
    groups: dict = {}
    for parameter in parameters.values():
        groups.setdefault(parameter.category, []).append(parameter)

    known = [category for category in CATEGORY_ORDER if category in groups]
    custom = sorted(category for category in groups if category not in CATEGORY_ORDER)
    return [
        (category, sorted(groups[category], key=lambda p: (p.name == ANY_OTHER_PROPERTY, p.name.lower(), p.name)))
        for category in known + custom
    ]


def _join_blocks(blocks: Sequence[List[str]]) -> List[str]:
    lines: List[str] = []
    for block in blocks:
        if not block:
            continue
        if lines:
            lines.append("")
        lines.extend(block)
    return lines


class ParameterRenderer:
    """Renders a parameter tree into category tables followed by detailed entries.

    Nested object properties, array item properties and discriminated union
    variants are rendered recursively under dotted, parent-qualified names.
    """

    def __init__(self, parameters: Mapping[str, ParameterDefinition]):
        self.parameters = parameters

    def render(self) -> List[str]:
        """Render the Parameters section body.

        Returns:
            The section lines, or '_None_' when there are no parameters.

        Raises:
            ReadmeValidationError: If any description lacks a category label.
        """
        if not self.parameters:
            logger.warning("Template declares no parameters")
            return [EMPTY_SECTION_PLACEHOLDER]

        validate_categories(self.parameters)
        return self._render_level(self.parameters, "")

    def _render_level(self, parameters: Mapping[str, ParameterDefinition], prefix: str) -> List[str]:
        ordered = order_parameters(parameters)
        blocks = [self._render_table(category, members, prefix) for category, members in ordered]
        for _, members in ordered:
            for parameter in members:
                blocks.extend(self._render_parameter(parameter, prefix))
        return _join_blocks(blocks)

    def _render_table(self, category: str, parameters: Sequence[ParameterDefinition], prefix: str) -> List[str]:
        lines = [f"**{category} parameters**", "", *PARAMETER_TABLE_HEADER]
        for parameter in parameters:
            anchor = parameter_anchor(f"{prefix}{parameter.name}")
            lines.append(
                f"| [`{parameter.name}`](#{anchor}) | {parameter.type_name} | {table_cell(parameter.summary)} |"
            )
        return lines

    def _render_parameter(self, parameter: ParameterDefinition, prefix: str) -> List[List[str]]:
        qualified = f"{prefix}{parameter.name}"
        blocks = [[f"### Parameter: `{qualified}`"]]
        if parameter.details:
            blocks.append(escape_headings(parameter.details).splitlines())
        blocks.append(self._render_attributes(parameter))

        nested = parameter.nested
        if isinstance(nested, ObjectShape):
            blocks.append(self._render_level(nested.children, f"{qualified}."))
        elif isinstance(nested, DiscriminatedShape):
            blocks.append(self._render_variants(nested, qualified))
        return blocks

    def _render_attributes(self, parameter: ParameterDefinition) -> List[str]:
        lines = [
            f"- Required: {'Yes' if parameter.is_required else 'No'}",
            f"- Type: {parameter.type_name}",
        ]
        nested = parameter.nested
        if isinstance(nested, DiscriminatedShape):
            lines.append(f"- Discriminator: `{nested.property_name}`")
        if parameter.has_default:
            lines.extend(self._render_value("Default", parameter.default))
        if parameter.allowed_values is not None:
            lines.extend(self._render_value("Allowed", parameter.allowed_values))
        for label, value in (
            ("MinValue", parameter.min_value),
            ("MaxValue", parameter.max_value),
            ("MinLength", parameter.min_length),
            ("MaxLength", parameter.max_length),
        ):
            if value is not None:
                lines.append(f"- {label}: {value}")
        if parameter.has_example:
            lines.extend(self._render_example(parameter.example))
        return lines

    def _render_block(self, label: str, lines: Sequence[str]) -> List[str]:
        return [
            f"- {label}:",
            f"{LIST_INDENT}```{CODE_BLOCK_LANGUAGE}",
            *(f"{LIST_INDENT}{line}" if line else "" for line in lines),
            f"{LIST_INDENT}```",
        ]

    def _render_value(self, label: str, value: Any) -> List[str]:
        """Render a value inline when it fits on one line, otherwise as a code block."""
        if is_arm_expression(value):
            return [f"- {label}: `{value}`"]
        formatted = format_bicep_value(value)
        if len(formatted) == 1:
            return [f"- {label}: `{formatted[0]}`"]
        return self._render_block(label, formatted)

    def _render_example(self, example: Any) -> List[str]:
        if isinstance(example, str):
            lines = example.strip("\n").splitlines()
            if len(lines) == 1:
                return [f"- Example: `{lines[0].strip()}`"]
            return self._render_block("Example", lines)
        return self._render_value("Example", example)

    def _render_variants(self, union: DiscriminatedShape, qualified: str) -> List[str]:
        table = ["The available variants are:", "", *VARIANT_TABLE_HEADER]
        blocks: List[List[str]] = [table]
        for variant in union.variants.values():
            qualified_variant = f"{qualified}.{union.property_name}-{variant.name}"
            summary = strip_category(variant.description)
            summary = summary.splitlines()[0].strip() if summary else ""
            table.append(f"| [`{variant.name}`](#{variant_anchor(qualified_variant)}) | {table_cell(summary)} |")

            blocks.append([f"### Variant: `{qualified_variant}`"])
            details = strip_category(variant.description)
            if details:
                blocks.append(escape_headings(details).splitlines())
            blocks.append([f"To use this variant, set the property `{union.property_name}` to `{variant.name}`."])
            if variant.shape.children:
                blocks.append(self._render_level(variant.shape.children, f"{qualified_variant}."))
        return _join_blocks(blocks)
