"""Resolve compiled template types into a tagged shape tree.

Compiled templates describe parameter types with plain JSON schema-like nodes
that may point at reusable ``definitions`` through ``$ref`` and may carry a
``discriminator``. The resolver walks those nodes once and produces
``ParameterDefinition`` objects whose ``shape`` is one of:

- ``PrimitiveShape``: string, int, bool, securestring, object without properties...
- ``ObjectShape``: an object with declared properties (and optionally a schema
  for any other property)
- ``ArrayShape``: an array, with the shape of its items when declared
- ``DiscriminatedShape``: an object whose ``propertyName`` selects one of
  several named variant objects

Renderers consume this tree and never look at the raw template again.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .constants import REQUIRED_CATEGORY
from .errors import ReadmeValidationError

logger = logging.getLogger(__name__)

# A category label is a capitalised word followed by a period, e.g. "Required."
CATEGORY_PATTERN = re.compile(r"^([A-Z][A-Za-z]*)\.(?=\s|$)")

DEFINITION_REF_PREFIX = "#/definitions/"

# Name used for the schema applying to undeclared object properties
ANY_OTHER_PROPERTY = ">Any_other_property<"


def extract_category(description: Optional[str]) -> Optional[str]:
    """Return the category label of a description ('Required', 'Optional', ...), or None."""
    if not description:
        return None
    match = CATEGORY_PATTERN.match(description.strip())
    return match.group(1) if match else None


def strip_category(description: Optional[str]) -> str:
    """Return a description without its leading category label."""
    if not description:
        return ""
    text = description.strip()
    match = CATEGORY_PATTERN.match(text)
    if match:
        text = text[match.end():]
    return text.strip()


@dataclass
class PrimitiveShape:
    type_name: str


@dataclass
class ObjectShape:
    type_name: str = "object"
    properties: Dict[str, "ParameterDefinition"] = field(default_factory=dict)
    additional_properties: Optional["ParameterDefinition"] = None

    @property
    def children(self) -> Dict[str, "ParameterDefinition"]:
        """Declared properties, followed by the schema for any other property if documented."""
        children = dict(self.properties)
        if self.additional_properties is not None:
            children[self.additional_properties.name] = self.additional_properties
        return children


@dataclass
class ArrayShape:
    type_name: str = "array"
    items: Optional["TypeShape"] = None


@dataclass
class Variant:
    name: str
    description: Optional[str]
    shape: ObjectShape


@dataclass
class DiscriminatedShape:
    property_name: str
    variants: Dict[str, Variant] = field(default_factory=dict)
    type_name: str = "object"


TypeShape = Union[PrimitiveShape, ObjectShape, ArrayShape, DiscriminatedShape]


@dataclass
class ParameterDefinition:
    """A parameter, object property or output with its resolved type."""

    name: str
    shape: TypeShape
    description: Optional[str] = None
    nullable: bool = False
    has_default: bool = False
    default: Any = None
    allowed_values: Optional[List[Any]] = None
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    has_example: bool = False
    example: Any = None

    @property
    def type_name(self) -> str:
        return self.shape.type_name

    @property
    def category(self) -> Optional[str]:
        return extract_category(self.description)

    @property
    def is_required(self) -> bool:
        return self.category == REQUIRED_CATEGORY

    @property
    def details(self) -> str:
        """The full description without its category label."""
        return strip_category(self.description)

    @property
    def summary(self) -> str:
        """The first line of the description without its category label."""
        details = self.details
        return details.splitlines()[0].strip() if details else ""

    @property
    def nested(self) -> Optional[Union[ObjectShape, DiscriminatedShape]]:
        """The shape whose members are documented below this parameter, if any.

        Objects with properties and discriminated unions are nested directly;
        arrays are nested through their item shape.
        """
        shape = self.shape
        if isinstance(shape, ArrayShape):
            shape = shape.items
        if isinstance(shape, ObjectShape) and shape.children:
            return shape
        if isinstance(shape, DiscriminatedShape):
            return shape
        return None


class TypeResolver:
    """Turns compiled type nodes into ParameterDefinitions, resolving $ref once."""

    def __init__(self, definitions: Optional[Mapping[str, Any]] = None):
        self.definitions = dict(definitions or {})
        self._stack: List[str] = []

    def _dereference(self, node: Mapping[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
        """Follow $ref chains, letting the referencing node's keys win.

        Returns:
            The merged node and the names of the definitions visited.
        """
        merged = dict(node)
        visited: List[str] = []
        while "$ref" in merged:
            ref = merged.pop("$ref")
            if not isinstance(ref, str) or not ref.startswith(DEFINITION_REF_PREFIX):
                raise ReadmeValidationError(f"Unsupported type reference '{ref}'")
            name = ref[len(DEFINITION_REF_PREFIX):]
            if name not in self.definitions:
                raise ReadmeValidationError(f"Unresolved type reference '{ref}'")
            if name in visited:
                break
            visited.append(name)
            target = dict(self.definitions[name])
            metadata = {**target.get("metadata", {}), **merged.get("metadata", {})}
            target.update(merged)
            if metadata:
                target["metadata"] = metadata
            merged = target
        return merged, visited

    def _shape_of(self, node: Mapping[str, Any]) -> TypeShape:
        resolved, visited = self._dereference(node)
        if any(name in self._stack for name in visited):
            logger.debug(f"Recursive type reference through {visited}, not expanding further")
            return PrimitiveShape(resolved.get("type", "object"))
        self._stack.extend(visited)
        try:
            return self._build_shape(resolved)
        finally:
            del self._stack[len(self._stack) - len(visited):]

    def _build_shape(self, node: Mapping[str, Any]) -> TypeShape:
        if "discriminator" in node:
            return self._build_discriminated(node["discriminator"])

        type_name = node.get("type") or ("object" if "properties" in node else "any")
        additional = node.get("additionalProperties")

        if type_name.lower() in ("object", "secureobject") and ("properties" in node or isinstance(additional, dict)):
            properties = {
                name: self.resolve_parameter(name, child)
                for name, child in node.get("properties", {}).items()
            }
            additional_definition = None
            if isinstance(additional, dict):
                candidate = self.resolve_parameter(ANY_OTHER_PROPERTY, additional)
                # Only documented schemas are rendered
                if candidate.description:
                    additional_definition = candidate
            return ObjectShape(type_name, properties, additional_definition)

        if type_name.lower() == "array":
            items = node.get("items")
            return ArrayShape(type_name, self._shape_of(items) if isinstance(items, dict) else None)

        return PrimitiveShape(type_name)

    def _build_discriminated(self, discriminator: Mapping[str, Any]) -> DiscriminatedShape:
        property_name = discriminator.get("propertyName", "")
        variants: Dict[str, Variant] = {}
        for variant_name, variant_node in discriminator.get("mapping", {}).items():
            resolved, _ = self._dereference(variant_node)
            shape = self._shape_of(variant_node)
            if not isinstance(shape, ObjectShape):
                shape = ObjectShape(shape.type_name)
            description = resolved.get("metadata", {}).get("description")
            variants[variant_name] = Variant(variant_name, description, shape)
        return DiscriminatedShape(property_name, variants)

    def resolve_parameter(self, name: str, node: Mapping[str, Any]) -> ParameterDefinition:
        """Resolve a named type node (parameter, property or output).

        Args:
            name: The parameter or property name.
            node: The compiled type node.

        Returns:
            The resolved ParameterDefinition.
        """
        resolved, _ = self._dereference(node)
        metadata = resolved.get("metadata", {})
        return ParameterDefinition(
            name=name,
            shape=self._shape_of(node),
            description=metadata.get("description"),
            nullable=bool(resolved.get("nullable", False)),
            has_default="defaultValue" in resolved,
            default=resolved.get("defaultValue"),
            allowed_values=resolved.get("allowedValues"),
            min_value=resolved.get("minValue"),
            max_value=resolved.get("maxValue"),
            min_length=resolved.get("minLength"),
            max_length=resolved.get("maxLength"),
            has_example="example" in metadata,
            example=metadata.get("example"),
        )


def _collect_uncategorized(parameters: Mapping[str, ParameterDefinition], prefix: str) -> List[str]:
    problems: List[str] = []
    for name, parameter in parameters.items():
        qualified = f"{prefix}{name}"
        if parameter.category is None:
            problems.append(f"'{qualified}' has no category prefix in its description: {parameter.description!r}")

        nested = parameter.nested
        if isinstance(nested, ObjectShape):
            problems.extend(_collect_uncategorized(nested.children, f"{qualified}."))
        elif isinstance(nested, DiscriminatedShape):
            for variant in nested.variants.values():
                variant_prefix = f"{qualified}.{nested.property_name}-{variant.name}."
                problems.extend(_collect_uncategorized(variant.shape.children, variant_prefix))
    return problems


def validate_categories(parameters: Mapping[str, ParameterDefinition]) -> None:
    """Check that every parameter description, at any depth, starts with a category label.

    Raises:
        ReadmeValidationError: Listing every offending parameter.
    """
    problems = _collect_uncategorized(parameters, "")
    if problems:
        raise ReadmeValidationError(
            "Parameter descriptions must start with a category label "
            "(e.g. 'Required.', 'Optional.', 'Conditional.', 'Generated.')",
            problems=problems,
        )
