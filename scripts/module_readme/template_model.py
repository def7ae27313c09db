"""Read-only object model of a compiled template."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from .constants import EXCLUDED_RESOURCE_TYPES
from .type_resolver import ParameterDefinition, TypeResolver

logger = logging.getLogger(__name__)

DEPLOYMENT_RESOURCE_TYPE = "Microsoft.Resources/deployments"
EXPORT_METADATA_KEY = "__bicep_export!"


@dataclass(frozen=True)
class ResourceType:
    """A resource type and API version deployed by the template."""

    type: str
    api_version: str

    @property
    def provider(self) -> str:
        """The resource provider namespace, e.g. 'Microsoft.KeyVault'."""
        return self.type.split("/", 1)[0]

    @property
    def type_path(self) -> List[str]:
        """The type segments below the provider, e.g. ['vaults', 'accessPolicies']."""
        return self.type.split("/")[1:]


@dataclass
class OutputDefinition:
    name: str
    type_name: str
    description: str = ""


@dataclass
class FunctionDefinition:
    name: str
    description: str = ""
    namespace: str = ""


@dataclass
class TemplateModel:
    """Parameters, resources, outputs, exported functions and metadata of a compiled template."""

    parameters: Dict[str, ParameterDefinition] = field(default_factory=dict)
    resources: List[ResourceType] = field(default_factory=list)
    outputs: Dict[str, OutputDefinition] = field(default_factory=dict)
    functions: List[FunctionDefinition] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> Optional[str]:
        return self.metadata.get("name")

    @property
    def description(self) -> Optional[str]:
        return self.metadata.get("description")

    @property
    def required_parameters(self) -> Set[str]:
        """Names of the top-level parameters in the 'Required' category."""
        return {name for name, parameter in self.parameters.items() if parameter.is_required}

    @classmethod
    def from_template(cls, template: Mapping[str, Any]) -> "TemplateModel":
        """Build the model from a compiled template.

        Args:
            template: The compiled template as loaded from JSON.

        Returns:
            The template model.
        """
        definitions = template.get("definitions", {}) or {}
        resolver = TypeResolver(definitions)

        parameters = {
            name: resolver.resolve_parameter(name, node)
            for name, node in (template.get("parameters", {}) or {}).items()
        }

        outputs = {}
        for name, node in (template.get("outputs", {}) or {}).items():
            output = resolver.resolve_parameter(name, node)
            outputs[name] = OutputDefinition(name, output.type_name, (output.description or "").strip())

        model = cls(
            parameters=parameters,
            resources=collect_resource_types(template.get("resources", [])),
            outputs=outputs,
            functions=collect_exported_functions(template.get("functions", [])),
            metadata=dict(template.get("metadata", {}) or {}),
        )
        logger.debug(
            f"Template model: {len(model.parameters)} parameters, {len(model.resources)} resource types, "
            f"{len(model.outputs)} outputs, {len(model.functions)} exported functions"
        )
        return model


def _iter_resources(resources: Any) -> Iterable[Mapping[str, Any]]:
    # languageVersion 2.0 templates key resources by symbolic name
    if isinstance(resources, Mapping):
        return resources.values()
    return resources or []


def collect_resource_types(resources: Any) -> List[ResourceType]:
    """Flatten resources, including those of nested deployments, into sorted unique types.

    Existing-resource references and the deployment wrappers themselves are skipped.

    Args:
        resources: The 'resources' list or symbolic-name mapping of a template.

    Returns:
        Resource types sorted by type then API version, without duplicates.
    """
    found: Set[ResourceType] = set()

    def visit(items: Any) -> None:
        for resource in _iter_resources(items):
            if not isinstance(resource, Mapping) or resource.get("existing"):
                continue
            resource_type = resource.get("type", "")
            if resource_type == DEPLOYMENT_RESOURCE_TYPE:
                nested = (resource.get("properties") or {}).get("template")
                if isinstance(nested, Mapping):
                    visit(nested.get("resources", []))
            if not resource_type or resource_type in EXCLUDED_RESOURCE_TYPES:
                continue
            found.add(ResourceType(resource_type, resource.get("apiVersion", "")))

    visit(resources)
    return sorted(found, key=lambda r: (r.type.lower(), r.api_version))


def collect_exported_functions(functions: Any) -> List[FunctionDefinition]:
    """Collect the user-defined functions marked for export.

    Args:
        functions: The 'functions' list of a compiled template.

    Returns:
        Exported functions sorted by name.
    """
    exported = []
    for namespace in functions or []:
        namespace_name = namespace.get("namespace", "")
        for name, member in (namespace.get("members", {}) or {}).items():
            metadata = member.get("metadata", {}) or {}
            if not metadata.get(EXPORT_METADATA_KEY):
                continue
            exported.append(FunctionDefinition(name, (metadata.get("description") or "").strip(), namespace_name))
    return sorted(exported, key=lambda f: f.name.lower())
