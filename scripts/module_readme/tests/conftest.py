"""Shared pytest fixtures for module_readme tests."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import pytest

from ..compiler import JsonTemplateLoader
from ..config import ReadmeConfig
from ..errors import ReadmeValidationError
from ..links import DocumentationLinkResolver

RESOURCES_DIR = Path(__file__).parent / "resources"

MODULE_PATH = Path("avm") / "res" / "storage" / "storage-account"

EXAMPLE_METADATA = {
    "defaults": {
        "metadata": {
            "name": "Using only defaults",
            "description": "This instance deploys the module with the minimum set of required parameters.",
        }
    },
    "max": {
        "metadata": {
            "name": "Using large parameter set",
            "description": "This instance deploys the module with most of its features enabled.",
        }
    },
}

EXPORTED_FUNCTIONS = [
    {
        "namespace": "__bicep",
        "members": {
            "buildName": {
                "parameters": [{"type": "string", "name": "prefix"}],
                "output": {"type": "string", "value": "[format('{0}-x', parameters('prefix'))]"},
                "metadata": {"__bicep_export!": True, "description": "Builds a resource name."},
            }
        },
    }
]


class FakeCompiler(JsonTemplateLoader):
    """Serves compiled example metadata from memory; .json templates are read from disk.

    Args:
        examples: Compiled example templates keyed by example folder name.
        failing: Example folder names whose compilation fails.
    """

    def __init__(self, examples: Optional[Dict[str, Dict[str, Any]]] = None, failing: Iterable[str] = ()):
        self.examples = examples if examples is not None else {}
        self.failing = set(failing)
        self.compiled = []

    def compile(self, path: Path) -> Dict[str, Any]:
        self.compiled.append(path)
        if path.suffix == ".json":
            return super().compile(path)
        if path.parent.name in self.failing:
            raise ReadmeValidationError("Bicep build failed with exit code 1", source=path)
        return self.examples.get(path.parent.name, {})


def make_parameter(description: Optional[str], type_name: str = "string", **extra: Any) -> Dict[str, Any]:
    """Build a compiled parameter node."""
    node: Dict[str, Any] = {"type": type_name, **extra}
    if description is not None:
        node.setdefault("metadata", {})["description"] = description
    return node


def make_template(
    parameters: Optional[Dict[str, Any]] = None,
    resources: Optional[Any] = None,
    outputs: Optional[Dict[str, Any]] = None,
    definitions: Optional[Dict[str, Any]] = None,
    functions: Optional[list] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a minimal compiled template."""
    template: Dict[str, Any] = {
        "$schema": "https://schema.management.azure.com/schemas/2019-04-01/deploymentTemplate.json#",
        "contentVersion": "1.0.0.0",
        "metadata": metadata if metadata is not None else {"name": "Test Module", "description": "A test module."},
        "parameters": parameters or {},
        "resources": resources or [],
        "outputs": outputs or {},
    }
    if definitions is not None:
        template["definitions"] = definitions
    if functions is not None:
        template["functions"] = functions
    return template


def create_module_dir(parent_dir: Path, template: Dict[str, Any], examples: Iterable[str] = ()) -> Path:
    """Helper to create a module directory with a compiled main.json and example files.

    Args:
        parent_dir: Directory the 'avm' folder is created in.
        template: The compiled template written to main.json.
        examples: Names of test resource files (without '.test.bicep') copied
            to tests/e2e/<name>/main.test.bicep.

    Returns:
        Path to the created module directory.
    """
    module_dir = parent_dir / MODULE_PATH
    module_dir.mkdir(parents=True, exist_ok=True)
    (module_dir / "main.json").write_text(json.dumps(template, indent=2), encoding="utf-8")

    for name in examples:
        example_dir = module_dir / "tests" / "e2e" / name
        example_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy(RESOURCES_DIR / f"{name}.test.bicep", example_dir / "main.test.bicep")

    return module_dir


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_template():
    """Sample compiled template."""
    return json.loads((RESOURCES_DIR / "sample_template.json").read_text(encoding="utf-8"))


@pytest.fixture
def defaults_example():
    """Example deployment file using only the required parameters."""
    return (RESOURCES_DIR / "defaults.test.bicep").read_text(encoding="utf-8")


@pytest.fixture
def module_dir(temp_dir, sample_template):
    """Create a complete module directory with two usage examples."""
    return create_module_dir(temp_dir, sample_template, examples=["defaults", "max"])


@pytest.fixture
def template_file(module_dir):
    return module_dir / "main.json"


@pytest.fixture
def fake_compiler():
    return FakeCompiler(EXAMPLE_METADATA)


@pytest.fixture
def offline_config():
    """Configuration that never touches the network."""
    return ReadmeConfig(check_links=False)


@pytest.fixture
def offline_resolver():
    resolver = DocumentationLinkResolver(enabled=False)
    yield resolver
    resolver.close()
