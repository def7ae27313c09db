"""Usage example discovery and rendering.

Every example deployment file of a module is shown three ways: as a Bicep
module invocation, as a JSON parameters file and as a Bicep parameters file.
All three list the parameters required by the module first, then the rest,
each group in alphabetical order.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .bicep_format import INDENT, format_bicep_property, format_bicep_value
from .bicep_literal import extract_module_parameters
from .compiler import TemplateCompiler, compile_examples
from .config import ReadmeConfig
from .constants import (
    DEPLOYMENT_PARAMETERS_SCHEMA,
    EMPTY_SECTION_PLACEHOLDER,
    MODULE_ROOT_FOLDER,
    NON_REQUIRED_PARAMETERS_COMMENT,
    REQUIRED_PARAMETERS_COMMENT,
    VERSION_PLACEHOLDER,
)
from .errors import ReadmeValidationError
from .section_merge import github_anchor
from .utils import format_title, module_path_of, render_fragment, to_camel_case

logger = logging.getLogger(__name__)

EXAMPLE_FILE_SUFFIX = ".test.bicep"
MAIN_FILE_STEM = "main"


@dataclass
class UsageExample:
    """A parsed example deployment."""

    path: Path
    title: str
    description: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)


def discover_examples(
    template_dir: Path,
    pattern: str,
    pinned_first: Sequence[str] = (),
    pinned_last: Sequence[str] = (),
) -> List[Path]:
    """Find the example files of a module and put them in display order.

    Examples whose folder is pinned first or last keep the pinned order; the
    rest are sorted alphabetically by folder name.

    Args:
        template_dir: The module directory.
        pattern: Glob pattern relative to the module directory.
        pinned_first: Folder names shown before all other examples.
        pinned_last: Folder names shown after all other examples.

    Returns:
        The example file paths.
    """

    def rank(path: Path) -> Tuple[int, int, str]:
        name = path.parent.name
        if name in pinned_first:
            return (0, list(pinned_first).index(name), "")
        if name in pinned_last:
            return (2, list(pinned_last).index(name), "")
        return (1, 0, name.lower())

    return sorted((path for path in template_dir.glob(pattern) if path.is_file()), key=rank)


def example_title(compiled: Mapping[str, Any], path: Path) -> str:
    """Derive an example's display title.

    The compiled metadata name wins. Otherwise the file name without its
    extension is used, or the containing folder name when the file is a
    generic 'main' file, formatted as a title.
    """
    name = (compiled.get("metadata") or {}).get("name")
    if name:
        return name

    stem = path.name
    if stem.endswith(EXAMPLE_FILE_SUFFIX):
        stem = stem[: -len(EXAMPLE_FILE_SUFFIX)]
    else:
        stem = path.stem
    if stem == MAIN_FILE_STEM:
        stem = path.parent.name
    return format_title(stem)


def split_parameters(
    parameters: Mapping[str, Any], required: Iterable[str]
) -> Tuple[List[Tuple[str, Any]], List[Tuple[str, Any]]]:
    """Split example parameters into required and non-required, each sorted by name."""
    required = set(required)
    ordered = sorted(parameters.items(), key=lambda item: (item[0].lower(), item[0]))
    return (
        [item for item in ordered if item[0] in required],
        [item for item in ordered if item[0] not in required],
    )


class UsageExampleRenderer:
    """Renders the 'Usage examples' section of a module README."""

    def __init__(
        self,
        template_dir: Path,
        required_parameters: Iterable[str],
        compiler: TemplateCompiler,
        config: Optional[ReadmeConfig] = None,
    ):
        """Initialize the renderer.

        Args:
            template_dir: The module directory containing the examples.
            required_parameters: Names of the module's required parameters.
            compiler: Compiler used to read the examples' metadata.
            config: Generation settings.
        """
        self.template_dir = template_dir
        self.required_parameters = set(required_parameters)
        self.compiler = compiler
        self.config = config or ReadmeConfig()
        self.module_path = module_path_of(template_dir)
        self.module_id = to_camel_case(self.module_path.split("/")[-1])

    @property
    def module_reference(self) -> str:
        return f"{self.config.registry_prefix}{MODULE_ROOT_FOLDER}/{self.module_path}:{VERSION_PLACEHOLDER}"

    def load_examples(self) -> List[UsageExample]:
        """Discover, compile and parse every example of the module.

        Raises:
            ReadmeValidationError: If an example fails to compile or parse.
        """
        paths = discover_examples(
            self.template_dir,
            self.config.example_pattern,
            self.config.pinned_examples_first,
            self.config.pinned_examples_last,
        )
        compiled = compile_examples(self.compiler, paths, self.config.max_workers)

        examples = []
        for path in paths:
            try:
                source = path.read_text(encoding="utf-8")
            except OSError as e:
                raise ReadmeValidationError(f"Could not read example: {e}", source=path) from e
            metadata = compiled[path].get("metadata") or {}
            examples.append(
                UsageExample(
                    path=path,
                    title=example_title(compiled[path], path),
                    description=(metadata.get("description") or "").strip(),
                    parameters=extract_module_parameters(source, path, self.template_dir),
                )
            )
        logger.debug(f"Loaded {len(examples)} usage example(s) for {self.module_path}")
        return examples

    def render_bicep_module(self, parameters: Mapping[str, Any]) -> List[str]:
        """Render an example as a Bicep module invocation."""
        lines = [
            f"module {self.module_id} '{self.module_reference}' = {{",
            f"{INDENT}name: '{self.module_id}Deployment'",
        ]
        if not parameters:
            lines.append(f"{INDENT}params: {{}}")
        else:
            lines.append(f"{INDENT}params: {{")
            body_indent = INDENT * 2
            required, others = split_parameters(parameters, self.required_parameters)
            for comment, group in ((REQUIRED_PARAMETERS_COMMENT, required), (NON_REQUIRED_PARAMETERS_COMMENT, others)):
                if not group:
                    continue
                lines.append(f"{body_indent}{comment}")
                for name, value in group:
                    lines.extend(format_bicep_property(name, value, body_indent))
            lines.append(f"{INDENT}}}")
        lines.append("}")
        return lines

    def render_json_parameters(self, parameters: Mapping[str, Any]) -> List[str]:
        """Render an example as a JSON deployment parameters file."""
        lines = [
            "{",
            f'{INDENT}"$schema": "{DEPLOYMENT_PARAMETERS_SCHEMA}",',
            f'{INDENT}"contentVersion": "1.0.0.0",',
        ]
        if not parameters:
            lines.append(f'{INDENT}"parameters": {{}}')
            lines.append("}")
            return lines

        lines.append(f'{INDENT}"parameters": {{')
        body_indent = INDENT * 2
        required, others = split_parameters(parameters, self.required_parameters)
        remaining = len(required) + len(others)
        for comment, group in ((REQUIRED_PARAMETERS_COMMENT, required), (NON_REQUIRED_PARAMETERS_COMMENT, others)):
            if not group:
                continue
            lines.append(f"{body_indent}{comment}")
            for name, value in group:
                remaining -= 1
                entry = json.dumps({"value": value}, indent=2, ensure_ascii=False).split("\n")
                entry[0] = f"{json.dumps(name)}: {entry[0]}"
                if remaining:
                    entry[-1] += ","
                lines.extend(body_indent + line for line in entry)
        lines.append(f"{INDENT}}}")
        lines.append("}")
        return lines

    def render_bicep_parameters(self, parameters: Mapping[str, Any]) -> List[str]:
        """Render an example as a Bicep parameters file."""
        lines = [f"using '{self.module_reference}'"]
        if not parameters:
            return lines

        lines.append("")
        required, others = split_parameters(parameters, self.required_parameters)
        for comment, group in ((REQUIRED_PARAMETERS_COMMENT, required), (NON_REQUIRED_PARAMETERS_COMMENT, others)):
            if not group:
                continue
            lines.append(comment)
            for name, value in group:
                value_lines = format_bicep_value(value)
                lines.append(f"param {name} = {value_lines[0]}")
                lines.extend(value_lines[1:])
        return lines

    def render(self, examples: Optional[Sequence[UsageExample]] = None) -> List[str]:
        """Render the section body.

        Args:
            examples: Parsed examples; discovered and loaded when not given.

        Returns:
            The section lines, or '_None_' when the module has no examples.
        """
        if examples is None:
            examples = self.load_examples()
        if not examples:
            logger.warning(f"No usage examples found for {self.module_path}")
            return [EMPTY_SECTION_PLACEHOLDER]

        context = []
        for index, example in enumerate(examples, start=1):
            heading = f"Example {index}: _{example.title}_"
            context.append(
                {
                    "heading": heading,
                    "title": example.title,
                    "anchor": github_anchor(heading),
                    "description": example.description,
                    "bicep_module": self.render_bicep_module(example.parameters),
                    "json_parameters": self.render_json_parameters(example.parameters),
                    "bicep_parameters": self.render_bicep_parameters(example.parameters),
                }
            )
        return render_fragment(
            "usage_examples.md.j2",
            module_reference=self.module_reference,
            examples=context,
        )
