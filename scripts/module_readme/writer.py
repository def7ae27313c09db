"""README writer for Bicep/ARM modules."""

import difflib
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from scripts.module_readme.compiler import BicepCliCompiler, TemplateCompiler
from scripts.module_readme.config import ReadmeConfig
from scripts.module_readme.constants import (
    CROSS_REFERENCES_SECTION,
    DATA_COLLECTION_SECTION,
    FUNCTIONS_SECTION,
    GENERATED_SECTIONS,
    NAVIGATION_SECTION,
    OUTPUTS_SECTION,
    PARAMETERS_SECTION,
    RESOURCE_TYPES_SECTION,
    SECTION_HEADING_PREFIX,
    SECTION_ORDER,
    TITLE_SECTION,
    USAGE_EXAMPLES_SECTION,
)
from scripts.module_readme.content_generator import ReadmeContentGenerator
from scripts.module_readme.links import DocumentationLinkResolver
from scripts.module_readme.section_merge import (
    detect_newline,
    join_document,
    merge_header,
    merge_section,
    remove_section,
    section_headings,
    split_document,
)
from scripts.module_readme.template_model import TemplateModel
from scripts.module_readme.type_resolver import validate_categories

logger = logging.getLogger(__name__)

README_FILE_NAME = "README.md"


def section_marker(name: str) -> str:
    return f"{SECTION_HEADING_PREFIX}{name}"


def _later_markers(name: str) -> List[str]:
    index = SECTION_ORDER.index(name)
    return [section_marker(later) for later in SECTION_ORDER[index + 1:]]


def _join_readme(document: List[str], regenerated: Sequence[str], existing: Optional[str], newline: str) -> str:
    """Join the merged lines back into README text.

    A regenerated last section ends with exactly one newline. A hand-written
    last section keeps its trailing lines as they were.
    """
    headings = section_headings(document)
    last_section = headings[-1] if headings else TITLE_SECTION
    if last_section in regenerated:
        trimmed = list(document)
        while trimmed and not trimmed[-1].strip():
            trimmed.pop()
        return join_document(trimmed, newline)
    content = join_document(document, newline)
    if existing and not existing.endswith(newline):
        return content[: -len(newline)]
    return content


class ReadmeWriter:
    """Writes the README of a Bicep/ARM module, regenerating only the sections it owns.

    Hand-written content such as the Notes section is left exactly as it is.
    """

    def __init__(
        self,
        template_file: Path,
        readme_file: Optional[Path] = None,
        config: Optional[ReadmeConfig] = None,
        compiler: Optional[TemplateCompiler] = None,
        link_resolver: Optional[DocumentationLinkResolver] = None,
    ):
        """Initialize the README writer.

        Args:
            template_file: Path to the module's main template (main.bicep or main.json).
            readme_file: Optional README path (default: README.md next to the template).
            config: Generation settings.
            compiler: Compiler for the template and its examples (default: the Bicep CLI).
            link_resolver: Documentation link resolver (default: built from the config).
        """
        self.template_file = template_file
        self.readme_file = readme_file if readme_file else template_file.parent / README_FILE_NAME
        self.config = config or ReadmeConfig()
        self.compiler = compiler or BicepCliCompiler(self.config.bicep_executable)
        self._owns_resolver = link_resolver is None
        self.link_resolver = link_resolver or DocumentationLinkResolver(
            enabled=self.config.check_links,
            timeout=self.config.link_timeout,
            max_retries=self.config.link_retries,
            retry_backoff=self.config.retry_backoff,
        )

    def __enter__(self) -> "ReadmeWriter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_resolver:
            self.link_resolver.close()

    def _read_file_content(self, file_path: Path) -> Optional[str]:
        """Read content from a file if it exists.

        Args:
            file_path: Path to the file to read.

        Returns:
            File content as string, or None if file doesn't exist.
        """
        if not file_path.exists():
            return None
        try:
            with open(file_path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except OSError as e:
            logger.warning(f"Error reading {file_path}: {e}")
            return None

    def _has_diff(self, expected: str, actual: Optional[str]) -> bool:
        if actual is None:
            return True
        return expected != actual

    def _resolve_sections(self, sections: Optional[Sequence[str]]) -> List[str]:
        if sections is None:
            return list(GENERATED_SECTIONS)
        unknown = [name for name in sections if name not in GENERATED_SECTIONS]
        if unknown:
            raise ValueError(
                f"Unknown section(s): {', '.join(unknown)}. Choose from: {', '.join(GENERATED_SECTIONS)}"
            )
        return [name for name in GENERATED_SECTIONS if name in sections]

    def build(self, sections: Optional[Sequence[str]] = None) -> str:
        """Build the README content without writing it.

        The existing README is loaded and each requested section is merged
        into it in canonical order. Navigation is computed last from the
        resulting headings.

        Args:
            sections: Names of the sections to regenerate (default: all).

        Returns:
            The complete README content.

        Raises:
            ReadmeValidationError: If the template or an example is invalid.
            ValueError: If an unknown section is requested.
        """
        requested = self._resolve_sections(sections)

        logger.debug(f"Compiling template: {self.template_file}")
        model = TemplateModel.from_template(self.compiler.compile(self.template_file))
        validate_categories(model.parameters)

        generator = ReadmeContentGenerator(model, self.template_file, self.config, self.link_resolver, self.compiler)
        renderers: Dict[str, Callable[[], List[str]]] = {
            RESOURCE_TYPES_SECTION: generator.generate_resource_types,
            USAGE_EXAMPLES_SECTION: generator.generate_usage_examples,
            PARAMETERS_SECTION: generator.generate_parameters,
            FUNCTIONS_SECTION: generator.generate_functions,
            OUTPUTS_SECTION: generator.generate_outputs,
            CROSS_REFERENCES_SECTION: generator.generate_cross_references,
        }

        existing = self._read_file_content(self.readme_file)
        newline = detect_newline(existing)
        document = split_document(existing, newline)

        for name in requested:
            marker = section_marker(name)
            if name == TITLE_SECTION:
                document = merge_header(document, generator.generate_title())
            elif name == NAVIGATION_SECTION:
                continue
            elif name == FUNCTIONS_SECTION and not generator.has_functions:
                document = remove_section(document, marker)
            elif name == DATA_COLLECTION_SECTION:
                if not generator.has_telemetry:
                    document = remove_section(document, marker)
                    continue
                fragment = generator.generate_data_collection()
                if fragment is not None:
                    document = merge_section(document, fragment, marker, _later_markers(name))
            else:
                logger.debug(f"Generating section: {name}")
                document = merge_section(document, renderers[name](), marker, _later_markers(name))

        if NAVIGATION_SECTION in requested:
            navigation = generator.generate_navigation(document)
            document = merge_section(
                document, navigation, section_marker(NAVIGATION_SECTION), _later_markers(NAVIGATION_SECTION)
            )

        return _join_readme(document, requested, existing, newline)

    def _check_readme_file(self, readme_content: str) -> bool:
        """Check if README matches expected content.

        Args:
            readme_content: The expected README content.

        Returns:
            True if there's a diff, False if content matches.
        """
        actual_content = self._read_file_content(self.readme_file)
        has_diff = self._has_diff(readme_content, actual_content)
        if has_diff:
            logger.warning(f"Out of sync: {self.readme_file}")
            diff = difflib.unified_diff(
                (actual_content or "").splitlines(),
                readme_content.splitlines(),
                fromfile=f"{self.readme_file} (current)",
                tofile=f"{self.readme_file} (expected)",
                lineterm="",
            )
            logger.debug("\n".join(diff))
        return has_diff

    def write(self, readme_content: str) -> None:
        """Write the README content, replacing the file if it exists.

        Args:
            readme_content: The content to write.
        """
        self.readme_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.readme_file, "w", encoding="utf-8", newline="") as f:
            logger.debug(f"Writing README.md to {self.readme_file}")
            f.write(readme_content)
        logger.info(f"README.md generated successfully at {self.readme_file}")

    def generate(self, fix: bool = False, sections: Optional[Sequence[str]] = None) -> bool:
        """Generate the README documentation.

        Args:
            fix: If True, write/update the README file.
                 If False, only check for diffs without writing files.
            sections: Names of the sections to regenerate (default: all).

        Returns:
            True if there are diffs detected, False otherwise.

        Raises:
            ReadmeValidationError: If the template or an example is invalid.
        """
        readme_content = self.build(sections)
        has_diff = self._check_readme_file(readme_content)
        if has_diff and fix:
            self.write(readme_content)
            logger.debug(f"README content length: {len(readme_content)} characters")
        return has_diff


def generate(
    template_path: Path,
    readme_path: Optional[Path] = None,
    sections: Optional[Sequence[str]] = None,
    config: Optional[ReadmeConfig] = None,
    compiler: Optional[TemplateCompiler] = None,
    link_resolver: Optional[DocumentationLinkResolver] = None,
) -> str:
    """Regenerate a module README and write it.

    Args:
        template_path: Path to the module's main template.
        readme_path: Optional README path (default: README.md next to the template).
        sections: Names of the sections to regenerate (default: all).
        config: Generation settings.
        compiler: Template compiler (default: the Bicep CLI).
        link_resolver: Documentation link resolver (default: built from the config).

    Returns:
        The written README content.

    Raises:
        ReadmeValidationError: If the template or an example is invalid.
    """
    with ReadmeWriter(template_path, readme_path, config, compiler, link_resolver) as writer:
        content = writer.build(sections)
        writer.write(content)
    return content
