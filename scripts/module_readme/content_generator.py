"""README section content generator for Bicep/ARM modules."""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .compiler import JsonTemplateLoader, TemplateCompiler
from .config import ReadmeConfig
from .constants import DATA_COLLECTION_NOTICE, EMPTY_SECTION_PLACEHOLDER, NAVIGATION_SECTION
from .links import DocumentationLinkResolver, documentation_candidates
from .parameters import ParameterRenderer
from .references import find_cross_references
from .section_merge import section_headings
from .template_model import TemplateModel
from .usage_examples import UsageExampleRenderer
from .utils import format_title, module_path_of, render_fragment

logger = logging.getLogger(__name__)


class ReadmeContentGenerator:
    """Generates the content of each README section from a template model.

    Every ``generate_*`` method returns the body of one section as a list of
    lines, without its ``## `` heading.
    """

    def __init__(
        self,
        model: TemplateModel,
        template_file: Path,
        config: Optional[ReadmeConfig] = None,
        link_resolver: Optional[DocumentationLinkResolver] = None,
        compiler: Optional[TemplateCompiler] = None,
    ):
        """Initialize the generator.

        Args:
            model: The compiled template model.
            template_file: Path to the module's main template.
            config: Generation settings.
            link_resolver: Resolver for documentation links and the data collection notice.
                Links are not checked when omitted.
            compiler: Compiler for the usage example files.
        """
        self.model = model
        self.template_file = template_file
        self.template_dir = template_file.parent
        self.config = config or ReadmeConfig()
        self.link_resolver = link_resolver or DocumentationLinkResolver(enabled=False)
        self.compiler = compiler or JsonTemplateLoader()
        self.module_path = module_path_of(self.template_dir)

    @property
    def has_functions(self) -> bool:
        return bool(self.model.functions)

    @property
    def has_telemetry(self) -> bool:
        return self.config.telemetry_parameter in self.model.parameters

    def generate_title(self) -> List[str]:
        """Generate the title block: '# Name `[module/path]`' and the module description."""
        title = self.model.name or format_title(self.template_dir.resolve().name)
        return render_fragment(
            "title.md.j2",
            title=title,
            module_path=self.module_path,
            description=(self.model.description or "").strip(),
        )

    def generate_resource_types(self) -> List[str]:
        """Generate the table of deployed resource types with links to their reference documentation."""
        if not self.model.resources:
            logger.warning(f"Template {self.template_file} deploys no resources")
            return [EMPTY_SECTION_PLACEHOLDER]

        resources = []
        for resource_type in self.model.resources:
            url = None
            if resource_type.api_version:
                url = self.link_resolver.resolve(documentation_candidates(resource_type, self.config.docs_base_url))
            resources.append(
                {"type": resource_type.type, "api_version": resource_type.api_version, "url": url}
            )
        return render_fragment("resource_types.md.j2", resources=resources)

    def generate_usage_examples(self) -> List[str]:
        renderer = UsageExampleRenderer(
            self.template_dir,
            self.model.required_parameters,
            self.compiler,
            self.config,
        )
        return renderer.render()

    def generate_parameters(self) -> List[str]:
        return ParameterRenderer(self.model.parameters).render()

    def generate_functions(self) -> List[str]:
        if not self.model.functions:
            return [EMPTY_SECTION_PLACEHOLDER]
        return render_fragment("functions.md.j2", functions=self.model.functions)

    def generate_outputs(self) -> List[str]:
        if not self.model.outputs:
            logger.warning(f"Template {self.template_file} declares no outputs")
            return [EMPTY_SECTION_PLACEHOLDER]
        outputs = sorted(self.model.outputs.values(), key=lambda o: (o.name.lower(), o.name))
        return render_fragment("outputs.md.j2", outputs=outputs)

    def generate_cross_references(self) -> List[str]:
        references = find_cross_references(self.template_dir)
        if not references:
            return [EMPTY_SECTION_PLACEHOLDER]
        return render_fragment("cross_references.md.j2", references=references)

    def generate_data_collection(self) -> Optional[List[str]]:
        """Generate the data collection notice.

        The notice is fetched from the configured URL when links are checked,
        otherwise the bundled text is used.

        Returns:
            The notice lines, or None when fetching failed and the existing
            section should be left as it is.
        """
        url = self.config.data_collection_url
        if self.link_resolver.enabled and url:
            text = self.link_resolver.fetch_text(url)
            if text is None:
                logger.warning("Data collection notice unavailable, leaving the section untouched")
                return None
            return text.strip().splitlines()
        return [DATA_COLLECTION_NOTICE]

    def generate_navigation(self, document: Sequence[str]) -> List[str]:
        """Generate a link list of the document's sections.

        Args:
            document: The document with every other section already merged.

        Returns:
            One bullet per '##' section, Navigation itself excluded.
        """
        headings = [heading for heading in section_headings(document) if heading != NAVIGATION_SECTION]
        if not headings:
            return [EMPTY_SECTION_PLACEHOLDER]
        return render_fragment("navigation.md.j2", headings=headings)
