"""Generate README.md documentation for Bicep/ARM modules.

This package reads a module's compiled template object model and regenerates
the sections of its README (resource types, usage examples, parameters,
outputs...) while preserving hand-written sections such as Notes.
"""

from scripts.module_readme.errors import ReadmeValidationError
from scripts.module_readme.template_model import TemplateModel
from scripts.module_readme.writer import ReadmeWriter, generate

__all__ = [
    "ReadmeValidationError",
    "ReadmeWriter",
    "TemplateModel",
    "generate",
]
