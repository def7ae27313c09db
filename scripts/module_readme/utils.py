"""Text and templating helpers shared by the README renderers."""

import re
from pathlib import Path
from typing import Any, List, Optional

from jinja2 import Environment, FileSystemLoader

from .constants import MODULE_ROOT_FOLDER
from .section_merge import escape_headings, github_anchor

# Words kept upper case when formatting titles
ACRONYMS = ["API", "ARM", "AVM", "CI", "CD", "ID", "UI", "URL", "VM", "WAF"]

TEMPLATE_DIR = Path(__file__).parent / "templates"

_environment = None


def table_cell(text: str) -> str:
    """Flatten text onto one line and escape it for use inside a Markdown table cell."""
    return " ".join(line.strip() for line in (text or "").splitlines() if line.strip()).replace("|", "\\|")


def get_environment() -> Environment:
    """Return the Jinja2 environment loading the fragment templates."""
    global _environment
    if _environment is None:
        _environment = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        _environment.filters["anchor"] = github_anchor
        _environment.filters["cell"] = table_cell
        _environment.filters["prose"] = escape_headings
    return _environment


def render_fragment(template_name: str, **context: Any) -> List[str]:
    """Render a fragment template into lines, without trailing blank lines.

    Args:
        template_name: File name under the templates directory.
        **context: Template variables.

    Returns:
        The rendered lines.
    """
    rendered = get_environment().get_template(template_name).render(**context)
    return rendered.rstrip("\n").split("\n")


def format_title(title: str) -> str:
    """Format a title from snake_case, kebab-case or camelCase to Title Case.

    Args:
        title: The title to format.

    Returns:
        Formatted title in Title Case with spaces.
    """
    # First, handle camelCase by inserting spaces before capitals
    title = re.sub(r"([a-z])([A-Z])", r"\1 \2", title)

    # Replace separators with spaces
    title = title.replace("_", " ").replace("-", " ")

    formatted_words = []
    for word in title.split():
        if word.upper() in ACRONYMS:
            formatted_words.append(word.upper())
        else:
            formatted_words.append(word.capitalize())

    return " ".join(formatted_words)


def to_camel_case(name: str) -> str:
    """Convert a kebab-case or snake_case name to camelCase.

    Args:
        name: The name to convert, e.g. 'storage-account'.

    Returns:
        The camelCase identifier, e.g. 'storageAccount'.
    """
    words = [word for word in re.split(r"[-_\s.]+", name) if word]
    if not words:
        return name
    return words[0][0].lower() + words[0][1:] + "".join(word[0].upper() + word[1:] for word in words[1:])


def find_module_root(directory: Path) -> Optional[Path]:
    """Return the nearest ancestor folder named 'avm' of a directory, or None."""
    directory = directory.resolve()
    for candidate in (directory, *directory.parents):
        if candidate.name == MODULE_ROOT_FOLDER:
            return candidate
    return None


def module_path_of(template_dir: Path) -> str:
    """Return the module path of a template directory, e.g. 'res/storage/storage-account'.

    The path is relative to the nearest 'avm' ancestor folder; without one the
    directory name is used.
    """
    template_dir = template_dir.resolve()
    root = find_module_root(template_dir)
    if root is None or root == template_dir:
        return template_dir.name
    return template_dir.relative_to(root).as_posix()
