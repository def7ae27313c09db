"""Discover the modules a module references."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Set

from scripts.utils import is_test_path

from .bicep_literal import is_remote_reference, iter_module_references
from .errors import ReadmeValidationError
from .utils import find_module_root

logger = logging.getLogger(__name__)

LOCAL_REFERENCE = "Local reference"
REMOTE_REFERENCE = "Remote reference"


@dataclass(frozen=True)
class CrossReference:
    reference: str
    kind: str


def _is_test_file(path: Path, root: Path) -> bool:
    return path.name.endswith(".test.bicep") or is_test_path(path, root)


def _is_within(path: Path, directory: Path) -> bool:
    return path == directory or directory in path.parents


def find_cross_references(template_dir: Path) -> List[CrossReference]:
    """Collect the modules referenced by the non-test Bicep files of a module.

    Registry and template spec references are remote references. Relative
    references leaving the module directory are local references, shown
    relative to the folder containing the 'avm' root. Child modules inside the
    module directory are not listed.

    Args:
        template_dir: The module directory.

    Returns:
        Unique references, local ones first, each group sorted.

    Raises:
        ReadmeValidationError: If a Bicep file cannot be read.
    """
    root = template_dir.resolve()
    module_root = find_module_root(root)
    display_root = module_root.parent if module_root is not None else root.parent

    found: Set[CrossReference] = set()
    for path in sorted(root.rglob("*.bicep")):
        if _is_test_file(path, root):
            continue
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ReadmeValidationError(f"Could not read module file: {e}", source=path) from e

        for _, reference, _ in iter_module_references(source):
            if is_remote_reference(reference):
                found.add(CrossReference(reference, REMOTE_REFERENCE))
                continue
            target = (path.parent / reference).resolve()
            if _is_within(target, root):
                continue
            target_dir = target.parent if target.suffix else target
            try:
                display = target_dir.relative_to(display_root).as_posix()
            except ValueError:
                display = target_dir.as_posix()
            found.add(CrossReference(display, LOCAL_REFERENCE))

    logger.debug(f"Found {len(found)} cross-referenced module(s) in {root}")
    return sorted(found, key=lambda r: (r.kind != LOCAL_REFERENCE, r.reference.lower()))
