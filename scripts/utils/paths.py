"""Path-related utility functions."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

MODULE_TEMPLATE_NAMES = ("main.bicep", "main.json")
TEST_FOLDER_NAMES = {"tests", ".test"}


def get_repo_root() -> Path:
    """Get the repository root directory."""
    return Path(__file__).resolve().parents[2]


def get_default_targets() -> List[Path]:
    """Get the default target directories: the module library root."""
    return [get_repo_root() / "avm"]


def normalize_targets(raw_paths: Sequence[str]) -> List[Path]:
    """Normalize target paths to absolute Path objects.

    Relative paths are resolved against the working directory first, then
    against the repository root.

    Args:
        raw_paths: Sequence of path strings (can be relative or absolute).

    Returns:
        List of normalized absolute Path objects.

    Raises:
        FileNotFoundError: If any specified path does not exist.
    """
    repo_root = get_repo_root()

    if not raw_paths:
        return [target for target in get_default_targets() if target.exists()]

    normalized: List[Path] = []
    for raw in raw_paths:
        candidate = Path(raw)
        if not candidate.is_absolute() and not candidate.exists():
            candidate = repo_root / candidate
        candidate = candidate.resolve()
        if not candidate.exists():
            raise FileNotFoundError(f"Specified path does not exist: {raw}")
        normalized.append(candidate)
    return normalized


def is_test_path(path: Path, root: Path) -> bool:
    """Whether a path below root lies inside a test folder."""
    return any(part in TEST_FOLDER_NAMES for part in path.relative_to(root).parts[:-1])


def find_module_templates(targets: Sequence[Path]) -> List[Path]:
    """Find the main template of every module below the given targets.

    A file target is returned as is. Directories are searched recursively for
    main.bicep, falling back to main.json in directories without one; test
    folders are skipped.

    Args:
        targets: Template files or directories.

    Returns:
        Sorted, unique template paths.
    """
    found = set()
    for target in targets:
        if target.is_file():
            found.add(target)
            continue
        directories = {path.parent for name in MODULE_TEMPLATE_NAMES for path in target.rglob(name)}
        for directory in directories:
            if is_test_path(directory / MODULE_TEMPLATE_NAMES[0], target):
                continue
            for name in MODULE_TEMPLATE_NAMES:
                if (directory / name).is_file():
                    found.add(directory / name)
                    break
    return sorted(found)
