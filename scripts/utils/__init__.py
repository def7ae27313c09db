"""Shared utilities for scripts."""

from .paths import (
    find_module_templates,
    get_default_targets,
    get_repo_root,
    is_test_path,
    normalize_targets,
)

__all__ = [
    "find_module_templates",
    "get_default_targets",
    "get_repo_root",
    "is_test_path",
    "normalize_targets",
]
