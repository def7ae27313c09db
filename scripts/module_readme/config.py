"""Configuration for README generation."""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

import yaml

from .constants import (
    DEFAULT_BICEP_EXECUTABLE,
    DEFAULT_DATA_COLLECTION_URL,
    DEFAULT_DOCS_BASE_URL,
    DEFAULT_EXAMPLE_PATTERN,
    DEFAULT_LINK_RETRIES,
    DEFAULT_LINK_TIMEOUT,
    DEFAULT_MAX_WORKERS,
    DEFAULT_PINNED_FIRST,
    DEFAULT_PINNED_LAST,
    DEFAULT_REGISTRY_PREFIX,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_TELEMETRY_PARAMETER,
)


@dataclass
class ReadmeConfig:
    """Settings shared by all renderers of a generation run."""

    registry_prefix: str = DEFAULT_REGISTRY_PREFIX
    docs_base_url: str = DEFAULT_DOCS_BASE_URL
    check_links: bool = True
    link_timeout: float = DEFAULT_LINK_TIMEOUT
    link_retries: int = DEFAULT_LINK_RETRIES
    retry_backoff: float = DEFAULT_RETRY_BACKOFF
    data_collection_url: Optional[str] = DEFAULT_DATA_COLLECTION_URL
    telemetry_parameter: str = DEFAULT_TELEMETRY_PARAMETER
    example_pattern: str = DEFAULT_EXAMPLE_PATTERN
    pinned_examples_first: List[str] = field(default_factory=lambda: list(DEFAULT_PINNED_FIRST))
    pinned_examples_last: List[str] = field(default_factory=lambda: list(DEFAULT_PINNED_LAST))
    max_workers: int = DEFAULT_MAX_WORKERS
    bicep_executable: str = DEFAULT_BICEP_EXECUTABLE


def load_config(path: Optional[Path] = None) -> ReadmeConfig:
    """Load configuration from a YAML file, falling back to defaults.

    Args:
        path: Optional path to a YAML mapping overriding ReadmeConfig fields.

    Returns:
        The resulting configuration.

    Raises:
        ValueError: If the file is not a mapping or contains unknown keys.
    """
    if path is None:
        return ReadmeConfig()

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration must be a YAML mapping: {path}")

    known = {f.name for f in fields(ReadmeConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")

    for key in ("pinned_examples_first", "pinned_examples_last"):
        if key in data and not (
            isinstance(data[key], list) and all(isinstance(item, str) for item in data[key])
        ):
            raise ValueError(f"'{key}' must be a list of strings: {path}")

    return ReadmeConfig(**data)
