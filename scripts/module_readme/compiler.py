"""Template compilers turning Bicep or ARM JSON files into a template object model.

The README generator only ever consumes compiled templates. Compilation is a
collaborator injected into the writer, so tests can supply fixture object
models without a Bicep toolchain on the machine.
"""

import json
import logging
import subprocess
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Sequence

from .constants import DEFAULT_BICEP_EXECUTABLE, DEFAULT_MAX_WORKERS
from .errors import ReadmeValidationError

logger = logging.getLogger(__name__)


class TemplateCompiler(ABC):
    """Compiles a template file into its JSON object model."""

    @abstractmethod
    def compile(self, path: Path) -> Dict[str, Any]:
        """Compile a template.

        Args:
            path: Path to the template file.

        Returns:
            The compiled template as a mapping.

        Raises:
            ReadmeValidationError: If the file cannot be compiled.
        """


class JsonTemplateLoader(TemplateCompiler):
    """Loads templates that are already compiled to ARM JSON."""

    def compile(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                template = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ReadmeValidationError(f"Could not load template: {e}", source=path) from e
        if not isinstance(template, dict):
            raise ReadmeValidationError("Template is not a JSON object", source=path)
        return template


class BicepCliCompiler(JsonTemplateLoader):
    """Compiles .bicep files with the Bicep CLI; .json files are loaded as they are."""

    def __init__(self, executable: str = DEFAULT_BICEP_EXECUTABLE):
        self.executable = executable

    def compile(self, path: Path) -> Dict[str, Any]:
        if path.suffix.lower() == ".json":
            return super().compile(path)

        logger.debug(f"Compiling {path} with {self.executable}")
        try:
            result = subprocess.run(
                [self.executable, "build", str(path), "--stdout"],
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise ReadmeValidationError(
                f"Bicep executable '{self.executable}' not found; install the Bicep CLI", source=path
            ) from e
        except subprocess.CalledProcessError as e:
            raise ReadmeValidationError(
                f"Bicep build failed with exit code {e.returncode}",
                problems=[line for line in (e.stderr or "").splitlines() if line.strip()],
                source=path,
            ) from e

        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ReadmeValidationError(f"Bicep build produced invalid JSON: {e}", source=path) from e


def compile_examples(
    compiler: TemplateCompiler,
    paths: Sequence[Path],
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Dict[Path, Dict[str, Any]]:
    """Compile example files concurrently.

    Examples are independent of each other, so they are compiled in a thread
    pool and gathered into a lookup table before any rendering starts.

    Args:
        compiler: The compiler to use.
        paths: Example files to compile.
        max_workers: Maximum number of concurrent compilations.

    Returns:
        Compiled templates keyed by example path.

    Raises:
        ReadmeValidationError: If any example fails to compile, naming the file.
    """
    if not paths:
        return {}

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {path: executor.submit(compiler.compile, path) for path in paths}

    compiled: Dict[Path, Dict[str, Any]] = {}
    for path, future in futures.items():
        try:
            compiled[path] = future.result()
        except ReadmeValidationError:
            raise
        except Exception as e:
            raise ReadmeValidationError(f"Failed to compile example: {e}", source=path) from e
    logger.debug(f"Compiled {len(compiled)} example file(s)")
    return compiled
