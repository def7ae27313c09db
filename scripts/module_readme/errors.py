"""Errors raised while generating module READMEs."""

from pathlib import Path
from typing import List, Optional, Sequence


class ReadmeValidationError(ValueError):
    """A template or example is invalid and no README can be generated from it.

    Attributes:
        problems: One entry per offending item (parameter name, file location, ...).
        source: The file the problems were found in, if known.
    """

    def __init__(self, message: str, problems: Optional[Sequence[str]] = None, source: Optional[Path] = None):
        self.problems: List[str] = list(problems or [])
        self.source = source
        details = message
        if source is not None:
            details = f"{details} [{source}]"
        if self.problems:
            details = details + "\n" + "\n".join(f"  - {problem}" for problem in self.problems)
        super().__init__(details)
