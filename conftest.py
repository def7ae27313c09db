import sys
from pathlib import Path

import pytest


@pytest.hookimpl(tryfirst=True)
def pytest_sessionstart():
    """Make the 'scripts' package importable from the tests without installing the project"""
    repo_root = str(Path(__file__).resolve().parent)
    if repo_root not in sys.path:
        print(f'Adding repository root "{repo_root}" to the sys path so tests can import "scripts"')
        sys.path.append(repo_root)
