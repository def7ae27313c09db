"""Entry point for running module_readme as a module.

Usage:
    python -m scripts.module_readme avm/res/storage/storage-account
    python -m scripts.module_readme avm/res/storage/storage-account --fix
"""

from .cli import main

if __name__ == "__main__":
    main()
