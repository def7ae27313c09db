"""Command-line interface for the module_readme package."""

import argparse
import logging
import sys
from pathlib import Path

from scripts.module_readme.config import load_config
from scripts.module_readme.constants import EXIT_DIFF_DETECTED, EXIT_ERROR, EXIT_SUCCESS, GENERATED_SECTIONS
from scripts.module_readme.errors import ReadmeValidationError
from scripts.module_readme.writer import ReadmeWriter
from scripts.utils import find_module_templates, normalize_targets

logger = logging.getLogger(__name__)


def validate_config_file(file_path: str) -> Path:
    """Validate that the configuration file exists.

    Args:
        file_path: String path to the YAML configuration file.

    Returns:
        Path: Validated Path object to the file.

    Raises:
        argparse.ArgumentTypeError: If validation fails.
    """
    path = Path(file_path)
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"Configuration file '{file_path}' does not exist")
    return path


def parse_arguments(argv=None):
    """Parse and validate command-line arguments.

    Returns:
        argparse.Namespace: Parsed and validated arguments.
    """
    parser = argparse.ArgumentParser(
        description="Generate README.md documentation for Bicep/ARM modules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modes:
  Check mode (default):
    Validates that READMEs are up-to-date without modifying files.
    Exits with code 0 if all files are in sync, code 1 if diffs are detected.

  Fix mode (--fix):
    Updates or creates README files to match expected content.

  Validation errors (uncategorized parameter descriptions, broken examples)
  exit with code 2 in both modes.

Examples:
  # Check if a module README is in sync (default, no changes made):
  python -m scripts.module_readme avm/res/storage/storage-account

  # Fix every module below a folder:
  python -m scripts.module_readme avm/res/storage --fix

  # Regenerate only the parameters section, without probing documentation links:
  python -m scripts.module_readme avm/res/key-vault/vault/main.bicep --section Parameters --no-link-check --fix
        """,
    )
    parser.add_argument(
        "targets",
        nargs="*",
        help="Template files or directories searched for main.bicep/main.json (default: the avm folder)",
    )

    parser.add_argument(
        "-o",
        "--readme",
        type=Path,
        help="Output path for the generated README.md (default: README.md next to the template). "
        "Only valid with a single template.",
    )

    parser.add_argument(
        "--section",
        action="append",
        choices=GENERATED_SECTIONS,
        dest="sections",
        help="Regenerate only this section (repeatable, default: all sections)",
    )

    parser.add_argument("--config", type=validate_config_file, help="YAML file overriding generation settings")

    parser.add_argument(
        "--no-link-check",
        action="store_true",
        help="Do not check documentation links or fetch the data collection notice",
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")

    parser.add_argument(
        "--fix",
        action="store_true",
        help="Write/update README files. Without this flag, only checks for diffs (exits 1 if found).",
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the CLI."""
    args = parse_arguments(argv)

    # Configure logging at application entry point
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    try:
        config = load_config(args.config)
        if args.no_link_check:
            config.check_links = False
        templates = find_module_templates(normalize_targets(args.targets))
    except (OSError, ValueError) as e:
        logger.error(str(e))
        sys.exit(EXIT_ERROR)

    if not templates:
        logger.error("No module templates found")
        sys.exit(EXIT_ERROR)
    if args.readme and len(templates) > 1:
        logger.error(f"--readme requires a single template, found {len(templates)}")
        sys.exit(EXIT_ERROR)

    has_diff = False
    for template in templates:
        try:
            with ReadmeWriter(template, readme_file=args.readme, config=config) as writer:
                has_diff = writer.generate(fix=args.fix, sections=args.sections) or has_diff
        except ReadmeValidationError as e:
            logger.error(f"Validation failed for {template}: {e}")
            sys.exit(EXIT_ERROR)
        except (OSError, ValueError) as e:
            logger.error(f"Could not generate README for {template}: {e}")
            sys.exit(EXIT_ERROR)

    # Exit with appropriate code based on the mode and diff status
    if not has_diff:
        logger.info("All README files are in sync.")
        sys.exit(EXIT_SUCCESS)
    elif args.fix:
        logger.info("README files updated successfully.")
        sys.exit(EXIT_SUCCESS)
    else:
        logger.error("README files are out of sync. Run with --fix to update them.")
        sys.exit(EXIT_DIFF_DETECTED)
