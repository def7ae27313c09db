"""Constants and shared configuration for the module_readme package."""

# Section markers, in the order they appear in a module README
TITLE_SECTION = "Title"
NAVIGATION_SECTION = "Navigation"
RESOURCE_TYPES_SECTION = "Resource Types"
USAGE_EXAMPLES_SECTION = "Usage examples"
PARAMETERS_SECTION = "Parameters"
FUNCTIONS_SECTION = "Functions"
OUTPUTS_SECTION = "Outputs"
CROSS_REFERENCES_SECTION = "Cross-referenced modules"
NOTES_SECTION = "Notes"
DATA_COLLECTION_SECTION = "Data Collection"

SECTION_ORDER = [
    TITLE_SECTION,
    NAVIGATION_SECTION,
    RESOURCE_TYPES_SECTION,
    USAGE_EXAMPLES_SECTION,
    PARAMETERS_SECTION,
    FUNCTIONS_SECTION,
    OUTPUTS_SECTION,
    CROSS_REFERENCES_SECTION,
    NOTES_SECTION,
    DATA_COLLECTION_SECTION,
]

# Sections the generator owns. Notes is hand-written and never regenerated.
GENERATED_SECTIONS = [name for name in SECTION_ORDER if name != NOTES_SECTION]

SECTION_HEADING_PREFIX = "## "

# Rendered in place of an empty table
EMPTY_SECTION_PLACEHOLDER = "_None_"

# Parameter description categories, in rendering precedence
CATEGORY_ORDER = ["Required", "Conditional", "Optional", "Generated"]
REQUIRED_CATEGORY = "Required"

# Resource types never listed in the Resource Types table
EXCLUDED_RESOURCE_TYPES = {"Microsoft.Resources/deployments"}

# Module reference defaults
DEFAULT_REGISTRY_PREFIX = "br/public:"
MODULE_ROOT_FOLDER = "avm"
VERSION_PLACEHOLDER = "<version>"

# Documentation links
DEFAULT_DOCS_BASE_URL = "https://learn.microsoft.com/en-us/azure/templates"
DEFAULT_LINK_TIMEOUT = 10.0
DEFAULT_LINK_RETRIES = 2
DEFAULT_RETRY_BACKOFF = 0.5

# Usage examples
DEFAULT_EXAMPLE_PATTERN = "tests/e2e/*/main.test.bicep"
DEFAULT_PINNED_FIRST = ["defaults"]
DEFAULT_PINNED_LAST = ["waf-aligned"]
DEFAULT_MAX_WORKERS = 4
DEPLOYMENT_PARAMETERS_SCHEMA = "https://schema.management.azure.com/schemas/2019-04-01/deploymentParameters.json#"
REQUIRED_PARAMETERS_COMMENT = "// Required parameters"
NON_REQUIRED_PARAMETERS_COMMENT = "// Non-required parameters"

# Data collection notice
DEFAULT_TELEMETRY_PARAMETER = "enableTelemetry"
DEFAULT_DATA_COLLECTION_URL = "https://aka.ms/avm/static/telemetry"
DATA_COLLECTION_NOTICE = (
    "The software may collect information about you and your use of the software and send it to Microsoft. "
    "Microsoft may use this information to provide services and improve our products and services. "
    "You may turn off the telemetry as described in the [repository](https://aka.ms/avm/telemetry). "
    "There are also some features in the software that may enable you and Microsoft to collect data from "
    "users of your applications. If you use these features, you must comply with applicable law, including "
    "providing appropriate notices to users of your applications together with a copy of Microsoft's privacy "
    "statement. Our privacy statement is located at <https://go.microsoft.com/fwlink/?LinkID=824704>. "
    "You can learn more about data collection and use in the help documentation and our privacy statement. "
    "Your use of the software operates as your consent to these practices."
)

DEFAULT_BICEP_EXECUTABLE = "bicep"

# Exit codes
EXIT_SUCCESS = 0  # All files in sync (check mode) or successfully updated (fix mode)
EXIT_DIFF_DETECTED = 1  # Diffs detected in check mode
EXIT_ERROR = 2  # Validation error or failure to compile/write
