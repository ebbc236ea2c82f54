"""Default configuration values."""

DEFAULT_APP_NAME = "invocation_app"

# Maximum number of model calls a single invocation may make
DEFAULT_MAX_LLM_CALLS = 500

# Config file names, searched in the project root then the home directory
CONFIG_FILENAMES = ["invocation.jsonc", "invocation.json"]
GLOBAL_CONFIG_DIR = ".invocation"

# Built-in plugins that can be enabled by name from the config file
BUILTIN_PLUGIN_NAMES = ["logging", "tool_confirmation"]
