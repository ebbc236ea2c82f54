"""
Configuration module for the invocation engine.

Exports the configuration models and loader functions.
"""

from .defaults import BUILTIN_PLUGIN_NAMES, DEFAULT_APP_NAME, DEFAULT_MAX_LLM_CALLS
from .loader import get_config, load_config, load_config_file, merge_configs, strip_jsonc_comments
from .main_config import Config
from .permissions_config import Level, PermissionsConfig
from .run_config import RunConfig, StreamingMode

__all__ = [
    # Constants
    "DEFAULT_APP_NAME",
    "DEFAULT_MAX_LLM_CALLS",
    "BUILTIN_PLUGIN_NAMES",
    # Config models
    "Config",
    "RunConfig",
    "StreamingMode",
    "PermissionsConfig",
    "Level",
    # Loader functions
    "load_config",
    "get_config",
    "load_config_file",
    "merge_configs",
    "strip_jsonc_comments",
]
