"""Config file discovery and loading.

Config is layered: the global file in the home directory is read first and
the first project file found is merged over it. Files may be JSONC.
"""

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from .defaults import CONFIG_FILENAMES, GLOBAL_CONFIG_DIR
from .main_config import Config

logger = logging.getLogger(__name__)

# A JSON string literal, or a // or /* */ comment. Strings are matched first
# so comment markers inside them (URLs, globs) survive.
_JSONC_TOKEN = re.compile(
    r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/',
    re.DOTALL,
)


def strip_jsonc_comments(content: str) -> str:
    """Remove // and /* */ comments outside of string literals."""
    return _JSONC_TOKEN.sub(lambda m: m.group(1) or "", content)


def load_config_file(path: Path) -> dict[str, Any] | None:
    """Read one config file.

    Returns:
        The parsed object, or None when the file is missing, unreadable, not
        valid JSON(C) or not a JSON object. Problems are logged as warnings.
    """
    if not path.is_file():
        return None

    try:
        data = json.loads(strip_jsonc_comments(path.read_text()))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to load config from %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        logger.warning("Failed to load config from %s: top level is not an object", path)
        return None
    return data


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge; override wins, nested objects merge key by key. Inputs are not modified."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_configs(current, value)
        else:
            merged[key] = value
    return merged


def config_paths(project_root: Path, home: Path) -> list[Path]:
    """Candidate files, lowest precedence first."""
    global_path = home / GLOBAL_CONFIG_DIR / CONFIG_FILENAMES[0]
    return [global_path] + [project_root / name for name in CONFIG_FILENAMES]


def load_config(project_root: Path | None = None, home: Path | None = None) -> Config:
    """Load and validate the layered config.

    Args:
        project_root: Directory holding invocation.jsonc / invocation.json,
            defaults to the working directory
        home: Directory holding .invocation/, defaults to the user's home

    Raises:
        pydantic.ValidationError: If the merged values are invalid
    """
    global_path, *project_paths = config_paths(
        project_root or Path.cwd(), home or Path.home()
    )

    data = load_config_file(global_path) or {}
    for path in project_paths:
        project_data = load_config_file(path)
        if project_data is not None:
            logger.debug("Using project config %s", path)
            data = merge_configs(data, project_data)
            break

    return Config.model_validate(data)


@lru_cache(maxsize=1)
def get_config(project_root: Path | None = None) -> Config:
    """load_config, cached. Call get_config.cache_clear() to reload."""
    return load_config(project_root)
