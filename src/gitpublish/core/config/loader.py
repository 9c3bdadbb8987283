"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars < explicit overrides
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from gitpublish.core.errors import ConfigError

from .models import DEFAULT_COMMIT_MESSAGE, DEFAULT_REPO_DIR, PublishConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".git-publish.json"

# Env var -> config key
ENV_OVERRIDES = {
    "GIT_PUBLISH_REPO_URI": "repo_uri",
    "GIT_PUBLISH_REFERENCE_REPO_URI": "reference_repo_uri",
    "GIT_PUBLISH_BRANCH": "branch",
    "GIT_PUBLISH_REPO_DIR": "repo_dir",
    "GIT_PUBLISH_COMMIT_MESSAGE": "commit_message",
    "GIT_PUBLISH_PRESERVE": "preserve",
    "GIT_PUBLISH_SIGN": "sign",
}


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """Get path to ~/.config/git-publish/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "git-publish" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Project directory (defaults to current directory)

    Returns:
        Path to .git-publish.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / PROJECT_CONFIG_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, everything else is replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 20}})
        {'a': 1, 'b': {'x': 10, 'y': 20}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON config file.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON object, or None if the file doesn't exist

    Raises:
        ConfigError: If the file can't be read or isn't a JSON object
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Failed to parse config at {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config at {path} must be a JSON object")
    return data


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply GIT_PUBLISH_* environment variable overrides.

    Env vars override all config files. GIT_PUBLISH_PRESERVE is a comma
    separated pattern list; GIT_PUBLISH_SIGN accepts true/false/1/0.
    """
    result = config_dict.copy()

    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None or value == "":
            continue
        if key == "sign":
            lowered = value.strip().lower()
            if lowered in ("true", "1", "yes"):
                result[key] = True
            elif lowered in ("false", "0", "no"):
                result[key] = False
            else:
                logger.warning("Invalid %s value %r, ignoring", env_name, value)
            continue
        result[key] = value

    return result


def get_default_config() -> dict[str, Any]:
    """Get hardcoded default configuration."""
    return {
        "repo_dir": DEFAULT_REPO_DIR,
        "commit_message": DEFAULT_COMMIT_MESSAGE,
        "preserve": [],
        "contents": [],
    }


def load_config(
    project_dir: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> PublishConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Explicit overrides (command-line options)
        2. Environment variables (GIT_PUBLISH_*)
        3. Project config (.git-publish.json)
        4. User config (~/.config/git-publish/config.json)
        5. Hardcoded defaults

    Args:
        project_dir: Project directory to load .git-publish.json from (defaults to cwd)
        overrides: Values that win over every other layer; None entries are ignored

    Returns:
        Validated PublishConfig instance

    Raises:
        ConfigError: If a config file is malformed or the merged config is invalid
    """
    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    if overrides:
        merged = deep_merge(merged, {k: v for k, v in overrides.items() if v is not None})

    try:
        return PublishConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
