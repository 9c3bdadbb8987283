"""
Configuration models and loading.

This module provides Pydantic models for git-publish configuration with
multi-layer merging: defaults < user < project < env vars < overrides.
"""

from .env import load_layered_env
from .loader import (
    apply_env_overrides,
    deep_merge,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import (
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_REPO_DIR,
    ContentSpec,
    PublishConfig,
)

__all__ = [
    # Models
    "ContentSpec",
    "PublishConfig",
    "DEFAULT_COMMIT_MESSAGE",
    "DEFAULT_REPO_DIR",
    # Loader functions
    "apply_env_overrides",
    "deep_merge",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
    "load_layered_env",
]
