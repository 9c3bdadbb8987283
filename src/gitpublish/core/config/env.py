"""Environment file loading.

GIT_PUBLISH_* settings (and git credentials helpers' variables) may live in
.env files. Precedence:

  os.environ (pre-existing) > project .env.local > project .env > user .env

A .env file never overrides a variable already exported in the shell, so CI
can always force a value.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

from .loader import get_xdg_config_home


def read_env_file(path: Path) -> dict[str, str]:
    """Parse one .env file, dropping keys without values."""
    if not path.exists():
        return {}
    return {str(k): str(v) for k, v in dotenv_values(path).items() if k and v is not None}


def default_env_paths(project_dir: Path) -> list[Path]:
    """Env files in ascending precedence order."""
    return [
        get_xdg_config_home() / "git-publish" / ".env",
        project_dir / ".env",
        project_dir / ".env.local",
    ]


def load_layered_env(
    *,
    project_dir: Path | None = None,
    env_paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """Load env files into os.environ without touching pre-existing variables.

    Args:
        project_dir: base directory for project env files (defaults to cwd)
        env_paths: explicit env files, lowest precedence first

    Returns:
        The variables that were set by this call
    """
    if env_paths is None:
        env_paths = default_env_paths(project_dir or Path.cwd())

    loaded: dict[str, str] = {}
    for path in env_paths:
        for key, value in read_env_file(Path(path)).items():
            # Later files override earlier ones, never the shell.
            if key not in os.environ or key in loaded:
                loaded[key] = value
                os.environ[key] = value
    return loaded
