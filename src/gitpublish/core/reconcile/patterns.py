"""
Glob matching for repository-relative paths.

Patterns use git's wildmatch syntax through pathspec:
    *       any run of characters within one path segment
    ?       one character within a path segment
    [abc]   a character class ([!abc] negates)
    **      zero or more whole path segments

A trailing "/" is shorthand for "/**", so "assets/" keeps everything under
assets. Patterns are anchored at the root; use "**/name" to match at any
depth.
"""

import re
from collections.abc import Iterable
from functools import lru_cache

import pathspec

from gitpublish.core.errors import ConfigError


def _anchor(pattern: str) -> str:
    # Bare names would match at any depth under gitignore rules.
    return pattern if pattern.startswith("/") else "/" + pattern


@lru_cache(maxsize=256)
def compile_patterns(patterns: tuple[str, ...]) -> pathspec.PathSpec:
    """
    Compile glob patterns into one matcher for root-relative paths.

    Raises:
        ConfigError: If a pattern is blank or not a valid glob
    """
    for pattern in patterns:
        if not pattern.strip():
            raise ConfigError("Glob patterns cannot be empty")
    try:
        spec = pathspec.PathSpec.from_lines(
            "gitwildmatch", [_anchor(pattern) for pattern in patterns]
        )
    except (ValueError, re.error) as e:
        raise ConfigError(f"Invalid glob pattern in {list(patterns)}: {e}") from e
    return spec


def validate_patterns(patterns: Iterable[str]) -> list[str]:
    """
    Check that every pattern compiles.

    Returns:
        The patterns, unchanged

    Raises:
        ConfigError: If any pattern is invalid
    """
    patterns = list(patterns)
    compile_patterns(tuple(patterns))
    return patterns


def matches(path: str, pattern: str) -> bool:
    """Check whether a relative POSIX path matches a single glob pattern."""
    return compile_patterns((pattern,)).match_file(path)


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    """Check whether a relative POSIX path matches at least one pattern."""
    patterns = tuple(patterns)
    if not patterns:
        return False
    return compile_patterns(patterns).match_file(path)


def is_selected(
    path: str,
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> bool:
    """
    Apply include/exclude filtering to a relative path.

    An empty include list selects everything. Excludes always win.
    """
    include = tuple(include)
    if include and not matches_any(path, include):
        return False
    return not matches_any(path, exclude)
