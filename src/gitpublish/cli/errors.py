"""
Standardized error handling and exit codes for the git-publish CLI.

This module provides consistent error messaging with actionable guidance
and maps publish errors onto exit codes.
"""

from enum import IntEnum

from rich.console import Console

from gitpublish.core.errors import (
    ConfigError,
    FilesystemError,
    InvalidBranchError,
    PublishError,
    RemoteUnreachableError,
)

console = Console()


class ExitCode(IntEnum):
    """Standard exit codes for git-publish operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Remote, filesystem or other runtime failure."""

    USER_ERROR = 2
    """Configuration or input error (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "No branch configured",
        ...     solution="git-publish push --branch gh-pages",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def report_publish_error(error: PublishError) -> ExitCode:
    """
    Print a publish error with guidance and return the exit code to use.

    Args:
        error: The error raised by the pipeline

    Returns:
        USER_ERROR for configuration and branch-name problems, GENERAL_ERROR otherwise
    """
    if isinstance(error, InvalidBranchError):
        print_error(
            str(error),
            reason="Branch names must be valid git ref names",
            solution="--branch gh-pages",
        )
        return ExitCode.USER_ERROR

    if isinstance(error, ConfigError):
        print_error(
            str(error),
            reason="Settings come from options, GIT_PUBLISH_* env vars and .git-publish.json",
            solution="git-publish config  # to see the resolved settings",
        )
        return ExitCode.USER_ERROR

    if isinstance(error, RemoteUnreachableError):
        print_error(
            str(error),
            reason="Check that the URI is correct and your credentials can read it",
            solution=f"git ls-remote {error.uri}",
        )
        return ExitCode.GENERAL_ERROR

    if isinstance(error, FilesystemError):
        print_error(
            str(error),
            reason="The checkout may be half-prepared; rerunning resets it",
        )
        return ExitCode.GENERAL_ERROR

    print_error(str(error))
    return ExitCode.GENERAL_ERROR


__all__ = [
    "ExitCode",
    "print_error",
    "report_publish_error",
]
