"""
git-publish CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from gitpublish import __version__
from gitpublish.cli import publish
from gitpublish.cli.errors import ExitCode

# Help panel names for command grouping
PANEL_STAGES = "Publish Stages"
PANEL_INFO = "Inspect"

app = typer.Typer(
    name="git-publish",
    help="Publish generated content to a branch of a git repository",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # GitPython logs every command it runs at DEBUG.
    logging.getLogger("git").setLevel(level)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    git-publish - publish generated content to a git branch.

    A publish run has four stages, each depending on the one before:
    reset -> copy -> commit -> push. Running a stage runs its predecessors.

    Quick Start:
        git-publish push --branch gh-pages --content build/site

    Settings come from (highest first): options, GIT_PUBLISH_* env vars,
    .git-publish.json, ~/.config/git-publish/config.json. Without --repo-uri
    the project's "origin" remote is used.
    """
    setup_logging(debug)
    ctx.obj = {"debug": debug}


app.command(name="reset", rich_help_panel=PANEL_STAGES)(publish.reset)
app.command(name="copy", rich_help_panel=PANEL_STAGES)(publish.copy)
app.command(name="commit", rich_help_panel=PANEL_STAGES)(publish.commit)
app.command(name="push", rich_help_panel=PANEL_STAGES)(publish.push)
app.command(name="publish", rich_help_panel=PANEL_STAGES, help="Alias for push.")(publish.push)
app.command(name="config", rich_help_panel=PANEL_INFO)(publish.show_config)


@app.command(rich_help_panel=PANEL_INFO)
def version() -> None:
    """Show git-publish version and exit."""
    console.print(f"git-publish version {__version__}")
    raise typer.Exit(ExitCode.SUCCESS)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
