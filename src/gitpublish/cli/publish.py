"""
git-publish CLI - stage commands.

Each command runs the pipeline up to its stage: `commit` resets, copies and
commits; `push` (or `publish`) runs everything.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from gitpublish.cli.errors import ExitCode, report_publish_error
from gitpublish.core.config import PublishConfig, load_config, load_layered_env
from gitpublish.core.errors import PublishError
from gitpublish.core.pipeline import PublishOutcome, PublishPipeline, Stage, resolve_request

logger = logging.getLogger(__name__)

console = Console()

# Shared options; every stage command accepts the full set.
RepoUriOption = typer.Option(
    None, "--repo-uri", help="Remote to publish to (default: the project's origin remote)"
)
ReferenceRepoUriOption = typer.Option(
    None, "--reference-repo-uri", help="Local repository to borrow objects from"
)
BranchOption = typer.Option(None, "--branch", "-b", help="Branch to publish to")
RepoDirOption = typer.Option(None, "--repo-dir", help="Checkout directory")
PreserveOption = typer.Option(
    None, "--preserve", "-p", help="Glob of checkout files to keep (repeatable)"
)
ContentOption = typer.Option(
    None, "--content", "-c", help="Content to copy as SRC[:INTO] (repeatable)"
)
MessageOption = typer.Option(None, "--message", "-m", help="Commit message")
SignOption = typer.Option(None, "--sign/--no-sign", help="GPG-sign the publish commit")
ProjectDirOption = typer.Option(
    None, "--project-dir", help="Project directory (default: current directory)"
)


def build_overrides(
    repo_uri: Optional[str] = None,
    reference_repo_uri: Optional[str] = None,
    branch: Optional[str] = None,
    repo_dir: Optional[Path] = None,
    preserve: Optional[list[str]] = None,
    content: Optional[list[str]] = None,
    message: Optional[str] = None,
    sign: Optional[bool] = None,
) -> dict[str, Any]:
    """Turn command-line options into config overrides, skipping unset ones."""
    overrides: dict[str, Any] = {
        "repo_uri": repo_uri,
        "reference_repo_uri": reference_repo_uri,
        "branch": branch,
        "repo_dir": repo_dir,
        "commit_message": message,
        "sign": sign,
    }
    if preserve:
        overrides["preserve"] = list(preserve)
    if content:
        overrides["contents"] = list(content)
    return {k: v for k, v in overrides.items() if v is not None}


def _load(project_dir: Optional[Path], overrides: dict[str, Any]) -> tuple[PublishConfig, Path]:
    resolved_dir = (project_dir or Path.cwd()).resolve()
    # Precedence: OS env > project .env.local > project .env > user .env
    load_layered_env(project_dir=resolved_dir)
    return load_config(resolved_dir, overrides=overrides), resolved_dir


def _print_outcome(outcome: PublishOutcome) -> None:
    console.print(f"[green]✓[/green] Checkout ready: {outcome.repo_dir}")
    state = "existing" if outcome.remote_exists else "new orphan"
    console.print(f"  Branch: [cyan]{outcome.branch}[/cyan] ({state})")
    if outcome.files_removed:
        console.print(f"  Removed: {outcome.files_removed} file(s)")
    if outcome.stage >= Stage.COPY:
        console.print(f"  Copied: {outcome.files_copied} file(s)")
    if outcome.stage >= Stage.COMMIT:
        if outcome.commit:
            console.print(f"  Commit: [blue]{outcome.commit[:7]}[/blue]")
        else:
            console.print("  [yellow]Nothing to commit[/yellow]")
    if outcome.stage >= Stage.PUSH:
        if outcome.pushed:
            console.print(f"[green]✓[/green] Pushed [cyan]{outcome.branch}[/cyan]")
        else:
            console.print("  [yellow]Nothing to push[/yellow]")


def run_stage(stage: Stage, project_dir: Optional[Path], overrides: dict[str, Any]) -> None:
    """Run the pipeline up to `stage` and report the outcome or error."""
    try:
        config, resolved_dir = _load(project_dir, overrides)
        outcome = PublishPipeline(config, resolved_dir).run(until=stage)
    except PublishError as e:
        logger.debug("Publish failed", exc_info=True)
        raise typer.Exit(report_publish_error(e))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(ExitCode.SIGINT)

    _print_outcome(outcome)


def reset(
    repo_uri: Optional[str] = RepoUriOption,
    reference_repo_uri: Optional[str] = ReferenceRepoUriOption,
    branch: Optional[str] = BranchOption,
    repo_dir: Optional[Path] = RepoDirOption,
    preserve: Optional[list[str]] = PreserveOption,
    project_dir: Optional[Path] = ProjectDirOption,
) -> None:
    """
    Prepare the checkout for new content.

    Clones or reuses the checkout, moves it onto the publish branch (creating
    an orphan branch if the remote lacks it) and deletes every file that no
    --preserve pattern keeps.
    """
    overrides = build_overrides(
        repo_uri=repo_uri,
        reference_repo_uri=reference_repo_uri,
        branch=branch,
        repo_dir=repo_dir,
        preserve=preserve,
    )
    run_stage(Stage.RESET, project_dir, overrides)


def copy(
    repo_uri: Optional[str] = RepoUriOption,
    reference_repo_uri: Optional[str] = ReferenceRepoUriOption,
    branch: Optional[str] = BranchOption,
    repo_dir: Optional[Path] = RepoDirOption,
    preserve: Optional[list[str]] = PreserveOption,
    content: Optional[list[str]] = ContentOption,
    project_dir: Optional[Path] = ProjectDirOption,
) -> None:
    """Reset the checkout, then copy the configured content into it."""
    overrides = build_overrides(
        repo_uri=repo_uri,
        reference_repo_uri=reference_repo_uri,
        branch=branch,
        repo_dir=repo_dir,
        preserve=preserve,
        content=content,
    )
    run_stage(Stage.COPY, project_dir, overrides)


def commit(
    repo_uri: Optional[str] = RepoUriOption,
    reference_repo_uri: Optional[str] = ReferenceRepoUriOption,
    branch: Optional[str] = BranchOption,
    repo_dir: Optional[Path] = RepoDirOption,
    preserve: Optional[list[str]] = PreserveOption,
    content: Optional[list[str]] = ContentOption,
    message: Optional[str] = MessageOption,
    sign: Optional[bool] = SignOption,
    project_dir: Optional[Path] = ProjectDirOption,
) -> None:
    """Reset, copy, and commit the changes to the publish branch."""
    overrides = build_overrides(
        repo_uri=repo_uri,
        reference_repo_uri=reference_repo_uri,
        branch=branch,
        repo_dir=repo_dir,
        preserve=preserve,
        content=content,
        message=message,
        sign=sign,
    )
    run_stage(Stage.COMMIT, project_dir, overrides)


def push(
    repo_uri: Optional[str] = RepoUriOption,
    reference_repo_uri: Optional[str] = ReferenceRepoUriOption,
    branch: Optional[str] = BranchOption,
    repo_dir: Optional[Path] = RepoDirOption,
    preserve: Optional[list[str]] = PreserveOption,
    content: Optional[list[str]] = ContentOption,
    message: Optional[str] = MessageOption,
    sign: Optional[bool] = SignOption,
    project_dir: Optional[Path] = ProjectDirOption,
) -> None:
    """
    Publish: reset, copy, commit and push.

    Examples:
        git-publish push -b gh-pages -c build/site
        git-publish push -b gh-pages -c build/docs:api -p CNAME -p "**/.nojekyll"
    """
    overrides = build_overrides(
        repo_uri=repo_uri,
        reference_repo_uri=reference_repo_uri,
        branch=branch,
        repo_dir=repo_dir,
        preserve=preserve,
        content=content,
        message=message,
        sign=sign,
    )
    run_stage(Stage.PUSH, project_dir, overrides)


def show_config(
    repo_uri: Optional[str] = RepoUriOption,
    reference_repo_uri: Optional[str] = ReferenceRepoUriOption,
    branch: Optional[str] = BranchOption,
    repo_dir: Optional[Path] = RepoDirOption,
    project_dir: Optional[Path] = ProjectDirOption,
) -> None:
    """Show the resolved configuration, including values inferred from origin."""
    overrides = build_overrides(
        repo_uri=repo_uri,
        reference_repo_uri=reference_repo_uri,
        branch=branch,
        repo_dir=repo_dir,
    )
    try:
        config, resolved_dir = _load(project_dir, overrides)
    except PublishError as e:
        raise typer.Exit(report_publish_error(e))

    table = Table(title="git-publish configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    try:
        request = resolve_request(config, resolved_dir)
        table.add_row("repo_uri", request.repo_uri)
        table.add_row("reference_repo_uri", request.reference_repo_uri or "[dim]none[/dim]")
        table.add_row("branch", request.branch)
        table.add_row("repo_dir", str(request.repo_dir))
    except PublishError as e:
        table.add_row("repo_uri", config.repo_uri or "[red]unresolved[/red]")
        table.add_row("branch", config.branch or "[red]unresolved[/red]")
        table.add_row("repo_dir", str(config.repo_dir))
        table.add_row("error", f"[red]{e}[/red]")

    table.add_row("preserve", ", ".join(config.preserve) or "[dim]none[/dim]")
    for spec in config.contents:
        table.add_row("content", f"{spec.source} -> /{spec.into}")
    table.add_row("commit_message", config.commit_message)
    table.add_row("sign", "default" if config.sign is None else str(config.sign).lower())

    console.print(table)
