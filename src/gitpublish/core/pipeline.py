"""
Publish pipeline: reset -> copy -> commit -> push.

Each stage hands the reconciled checkout to the next. Asking for a later
stage always runs the earlier ones first, and the repository handle is
closed when the run ends whether it succeeded or not.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

from git import InvalidGitRepositoryError, NoSuchPathError, Repo

from gitpublish.core.commit import commit_changes
from gitpublish.core.config.models import PublishConfig
from gitpublish.core.copy import copy_contents
from gitpublish.core.errors import ConfigError
from gitpublish.core.push import push_branch
from gitpublish.core.reconcile import (
    ORIGIN,
    ReconciliationRequest,
    ReconciliationResult,
    RepoReconciler,
    remote_url,
)

logger = logging.getLogger(__name__)


class Stage(IntEnum):
    """Pipeline stages in execution order."""

    RESET = 1
    COPY = 2
    COMMIT = 3
    PUSH = 4


@dataclass
class PublishOutcome:
    """What a publish run did."""

    branch: str
    repo_dir: Path
    stage: Stage
    remote_exists: bool = False
    files_removed: int = 0
    files_copied: int = 0
    commit: str | None = None
    pushed: bool = False


@dataclass(frozen=True)
class ProjectRepoInfo:
    """Values inferred from the project's own git repository."""

    origin_url: str | None = None
    root_uri: str | None = None


def infer_project_repo(project_dir: Path) -> ProjectRepoInfo:
    """
    Inspect the git repository containing the project directory.

    Only a remote literally named "origin" is used; other remotes are
    ignored. Returns empty info when the project isn't in a repository.
    """
    try:
        repo = Repo(project_dir, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        logger.debug("%s is not inside a git repository", project_dir)
        return ProjectRepoInfo()

    try:
        if repo.bare:
            return ProjectRepoInfo(origin_url=remote_url(repo, ORIGIN))
        return ProjectRepoInfo(
            origin_url=remote_url(repo, ORIGIN),
            root_uri=Path(str(repo.working_dir)).resolve().as_uri(),
        )
    finally:
        repo.close()


def resolve_request(config: PublishConfig, project_dir: Path) -> ReconciliationRequest:
    """
    Build a reconciliation request from configuration.

    Each optional value resolves as: explicit config value, then the value
    inferred from the project's repository, then an error if required.

    Raises:
        ConfigError: If no branch is configured, or no repo URI is configured
            and the project has no "origin" remote
    """
    if not config.branch:
        raise ConfigError("No branch configured")

    repo_uri = config.repo_uri
    reference_repo_uri = config.reference_repo_uri
    if repo_uri is None or reference_repo_uri is None:
        inferred = infer_project_repo(project_dir)
        repo_uri = repo_uri or inferred.origin_url
        reference_repo_uri = reference_repo_uri or inferred.root_uri

    if not repo_uri:
        raise ConfigError(
            "No repository URI configured and the project has no 'origin' remote"
        )

    repo_dir = config.repo_dir
    if not repo_dir.is_absolute():
        repo_dir = project_dir / repo_dir

    return ReconciliationRequest(
        repo_uri=repo_uri,
        branch=config.branch,
        repo_dir=repo_dir,
        reference_repo_uri=reference_repo_uri,
        preserve=tuple(config.preserve),
    )


class PublishPipeline:
    """
    Runs the publish stages for one configuration.

    Example:
        >>> pipeline = PublishPipeline(load_config(), Path.cwd())
        >>> outcome = pipeline.run(until=Stage.PUSH)
        >>> outcome.pushed
        True
    """

    def __init__(
        self,
        config: PublishConfig,
        project_dir: Path | None = None,
        reconciler: RepoReconciler | None = None,
    ):
        self.config = config
        self.project_dir = project_dir or Path.cwd()
        self.reconciler = reconciler or RepoReconciler()

    def run(self, until: Stage = Stage.PUSH) -> PublishOutcome:
        """
        Run every stage up to and including `until`.

        Raises:
            PublishError: Any stage failure; later stages don't run
        """
        request = resolve_request(self.config, self.project_dir)
        logger.info("Publishing to %s (branch %s)", request.repo_uri, request.branch)

        result = self.reconciler.reconcile(request)
        try:
            return self._run_stages(result, until)
        finally:
            logger.info("Closing publish repo: %s", request.repo_dir)
            result.close()

    def _run_stages(self, result: ReconciliationResult, until: Stage) -> PublishOutcome:
        outcome = PublishOutcome(
            branch=result.branch,
            repo_dir=result.working_dir,
            stage=Stage.RESET,
            remote_exists=result.remote_exists,
            files_removed=len(result.removed),
        )
        if until <= Stage.RESET:
            return outcome

        outcome.files_copied = copy_contents(
            self.config.contents, result.working_dir, base_dir=self.project_dir
        )
        outcome.stage = Stage.COPY
        if until <= Stage.COPY:
            return outcome

        outcome.commit = commit_changes(
            result.repo, self.config.commit_message, sign=self.config.sign
        )
        outcome.stage = Stage.COMMIT
        if until <= Stage.COMMIT:
            return outcome

        outcome.pushed = push_branch(result.repo, result.branch)
        outcome.stage = Stage.PUSH
        return outcome
