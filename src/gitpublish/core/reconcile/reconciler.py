"""
Repository reconciliation for publish runs.

This module provides the RepoReconciler class, which brings a local checkout
directory into a known state before new content is copied into it: the
checkout points at the requested remote, HEAD is on the target branch (either
reset to the remote tip or a fresh orphan), and everything outside the
preserve patterns has been deleted from the working tree.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import TracebackType

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from gitpublish.core.errors import FilesystemError, RemoteUnreachableError
from gitpublish.core.reconcile.patterns import compile_patterns, validate_patterns
from gitpublish.core.reconcile.refs import validate_branch_name

logger = logging.getLogger(__name__)

ORIGIN = "origin"
REFERENCE = "reference"


class ReconcileState(str, Enum):
    """Progress of a single reconciliation run."""

    UNINITIALIZED = "uninitialized"
    FETCHED = "fetched"
    BRANCH_RESOLVED = "branch_resolved"
    CLEANED = "cleaned"
    READY = "ready"


@dataclass(frozen=True)
class Checkout:
    """
    What is currently on disk at a checkout directory.

    Attributes:
        path: Checkout directory
        exists: Whether the directory exists at all
        is_repository: Whether the directory itself is a non-bare git repository
        origin_url: URL of the remote named "origin", if configured
    """

    path: Path
    exists: bool
    is_repository: bool = False
    origin_url: str | None = None

    @classmethod
    def inspect(cls, path: Path) -> "Checkout":
        """Read the state of a directory without modifying it."""
        if not path.exists():
            return cls(path=path, exists=False)

        try:
            # No parent search: a build dir nested in the project repo is not a checkout.
            repo = Repo(path)
        except (InvalidGitRepositoryError, NoSuchPathError):
            return cls(path=path, exists=True)

        try:
            if repo.bare:
                return cls(path=path, exists=True)
            return cls(
                path=path,
                exists=True,
                is_repository=True,
                origin_url=remote_url(repo, ORIGIN),
            )
        finally:
            repo.close()

    def matches(self, repo_uri: str) -> bool:
        """Whether this checkout can be reused for the given remote."""
        return self.is_repository and self.origin_url == repo_uri


@dataclass(frozen=True)
class ReconciliationRequest:
    """
    Inputs for one reconciliation.

    Attributes:
        repo_uri: Remote to publish to (becomes "origin")
        branch: Target branch name
        repo_dir: Local checkout directory
        reference_repo_uri: Optional local repository used as an object source
        preserve: Glob patterns for files that survive cleaning
    """

    repo_uri: str
    branch: str
    repo_dir: Path
    reference_repo_uri: str | None = None
    preserve: tuple[str, ...] = ()


@dataclass
class ReconciliationResult:
    """
    An open checkout positioned on the target branch.

    The repository handle must be closed when the publish run ends. The
    result is a context manager that does this on exit.
    """

    repo: Repo
    branch: str
    remote_exists: bool
    remote_commit: str | None = None
    reused: bool = False
    removed: list[str] = field(default_factory=list)

    @property
    def working_dir(self) -> Path:
        return Path(str(self.repo.working_dir))

    def close(self) -> None:
        """Release the underlying repository handle."""
        self.repo.close()

    def __enter__(self) -> "ReconciliationResult":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def remote_url(repo: Repo, name: str) -> str | None:
    """Return the URL of the remote with exactly this name, or None."""
    for remote in repo.remotes:
        if remote.name == name:
            return str(remote.url)
    return None


def ref_exists(repo: Repo, ref: str) -> bool:
    """Check whether a fully qualified ref exists in the repository."""
    try:
        repo.git.show_ref("--verify", "--quiet", ref)
    except GitCommandError:
        return False
    return True


def clean_working_tree(root: Path, preserve: tuple[str, ...] | list[str] = ()) -> list[str]:
    """
    Delete every file under root except .git and paths matching preserve.

    Paths are matched relative to root in POSIX form. Directories left empty
    afterwards are removed. Symlinks are removed as files and never followed.

    Args:
        root: Working tree root
        preserve: Glob patterns of files to keep

    Returns:
        Sorted list of removed relative paths

    Raises:
        ConfigError: If a preserve pattern is not a valid glob
        FilesystemError: If a file or directory cannot be removed
    """
    keep = compile_patterns(tuple(preserve))
    removed: list[str] = []

    def _raise(error: OSError) -> None:
        raise error

    try:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            current = Path(dirpath)
            if current == root and ".git" in dirnames:
                dirnames.remove(".git")

            for name in list(dirnames):
                if (current / name).is_symlink():
                    dirnames.remove(name)
                    filenames.append(name)

            for name in filenames:
                path = current / name
                relative = path.relative_to(root).as_posix()
                if keep.match_file(relative):
                    continue
                path.unlink()
                removed.append(relative)

        for dirpath, _dirnames, _filenames in os.walk(root, topdown=False, onerror=_raise):
            current = Path(dirpath)
            if current == root:
                continue
            relative = current.relative_to(root)
            if relative.parts[0] == ".git":
                continue
            if not any(current.iterdir()):
                current.rmdir()
    except OSError as e:
        raise FilesystemError(f"Failed to clean working tree {root}: {e}") from e

    return sorted(removed)


class RepoReconciler:
    """
    Prepares a local checkout to receive newly generated content.

    Reconciliation is destructive to uncommitted state: rerunning it with the
    same request always yields the same branch and the same cleaned tree.

    Example:
        >>> reconciler = RepoReconciler()
        >>> request = ReconciliationRequest(
        ...     repo_uri="git@github.com:org/site.git",
        ...     branch="gh-pages",
        ...     repo_dir=Path("build/git-publish"),
        ...     preserve=("CNAME",),
        ... )
        >>> with reconciler.reconcile(request) as result:
        ...     print(result.working_dir, result.remote_exists)
    """

    def reconcile(self, request: ReconciliationRequest) -> ReconciliationResult:
        """
        Reconcile the checkout directory against the requested branch.

        Args:
            request: Remote, branch, directory and preserve patterns

        Returns:
            ReconciliationResult holding an open repository on the branch

        Raises:
            InvalidBranchError: If the branch name is malformed
            RemoteUnreachableError: If the remote cannot be contacted
            ConfigError: If a preserve pattern is not a valid glob
            FilesystemError: If local cleanup or checkout fails
        """
        branch = validate_branch_name(request.branch)
        preserve = tuple(validate_patterns(request.preserve))
        repo_dir = Path(request.repo_dir)
        self._log_state(repo_dir, ReconcileState.UNINITIALIZED)

        checkout = Checkout.inspect(repo_dir)
        reused = checkout.matches(request.repo_uri)
        if reused:
            logger.info("Reusing existing checkout at %s", repo_dir)
            repo = Repo(repo_dir)
        else:
            if checkout.is_repository:
                logger.info(
                    "Checkout at %s points at %s, not %s; starting fresh",
                    repo_dir,
                    checkout.origin_url,
                    request.repo_uri,
                )
            repo = self._fresh_repo(repo_dir, request)

        try:
            remote_commit = self._remote_head(repo, request.repo_uri, branch)
            if remote_commit is not None:
                self._fetch_branch(repo, request.repo_uri, branch)
            self._log_state(repo_dir, ReconcileState.FETCHED)

            if remote_commit is not None:
                self._checkout_remote_branch(repo, branch)
            else:
                self._checkout_orphan(repo, branch)
            self._log_state(repo_dir, ReconcileState.BRANCH_RESOLVED)

            removed = clean_working_tree(Path(str(repo.working_dir)), preserve)
            self._log_state(repo_dir, ReconcileState.CLEANED)
        except Exception:
            repo.close()
            raise

        logger.info(
            "Checkout %s ready on %s (%s, %d file(s) removed)",
            repo_dir,
            branch,
            f"remote tip {remote_commit[:7]}" if remote_commit else "new orphan branch",
            len(removed),
        )
        self._log_state(repo_dir, ReconcileState.READY)

        return ReconciliationResult(
            repo=repo,
            branch=branch,
            remote_exists=remote_commit is not None,
            remote_commit=remote_commit,
            reused=reused,
            removed=removed,
        )

    def _log_state(self, repo_dir: Path, state: ReconcileState) -> None:
        logger.debug("Reconcile %s: %s", repo_dir, state.value)

    def _fresh_repo(self, repo_dir: Path, request: ReconciliationRequest) -> Repo:
        """Discard the directory and initialize a new repository pointing at the remote."""
        try:
            if repo_dir.exists() or repo_dir.is_symlink():
                if repo_dir.is_dir() and not repo_dir.is_symlink():
                    shutil.rmtree(repo_dir)
                else:
                    repo_dir.unlink()
            repo_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Failed to prepare checkout directory {repo_dir}: {e}") from e

        logger.info("Initializing fresh checkout at %s for %s", repo_dir, request.repo_uri)
        try:
            repo = Repo.init(repo_dir)
        except GitCommandError as e:
            raise FilesystemError(f"Failed to initialize {repo_dir}: {_stderr(e)}") from e

        try:
            repo.create_remote(ORIGIN, request.repo_uri)
            if request.reference_repo_uri:
                repo.create_remote(REFERENCE, request.reference_repo_uri)
        except GitCommandError as e:
            repo.close()
            raise FilesystemError(f"Failed to configure remotes in {repo_dir}: {_stderr(e)}") from e

        if request.reference_repo_uri:
            logger.debug("Fetching objects from reference %s", request.reference_repo_uri)
            try:
                repo.git.fetch("--no-tags", REFERENCE)
            except GitCommandError as e:
                repo.close()
                raise RemoteUnreachableError(
                    request.reference_repo_uri, _stderr(e)
                ) from e

        return repo

    def _remote_head(self, repo: Repo, repo_uri: str, branch: str) -> str | None:
        """Return the remote tip of the branch, or None if the remote lacks it."""
        full_ref = f"refs/heads/{branch}"
        try:
            output = repo.git.ls_remote("--heads", ORIGIN, full_ref)
        except GitCommandError as e:
            raise RemoteUnreachableError(repo_uri, _stderr(e)) from e

        for line in output.splitlines():
            sha, _, ref = line.partition("\t")
            if ref.strip() == full_ref:
                return sha.strip()
        return None

    def _fetch_branch(self, repo: Repo, repo_uri: str, branch: str) -> None:
        refspec = f"+refs/heads/{branch}:refs/remotes/{ORIGIN}/{branch}"
        logger.debug("Fetching %s", refspec)
        try:
            repo.git.fetch("--no-tags", ORIGIN, refspec)
        except GitCommandError as e:
            raise RemoteUnreachableError(repo_uri, _stderr(e)) from e

    def _checkout_remote_branch(self, repo: Repo, branch: str) -> None:
        """Force the local branch to the fetched remote tip, discarding local changes."""
        tracking = f"{ORIGIN}/{branch}"
        try:
            repo.git.checkout("--force", "-B", branch, f"refs/remotes/{tracking}")
            repo.git.branch(f"--set-upstream-to={tracking}", branch)
        except GitCommandError as e:
            raise FilesystemError(f"Failed to check out {branch}: {_stderr(e)}") from e

    def _checkout_orphan(self, repo: Repo, branch: str) -> None:
        """
        Point HEAD at an unborn branch with an empty index.

        Any local branch or stale remote-tracking ref of the same name is
        dropped first so nothing is inherited from a previous run.
        """
        local_ref = f"refs/heads/{branch}"
        tracking_ref = f"refs/remotes/{ORIGIN}/{branch}"
        try:
            for ref in (local_ref, tracking_ref):
                if ref_exists(repo, ref):
                    logger.debug("Dropping stale ref %s", ref)
                    repo.git.update_ref("-d", ref)
            repo.git.symbolic_ref("HEAD", local_ref)
            repo.git.read_tree("--empty")
        except GitCommandError as e:
            raise FilesystemError(f"Failed to create orphan branch {branch}: {_stderr(e)}") from e


def _stderr(error: GitCommandError) -> str:
    return str(error.stderr or error).strip()
