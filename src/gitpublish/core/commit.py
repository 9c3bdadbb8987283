"""
Commit stage: record the copied content on the publish branch.
"""

import logging

from git import GitCommandError, Repo

from gitpublish.core.errors import ConfigError, FilesystemError

logger = logging.getLogger(__name__)


def has_staged_changes(repo: Repo) -> bool:
    """
    Check whether the index differs from HEAD.

    On an unborn (orphan) branch any staged entry counts as a change.
    """
    if not repo.head.is_valid():
        return len(repo.index.entries) > 0
    return bool(repo.index.diff("HEAD"))


def commit_changes(repo: Repo, message: str, sign: bool | None = None) -> str | None:
    """
    Stage every change in the working tree and commit it.

    New, modified and deleted files are all staged. No commit is made when
    the result is identical to HEAD.

    Args:
        repo: Reconciled checkout
        message: Commit message
        sign: True to GPG-sign, False to forbid signing, None for git's default

    Returns:
        The new commit sha, or None if there was nothing to commit

    Raises:
        ConfigError: If the message is empty
        FilesystemError: If staging or committing fails
    """
    if not message or not message.strip():
        raise ConfigError("Commit message cannot be empty")

    try:
        repo.git.add("--all")

        if not has_staged_changes(repo):
            logger.info("Nothing to commit in %s", repo.working_dir)
            return None

        args = ["-m", message]
        if sign is True:
            args.insert(0, "--gpg-sign")
        elif sign is False:
            args.insert(0, "--no-gpg-sign")
        repo.git.commit(*args)
    except GitCommandError as e:
        raise FilesystemError(f"Failed to commit in {repo.working_dir}: {e.stderr}") from e

    sha = repo.head.commit.hexsha
    logger.info("Committed %s on %s", sha[:7], repo.active_branch.name)
    return sha
