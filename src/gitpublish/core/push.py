"""
Push stage: send the publish branch upstream.
"""

import logging

from git import GitCommandError, Repo

from gitpublish.core.errors import RemoteUnreachableError
from gitpublish.core.reconcile.reconciler import ORIGIN, ref_exists, remote_url

logger = logging.getLogger(__name__)


def needs_push(repo: Repo, branch: str) -> bool:
    """
    Check whether the local branch has something the remote lacks.

    False when the branch has no commits yet, or when its tip equals the
    remote-tracking ref recorded at fetch time.
    """
    local_ref = f"refs/heads/{branch}"
    tracking_ref = f"refs/remotes/{ORIGIN}/{branch}"
    if not ref_exists(repo, local_ref):
        return False
    if not ref_exists(repo, tracking_ref):
        return True
    return repo.commit(local_ref).hexsha != repo.commit(tracking_ref).hexsha


def push_branch(repo: Repo, branch: str) -> bool:
    """
    Push the branch to origin if it is ahead of (or missing from) the remote.

    Args:
        repo: Reconciled checkout
        branch: Branch to push

    Returns:
        True if a push happened, False if there was nothing to push

    Raises:
        RemoteUnreachableError: If the push fails
    """
    if not needs_push(repo, branch):
        logger.info("Branch %s is up to date with %s, skipping push", branch, ORIGIN)
        return False

    uri = remote_url(repo, ORIGIN) or ORIGIN
    refspec = f"refs/heads/{branch}:refs/heads/{branch}"
    logger.info("Pushing %s to %s", branch, uri)
    try:
        repo.git.push(ORIGIN, refspec)
    except GitCommandError as e:
        raise RemoteUnreachableError(uri, str(e.stderr or e).strip()) from e

    # Tracking ref mirrors the pushed tip.
    repo.git.update_ref(f"refs/remotes/{ORIGIN}/{branch}", f"refs/heads/{branch}")
    return True
