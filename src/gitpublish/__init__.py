"""
git-publish - publish generated content to a branch of a git repository.

Resets a local checkout onto the target branch, copies build output into
it, commits, and pushes.
"""

__version__ = "0.1.0"

# Re-export the main entry points for convenience
from gitpublish.core.config.models import ContentSpec, PublishConfig
from gitpublish.core.pipeline import PublishPipeline, Stage
from gitpublish.core.reconcile import ReconciliationRequest, RepoReconciler

__all__ = [
    "ContentSpec",
    "PublishConfig",
    "PublishPipeline",
    "ReconciliationRequest",
    "RepoReconciler",
    "Stage",
    "__version__",
]
