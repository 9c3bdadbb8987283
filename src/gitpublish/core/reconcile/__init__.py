"""
Checkout reconciliation for publish runs.

Brings a local checkout into a clean state on the target branch before new
content is copied into it.

Example:
    >>> from gitpublish.core.reconcile import ReconciliationRequest, RepoReconciler
    >>> request = ReconciliationRequest(
    ...     repo_uri="https://github.com/org/site.git",
    ...     branch="gh-pages",
    ...     repo_dir=Path("build/git-publish"),
    ... )
    >>> with RepoReconciler().reconcile(request) as result:
    ...     print(result.branch)
"""

from .patterns import compile_patterns, is_selected, matches, matches_any, validate_patterns
from .reconciler import (
    ORIGIN,
    REFERENCE,
    Checkout,
    ReconcileState,
    ReconciliationRequest,
    ReconciliationResult,
    RepoReconciler,
    clean_working_tree,
    ref_exists,
    remote_url,
)
from .refs import validate_branch_name

__all__ = [
    "ORIGIN",
    "REFERENCE",
    "Checkout",
    "ReconcileState",
    "ReconciliationRequest",
    "ReconciliationResult",
    "RepoReconciler",
    "clean_working_tree",
    "compile_patterns",
    "is_selected",
    "matches",
    "matches_any",
    "ref_exists",
    "remote_url",
    "validate_branch_name",
    "validate_patterns",
]
