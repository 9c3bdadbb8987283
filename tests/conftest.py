"""
Pytest configuration and shared fixtures.

Provides isolated git/XDG environments, bare "remote" repositories under
tmp_path, and request builders for reconciliation tests.
"""

import pytest
from git import Repo

from gitpublish.core.config.loader import ENV_OVERRIDES
from gitpublish.core.reconcile import ReconciliationRequest, RepoReconciler

# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """
    Isolate every test from the user's git and git-publish configuration.

    Points git at a throwaway global config with an identity and no signing,
    and XDG_CONFIG_HOME at an empty directory.
    """
    home = tmp_path / "home"
    home.mkdir()
    gitconfig = home / ".gitconfig"
    gitconfig.write_text(
        "[user]\n"
        "\tname = Publish Tests\n"
        "\temail = publish-tests@example.com\n"
        "[commit]\n"
        "\tgpgsign = false\n"
        "[init]\n"
        "\tdefaultBranch = main\n"
    )
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


# ==============================================================================
# Git Fixtures
# ==============================================================================


@pytest.fixture
def remote(tmp_path):
    """Provide an empty bare repository acting as the publish remote."""
    path = tmp_path / "remote.git"
    Repo.init(path, bare=True).close()
    return path


@pytest.fixture
def seed_dir(tmp_path):
    """Working directory used to push seed commits to the remote."""
    return tmp_path / "seed"


@pytest.fixture
def repo_dir(tmp_path):
    """Checkout directory for reconciliation (not created)."""
    return tmp_path / "project" / "build" / "git-publish"


@pytest.fixture
def reconciler():
    """Provide a RepoReconciler."""
    return RepoReconciler()


@pytest.fixture
def make_request(remote, repo_dir):
    """Build ReconciliationRequests against the remote fixture."""

    def _make(branch: str = "gh-pages", **kwargs) -> ReconciliationRequest:
        kwargs.setdefault("repo_uri", str(remote))
        kwargs.setdefault("repo_dir", repo_dir)
        if "preserve" in kwargs:
            kwargs["preserve"] = tuple(kwargs["preserve"])
        return ReconciliationRequest(branch=branch, **kwargs)

    return _make
