"""Tests for layered .env loading."""

import os

import pytest

from gitpublish.core.config.env import default_env_paths, load_layered_env, read_env_file


@pytest.fixture(autouse=True)
def restore_env(monkeypatch):
    """Register the keys these tests load so monkeypatch restores them."""
    for key in ("GIT_PUBLISH_BRANCH", "GIT_PUBLISH_REPO_URI"):
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


class TestReadEnvFile:
    def test_missing_file(self, tmp_path):
        assert read_env_file(tmp_path / ".env") == {}

    def test_parses_values(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("GIT_PUBLISH_BRANCH=gh-pages\n# comment\nEMPTY\n")
        assert read_env_file(env) == {"GIT_PUBLISH_BRANCH": "gh-pages"}


class TestLoadLayeredEnv:
    def test_project_overrides_user(self, tmp_path, monkeypatch):
        user = tmp_path / "user.env"
        project = tmp_path / "project.env"
        user.write_text("GIT_PUBLISH_BRANCH=user\nGIT_PUBLISH_REPO_URI=user-uri\n")
        project.write_text("GIT_PUBLISH_BRANCH=project\n")

        loaded = load_layered_env(env_paths=[user, project])

        assert os.environ["GIT_PUBLISH_BRANCH"] == "project"
        assert os.environ["GIT_PUBLISH_REPO_URI"] == "user-uri"
        assert loaded == {"GIT_PUBLISH_BRANCH": "project", "GIT_PUBLISH_REPO_URI": "user-uri"}

    def test_never_overrides_shell(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GIT_PUBLISH_BRANCH", "shell")
        env = tmp_path / ".env"
        env.write_text("GIT_PUBLISH_BRANCH=file\n")

        loaded = load_layered_env(env_paths=[env])

        assert os.environ["GIT_PUBLISH_BRANCH"] == "shell"
        assert loaded == {}

    def test_default_paths(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        paths = default_env_paths(tmp_path / "project")
        assert paths == [
            tmp_path / "xdg" / "git-publish" / ".env",
            tmp_path / "project" / ".env",
            tmp_path / "project" / ".env.local",
        ]
