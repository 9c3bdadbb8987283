"""
Tests for RepoReconciler.

Runs reconciliation against real bare repositories under tmp_path: fresh
checkouts, reuse, stale clone detection, orphan branches, and cleaning.
"""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from git import GitCommandError, Repo
from git.cmd import Git
from git_helpers import commit_files, seed_branch, tree_files

from gitpublish.core.errors import (
    ConfigError,
    FilesystemError,
    InvalidBranchError,
    RemoteUnreachableError,
)
from gitpublish.core.reconcile import (
    Checkout,
    ReconciliationResult,
    clean_working_tree,
    ref_exists,
    remote_url,
)


def head_ref(repo: Repo) -> str:
    return repo.git.symbolic_ref("HEAD")


class TestOrphanBranch:
    """Remote lacks the target branch."""

    def test_empty_directory_creates_orphan(self, reconciler, make_request, repo_dir):
        """Scenario: empty directory, no remote branch -> orphan, empty tree."""
        with reconciler.reconcile(make_request()) as result:
            assert result.remote_exists is False
            assert result.remote_commit is None
            assert result.reused is False
            assert head_ref(result.repo) == "refs/heads/gh-pages"
            assert not result.repo.head.is_valid()
            assert len(result.repo.index.entries) == 0
            assert tree_files(repo_dir) == set()

    def test_first_commit_on_orphan_has_no_parents(self, reconciler, make_request):
        """The first commit on a new publish branch starts fresh history."""
        with reconciler.reconcile(make_request()) as result:
            commit_files(result.repo, {"index.html": "hi"})
            assert result.repo.head.commit.parents == ()
            assert [e[0] for e in result.repo.index.entries] == ["index.html"]

    def test_orphan_does_not_inherit_previous_branch(
        self, reconciler, make_request, remote, seed_dir, repo_dir
    ):
        """Switching to a missing branch drops the previous branch's files and index."""
        seed_branch(remote, "site", {"a.txt": "a", "dir/b.txt": "b"}, seed_dir)

        with reconciler.reconcile(make_request("site")) as first:
            assert first.remote_exists is True

        with reconciler.reconcile(make_request("docs")) as result:
            assert result.reused is True
            assert head_ref(result.repo) == "refs/heads/docs"
            assert not result.repo.head.is_valid()
            assert len(result.repo.index.entries) == 0
            assert tree_files(repo_dir) == set()

    def test_unpushed_local_commit_is_discarded(self, reconciler, make_request):
        """A local-only branch from an earlier run is recreated as an orphan."""
        with reconciler.reconcile(make_request()) as first:
            commit_files(first.repo, {"stale.txt": "x"})

        with reconciler.reconcile(make_request()) as result:
            assert not result.repo.head.is_valid()
            assert not ref_exists(result.repo, "refs/heads/gh-pages")
            assert len(result.repo.index.entries) == 0

    def test_stale_tracking_ref_is_dropped(
        self, reconciler, make_request, remote, seed_dir
    ):
        """A branch deleted on the remote leaves no tracking ref behind."""
        seed_branch(remote, "gh-pages", {"a.txt": "a"}, seed_dir)
        with reconciler.reconcile(make_request()):
            pass

        bare = Repo(remote)
        bare.git.update_ref("-d", "refs/heads/gh-pages")
        bare.close()

        with reconciler.reconcile(make_request()) as result:
            assert result.remote_exists is False
            assert not ref_exists(result.repo, "refs/remotes/origin/gh-pages")


class TestExistingBranch:
    """Remote has the target branch."""

    def test_checks_out_remote_tip(self, reconciler, make_request, remote, seed_dir):
        """Local branch tip equals the remote tip at fetch time."""
        sha = seed_branch(remote, "gh-pages", {"index.html": "v1"}, seed_dir)

        with reconciler.reconcile(make_request()) as result:
            assert result.remote_exists is True
            assert result.remote_commit == sha
            assert result.repo.head.commit.hexsha == sha
            assert head_ref(result.repo) == "refs/heads/gh-pages"

    def test_sets_up_tracking(self, reconciler, make_request, remote, seed_dir):
        """The local branch tracks origin/<branch>."""
        seed_branch(remote, "gh-pages", {"index.html": "v1"}, seed_dir)

        with reconciler.reconcile(make_request()) as result:
            tracking = result.repo.active_branch.tracking_branch()
            assert tracking is not None
            assert tracking.name == "origin/gh-pages"

    def test_cleans_everything_not_preserved(
        self, reconciler, make_request, remote, seed_dir, repo_dir
    ):
        """Committed files are removed unless a preserve pattern keeps them."""
        seed_branch(
            remote,
            "gh-pages",
            {"index.html": "x", ".nojekyll": "", "docs/.nojekyll": "", "docs/a.html": "a"},
            seed_dir,
        )

        request = make_request(preserve=["**/.nojekyll"])
        with reconciler.reconcile(request) as result:
            assert tree_files(repo_dir) == {".nojekyll", "docs/.nojekyll"}
            assert sorted(result.removed) == ["docs/a.html", "index.html"]

    def test_rerun_removes_stray_file_and_fast_forwards(
        self, reconciler, make_request, remote, seed_dir, repo_dir
    ):
        """Scenario: prior checkout with stray tmp.log -> removed, .nojekyll kept, at remote tip."""
        seed_branch(remote, "gh-pages", {".nojekyll": "", "index.html": "v1"}, seed_dir)
        request = make_request(preserve=["**/.nojekyll"])

        with reconciler.reconcile(request):
            pass

        (repo_dir / "tmp.log").write_text("leftover")
        new_sha = seed_branch(remote, "gh-pages", {"index.html": "v2"}, seed_dir)

        with reconciler.reconcile(request) as result:
            assert result.reused is True
            assert result.repo.head.commit.hexsha == new_sha
            assert not (repo_dir / "tmp.log").exists()
            assert (repo_dir / ".nojekyll").exists()

    def test_uncommitted_changes_are_discarded(
        self, reconciler, make_request, remote, seed_dir, repo_dir
    ):
        """Local edits to preserved tracked files are reset to the committed state."""
        seed_branch(remote, "gh-pages", {"keep.txt": "v1"}, seed_dir)
        request = make_request(preserve=["keep.txt"])

        with reconciler.reconcile(request):
            pass
        (repo_dir / "keep.txt").write_text("dirty")

        with reconciler.reconcile(request):
            assert (repo_dir / "keep.txt").read_text() == "v1"

    def test_idempotent(self, reconciler, make_request, remote, seed_dir, repo_dir):
        """Two runs in a row produce the same branch tip and tree."""
        seed_branch(remote, "gh-pages", {"a.txt": "a", "CNAME": "example.com"}, seed_dir)
        request = make_request(preserve=["CNAME"])

        with reconciler.reconcile(request) as first:
            first_state = (first.repo.head.commit.hexsha, tree_files(repo_dir))

        with reconciler.reconcile(request) as second:
            second_state = (second.repo.head.commit.hexsha, tree_files(repo_dir))

        assert first_state == second_state
        assert first_state[1] == {"CNAME"}


class TestCheckoutReuse:
    """Reuse versus fresh checkout decisions."""

    def test_mismatched_origin_starts_fresh(
        self, reconciler, make_request, remote, seed_dir, repo_dir, tmp_path
    ):
        """Scenario: existing checkout points elsewhere -> discarded, fresh clone from request URI."""
        other = tmp_path / "other.git"
        Repo.init(other, bare=True).close()
        seed_branch(other, "gh-pages", {"old.txt": "old"}, seed_dir)

        with reconciler.reconcile(make_request(repo_uri=str(other))) as first:
            assert first.remote_exists is True

        with reconciler.reconcile(make_request()) as result:
            assert result.reused is False
            assert remote_url(result.repo, "origin") == str(remote)
            assert not ref_exists(result.repo, "refs/remotes/origin/gh-pages")
            assert not result.repo.head.is_valid()
            assert tree_files(repo_dir) == set()

    def test_non_repository_directory_is_replaced(self, reconciler, make_request, repo_dir):
        """A plain directory is wiped and initialized."""
        repo_dir.mkdir(parents=True)
        (repo_dir / "junk.txt").write_text("junk")
        (repo_dir / "sub").mkdir()
        (repo_dir / "sub" / "more.txt").write_text("junk")

        with reconciler.reconcile(make_request()) as result:
            assert result.reused is False
            assert (repo_dir / ".git").is_dir()
            assert tree_files(repo_dir) == set()

    def test_matching_checkout_is_reused(self, reconciler, make_request):
        """Same origin URL -> reused."""
        with reconciler.reconcile(make_request()):
            pass
        with reconciler.reconcile(make_request()) as result:
            assert result.reused is True

    def test_reference_repository_is_fetched(
        self, reconciler, make_request, remote, seed_dir
    ):
        """A reference URI becomes a 'reference' remote whose objects are fetched."""
        seed_branch(remote, "gh-pages", {"a.txt": "a"}, seed_dir)

        request = make_request(reference_repo_uri=str(seed_dir))
        with reconciler.reconcile(request) as result:
            assert remote_url(result.repo, "reference") == str(seed_dir)
            assert ref_exists(result.repo, "refs/remotes/reference/main")


class TestFailures:
    """Error taxonomy."""

    @pytest.mark.parametrize("branch", ["", "bad..name", "-x", "a b", "x.lock", "HEAD", "a/"])
    def test_invalid_branch_fails_before_any_git_work(
        self, reconciler, make_request, repo_dir, branch
    ):
        """Malformed names are rejected without touching the directory."""
        with patch("gitpublish.core.reconcile.reconciler.Repo") as mock_repo_class:
            with pytest.raises(InvalidBranchError):
                reconciler.reconcile(make_request(branch))
            mock_repo_class.assert_not_called()
        assert not repo_dir.exists()

    def test_unreachable_remote(self, reconciler, make_request, tmp_path):
        """A remote that can't be contacted raises RemoteUnreachableError."""
        missing = str(tmp_path / "missing.git")
        with pytest.raises(RemoteUnreachableError) as exc_info:
            reconciler.reconcile(make_request(repo_uri=missing))
        assert exc_info.value.uri == missing

    def test_unreachable_reference(self, reconciler, make_request, tmp_path):
        """A reference that can't be fetched raises RemoteUnreachableError."""
        missing = str(tmp_path / "no-reference")
        with pytest.raises(RemoteUnreachableError) as exc_info:
            reconciler.reconcile(make_request(reference_repo_uri=missing))
        assert exc_info.value.uri == missing

    def test_invalid_preserve_pattern_fails_before_cleaning(
        self, reconciler, make_request, remote, seed_dir, repo_dir
    ):
        """A malformed glob is a ConfigError and leaves the checkout untouched."""
        seed_branch(remote, "gh-pages", {"index.html": "v1"}, seed_dir)
        reconciler.reconcile(make_request()).close()
        (repo_dir / "stray.txt").write_text("left over")

        with pytest.raises(ConfigError, match="Invalid glob"):
            reconciler.reconcile(make_request(preserve=["[z-a]"]))

        assert (repo_dir / "stray.txt").read_text() == "left over"

    def test_cleanup_permission_error(
        self, reconciler, make_request, remote, seed_dir
    ):
        """An unremovable file surfaces as FilesystemError."""
        seed_branch(remote, "gh-pages", {"index.html": "v1"}, seed_dir)

        with patch.object(Path, "unlink", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(FilesystemError, match="Failed to clean working tree"):
                reconciler.reconcile(make_request())

    def test_checkout_failure(self, reconciler, make_request, remote, seed_dir):
        """A failing git checkout surfaces as FilesystemError."""
        seed_branch(remote, "gh-pages", {"index.html": "v1"}, seed_dir)
        error = GitCommandError(["git", "checkout"], 128, stderr=b"fatal: cannot lock ref")

        with patch.object(Git, "checkout", create=True, side_effect=error):
            with pytest.raises(FilesystemError, match="Failed to check out gh-pages"):
                reconciler.reconcile(make_request())

    def test_remote_setup_failure_closes_repo(self, reconciler, make_request):
        """A failing `git remote add` is wrapped and the new handle released."""
        error = GitCommandError(["git", "remote", "add"], 3, stderr=b"error: remote exists")

        with patch.object(Repo, "create_remote", side_effect=error), patch.object(
            Repo, "close", autospec=True
        ) as mock_close:
            with pytest.raises(FilesystemError, match="Failed to configure remotes"):
                reconciler.reconcile(make_request())

        mock_close.assert_called_once()


class TestReconciliationResult:
    """Handle lifecycle."""

    def test_context_manager_closes_repo(self):
        """Leaving the with-block closes the repository handle."""
        repo = MagicMock()
        result = ReconciliationResult(repo=repo, branch="gh-pages", remote_exists=False)

        with result as entered:
            assert entered is result

        repo.close.assert_called_once()

    def test_closes_on_error(self):
        """The handle is closed even if the block raises."""
        repo = MagicMock()
        result = ReconciliationResult(repo=repo, branch="gh-pages", remote_exists=False)

        with pytest.raises(RuntimeError):
            with result:
                raise RuntimeError("boom")

        repo.close.assert_called_once()


class TestCheckoutInspect:
    """Checkout.inspect reads directory state."""

    def test_missing_directory(self, tmp_path):
        checkout = Checkout.inspect(tmp_path / "nope")
        assert checkout.exists is False
        assert checkout.is_repository is False

    def test_plain_directory(self, tmp_path):
        checkout = Checkout.inspect(tmp_path)
        assert checkout.exists is True
        assert checkout.is_repository is False
        assert checkout.matches("anything") is False

    def test_repository_with_origin(self, tmp_path):
        repo = Repo.init(tmp_path / "r")
        repo.create_remote("origin", "https://example.com/site.git")
        repo.close()

        checkout = Checkout.inspect(tmp_path / "r")
        assert checkout.is_repository is True
        assert checkout.origin_url == "https://example.com/site.git"
        assert checkout.matches("https://example.com/site.git")
        assert not checkout.matches("https://example.com/other.git")

    def test_only_origin_counts(self, tmp_path):
        """A remote with another name is not treated as origin."""
        repo = Repo.init(tmp_path / "r")
        repo.create_remote("upstream", "https://example.com/site.git")
        repo.close()

        checkout = Checkout.inspect(tmp_path / "r")
        assert checkout.origin_url is None

    def test_subdirectory_of_repository_is_not_a_checkout(self, tmp_path):
        """Parent repositories are never picked up."""
        Repo.init(tmp_path / "outer").close()
        nested = tmp_path / "outer" / "build" / "git-publish"
        nested.mkdir(parents=True)

        checkout = Checkout.inspect(nested)
        assert checkout.exists is True
        assert checkout.is_repository is False


class TestCleanWorkingTree:
    """clean_working_tree deletes everything outside the preserve set."""

    @pytest.fixture
    def tree(self, tmp_path):
        root = tmp_path / "tree"
        for relative in [
            "index.html",
            "CNAME",
            ".nojekyll",
            "docs/.nojekyll",
            "docs/guide/page.html",
            "assets/app.js",
            "assets/img/logo.png",
            ".git/HEAD",
            ".git/objects/pack/keep",
        ]:
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(relative)
        (root / "empty").mkdir()
        return root

    def test_removes_everything_without_patterns(self, tree):
        removed = clean_working_tree(tree)
        assert tree_files(tree) == set()
        assert "docs/guide/page.html" in removed
        assert (tree / ".git" / "HEAD").exists()
        assert (tree / ".git" / "objects" / "pack" / "keep").exists()

    def test_empty_directories_removed(self, tree):
        clean_working_tree(tree, ["CNAME"])
        assert not (tree / "docs").exists()
        assert not (tree / "assets").exists()
        assert not (tree / "empty").exists()
        assert tree.exists()

    def test_remaining_files_all_match_a_pattern(self, tree):
        patterns = ["**/.nojekyll", "assets/**", "CNAME"]
        removed = clean_working_tree(tree, patterns)

        assert tree_files(tree) == {
            "CNAME",
            ".nojekyll",
            "docs/.nojekyll",
            "assets/app.js",
            "assets/img/logo.png",
        }
        assert sorted(removed) == ["docs/guide/page.html", "index.html"]
        # Directory that still holds a preserved file stays
        assert (tree / "docs").is_dir()
        assert not (tree / "docs" / "guide").exists()

    def test_symlinked_directory_not_followed(self, tree, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "precious.txt").write_text("keep me")
        os.symlink(outside, tree / "link")

        clean_working_tree(tree)

        assert not (tree / "link").exists()
        assert not (tree / "link").is_symlink()
        assert (outside / "precious.txt").read_text() == "keep me"
