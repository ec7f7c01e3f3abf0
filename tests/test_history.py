"""Tests for history isolation."""

from pathlib import Path

import pytest
from git import Repo

from central_sync.errors import SubtreeLookupFailure
from central_sync.history import (
    FilterBranchHistory,
    SubtreeHistory,
    build_history_filter,
)

from conftest import commit_files, configure_user, read_blob


@pytest.fixture
def history_repo(central_repo: Path):
    """Central repo whose history touches foo twice and bar once more."""
    commit_files(central_repo, {"modules/bar/b.txt": "2"}, "Change bar")
    commit_files(central_repo, {"modules/foo/a.txt": "2"}, "Change foo")
    repo = Repo(central_repo)
    repo.create_head("initial_modules/foo", repo.head.commit)
    return repo


def _history(repo: Repo, rev: str) -> list:
    return list(repo.iter_commits(rev, topo_order=True, reverse=True))


class TestSubtreeHistory:
    """Tests for in-process history isolation."""

    def test_isolates_module(self, history_repo: Repo):
        """Test that only commits touching the module remain, re-rooted at it."""
        result = SubtreeHistory().isolate(history_repo, "initial_modules/foo", "modules/foo")

        commits = _history(history_repo, result.hexsha)
        assert [c.summary for c in commits] == ["Add foo and bar", "Change foo"]
        assert [read_blob(c.tree, "a.txt") for c in commits] == ["1", "2"]
        assert [item.name for item in result.tree] == ["a.txt"]

    def test_updates_branch(self, history_repo: Repo):
        """Test that the branch is rewritten in place."""
        result = SubtreeHistory().isolate(history_repo, "initial_modules/foo", "modules/foo")
        assert history_repo.heads["initial_modules/foo"].commit == result

    def test_preserves_authorship(self, history_repo: Repo):
        """Test that rewritten commits keep their author and message."""
        original = history_repo.head.commit
        result = SubtreeHistory().isolate(history_repo, "initial_modules/foo", "modules/foo")
        assert result.author == original.author
        assert result.authored_date == original.authored_date
        assert result.message == original.message

    def test_prunes_commits_before_module(self, temp_dir: Path):
        """Test that commits without the module are dropped."""
        repo_path = temp_dir / "late"
        repo_path.mkdir()
        repo = Repo.init(repo_path)
        configure_user(repo)
        commit_files(repo_path, {"README.md": "readme"}, "Initial commit")
        commit_files(repo_path, {"modules/foo/a.txt": "1"}, "Add foo")
        repo.create_head("initial_modules/foo", repo.head.commit)

        result = SubtreeHistory().isolate(repo, "initial_modules/foo", "modules/foo")
        assert [c.summary for c in _history(repo, result.hexsha)] == ["Add foo"]
        assert list(result.parents) == []

    def test_missing_module(self, history_repo: Repo):
        """Test that isolating an absent directory fails."""
        with pytest.raises(SubtreeLookupFailure):
            SubtreeHistory().isolate(history_repo, "initial_modules/foo", "modules/baz")


class TestFilterBranchHistory:
    """Tests for filter-branch based history isolation."""

    def test_isolates_module(self, history_repo: Repo):
        """Test that filter-branch leaves only the module's history."""
        result = FilterBranchHistory().isolate(
            history_repo, "initial_modules/foo", "modules/foo"
        )

        commits = _history(history_repo, result.hexsha)
        assert [c.summary for c in commits] == ["Add foo and bar", "Change foo"]
        assert [item.name for item in result.tree] == ["a.txt"]
        assert read_blob(result.tree, "a.txt") == "2"


class TestBuildHistoryFilter:
    """Tests for choosing the history filter."""

    def test_native(self):
        assert isinstance(build_history_filter("native"), SubtreeHistory)

    def test_filter_branch(self):
        assert isinstance(build_history_filter("filter-branch"), FilterBranchHistory)
