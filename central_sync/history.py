"""
History isolation for initial import.

Rewrites a branch so that every commit's tree is the tree of one
subdirectory, dropping commits that do not touch it. Two implementations
share the same contract: shelling out to ``git filter-branch`` and an
in-process rewrite built from the grafting primitives.
"""

from typing import Protocol

from git import Commit, Head, Repo
from git.exc import GitCommandError
from rich.console import Console

from .errors import SubtreeLookupFailure
from .git_ops import resolve_commit, rewrite_commit, subtree_at

console = Console()


class HistoryFilter(Protocol):
    """Rewrites ``branch`` in place to the history of ``subdir``."""

    def isolate(self, repo: Repo, branch: str, subdir: str) -> Commit:
        ...


class FilterBranchHistory:
    """Isolates history with ``git filter-branch --subdirectory-filter``."""

    def isolate(self, repo: Repo, branch: str, subdir: str) -> Commit:
        console.print(f"  filter-branch {branch} to {subdir}/")
        try:
            repo.git.filter_branch(
                "-f",
                "--subdirectory-filter",
                f"{subdir.strip('/')}/",
                "--",
                branch,
                env={"FILTER_BRANCH_SQUELCH_WARNING": "1"},
            )
        except GitCommandError as e:
            raise SubtreeLookupFailure(
                f"filter-branch could not isolate {subdir}: {e.stderr.strip()}"
            ) from e
        return resolve_commit(repo, f"refs/heads/{branch}")


class SubtreeHistory:
    """Isolates history in-process by re-rooting every commit at ``subdir``."""

    def isolate(self, repo: Repo, branch: str, subdir: str) -> Commit:
        console.print(f"  rewrite {branch} to {subdir}/")
        head = resolve_commit(repo, f"refs/heads/{branch}")

        # original sha -> rewritten commit (None when nothing carries subdir yet)
        rewritten: dict[str, Commit | None] = {}
        for commit in repo.iter_commits(head, topo_order=True, reverse=True):
            parents: list[Commit] = []
            for parent in commit.parents:
                mapped = rewritten.get(parent.hexsha)
                if mapped is not None and mapped not in parents:
                    parents.append(mapped)

            tree = subtree_at(commit.tree, subdir)
            if tree is None:
                rewritten[commit.hexsha] = parents[0] if parents else None
                continue

            if len(parents) == 1 and parents[0].tree.binsha == tree.binsha:
                # does not touch subdir
                rewritten[commit.hexsha] = parents[0]
                continue

            rewritten[commit.hexsha] = rewrite_commit(repo, commit, parents, tree)

        result = rewritten.get(head.hexsha)
        if result is None:
            raise SubtreeLookupFailure(f"No commit in {branch} contains {subdir}")

        Head.create(repo, branch, result, force=True)
        return result


def build_history_filter(kind: str) -> HistoryFilter:
    """Get the history filter for a config ``history_filter`` value."""
    if kind == "native":
        return SubtreeHistory()
    return FilterBranchHistory()
