"""
Workflows moving history between the central repository and module repositories.

- initial import: split the central repository into one repository per module
- central submit: propagate a central revision into every changed module
- module review upload: replay module commits on top of central for review

Each workflow runs inside a Scratch workspace owned by the caller.
"""

from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from .config import SyncConfig
from .errors import AncestryViolation, SubtreeLookupFailure
from .git_ops import (
    commit_range,
    graft,
    is_descendant,
    rewrite_commit,
    split_module_path,
    subtree_at,
)
from .history import HistoryFilter, build_history_filter
from .host import RepoHost, build_host
from .scratch import Scratch

console = Console()


@dataclass
class SyncResult:
    """Result of a workflow."""

    pushed: list[str] = field(default_factory=list)  # "<name> <ref> <sha>"
    skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    commit_mappings: dict[str, str] = field(default_factory=dict)  # source -> rewritten


class ModuleSyncer:
    """Runs the central/module workflows for one configuration."""

    def __init__(
        self,
        config: SyncConfig,
        host: RepoHost | None = None,
        history_filter: HistoryFilter | None = None,
    ):
        self.config = config
        self.host = host or build_host(config.host, timeout=config.network_timeout)
        self.history_filter = history_filter or build_history_filter(config.history_filter)

    @property
    def branch_ref(self) -> str:
        return f"refs/heads/{self.config.branch}"

    def open_scratch(self) -> Scratch:
        """Create the scratch workspace for one workflow invocation."""
        return Scratch(
            self.host,
            path=self.config.scratch_dir,
            keep=self.config.keep_scratch,
            modules_dir=self.config.modules_dir,
            timeout=self.config.network_timeout,
            attempts=self.config.network_attempts,
        )

    def _push(self, scratch: Scratch, result: SyncResult, commit, name: str, ref: str) -> None:
        scratch.push(commit, name, ref)
        result.pushed.append(f"{name} {ref} {commit.hexsha}")

    def initial_import(self, scratch: Scratch, rev: str, repo_path: Path) -> SyncResult:
        """Create one repository per module holding only that module's history."""
        console.print(f"\n[bold]Initial import of {rev}[/bold]\n")
        result = SyncResult()

        central_commit = scratch.transfer(rev, repo_path)
        modules = scratch.create_remote_projects(self.config.central, central_commit.hexsha)

        for module in modules:
            console.print(f"[bold]module {module}[/bold]")
            branch = f"initial_{module}"
            scratch.call_git("branch", "-f", branch, central_commit.hexsha)

            isolated = self.history_filter.isolate(scratch.repo, branch, module)
            self._push(scratch, result, isolated, module, self.branch_ref)

        self._print_summary(result)
        return result

    def central_submit(self, scratch: Scratch, rev: str, repo_path: Path) -> SyncResult:
        """Push a central revision into every module whose content changed."""
        console.print(f"\n[bold]Central submit of {rev}[/bold]\n")
        result = SyncResult()

        central_commit = scratch.transfer(rev, repo_path)
        modules = scratch.create_remote_projects(self.config.central, central_commit.hexsha)
        central_tree = central_commit.tree

        for module in modules:
            console.print(f"[bold]module {module}[/bold]")
            module_master = scratch.ensure_tracking(module, self.config.branch)

            new_tree = subtree_at(central_tree, module)
            if new_tree is None:
                raise SubtreeLookupFailure(f"{module} not found in {central_commit.hexsha}")

            # equal ids mean equal content
            if new_tree.binsha == module_master.tree.binsha:
                console.print(f"  [dim]{module} is up to date[/dim]")
                result.skipped.append(module)
                continue

            console.print(f"  {module} is behind, updating")
            module_commit = rewrite_commit(scratch.repo, central_commit, [module_master], new_tree)
            self._push(scratch, result, module_commit, module, self.branch_ref)

        self._print_summary(result)
        return result

    def module_review_upload(
        self,
        scratch: Scratch,
        rev: str,
        module: str,
        repo_path: Path = Path("."),
    ) -> SyncResult:
        """
        Replay the module commits after the tracked module branch onto central.

        The rewritten chain is pushed to the central review ref. A revision
        that does not build on the module branch is not uploaded; the result
        is still successful and carries a warning so the caller can rebase
        and retry.
        """
        console.print(f"\n[bold]Review upload of {rev} for module {module}[/bold]\n")
        split_module_path(module)
        result = SyncResult()

        new = scratch.transfer(rev, repo_path)
        old = scratch.ensure_tracking(module, self.config.branch)

        try:
            self._check_ancestry(scratch, new, old)
        except AncestryViolation as e:
            console.print("[yellow]" + "=" * 59 + "[/yellow]")
            console.print("[yellow]======== Commit not based on master, rebase first! ========[/yellow]")
            console.print("[yellow]" + "=" * 59 + "[/yellow]")
            result.warnings.append(str(e))
            self._print_summary(result)
            return result

        commits = commit_range(scratch.repo, old, new)
        if not commits:
            result.warnings.append(f"Nothing to upload: {new.hexsha[:8]} is already on {module}")
            self._print_summary(result)
            return result

        console.print(f"rewrite {len(commits)} commits from {old.hexsha[:8]} to {new.hexsha[:8]}")
        parent = scratch.ensure_tracking(self.config.central, self.config.branch)
        for module_commit in commits:
            console.print(f"  rewrite {module_commit.hexsha[:8]}")
            tree = graft(scratch.repo, module, module_commit.tree, parent.tree)
            parent = rewrite_commit(scratch.repo, module_commit, [parent], tree)
            result.commit_mappings[module_commit.hexsha] = parent.hexsha

        console.print("\n[bold]Uploading to central for review[/bold]")
        self._push(scratch, result, parent, self.config.central, self.config.review_ref)

        self._print_summary(result)
        return result

    def _check_ancestry(self, scratch: Scratch, new, old) -> None:
        if not is_descendant(scratch.repo, new, old):
            raise AncestryViolation(
                f"{new.hexsha[:8]} is not based on {old.hexsha[:8]}, rebase first"
            )

    def _print_summary(self, result: SyncResult) -> None:
        """Print workflow summary."""
        console.print("\n[bold]Summary:[/bold]")

        console.print(f"  [green]✓ Pushed {len(result.pushed)} ref(s)[/green]")

        for record in result.pushed:
            console.print(f"    • {record}")

        if result.skipped:
            console.print(f"  Up to date: {', '.join(result.skipped)}")

        if result.warnings:
            console.print(f"  [yellow]Warnings: {len(result.warnings)}[/yellow]")
            for warning in result.warnings:
                console.print(f"    • {warning}")
