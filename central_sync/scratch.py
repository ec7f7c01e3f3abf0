"""
Scratch workspace for central_sync workflows.

A scratch workspace is a bare repository in a throw-away directory that
holds one remote per module plus one for the central repository. Revisions
from external working copies are force-pushed into it, rewritten there, and
pushed out to the hosts. It is meant to be used as a context manager so the
directory is removed on every exit path.
"""

import shutil
import tempfile
from pathlib import Path

from git import Commit, Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from rich.console import Console
from rich.markup import escape

from .errors import (
    NetworkError,
    PushError,
    RevisionParseError,
    TrackingNotFound,
)
from .git_ops import discover_modules, resolve_commit
from .host import RepoHost

console = Console()

TRANSFER_BRANCH = "central-sync-transfer"


class Scratch:
    """Transient bare repository coordinating module and central remotes."""

    def __init__(
        self,
        host: RepoHost,
        path: Path | None = None,
        keep: bool = False,
        modules_dir: str = "modules",
        timeout: float | None = None,
        attempts: int = 1,
    ):
        self.host = host
        self.modules_dir = modules_dir
        self.timeout = timeout
        self.attempts = max(1, attempts)
        self._requested_path = Path(path).resolve() if path else None
        self._keep = keep
        self._created_dir = False
        self.path: Path | None = None
        self.repo: Repo | None = None

    def __enter__(self) -> "Scratch":
        if self._requested_path is None:
            self.path = Path(tempfile.mkdtemp(prefix="central_sync_"))
            self._created_dir = True
        else:
            self.path = self._requested_path
            self._created_dir = not self.path.exists()
            self.path.mkdir(parents=True, exist_ok=True)

        self.repo = Repo.init(self.path, bare=True)
        console.print(f"[dim]scratch repository at {self.path}[/dim]")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.repo is not None:
            self.repo.close()
        if self._created_dir and not self._keep and self.path is not None:
            shutil.rmtree(self.path, ignore_errors=True)

    def call_git(self, *args: str, network: bool = False) -> str:
        """Run a git subcommand against the scratch repository."""
        console.print(f"[dim]  git {' '.join(args)} (GIT_DIR={self.path})[/dim]")
        cmd, *rest = args
        kwargs = {}
        if network and self.timeout:
            kwargs["kill_after_timeout"] = self.timeout

        attempts = self.attempts if network else 1
        for attempt in range(1, attempts + 1):
            try:
                output = getattr(self.repo.git, cmd.replace("-", "_"))(*rest, **kwargs)
                break
            except GitCommandError:
                if attempt == attempts:
                    raise
                console.print(
                    f"[yellow]  git {cmd} failed (attempt {attempt}/{attempts}), retrying[/yellow]"
                )
        if output:
            console.print(f"[dim]{escape(output)}[/dim]")
        return output

    def ensure_tracking(self, name: str, branch: str) -> Commit:
        """
        Get the last fetched commit of ``name``'s ``branch``.

        Adds a remote for ``name`` at the host's URL if there is none yet,
        then fetches every remote.

        Raises:
            NetworkError: if fetching fails
            TrackingNotFound: if the branch does not exist on the remote
        """
        console.print(f"tracking remotes/{name}/{branch}")
        if name not in [remote.name for remote in self.repo.remotes]:
            url = self.host.remote_url(name)
            console.print(f"  create remote (name: {name}, url: {url})")
            self.repo.create_remote(name, url)

        try:
            self.call_git("fetch", "--all", network=True)
        except GitCommandError as e:
            raise NetworkError(f"Could not fetch remotes: {e.stderr.strip()}") from e

        try:
            return resolve_commit(self.repo, f"refs/remotes/{name}/{branch}")
        except RevisionParseError as e:
            raise TrackingNotFound(f"No tracking branch remotes/{name}/{branch}") from e

    def transfer(self, rev: str, source: Path) -> Commit:
        """
        Copy ``rev`` from the working copy at ``source`` into the scratch repository.

        The revision is force-pushed through a temporary branch, so whatever
        the scratch repository held under that branch is overwritten.
        """
        console.print(f"---> transfer {rev} from {source}")
        try:
            source_repo = Repo(source, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RevisionParseError(f"Not a valid git repository: {source}") from e

        with source_repo:
            commit = resolve_commit(source_repo, rev)
            try:
                source_repo.git.branch("-f", TRANSFER_BRANCH, commit.hexsha)
                source_repo.git.push(
                    "--force",
                    str(self.path),
                    f"{TRANSFER_BRANCH}:refs/heads/{TRANSFER_BRANCH}",
                )
            except GitCommandError as e:
                raise PushError(f"Could not transfer {rev}: {e.stderr.strip()}") from e
            finally:
                if TRANSFER_BRANCH in [head.name for head in source_repo.heads]:
                    source_repo.git.branch("-D", TRANSFER_BRANCH)
        console.print("<--- transfer done")

        return resolve_commit(self.repo, commit.hexsha)

    def push(self, commit: Commit, name: str, target_ref: str) -> None:
        """Push ``commit`` to ``target_ref`` of the remote ``name``."""
        self.repo.head.set_reference(commit)
        url = self.host.remote_url(name)
        try:
            self.call_git("push", url, f"HEAD:{target_ref}", network=True)
        except GitCommandError as e:
            raise PushError(
                f"Could not push {commit.hexsha[:8]} to {name} {target_ref}: {e.stderr.strip()}"
            ) from e
        console.print(f"  [green]✓[/green] pushed {commit.hexsha[:8]} to {name} {target_ref}")

    def discover_modules(self, rev: str) -> list[str]:
        """List module paths at ``rev`` in the scratch repository."""
        return discover_modules(self.repo, rev, self.modules_dir)

    def create_remote_projects(self, central: str, rev: str) -> list[str]:
        """Make sure every module found at ``rev`` has a project on the host."""
        console.print(
            f"create projects for {central} ({self.host.remote_url(central)}) "
            f"from scratch repository {self.path}"
        )
        modules = self.discover_modules(rev)
        for module in modules:
            self.host.create_project(module)
        return modules
