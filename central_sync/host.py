"""
Host bindings: where module and central repositories live.

A host maps a repository name (a module path such as ``modules/foo`` or the
central repository's name) to a remote URL and can create the remote project.
Project creation is idempotent for every backend here.
"""

import subprocess
from pathlib import Path
from typing import Protocol

from git import Repo
from git.exc import GitCommandError
from rich.console import Console

from .config import HostConfig
from .errors import RemoteCreationError

console = Console()


class RepoHost(Protocol):
    """Capability interface for a repository hosting backend."""

    def remote_url(self, name: str) -> str:
        ...

    def create_project(self, name: str) -> None:
        ...


class LocalHost:
    """Hosts every repository as a bare repo under a local directory."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir).resolve()

    def repo_path(self, name: str) -> Path:
        """Get the on-disk location of the bare repository for ``name``."""
        return self.base_dir / f"{name.strip('/')}.git"

    def remote_url(self, name: str) -> str:
        return str(self.repo_path(name))

    def create_project(self, name: str) -> None:
        path = self.repo_path(name)
        if (path / "HEAD").exists():
            console.print(f"[dim]  project {name} already exists at {path}[/dim]")
            return
        try:
            path.mkdir(parents=True, exist_ok=True)
            Repo.init(path, bare=True)
        except (OSError, GitCommandError) as e:
            raise RemoteCreationError(f"Could not create project {name}: {e}") from e
        console.print(f"  created project {name} at {path}")


class GerritHost:
    """Hosts repositories on a Gerrit server, creating projects over SSH."""

    def __init__(
        self,
        url_template: str,
        ssh_host: str,
        ssh_port: int = 29418,
        ssh_user: str | None = None,
        timeout: float | None = None,
    ):
        self.url_template = url_template
        self.ssh_host = ssh_host
        self.ssh_port = ssh_port
        self.ssh_user = ssh_user
        self.timeout = timeout

    def remote_url(self, name: str) -> str:
        return self.url_template.format(name=name)

    def _ssh_target(self) -> str:
        if self.ssh_user:
            return f"{self.ssh_user}@{self.ssh_host}"
        return self.ssh_host

    def create_project(self, name: str) -> None:
        cmd = [
            "ssh",
            "-p",
            str(self.ssh_port),
            self._ssh_target(),
            "gerrit",
            "create-project",
            name,
        ]
        console.print(f"[dim]  $ {' '.join(cmd)}[/dim]")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise RemoteCreationError(f"Could not create project {name}: {e}") from e

        if result.returncode == 0:
            console.print(f"  created project {name}")
            return
        # Gerrit rejects duplicates; an existing project is what we wanted
        if "already exists" in result.stderr.lower():
            console.print(f"[dim]  project {name} already exists[/dim]")
            return
        raise RemoteCreationError(
            f"Could not create project {name}: {result.stderr.strip()}"
        )


def build_host(config: HostConfig, timeout: float | None = None) -> RepoHost:
    """Create the host binding described by a HostConfig."""
    if config.kind == "gerrit":
        return GerritHost(
            url_template=config.url_template,
            ssh_host=config.ssh_host,
            ssh_port=config.ssh_port,
            ssh_user=config.ssh_user,
            timeout=timeout,
        )
    return LocalHost(config.base_dir)
