"""
Configuration handling for central_sync.

Defines the configuration schema and provides methods for loading/saving
sync configuration from YAML files.
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, model_validator


DEFAULT_CONFIG_PATH = Path("central_sync.yaml")


class HostConfig(BaseModel):
    """Where module and central repositories are hosted."""

    kind: Literal["local", "gerrit"] = Field(
        default="local", description="Hosting backend"
    )
    # Local hosting: bare repositories under this directory
    base_dir: Path | None = Field(
        default=None,
        description="Directory holding <name>.git bare repositories (local hosting)",
    )
    # Gerrit hosting
    url_template: str | None = Field(
        default=None,
        description="Remote URL template, e.g. ssh://user@review:29418/{name}",
    )
    ssh_host: str | None = Field(
        default=None, description="Gerrit SSH host used to create projects"
    )
    ssh_port: int = Field(default=29418, description="Gerrit SSH port")
    ssh_user: str | None = Field(default=None, description="Gerrit SSH user")

    @model_validator(mode="after")
    def _check_kind_fields(self) -> "HostConfig":
        if self.kind == "local" and self.base_dir is None:
            raise ValueError("local hosting requires base_dir")
        if self.kind == "gerrit":
            if not self.url_template:
                raise ValueError("gerrit hosting requires url_template")
            if "{name}" not in self.url_template:
                raise ValueError("url_template must contain '{name}'")
            if not self.ssh_host:
                raise ValueError("gerrit hosting requires ssh_host")
        return self


class SyncConfig(BaseModel):
    """Main configuration for central_sync."""

    # Remote identity of the central repository
    central: str = Field(
        default="central", description="Name of the central repository on the host"
    )
    # Reserved top-level directory holding the modules
    modules_dir: str = Field(
        default="modules", description="Top-level directory containing modules"
    )
    branch: str = Field(
        default="master", description="Branch tracked in module and central repos"
    )
    review_ref: str = Field(
        default="refs/for/master",
        description="Review-intake ref on the central repository",
    )

    history_filter: Literal["filter-branch", "native"] = Field(
        default="filter-branch",
        description="How initial import isolates module history",
    )

    # Scratch workspace
    scratch_dir: Path | None = Field(
        default=None,
        description="Scratch repository location (a temporary directory if unset)",
    )
    keep_scratch: bool = Field(
        default=False, description="Keep the scratch repository after a workflow"
    )

    # Network behaviour for fetch and push
    network_timeout: float | None = Field(
        default=None, description="Seconds before a fetch/push is killed"
    )
    network_attempts: int = Field(
        default=1, ge=1, description="Attempts per fetch/push before giving up"
    )

    host: HostConfig = Field(..., description="Hosting backend settings")

    @model_validator(mode="after")
    def _check_modules_dir(self) -> "SyncConfig":
        if not self.modules_dir or "/" in self.modules_dir.strip("/"):
            raise ValueError("modules_dir must be a single path segment")
        self.modules_dir = self.modules_dir.strip("/")
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> "SyncConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(
                self.model_dump(mode="json"),
                f,
                default_flow_style=False,
                sort_keys=False,
            )


def create_default_config(
    base_dir: Path | None = None,
    url_template: str | None = None,
    ssh_host: str | None = None,
    ssh_user: str | None = None,
    central: str = "central",
) -> SyncConfig:
    """Create a default configuration with sensible defaults."""
    if url_template:
        host = HostConfig(
            kind="gerrit",
            url_template=url_template,
            ssh_host=ssh_host,
            ssh_user=ssh_user,
        )
    else:
        host = HostConfig(kind="local", base_dir=base_dir)

    return SyncConfig(central=central, host=host)
