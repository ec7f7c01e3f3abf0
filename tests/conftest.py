"""Pytest configuration and fixtures for central_sync tests."""

import tempfile
from pathlib import Path

import pytest
from git import Repo

from central_sync.config import HostConfig, SyncConfig
from central_sync.history import SubtreeHistory
from central_sync.host import LocalHost
from central_sync.syncer import ModuleSyncer


def configure_user(repo: Repo) -> None:
    """Set the commit identity used by test repositories."""
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()


def commit_files(repo_path: Path, files: dict[str, str], message: str) -> str:
    """Write ``files`` into the working copy, commit them and return the sha."""
    repo = Repo(repo_path)
    for rel_path, content in files.items():
        full_path = repo_path / rel_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content)
    repo.index.add(list(files))
    return repo.index.commit(message).hexsha


def read_blob(tree, path: str) -> str:
    """Read a text file from a tree."""
    return (tree / path).data_stream.read().decode()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def central_repo(temp_dir: Path):
    """Create a central working copy with two modules."""
    repo_path = temp_dir / "central"
    repo_path.mkdir()

    repo = Repo.init(repo_path)
    configure_user(repo)

    commit_files(
        repo_path,
        {
            "README.md": "# Central\n",
            "modules/foo/a.txt": "1",
            "modules/bar/b.txt": "1",
        },
        "Add foo and bar",
    )

    yield repo_path


@pytest.fixture
def host(temp_dir: Path):
    """Local host storing bare repositories under the temp dir."""
    return LocalHost(temp_dir / "hosted")


@pytest.fixture
def hosted_central(central_repo: Path, host: LocalHost):
    """Publish the central working copy's HEAD as the hosted central master."""
    host.create_project("central")
    Repo(central_repo).git.push(host.remote_url("central"), "HEAD:refs/heads/master")
    yield Repo(host.repo_path("central"))


@pytest.fixture
def config(temp_dir: Path):
    """Config using local hosting and in-process history isolation."""
    return SyncConfig(
        host=HostConfig(kind="local", base_dir=temp_dir / "hosted"),
        history_filter="native",
    )


@pytest.fixture
def syncer(config: SyncConfig, host: LocalHost):
    """Module syncer wired to the local host."""
    return ModuleSyncer(config, host=host, history_filter=SubtreeHistory())


@pytest.fixture
def scratch(syncer: ModuleSyncer):
    """A scratch workspace, removed after the test."""
    with syncer.open_scratch() as workspace:
        yield workspace
