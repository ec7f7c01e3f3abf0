"""Tests for host bindings."""

import subprocess
from pathlib import Path

import pytest
from git import Repo

from central_sync.config import HostConfig
from central_sync.errors import RemoteCreationError
from central_sync.host import GerritHost, LocalHost, build_host


class TestLocalHost:
    """Tests for LocalHost."""

    def test_remote_url(self, temp_dir: Path):
        """Test that module paths map to nested bare repositories."""
        host = LocalHost(temp_dir)
        assert host.remote_url("modules/foo") == str(temp_dir.resolve() / "modules" / "foo.git")

    def test_create_project(self, temp_dir: Path):
        """Test that a bare repository is created."""
        host = LocalHost(temp_dir)
        host.create_project("modules/foo")
        assert Repo(host.repo_path("modules/foo")).bare

    def test_create_project_idempotent(self, temp_dir: Path, central_repo: Path):
        """Test that creating an existing project keeps its content."""
        host = LocalHost(temp_dir / "hosted")
        host.create_project("central")
        Repo(central_repo).git.push(host.remote_url("central"), "HEAD:refs/heads/master")

        host.create_project("central")

        remote = Repo(host.repo_path("central"))
        assert remote.commit("refs/heads/master").hexsha == Repo(central_repo).head.commit.hexsha


class TestGerritHost:
    """Tests for GerritHost."""

    @pytest.fixture
    def host(self):
        return GerritHost(
            url_template="ssh://bot@review.example.com:29418/{name}",
            ssh_host="review.example.com",
            ssh_user="bot",
        )

    def test_remote_url(self, host: GerritHost):
        """Test URL template expansion."""
        assert host.remote_url("modules/foo") == "ssh://bot@review.example.com:29418/modules/foo"

    def test_create_project_command(self, host: GerritHost, monkeypatch):
        """Test the ssh command used to create a project."""
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)
        host.create_project("modules/foo")

        assert calls == [
            [
                "ssh",
                "-p",
                "29418",
                "bot@review.example.com",
                "gerrit",
                "create-project",
                "modules/foo",
            ]
        ]

    def test_existing_project_is_success(self, host: GerritHost, monkeypatch):
        """Test that an already existing project is not an error."""
        monkeypatch.setattr(
            subprocess,
            "run",
            lambda cmd, **kwargs: subprocess.CompletedProcess(
                cmd, 1, stdout="", stderr="fatal: Project Already Exists"
            ),
        )
        host.create_project("modules/foo")

    def test_failure_raises(self, host: GerritHost, monkeypatch):
        """Test that other failures raise RemoteCreationError."""
        monkeypatch.setattr(
            subprocess,
            "run",
            lambda cmd, **kwargs: subprocess.CompletedProcess(
                cmd, 1, stdout="", stderr="fatal: permission denied"
            ),
        )
        with pytest.raises(RemoteCreationError, match="permission denied"):
            host.create_project("modules/foo")

    def test_ssh_missing_raises(self, host: GerritHost, monkeypatch):
        """Test that a missing ssh binary raises RemoteCreationError."""

        def fake_run(cmd, **kwargs):
            raise FileNotFoundError("ssh")

        monkeypatch.setattr(subprocess, "run", fake_run)
        with pytest.raises(RemoteCreationError):
            host.create_project("modules/foo")


class TestBuildHost:
    """Tests for build_host."""

    def test_local(self, temp_dir: Path):
        host = build_host(HostConfig(kind="local", base_dir=temp_dir))
        assert isinstance(host, LocalHost)

    def test_gerrit(self):
        host = build_host(
            HostConfig(
                kind="gerrit",
                url_template="ssh://review:29418/{name}",
                ssh_host="review",
            )
        )
        assert isinstance(host, GerritHost)
        assert host.ssh_port == 29418
