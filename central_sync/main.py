"""
CLI entry point for central_sync.

Provides command-line interface for splitting, submitting to and uploading
reviews between a central repository and its module repositories.
"""

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from .config import DEFAULT_CONFIG_PATH, SyncConfig, create_default_config
from .errors import SyncError
from .git_ops import split_module_path
from .scratch import Scratch
from .syncer import ModuleSyncer, SyncResult

console = Console()

config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    help="Path to the sync configuration file",
)

repo_option = click.option(
    "--repo",
    "-r",
    "repo_path",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=Path("."),
    help="Working copy holding the revision",
)


def load_config(config_path: Path) -> SyncConfig:
    """Load the config file or exit with a message."""
    try:
        return SyncConfig.from_yaml(config_path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config_path}[/red]")
        console.print("Run 'central-sync init' to create a configuration file.")
        raise SystemExit(1)
    except Exception as e:
        console.print(f"[red]Error loading config: {escape(str(e))}[/red]")
        raise SystemExit(1)


def run_workflow(config_path: Path, workflow: str, *args) -> SyncResult:
    """Run a ModuleSyncer workflow in a fresh scratch workspace."""
    config = load_config(config_path)
    syncer = ModuleSyncer(config)
    try:
        with syncer.open_scratch() as scratch:
            return getattr(syncer, workflow)(scratch, *args)
    except SyncError as e:
        console.print(f"[red]{type(e).__name__}: {escape(str(e))}[/red]")
        raise SystemExit(1)


@click.group()
@click.version_option(package_name="central-sync")
def cli():
    """central-sync - keep a central repository and its module repositories in step."""
    pass


@cli.command()
@click.option(
    "--base-dir",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Directory holding bare repositories (local hosting)",
)
@click.option(
    "--url-template",
    default=None,
    help="Remote URL template with {name} (Gerrit hosting)",
)
@click.option("--ssh-host", default=None, help="Gerrit SSH host")
@click.option("--ssh-user", default=None, help="Gerrit SSH user")
@click.option("--central", default="central", help="Name of the central repository")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    help="Output config file path",
)
def init(
    base_dir: Path | None,
    url_template: str | None,
    ssh_host: str | None,
    ssh_user: str | None,
    central: str,
    output: Path,
):
    """Initialize a new sync configuration file."""
    try:
        config = create_default_config(
            base_dir=base_dir,
            url_template=url_template,
            ssh_host=ssh_host,
            ssh_user=ssh_user,
            central=central,
        )
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise SystemExit(1)

    config.to_yaml(output)
    console.print(f"[green]Created configuration file: {output}[/green]")
    console.print(f"  Host: {config.host.kind}")
    console.print(f"  Central: {config.central}")


@cli.command()
@config_option
@repo_option
@click.argument("rev", default="HEAD")
def modules(config_path: Path, repo_path: Path, rev: str):
    """List the modules declared at REV."""
    config = load_config(config_path)
    syncer = ModuleSyncer(config)
    try:
        with Scratch(syncer.host, modules_dir=config.modules_dir) as scratch:
            commit = scratch.transfer(rev, repo_path)
            found = scratch.discover_modules(commit.hexsha)
    except SyncError as e:
        console.print(f"[red]{type(e).__name__}: {escape(str(e))}[/red]")
        raise SystemExit(1)

    if not found:
        console.print("[yellow]No modules found.[/yellow]")
        return
    for module in found:
        console.print(f"  • {module} → {syncer.host.remote_url(module)}")


@cli.command(name="import")
@config_option
@repo_option
@click.argument("rev", default="HEAD")
def import_(config_path: Path, repo_path: Path, rev: str):
    """Split the central repository at REV into module repositories."""
    run_workflow(config_path, "initial_import", rev, repo_path)


@cli.command()
@config_option
@repo_option
@click.argument("rev", default="HEAD")
def submit(config_path: Path, repo_path: Path, rev: str):
    """Push the central revision REV into every changed module."""
    run_workflow(config_path, "central_submit", rev, repo_path)


@cli.command()
@config_option
@repo_option
@click.option(
    "--module",
    "-m",
    required=True,
    help="Module path in the central repository, e.g. modules/foo",
)
@click.argument("rev", default="HEAD")
def review(config_path: Path, repo_path: Path, module: str, rev: str):
    """Upload the module commits up to REV to central for review."""
    try:
        split_module_path(module)
    except SyncError as e:
        raise click.BadParameter(str(e), param_hint="--module")

    result = run_workflow(config_path, "module_review_upload", rev, module, repo_path)
    if result.warnings:
        console.print("[yellow]Nothing was uploaded.[/yellow]")


if __name__ == "__main__":
    cli()
