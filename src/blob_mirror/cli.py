"""CLI for blob-mirror."""

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from .config import SyncSettings, load_sync_settings
from .constants import MIRROR_VERSION
from .env_manager import PAIRINGS, resolve_pairing
from .errors import ConfigError
from .pipeline import PipelineDriver
from .progress import NullProgressReporter, RichProgressReporter
from .resolver import ContainerArgument, parse_container_argument
from .service_types import SyncReport
from .storage import make_store_pair
from .storage.base import ObjectStore
from .utils import plural


app = typer.Typer(help="""\
Mirror blob storage containers from a source account to a target account.
Copies every blob that is missing in the target or whose content hash
differs, with bounded concurrency per stage.""")

console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _debug_enabled(verbose: bool) -> bool:
    return verbose or bool(os.environ.get("DEBUG"))


def _configure_logging(verbose: bool) -> None:
    """Configure root logging; DEBUG with --verbose or DEBUG=1."""
    level = logging.DEBUG if _debug_enabled(verbose) else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("blob_mirror").setLevel(level)
    # The SDK logs every HTTP request at INFO
    logging.getLogger("azure").setLevel(logging.WARNING)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"blob-mirror {MIRROR_VERSION}")
        raise typer.Exit()


def _run_pipeline(
    source: ObjectStore,
    target: ObjectStore,
    settings: SyncSettings,
    argument: ContainerArgument,
    dry_run: bool,
    quiet: bool,
) -> SyncReport:
    if quiet:
        with PipelineDriver(source, target, settings, NullProgressReporter(), dry_run) as driver:
            return driver.run(argument)

    with RichProgressReporter(console) as progress:
        with PipelineDriver(source, target, settings, progress, dry_run) as driver:
            return driver.run(argument)


def _print_report(report: SyncReport) -> None:
    if report.dry_run:
        for container in report.containers:
            if container.blobs_to_copy:
                console.print(
                    f"  [yellow]→[/yellow] {container.container}: "
                    f"{plural(container.blobs_to_copy, 'blob')} would be copied"
                )
    console.print(f"[dim]{report.summary}[/dim]")


@app.command()
def sync(
    pairing: str = typer.Argument(..., help=f"Storage pairing: {' or '.join(PAIRINGS)}"),
    container: Optional[str] = typer.Argument(
        None,
        help="Container to sync, or '...<ordinal>' to sync all containers from that ordinal",
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML settings file"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be copied without copying"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide progress bars"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and full tracebacks"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Sync one container, or every proj-<ordinal> container, to the target.

    Examples:
        blob-mirror storage                 # All proj-* containers
        blob-mirror storage proj-42         # Only proj-42
        blob-mirror storage ...42           # proj-42 and every later ordinal
        blob-mirror cdn --dry-run           # Report what would be copied
    """
    _configure_logging(verbose)

    try:
        settings = load_sync_settings(config)
        store_pairing = resolve_pairing(pairing, settings.provider)
        argument = parse_container_argument(container, settings.container_prefix)
        source, target = make_store_pair(store_pairing, settings)
    except (ConfigError, ValueError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(2)

    try:
        report = _run_pipeline(source, target, settings, argument, dry_run, quiet)
    except Exception as e:
        console.print(f"[red]✗ Sync failed:[/red] {e}")
        if _debug_enabled(verbose):
            console.print_exception()
        else:
            console.print("[dim]Run with DEBUG=1 for more details[/dim]")
        raise typer.Exit(1)

    _print_report(report)
    console.print("[green]DONE![/green]")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
