"""Stable API for running a mirror pass from Python.

This module provides a minimal API surface for scripts and schedulers that
want to run a sync without going through the CLI. Credentials come from the
same environment variables the CLI reads.
"""

from pathlib import Path
from typing import Optional

from .config import load_sync_settings
from .env_manager import resolve_pairing
from .pipeline import PipelineDriver
from .progress import ProgressReporter
from .resolver import parse_container_argument
from .service_types import SyncReport
from .storage import make_store_pair


def mirror(
    pairing: str,
    container: Optional[str] = None,
    config_path: Optional[Path] = None,
    dry_run: bool = False,
    progress: Optional[ProgressReporter] = None,
) -> SyncReport:
    """Run one sync pass for a storage pairing.

    Args:
        pairing: Pairing identifier ("storage" or "cdn")
        container: Container name, resume marker ("...<ordinal>") or None
            for every eligible container
        config_path: Optional YAML settings file
        dry_run: Diff only; create and copy nothing
        progress: Optional progress reporter (silent by default)

    Returns:
        SyncReport for the run

    Raises:
        ConfigError: If the pairing, credentials, argument or settings are invalid
        StageError: If a stage task fails
        StorageError: If a listing fails

    Example:
        >>> from blob_mirror.api import mirror
        >>> report = mirror("storage", "...42")
        >>> print(report.summary)
        3 containers, 120 blobs checked, 7 copied (1.2 MB)
    """
    settings = load_sync_settings(config_path)
    store_pairing = resolve_pairing(pairing, settings.provider)
    argument = parse_container_argument(container, settings.container_prefix)
    source, target = make_store_pair(store_pairing, settings)

    with PipelineDriver(source, target, settings, progress, dry_run) as driver:
        return driver.run(argument)
