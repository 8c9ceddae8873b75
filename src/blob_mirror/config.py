"""Sync settings and their loading from YAML."""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .constants import (
    CONTAINER_CREATION_CONCURRENCY,
    CONTAINER_PREFIX,
    CONTAINER_SYNC_CONCURRENCY,
    DEFAULT_CHUNK_SIZE,
    EXISTENCE_CHECK_CONCURRENCY,
    STREAM_COPY_CONCURRENCY,
)
from .errors import InvalidSettingsError

PROVIDER_ENV_VAR = "BLOB_MIRROR_PROVIDER"


class ConcurrencyLimits(BaseModel):
    """Maximum number of concurrently running operations per pipeline stage."""
    container_creation: int = Field(CONTAINER_CREATION_CONCURRENCY, ge=1)
    existence_check: int = Field(EXISTENCE_CHECK_CONCURRENCY, ge=1)
    stream_copy: int = Field(STREAM_COPY_CONCURRENCY, ge=1)
    container_sync: int = Field(CONTAINER_SYNC_CONCURRENCY, ge=1)


class SyncSettings(BaseModel):
    """
    Settings for one sync run.

    provider selects the object store backend:
    - "azure" (default): Azure Blob Storage accounts
    - "fs": local directories, for tests and dry runs
    """
    concurrency: ConcurrencyLimits = Field(default_factory=ConcurrencyLimits)
    container_prefix: str = CONTAINER_PREFIX
    provider: Literal["azure", "fs"] = "azure"
    chunk_size: int = Field(DEFAULT_CHUNK_SIZE, ge=1)


def load_sync_settings(path: Optional[Path] = None) -> SyncSettings:
    """Load sync settings, applying the provider override from the environment.

    The file may hold the settings at the top level or under a ``sync:`` key.

    Args:
        path: Optional YAML settings file

    Returns:
        Validated settings (defaults when no file is given)

    Raises:
        InvalidSettingsError: If the file is missing, unreadable or invalid
    """
    data = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise InvalidSettingsError(f"Settings file not found: {path}")
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise InvalidSettingsError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise InvalidSettingsError(f"Settings in {path} must be a mapping")
        data = data.get("sync", data)

    provider = os.environ.get(PROVIDER_ENV_VAR)
    if provider:
        data = {**data, "provider": provider.strip().lower()}

    try:
        return SyncSettings(**data)
    except ValidationError as e:
        raise InvalidSettingsError(f"Invalid sync settings: {e}") from e
