"""Factory for creating object store instances."""

from pathlib import Path
from typing import Tuple

from ..config import SyncSettings
from ..env_manager import StoreCredentials, StorePairing
from .azure import AzureObjectStore
from .base import ObjectStore
from .fs import FilesystemObjectStore


def make_object_store(credentials: StoreCredentials, settings: SyncSettings) -> ObjectStore:
    """
    Create an object store for one side of a pairing.

    Args:
        credentials: Resolved credentials for the side
        settings: Sync settings (selects the provider)

    Returns:
        ObjectStore instance

    Raises:
        NotImplementedError: If provider is not supported
    """
    if settings.provider == "azure":
        return AzureObjectStore(
            account_name=credentials.account_name,
            account_key=credentials.account_key,
            connection_string=credentials.connection_string,
            chunk_size=settings.chunk_size,
        )

    elif settings.provider == "fs":
        # The account variable holds the root directory for fs stores
        return FilesystemObjectStore(Path(credentials.account_name))

    else:
        raise NotImplementedError(f"Provider {settings.provider} not supported")


def make_store_pair(pairing: StorePairing, settings: SyncSettings) -> Tuple[ObjectStore, ObjectStore]:
    """Create the (source, target) stores for a resolved pairing."""
    return (
        make_object_store(pairing.source, settings),
        make_object_store(pairing.target, settings),
    )
