"""Shared test fixtures and utilities."""

from pathlib import Path

import pytest

from blob_mirror.guard import IdentityGuard
from blob_mirror.progress import NullProgressReporter
from blob_mirror.storage.fs import FilesystemObjectStore
from blob_mirror.work_queue import BoundedWorkQueue


@pytest.fixture
def source(tmp_path):
    """Filesystem store standing in for the source account."""
    return FilesystemObjectStore(tmp_path / "source")


@pytest.fixture
def target(tmp_path):
    """Filesystem store standing in for the target account."""
    return FilesystemObjectStore(tmp_path / "target")


@pytest.fixture
def put_blob():
    """Factory fixture writing a blob (and its container) into a filesystem store."""
    def _put(store: FilesystemObjectStore, container: str, name: str, data: bytes = b"data") -> Path:
        path = store.root / container / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path
    return _put


@pytest.fixture
def make_container():
    """Factory fixture creating an empty container in a filesystem store."""
    def _make(store: FilesystemObjectStore, container: str) -> Path:
        path = store.root / container
        path.mkdir(parents=True, exist_ok=True)
        return path
    return _make


@pytest.fixture
def guard():
    return IdentityGuard()


@pytest.fixture
def progress():
    return NullProgressReporter()


@pytest.fixture
def queue():
    """A small work queue, shut down after the test."""
    q = BoundedWorkQueue(4, "test")
    yield q
    q.shutdown(wait=True, cancel_pending=True)


@pytest.fixture
def fs_env(tmp_path, monkeypatch):
    """Environment for the 'storage' pairing backed by filesystem stores."""
    source_root = tmp_path / "source"
    target_root = tmp_path / "target"
    source_root.mkdir(exist_ok=True)
    target_root.mkdir(exist_ok=True)

    monkeypatch.setenv("BLOB_MIRROR_PROVIDER", "fs")
    monkeypatch.setenv("HILCO_AZURE_SOURCE_STORAGE_ACCOUNT", str(source_root))
    monkeypatch.setenv("HILCO_AZURE_TARGET_STORAGE_ACCOUNT", str(target_root))
    return source_root, target_root
