"""Tests for streamed blob copies."""

from unittest.mock import MagicMock

import pytest

from blob_mirror.copier import BlobStreamCopier
from blob_mirror.diffing import BlobDiffEngine
from blob_mirror.errors import ContainerNotFoundError, StageError, TransferError
from blob_mirror.guard import GuardKind
from blob_mirror.service_types import ContainerDiff
from blob_mirror.storage.fs import FilesystemObjectStore


@pytest.fixture
def copier(source, target, guard, queue, progress):
    return BlobStreamCopier(source, target, guard, queue, progress)


class TestCopy:
    """Test copying a single blob."""

    def test_copies_content(self, copier, source, target, put_blob, make_container):
        put_blob(source, "proj-1", "docs/readme.txt", b"hello world")
        make_container(target, "proj-1")

        written = copier.copy("proj-1", "docs/readme.txt")

        assert written == 11
        assert (target.root / "proj-1" / "docs" / "readme.txt").read_bytes() == b"hello world"
        assert target.blob_exists("proj-1", "docs/readme.txt").content_hash == \
            source.blob_exists("proj-1", "docs/readme.txt").content_hash

    def test_overwrites_stale_blob(self, copier, source, target, put_blob):
        put_blob(source, "proj-1", "a.txt", b"new")
        put_blob(target, "proj-1", "a.txt", b"old content")

        copier.copy("proj-1", "a.txt")

        assert (target.root / "proj-1" / "a.txt").read_bytes() == b"new"

    def test_passes_content_settings(self, source, guard, queue, progress, put_blob):
        put_blob(source, "proj-1", "style.css", b"body {}")
        target = MagicMock()
        copier = BlobStreamCopier(source, target, guard, queue, progress)

        copier.copy("proj-1", "style.css")

        container, name, chunks, settings = target.write_blob_stream.call_args.args
        assert (container, name) == ("proj-1", "style.css")
        assert settings.content_type == "text/css"
        assert settings.content_md5 == source.get_blob_metadata("proj-1", "style.css").content_hash

    def test_duplicate_copy_is_skipped(self, copier, guard, source, put_blob):
        put_blob(source, "proj-1", "a.txt")
        guard.try_admit(GuardKind.BLOB_STREAM, "proj-1/a.txt")

        assert copier.copy("proj-1", "a.txt") is None

    def test_advances_byte_progress_per_chunk(self, tmp_path, target, guard, queue, progress, put_blob,
                                               make_container):
        source = FilesystemObjectStore(tmp_path / "chunked", chunk_size=4)
        put_blob(source, "proj-1", "a.bin", b"0123456789")
        make_container(target, "proj-1")
        copier = BlobStreamCopier(source, target, guard, queue, progress)
        bar = progress.start("bytes", total=10)

        copier.copy("proj-1", "a.bin", bar)

        assert progress.completed[bar] == 10

    def test_missing_target_container(self, copier, source, put_blob):
        put_blob(source, "proj-1", "a.txt")

        with pytest.raises(ContainerNotFoundError):
            copier.copy("proj-1", "a.txt")


class TestCopyAll:
    """Test copying every blob selected by a diff."""

    def test_copies_selected_blobs(self, source, target, guard, queue, progress, put_blob, make_container):
        put_blob(source, "proj-2", "a.bin", b"x" * 100)
        put_blob(source, "proj-2", "b.bin", b"y" * 50)
        put_blob(target, "proj-2", "a.bin", b"x" * 100)
        diff = BlobDiffEngine(source, target, guard, queue, progress).diff("proj-2")
        copier = BlobStreamCopier(source, target, guard, queue, progress)

        copied, written = copier.copy_all(diff)

        assert (copied, written) == (1, 50)
        assert (target.root / "proj-2" / "b.bin").read_bytes() == b"y" * 50

    def test_progress_total_is_diff_bytes(self, source, target, guard, queue, progress, put_blob):
        for i in range(5):
            put_blob(source, "proj-3", f"{i}.bin", b"a" * (i + 1))
        put_blob(target, "proj-3", "keep.txt")
        diff = BlobDiffEngine(source, target, guard, queue, progress).diff("proj-3")
        copier = BlobStreamCopier(source, target, guard, queue, progress)
        before = set(progress.descriptions)

        copier.copy_all(diff)

        bars = [t for t in progress.descriptions if t not in before]
        assert len(bars) == 1
        assert progress.totals[bars[0]] == 15
        assert progress.completed[bars[0]] == 15
        assert progress.finished[bars[0]]

    def test_empty_diff_copies_nothing(self, progress):
        source = MagicMock()
        copier = BlobStreamCopier(source, MagicMock(), MagicMock(), MagicMock(), progress)

        assert copier.copy_all(ContainerDiff.nothing_to_do("proj-4")) == (0, 0)
        assert copier.copy_all(ContainerDiff(container="proj-4")) == (0, 0)

        source.read_blob_stream.assert_not_called()
        assert progress.descriptions == {}

    def test_copy_failure_fails_stage(self, source, guard, queue, progress, put_blob):
        put_blob(source, "proj-5", "a.txt")
        target = MagicMock()
        target.blob_exists.return_value.exists = False
        target.write_blob_stream.side_effect = TransferError("connection reset")
        diff = BlobDiffEngine(source, target, guard, queue, progress).diff("proj-5")
        copier = BlobStreamCopier(source, target, guard, queue, progress)

        with pytest.raises(StageError) as exc_info:
            copier.copy_all(diff)

        assert exc_info.value.stage == "blob copy"
        assert exc_info.value.identity == "proj-5/a.txt"
        assert isinstance(exc_info.value.__cause__, TransferError)
