"""Constants for blob-mirror."""

# Sync-eligible containers are named <prefix>-<ordinal>[-suffix]
CONTAINER_PREFIX = "proj"

# Argument prefix that selects whole-namespace mode from an ordinal
RESUME_MARKER = "..."

# Default per-stage concurrency ceilings
CONTAINER_CREATION_CONCURRENCY = 10
EXISTENCE_CHECK_CONCURRENCY = 10
STREAM_COPY_CONCURRENCY = 5
CONTAINER_SYNC_CONCURRENCY = 2

# Azure download chunk size
DEFAULT_CHUNK_SIZE = 4 * 1024 * 1024  # 4 MB

# Label of the namespace-level progress bar
NAMESPACE_PROGRESS_LABEL = "Azure Storage"

# Version
MIRROR_VERSION = "0.1.0"
