"""Custom exceptions for blob-mirror.

This module defines typed exceptions for better error handling and clearer
error messages throughout the sync pipeline.
"""

from typing import Iterable


class MirrorError(RuntimeError):
    """Base class for all blob-mirror errors."""
    pass


# Configuration Errors
class ConfigError(MirrorError):
    """Base class for configuration errors (fatal before the pipeline starts)."""
    pass


class UnknownPairingError(ConfigError):
    """Storage pairing identifier is not one of the known pairings."""

    def __init__(self, pairing: str, known: Iterable[str]):
        self.pairing = pairing
        self.known = sorted(known)
        super().__init__(
            f"Incorrect blob storage pairing identifier given! "
            f"Got '{pairing}', expected one of: {', '.join(self.known)}"
        )


class MissingCredentialsError(ConfigError):
    """Credentials for one side of a pairing are not set in the environment."""

    def __init__(self, side: str, variables: list):
        self.side = side
        self.variables = variables
        super().__init__(
            f"Missing {side} storage credentials. "
            f"Set {' and '.join(variables)} in the environment."
        )


class InvalidContainerArgumentError(ConfigError):
    """Container argument looks like a resume marker but has no ordinal."""

    def __init__(self, argument: str):
        self.argument = argument
        super().__init__(
            f"Cannot read a container ordinal from '{argument}'. "
            f"Use '...<ordinal>' or '...proj-<ordinal>' to resume."
        )


class InvalidSettingsError(ConfigError):
    """Settings file could not be read or failed validation."""
    pass


# Storage Errors
class StorageError(MirrorError):
    """Base class for object store failures."""
    pass


class ContainerNotFoundError(StorageError):
    """Container does not exist in the store."""

    def __init__(self, container: str):
        self.container = container
        super().__init__(f"Container not found: {container}")


class BlobNotFoundError(StorageError):
    """Blob does not exist in the store."""

    def __init__(self, container: str, name: str):
        self.container = container
        self.name = name
        super().__init__(f"Blob not found: {container}/{name}")


class TransferError(StorageError):
    """Reading or writing a blob stream failed."""
    pass


# Pipeline Errors
class StageError(MirrorError):
    """A task inside a pipeline stage failed.

    The original exception is chained as ``__cause__`` and kept on ``cause``.
    """

    def __init__(self, stage: str, identity: str, cause: BaseException):
        self.stage = stage
        self.identity = identity
        self.cause = cause
        super().__init__(f"{stage} failed for {identity}: {cause}")
