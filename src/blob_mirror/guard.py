"""Per-operation deduplication of logical identities."""

import logging
import threading
from collections import defaultdict
from enum import Enum
from typing import Dict, FrozenSet, Set

logger = logging.getLogger(__name__)


class GuardKind(str, Enum):
    """Kinds of operation an identity can be admitted for."""
    CONTAINER_CREATE = "container-create"
    CONTAINER_LISTING = "container-listing"
    EXISTENCE_CHECK = "existence-check"
    BLOB_STREAM = "blob-stream"


class IdentityGuard:
    """
    Admit each (kind, identity) pair at most once.

    Entries are never cleared: once admitted, an identity stays admitted for
    the lifetime of the guard, whether its operation is still running,
    finished or failed. A caller denied admission treats its operation as a
    no-op success; the admitted caller owns the real outcome.

    One guard is owned by each pipeline run and passed to the stages that
    need it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._admitted: Dict[GuardKind, Set[str]] = defaultdict(set)

    def try_admit(self, kind: GuardKind, identity: str) -> bool:
        """Request admission for an identity.

        Returns:
            True the first time the pair is requested, False afterwards
        """
        with self._lock:
            admitted = self._admitted[kind]
            if identity in admitted:
                denied = True
            else:
                admitted.add(identity)
                denied = False

        if denied:
            logger.debug(f"Skipping duplicate {kind.value} for {identity}")
        return not denied

    def admitted(self, kind: GuardKind) -> FrozenSet[str]:
        """Snapshot of identities admitted for a kind."""
        with self._lock:
            return frozenset(self._admitted[kind])
