"""Selection of the containers to sync and creation of their targets."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from .constants import CONTAINER_PREFIX, RESUME_MARKER
from .errors import InvalidContainerArgumentError
from .guard import GuardKind, IdentityGuard
from .latch import fan_out
from .storage.base import ObjectStore
from .storage_models import AccessPolicy, ContainerInfo
from .work_queue import BoundedWorkQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContainerArgument:
    """Parsed container argument of the command line.

    ``container`` set means single-container mode; otherwise the whole
    namespace is synced starting at ordinal ``resume_from``.
    """
    container: Optional[str] = None
    resume_from: int = 0

    @property
    def single(self) -> bool:
        return self.container is not None


def parse_ordinal(name: str, prefix: str = CONTAINER_PREFIX) -> Optional[int]:
    """Extract the ordinal from a ``<prefix>-<ordinal>[-suffix]`` container name.

    Examples:
        "proj-42" -> 42
        "proj-7-archive" -> 7
        "assets" -> None

    Returns:
        The ordinal, or None if the name is not sync-eligible
    """
    match = re.match(rf"^{re.escape(prefix)}-(\d+)", name)
    if not match:
        return None
    return int(match.group(1))


def parse_container_argument(
    argument: Optional[str],
    prefix: str = CONTAINER_PREFIX,
) -> ContainerArgument:
    """Interpret the optional container argument.

    - absent: whole namespace from ordinal 0
    - ``...<ordinal>`` or ``...<prefix>-<ordinal>``: whole namespace from ordinal
    - anything else: that single container

    Raises:
        InvalidContainerArgumentError: If a resume marker carries no ordinal
    """
    if not argument:
        return ContainerArgument()

    if not argument.startswith(RESUME_MARKER):
        return ContainerArgument(container=argument)

    rest = argument[len(RESUME_MARKER):]
    if rest.isdigit():
        return ContainerArgument(resume_from=int(rest))

    ordinal = parse_ordinal(rest, prefix)
    if ordinal is None:
        raise InvalidContainerArgumentError(argument)
    return ContainerArgument(resume_from=ordinal)


class ContainerResolver:
    """Lists source containers, filters them and ensures their targets exist."""

    def __init__(
        self,
        source: ObjectStore,
        target: ObjectStore,
        guard: IdentityGuard,
        queue: BoundedWorkQueue,
        prefix: str = CONTAINER_PREFIX,
        resume_from: int = 0,
        dry_run: bool = False,
    ):
        self.source = source
        self.target = target
        self.guard = guard
        self.queue = queue
        self.prefix = prefix
        self.resume_from = resume_from
        self.dry_run = dry_run

    def is_eligible(self, container: ContainerInfo) -> bool:
        """Check the name pattern and the resume ordinal."""
        ordinal = parse_ordinal(container.name, self.prefix)
        return ordinal is not None and ordinal >= self.resume_from

    def resolve_sync_set(self) -> List[ContainerInfo]:
        """Resolve the containers to sync, in source listing order.

        Target creation for every eligible container is queued without
        waiting for earlier ones; the set is returned only once every
        creation has completed.

        Raises:
            StageError: If a container creation fails
        """
        containers = self.source.list_containers()
        eligible = [c for c in containers if self.is_eligible(c)]
        logger.info(
            f"{len(eligible)} of {len(containers)} source containers eligible "
            f"(prefix={self.prefix!r}, from ordinal {self.resume_from})"
        )

        if not eligible:
            return []

        if self.dry_run:
            logger.info("Dry run: not creating target containers")
            return eligible

        fan_out(
            self.queue,
            eligible,
            self.ensure_target,
            stage="container creation",
            identify=lambda c: c.name,
        )
        return eligible

    def ensure_target(self, container: ContainerInfo) -> bool:
        """Create the target container with public blob access if absent.

        Returns:
            True if this call created the container
        """
        if not self.guard.try_admit(GuardKind.CONTAINER_CREATE, container.name):
            return False
        created = self.target.create_container_if_absent(container.name, AccessPolicy.BLOB)
        if created:
            logger.info(f"Created target container {container.name}")
        return created
