"""Lifecycle state machine and cleanup bookkeeping types."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from cpi_lifecycle._logging import get_logger
from cpi_lifecycle.exceptions import LifecycleStateError
from cpi_lifecycle.models import ResourceHandle

logger = get_logger(__name__)


class LifecycleState(str, Enum):
    """States of a single lifecycle run."""

    UNPROVISIONED = "unprovisioned"
    VM_CREATED = "vm_created"
    DISK_CREATED = "disk_created"
    DISK_REUSED = "disk_reused"
    ATTACHED = "attached"
    DETACHED = "detached"
    SNAPSHOT_TAKEN = "snapshot_taken"
    TORN_DOWN = "torn_down"


# Every non-terminal state can go straight to TORN_DOWN (unwind on failure).
# DETACHED -> TORN_DOWN is also the normal exit when snapshots are disabled.
VALID_STATE_TRANSITIONS: dict[LifecycleState, set[LifecycleState]] = {
    LifecycleState.UNPROVISIONED: {LifecycleState.VM_CREATED, LifecycleState.TORN_DOWN},
    LifecycleState.VM_CREATED: {LifecycleState.DISK_CREATED, LifecycleState.DISK_REUSED, LifecycleState.TORN_DOWN},
    LifecycleState.DISK_CREATED: {LifecycleState.ATTACHED, LifecycleState.TORN_DOWN},
    LifecycleState.DISK_REUSED: {LifecycleState.ATTACHED, LifecycleState.TORN_DOWN},
    LifecycleState.ATTACHED: {LifecycleState.DETACHED, LifecycleState.TORN_DOWN},
    LifecycleState.DETACHED: {LifecycleState.SNAPSHOT_TAKEN, LifecycleState.TORN_DOWN},
    LifecycleState.SNAPSHOT_TAKEN: {LifecycleState.TORN_DOWN},
    LifecycleState.TORN_DOWN: set(),
}


@dataclass(frozen=True)
class CleanupAction:
    """Release operation bound to one resource handle.

    Attributes:
        handle: Resource the action releases
        name: Short action name for logging, e.g. "delete-vm"
        release: Zero-argument coroutine function performing the release
    """

    handle: ResourceHandle
    name: str
    release: Callable[[], Awaitable[None]]

    async def __call__(self) -> None:
        await self.release()


@dataclass
class LifecycleContext:
    """Handles allocated so far in one run, with their cleanup actions.

    Entries are kept in acquisition order; the teardown aggregator pops
    them from the end.
    """

    run_id: str
    state: LifecycleState = LifecycleState.UNPROVISIONED
    entries: list[CleanupAction] = field(default_factory=list)

    @property
    def handles(self) -> list[ResourceHandle]:
        return [action.handle for action in self.entries]

    def transition(self, new_state: LifecycleState) -> None:
        """Move to new_state, validating against VALID_STATE_TRANSITIONS.

        Raises:
            LifecycleStateError: If transition is invalid for current state
        """
        allowed_transitions = VALID_STATE_TRANSITIONS.get(self.state, set())
        if new_state not in allowed_transitions:
            raise LifecycleStateError(
                f"Invalid state transition: {self.state.value} -> {new_state.value}",
                context={
                    "run_id": self.run_id,
                    "current_state": self.state.value,
                    "target_state": new_state.value,
                    "allowed_transitions": sorted(s.value for s in allowed_transitions),
                },
            )

        old_state = self.state
        self.state = new_state
        logger.debug(
            "Lifecycle state transition",
            extra={"run_id": self.run_id, "old_state": old_state.value, "new_state": new_state.value},
        )
