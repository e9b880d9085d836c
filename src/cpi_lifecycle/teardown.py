"""Teardown aggregation for lifecycle runs.

A TeardownAggregator collects one CleanupAction per acquired resource and,
when the run ends, executes all of them in reverse acquisition order no
matter how the run ended.

Error precedence (primary wins):
- A forward-phase (provisioning or verification) error that triggered the
  unwind is re-raised unchanged. Cleanup failures are logged and recorded
  but never replace it.
- If the forward phase succeeded, the first cleanup failure is raised as
  TeardownError, chained from its cause.

Cleanup is idempotent-tolerant: a ResourceNotFound raised while releasing
means the resource is already gone (e.g. deleting a VM removed its disks)
and counts as success.

Example:
    ```python
    async with TeardownAggregator() as teardown:
        vm_id = await provisioner.create_vm(..., teardown=teardown)
        disk_id = await provisioner.create_disk(2048, {}, vm_id, teardown=teardown)
    # disk and vm deleted here, in that order, on every exit path
    ```
"""

from __future__ import annotations

from types import TracebackType
from typing import Self
from uuid import uuid4

from cpi_lifecycle._logging import get_logger
from cpi_lifecycle.exceptions import (
    ErrorPhase,
    ErrorRecord,
    LifecycleStateError,
    ResourceNotFound,
    TeardownError,
)
from cpi_lifecycle.lifecycle_types import CleanupAction, LifecycleContext, LifecycleState

logger = get_logger(__name__)


class TeardownAggregator:
    """Stack of deferred release operations with independent failure capture.

    Performs no retries and runs actions strictly one after another.

    Attributes:
        context: Lifecycle state and pending cleanup actions
        primary: Forward-phase error that triggered the unwind, if any
        secondary: Cleanup failures captured during unwind
    """

    def __init__(self, run_id: str | None = None) -> None:
        self.context = LifecycleContext(run_id=run_id or uuid4().hex[:12])
        self.primary: ErrorRecord | None = None
        self.secondary: list[ErrorRecord] = []
        self._unwound = False

    @property
    def run_id(self) -> str:
        return self.context.run_id

    @property
    def state(self) -> LifecycleState:
        return self.context.state

    @property
    def pending(self) -> list[CleanupAction]:
        """Cleanup actions not yet executed, in acquisition order."""
        return list(self.context.entries)

    @property
    def unwound(self) -> bool:
        return self._unwound

    def register(self, action: CleanupAction) -> None:
        """Push a cleanup action for a freshly acquired resource.

        Raises:
            LifecycleStateError: Handle already registered, or unwind already ran
        """
        if self._unwound:
            raise LifecycleStateError(
                f"Cannot register {action.name} for {action.handle} after teardown",
                context={"run_id": self.run_id, "resource_id": action.handle.id},
            )
        if action.handle in self.context.handles:
            raise LifecycleStateError(
                f"Cleanup already registered for {action.handle}",
                context={"run_id": self.run_id, "resource_id": action.handle.id},
            )
        self.context.entries.append(action)
        logger.debug(
            "Cleanup action registered",
            extra={
                "run_id": self.run_id,
                "action": action.name,
                "resource_kind": action.handle.kind.value,
                "resource_id": action.handle.id,
            },
        )

    def transition(self, new_state: LifecycleState) -> None:
        self.context.transition(new_state)

    async def unwind(self) -> list[ErrorRecord]:
        """Pop and execute every pending cleanup action.

        Each failure is caught, logged with resource kind, id and cause,
        and recorded; it never stops the remaining actions. Calling this
        again after it ran is a no-op.

        Returns:
            Cleanup failures captured by this call, in the order they occurred
        """
        if self._unwound:
            return []
        self._unwound = True

        logger.info(
            "Starting teardown",
            extra={"run_id": self.run_id, "state": self.state.value, "pending": len(self.context.entries)},
        )
        errors: list[ErrorRecord] = []
        released = 0

        while self.context.entries:
            action = self.context.entries.pop()
            extra = {
                "run_id": self.run_id,
                "action": action.name,
                "resource_kind": action.handle.kind.value,
                "resource_id": action.handle.id,
            }
            try:
                await action()
                released += 1
            except ResourceNotFound as e:
                # Already gone (e.g. removed together with its VM) - success
                released += 1
                logger.info("Resource already released", extra={**extra, "error": str(e)})
            except Exception as e:
                record = ErrorRecord(cause=e, phase=ErrorPhase.TEARDOWN, handle=action.handle)
                errors.append(record)
                logger.error(
                    f"Cleanup action {action.name} failed for {action.handle}",
                    extra={**extra, "error": str(e), "error_type": type(e).__name__},
                    exc_info=e,
                )

        self.context.transition(LifecycleState.TORN_DOWN)
        self.secondary.extend(errors)

        if errors:
            logger.warning(
                "Teardown completed with errors",
                extra={"run_id": self.run_id, "released": released, "failed": len(errors)},
            )
        else:
            logger.info("Teardown completed successfully", extra={"run_id": self.run_id, "released": released})
        return errors

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        """Unwind, then surface exactly one error.

        Returns:
            False so a primary error propagates unchanged

        Raises:
            TeardownError: No primary error and at least one cleanup failed
        """
        if exc_val is not None:
            self.primary = ErrorRecord.from_forward_phase(exc_val)
            await self.unwind()
            logger.warning(
                "Lifecycle run failed, re-raising primary error",
                extra={
                    "run_id": self.run_id,
                    "phase": self.primary.phase.value,
                    "error": str(exc_val),
                    "error_type": type(exc_val).__name__,
                    "discarded_teardown_errors": len(self.secondary),
                },
                exc_info=exc_val,
            )
            return False

        await self.unwind()
        if self.secondary:
            first = self.secondary[0]
            raise TeardownError(
                f"Teardown failed for {first.handle}: {first.cause}",
                record=first,
                context={
                    "run_id": self.run_id,
                    "resource_kind": first.handle.kind.value if first.handle else None,
                    "resource_id": first.handle.id if first.handle else None,
                    "failed": len(self.secondary),
                },
            ) from first.cause
        return False
