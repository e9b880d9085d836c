"""VM lifecycle run: create, attach, detach, snapshot, tear down.

Sequence of one run:
    1. create VM, verify it exists, set its metadata     -> vm_created
    2. reuse the given disk or create a fresh one        -> disk_reused / disk_created
       and verify the disk exists
    3. attach the disk, registering its detach           -> attached
    4. detach the disk                                   -> detached
    5. snapshot the disk (unless snapshots are disabled) -> snapshot_taken
    6. unwind: snapshot, attachment, disk, VM released   -> torn_down

Step 6 runs on every exit path through a TeardownAggregator, which
re-raises the first forward-phase error unchanged.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from cpi_lifecycle import constants
from cpi_lifecycle._logging import get_logger
from cpi_lifecycle.lifecycle_types import LifecycleState
from cpi_lifecycle.models import NetworkSpec, ResourceHandle, ResourceKind
from cpi_lifecycle.teardown import TeardownAggregator

if TYPE_CHECKING:
    from cpi_lifecycle.provisioner import ResourceProvisioner
    from cpi_lifecycle.settings import Settings

logger = get_logger(__name__)


@dataclass
class LifecycleHooks:
    """Optional callbacks invoked while the run's resources are alive.

    Hook exceptions are forward-phase errors: they abort the run, trigger
    the unwind, and are the error the run raises.
    """

    on_vm_created: Callable[[str], Awaitable[None]] | None = None
    on_disk_attached: Callable[[str, str], Awaitable[None]] | None = None
    on_disk_detached: Callable[[str, str], Awaitable[None]] | None = None


@dataclass
class LifecycleResult:
    """Outcome of a successful run."""

    run_id: str
    vm_id: str
    disk_id: str
    snapshot_id: str | None
    disk_reused: bool
    released: list[ResourceHandle] = field(default_factory=list)
    final_state: LifecycleState = LifecycleState.TORN_DOWN


class VmLifecycle:
    """Drives a provisioner through one full VM lifecycle.

    Usage:
        lifecycle = VmLifecycle(provisioner, settings)
        result = await lifecycle.run(stemcell_id, networks)
    """

    def __init__(self, provisioner: ResourceProvisioner, settings: Settings) -> None:
        self.provisioner = provisioner
        self.settings = settings

    def resource_pool(self, overrides: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Session instance type and availability zone, merged with overrides."""
        pool: dict[str, Any] = {"instance_type": self.settings.instance_type}
        if self.settings.availability_zone:
            pool["availability_zone"] = self.settings.availability_zone
        pool.update(overrides or {})
        return pool

    async def create_vm(
        self,
        stemcell_id: str,
        networks: NetworkSpec,
        disk_locality: Sequence[str] = (),
        resource_pool: Mapping[str, Any] | None = None,
        *,
        teardown: TeardownAggregator | None = None,
    ) -> str:
        """Create a VM, verify it exists, and tag it with the lifecycle metadata."""
        vm_id = await self.provisioner.create_vm(
            constants.DEFAULT_AGENT_ID,
            stemcell_id,
            self.resource_pool(resource_pool),
            networks,
            disk_locality,
            constants.DEFAULT_VM_ENV,
            teardown=teardown,
        )
        await self.provisioner.set_vm_metadata(vm_id, constants.VM_METADATA)
        return vm_id

    async def run(
        self,
        stemcell_id: str,
        networks: NetworkSpec,
        disk_id: str | None = None,
        disk_cloud_properties: Mapping[str, Any] | None = None,
        resource_pool: Mapping[str, Any] | None = None,
        hooks: LifecycleHooks | None = None,
    ) -> LifecycleResult:
        """Run the full lifecycle and release everything it allocated.

        Args:
            stemcell_id: Heavy or light stemcell to boot from
            networks: Validated network spec
            disk_id: Existing disk to reuse instead of creating one. It is
                deleted during teardown like a freshly created disk.
            disk_cloud_properties: Cloud properties for the created disk
            resource_pool: Overrides merged into the session resource pool
            hooks: Callbacks invoked while resources are alive

        Returns:
            LifecycleResult with the ids used and the handles released

        Raises:
            The first forward-phase error, unchanged; TeardownError if only
            the teardown failed.
        """
        hooks = hooks or LifecycleHooks()
        teardown = TeardownAggregator()
        disk_reused = disk_id is not None
        snapshot_id: str | None = None
        acquired: list[ResourceHandle] = []

        async with teardown:
            vm_id = await self.create_vm(
                stemcell_id,
                networks,
                [disk_id] if disk_id else [],
                resource_pool,
                teardown=teardown,
            )
            teardown.transition(LifecycleState.VM_CREATED)
            if hooks.on_vm_created is not None:
                await hooks.on_vm_created(vm_id)

            if disk_id is not None:
                logger.info(f"Reusing disk {disk_id} for VM vm_id {vm_id}", extra={"vm_id": vm_id, "disk_id": disk_id})
                teardown.register(self.provisioner.cleanup_action(ResourceKind.DISK, disk_id))
                teardown.transition(LifecycleState.DISK_REUSED)
                await self.provisioner.verifier.expect_disk(disk_id)
            else:
                disk_id = await self.provisioner.create_disk(
                    self.settings.disk_size_mb,
                    disk_cloud_properties,
                    vm_id,
                    teardown=teardown,
                )
                teardown.transition(LifecycleState.DISK_CREATED)

            await self.provisioner.attach_disk(vm_id, disk_id, teardown=teardown)
            teardown.transition(LifecycleState.ATTACHED)
            if hooks.on_disk_attached is not None:
                await hooks.on_disk_attached(vm_id, disk_id)

            await self.provisioner.detach_disk(vm_id, disk_id)
            teardown.transition(LifecycleState.DETACHED)
            if hooks.on_disk_detached is not None:
                await hooks.on_disk_detached(vm_id, disk_id)

            if not self.settings.disable_snapshots:
                snapshot_id = await self.provisioner.snapshot_disk(
                    disk_id,
                    constants.SNAPSHOT_METADATA,
                    teardown=teardown,
                )
                teardown.transition(LifecycleState.SNAPSHOT_TAKEN)

            acquired = teardown.context.handles

        return LifecycleResult(
            run_id=teardown.run_id,
            vm_id=vm_id,
            disk_id=disk_id,
            snapshot_id=snapshot_id,
            disk_reused=disk_reused,
            released=list(reversed(acquired)),
            final_state=teardown.state,
        )
