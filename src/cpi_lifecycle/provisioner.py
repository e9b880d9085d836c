"""Thin wrapper over the backend contract.

ResourceProvisioner issues create/attach/detach/snapshot/delete calls,
logs every phase transition with the ids involved, and classifies
failures:

- Taxonomy errors raised by the backend (VMCreationFailed, CloudError,
  ResourceNotFound, ...) pass through unchanged.
- Anything else is wrapped in CloudError naming the operation.
- detach_disk absorbs ResourceNotFound: detaching a disk that is not
  attached is a no-op.

Creation calls do not trust the backend's return value on its own: the
resource's existence is checked through the LifecycleVerifier right after
creation. When a TeardownAggregator is passed, the release action is
registered before that check, so a resource that fails verification is
still released.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from functools import partial
from typing import TYPE_CHECKING, Any

import aiofiles.os

from cpi_lifecycle._logging import get_logger
from cpi_lifecycle.exceptions import CloudError, LifecycleError, ResourceNotFound
from cpi_lifecycle.lifecycle_types import CleanupAction
from cpi_lifecycle.models import NetworkSpec, ResourceHandle, ResourceKind
from cpi_lifecycle.verifier import LifecycleVerifier

if TYPE_CHECKING:
    from cpi_lifecycle.backend import CloudBackend
    from cpi_lifecycle.settings import Settings
    from cpi_lifecycle.teardown import TeardownAggregator

logger = get_logger(__name__)


@contextmanager
def _classified(operation: str, **context: Any) -> Iterator[None]:
    """Wrap unclassified backend failures in CloudError."""
    try:
        yield
    except LifecycleError:
        raise
    except Exception as e:
        raise CloudError(
            f"{operation} failed: {e}",
            context={**context, "operation": operation, "error_type": type(e).__name__},
        ) from e


class ResourceProvisioner:
    """Issues backend calls and registers their cleanup.

    Usage:
        provisioner = ResourceProvisioner(backend, settings)
        async with TeardownAggregator() as teardown:
            vm_id = await provisioner.create_vm(
                "agent-007", stemcell_id, {"instance_type": "m1.small"}, networks, [], {},
                teardown=teardown,
            )
    """

    def __init__(
        self,
        backend: CloudBackend,
        settings: Settings,
        verifier: LifecycleVerifier | None = None,
    ) -> None:
        self.backend = backend
        self.settings = settings
        self.verifier = verifier or LifecycleVerifier(backend, settings)

    def cleanup_action(self, kind: ResourceKind, resource_id: str) -> CleanupAction:
        """Build the release action for a resource of the given kind."""
        release = {
            ResourceKind.VM: (self.delete_vm, "delete-vm"),
            ResourceKind.DISK: (self.delete_disk, "delete-disk"),
            ResourceKind.SNAPSHOT: (self.delete_snapshot, "delete-snapshot"),
            ResourceKind.STEMCELL: (self.delete_stemcell, "delete-stemcell"),
        }
        func, name = release[kind]
        return CleanupAction(
            handle=ResourceHandle(kind=kind, id=resource_id),
            name=name,
            release=partial(func, resource_id),
        )

    # -------------------------------------------------------------------------
    # VMs
    # -------------------------------------------------------------------------

    async def create_vm(
        self,
        agent_id: str,
        stemcell_id: str,
        resource_pool: Mapping[str, Any],
        networks: NetworkSpec | Mapping[str, Mapping[str, Any]],
        disk_locality: Sequence[str] = (),
        env: Mapping[str, Any] | None = None,
        *,
        teardown: TeardownAggregator | None = None,
    ) -> str:
        """Create a VM and verify it exists.

        Raises:
            NetworkSpecError: networks is malformed (no backend call is made)
            VMCreationFailed: Backend rejected creation (bad floating IP, network id)
            CloudError: Other provider rejection
            VerificationError: Backend returned an id it does not report
        """
        spec = networks if isinstance(networks, NetworkSpec) else NetworkSpec.from_wire(networks)
        logger.info(
            f"Creating VM with stemcell_id={stemcell_id}",
            extra={"stemcell_id": stemcell_id, "agent_id": agent_id, "networks": sorted(spec.root)},
        )
        with _classified("create_vm", stemcell_id=stemcell_id):
            vm_id = await self.backend.create_vm(
                agent_id,
                stemcell_id,
                dict(resource_pool),
                spec.to_wire(),
                list(disk_locality),
                dict(env or {}),
            )
        if teardown is not None:
            teardown.register(self.cleanup_action(ResourceKind.VM, vm_id))
        logger.info(f"Created VM vm_id={vm_id}", extra={"vm_id": vm_id})

        await self.verifier.expect_vm(vm_id)
        return vm_id

    async def set_vm_metadata(self, vm_id: str, metadata: Mapping[str, str]) -> None:
        logger.info(f"Setting VM metadata vm_id={vm_id}", extra={"vm_id": vm_id, "keys": sorted(metadata)})
        with _classified("set_vm_metadata", vm_id=vm_id):
            await self.backend.set_vm_metadata(vm_id, dict(metadata))

    async def has_vm(self, vm_id: str) -> bool:
        with _classified("has_vm", vm_id=vm_id):
            return await self.backend.has_vm(vm_id)

    async def delete_vm(self, vm_id: str) -> None:
        """Delete a VM and verify it is gone.

        Raises:
            ResourceNotFound: VM does not exist
            VerificationError: VM still reported after deletion
        """
        logger.info(f"Deleting VM vm_id={vm_id}", extra={"vm_id": vm_id})
        with _classified("delete_vm", vm_id=vm_id):
            await self.backend.delete_vm(vm_id)
        await self.verifier.expect_no_vm(vm_id)

    # -------------------------------------------------------------------------
    # Disks
    # -------------------------------------------------------------------------

    async def create_disk(
        self,
        size_mb: int,
        cloud_properties: Mapping[str, Any] | None = None,
        vm_id: str | None = None,
        *,
        teardown: TeardownAggregator | None = None,
    ) -> str:
        """Create a disk near vm_id and verify it exists."""
        logger.info(f"Creating disk for VM vm_id={vm_id}", extra={"vm_id": vm_id, "size_mb": size_mb})
        with _classified("create_disk", vm_id=vm_id):
            disk_id = await self.backend.create_disk(size_mb, dict(cloud_properties or {}), vm_id)
        if teardown is not None:
            teardown.register(self.cleanup_action(ResourceKind.DISK, disk_id))
        logger.info(f"Created disk disk_id={disk_id}", extra={"vm_id": vm_id, "disk_id": disk_id})

        await self.verifier.expect_disk(disk_id)
        return disk_id

    async def has_disk(self, disk_id: str) -> bool:
        with _classified("has_disk", disk_id=disk_id):
            return await self.backend.has_disk(disk_id)

    async def attach_disk(
        self,
        vm_id: str,
        disk_id: str,
        *,
        teardown: TeardownAggregator | None = None,
    ) -> None:
        """Attach a disk, registering detach-disk with teardown.

        The detach action stays registered after a forward detach; releasing
        it then hits an unattached disk, which detach_disk absorbs. Being
        pushed after delete-disk, it runs before it, so an attached disk is
        never deleted in place.
        """
        logger.info(
            f"Attaching disk vm_id={vm_id} disk_id={disk_id}",
            extra={"vm_id": vm_id, "disk_id": disk_id},
        )
        with _classified("attach_disk", vm_id=vm_id, disk_id=disk_id):
            await self.backend.attach_disk(vm_id, disk_id)
        if teardown is not None:
            teardown.register(
                CleanupAction(
                    handle=ResourceHandle(kind=ResourceKind.ATTACHMENT, id=disk_id),
                    name="detach-disk",
                    release=partial(self.detach_disk, vm_id, disk_id),
                )
            )

    async def detach_disk(self, vm_id: str, disk_id: str) -> None:
        """Detach a disk; detaching a disk that is not attached is a no-op."""
        logger.info(
            f"Detaching disk vm_id={vm_id} disk_id={disk_id}",
            extra={"vm_id": vm_id, "disk_id": disk_id},
        )
        try:
            with _classified("detach_disk", vm_id=vm_id, disk_id=disk_id):
                await self.backend.detach_disk(vm_id, disk_id)
        except ResourceNotFound as e:
            logger.info(
                "Disk not attached, nothing to detach",
                extra={"vm_id": vm_id, "disk_id": disk_id, "error": str(e)},
            )

    async def delete_disk(self, disk_id: str) -> None:
        logger.info(f"Deleting disk disk_id={disk_id}", extra={"disk_id": disk_id})
        with _classified("delete_disk", disk_id=disk_id):
            await self.backend.delete_disk(disk_id)

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    async def snapshot_disk(
        self,
        disk_id: str,
        metadata: Mapping[str, str],
        *,
        teardown: TeardownAggregator | None = None,
    ) -> str:
        logger.info(f"Creating disk snapshot disk_id={disk_id}", extra={"disk_id": disk_id})
        with _classified("snapshot_disk", disk_id=disk_id):
            snapshot_id = await self.backend.snapshot_disk(disk_id, dict(metadata))
        if teardown is not None:
            teardown.register(self.cleanup_action(ResourceKind.SNAPSHOT, snapshot_id))
        logger.info(
            f"Created disk snapshot disk_snapshot_id={snapshot_id}",
            extra={"disk_id": disk_id, "disk_snapshot_id": snapshot_id},
        )
        return snapshot_id

    async def delete_snapshot(self, snapshot_id: str) -> None:
        logger.info(
            f"Deleting disk snapshot disk_snapshot_id={snapshot_id}",
            extra={"disk_snapshot_id": snapshot_id},
        )
        with _classified("delete_snapshot", disk_snapshot_id=snapshot_id):
            await self.backend.delete_snapshot(snapshot_id)

    # -------------------------------------------------------------------------
    # Stemcells
    # -------------------------------------------------------------------------

    async def create_stemcell(
        self,
        image_path: str,
        cloud_properties: Mapping[str, Any] | None = None,
        *,
        teardown: TeardownAggregator | None = None,
    ) -> str:
        """Upload a stemcell, or register a light one.

        With ``image_id`` in cloud_properties the backend references the
        existing image and returns "<image_id> light"; image_path is not read.

        Raises:
            CloudError: Image file missing, or referenced image does not exist
        """
        properties = dict(cloud_properties or {})
        light = "image_id" in properties
        if not light and not await aiofiles.os.path.exists(image_path):
            raise CloudError(f"Stemcell image '{image_path}' not found", context={"image_path": str(image_path)})

        logger.info(
            "Creating light stemcell" if light else "Uploading stemcell",
            extra={"image_path": str(image_path), "image_id": properties.get("image_id")},
        )
        with _classified("create_stemcell", image_path=str(image_path)):
            stemcell_id = await self.backend.create_stemcell(str(image_path), properties)
        if teardown is not None:
            teardown.register(self.cleanup_action(ResourceKind.STEMCELL, stemcell_id))
        logger.info(f"Created stemcell stemcell_id={stemcell_id}", extra={"stemcell_id": stemcell_id})
        return stemcell_id

    async def delete_stemcell(self, stemcell_id: str) -> None:
        logger.info(f"Deleting stemcell stemcell_id={stemcell_id}", extra={"stemcell_id": stemcell_id})
        with _classified("delete_stemcell", stemcell_id=stemcell_id):
            await self.backend.delete_stemcell(stemcell_id)
