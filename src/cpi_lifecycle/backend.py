"""Backend contract consumed by cpi-lifecycle.

Three collaborators are external to this package:

- CloudBackend: the pluggable provider interface under test. Every method
  is async; failures are reported by raising the taxonomy classes from
  cpi_lifecycle.exceptions (VMCreationFailed, CloudError, ResourceNotFound).
- CloudInspector: a direct, read-only view of provider state, used to
  check what the backend actually did (interfaces, attachments, ports).
- Registry: the metadata-registration side channel the backend writes
  agent settings (including per-network MAC addresses) to.

Timeouts and retries toward the provider belong to the backend.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cpi_lifecycle.config import LifecycleConfig
    from cpi_lifecycle.models import InterfaceInfo, ServerInfo, VolumeAttachment


@runtime_checkable
class CloudBackend(Protocol):
    """Provider interface translating resource intents into provider calls."""

    async def create_vm(
        self,
        agent_id: str,
        stemcell_id: str,
        resource_pool: dict[str, Any],
        networks: dict[str, dict[str, Any]],
        disk_locality: list[str],
        env: dict[str, Any],
    ) -> str: ...

    async def create_disk(self, size_mb: int, cloud_properties: dict[str, Any], vm_id: str | None) -> str: ...

    async def attach_disk(self, vm_id: str, disk_id: str) -> None: ...

    async def detach_disk(self, vm_id: str, disk_id: str) -> None: ...

    async def has_vm(self, vm_id: str) -> bool: ...

    async def has_disk(self, disk_id: str) -> bool: ...

    async def set_vm_metadata(self, vm_id: str, metadata: dict[str, str]) -> None: ...

    async def snapshot_disk(self, disk_id: str, metadata: dict[str, str]) -> str: ...

    async def delete_snapshot(self, snapshot_id: str) -> None: ...

    async def delete_disk(self, disk_id: str) -> None: ...

    async def delete_vm(self, vm_id: str) -> None: ...

    async def create_stemcell(self, image_path: str, cloud_properties: dict[str, Any]) -> str: ...

    async def delete_stemcell(self, stemcell_id: str) -> None: ...


@runtime_checkable
class CloudInspector(Protocol):
    """Read-only view of provider state."""

    async def list_servers(self) -> list[ServerInfo]: ...

    async def get_server(self, vm_id: str) -> ServerInfo | None: ...

    async def server_interfaces(self, vm_id: str) -> list[InterfaceInfo]: ...

    async def volume_attachments(self, vm_id: str) -> list[VolumeAttachment]: ...

    async def disk_metadata(self, disk_id: str) -> dict[str, str]: ...

    async def list_disks(self) -> list[str]: ...

    async def list_snapshots(self) -> list[str]: ...

    async def list_ports(self, device_id: str | None = None) -> list[str]: ...

    async def port_exists(self, port_id: str) -> bool: ...


@runtime_checkable
class Registry(Protocol):
    """Metadata-registration side channel."""

    def update_settings(self, instance_id: str, settings: dict[str, Any]) -> None: ...

    def read_settings(self, instance_id: str) -> dict[str, Any] | None: ...

    def delete_settings(self, instance_id: str) -> None: ...


BackendFactory = Callable[["LifecycleConfig", Registry], CloudBackend]
"""Builds a backend instance for one set of per-backend options."""
