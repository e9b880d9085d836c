"""Data models for cpi-lifecycle."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError, model_validator

from cpi_lifecycle.exceptions import NetworkSpecError


class ResourceKind(str, Enum):
    """Kinds of resources a lifecycle run allocates.

    An ATTACHMENT handle carries the disk id; its release detaches the disk
    from the VM it was attached to.
    """

    VM = "vm"
    DISK = "disk"
    ATTACHMENT = "attachment"
    SNAPSHOT = "snapshot"
    STEMCELL = "stemcell"


class ResourceHandle(BaseModel):
    """Opaque backend identifier plus the kind of resource it names."""

    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    id: str = Field(min_length=1)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


# ============================================================================
# Network Spec
# ============================================================================


class _NetworkBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    ip: str | None = None
    cloud_properties: dict[str, Any] = Field(default_factory=dict)
    use_dhcp: bool | None = None

    @property
    def net_id(self) -> str | None:
        return self.cloud_properties.get("net_id")


class DynamicNetwork(_NetworkBase):
    """Network whose address the backend picks."""

    type: Literal["dynamic"] = "dynamic"


class ManualNetwork(_NetworkBase):
    """Network with a caller-chosen private address."""

    type: Literal["manual"] = "manual"
    ip: str


class VipNetwork(_NetworkBase):
    """Floating IP bound to the VM's private address."""

    type: Literal["vip"] = "vip"


NetworkEntry = Annotated[DynamicNetwork | ManualNetwork | VipNetwork, Field(discriminator="type")]


class NetworkSpec(RootModel[dict[str, NetworkEntry]]):
    """Mapping of network name to a validated network entry.

    Validation happens at construction so that malformed combinations are
    rejected before any provisioning call is issued:
    - at least one network
    - at most one vip entry
    - manual entries carry an IP (enforced by ManualNetwork)

    Example:
        ```python
        spec = NetworkSpec.from_wire({
            "default": {"type": "manual", "ip": "10.0.0.5", "cloud_properties": {"net_id": "net-1"}},
            "vip": {"type": "vip", "ip": "172.24.4.10"},
        })
        spec.to_wire()  # wire-shaped dict for the backend
        ```
    """

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_entries(self) -> NetworkSpec:
        if not self.root:
            raise ValueError("network spec must contain at least one network")
        vips = [name for name, entry in self.root.items() if isinstance(entry, VipNetwork)]
        if len(vips) > 1:
            raise ValueError(f"network spec contains more than one vip network: {', '.join(sorted(vips))}")
        return self

    @classmethod
    def from_wire(cls, networks: Mapping[str, Mapping[str, Any]]) -> NetworkSpec:
        """Build a spec from its wire shape.

        Raises:
            NetworkSpecError: Spec is malformed
        """
        try:
            return cls.model_validate(dict(networks))
        except ValidationError as e:
            raise NetworkSpecError(
                f"Invalid network spec: {e.error_count()} error(s)",
                context={"errors": e.errors(include_url=False), "networks": sorted(networks)},
            ) from e

    def to_wire(self) -> dict[str, dict[str, Any]]:
        """Wire shape: name -> {type, ip?, cloud_properties, use_dhcp?}."""
        return {name: entry.model_dump(exclude_none=True) for name, entry in self.root.items()}

    def merged(self, other: NetworkSpec) -> NetworkSpec:
        """Return a new spec with other's networks added (validated again)."""
        return NetworkSpec.from_wire({**self.to_wire(), **other.to_wire()})

    def items(self) -> list[tuple[str, DynamicNetwork | ManualNetwork | VipNetwork]]:
        return list(self.root.items())

    def vip(self) -> VipNetwork | None:
        """The vip entry, if any."""
        for entry in self.root.values():
            if isinstance(entry, VipNetwork):
                return entry
        return None

    def manual_networks(self) -> dict[str, ManualNetwork]:
        return {name: entry for name, entry in self.root.items() if isinstance(entry, ManualNetwork)}

    def private_ip(self) -> str | None:
        """IP of the first manual network, if any."""
        for entry in self.manual_networks().values():
            return entry.ip
        return None


# ============================================================================
# Inspection Records
# ============================================================================


class ServerInfo(BaseModel):
    """Backend-side view of a VM, as reported by the inspector."""

    model_config = ConfigDict(frozen=True)

    vm_id: str
    name: str
    private_ip: str | None = None
    state: str = Field(description="Provider state, e.g. 'active', 'error', 'deleted'")
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def active(self) -> bool:
        return self.state.lower() == "active"


class InterfaceInfo(BaseModel):
    """One network interface of a VM."""

    model_config = ConfigDict(frozen=True)

    network: str
    ip: str
    mac: str


class VolumeAttachment(BaseModel):
    """A volume attached to a VM and the device it is mounted at."""

    model_config = ConfigDict(frozen=True)

    disk_id: str
    device: str
