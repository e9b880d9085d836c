"""Per-backend configuration for cpi-lifecycle.

LifecycleConfig carries the options a backend instance is built with.
Scenarios differ in these options, so each scenario builds its own
backend through the BackendFactory while sharing one Settings object.

Example:
    ```python
    from cpi_lifecycle import LifecycleConfig

    config = LifecycleConfig(boot_from_volume=True, config_drive="cdrom", use_dhcp=False)
    backend = backend_factory(config, registry)
    ```
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class LifecycleConfig(BaseModel):
    """Options a backend instance is created with.

    Attributes:
        boot_from_volume: Boot VMs from a volume instead of the image.
            Requires a flavor root disk size or an explicit root_disk.size.
        config_drive: Deliver instance metadata on a config drive of this
            kind instead of the metadata service. None disables it.
        use_dhcp: Let manual networks acquire their address via DHCP.
        human_readable_vm_names: Rename VMs to the ``name`` metadata key.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    boot_from_volume: bool = Field(default=False, description="Boot VMs from a volume")
    config_drive: Literal["cdrom", "disk"] | None = Field(default=None, description="Config drive kind")
    use_dhcp: bool = Field(default=True, description="Use DHCP on manual networks")
    human_readable_vm_names: bool = Field(default=False, description="Name VMs after their metadata")
