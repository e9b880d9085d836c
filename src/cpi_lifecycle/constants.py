"""Constants for cpi-lifecycle runs."""

from typing import Final

# ============================================================================
# Lifecycle Defaults
# ============================================================================

DEFAULT_AGENT_ID: Final[str] = "agent-007"
"""Agent id passed to every create_vm call."""

DEFAULT_DISK_SIZE_MB: Final[int] = 2048
"""Size of the persistent disk created during a lifecycle run."""

DEFAULT_VM_ENV: Final[dict[str, str]] = {"key": "value"}
"""Agent environment passed to create_vm."""

VM_METADATA_NAME: Final[str] = "openstack_cpi_spec/instance_id"
"""Value of the ``name`` metadata key set on every lifecycle VM.

Backends configured with human-readable VM names rename the VM to this."""

VM_METADATA: Final[dict[str, str]] = {
    "deployment": "deployment",
    "name": VM_METADATA_NAME,
}
"""Metadata set on every VM right after creation."""

SNAPSHOT_METADATA: Final[dict[str, str]] = {
    "deployment": "deployment",
    "job": "openstack_cpi_spec",
    "index": "0",
    "instance_id": "instance",
    "agent_id": "agent",
    "director_name": "Director",
    "director_uuid": "6d06b0cc-2c08-43c5-95be-f1b2dd247e18",
}
"""Metadata passed to snapshot_disk."""

# ============================================================================
# Metadata Propagation
# ============================================================================

DISK_METADATA_WHITELIST: Final[frozenset[str]] = frozenset({"id", "deployment", "job", "index"})
"""VM metadata keys an attached disk inherits. Every other key stays on the VM."""

TAGGED_VM_METADATA: Final[dict[str, str]] = {
    "id": "my-id",
    "deployment": "my-deployment",
    "job": "my-job",
    "index": "my-index",
    "some_key": "some_value",
}
"""Metadata applied before attach in metadata-propagation scenarios."""

# ============================================================================
# Devices and Identifiers
# ============================================================================

BOOT_VOLUME_DEVICE: Final[str] = "/dev/vda"
"""Device path a boot-from-volume root disk is mounted at."""

NON_EXISTING_DISK_ID: Final[str] = "non-existing-disk"
"""Disk id used to exercise detach of an unattached disk."""

INVALID_FLOATING_IP: Final[str] = "255.255.255.255"
"""Floating IP that no backend can allocate."""

INVALID_NETWORK_ID: Final[str] = "00000000-0000-0000-0000-000000000000"
"""Network id that no backend knows."""

NON_EXISTING_IMAGE_ID: Final[str] = "non-existing-id"
"""Image id referenced by a light stemcell that must be rejected."""

LIGHT_STEMCELL_SUFFIX: Final[str] = " light"
"""Suffix a backend appends to the image id of a light stemcell."""

ZERO_ROOT_DISK_MESSAGE: Final[str] = "root disk size of 0"
"""Message fragment for boot-from-volume on a flavor without a root disk."""
