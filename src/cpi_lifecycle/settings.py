"""Session-wide configuration from environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cpi_lifecycle import constants


class Settings(BaseSettings):
    """Environment the lifecycle runs target.

    Constructed once per test session and passed by reference into the
    provisioner and the scenario matrix; read-only after construction.
    All settings can be overridden via environment variables with the
    CPI_LIFECYCLE_ prefix, e.g. CPI_LIFECYCLE_NET_ID=...

    Scenarios must use disjoint IPs and network ids when several sessions
    share one backend; choosing them is up to whoever sets these values.
    """

    model_config = SettingsConfigDict(
        env_prefix="CPI_LIFECYCLE_",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    # Stemcell uploaded once per session
    stemcell_path: Path

    # Compute
    instance_type: str
    instance_type_with_no_root_disk: str | None = None
    availability_zone: str | None = None

    # Networking
    net_id: str
    manual_ip: str
    floating_ip: str | None = None
    net_id_no_dhcp_1: str | None = None
    no_dhcp_manual_ip_1: str | None = None
    net_id_no_dhcp_2: str | None = None
    no_dhcp_manual_ip_2: str | None = None

    # Storage
    volume_type: str | None = None
    disk_size_mb: int = Field(default=constants.DEFAULT_DISK_SIZE_MB, ge=1)
    disable_snapshots: bool = False

    # Existence post-condition polling
    verify_attempts: int = Field(default=5, ge=1)
    verify_interval_seconds: float = Field(default=1.0, ge=0)
