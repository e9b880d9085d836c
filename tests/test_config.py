"""Unit tests for Settings and LifecycleConfig.

Tests field validation and environment variable loading.
No mocks - uses real environment variables.
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from cpi_lifecycle.config import LifecycleConfig
from cpi_lifecycle.settings import Settings

REQUIRED = {
    "stemcell_path": Path("/tmp/root.img"),
    "instance_type": "m1.small",
    "net_id": "net-1",
    "manual_ip": "10.0.0.5",
}

# ============================================================================
# Settings
# ============================================================================


class TestSettings:
    """Tests for Settings field validation."""

    def test_defaults(self) -> None:
        """Optional settings default to unset."""
        settings = Settings(**REQUIRED)
        assert settings.disk_size_mb == 2048
        assert settings.disable_snapshots is False
        assert settings.floating_ip is None
        assert settings.instance_type_with_no_root_disk is None
        assert settings.volume_type is None
        assert settings.verify_attempts == 5
        assert settings.verify_interval_seconds == 1.0

    def test_required_fields(self) -> None:
        """Stemcell path, instance type, net id and manual IP are required."""
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValidationError):
                Settings()  # type: ignore[call-arg]

    def test_disk_size_mb_range(self) -> None:
        """disk_size_mb must be >= 1."""
        assert Settings(**REQUIRED, disk_size_mb=1).disk_size_mb == 1
        with pytest.raises(ValidationError):
            Settings(**REQUIRED, disk_size_mb=0)

    def test_verify_attempts_range(self) -> None:
        """verify_attempts must be >= 1."""
        with pytest.raises(ValidationError):
            Settings(**REQUIRED, verify_attempts=0)
        with pytest.raises(ValidationError):
            Settings(**REQUIRED, verify_interval_seconds=-1)

    def test_frozen(self) -> None:
        """Settings are read-only after construction."""
        settings = Settings(**REQUIRED)
        with pytest.raises(ValidationError):
            settings.net_id = "other"  # type: ignore[misc]


class TestSettingsEnvironment:
    """Tests for CPI_LIFECYCLE_* environment variables."""

    def test_from_environment(self) -> None:
        """All settings load from prefixed env vars."""
        env = {
            "CPI_LIFECYCLE_STEMCELL_PATH": "/images/root.img",
            "CPI_LIFECYCLE_INSTANCE_TYPE": "m1.medium",
            "CPI_LIFECYCLE_NET_ID": "net-env",
            "CPI_LIFECYCLE_MANUAL_IP": "10.1.0.5",
            "CPI_LIFECYCLE_FLOATING_IP": "172.24.4.20",
            "CPI_LIFECYCLE_DISABLE_SNAPSHOTS": "true",
            "CPI_LIFECYCLE_DISK_SIZE_MB": "4096",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = Settings()  # type: ignore[call-arg]
        assert settings.stemcell_path == Path("/images/root.img")
        assert settings.instance_type == "m1.medium"
        assert settings.floating_ip == "172.24.4.20"
        assert settings.disable_snapshots is True
        assert settings.disk_size_mb == 4096

    def test_explicit_overrides_environment(self) -> None:
        """Constructor arguments win over env vars."""
        with patch.dict("os.environ", {"CPI_LIFECYCLE_NET_ID": "net-env"}):
            assert Settings(**REQUIRED).net_id == "net-1"

    def test_unprefixed_ignored(self) -> None:
        """Env vars without the prefix are not read."""
        with patch.dict("os.environ", {"FLOATING_IP": "172.24.4.20"}, clear=True):
            assert Settings(**REQUIRED).floating_ip is None


# ============================================================================
# LifecycleConfig
# ============================================================================


class TestLifecycleConfig:
    """Tests for LifecycleConfig field validation."""

    def test_defaults(self) -> None:
        """Image boot, metadata service, DHCP, generated VM names."""
        config = LifecycleConfig()
        assert config.boot_from_volume is False
        assert config.config_drive is None
        assert config.use_dhcp is True
        assert config.human_readable_vm_names is False

    def test_config_drive_values(self) -> None:
        """config_drive accepts cdrom or disk only."""
        assert LifecycleConfig(config_drive="cdrom").config_drive == "cdrom"
        assert LifecycleConfig(config_drive="disk").config_drive == "disk"
        with pytest.raises(ValidationError):
            LifecycleConfig(config_drive="usb")  # type: ignore[arg-type]

    def test_extra_fields_forbidden(self) -> None:
        """LifecycleConfig rejects unknown fields."""
        with pytest.raises(ValidationError):
            LifecycleConfig(unknown_field="value")  # type: ignore[call-arg]

    def test_equality(self) -> None:
        """Configs compare by value."""
        assert LifecycleConfig(use_dhcp=False) == LifecycleConfig(use_dhcp=False)
        assert LifecycleConfig(use_dhcp=False) != LifecycleConfig()
