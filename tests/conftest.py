"""Shared pytest fixtures for cpi-lifecycle tests."""

from collections.abc import AsyncGenerator, Iterator
from pathlib import Path

import pytest

from cpi_lifecycle._logging import configure_logging, shutdown_logging
from cpi_lifecycle.config import LifecycleConfig
from cpi_lifecycle.provisioner import ResourceProvisioner
from cpi_lifecycle.registry import RecordingRegistry
from cpi_lifecycle.session import LifecycleSession
from cpi_lifecycle.settings import Settings
from tests.fake_cloud import FakeBackend, FakeCloud

# ============================================================================
# Environment
# ============================================================================
# Ids and addresses the fake cloud knows about. Every scenario in the default
# matrix is runnable against them.

NET_ID = "net-private"
NET_ID_NO_DHCP_1 = "net-no-dhcp-1"
NET_ID_NO_DHCP_2 = "net-no-dhcp-2"
FLOATING_IP = "172.24.4.10"
INSTANCE_TYPE = "m1.small"
INSTANCE_TYPE_NO_ROOT_DISK = "m1.no-root-disk"
VOLUME_TYPE = "ssd"


@pytest.fixture(scope="session", autouse=True)
def lifecycle_logging() -> Iterator[None]:
    """Console logging for the test session; CPI_LIFECYCLE_LOG_LEVEL sets the level."""
    configure_logging()
    yield
    shutdown_logging()


@pytest.fixture
def stemcell_image(tmp_path: Path) -> Path:
    """Stemcell image file on disk."""
    image = tmp_path / "root.img"
    image.write_bytes(b"\x00" * 64)
    return image


@pytest.fixture
def settings(stemcell_image: Path) -> Settings:
    """Settings with every optional value set and no polling delay."""
    return Settings(
        stemcell_path=stemcell_image,
        instance_type=INSTANCE_TYPE,
        instance_type_with_no_root_disk=INSTANCE_TYPE_NO_ROOT_DISK,
        net_id=NET_ID,
        manual_ip="10.0.1.5",
        floating_ip=FLOATING_IP,
        net_id_no_dhcp_1=NET_ID_NO_DHCP_1,
        no_dhcp_manual_ip_1="10.0.2.5",
        net_id_no_dhcp_2=NET_ID_NO_DHCP_2,
        no_dhcp_manual_ip_2="10.0.3.5",
        volume_type=VOLUME_TYPE,
        verify_attempts=2,
        verify_interval_seconds=0,
    )


@pytest.fixture
def cloud() -> FakeCloud:
    """Empty fake cloud with the networks, flavors and floating IP above."""
    return FakeCloud(
        networks={NET_ID, NET_ID_NO_DHCP_1, NET_ID_NO_DHCP_2},
        flavors={INSTANCE_TYPE: 10, INSTANCE_TYPE_NO_ROOT_DISK: 0},
        floating_ips={FLOATING_IP},
        volume_types={VOLUME_TYPE},
    )


@pytest.fixture
def registry() -> RecordingRegistry:
    return RecordingRegistry()


@pytest.fixture
def backend(cloud: FakeCloud, registry: RecordingRegistry) -> FakeBackend:
    """Backend with default options."""
    return cloud.backend(LifecycleConfig(), registry)


@pytest.fixture
def provisioner(backend: FakeBackend, settings: Settings) -> ResourceProvisioner:
    return ResourceProvisioner(backend, settings)


@pytest.fixture
def stemcell_id(cloud: FakeCloud) -> str:
    """Image already present in the fake cloud."""
    cloud.images.add("img-session")
    return "img-session"


@pytest.fixture
async def session(settings: Settings, cloud: FakeCloud) -> AsyncGenerator[LifecycleSession, None]:
    """Started session; its stemcell is deleted on exit."""
    async with LifecycleSession(settings, cloud.backend, cloud) as started:
        yield started
