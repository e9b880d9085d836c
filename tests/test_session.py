"""Tests for LifecycleSession."""

import pytest

from cpi_lifecycle.config import LifecycleConfig
from cpi_lifecycle.exceptions import CloudError, LifecycleStateError, TeardownError
from cpi_lifecycle.session import LifecycleSession
from cpi_lifecycle.settings import Settings
from tests.fake_cloud import FakeCloud

# ============================================================================
# Stemcell Upload
# ============================================================================


class TestSessionLifecycle:
    """The session uploads one stemcell and deletes it on exit."""

    async def test_stemcell_uploaded_and_deleted(self, settings: Settings, cloud: FakeCloud) -> None:
        """Stemcell exists for the session's lifetime only."""
        async with LifecycleSession(settings, cloud.backend, cloud) as session:
            assert session.stemcell_id in cloud.images
            stemcell_id = session.stemcell_id

        assert stemcell_id not in cloud.images
        with pytest.raises(LifecycleStateError):
            _ = session.stemcell_id

    async def test_stemcell_id_before_start(self, settings: Settings, cloud: FakeCloud) -> None:
        """Reading stemcell_id before start raises."""
        with pytest.raises(LifecycleStateError, match="not been started"):
            _ = LifecycleSession(settings, cloud.backend, cloud).stemcell_id

    async def test_start_idempotent(self, settings: Settings, cloud: FakeCloud) -> None:
        """A second start() uploads nothing."""
        session = LifecycleSession(settings, cloud.backend, cloud)
        await session.start()
        await session.start()
        assert cloud.calls.count("create_stemcell") == 1
        await session.__aexit__(None, None, None)
        assert cloud.images == set()

    async def test_exit_without_start(self, settings: Settings, cloud: FakeCloud) -> None:
        """Exiting a session that never started is a no-op."""
        session = LifecycleSession(settings, cloud.backend, cloud)
        assert await session.__aexit__(None, None, None) is False

    async def test_missing_stemcell_file(self, settings: Settings, cloud: FakeCloud) -> None:
        """A missing stemcell image fails the session start."""
        settings.stemcell_path.unlink()
        with pytest.raises(CloudError, match="not found"):
            async with LifecycleSession(settings, cloud.backend, cloud):
                pass

    async def test_body_error_wins_over_stemcell_cleanup(self, settings: Settings, cloud: FakeCloud) -> None:
        """An error in the session body is raised even if stemcell deletion fails."""
        cloud.fail("delete_stemcell", CloudError("image in use"))
        with pytest.raises(KeyError):
            async with LifecycleSession(settings, cloud.backend, cloud):
                raise KeyError("scenario")

    async def test_stemcell_cleanup_failure(self, settings: Settings, cloud: FakeCloud) -> None:
        """Stemcell deletion failure after a clean session raises TeardownError."""
        cloud.fail("delete_stemcell", CloudError("image in use"))
        with pytest.raises(TeardownError, match="image in use"):
            async with LifecycleSession(settings, cloud.backend, cloud):
                pass


# ============================================================================
# Provisioner Factory
# ============================================================================


class TestProvisionerFactory:
    """provisioner() builds a backend per option set."""

    def test_default_options(self, settings: Settings, cloud: FakeCloud) -> None:
        """Default config and a fresh registry."""
        provisioner = LifecycleSession(settings, cloud.backend, cloud).provisioner()
        assert provisioner.backend.config == LifecycleConfig()
        assert provisioner.settings is settings

    def test_custom_options(self, settings: Settings, cloud: FakeCloud) -> None:
        """Config and registry are passed through to the factory."""
        config = LifecycleConfig(boot_from_volume=True)
        registry = object()
        provisioner = LifecycleSession(settings, cloud.backend, cloud).provisioner(config, registry)  # type: ignore[arg-type]
        assert provisioner.backend.config is config
        assert provisioner.backend.registry is registry
