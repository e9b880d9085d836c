"""LifecycleSession - one stemcell shared by every run of a session.

Example:
    ```python
    settings = Settings()  # from CPI_LIFECYCLE_* environment variables
    async with LifecycleSession(settings, backend_factory, inspector) as session:
        runner = ScenarioRunner(session)
        results = await runner.run_all(build_matrix(settings))
    ```

Lifecycle:
    - __aenter__ uploads the heavy stemcell from Settings.stemcell_path
    - provisioner() builds a provisioner for per-scenario backend options
    - __aexit__ deletes the stemcell, with the same primary-wins error
      precedence as a lifecycle run
"""

from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING, Self

from cpi_lifecycle._logging import get_logger
from cpi_lifecycle.config import LifecycleConfig
from cpi_lifecycle.exceptions import LifecycleStateError
from cpi_lifecycle.provisioner import ResourceProvisioner
from cpi_lifecycle.registry import RecordingRegistry
from cpi_lifecycle.teardown import TeardownAggregator

if TYPE_CHECKING:
    from cpi_lifecycle.backend import BackendFactory, CloudInspector, Registry
    from cpi_lifecycle.settings import Settings

logger = get_logger(__name__)


class LifecycleSession:
    """Session-wide collaborators and the uploaded stemcell.

    Attributes:
        settings: Read-only session configuration
        inspector: Direct view of provider state
    """

    def __init__(
        self,
        settings: Settings,
        backend_factory: BackendFactory,
        inspector: CloudInspector,
    ) -> None:
        self.settings = settings
        self.inspector = inspector
        self._backend_factory = backend_factory
        self._teardown: TeardownAggregator | None = None
        self._stemcell_id: str | None = None

    @property
    def stemcell_id(self) -> str:
        """Id of the stemcell uploaded for this session."""
        if self._stemcell_id is None:
            raise LifecycleStateError("Session has not been started")
        return self._stemcell_id

    def provisioner(
        self,
        config: LifecycleConfig | None = None,
        registry: Registry | None = None,
    ) -> ResourceProvisioner:
        """Build a provisioner over a backend created with the given options."""
        backend = self._backend_factory(config or LifecycleConfig(), registry or RecordingRegistry())
        return ResourceProvisioner(backend, self.settings)

    async def start(self) -> None:
        """Upload the session stemcell. Idempotent."""
        if self._teardown is not None:
            return
        self._teardown = TeardownAggregator(run_id="session")
        self._stemcell_id = await self.provisioner().create_stemcell(
            str(self.settings.stemcell_path),
            {},
            teardown=self._teardown,
        )
        logger.info("Session started", extra={"stemcell_id": self._stemcell_id})

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        """Delete the session stemcell.

        Returns:
            False to propagate exceptions
        """
        teardown, self._teardown = self._teardown, None
        self._stemcell_id = None
        if teardown is None:
            return False
        return await teardown.__aexit__(exc_type, exc_val, exc_tb)
