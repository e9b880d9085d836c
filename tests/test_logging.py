"""Tests for library logging setup and lifecycle field rendering."""

import logging
from collections.abc import Iterator

import pytest

from cpi_lifecycle._logging import (
    LIBRARY_LOGGER_NAME,
    LifecycleFormatter,
    _ConsoleHandler,
    _QueuedConsoleHandler,
    configure_logging,
    get_logger,
    shutdown_logging,
)
from cpi_lifecycle.exceptions import CloudError
from cpi_lifecycle.lifecycle_types import CleanupAction
from cpi_lifecycle.models import ResourceHandle, ResourceKind
from cpi_lifecycle.teardown import TeardownAggregator


@pytest.fixture
def library_logger() -> Iterator[logging.Logger]:
    """Library logger, restored to its original handlers and level afterwards."""
    logger = logging.getLogger(LIBRARY_LOGGER_NAME)
    handlers, level = list(logger.handlers), logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    if _queued_in(handlers) and not _queued_in(logger.handlers):
        configure_logging()
    logger.setLevel(level)


def _queued_in(handlers: list[logging.Handler]) -> list[logging.Handler]:
    return [h for h in handlers if isinstance(h, _QueuedConsoleHandler)]


# ============================================================================
# configure_logging / shutdown_logging
# ============================================================================


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_null_handler_attached(self, library_logger: logging.Logger) -> None:
        assert any(isinstance(h, logging.NullHandler) for h in library_logger.handlers)

    def test_test_session_installs_console_handler(self, library_logger: logging.Logger) -> None:
        """The session fixture has already configured console output."""
        assert len(_queued_in(library_logger.handlers)) == 1

    def test_adds_handler_once(self, library_logger: logging.Logger) -> None:
        """Repeated calls keep a single queued handler."""
        configure_logging()
        configure_logging()
        assert len(_queued_in(library_logger.handlers)) == 1

    def test_level(self, library_logger: logging.Logger) -> None:
        configure_logging(level=logging.DEBUG)
        assert library_logger.level == logging.DEBUG

    def test_quiet_wins(self, library_logger: logging.Logger) -> None:
        """quiet overrides level."""
        configure_logging(level=logging.DEBUG, quiet=True)
        assert library_logger.level == logging.ERROR

    def test_env_level(self, library_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without an explicit level, CPI_LIFECYCLE_LOG_LEVEL applies."""
        monkeypatch.setenv("CPI_LIFECYCLE_LOG_LEVEL", " warning ")
        configure_logging()
        assert library_logger.level == logging.WARNING

    def test_unknown_env_level_ignored(self, library_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch) -> None:
        library_logger.setLevel(logging.INFO)
        monkeypatch.setenv("CPI_LIFECYCLE_LOG_LEVEL", "chatty")
        configure_logging()
        assert library_logger.level == logging.INFO

    def test_shutdown_removes_handler(self, library_logger: logging.Logger) -> None:
        """shutdown_logging() removes the queued handler; configuring again restores it."""
        shutdown_logging()
        assert _queued_in(library_logger.handlers) == []

        configure_logging()
        assert len(_queued_in(library_logger.handlers)) == 1

    def test_module_loggers_in_hierarchy(self) -> None:
        """Module loggers are children of the library logger."""
        assert get_logger("cpi_lifecycle.teardown").parent is logging.getLogger(LIBRARY_LOGGER_NAME)


# ============================================================================
# Lifecycle Field Rendering
# ============================================================================


class TestLifecycleFormatter:
    """Structured extra fields are rendered after the message."""

    def test_fields_in_fixed_order(self) -> None:
        record = logging.makeLogRecord(
            {
                "name": "cpi_lifecycle.provisioner",
                "levelno": logging.INFO,
                "levelname": "INFO",
                "msg": "Created disk",
                "disk_id": "vol-1",
                "vm_id": "vm-1",
            }
        )
        rendered = LifecycleFormatter().format(record)
        assert rendered.endswith("cpi_lifecycle.provisioner - Created disk vm_id=vm-1 disk_id=vol-1")

    def test_plain_record_unchanged(self) -> None:
        """Records without lifecycle fields render as the message alone."""
        record = logging.makeLogRecord({"name": "cpi_lifecycle", "levelname": "INFO", "msg": "Starting"})
        assert LifecycleFormatter().format(record).endswith("cpi_lifecycle - Starting")

    def test_none_fields_skipped(self) -> None:
        record = logging.makeLogRecord({"name": "cpi_lifecycle", "levelname": "INFO", "msg": "Create", "vm_id": None})
        assert "vm_id" not in LifecycleFormatter().format(record)

    async def test_teardown_failure_rendered(self, caplog: pytest.LogCaptureFixture) -> None:
        """A failed cleanup action is rendered with its resource kind and id, then the traceback."""

        async def release() -> None:
            raise CloudError("volume busy")

        teardown = TeardownAggregator(run_id="run-1")
        teardown.register(CleanupAction(ResourceHandle(kind=ResourceKind.DISK, id="vol-1"), "delete-disk", release))
        with caplog.at_level(logging.ERROR, logger="cpi_lifecycle.teardown"):
            await teardown.unwind()

        record = next(r for r in caplog.records if r.levelno == logging.ERROR)
        rendered = LifecycleFormatter().format(record)
        first_line = rendered.splitlines()[0]

        assert "Cleanup action delete-disk failed for disk:vol-1" in first_line
        assert first_line.endswith(
            "run_id=run-1 action=delete-disk resource_kind=disk resource_id=vol-1 error_type=CloudError"
        )
        assert "CloudError: volume busy" in rendered


class TestConsoleHandler:
    """_ConsoleHandler writes formatted records to stderr."""

    def test_writes_fields_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        record = logging.makeLogRecord(
            {
                "name": "cpi_lifecycle.teardown",
                "levelno": logging.ERROR,
                "levelname": "ERROR",
                "msg": "Cleanup action delete-vm failed for vm:vm-1",
                "resource_kind": "vm",
                "resource_id": "vm-1",
            }
        )
        _ConsoleHandler().emit(record)

        err = capsys.readouterr().err
        assert "ERROR" in err
        assert "resource_kind=vm resource_id=vm-1" in err
