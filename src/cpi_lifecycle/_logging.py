"""Logging for cpi-lifecycle.

The package only attaches a NullHandler to the ``cpi_lifecycle`` logger.
Console output is opt-in through configure_logging(), which the test
session calls once; CPI_LIFECYCLE_LOG_LEVEL picks the level.

Lifecycle modules pass resource identifiers as ``extra`` fields instead of
formatting them into every message. The console formatter appends the ones
present, in a fixed order, so a teardown failure reads:

    ERROR [2026-02-25 10:02:54] cpi_lifecycle.teardown - Cleanup action
    delete-disk failed for disk:vol-1 run_id=3f2a9c1b7e44 action=delete-disk
    resource_kind=disk resource_id=vol-1 error_type=CloudError

Records are queued and written to stderr by a QueueListener thread through
click.echo, so logging from a coroutine never waits on the terminal. A
full queue drops records.
"""

import contextlib
import logging
import logging.handlers
import os
import queue

import click

LIBRARY_LOGGER_NAME: str = "cpi_lifecycle"
LOG_LEVEL_ENV: str = "CPI_LIFECYCLE_LOG_LEVEL"

# Rendering order of structured lifecycle fields
CONTEXT_FIELDS: tuple[str, ...] = (
    "scenario",
    "run_id",
    "action",
    "vm_id",
    "disk_id",
    "disk_snapshot_id",
    "stemcell_id",
    "resource_kind",
    "resource_id",
    "error_type",
)

_FMT = "%(levelname)s [%(asctime)s] %(name)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"
_QUEUE_CAPACITY = 4096

_LEVEL_STYLES: dict[int, dict[str, object]] = {
    logging.CRITICAL: {"fg": "red", "bold": True},
    logging.ERROR: {"fg": "red"},
    logging.WARNING: {"fg": "yellow"},
}

logging.getLogger(LIBRARY_LOGGER_NAME).addHandler(logging.NullHandler())


def _env_level() -> int | None:
    """Level named by CPI_LIFECYCLE_LOG_LEVEL, or None when unset or unknown."""
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    return logging.getLevelNamesMapping().get(name) or None


if (_level := _env_level()) is not None:
    logging.getLogger(LIBRARY_LOGGER_NAME).setLevel(_level)


class LifecycleFormatter(logging.Formatter):
    """Formatter appending lifecycle ``extra`` fields as ``key=value`` pairs.

    Fields go after the message and before any traceback. Fields that are
    missing or None are left out.
    """

    def __init__(self) -> None:
        super().__init__(fmt=_FMT, datefmt=_DATEFMT)

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        line = super().formatMessage(record)
        context = [
            f"{name}={value}" for name in CONTEXT_FIELDS if (value := getattr(record, name, None)) is not None
        ]
        return " ".join([line, *context])


class _ConsoleHandler(logging.Handler):
    """Writes formatted records to stderr, colored by level.

    Called from the QueueListener thread. click.echo() drops the color
    codes when stderr is not a terminal.
    """

    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(LifecycleFormatter())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            style = _LEVEL_STYLES.get(record.levelno, {"dim": True})
            click.echo(click.style(self.format(record), **style), err=True)  # type: ignore[arg-type]
        except BlockingIOError:
            pass  # stderr saturated, drop
        except Exception:  # noqa: BLE001
            self.handleError(record)


class _QueuedConsoleHandler(logging.handlers.QueueHandler):
    """Enqueues records without blocking; a listener thread feeds _ConsoleHandler."""

    def __init__(self) -> None:
        records: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=_QUEUE_CAPACITY)
        super().__init__(records)
        self._listener = logging.handlers.QueueListener(records, _ConsoleHandler(), respect_handler_level=False)
        self._listener.start()

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # Same process: keep the record as is so extra fields and exc_info survive
        return record

    def enqueue(self, record: logging.LogRecord) -> None:
        with contextlib.suppress(queue.Full):
            self.queue.put_nowait(record)

    def close(self) -> None:
        self._listener.stop()
        super().close()


def get_logger(name: str) -> logging.Logger:
    """Module logger under the cpi_lifecycle hierarchy."""
    return logging.getLogger(name)


def configure_logging(*, level: int | str | None = None, quiet: bool = False) -> None:
    """Install the console handler on the library logger.

    Idempotent: a second call only adjusts the level.

    Args:
        level: Log level; defaults to CPI_LIFECYCLE_LOG_LEVEL when set
        quiet: Only errors; overrides level
    """
    lib_logger = logging.getLogger(LIBRARY_LOGGER_NAME)
    if not any(isinstance(h, _QueuedConsoleHandler) for h in lib_logger.handlers):
        lib_logger.addHandler(_QueuedConsoleHandler())

    if quiet:
        lib_logger.setLevel(logging.ERROR)
    elif level is not None:
        lib_logger.setLevel(level)
    elif (env_level := _env_level()) is not None:
        lib_logger.setLevel(env_level)


def shutdown_logging() -> None:
    """Remove the console handler, flushing queued records first."""
    lib_logger = logging.getLogger(LIBRARY_LOGGER_NAME)
    for handler in list(lib_logger.handlers):
        if isinstance(handler, _QueuedConsoleHandler):
            lib_logger.removeHandler(handler)
            handler.close()
