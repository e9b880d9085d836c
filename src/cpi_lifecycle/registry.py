"""In-process registry that records the agent settings a backend writes."""

from __future__ import annotations

import copy
from typing import Any

from cpi_lifecycle._logging import get_logger

logger = get_logger(__name__)


class RecordingRegistry:
    """Registry side channel that keeps every settings document in memory.

    Scenarios hand one of these to the backend factory and later compare
    what the backend registered (e.g. per-network MAC addresses) against
    what the provider reports.

    Attributes:
        last_settings: Most recent settings document written, by any instance
    """

    def __init__(self) -> None:
        self._settings: dict[str, dict[str, Any]] = {}
        self.last_settings: dict[str, Any] | None = None
        self.update_count = 0

    def update_settings(self, instance_id: str, settings: dict[str, Any]) -> None:
        stored = copy.deepcopy(settings)
        self._settings[instance_id] = stored
        self.last_settings = stored
        self.update_count += 1
        logger.debug("Registry settings updated", extra={"instance_id": instance_id})

    def read_settings(self, instance_id: str) -> dict[str, Any] | None:
        return copy.deepcopy(self._settings.get(instance_id))

    def delete_settings(self, instance_id: str) -> None:
        self._settings.pop(instance_id, None)
        logger.debug("Registry settings deleted", extra={"instance_id": instance_id})

    def instances(self) -> list[str]:
        """Instance ids that currently have settings."""
        return list(self._settings)
