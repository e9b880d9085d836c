"""Post-condition checks between lifecycle steps."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from tenacity import AsyncRetrying, before_sleep_log, retry_if_result, stop_after_attempt, wait_fixed

from cpi_lifecycle._logging import get_logger
from cpi_lifecycle.constants import DISK_METADATA_WHITELIST
from cpi_lifecycle.exceptions import MetadataPropagationError, VerificationError

if TYPE_CHECKING:
    from cpi_lifecycle.backend import CloudBackend
    from cpi_lifecycle.models import InterfaceInfo, NetworkSpec
    from cpi_lifecycle.settings import Settings

logger = get_logger(__name__)


class LifecycleVerifier:
    """Existence and metadata-propagation checks.

    Existence checks poll the backend: a freshly created resource may take
    a moment to show up and a deleted one a moment to disappear. Polling is
    bounded by Settings.verify_attempts and Settings.verify_interval_seconds.
    """

    def __init__(self, backend: CloudBackend, settings: Settings) -> None:
        self._backend = backend
        self._attempts = settings.verify_attempts
        self._interval = settings.verify_interval_seconds

    async def _eventually(self, check: Callable[[str], Awaitable[bool]], resource_id: str, expected: bool) -> bool:
        """Poll check(resource_id) until it returns expected or attempts run out.

        Backend exceptions are not retried.

        Returns:
            Last value returned by check
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._attempts),
            wait=wait_fixed(self._interval),
            retry=retry_if_result(lambda present: present is not expected),
            retry_error_callback=lambda state: state.outcome.result(),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
        )
        return await retrying(check, resource_id)

    async def expect_vm(self, vm_id: str) -> None:
        """Raises VerificationError unless the backend reports the VM."""
        logger.info(f"Checking VM existence vm_id={vm_id}", extra={"vm_id": vm_id})
        if not await self._eventually(self._backend.has_vm, vm_id, True):
            raise VerificationError(f"VM '{vm_id}' does not exist after creation", context={"vm_id": vm_id})

    async def expect_no_vm(self, vm_id: str) -> None:
        """Raises VerificationError while the backend still reports the VM."""
        logger.info(f"Checking VM absence vm_id={vm_id}", extra={"vm_id": vm_id})
        if await self._eventually(self._backend.has_vm, vm_id, False):
            raise VerificationError(f"VM '{vm_id}' still exists after deletion", context={"vm_id": vm_id})

    async def expect_disk(self, disk_id: str) -> None:
        """Raises VerificationError unless the backend reports the disk."""
        logger.info(f"Checking existence of disk disk_id={disk_id}", extra={"disk_id": disk_id})
        if not await self._eventually(self._backend.has_disk, disk_id, True):
            raise VerificationError(f"Disk '{disk_id}' does not exist", context={"disk_id": disk_id})

    async def expect_no_disk(self, disk_id: str) -> None:
        """Raises VerificationError while the backend still reports the disk."""
        logger.info(f"Checking disk absence disk_id={disk_id}", extra={"disk_id": disk_id})
        if await self._eventually(self._backend.has_disk, disk_id, False):
            raise VerificationError(f"Disk '{disk_id}' still exists after deletion", context={"disk_id": disk_id})

    @staticmethod
    def check_metadata_propagation(vm_metadata: Mapping[str, str], disk_metadata: Mapping[str, str]) -> None:
        """Check an attached disk inherited exactly the whitelisted VM metadata.

        Every whitelisted key (id, deployment, job, index) the VM carries must
        be on the disk with the same value; no other VM key/value pair may be.

        Raises:
            MetadataPropagationError: Disk metadata violates the rule
        """
        missing = {
            key: value
            for key, value in vm_metadata.items()
            if key in DISK_METADATA_WHITELIST and disk_metadata.get(key) != value
        }
        leaked = {
            key: value
            for key, value in vm_metadata.items()
            if key not in DISK_METADATA_WHITELIST and disk_metadata.get(key) == value
        }
        if missing or leaked:
            raise MetadataPropagationError(
                f"Disk metadata does not mirror VM metadata: "
                f"missing={sorted(missing)} leaked={sorted(leaked)}",
                missing=missing,
                leaked=leaked,
            )

    @staticmethod
    def check_interfaces_match_registry(
        interfaces: list[InterfaceInfo],
        registry_settings: Mapping[str, Any] | None,
        networks: NetworkSpec,
    ) -> dict[str, str]:
        """Correlate provider-reported MACs with the registered agent settings.

        For each manual network, the interface holding the network's IP must
        report the MAC registered under settings["networks"][name]["mac"].

        Returns:
            Network name -> MAC address

        Raises:
            VerificationError: Settings missing, interface missing, or MAC mismatch
        """
        if registry_settings is None:
            raise VerificationError("No registry settings were recorded for the VM")
        registered = registry_settings.get("networks", {})

        macs: dict[str, str] = {}
        for name, entry in networks.manual_networks().items():
            interface = next((i for i in interfaces if i.ip == entry.ip), None)
            if interface is None:
                raise VerificationError(
                    f"No interface with IP {entry.ip} for network '{name}'",
                    context={"network": name, "ip": entry.ip},
                )
            registered_mac = registered.get(name, {}).get("mac")
            if interface.mac != registered_mac:
                raise VerificationError(
                    f"MAC mismatch on network '{name}': provider={interface.mac} registry={registered_mac}",
                    context={"network": name, "provider_mac": interface.mac, "registry_mac": registered_mac},
                )
            macs[name] = interface.mac
        return macs
