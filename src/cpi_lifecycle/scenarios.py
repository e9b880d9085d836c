"""Scenario matrix: lifecycle runs across topologies, boot sources and faults.

Each Scenario picks a network topology, boot source, config-drive mode,
disk mode, stemcell source and an optional induced fault, plus the checks
to assert. ScenarioRunner drives the provisioner, verifier and teardown
aggregator through one full lifecycle per scenario.

Scenario-level resources (a pre-existing disk made on a throwaway VM, a VM
holding the floating IP, light stemcells) live in their own teardown
aggregator around the lifecycle run, so they are released even when the
run fails.

Runs are sequential. Scenarios sharing one backend must use disjoint IPs
and network ids, which come from Settings.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from cpi_lifecycle import constants
from cpi_lifecycle._logging import get_logger
from cpi_lifecycle.config import LifecycleConfig
from cpi_lifecycle.exceptions import (
    CloudError,
    LifecycleError,
    ScenarioCheckError,
    VMCreationFailed,
)
from cpi_lifecycle.lifecycle import LifecycleHooks, LifecycleResult, VmLifecycle
from cpi_lifecycle.models import NetworkSpec
from cpi_lifecycle.registry import RecordingRegistry
from cpi_lifecycle.teardown import TeardownAggregator

if TYPE_CHECKING:
    from cpi_lifecycle.provisioner import ResourceProvisioner
    from cpi_lifecycle.session import LifecycleSession
    from cpi_lifecycle.settings import Settings

logger = get_logger(__name__)


# ============================================================================
# Scenario Axes
# ============================================================================


class NetworkTopology(str, Enum):
    DYNAMIC = "dynamic"
    DYNAMIC_VIP = "dynamic_vip"
    MANUAL = "manual"
    MANUAL_VIP = "manual_vip"
    MULTI_MANUAL = "multi_manual"


class BootSource(str, Enum):
    IMAGE = "image"
    VOLUME = "volume"


class ConfigDriveMode(str, Enum):
    NONE = "none"
    CDROM = "cdrom"


class DiskMode(str, Enum):
    FRESH = "fresh"
    EXISTING = "existing"


class StemcellSource(str, Enum):
    HEAVY = "heavy"
    LIGHT = "light"


class InducedFault(str, Enum):
    NONE = "none"
    INVALID_FLOATING_IP = "invalid_floating_ip"
    INVALID_NETWORK_ID = "invalid_network_id"
    ZERO_ROOT_DISK = "zero_root_disk"
    ALREADY_DETACHED = "already_detached"


class Check(str, Enum):
    """Properties a scenario asserts."""

    RESIDUAL_ZERO = "residual_zero"
    METADATA_PROPAGATION = "metadata_propagation"
    MAC_REGISTRY = "mac_registry"
    PORT_RELEASE = "port_release"
    BOOT_VOLUME_DEVICE = "boot_volume_device"
    VM_NAME = "vm_name"
    DETACH_UNATTACHED = "detach_unattached"
    LIGHT_STEMCELL = "light_stemcell"
    ERROR_MESSAGE = "error_message"
    NO_ACTIVE_VM_WITH_IP = "no_active_vm_with_ip"


_VIP_TOPOLOGIES = frozenset({NetworkTopology.DYNAMIC_VIP, NetworkTopology.MANUAL_VIP})


class Scenario(BaseModel):
    """One row of the scenario matrix."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    topology: NetworkTopology = NetworkTopology.DYNAMIC
    boot_source: BootSource = BootSource.IMAGE
    config_drive: ConfigDriveMode = ConfigDriveMode.NONE
    disk_mode: DiskMode = DiskMode.FRESH
    stemcell: StemcellSource = StemcellSource.HEAVY
    fault: InducedFault = InducedFault.NONE
    zero_root_disk_flavor: bool = Field(default=False, description="Use the flavor without a root disk")
    root_disk_size_gb: int | None = Field(default=None, ge=1, description="Explicit root_disk.size")
    use_volume_type: bool = Field(default=False, description="Create the disk with Settings.volume_type")
    human_readable_vm_names: bool = False
    reassign_floating_ip: bool = Field(default=False, description="Hold the floating IP on another VM first")
    checks: frozenset[Check] = frozenset({Check.RESIDUAL_ZERO})

    @property
    def effective_checks(self) -> frozenset[Check]:
        """Declared checks plus the ones the induced fault implies."""
        implied: set[Check] = set()
        if self.fault in (InducedFault.INVALID_FLOATING_IP, InducedFault.INVALID_NETWORK_ID):
            implied.add(Check.ERROR_MESSAGE)
        if self.fault is InducedFault.INVALID_FLOATING_IP:
            implied.add(Check.NO_ACTIVE_VM_WITH_IP)
        if self.fault is InducedFault.ZERO_ROOT_DISK:
            implied.add(Check.ERROR_MESSAGE)
        if self.fault is InducedFault.ALREADY_DETACHED:
            implied.add(Check.DETACH_UNATTACHED)
        return self.checks | implied

    def lifecycle_config(self) -> LifecycleConfig:
        return LifecycleConfig(
            boot_from_volume=self.boot_source is BootSource.VOLUME,
            config_drive="cdrom" if self.config_drive is ConfigDriveMode.CDROM else None,
            use_dhcp=self.topology is not NetworkTopology.MULTI_MANUAL,
            human_readable_vm_names=self.human_readable_vm_names,
        )

    def resource_pool(self, settings: Settings) -> dict[str, Any]:
        pool: dict[str, Any] = {}
        if self.zero_root_disk_flavor:
            pool["instance_type"] = settings.instance_type_with_no_root_disk
        if self.root_disk_size_gb is not None:
            pool["root_disk"] = {"size": self.root_disk_size_gb}
        return pool

    def disk_cloud_properties(self, settings: Settings) -> dict[str, Any]:
        return {"type": settings.volume_type} if self.use_volume_type else {}

    def required_settings(self) -> list[str]:
        """Names of optional Settings fields this scenario cannot run without."""
        required: list[str] = []
        if self.topology in _VIP_TOPOLOGIES and self.fault is not InducedFault.INVALID_FLOATING_IP:
            required.append("floating_ip")
        if self.topology is NetworkTopology.MULTI_MANUAL:
            required += ["net_id_no_dhcp_1", "no_dhcp_manual_ip_1", "net_id_no_dhcp_2", "no_dhcp_manual_ip_2"]
        if self.zero_root_disk_flavor:
            required.append("instance_type_with_no_root_disk")
        if self.use_volume_type:
            required.append("volume_type")
        return required


# ============================================================================
# Network Specs and Expected Errors
# ============================================================================


def build_network_spec(scenario: Scenario, settings: Settings) -> NetworkSpec:
    """Network spec for the scenario's topology, with the induced fault applied."""
    net_id = constants.INVALID_NETWORK_ID if scenario.fault is InducedFault.INVALID_NETWORK_ID else settings.net_id
    floating_ip = (
        constants.INVALID_FLOATING_IP if scenario.fault is InducedFault.INVALID_FLOATING_IP else settings.floating_ip
    )
    dynamic = {"type": "dynamic", "cloud_properties": {"net_id": net_id}}
    manual = {"type": "manual", "ip": settings.manual_ip, "cloud_properties": {"net_id": net_id}}
    vip = {"type": "vip", "ip": floating_ip}

    match scenario.topology:
        case NetworkTopology.DYNAMIC:
            wire: dict[str, dict[str, Any]] = {"default": dynamic}
        case NetworkTopology.DYNAMIC_VIP:
            wire = {"vip_network": vip, "default": dynamic}
        case NetworkTopology.MANUAL:
            wire = {"default": manual}
        case NetworkTopology.MANUAL_VIP:
            wire = {"default": manual, "vip": vip}
        case NetworkTopology.MULTI_MANUAL:
            wire = {
                "network_1": {
                    "type": "manual",
                    "ip": settings.no_dhcp_manual_ip_1,
                    "cloud_properties": {"net_id": settings.net_id_no_dhcp_1},
                },
                "network_2": {
                    "type": "manual",
                    "ip": settings.no_dhcp_manual_ip_2,
                    "cloud_properties": {"net_id": settings.net_id_no_dhcp_2},
                    "use_dhcp": False,
                },
            }
    return NetworkSpec.from_wire(wire)


def expected_error(scenario: Scenario, settings: Settings) -> tuple[type[LifecycleError], tuple[str, ...]] | None:
    """Error class and message fragments the scenario's fault must produce."""
    match scenario.fault:
        case InducedFault.INVALID_FLOATING_IP:
            return VMCreationFailed, (f"'{constants.INVALID_FLOATING_IP}'",)
        case InducedFault.INVALID_NETWORK_ID:
            return VMCreationFailed, (f"'{constants.INVALID_NETWORK_ID}'",)
        case InducedFault.ZERO_ROOT_DISK:
            return CloudError, (str(settings.instance_type_with_no_root_disk), constants.ZERO_ROOT_DISK_MESSAGE)
    return None


# ============================================================================
# Default Matrix
# ============================================================================

DEFAULT_SCENARIOS: tuple[Scenario, ...] = (
    Scenario(name="dynamic-vip-reassign", topology=NetworkTopology.DYNAMIC_VIP, reassign_floating_ip=True),
    Scenario(name="dynamic-existing-disk", disk_mode=DiskMode.EXISTING),
    Scenario(
        name="dynamic-human-readable-name",
        human_readable_vm_names=True,
        checks=frozenset({Check.RESIDUAL_ZERO, Check.VM_NAME}),
    ),
    Scenario(
        name="dynamic-metadata-propagation",
        checks=frozenset({Check.RESIDUAL_ZERO, Check.METADATA_PROPAGATION}),
    ),
    Scenario(name="manual-fresh-disk", topology=NetworkTopology.MANUAL),
    Scenario(name="manual-existing-disk", topology=NetworkTopology.MANUAL, disk_mode=DiskMode.EXISTING),
    Scenario(name="manual-vip", topology=NetworkTopology.MANUAL_VIP),
    Scenario(
        name="multi-manual-config-drive",
        topology=NetworkTopology.MULTI_MANUAL,
        config_drive=ConfigDriveMode.CDROM,
        checks=frozenset({Check.RESIDUAL_ZERO, Check.MAC_REGISTRY, Check.PORT_RELEASE}),
    ),
    Scenario(
        name="manual-boot-from-volume",
        topology=NetworkTopology.MANUAL,
        boot_source=BootSource.VOLUME,
        checks=frozenset({Check.RESIDUAL_ZERO, Check.BOOT_VOLUME_DEVICE}),
    ),
    Scenario(
        name="manual-boot-from-volume-root-disk-override",
        topology=NetworkTopology.MANUAL,
        boot_source=BootSource.VOLUME,
        zero_root_disk_flavor=True,
        root_disk_size_gb=20,
        checks=frozenset({Check.RESIDUAL_ZERO, Check.BOOT_VOLUME_DEVICE}),
    ),
    Scenario(
        name="manual-boot-from-volume-zero-root-disk",
        topology=NetworkTopology.MANUAL,
        boot_source=BootSource.VOLUME,
        zero_root_disk_flavor=True,
        fault=InducedFault.ZERO_ROOT_DISK,
    ),
    Scenario(name="dynamic-volume-type", use_volume_type=True),
    Scenario(name="dynamic-config-drive-cdrom", config_drive=ConfigDriveMode.CDROM),
    Scenario(
        name="manual-vip-invalid-floating-ip",
        topology=NetworkTopology.MANUAL_VIP,
        fault=InducedFault.INVALID_FLOATING_IP,
    ),
    Scenario(name="dynamic-invalid-network-id", fault=InducedFault.INVALID_NETWORK_ID),
    Scenario(name="dynamic-detach-unattached", fault=InducedFault.ALREADY_DETACHED),
    Scenario(
        name="dynamic-light-stemcell",
        stemcell=StemcellSource.LIGHT,
        checks=frozenset({Check.RESIDUAL_ZERO, Check.LIGHT_STEMCELL}),
    ),
)


def build_matrix(settings: Settings, scenarios: Iterable[Scenario] = DEFAULT_SCENARIOS) -> list[Scenario]:
    """Scenarios runnable with the given settings.

    Scenarios needing an optional setting that is unset are skipped.
    """
    runnable: list[Scenario] = []
    for scenario in scenarios:
        missing = [name for name in scenario.required_settings() if getattr(settings, name) is None]
        if missing:
            logger.info(
                f"Skipping scenario {scenario.name}",
                extra={"scenario": scenario.name, "missing_settings": missing},
            )
            continue
        runnable.append(scenario)
    return runnable


# ============================================================================
# Runner
# ============================================================================


@dataclass
class ScenarioResult:
    """Outcome of one scenario."""

    name: str
    passed: bool
    checks: list[Check] = field(default_factory=list)
    lifecycle: LifecycleResult | None = None
    expected_error: LifecycleError | None = None
    error: BaseException | None = None
    duration_seconds: float = 0.0


@dataclass
class _Observations:
    ports: list[str] = field(default_factory=list)


class ScenarioRunner:
    """Runs scenarios against a started LifecycleSession.

    Usage:
        async with LifecycleSession(settings, backend_factory, inspector) as session:
            results = await ScenarioRunner(session).run_all(build_matrix(settings))
    """

    def __init__(self, session: LifecycleSession) -> None:
        self.session = session
        self.settings = session.settings
        self.inspector = session.inspector

    async def run_all(self, scenarios: Iterable[Scenario]) -> list[ScenarioResult]:
        """Run scenarios one after another; a failed scenario does not stop the rest."""
        results: list[ScenarioResult] = []
        for scenario in scenarios:
            started = time.monotonic()
            try:
                results.append(await self.run(scenario))
            except Exception as e:
                logger.error(
                    f"Scenario {scenario.name} failed",
                    extra={"scenario": scenario.name, "error": str(e), "error_type": type(e).__name__},
                    exc_info=e,
                )
                results.append(
                    ScenarioResult(
                        name=scenario.name,
                        passed=False,
                        error=e,
                        duration_seconds=time.monotonic() - started,
                    )
                )
        return results

    async def run(self, scenario: Scenario) -> ScenarioResult:
        """Run one scenario and assert its checks.

        Raises:
            ScenarioCheckError: A check failed
            LifecycleError: The lifecycle failed without the scenario expecting it
        """
        started = time.monotonic()
        checks = scenario.effective_checks
        registry = RecordingRegistry()
        provisioner = self.session.provisioner(scenario.lifecycle_config(), registry)
        lifecycle = VmLifecycle(provisioner, self.settings)
        networks = build_network_spec(scenario, self.settings)
        expected = expected_error(scenario, self.settings)
        performed: list[Check] = []
        observed = _Observations()
        result: LifecycleResult | None = None
        caught: LifecycleError | None = None

        logger.info(f"Running scenario {scenario.name}", extra={"scenario": scenario.name})
        baseline = await self._resource_ids() if Check.RESIDUAL_ZERO in checks else None

        async with TeardownAggregator(run_id=f"scenario-{scenario.name}") as teardown:
            stemcell_id = await self._stemcell(scenario, provisioner, teardown, performed)
            disk_id = None
            if scenario.disk_mode is DiskMode.EXISTING:
                disk_id = await self._existing_disk(lifecycle, stemcell_id, networks, teardown)
            if scenario.reassign_floating_ip:
                logger.info("Creating VM holding the floating IP", extra={"scenario": scenario.name})
                await lifecycle.create_vm(stemcell_id, networks, teardown=teardown)

            hooks = self._hooks(scenario, provisioner, registry, networks, observed, performed)
            try:
                result = await lifecycle.run(
                    stemcell_id,
                    networks,
                    disk_id=disk_id,
                    disk_cloud_properties=scenario.disk_cloud_properties(self.settings),
                    resource_pool=scenario.resource_pool(self.settings),
                    hooks=hooks,
                )
            except LifecycleError as e:
                if expected is None:
                    raise
                caught = e

            if expected is not None:
                self._check_error(scenario, expected, caught)
                performed.append(Check.ERROR_MESSAGE)
            if Check.NO_ACTIVE_VM_WITH_IP in checks:
                await self._check_no_active_vm_with_ip(scenario, networks.private_ip())
                performed.append(Check.NO_ACTIVE_VM_WITH_IP)

        if Check.PORT_RELEASE in checks:
            await self._check_ports_released(scenario, observed.ports)
            performed.append(Check.PORT_RELEASE)
        if baseline is not None:
            await self._check_residual(scenario, baseline)
            performed.append(Check.RESIDUAL_ZERO)

        duration = time.monotonic() - started
        logger.info(
            f"Scenario {scenario.name} passed",
            extra={"scenario": scenario.name, "checks": sorted(c.value for c in performed), "duration": duration},
        )
        return ScenarioResult(
            name=scenario.name,
            passed=True,
            checks=performed,
            lifecycle=result,
            expected_error=caught,
            duration_seconds=duration,
        )

    # -------------------------------------------------------------------------
    # Scenario-level resources
    # -------------------------------------------------------------------------

    async def _stemcell(
        self,
        scenario: Scenario,
        provisioner: ResourceProvisioner,
        teardown: TeardownAggregator,
        performed: list[Check],
    ) -> str:
        heavy_id = self.session.stemcell_id
        if scenario.stemcell is StemcellSource.HEAVY:
            return heavy_id

        light_id = await provisioner.create_stemcell(
            "not_relevant_path",
            {"image_id": heavy_id},
            teardown=teardown,
        )
        if Check.LIGHT_STEMCELL in scenario.effective_checks:
            expected_id = f"{heavy_id}{constants.LIGHT_STEMCELL_SUFFIX}"
            if light_id != expected_id:
                raise ScenarioCheckError(
                    f"Light stemcell id {light_id!r} != {expected_id!r}",
                    context={"scenario": scenario.name},
                )
            try:
                await provisioner.create_stemcell(
                    "not_relevant_path",
                    {"image_id": constants.NON_EXISTING_IMAGE_ID},
                    teardown=teardown,
                )
            except CloudError:
                logger.info("Light stemcell for missing image rejected", extra={"scenario": scenario.name})
            else:
                raise ScenarioCheckError(
                    f"Light stemcell referencing '{constants.NON_EXISTING_IMAGE_ID}' was accepted",
                    context={"scenario": scenario.name},
                )
            performed.append(Check.LIGHT_STEMCELL)
        return light_id

    async def _existing_disk(
        self,
        lifecycle: VmLifecycle,
        stemcell_id: str,
        networks: NetworkSpec,
        teardown: TeardownAggregator,
    ) -> str:
        """Create a disk on a throwaway VM, then delete the VM.

        The disk belongs to the scenario teardown; the VM to its own.
        """
        async with TeardownAggregator(run_id="throwaway-vm") as throwaway:
            vm_id = await lifecycle.create_vm(stemcell_id, networks, teardown=throwaway)
            disk_id = await lifecycle.provisioner.create_disk(
                self.settings.disk_size_mb,
                {},
                vm_id,
                teardown=teardown,
            )
        return disk_id

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def _hooks(
        self,
        scenario: Scenario,
        provisioner: ResourceProvisioner,
        registry: RecordingRegistry,
        networks: NetworkSpec,
        observed: _Observations,
        performed: list[Check],
    ) -> LifecycleHooks:
        checks = scenario.effective_checks
        inspector = self.inspector

        async def on_vm_created(vm_id: str) -> None:
            if Check.BOOT_VOLUME_DEVICE in checks:
                attachments = await inspector.volume_attachments(vm_id)
                devices = [a.device for a in attachments]
                if devices != [constants.BOOT_VOLUME_DEVICE]:
                    raise ScenarioCheckError(
                        f"Expected one boot volume on {constants.BOOT_VOLUME_DEVICE}, got {devices}",
                        context={"vm_id": vm_id},
                    )
                performed.append(Check.BOOT_VOLUME_DEVICE)

            if Check.VM_NAME in checks:
                server = await inspector.get_server(vm_id)
                name = server.name if server else None
                if name != constants.VM_METADATA_NAME:
                    raise ScenarioCheckError(
                        f"VM name {name!r} != {constants.VM_METADATA_NAME!r}",
                        context={"vm_id": vm_id},
                    )
                performed.append(Check.VM_NAME)

            if Check.MAC_REGISTRY in checks:
                interfaces = await inspector.server_interfaces(vm_id)
                macs = provisioner.verifier.check_interfaces_match_registry(
                    interfaces, registry.last_settings, networks
                )
                logger.info("MAC addresses match registry", extra={"vm_id": vm_id, "macs": macs})
                performed.append(Check.MAC_REGISTRY)

            if Check.PORT_RELEASE in checks:
                observed.ports.extend(await inspector.list_ports(device_id=vm_id))
                if not observed.ports:
                    raise ScenarioCheckError(f"VM '{vm_id}' has no network ports", context={"vm_id": vm_id})

            if Check.DETACH_UNATTACHED in checks:
                logger.info(
                    f"Detaching disk vm_id={vm_id} disk_id={constants.NON_EXISTING_DISK_ID}",
                    extra={"vm_id": vm_id, "disk_id": constants.NON_EXISTING_DISK_ID},
                )
                await provisioner.detach_disk(vm_id, constants.NON_EXISTING_DISK_ID)

            if Check.METADATA_PROPAGATION in checks:
                await provisioner.set_vm_metadata(vm_id, constants.TAGGED_VM_METADATA)

        async def on_disk_attached(vm_id: str, disk_id: str) -> None:
            if Check.METADATA_PROPAGATION in checks:
                disk_metadata = await inspector.disk_metadata(disk_id)
                provisioner.verifier.check_metadata_propagation(constants.TAGGED_VM_METADATA, disk_metadata)
                performed.append(Check.METADATA_PROPAGATION)

        async def on_disk_detached(vm_id: str, disk_id: str) -> None:
            if Check.DETACH_UNATTACHED in checks:
                # Second detach of the run's own disk
                await provisioner.detach_disk(vm_id, disk_id)
                attached = [a.disk_id for a in await inspector.volume_attachments(vm_id)]
                if disk_id in attached:
                    raise ScenarioCheckError(
                        f"Disk '{disk_id}' still attached to VM '{vm_id}' after detach",
                        context={"vm_id": vm_id, "disk_id": disk_id},
                    )
                performed.append(Check.DETACH_UNATTACHED)

        return LifecycleHooks(
            on_vm_created=on_vm_created,
            on_disk_attached=on_disk_attached,
            on_disk_detached=on_disk_detached,
        )

    @staticmethod
    def _check_error(
        scenario: Scenario,
        expected: tuple[type[LifecycleError], tuple[str, ...]],
        caught: LifecycleError | None,
    ) -> None:
        error_class, fragments = expected
        if caught is None:
            raise ScenarioCheckError(
                f"Expected {error_class.__name__} but the lifecycle completed",
                context={"scenario": scenario.name},
            )
        if not isinstance(caught, error_class):
            raise ScenarioCheckError(
                f"Expected {error_class.__name__}, got {type(caught).__name__}: {caught}",
                context={"scenario": scenario.name},
            ) from caught
        missing = [fragment for fragment in fragments if fragment not in str(caught)]
        if missing:
            raise ScenarioCheckError(
                f"{error_class.__name__} message {str(caught)!r} lacks {missing}",
                context={"scenario": scenario.name},
            ) from caught

    async def _check_no_active_vm_with_ip(self, scenario: Scenario, ip: str | None) -> None:
        servers = await self.inspector.list_servers()
        offenders = [s.vm_id for s in servers if s.private_ip == ip and s.active]
        if offenders:
            raise ScenarioCheckError(
                f"Active VM(s) {offenders} still bound to {ip}",
                context={"scenario": scenario.name, "ip": ip},
            )

    async def _check_ports_released(self, scenario: Scenario, ports: list[str]) -> None:
        leftover = [port for port in ports if await self.inspector.port_exists(port)]
        if leftover:
            raise ScenarioCheckError(
                f"Network ports {leftover} survived VM deletion",
                context={"scenario": scenario.name},
            )

    async def _resource_ids(self) -> dict[str, set[str]]:
        return {
            "vms": {s.vm_id for s in await self.inspector.list_servers()},
            "disks": set(await self.inspector.list_disks()),
            "snapshots": set(await self.inspector.list_snapshots()),
            "ports": set(await self.inspector.list_ports()),
        }

    async def _check_residual(self, scenario: Scenario, baseline: dict[str, set[str]]) -> None:
        current = await self._resource_ids()
        residual = {kind: sorted(current[kind] - baseline[kind]) for kind in current}
        residual = {kind: ids for kind, ids in residual.items() if ids}
        if residual:
            raise ScenarioCheckError(
                f"Residual resources after scenario {scenario.name}: {residual}",
                context={"scenario": scenario.name, "residual": residual},
            )
