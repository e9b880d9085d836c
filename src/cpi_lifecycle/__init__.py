"""cpi-lifecycle: lifecycle validation for pluggable cloud backends.

Drives a cloud provider interface (create/attach/detach/delete of VMs,
disks, snapshots and stemcells) through full VM lifecycles across network
topologies, boot sources and induced faults, and guarantees every resource
allocated during a run is released, even when a step failed.

Quick Start (one lifecycle run):
    ```python
    from cpi_lifecycle import NetworkSpec, ResourceProvisioner, Settings, VmLifecycle

    settings = Settings()  # CPI_LIFECYCLE_* environment variables
    provisioner = ResourceProvisioner(backend, settings)
    networks = NetworkSpec.from_wire({
        "default": {"type": "dynamic", "cloud_properties": {"net_id": settings.net_id}},
    })
    result = await VmLifecycle(provisioner, settings).run(stemcell_id, networks)
    ```

Scenario matrix:
    ```python
    from cpi_lifecycle import LifecycleSession, ScenarioRunner, build_matrix

    async with LifecycleSession(settings, backend_factory, inspector) as session:
        results = await ScenarioRunner(session).run_all(build_matrix(settings))
    ```

Error precedence:
    The first forward-phase error of a run is the one raised. Cleanup
    failures are logged; one is raised (as TeardownError) only when the
    forward phase succeeded.
"""

from cpi_lifecycle.backend import BackendFactory, CloudBackend, CloudInspector, Registry
from cpi_lifecycle.config import LifecycleConfig
from cpi_lifecycle.exceptions import (
    CloudError,
    ErrorPhase,
    ErrorRecord,
    InputValidationError,
    LifecycleError,
    LifecycleStateError,
    MetadataPropagationError,
    NetworkSpecError,
    PermanentError,
    ResourceNotFound,
    ScenarioCheckError,
    TeardownError,
    VerificationError,
    VMCreationFailed,
)
from cpi_lifecycle.lifecycle import LifecycleHooks, LifecycleResult, VmLifecycle
from cpi_lifecycle.lifecycle_types import CleanupAction, LifecycleContext, LifecycleState
from cpi_lifecycle.models import (
    DynamicNetwork,
    InterfaceInfo,
    ManualNetwork,
    NetworkSpec,
    ResourceHandle,
    ResourceKind,
    ServerInfo,
    VipNetwork,
    VolumeAttachment,
)
from cpi_lifecycle.provisioner import ResourceProvisioner
from cpi_lifecycle.registry import RecordingRegistry
from cpi_lifecycle.scenarios import Scenario, ScenarioResult, ScenarioRunner, build_matrix
from cpi_lifecycle.session import LifecycleSession
from cpi_lifecycle.settings import Settings
from cpi_lifecycle.teardown import TeardownAggregator
from cpi_lifecycle.verifier import LifecycleVerifier

__all__ = [
    "BackendFactory",
    "CleanupAction",
    "CloudBackend",
    "CloudError",
    "CloudInspector",
    "DynamicNetwork",
    "ErrorPhase",
    "ErrorRecord",
    "InputValidationError",
    "InterfaceInfo",
    "LifecycleConfig",
    "LifecycleContext",
    "LifecycleError",
    "LifecycleHooks",
    "LifecycleResult",
    "LifecycleSession",
    "LifecycleState",
    "LifecycleStateError",
    "LifecycleVerifier",
    "ManualNetwork",
    "MetadataPropagationError",
    "NetworkSpec",
    "NetworkSpecError",
    "PermanentError",
    "RecordingRegistry",
    "Registry",
    "ResourceHandle",
    "ResourceKind",
    "ResourceNotFound",
    "ResourceProvisioner",
    "Scenario",
    "ScenarioCheckError",
    "ScenarioResult",
    "ScenarioRunner",
    "ServerInfo",
    "Settings",
    "TeardownAggregator",
    "TeardownError",
    "VMCreationFailed",
    "VerificationError",
    "VipNetwork",
    "VmLifecycle",
    "VolumeAttachment",
    "build_matrix",
]

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cpi-lifecycle")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
