"""Exception hierarchy for cpi-lifecycle.

All exceptions inherit from LifecycleError base class.

Hierarchy:
    LifecycleError (base)
    ├── PermanentError (non-retryable marker base)
    │   ├── VMCreationFailed         ← backend rejected VM creation outright
    │   ├── CloudError               ← generic provider rejection
    │   ├── LifecycleStateError      ← invalid transition / duplicate cleanup
    │   └── TeardownError            ← unwind failure after a clean forward phase
    ├── ResourceNotFound             ← handle already gone / not attached
    ├── VerificationError            ← post-condition did not hold
    │   ├── MetadataPropagationError ← disk metadata does not mirror the VM
    │   └── ScenarioCheckError       ← scenario-level assertion failed
    └── InputValidationError (caller-bug marker base)
        └── NetworkSpecError         ← malformed network spec

Alongside the classes, ErrorRecord captures a failure together with the
phase it originated in, which is what the teardown aggregator logs and
reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cpi_lifecycle.models import ResourceHandle


class LifecycleError(Exception):
    """Base exception for all lifecycle errors with structured context.

    Attributes:
        message: Human-readable error message
        context: Dictionary of structured error context for logging/debugging
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


# =============================================================================
# Permanent Errors (non-retryable)
# =============================================================================


class PermanentError(LifecycleError):
    """Base for permanent errors that won't succeed on retry."""


class VMCreationFailed(PermanentError):
    """Backend rejected VM creation outright.

    Raised for unallocatable floating IPs or nonexistent network ids.
    The message always names the offending identifier.
    """


class CloudError(PermanentError):
    """Generic provider rejection.

    Raised for nonexistent referenced images, flavors with a zero root
    disk and no explicit override, and any unclassified backend failure.
    """


class LifecycleStateError(PermanentError):
    """Invalid lifecycle transition or cleanup registration."""


class TeardownError(PermanentError):
    """Cleanup action failed during unwind.

    Only ever raised when the forward phase of a run succeeded; otherwise
    the forward-phase error wins and this is logged instead.

    Attributes:
        record: The ErrorRecord of the failed cleanup action
    """

    def __init__(self, message: str, record: ErrorRecord, context: dict[str, Any] | None = None):
        super().__init__(message, context)
        self.record = record


# =============================================================================
# Not Found
# =============================================================================


class ResourceNotFound(LifecycleError):
    """Resource is already gone, or a disk is not attached to the VM.

    Detach and cleanup treat this as success.
    """


# =============================================================================
# Verification
# =============================================================================


class VerificationError(LifecycleError):
    """A lifecycle post-condition did not hold."""


class MetadataPropagationError(VerificationError):
    """Attached disk metadata does not mirror the whitelisted VM metadata.

    Attributes:
        missing: Whitelisted keys absent or different on the disk
        leaked: Non-whitelisted VM keys that reached the disk
    """

    def __init__(
        self,
        message: str,
        missing: dict[str, str],
        leaked: dict[str, str],
        context: dict[str, Any] | None = None,
    ):
        ctx = context or {}
        ctx.update({"missing": missing, "leaked": leaked})
        super().__init__(message, ctx)
        self.missing = missing
        self.leaked = leaked


class ScenarioCheckError(VerificationError):
    """A scenario-level check failed."""


# =============================================================================
# Input Validation
# =============================================================================


class InputValidationError(LifecycleError):
    """Base for input validation errors (caller bugs, not backend failures)."""


class NetworkSpecError(InputValidationError):
    """Network spec is malformed.

    Raised before any provisioning call is issued, e.g. for multiple vip
    entries or a manual network without an IP.
    """


# =============================================================================
# Error Records
# =============================================================================


class ErrorPhase(str, Enum):
    """Phase of a lifecycle run an error originated in."""

    PROVISIONING = "provisioning"
    VERIFICATION = "verification"
    TEARDOWN = "teardown"


@dataclass(frozen=True)
class ErrorRecord:
    """A captured failure.

    Attributes:
        cause: The exception that was raised
        phase: Phase the failure originated in
        handle: Resource the failing operation was bound to, if any
    """

    cause: BaseException
    phase: ErrorPhase
    handle: ResourceHandle | None = None

    @property
    def classification(self) -> str:
        """Exception class name, e.g. "CloudError"."""
        return type(self.cause).__name__

    @classmethod
    def from_forward_phase(cls, cause: BaseException) -> ErrorRecord:
        """Record a forward-phase failure; verification errors keep their own phase."""
        phase = ErrorPhase.VERIFICATION if isinstance(cause, VerificationError) else ErrorPhase.PROVISIONING
        return cls(cause=cause, phase=phase)
