"""Tests for the exception hierarchy and error records."""

import pytest

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
from cpi_lifecycle.models import ResourceHandle, ResourceKind

# ============================================================================
# Hierarchy
# ============================================================================


class TestHierarchy:
    """Every error is a LifecycleError in the expected branch."""

    @pytest.mark.parametrize(
        ("error_class", "base"),
        [
            (VMCreationFailed, PermanentError),
            (CloudError, PermanentError),
            (LifecycleStateError, PermanentError),
            (TeardownError, PermanentError),
            (ResourceNotFound, LifecycleError),
            (MetadataPropagationError, VerificationError),
            (ScenarioCheckError, VerificationError),
            (NetworkSpecError, InputValidationError),
        ],
    )
    def test_branch(self, error_class: type[LifecycleError], base: type[LifecycleError]) -> None:
        assert issubclass(error_class, base)
        assert issubclass(error_class, LifecycleError)

    def test_vm_creation_failed_is_not_cloud_error(self) -> None:
        """The two provider rejections are distinguishable."""
        assert not issubclass(VMCreationFailed, CloudError)

    def test_context(self) -> None:
        """message and context are kept."""
        error = CloudError("quota exceeded", context={"vm_id": "vm-1"})
        assert error.message == "quota exceeded"
        assert error.context == {"vm_id": "vm-1"}
        assert CloudError("x").context == {}


# ============================================================================
# Error Records
# ============================================================================


class TestErrorRecord:
    """Tests for ErrorRecord."""

    def test_classification(self) -> None:
        """classification is the exception class name."""
        record = ErrorRecord(cause=CloudError("x"), phase=ErrorPhase.TEARDOWN)
        assert record.classification == "CloudError"

    @pytest.mark.parametrize(
        ("cause", "phase"),
        [
            (VMCreationFailed("x"), ErrorPhase.PROVISIONING),
            (KeyError("x"), ErrorPhase.PROVISIONING),
            (VerificationError("x"), ErrorPhase.VERIFICATION),
            (MetadataPropagationError("x", missing={}, leaked={}), ErrorPhase.VERIFICATION),
        ],
    )
    def test_from_forward_phase(self, cause: BaseException, phase: ErrorPhase) -> None:
        assert ErrorRecord.from_forward_phase(cause).phase == phase

    def test_teardown_error_carries_record(self) -> None:
        """TeardownError exposes the failed cleanup's record."""
        record = ErrorRecord(
            cause=CloudError("disk in use"),
            phase=ErrorPhase.TEARDOWN,
            handle=ResourceHandle(kind=ResourceKind.DISK, id="vol-1"),
        )
        error = TeardownError("Teardown failed for disk:vol-1", record=record)
        assert error.record is record
        assert error.record.handle is not None
        assert str(error.record.handle) == "disk:vol-1"
