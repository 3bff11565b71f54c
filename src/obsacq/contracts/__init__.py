"""Acquisition contracts and failure taxonomy.

Contracts fail immediately and loudly when a stage does not produce its
promised invariants. Failures of a single acquisition attempt use the
AcquisitionError hierarchy instead.

Key principle:
- Pydantic validates config correctness
- Contracts validate engine correctness
- AcquisitionError reports data and environment problems
"""

from obsacq.contracts.failure import (
    AcquisitionConfigError,
    AcquisitionError,
    AcquisitionTimeout,
    ContractViolation,
    ConversionFailed,
    FlagFileError,
    FrameConfigurationError,
    InconsistentState,
    ObservationNotFound,
    QuorumError,
    RemoteUnavailable,
    StagingInconsistency,
)
from obsacq.contracts.base import require
from obsacq.contracts.discovery import assert_discovered, assert_monotonic
from obsacq.contracts.staging import assert_staged

__all__ = [
    "AcquisitionConfigError",
    "AcquisitionError",
    "AcquisitionTimeout",
    "ContractViolation",
    "ConversionFailed",
    "FlagFileError",
    "FrameConfigurationError",
    "InconsistentState",
    "ObservationNotFound",
    "QuorumError",
    "RemoteUnavailable",
    "StagingInconsistency",
    "require",
    "assert_discovered",
    "assert_monotonic",
    "assert_staged",
]
