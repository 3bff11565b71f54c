"""Centralized failure types for acquisition.

Acquisition failures all derive from AcquisitionError so callers can
handle a failed attempt uniformly and still tell the kinds apart.
Running out of observations is not a failure and has no exception here;
it is reported as an ``EXHAUSTED`` acquisition result.
"""


class ContractViolation(RuntimeError):
    """Raised when an acquisition contract is violated.

    This indicates a bug in engine logic, not bad user input or missing
    data. It means a stage did not produce the invariants it promised.

    Key distinction:
    - ValueError: User/config error (handled by Pydantic)
    - ContractViolation: Engine bug (programmer error)
    - AcquisitionError: Data or environment problem for one attempt
    """
    pass


class AcquisitionError(RuntimeError):
    """Base class for a failed acquisition attempt.

    Parameters
    ----------
    message : str
        Diagnostic naming the file, flag or source that failed.
    obs : ObservationId, optional
        Observation being acquired when the failure happened.
    cursor : Cursor, optional
        Cursor advanced past ``obs``. Present only when the strategy had
        already chosen the observation, so the caller can decide to
        continue with it instead of retrying.
    """

    kind = "error"
    fatal = False

    def __init__(self, message: str, *, obs=None, cursor=None):
        super().__init__(message)
        self.obs = obs
        self.cursor = cursor


class AcquisitionTimeout(AcquisitionError):
    """Polling budget exceeded while waiting for an observation."""
    kind = "timeout"


class ObservationNotFound(AcquisitionError):
    """A required raw file or flag is missing and skipping is disabled."""
    kind = "not_found"


class InconsistentState(AcquisitionError):
    """The data area contradicts itself."""
    kind = "inconsistent"


class StagingInconsistency(InconsistentState):
    """Dangling or foreign symlink in the output directory."""


class FlagFileError(InconsistentState):
    """Flag file could not be read or lists nothing new."""


class QuorumError(InconsistentState):
    """Remote payload does not describe any data."""


class RemoteUnavailable(AcquisitionError):
    """A live remote data source cannot be reached."""
    kind = "remote_unavailable"
    fatal = True


class ConversionFailed(AcquisitionError):
    """The format converter failed or produced no usable output."""
    kind = "conversion_failed"


class FrameConfigurationError(AcquisitionError):
    """Frame.configure() rejected the staged files."""
    kind = "frame"


class AcquisitionConfigError(AcquisitionError):
    """The configured strategy cannot work with this naming convention."""
    kind = "config"
    fatal = True
