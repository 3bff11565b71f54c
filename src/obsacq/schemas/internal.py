"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that acquisition code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import Field, ConfigDict, field_validator
from obsacq.schemas.base import AcqBaseModel
from obsacq.schemas.param import LoopName, FormatName


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalPathsConfig(AcqBaseModel):
    """Runtime data roots (both required, checked in resolve_config())."""
    data_in: str
    data_out: str


class InternalNamingConfig(AcqBaseModel):
    """Runtime naming convention."""
    raw_prefix: str
    raw_suffix: str
    number_width: int
    flag_suffix: str
    flag_style: Literal["dotfile", "subdir"]
    subsystems: list[str]
    flag_contents: Literal["listing", "marker"]


class InternalFormatsConfig(AcqBaseModel):
    """Runtime data formats."""
    raw_format: FormatName
    working_format: FormatName
    overwrite: bool


class InternalPollingConfig(AcqBaseModel):
    """Runtime polling cadence."""
    timeout_sec: float = Field(gt=0)
    pause_sec: float = Field(gt=0)
    progress_every: int = Field(ge=1)
    flag_lookahead: int = Field(ge=1)
    task_pause_sec: float = Field(gt=0)
    task_progress_every: int = Field(ge=1)
    retry_delay_sec: float = Field(ge=0)


class InternalTasksConfig(AcqBaseModel):
    """Runtime remote task sources."""
    sources: list[str]
    parameter: str


class InternalAcquisitionConfig(AcqBaseModel):
    """Runtime acquisition selection."""
    utdate: str
    skip: bool
    from_obs: Optional[int]
    to_obs: Optional[int]
    obs_list: Optional[str]
    files: list[str]
    continue_on_error: bool

    @field_validator("utdate")
    @classmethod
    def check_utdate(cls, v):
        """UT date must be YYYYMMDD."""
        datetime.strptime(v, "%Y%m%d")
        return v


class InternalTrackerConfig(AcqBaseModel):
    """Runtime tracker configuration."""
    enabled: bool
    db_filename_pattern: str


class InternalLoggingConfig(AcqBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(AcqBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that acquisition code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.timeout = config.polling.timeout_sec  # NOT .get()
            self.data_in = Path(config.paths.data_in)

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    instrument: str
    loop: Optional[LoopName]
    paths: InternalPathsConfig
    naming: InternalNamingConfig
    formats: InternalFormatsConfig
    polling: InternalPollingConfig
    tasks: InternalTasksConfig
    acquisition: InternalAcquisitionConfig
    tracker: InternalTrackerConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
