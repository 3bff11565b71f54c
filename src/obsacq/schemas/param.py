"""ParamConfig: Expert defaults for the acquisition engine.

This module defines the complete default configuration. ALL acquisition
parameters must have defaults here. No runtime code should define
fallback values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from obsacq.schemas.base import AcqBaseModel


LoopName = Literal["list", "inf", "wait", "flag", "task", "file"]
FormatName = Literal["FITS", "NETCDF", "NDF"]


# =============================================================================
# Nested Configuration Models
# =============================================================================

class PathsConfig(AcqBaseModel):
    """Input and output data roots."""
    data_in: Optional[str] = None
    data_out: Optional[str] = None


class NamingConfig(AcqBaseModel):
    """Raw and flag file naming convention."""
    raw_prefix: str = Field("f", description="Fixed part of raw filenames")
    raw_suffix: str = Field(".fits", description="Raw filename suffix including the dot")
    number_width: int = Field(5, ge=0, description="Zero padding of observation numbers (0 = none)")
    flag_suffix: str = ".ok"
    flag_style: Literal["dotfile", "subdir"] = "dotfile"
    subsystems: list[str] = Field(
        default_factory=list,
        description="Per-subsystem letters; non-empty means files are found by pattern search",
    )
    flag_contents: Literal["listing", "marker"] = "listing"

    @field_validator("raw_suffix", "flag_suffix", mode="before")
    @classmethod
    def ensure_leading_dot(cls, v):
        """Accept 'fits' as well as '.fits'."""
        if isinstance(v, str) and v and not v.startswith("."):
            return "." + v
        return v


class FormatsConfig(AcqBaseModel):
    """Raw and working data formats."""
    raw_format: FormatName = "FITS"
    working_format: FormatName = "NETCDF"
    overwrite: bool = False

    @field_validator("raw_format", "working_format", mode="before")
    @classmethod
    def normalize_format(cls, v):
        """Format names are upper case."""
        if isinstance(v, str):
            return v.upper().strip()
        return v


class PollingConfig(AcqBaseModel):
    """Polling cadence and timeouts."""
    timeout_sec: float = Field(43200.0, gt=0, description="12 hour budget per acquisition attempt")
    pause_sec: float = Field(2.0, gt=0, description="Sleep between filesystem polls")
    progress_every: int = Field(15, ge=1, description="Pauses between progress messages")
    flag_lookahead: int = Field(10, ge=1, description="Observations scanned ahead when skipping")
    task_pause_sec: float = Field(0.4, gt=0, description="Sleep between remote task polls")
    task_progress_every: int = Field(4, ge=1)
    retry_delay_sec: float = Field(2.0, ge=0, description="Pause before re-staging a flag observation")


class TasksConfig(AcqBaseModel):
    """Live remote data sources."""
    sources: list[str] = Field(default_factory=list)
    parameter: str = "QL"


class AcquisitionConfig(AcqBaseModel):
    """What to acquire and how to react to gaps."""
    utdate: Optional[str] = Field(None, description="UT date as YYYYMMDD; today if unset")
    skip: bool = False
    from_obs: Optional[int] = Field(None, ge=1)
    to_obs: Optional[int] = Field(None, ge=1)
    obs_list: Optional[str] = None
    files: list[str] = Field(default_factory=list)
    continue_on_error: bool = False


class TrackerConfig(AcqBaseModel):
    """Delivery tracker database."""
    enabled: bool = True
    db_filename_pattern: str = "{instrument}_{utdate}_acquisition.db"


class LoggingConfig(AcqBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(AcqBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all acquisition parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    instrument: str = "GENERIC"
    loop: Optional[LoopName] = None
    paths: PathsConfig = Field(default_factory=PathsConfig)
    naming: NamingConfig = Field(default_factory=NamingConfig)
    formats: FormatsConfig = Field(default_factory=FormatsConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    tasks: TasksConfig = Field(default_factory=TasksConfig)
    acquisition: AcquisitionConfig = Field(default_factory=AcquisitionConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
