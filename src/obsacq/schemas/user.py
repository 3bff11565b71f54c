"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for common naming patterns (e.g., DATA_IN → data_in, LOOP → loop).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient to accept
both uppercase and lowercase keys, integers given as strings, etc.
"""

from typing import Literal, Optional, Any
from pydantic import Field, field_validator, model_validator
from obsacq.schemas.base import AcqBaseModel


class UserNamingConfig(AcqBaseModel):
    """User-facing naming config."""
    raw_prefix: Optional[str] = None
    raw_suffix: Optional[str] = None
    number_width: Optional[int] = None
    flag_suffix: Optional[str] = None
    flag_style: Optional[Literal["dotfile", "subdir"]] = None
    subsystems: Optional[list[str]] = None
    flag_contents: Optional[Literal["listing", "marker"]] = None


class UserFormatsConfig(AcqBaseModel):
    """User-facing formats config."""
    raw_format: Optional[str] = None
    working_format: Optional[str] = None
    overwrite: Optional[bool] = None

    @field_validator("raw_format", "working_format", mode="before")
    @classmethod
    def normalize_format(cls, v):
        """Format names are upper case."""
        if isinstance(v, str):
            return v.upper().strip()
        return v


class UserPollingConfig(AcqBaseModel):
    """User-facing polling config."""
    timeout_sec: Optional[float] = None
    pause_sec: Optional[float] = None
    progress_every: Optional[int] = None
    flag_lookahead: Optional[int] = None
    task_pause_sec: Optional[float] = None
    task_progress_every: Optional[int] = None
    retry_delay_sec: Optional[float] = None


class UserTasksConfig(AcqBaseModel):
    """User-facing remote task config."""
    sources: Optional[list[str]] = None
    parameter: Optional[str] = None


class UserConfig(AcqBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    This config is converted to internal overrides during resolution.

    Usage
    -----
        user_cfg = UserConfig(
            instrument="UFTI",
            data_in="/jcmtdata/raw/20020101",
            data_out="/scratch/reduced/20020101",
            loop="flag",
            skip=True,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Top-level operational settings
    instrument: Optional[str] = Field(None, alias="INSTRUMENT")
    loop: Optional[Literal["list", "inf", "wait", "flag", "task", "file"]] = Field(None, alias="LOOP")
    data_in: Optional[str] = Field(None, alias="DATA_IN")
    data_out: Optional[str] = Field(None, alias="DATA_OUT")

    # Acquisition selection (flat aliases)
    utdate: Optional[str] = Field(None, alias="UT")
    skip: Optional[bool] = Field(None, alias="SKIP")
    from_obs: Optional[int] = Field(None, alias="FROM")
    to_obs: Optional[int] = Field(None, alias="TO")
    obs_list: Optional[str] = Field(None, alias="LIST")
    files: Optional[list[str]] = Field(None, alias="FILES")
    continue_on_error: Optional[bool] = Field(None, alias="CONTINUE_ON_ERROR")

    # Polling (flat aliases)
    timeout_sec: Optional[float] = Field(None, alias="TIMEOUT_SEC")
    pause_sec: Optional[float] = Field(None, alias="PAUSE_SEC")

    # Remote tasks (flat alias)
    tasks: Optional[list[str]] = Field(None, alias="TASKS")

    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(None, alias="LOG_LEVEL")

    # Nested overrides (advanced users)
    naming: Optional[UserNamingConfig] = None
    formats: Optional[UserFormatsConfig] = None
    polling: Optional[UserPollingConfig] = None
    remote: Optional[UserTasksConfig] = None

    model_config = AcqBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("utdate", mode="before")
    @classmethod
    def coerce_utdate(cls, v):
        """Accept 20020101 as an int and 2002-01-01 with dashes."""
        if v is None:
            return v
        return str(v).replace("-", "").strip()

    @field_validator("loop", mode="before")
    @classmethod
    def normalize_loop(cls, v):
        """Loop names are lower case."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Log levels are upper case."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    @model_validator(mode="after")
    def infer_file_loop(self):
        """A list of files with no explicit loop means the file loop."""
        if self.loop is None and self.files:
            self.loop = "file"
        return self

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides: dict[str, Any] = {}

        if self.instrument is not None:
            overrides["instrument"] = self.instrument
        if self.loop is not None:
            overrides["loop"] = self.loop

        paths = {}
        if self.data_in is not None:
            paths["data_in"] = str(self.data_in)
        if self.data_out is not None:
            paths["data_out"] = str(self.data_out)
        if paths:
            overrides["paths"] = paths

        acquisition = {}
        for key in ("utdate", "skip", "from_obs", "to_obs", "obs_list",
                    "files", "continue_on_error"):
            value = getattr(self, key)
            if value is not None:
                acquisition[key] = value
        if acquisition:
            overrides["acquisition"] = acquisition

        # Polling section
        polling = {}
        if self.timeout_sec is not None:
            polling["timeout_sec"] = self.timeout_sec
        if self.pause_sec is not None:
            polling["pause_sec"] = self.pause_sec
        if self.polling is not None:
            polling.update(self.polling.model_dump(exclude_none=True))
        if polling:
            overrides["polling"] = polling

        # Tasks section
        tasks = {}
        if self.tasks is not None:
            tasks["sources"] = self.tasks
        if self.remote is not None:
            tasks.update(self.remote.model_dump(exclude_none=True))
        if tasks:
            overrides["tasks"] = tasks

        if self.naming is not None:
            naming = self.naming.model_dump(exclude_none=True)
            if naming:
                overrides["naming"] = naming

        if self.formats is not None:
            formats = self.formats.model_dump(exclude_none=True)
            if formats:
                overrides["formats"] = formats

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
