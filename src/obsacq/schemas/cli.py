"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: loop scheme, UT date, observation range, data roots,
verbosity.

This schema only holds values; parsing arguments is the caller's job.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator, model_validator
from obsacq.schemas.base import AcqBaseModel


class CLIConfig(AcqBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Notes
    -----
    If both from_obs and to_obs are given, to_obs must not be lower than
    from_obs (schema responsibility, not runtime).

    Usage
    -----
        cli_cfg = CLIConfig(
            loop="wait",
            utdate="20020101",
            from_obs=12,
            skip=True,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    loop: Optional[Literal["list", "inf", "wait", "flag", "task", "file"]] = None
    utdate: Optional[str] = None
    skip: Optional[bool] = None
    from_obs: Optional[int] = Field(None, ge=1)
    to_obs: Optional[int] = Field(None, ge=1)
    obs_list: Optional[str] = None
    files: Optional[list[str]] = None
    data_in: Optional[str] = None
    data_out: Optional[str] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    @field_validator("utdate", mode="before")
    @classmethod
    def coerce_utdate(cls, v):
        """Accept integers and dashed dates."""
        if v is None:
            return v
        return str(v).replace("-", "").strip()

    @model_validator(mode="after")
    def check_range(self):
        """Reject an observation range that runs backwards."""
        if self.from_obs is not None and self.to_obs is not None:
            if self.to_obs < self.from_obs:
                raise ValueError(
                    f"to_obs ({self.to_obs}) is lower than from_obs ({self.from_obs})"
                )
        return self

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

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
        for key in ("utdate", "skip", "from_obs", "to_obs", "obs_list", "files"):
            value = getattr(self, key)
            if value is not None:
                acquisition[key] = value
        if acquisition:
            overrides["acquisition"] = acquisition

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
