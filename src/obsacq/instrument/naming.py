"""Instrument file naming convention.

Turns a UT date and observation number into raw data filenames (or a
search pattern when the files of one observation are spread over
per-subsystem directories) and flag filenames, and pulls observation
numbers back out of filenames found on disk.

Example names for ``raw_prefix="f"``, ``number_width=5``::

    raw   f20020101_00005.fits
    flag  .f20020101_00005.ok            (flag_style="dotfile")
    flag  ok/20020101/f20020101_00005.ok (flag_style="subdir")

With ``subsystems=["a", "b"]`` the raw name becomes a regular
expression matching ``fa20020101_00005_0001.fits`` and friends, and one
flag file per subsystem is expected.
"""

import re
from datetime import date, datetime
from pathlib import Path
from typing import NamedTuple, Union

from obsacq.schemas import InternalConfig

__all__ = ['InstrumentNaming', 'DataRoots', 'data_roots', 'format_ut']

# Observation number at the end of a name, before an optional extension
_NUMBER_RE = re.compile(r"(\d+)(\.\w+)?$")
# Subsystem files carry a trailing sub-scan counter after the number
_SUBSYSTEM_NUMBER_RE = re.compile(r"_(\d+)_\d+(\.\w+)?$")


class DataRoots(NamedTuple):
    data_in: Path
    data_out: Path


def data_roots(config: InternalConfig) -> DataRoots:
    """Absolute input and output roots from config."""
    return DataRoots(
        Path(config.paths.data_in).expanduser().resolve(),
        Path(config.paths.data_out).expanduser().resolve(),
    )


def format_ut(utdate: Union[str, int, date]) -> str:
    """Normalize a UT date to YYYYMMDD."""
    if isinstance(utdate, (date, datetime)):
        return utdate.strftime("%Y%m%d")
    return str(utdate).replace("-", "")


class InstrumentNaming:
    """Filename conventions for one instrument.

    A pure function of the naming config: nothing here touches the
    filesystem.

    Parameters
    ----------
    config : InternalConfig
        Resolved configuration; only ``config.naming`` is used.
    """

    def __init__(self, config: InternalConfig):
        naming = config.naming
        self.raw_prefix = naming.raw_prefix
        self.raw_suffix = naming.raw_suffix
        self.number_width = naming.number_width
        self.flag_suffix = naming.flag_suffix
        self.flag_style = naming.flag_style
        self.subsystems = list(naming.subsystems)
        self.flag_contents = naming.flag_contents

    @property
    def uses_pattern(self) -> bool:
        """True when raw files must be found by searching the input tree."""
        return bool(self.subsystems)

    def padnum(self, obsnum: int) -> str:
        if self.number_width:
            return str(obsnum).zfill(self.number_width)
        return str(obsnum)

    def raw_name(self, utdate, obsnum: int) -> Union[str, re.Pattern]:
        """Raw filename for an observation, or a regex when it has many files."""
        ut = format_ut(utdate)
        pad = self.padnum(obsnum)
        if self.uses_pattern:
            letters = "".join(re.escape(s) for s in self.subsystems)
            return re.compile(
                re.escape(self.raw_prefix) + "[" + letters + "]" + ut + "_" + pad
                + r"_\d{4}" + re.escape(self.raw_suffix) + "$"
            )
        return f"{self.raw_prefix}{ut}_{pad}{self.raw_suffix}"

    def flag_names(self, utdate, obsnum: int) -> list[str]:
        """Flag filenames for an observation, relative to the input root."""
        ut = format_ut(utdate)
        pad = self.padnum(obsnum)
        parts = self.subsystems or [""]
        names = []
        for sub in parts:
            stem = f"{self.raw_prefix}{sub}{ut}_{pad}{self.flag_suffix}"
            if self.flag_style == "dotfile":
                names.append("." + stem)
            else:
                names.append(str(Path("ok") / ut / stem))
        return names

    def flag_dir(self, utdate) -> Path:
        """Directory holding flag files, relative to the input root."""
        return Path(self.flag_names(utdate, 1)[0]).parent

    def raw_scan_pattern(self) -> re.Pattern:
        """Matches any raw data file of this instrument."""
        return re.compile(
            "^" + re.escape(self.raw_prefix) + ".*" + re.escape(self.raw_suffix) + "$"
        )

    def flag_scan_pattern(self) -> re.Pattern:
        """Matches any flag file of this instrument."""
        lead = r"^\." if self.flag_style == "dotfile" else "^"
        return re.compile(
            lead + re.escape(self.raw_prefix) + ".*" + re.escape(self.flag_suffix) + "$"
        )

    def number_from_name(self, name: Union[str, Path]) -> int:
        """Observation number encoded in a filename, -1 if there is none.

        Leading zeros are dropped, so ``f20020101_00005.fits`` gives 5.
        """
        name = Path(name).name
        if self.uses_pattern:
            match = _SUBSYSTEM_NUMBER_RE.search(name)
            if match:
                return int(match.group(1))
        match = _NUMBER_RE.search(name)
        if match:
            return int(match.group(1))
        return -1
