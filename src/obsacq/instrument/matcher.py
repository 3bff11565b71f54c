"""Observation matching against the input data directory.

Resolves an observation to either a literal raw filename or a
SearchSpec (pattern plus subtree root), finds the raw files that
exist, reads flag files, and scans the input directory for the next and
highest observation numbers present.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from obsacq.contracts import FlagFileError, ObservationNotFound
from obsacq.instrument.naming import InstrumentNaming

__all__ = [
    'ObservationMatcher',
    'LiteralName',
    'SearchSpec',
    'files_there',
    'files_nonzero',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiteralName:
    """A single raw file at a known location."""
    path: Path


@dataclass(frozen=True)
class SearchSpec:
    """Raw files found by matching basenames anywhere below ``root``."""
    pattern: re.Pattern
    root: Path


def files_there(paths) -> bool:
    """True if every path exists. False for an empty list."""
    paths = list(paths)
    if not paths:
        return False
    return all(Path(p).exists() for p in paths)


def files_nonzero(paths) -> bool:
    """True if every path exists with a size above zero. False for an empty list."""
    paths = list(paths)
    if not paths:
        return False
    try:
        return all(Path(p).stat().st_size > 0 for p in paths)
    except FileNotFoundError:
        return False


class ObservationMatcher:
    """Maps observation identifiers onto files in the input root.

    Parameters
    ----------
    naming : InstrumentNaming
        Naming convention of the instrument.
    data_in : Path
        Input data root. Relative names are resolved against it.

    Examples
    --------
    >>> matcher = ObservationMatcher(naming, Path("/data/raw"))
    >>> matcher.resolve("20020101", 5)
    LiteralName(path=PosixPath('/data/raw/f20020101_00005.fits'))
    >>> matcher.check_data_dir("20020101", 4)
    (5, 9)
    """

    def __init__(self, naming: InstrumentNaming, data_in: Path):
        self.naming = naming
        self.data_in = Path(data_in)

    def to_abs_path(self, name: Union[str, Path]) -> Path:
        """Resolve a name relative to the input root; absolute paths pass through."""
        path = Path(str(name).strip())
        if path.is_absolute():
            return path
        return self.data_in / path

    # ------------------------------------------------------------------
    # Raw files
    # ------------------------------------------------------------------

    def resolve(self, utdate, obsnum: int) -> Union[LiteralName, SearchSpec]:
        """Literal path or SearchSpec for an observation."""
        name = self.naming.raw_name(utdate, obsnum)
        if isinstance(name, re.Pattern):
            return SearchSpec(name, self.data_in)
        return LiteralName(self.to_abs_path(name))

    def search(self, spec: SearchSpec) -> list[Path]:
        """Recursive scan of the subtree for basenames matching the pattern."""
        found = []
        for dirpath, _dirnames, filenames in os.walk(spec.root):
            for fname in filenames:
                if spec.pattern.search(fname):
                    found.append(Path(dirpath) / fname)
        return sorted(found)

    def find_raw_files(self, utdate, obsnum: int) -> list[Path]:
        """Existing raw files of an observation, sorted. Empty if none."""
        target = self.resolve(utdate, obsnum)
        if isinstance(target, SearchSpec):
            return self.search(target)
        if target.path.exists():
            return [target.path]
        return []

    def is_present(self, utdate, obsnum: int) -> bool:
        return bool(self.find_raw_files(utdate, obsnum))

    def locate(self, utdate, obsnum: int) -> list[Path]:
        """Raw files of an observation; raises if there are none.

        Raises
        ------
        ObservationNotFound
            If no raw file for the observation exists.
        """
        files = self.find_raw_files(utdate, obsnum)
        if not files:
            target = self.resolve(utdate, obsnum)
            what = target.path if isinstance(target, LiteralName) else target.pattern.pattern
            raise ObservationNotFound(
                f"Could not find files for observation {obsnum} ({what})"
            )
        return files

    # ------------------------------------------------------------------
    # Flag files
    # ------------------------------------------------------------------

    def flag_paths(self, utdate, obsnum: int) -> list[Path]:
        return [self.to_abs_path(n) for n in self.naming.flag_names(utdate, obsnum)]

    def read_flag_files(self, paths) -> dict[str, list[Path]]:
        """Contents of each flag file as absolute raw paths.

        Lines without a word character are ignored. Returns a mapping
        from flag path to the files it lists, in file order.

        Raises
        ------
        FlagFileError
            If a flag file cannot be read.
        """
        contents = {}
        for flag in paths:
            try:
                text = Path(flag).read_text()
            except (OSError, UnicodeDecodeError) as e:
                raise FlagFileError(f"Unable to read flag file {flag}: {e}") from e
            names = [line.strip() for line in text.splitlines() if re.search(r"\w", line)]
            contents[str(flag)] = [self.to_abs_path(n) for n in names]
        return contents

    # ------------------------------------------------------------------
    # Directory scan
    # ------------------------------------------------------------------

    def observation_numbers(self, utdate, flag: bool = False) -> list[int]:
        """Sorted observation numbers present in the input directory.

        Only the top level of the directory is read (the flag directory
        when ``flag`` is set). Numbers are extracted from filenames, not
        checked against the UT date.
        """
        if flag:
            directory = self.data_in / self.naming.flag_dir(utdate)
            pattern = self.naming.flag_scan_pattern()
        else:
            directory = self.data_in
            pattern = self.naming.raw_scan_pattern()

        try:
            names = os.listdir(directory)
        except FileNotFoundError:
            logger.debug("Directory %s does not exist yet", directory)
            return []

        numbers = {
            self.naming.number_from_name(n) for n in names if pattern.search(n)
        }
        numbers.discard(-1)
        return sorted(numbers)

    def check_data_dir(self, utdate, current: int, flag: bool = False
                       ) -> tuple[Optional[int], Optional[int]]:
        """Next and highest observation numbers above ``current``.

        Returns ``(None, None)`` when nothing higher is present. To ask
        whether ``current`` itself is there, pass ``current - 1``.
        """
        numbers = self.observation_numbers(utdate, flag=flag)
        higher = [n for n in numbers if n > current]
        if not higher:
            return None, None
        return higher[0], numbers[-1]
