"""Pick the discovery strategy and starting cursor from the run options."""

import logging
import re
from pathlib import Path
from typing import Optional, Union

from obsacq.instrument.matcher import ObservationMatcher
from obsacq.pipeline.cursor import Cursor
from obsacq.schemas import InternalConfig

__all__ = ['select_loop', 'parse_obslist', 'parse_files']

logger = logging.getLogger(__name__)


def parse_obslist(obslist: str) -> list[int]:
    """Expand a comma separated list with ``a:b`` ranges.

    Order is kept and ranges are inclusive.

    >>> parse_obslist("1,3:5,9")
    [1, 3, 4, 5, 9]

    Raises
    ------
    ValueError
        If an entry is not a number or a range.
    """
    numbers = []
    for entry in obslist.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if ":" in entry:
            start, end = (int(x) for x in entry.split(":", 1))
            numbers.extend(range(start, end + 1))
        else:
            numbers.append(int(entry))
    return numbers


def parse_files(path: Union[str, Path]) -> list[str]:
    """Read a list of raw filenames from a text file.

    One name per line. ``#`` starts a comment; surrounding whitespace and
    lines without any word character are dropped. Relative names are
    resolved later against the input root.

    Raises
    ------
    OSError
        If the file cannot be read.
    """
    names = []
    with open(path) as fh:
        for line in fh:
            name = line.split("#", 1)[0].strip()
            if re.search(r"\w", name):
                names.append(name)
    logger.info("Read %d filename(s) from %s", len(names), path)
    return names


def select_loop(config: InternalConfig, matcher: Optional[ObservationMatcher] = None
                ) -> tuple[str, Cursor]:
    """Strategy name and initial cursor for a run.

    =====================  ==========================================
    options                result
    =====================  ==========================================
    from + to              list of from..to
    from + skip            list of from..highest present (detection
                           loops wait/flag keep their loop from ``from``)
    from                   inf from ``from``
    list                   list of the parsed numbers, sorted
    to                     list of 1..to
    files                  file
    nothing                wait from 1
    =====================  ==========================================

    An explicit ``config.loop`` replaces the result unless it is the list
    loop. A list of observations always means the list loop and a list
    of files always means the file loop.

    Parameters
    ----------
    config : InternalConfig
    matcher : ObservationMatcher, optional
        Needed only for ``from`` + skip, to find the highest observation.
    """
    acq = config.acquisition
    loop = config.loop
    numbers: list[int]

    if acq.from_obs is not None:
        start = acq.from_obs
        if acq.to_obs is not None:
            derived, numbers = "list", list(range(start, acq.to_obs + 1))
        elif acq.skip and loop not in ("wait", "flag"):
            if matcher is None:
                raise ValueError("Selecting observations with skip needs an ObservationMatcher")
            _, highest = matcher.check_data_dir(acq.utdate, start)
            end = highest if highest is not None else start
            derived, numbers = "list", list(range(start, end + 1))
        elif acq.skip:
            derived, numbers = loop, [start]
        else:
            derived, numbers = "inf", [start]
        logger.info("Starting at observation %d", start)
    elif acq.obs_list:
        derived, numbers = "list", sorted(set(parse_obslist(acq.obs_list)))
    elif acq.to_obs is not None:
        logger.info("Processing observations 1 to %d", acq.to_obs)
        derived, numbers = "list", list(range(1, acq.to_obs + 1))
    elif acq.files:
        derived, numbers = "file", []
    else:
        logger.info("No observation numbers supplied, starting from observation 1")
        derived, numbers = "wait", [1]

    name = derived
    if loop is not None and derived != "list":
        name = loop
    if acq.obs_list:
        name = "list"
    if acq.files and acq.from_obs is None and acq.to_obs is None and not acq.obs_list:
        name = "file"

    if name == "list":
        cursor = Cursor.from_numbers(numbers)
    elif name == "file":
        cursor = Cursor.from_files(acq.files)
    else:
        cursor = Cursor.starting_at(numbers[0] if numbers else 1)

    logger.debug("Selected loop %s with cursor %s", name, cursor.to_slots())
    return name, cursor
