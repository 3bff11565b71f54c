"""Discovery stage contract.

Enforces the guarantee that a strategy hands over a usable raw file set
and never moves the observation counter backwards.
"""

from obsacq.contracts.base import require


def assert_discovered(files, obsnum: int) -> None:
    """Enforce discovery contract on a raw file set.

    Parameters
    ----------
    files : sequence of Path
        Raw files returned by a strategy for one observation.
    obsnum : int
        Observation number the files belong to.

    Raises
    ------
    ContractViolation
        If the set is empty, contains duplicates or is not lexically sorted.
    """
    require(len(files) > 0, f"Discovery contract violated: no files for observation {obsnum}")
    names = [str(f) for f in files]
    require(
        len(set(names)) == len(names),
        f"Discovery contract violated: duplicate files for observation {obsnum}",
    )
    require(
        names == sorted(names),
        f"Discovery contract violated: files for observation {obsnum} are not sorted",
    )


def assert_monotonic(previous, current) -> None:
    """Enforce non-decreasing observation numbers between deliveries.

    Parameters
    ----------
    previous : int or None
        Observation number delivered last (None before the first delivery).
    current : int
        Observation number about to be delivered.
    """
    if previous is None or current < 0 or previous < 0:
        return
    require(
        current >= previous,
        f"Delivery contract violated: observation {current} after {previous}",
    )
