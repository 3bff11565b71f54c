"""Staging stage contract.

Verifies that every staged basename is reachable from the output
directory before a Frame is built from it.
"""

from pathlib import Path

from obsacq.contracts.base import require


def assert_staged(basenames, data_out: Path) -> None:
    """Enforce staging contract.

    Parameters
    ----------
    basenames : sequence of str
        Staged names returned by the linker.
    data_out : Path
        Output working directory.

    Raises
    ------
    ContractViolation
        If nothing was staged or a staged name does not resolve.
    """
    require(len(basenames) > 0, "Staging contract violated: nothing staged")
    for name in basenames:
        require(
            Path(name).name == name,
            f"Staging contract violated: '{name}' is not a basename",
        )
        require(
            (Path(data_out) / name).exists(),
            f"Staging contract violated: '{name}' does not resolve in {data_out}",
        )
