"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for all contracts.
"""

from obsacq.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce an acquisition contract.

    This is called at stage boundaries to verify the preceding stage
    produced the guaranteed invariants. It is fail-fast: no recovery,
    no fallback, no silence.

    Parameters
    ----------
    condition : bool
        The invariant that must be true. If False, ContractViolation is raised.

    message : str
        Error message explaining the contract violation (for debugging).

    Raises
    ------
    ContractViolation
        If condition is False. This indicates a bug in engine logic.

    Examples
    --------
    >>> require(len(files) > 0, "Discovery contract: empty raw file set")
    >>> require(new.next_obs >= old.next_obs, "Cursor contract: moved backwards")
    """
    if not condition:
        raise ContractViolation(message)
