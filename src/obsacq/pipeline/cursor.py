"""Observation identity and the caller-owned acquisition cursor.

The cursor is the continuation token threaded through repeated calls to a
discovery strategy. It is immutable: strategies return a new cursor with
their result and never modify the one they were given, so a caller that
keeps the old cursor after a failed attempt can retry exactly.
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, Mapping, Optional

from obsacq.instrument.naming import format_ut

__all__ = ['ObservationId', 'Cursor']


@dataclass(frozen=True, order=True)
class ObservationId:
    """One observation: UT date (YYYYMMDD) and sequence number."""
    utdate: str
    obsnum: int

    def __str__(self):
        return f"{self.utdate} #{self.obsnum}"

    @classmethod
    def of(cls, utdate, obsnum: int) -> "ObservationId":
        return cls(format_ut(utdate), int(obsnum))


@dataclass(frozen=True)
class Cursor:
    """Continuation state for a discovery strategy.

    Attributes
    ----------
    next_obs : int or None
        Next expected observation number. None means "stop": every
        strategy keyed on observation numbers reports exhaustion.
        The remote task strategy stores the last delivered frame here.
    pending : tuple
        Remaining observation numbers (bounded list) or filenames
        (explicit file list).
    seen : mapping of str to frozenset of str
        Per source key (flag file path or task name), the raw filenames
        already delivered for the current observation.
    finished : bool
        Set once a strategy has reported exhaustion.
    """

    next_obs: Optional[int] = None
    pending: tuple = ()
    seen: Mapping[str, frozenset] = field(default_factory=dict)
    finished: bool = False

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def starting_at(cls, obsnum: int) -> "Cursor":
        return cls(next_obs=obsnum)

    @classmethod
    def from_numbers(cls, numbers: Iterable[int]) -> "Cursor":
        pending = tuple(int(n) for n in numbers)
        return cls(next_obs=pending[0] if pending else None, pending=pending)

    @classmethod
    def from_files(cls, names: Iterable[str]) -> "Cursor":
        return cls(pending=tuple(str(n) for n in names))

    @classmethod
    def exhausted(cls) -> "Cursor":
        return cls(finished=True)

    # ------------------------------------------------------------------
    # Transitions (always return a new cursor)
    # ------------------------------------------------------------------

    def advance_to(self, obsnum: Optional[int]) -> "Cursor":
        """Move to another observation and forget per-observation bookkeeping."""
        return replace(self, next_obs=obsnum, seen={})

    def with_seen(self, seen: Mapping[str, Iterable[str]]) -> "Cursor":
        return replace(self, seen={k: frozenset(v) for k, v in seen.items()})

    def with_pending(self, pending) -> "Cursor":
        return replace(self, pending=tuple(pending))

    def finish(self) -> "Cursor":
        return Cursor.exhausted()

    def seen_files(self) -> frozenset:
        """Every filename already delivered for the current observation."""
        out = set()
        for names in self.seen.values():
            out.update(names)
        return frozenset(out)

    # ------------------------------------------------------------------
    # Array form: [next_obs, {key: [names]}]
    # ------------------------------------------------------------------

    def to_slots(self) -> list:
        """Ordered external representation.

        Slot 0 is the next observation number (None when done); slot 1,
        present when there is bookkeeping, maps source keys to the sorted
        filenames already consumed. A pending list is appended as slot 2.
        """
        slots = [None if self.finished else self.next_obs]
        if self.seen or self.pending:
            slots.append({k: sorted(v) for k, v in self.seen.items()})
        if self.pending:
            slots.append(list(self.pending))
        return slots

    @classmethod
    def from_slots(cls, slots) -> "Cursor":
        if not slots:
            return cls.exhausted()
        next_obs = slots[0]
        seen = slots[1] if len(slots) > 1 and slots[1] else {}
        pending = tuple(slots[2]) if len(slots) > 2 else ()
        if next_obs is None and not pending:
            return cls.exhausted()
        return cls(
            next_obs=next_obs,
            pending=pending,
            seen={k: frozenset(v) for k, v in seen.items()},
        )
