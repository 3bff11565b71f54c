"""Sleep-poll timing shared by the waiting strategies.

There is no push notification from the filesystem or the remote tasks,
so waiting is a loop of check, sleep, check. A :class:`Poller` holds the
cadence (pause, timeout, progress) and hands out one :class:`PollWait`
per acquisition attempt; the timeout budget applies to that attempt
only.
"""

import logging
import time
from typing import Callable, Optional

from obsacq.contracts import AcquisitionTimeout

__all__ = ['Poller', 'PollWait']

logger = logging.getLogger(__name__)

# Longest single sleep while a yield hook is installed
_HOOK_SLICE_SEC = 0.2


class Poller:
    """Polling cadence with injectable time sources.

    Parameters
    ----------
    timeout : float
        Budget in seconds for one acquisition attempt.
    pause : float
        Seconds slept between checks.
    progress_every : int
        Pauses between progress messages.
    clock : callable, optional
        Monotonic time source. Default: ``time.monotonic``.
    sleeper : callable, optional
        ``sleeper(seconds)``. Default: ``time.sleep``.
    yield_hook : callable, optional
        Called repeatedly while sleeping so an attached UI stays
        responsive. Sleeps are cut into short slices when set.
    """

    def __init__(self, timeout: float, pause: float, progress_every: int,
                 clock: Optional[Callable[[], float]] = None,
                 sleeper: Optional[Callable[[float], None]] = None,
                 yield_hook: Optional[Callable[[], None]] = None):
        self.timeout = timeout
        self.pause = pause
        self.progress_every = progress_every
        self._clock = clock or time.monotonic
        self._sleep = sleeper or time.sleep
        self.yield_hook = yield_hook

    def start(self, what: str, obs=None) -> "PollWait":
        """Begin waiting for ``what``; the timeout runs from now."""
        return PollWait(self, what, obs)

    def sleep(self, seconds: float) -> None:
        """Sleep, calling the yield hook between short slices."""
        if self.yield_hook is None:
            self._sleep(seconds)
            return
        remaining = seconds
        while remaining > 0:
            step = min(_HOOK_SLICE_SEC, remaining)
            self._sleep(step)
            self.yield_hook()
            remaining -= step

    def now(self) -> float:
        return self._clock()


class PollWait:
    """One attempt's wait state: start time and pause count.

    ``what`` and ``obs`` may be updated while waiting (after a skip) so
    the timeout names the observation actually awaited.
    """

    def __init__(self, poller: Poller, what: str, obs=None):
        self.poller = poller
        self.what = what
        self.obs = obs
        self.started = poller.now()
        self.npauses = 0

    @property
    def elapsed(self) -> float:
        return self.poller.now() - self.started

    def pause(self) -> None:
        """Sleep once, then enforce the budget.

        The last sleep is shortened so the timeout fires at the budget,
        not a whole pause past it.

        Raises
        ------
        AcquisitionTimeout
            If the attempt has used its whole budget.
        """
        poller = self.poller
        remaining = poller.timeout - self.elapsed
        poller.sleep(max(0.0, min(poller.pause, remaining)))
        self.npauses += 1

        if self.elapsed >= poller.timeout:
            raise AcquisitionTimeout(
                f"Timeout whilst waiting for {self.what} ({poller.timeout:g} s)",
                obs=self.obs,
            )

        if self.npauses % poller.progress_every == 0:
            logger.info("Still waiting for %s (%.0f s)", self.what, self.elapsed)
