"""AcquisitionLoop: discover, convert, stage, build the Frame.

The loop owns the call sequence and nothing else. The caller owns the
cursor: it passes one in, gets the next one back with the result, and
after a failure decides whether to retry with its old cursor or to
carry on with the cursor attached to the error.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from obsacq.contracts import AcquisitionError, assert_discovered, assert_monotonic, assert_staged
from obsacq.instrument.converter import FormatConverter
from obsacq.instrument.linker import StagingLinker
from obsacq.instrument.matcher import ObservationMatcher
from obsacq.instrument.naming import InstrumentNaming, data_roots
from obsacq.instrument.remote import TaskRegistry
from obsacq.pipeline.cursor import Cursor, ObservationId
from obsacq.pipeline.frame import Frame
from obsacq.pipeline.strategies import Discovery, DiscoveryStrategy, Exhausted, make_strategy
from obsacq.schemas import InternalConfig

__all__ = ['AcquisitionLoop', 'AcquisitionStatus', 'Acquisition']

logger = logging.getLogger(__name__)


class AcquisitionStatus(str, Enum):
    READY = "ready"
    EXHAUSTED = "exhausted"


@dataclass
class Acquisition:
    """Result of one acquisition attempt that did not fail."""
    status: AcquisitionStatus
    cursor: Cursor
    frames: list = field(default_factory=list)
    obs: Optional[ObservationId] = None

    @property
    def ready(self) -> bool:
        return self.status == AcquisitionStatus.READY

    @property
    def frame(self) -> Optional[Frame]:
        return self.frames[0] if self.frames else None


class AcquisitionLoop:
    """Drive one discovery strategy and stage what it finds.

    Parameters
    ----------
    config : InternalConfig
        Resolved configuration.
    strategy : DiscoveryStrategy, optional
        Built from ``config.loop`` when not given.
    clock, sleeper, yield_hook : callable, optional
        Time sources and UI hook passed to the strategy's poller.
    tasks : TaskRegistry, optional
        Remote task connections, required by the task loop.

    Examples
    --------
    >>> loop = AcquisitionLoop(config)
    >>> cursor = Cursor.starting_at(1)
    >>> result = loop.acquire(cursor)
    >>> if result.ready:
    ...     process(result.frame)
    ...     cursor = result.cursor
    """

    def __init__(self, config: InternalConfig, strategy: Optional[DiscoveryStrategy] = None,
                 clock: Optional[Callable[[], float]] = None,
                 sleeper: Optional[Callable[[float], None]] = None,
                 yield_hook: Optional[Callable[[], None]] = None,
                 tasks: Optional[TaskRegistry] = None):
        self.config = config
        self.data_in, self.data_out = data_roots(config)
        self.naming = InstrumentNaming(config)
        self.matcher = strategy.matcher if strategy is not None else ObservationMatcher(self.naming, self.data_in)
        self.converter = FormatConverter(config, self.data_out)
        self.linker = StagingLinker(self.data_out)
        self.strategy = strategy or make_strategy(
            config, self.matcher,
            clock=clock, sleeper=sleeper, yield_hook=yield_hook,
            tasks=tasks, data_out=self.data_out,
        )
        self.retry_delay = config.polling.retry_delay_sec
        self._sleep = sleeper or time.sleep
        self._last_obs: Optional[int] = None

    def acquire(self, cursor: Cursor) -> Acquisition:
        """One acquisition attempt.

        Returns
        -------
        Acquisition
            READY with the frames and the next cursor, or EXHAUSTED.

        Raises
        ------
        AcquisitionError
            For any failure. ``error.cursor`` is set when the strategy had
            chosen an observation before failing.
        """
        result = self.strategy.discover(cursor)
        if isinstance(result, Exhausted):
            logger.info("No more observations to acquire")
            return Acquisition(AcquisitionStatus.EXHAUSTED, result.cursor)

        assert_discovered(result.files, result.obs.obsnum)
        if self.strategy.monotonic:
            assert_monotonic(self._last_obs, result.obs.obsnum)

        try:
            names = self._stage(result)
        except AcquisitionError as e:
            if not result.retry_staging:
                self._annotate(e, result)
                raise
            logger.warning("Staging observation %s failed (%s), retrying in %g s",
                           result.obs, e, self.retry_delay)
            self._sleep(self.retry_delay)
            try:
                names = self._stage(result)
            except AcquisitionError as e2:
                self._annotate(e2, result)
                raise

        try:
            frames = Frame.framegroup(result.obs, self.data_out, names, result.temporary)
        except AcquisitionError as e:
            self._annotate(e, result)
            raise
        if result.group is not None:
            for frm in frames:
                frm.group = result.group

        self._last_obs = result.obs.obsnum
        logger.info("Observation %s ready: %s", result.obs, ", ".join(names))
        return Acquisition(AcquisitionStatus.READY, result.cursor, frames, result.obs)

    def _stage(self, result: Discovery) -> list[str]:
        """Convert and link every file; the first failure aborts the observation."""
        names = []
        for raw in result.files:
            converted = self.converter.convert(raw)
            names.append(self.linker.stage(converted))
        assert_staged(names, self.data_out)
        return names

    @staticmethod
    def _annotate(error: AcquisitionError, result: Discovery) -> None:
        if error.obs is None:
            error.obs = result.obs
        if error.cursor is None:
            error.cursor = result.cursor
