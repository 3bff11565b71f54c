"""Acquisition run orchestration.

Repeatedly acquires frames, hands each one to a processor callable,
keeps statistics and a delivery record, and reports how the run ended.
"""

import time
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from obsacq.contracts import (
    AcquisitionError,
    AcquisitionTimeout,
    ObservationNotFound,
    RemoteUnavailable,
)
from obsacq.instrument.matcher import ObservationMatcher
from obsacq.instrument.naming import InstrumentNaming
from obsacq.instrument.remote import RemoteTask, TaskRegistry
from obsacq.pipeline.acquisition import AcquisitionLoop
from obsacq.pipeline.cursor import Cursor
from obsacq.pipeline.frame import Frame
from obsacq.pipeline.selection import select_loop
from obsacq.pipeline.strategies import make_strategy
from obsacq.pipeline.tracker import AcquisitionTracker
from obsacq.schemas import InternalConfig
from obsacq.setup_directories import setup_data_directories

__all__ = ['AcquisitionOrchestrator', 'RunStatus', 'RunSummary']

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    """How a run ended."""
    FINISHED = "finished"          # no more observations
    STALLED = "stalled"            # timed out waiting for data
    ABORTED = "aborted"            # a live data source went away
    FAILED = "failed"              # any other error
    INTERRUPTED = "interrupted"    # Ctrl+C
    LIMIT = "limit"                # max_frames reached


@dataclass
class RunSummary:
    status: RunStatus
    cursor: Cursor
    loop: str
    frames: int = 0
    delivered: int = 0
    failed: int = 0
    elapsed: float = 0.0
    errors: list = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        """True when the run ended normally."""
        return self.status in (RunStatus.FINISHED, RunStatus.LIMIT)


class AcquisitionOrchestrator:
    """Runs the acquisition loop until the data run out or something breaks.

    This is the main entry point for running ``obsacq``. It sets up the
    output directories, logging and the delivery tracker, selects the
    discovery strategy from the configuration, then loops: acquire a
    frame, process it, move the cursor on.

    **Failure handling:**

    - Timeout: the run ends as STALLED, distinct from FINISHED.
    - RemoteUnavailable: the run ends as ABORTED.
    - A missing observation under the inf loop ends the run as FINISHED
      (the loop runs until no files are available).
    - Other failures end the run as FAILED unless
      ``acquisition.continue_on_error`` is set and the error carries an
      advanced cursor, in which case the observation is recorded as
      failed and the run carries on.

    **Logging:**

    All output goes to both console and log file
    (<data_out>/logs/acquisition_{instrument}.log).

    Example usage::

        from obsacq.pipeline.orchestrator import AcquisitionOrchestrator

        orch = AcquisitionOrchestrator(config, processor=run_recipe)
        summary = orch.run()
        if summary.status is RunStatus.STALLED:
            ...

    Parameters
    ----------
    config : InternalConfig
        Resolved configuration.
    processor : callable, optional
        ``processor(frame)`` called for every frame. Frames are only
        logged when not given.
    connect : callable, optional
        ``connect(task_name) -> RemoteTask``, required by the task loop.
    clock, sleeper, yield_hook : callable, optional
        Passed through to the pollers.
    configure_logging : bool
        Install root log handlers on run(). Tests switch this off.
    """

    def __init__(self, config: InternalConfig,
                 processor: Optional[Callable[[Frame], None]] = None,
                 connect: Optional[Callable[[str], RemoteTask]] = None,
                 clock: Optional[Callable[[], float]] = None,
                 sleeper: Optional[Callable[[float], None]] = None,
                 yield_hook: Optional[Callable[[], None]] = None,
                 configure_logging: bool = True):
        self.config = config
        self.processor = processor
        self.connect = connect
        self._clock = clock or time.monotonic
        self._sleeper = sleeper
        self._yield_hook = yield_hook
        self.configure_logging = configure_logging

        self.dirs: Optional[dict] = None
        self.tracker: Optional[AcquisitionTracker] = None
        self.loop: Optional[AcquisitionLoop] = None

    def _setup_logging(self):
        """Configure root logger with file and console handlers."""
        log_level = getattr(logging, self.config.logging.level, logging.INFO)

        log_dir = Path(self.dirs["logs"])
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / f"acquisition_{self.config.instrument}.log"

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_path)

    def _setup_tracker(self):
        if not self.config.tracker.enabled:
            return
        name = self.config.tracker.db_filename_pattern.format(
            instrument=self.config.instrument,
            utdate=self.config.acquisition.utdate,
        )
        self.tracker = AcquisitionTracker(Path(self.dirs["logs"]) / name)

    def run(self, max_frames: Optional[int] = None, cursor: Optional[Cursor] = None) -> RunSummary:
        """Acquire and process frames until the run ends.

        Parameters
        ----------
        max_frames : int, optional
            Stop with status LIMIT after this many frames.
        cursor : Cursor, optional
            Resume from a saved cursor instead of the one derived from
            the acquisition options.

        Returns
        -------
        RunSummary
        """
        self.dirs = setup_data_directories(self.config.paths.data_in, self.config.paths.data_out)
        if self.configure_logging:
            self._setup_logging()
        self._setup_tracker()

        naming = InstrumentNaming(self.config)
        matcher = ObservationMatcher(naming, self.dirs["data_in"])
        name, start = select_loop(self.config, matcher)
        cursor = cursor or start

        logger.info("=" * 60)
        logger.info("Starting acquisition: instrument=%s, UT=%s, loop=%s",
                    self.config.instrument, self.config.acquisition.utdate, name)
        logger.info("=" * 60)

        registry = TaskRegistry(self.connect) if self.connect is not None else None
        started = self._clock()
        summary = RunSummary(RunStatus.FAILED, cursor, name)
        try:
            strategy = make_strategy(
                self.config, matcher, name=name,
                clock=self._clock, sleeper=self._sleeper, yield_hook=self._yield_hook,
                tasks=registry, data_out=self.dirs["data_out"],
            )
            self.loop = AcquisitionLoop(self.config, strategy=strategy, sleeper=self._sleeper)
            self._main_loop(summary, max_frames)
        except KeyboardInterrupt:
            logger.info("Shutdown signal received (Ctrl+C)")
            summary.status = RunStatus.INTERRUPTED
        except AcquisitionError as e:
            # Strategy construction failed
            logger.error("%s", e)
            summary.status = RunStatus.FAILED
            summary.error = e
            summary.errors.append(str(e))
        finally:
            summary.elapsed = self._clock() - started
            if registry is not None:
                registry.close()
            self._log_summary(summary)
            if self.tracker is not None:
                self.tracker.close()

        return summary

    def _main_loop(self, summary: RunSummary, max_frames: Optional[int]):
        """Acquire, process, advance. Updates ``summary`` in place."""
        while True:
            if max_frames is not None and summary.frames >= max_frames:
                logger.info("Frame limit reached (%d)", max_frames)
                summary.status = RunStatus.LIMIT
                return

            try:
                result = self.loop.acquire(summary.cursor)
            except AcquisitionError as e:
                if self._handle_error(summary, e):
                    continue
                return

            if not result.ready:
                summary.cursor = result.cursor
                summary.status = RunStatus.FINISHED
                return

            try:
                for frm in result.frames:
                    if self.processor is not None:
                        self.processor(frm)
                    else:
                        logger.info("Frame ready: %s", frm)
            except Exception as e:
                logger.exception("Processing observation %s failed", result.obs)
                summary.failed += 1
                summary.errors.append(f"{result.obs}: {e}")
                self._record_failure(result.obs, "processing", str(e))
                if not self.config.acquisition.continue_on_error:
                    summary.cursor = result.cursor
                    summary.status = RunStatus.FAILED
                    summary.error = e
                    return
            else:
                summary.delivered += 1
                summary.frames += len(result.frames)
                if self.tracker is not None:
                    self.tracker.record_delivery(
                        result.obs, self.config.instrument, summary.loop,
                        files=[f for frm in result.frames for f in frm.files],
                        num_frames=len(result.frames),
                    )

            summary.cursor = result.cursor

    def _handle_error(self, summary: RunSummary, error: AcquisitionError) -> bool:
        """Record a failed attempt. True if the run carries on."""
        self._record_failure(error.obs, error.kind, str(error))

        if isinstance(error, AcquisitionTimeout):
            logger.error("%s", error)
            summary.status = RunStatus.STALLED
            summary.error = error
            return False

        if isinstance(error, RemoteUnavailable):
            logger.error("%s. Aborting.", error)
            summary.status = RunStatus.ABORTED
            summary.error = error
            summary.errors.append(str(error))
            return False

        if isinstance(error, ObservationNotFound) and summary.loop == "inf":
            logger.info("%s. No more data available.", error)
            summary.cursor = error.cursor or summary.cursor
            summary.status = RunStatus.FINISHED
            return False

        logger.error("Observation %s failed: %s", error.obs, error)
        summary.failed += 1
        summary.errors.append(str(error))

        if (self.config.acquisition.continue_on_error and not error.fatal
                and error.cursor is not None):
            logger.warning("Continuing after failed observation %s", error.obs)
            summary.cursor = error.cursor
            return True

        summary.status = RunStatus.FAILED
        summary.error = error
        return False

    def _record_failure(self, obs, kind: str, message: str):
        if self.tracker is not None and obs is not None:
            self.tracker.record_failure(obs, self.config.instrument, None, kind, message)

    def _log_summary(self, summary: RunSummary):
        logger.info("=" * 60)
        logger.info("Acquisition %s after %.1f s", summary.status.value.upper(), summary.elapsed)
        logger.info("Observations delivered: %d, frames: %d, failed: %d",
                    summary.delivered, summary.frames, summary.failed)
        if self.tracker is not None:
            stats = self.tracker.get_statistics()
            logger.info("Tracker: %d observation(s), %d delivered, %d failed",
                        stats.get("total", 0), stats.get("delivered", 0), stats.get("failed", 0))
        logger.info("Next cursor: %s", summary.cursor.to_slots())
        logger.info("=" * 60)
