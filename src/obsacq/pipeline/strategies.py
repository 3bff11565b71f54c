"""Discovery strategies: when is the next observation ready?

Six interchangeable policies share one contract. ``discover(cursor)``
takes the caller's cursor and returns either a :class:`Discovery` (one
ready observation plus the cursor to use next time) or
:class:`Exhausted` (no further observations). Failures raise an
:class:`~obsacq.contracts.AcquisitionError`; once a strategy has chosen
an observation the error carries the advanced cursor so the caller can
step past it. The input cursor is never modified, so retrying with it
repeats the attempt exactly.

========  ===========================  =====================================
name      class                        ready when
========  ===========================  =====================================
list      BoundedList                  next number popped from a fixed list
inf       Unbounded                    next number, incremented every call
wait      TimedWait                    raw file present with a stable size
flag      FlagQuorum                   flag file(s) present and listing data
task      LiveTaskQuorum               every remote task reports a new frame
file      ExplicitFileList             next filename popped from a list
========  ===========================  =====================================
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

from obsacq.contracts import (
    AcquisitionConfigError,
    FlagFileError,
    ObservationNotFound,
    QuorumError,
)
from obsacq.instrument.matcher import (
    ObservationMatcher,
    SearchSpec,
    files_nonzero,
    files_there,
)
from obsacq.instrument.remote import TaskRegistry, materialize_image
from obsacq.pipeline.cursor import Cursor, ObservationId
from obsacq.pipeline.poller import Poller
from obsacq.schemas import InternalConfig

__all__ = [
    'Discovery',
    'Exhausted',
    'DiscoveryStrategy',
    'BoundedList',
    'Unbounded',
    'TimedWait',
    'FlagQuorum',
    'LiveTaskQuorum',
    'ExplicitFileList',
    'STRATEGIES',
    'make_strategy',
]

logger = logging.getLogger(__name__)


@dataclass
class Discovery:
    """One ready observation.

    Attributes
    ----------
    obs : ObservationId
    files : list of Path
        Raw files in lexical order.
    cursor : Cursor
        Cursor for the next call.
    temporary : list of bool
        Per file, True when it was materialized from an inline payload.
    group : int, optional
        Group override for the frame.
    retry_staging : bool
        Staging may be retried once after a short delay (flag delivery,
        where the flag can be written before the data it lists).
    """
    obs: ObservationId
    files: list
    cursor: Cursor
    temporary: list = field(default_factory=list)
    group: Optional[int] = None
    retry_staging: bool = False

    def __post_init__(self):
        if not self.temporary:
            self.temporary = [False] * len(self.files)


@dataclass(frozen=True)
class Exhausted:
    """No further observations. Not an error."""
    cursor: Cursor


Result = Union[Discovery, Exhausted]


class DiscoveryStrategy:
    """Base class for the six policies.

    Parameters
    ----------
    config : InternalConfig
        Uses ``acquisition.utdate`` and ``acquisition.skip``.
    matcher : ObservationMatcher
        Maps observation numbers onto files in the input root.
    poller : Poller, optional
        Required by the strategies that wait.
    """

    name: str = ""
    # Delivered observation numbers never decrease
    monotonic = True

    def __init__(self, config: InternalConfig, matcher: ObservationMatcher,
                 poller: Optional[Poller] = None):
        self.utdate = config.acquisition.utdate
        self.skip = config.acquisition.skip
        self.matcher = matcher
        self.poller = poller

    def discover(self, cursor: Cursor) -> Result:
        """Next ready observation, or Exhausted."""
        if cursor.finished:
            return Exhausted(cursor)
        return self._discover(cursor)

    def _discover(self, cursor: Cursor) -> Result:
        raise NotImplementedError

    def _obs(self, obsnum: int) -> ObservationId:
        return ObservationId(self.utdate, obsnum)

    def _locate(self, obs: ObservationId, cursor: Cursor) -> list[Path]:
        """Raw files of ``obs``; a NotFound error carries ``cursor``."""
        try:
            return self.matcher.locate(obs.utdate, obs.obsnum)
        except ObservationNotFound as e:
            e.obs = obs
            e.cursor = cursor
            raise

    def __repr__(self):
        return f"{type(self).__name__}(utdate={self.utdate}, skip={self.skip})"


class BoundedList(DiscoveryStrategy):
    """Pop observation numbers from a fixed list.

    With skip enabled, numbers whose files are absent are discarded with
    a warning. Without skip, an absent observation is an error.
    """

    name = "list"

    def _discover(self, cursor):
        pending = list(cursor.pending)
        while pending:
            obsnum = pending.pop(0)
            advanced = Cursor(next_obs=pending[0] if pending else None, pending=tuple(pending))
            obs = self._obs(obsnum)

            if self.skip and not self.matcher.is_present(obs.utdate, obsnum):
                logger.warning("Observation %s is not present, skipping", obs)
                continue

            files = self._locate(obs, advanced)
            return Discovery(obs, files, advanced)

        return Exhausted(Cursor.exhausted())


class Unbounded(DiscoveryStrategy):
    """Deliver ``next_obs`` and increment it whether or not it was found.

    There is no end: the caller decides when to stop. With skip enabled
    a missing observation is replaced by the next higher one present.
    """

    name = "inf"

    def _discover(self, cursor):
        if cursor.next_obs is None:
            return Exhausted(Cursor.exhausted())

        obsnum = cursor.next_obs
        obs = self._obs(obsnum)
        if self.skip and not self.matcher.is_present(obs.utdate, obsnum):
            nxt, _ = self.matcher.check_data_dir(obs.utdate, obsnum)
            if nxt is not None:
                logger.warning("Observation %s is not present, skipping to %d", obs, nxt)
                obsnum = nxt
                obs = self._obs(nxt)

        advanced = cursor.advance_to(obsnum + 1)
        files = self._locate(obs, advanced)
        return Discovery(obs, files, advanced)


class TimedWait(DiscoveryStrategy):
    """Poll for the literal raw file until its size settles.

    A file is accepted once two consecutive samples show the same size
    and that size is above zero. With skip enabled, a higher observation
    found in the input directory replaces the awaited one.
    """

    name = "wait"

    def _discover(self, cursor):
        if cursor.next_obs is None:
            return Exhausted(Cursor.exhausted())

        obsnum = cursor.next_obs
        obs = self._obs(obsnum)
        target = self.matcher.resolve(obs.utdate, obsnum)
        if isinstance(target, SearchSpec):
            raise AcquisitionConfigError(
                "Cannot run the wait loop when raw files are found by pattern "
                f"({target.pattern.pattern}). Try the flag loop instead.",
                obs=obs,
            )

        logger.info("Checking for next data file: %s", target.path.name)
        wait = self.poller.start(f"data file {target.path.name}", obs=obs)
        old = 0
        while True:
            path = target.path
            size = self._size(path)
            if size is not None:
                if size > 0 and size == old:
                    break
                old = size
            elif self.skip:
                nxt, _ = self.matcher.check_data_dir(obs.utdate, obsnum - 1)
                if nxt is not None and nxt != obsnum:
                    logger.warning("Observation %s is not present, skipping to %d", obs, nxt)
                    obsnum = nxt
                    obs = self._obs(nxt)
                    target = self.matcher.resolve(obs.utdate, obsnum)
                    wait.what = f"data file {target.path.name}"
                    wait.obs = obs
                    old = 0
                    continue
            wait.pause()

        logger.info("Found %s", target.path.name)
        return Discovery(obs, [target.path], cursor.advance_to(obsnum + 1))

    @staticmethod
    def _size(path: Path) -> Optional[int]:
        try:
            return path.stat().st_size
        except FileNotFoundError:
            return None


class FlagQuorum(DiscoveryStrategy):
    """Wait for flag files announcing an observation.

    Every poll looks at the flags of the current observation N and of
    N+1, in this order:

    1. N+1 flags present and ready: N is complete, move to N+1.
    2. N flags present: deliver the files listed that were not delivered
       before (a flag may grow); empty flags mean "not yet".
    3. Skip enabled: jump to the first of the next ``flag_lookahead``
       observations that has flags.
    4. Sleep and try again.

    In ``listing`` mode the cursor stays on N after a delivery so the
    flag can be re-read; it only moves on when N+1's flag is ready. In
    ``marker`` mode flags carry no contents, their presence means ready,
    files come from the naming convention and the cursor moves to N+1.
    """

    name = "flag"

    def __init__(self, config, matcher, poller=None):
        super().__init__(config, matcher, poller)
        self.lookahead = config.polling.flag_lookahead
        self.marker = config.naming.flag_contents == "marker"

    def _ready(self, flags) -> bool:
        if self.marker:
            return files_there(flags)
        return files_nonzero(flags)

    def _discover(self, cursor):
        if cursor.next_obs is None:
            return Exhausted(Cursor.exhausted())

        ut = self.utdate
        obsnum = cursor.next_obs
        seen = {k: set(v) for k, v in cursor.seen.items()}
        obs = self._obs(obsnum)
        wait = self.poller.start(f"flag file(s) for observation {obsnum}", obs=obs)

        while True:
            current = self.matcher.flag_paths(ut, obsnum)
            following = self.matcher.flag_paths(ut, obsnum + 1)

            if self._ready(following):
                logger.info("Flag for observation %d is ready, observation %d is complete",
                            obsnum + 1, obsnum)
                obsnum += 1
                seen = {}
                current = following

            if files_there(current):
                if self._ready(current):
                    obs = self._obs(obsnum)
                    if self.marker:
                        advanced = cursor.advance_to(obsnum + 1)
                        return Discovery(obs, self._locate(obs, advanced), advanced,
                                         retry_staging=True)
                    result = self._new_files(obs, current, seen, cursor)
                    if result is not None:
                        return result
            elif self.skip:
                found = self._look_ahead(obsnum)
                if found is not None:
                    logger.warning("No flag for observation %d, skipping to %d", obsnum, found)
                    obsnum = found
                    seen = {}
                    wait.what = f"flag file(s) for observation {obsnum}"
                    wait.obs = self._obs(obsnum)
                    continue

            wait.pause()

    def _look_ahead(self, obsnum: int) -> Optional[int]:
        for candidate in range(obsnum + 1, obsnum + self.lookahead + 1):
            if files_there(self.matcher.flag_paths(self.utdate, candidate)):
                return candidate
        return None

    def _new_files(self, obs, flags, seen, cursor) -> Optional[Discovery]:
        """Files listed in ``flags`` that are not in ``seen``, or None."""
        contents = self.matcher.read_flag_files(flags)
        if not any(contents.values()) and not any(seen.values()):
            raise FlagFileError(
                f"Flag file(s) for observation {obs} list no data files: "
                + ", ".join(str(f) for f in flags),
                obs=obs,
            )

        updated = {k: set(v) for k, v in seen.items()}
        new = set()
        for key, files in contents.items():
            already = updated.setdefault(key, set())
            for f in files:
                if str(f) not in already:
                    new.add(str(f))
                    already.add(str(f))

        if not new:
            return None

        advanced = Cursor(next_obs=obs.obsnum).with_seen(updated)
        files = [Path(f) for f in sorted(new)]
        logger.info("Flag file(s) for observation %s list %d new file(s)", obs, len(files))
        return Discovery(obs, files, advanced, retry_staging=True)


class LiveTaskQuorum(DiscoveryStrategy):
    """Wait until every remote task reports the same new frame.

    ``cursor.next_obs`` holds the last delivered frame number. A task
    reporting a frame above the one being collected restarts the
    collection for that frame; reports below it are ignored.

    Parameters
    ----------
    tasks : TaskRegistry
        Connections to the remote tasks named in ``config.tasks.sources``.
    data_out : Path
        Where inline images are written.
    """

    name = "task"

    def __init__(self, config, matcher, poller=None, tasks: Optional[TaskRegistry] = None,
                 data_out: Optional[Path] = None):
        super().__init__(config, matcher, poller)
        self.sources = list(config.tasks.sources)
        self.parameter = config.tasks.parameter
        if not self.sources:
            raise AcquisitionConfigError("The task loop needs at least one remote task in tasks.sources")
        if tasks is None:
            raise AcquisitionConfigError("The task loop needs a remote task registry")
        self.tasks = tasks
        self.data_out = Path(data_out) if data_out is not None else matcher.data_in

    def _discover(self, cursor):
        ref = cursor.next_obs or 0
        received: dict[int, dict] = {}
        want = None
        wait = self.poller.start("next monitored data set")

        while True:
            while True:
                progress = False
                for task in self.sources:
                    if want is not None and task in received.get(want, {}):
                        continue
                    current = self.tasks.get(task, self.parameter)
                    this = current.get("FRAMENUM")
                    if this is None:
                        continue
                    try:
                        this = int(this)
                    except (TypeError, ValueError):
                        raise QuorumError(
                            f"Task {task} reported a non-numeric FRAMENUM {this!r}"
                        ) from None
                    if this <= ref:
                        continue
                    if want is not None and this < want:
                        continue
                    if ref > 1 and this - ref > 1:
                        logger.warning("Got frame %d when expecting %d from task %s",
                                       this, ref + 1, task)
                    if want is not None and this > want:
                        logger.warning("Frame mismatch (%d != %d), discarding frame %d",
                                       this, want, want)
                        received.pop(want, None)
                    want = this
                    received.setdefault(want, {})[task] = current
                    progress = True

                if want is None or len(received[want]) == len(self.sources) or not progress:
                    break
                logger.info("Going round the task loop again (got %d of %d for frame %d)",
                            len(received[want]), len(self.sources), want)

            if want is not None and len(received[want]) == len(self.sources):
                break
            wait.pause()

        obs = self._obs(want)
        advanced = cursor.advance_to(want)
        pairs = []
        owners: dict[Path, str] = {}
        for task in self.sources:
            payload = received[want][task]
            if "FILENAME" in payload:
                path = self.matcher.to_abs_path(payload["FILENAME"])
                if path in owners:
                    raise QuorumError(
                        f"Tasks {owners[path]} and {task} both report {path.name} for frame {want}",
                        obs=obs, cursor=advanced,
                    )
                owners[path] = task
                pairs.append((path, False))
            elif "IMAGE" in payload:
                try:
                    pairs.append((materialize_image(task, payload, self.data_out), True))
                except QuorumError as e:
                    e.obs, e.cursor = obs, advanced
                    raise
            else:
                raise QuorumError(
                    f"Parameter {self.parameter} of task {task} has neither FILENAME nor IMAGE",
                    obs=obs, cursor=advanced,
                )

        pairs.sort(key=lambda p: str(p[0]))
        logger.info("Found frame %d from %d task(s)", want, len(self.sources))
        return Discovery(
            obs,
            [p[0] for p in pairs],
            advanced,
            temporary=[p[1] for p in pairs],
            group=want,
        )


class ExplicitFileList(DiscoveryStrategy):
    """Pop one filename at a time; a blank entry ends the list.

    Relative names are taken under the input root. The observation
    number comes from the filename (-1 when it has none), and the
    caller's order is kept.
    """

    name = "file"
    monotonic = False

    def _discover(self, cursor):
        pending = list(cursor.pending)
        if not pending:
            return Exhausted(Cursor.exhausted())

        name = pending.pop(0)
        if not str(name).strip():
            logger.info("Blank entry in the file list, stopping")
            return Exhausted(Cursor.exhausted())

        advanced = Cursor.from_files(pending)
        path = self.matcher.to_abs_path(name)
        obs = self._obs(self.matcher.naming.number_from_name(path))
        if not path.exists():
            raise ObservationNotFound(f"File {path} does not exist", obs=obs, cursor=advanced)
        return Discovery(obs, [path], advanced)


STRATEGIES = {
    cls.name: cls
    for cls in (BoundedList, Unbounded, TimedWait, FlagQuorum, LiveTaskQuorum, ExplicitFileList)
}


def make_strategy(config: InternalConfig, matcher: ObservationMatcher, name: Optional[str] = None,
                  clock: Optional[Callable[[], float]] = None,
                  sleeper: Optional[Callable[[float], None]] = None,
                  yield_hook: Optional[Callable[[], None]] = None,
                  tasks: Optional[TaskRegistry] = None,
                  data_out: Optional[Path] = None) -> DiscoveryStrategy:
    """Build the strategy called ``name`` (default ``config.loop``).

    The task loop polls on its own faster cadence
    (``polling.task_pause_sec``); the others use ``polling.pause_sec``.

    Raises
    ------
    AcquisitionConfigError
        If the name is unknown or the strategy cannot be set up.
    """
    name = name or config.loop
    try:
        cls = STRATEGIES[name]
    except KeyError:
        raise AcquisitionConfigError(
            f"Unknown loop '{name}'. Must be one of {sorted(STRATEGIES)}"
        ) from None

    polling = config.polling
    if cls is LiveTaskQuorum:
        poller = Poller(polling.timeout_sec, polling.task_pause_sec, polling.task_progress_every,
                        clock=clock, sleeper=sleeper, yield_hook=yield_hook)
        return cls(config, matcher, poller, tasks=tasks, data_out=data_out)

    poller = Poller(polling.timeout_sec, polling.pause_sec, polling.progress_every,
                    clock=clock, sleeper=sleeper, yield_hook=yield_hook)
    return cls(config, matcher, poller)
