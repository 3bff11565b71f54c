"""Pipeline modules.

- cursor: Observation identity and the caller-owned cursor
- strategies: The six discovery policies
- acquisition: Discover, convert, stage, build the Frame
- orchestrator: Main acquisition run controller
- tracker: SQLite-based delivery tracking
"""

from obsacq.pipeline.cursor import Cursor, ObservationId
from obsacq.pipeline.frame import Frame
from obsacq.pipeline.poller import Poller
from obsacq.pipeline.strategies import Discovery, Exhausted, STRATEGIES, make_strategy
from obsacq.pipeline.acquisition import AcquisitionLoop, AcquisitionStatus, Acquisition
from obsacq.pipeline.selection import select_loop, parse_obslist, parse_files
from obsacq.pipeline.tracker import AcquisitionTracker
from obsacq.pipeline.orchestrator import AcquisitionOrchestrator, RunStatus, RunSummary

__all__ = [
    "Cursor",
    "ObservationId",
    "Frame",
    "Poller",
    "Discovery",
    "Exhausted",
    "STRATEGIES",
    "make_strategy",
    "AcquisitionLoop",
    "AcquisitionStatus",
    "Acquisition",
    "select_loop",
    "parse_obslist",
    "parse_files",
    "AcquisitionTracker",
    "AcquisitionOrchestrator",
    "RunStatus",
    "RunSummary",
]
