"""Frame: the unit of work handed to the reduction pipeline."""

import logging
from pathlib import Path
from typing import Optional, Sequence

import xarray as xr

from obsacq.contracts import FrameConfigurationError
from obsacq.pipeline.cursor import ObservationId

__all__ = ['Frame']

logger = logging.getLogger(__name__)


class Frame:
    """One observation's staged files, ready for processing.

    Files are basenames in ``data_out``. Construction does not touch the
    filesystem; :meth:`configure` checks the files and fills the frame.

    Parameters
    ----------
    obs : ObservationId
        Observation the files belong to.
    data_out : Path
        Output working directory the basenames live in.
    """

    def __init__(self, obs: ObservationId, data_out: Path):
        self.obs = obs
        self.data_out = Path(data_out)
        self.files: list[str] = []
        self.temporary: list[bool] = []
        # Set for frames that must only be combined with their own observation
        self.group: Optional[int] = None

    @property
    def number(self) -> int:
        return self.obs.obsnum

    @property
    def paths(self) -> list[Path]:
        return [self.data_out / f for f in self.files]

    def configure(self, files: Sequence[str], temporary: Optional[Sequence[bool]] = None) -> "Frame":
        """Attach staged basenames to the frame.

        Raises
        ------
        FrameConfigurationError
            If ``files`` is empty, a file is not reachable from the output
            directory, or ``temporary`` does not match ``files``.
        """
        files = [str(f) for f in files]
        if not files:
            raise FrameConfigurationError(f"No files to configure frame {self.obs}", obs=self.obs)

        temporary = list(temporary) if temporary is not None else [False] * len(files)
        if len(temporary) != len(files):
            raise FrameConfigurationError(
                f"Frame {self.obs}: {len(temporary)} temporary flags for {len(files)} files",
                obs=self.obs,
            )

        missing = [f for f in files if not (self.data_out / f).exists()]
        if missing:
            raise FrameConfigurationError(
                f"Frame {self.obs}: staged file(s) not found in {self.data_out}: {', '.join(missing)}",
                obs=self.obs,
            )

        self.files = files
        self.temporary = temporary
        return self

    @classmethod
    def framegroup(cls, obs: ObservationId, data_out: Path, files: Sequence[str],
                   temporary: Optional[Sequence[bool]] = None) -> list["Frame"]:
        """Frames for one observation's staged files.

        All files of one observation form a single frame.
        """
        return [cls(obs, data_out).configure(files, temporary)]

    def open_dataset(self, index: int = 0) -> xr.Dataset:
        """Open staged file ``index`` with xarray."""
        path = self.paths[index]
        logger.debug("Opening %s", path)
        return xr.open_dataset(path)

    def __repr__(self):
        return f"Frame({self.obs}, files={self.files})"
