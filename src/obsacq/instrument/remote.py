"""Live remote data sources.

A remote task is an opaque endpoint exposing a "most recent frame"
parameter through a synchronous ``get(name)`` call. The returned value is
a mapping with at least::

    FRAMENUM   monotonically increasing frame number
    FILENAME   raw filename (absolute or relative to the input root), or
    IMAGE      inline payload: {"DATA_ARRAY": array, "FITS": cards}
    TIMESTAMP  acquisition time, used to name materialized images

The message bus that carries these calls is not part of this package:
callers supply a ``connect`` factory returning task objects.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Protocol

import numpy as np
from astropy.io import fits

from obsacq.contracts import QuorumError, RemoteUnavailable

__all__ = ['RemoteTask', 'TaskRegistry', 'materialize_image', 'image_basename']

logger = logging.getLogger(__name__)


class RemoteTask(Protocol):
    """Anything with a synchronous parameter getter."""

    def get(self, parameter: str) -> Mapping[str, Any]:
        ...


class TaskRegistry:
    """Connections to the configured remote tasks.

    Connections are made lazily on first use and cached. Used as a
    context manager, every connection with a ``close()`` method is
    closed on exit.

    Parameters
    ----------
    connect : callable
        ``connect(name) -> RemoteTask``. May return None or raise
        ``OSError``/``ConnectionError`` when the task is not running.

    Examples
    --------
    >>> with TaskRegistry(connect) as tasks:
    ...     value = tasks.get("SCU2_850", "QL")
    """

    def __init__(self, connect: Callable[[str], Optional[RemoteTask]]):
        self._connect = connect
        self._engines: dict[str, RemoteTask] = {}

    def engine(self, name: str) -> RemoteTask:
        """Cached connection to ``name``.

        Raises
        ------
        RemoteUnavailable
            If the task cannot be reached.
        """
        if name in self._engines:
            return self._engines[name]
        try:
            task = self._connect(name)
        except (OSError, ConnectionError) as e:
            raise RemoteUnavailable(
                f"Unable to connect to remote task {name}: {e}. "
                "Is the data acquisition system running?"
            ) from e
        if task is None:
            raise RemoteUnavailable(
                f"Unable to connect to remote task {name}. "
                "Is the data acquisition system running?"
            )
        logger.debug("Connected to remote task %s", name)
        self._engines[name] = task
        return task

    def get(self, name: str, parameter: str) -> Mapping[str, Any]:
        """Read ``parameter`` from task ``name``."""
        task = self.engine(name)
        try:
            value = task.get(parameter)
        except (OSError, ConnectionError) as e:
            # A dead connection is not reused
            self._engines.pop(name, None)
            raise RemoteUnavailable(f"Unable to read {parameter} from remote task {name}: {e}") from e
        return value or {}

    def close(self):
        for name, task in list(self._engines.items()):
            closer = getattr(task, "close", None)
            if callable(closer):
                closer()
            logger.debug("Closed remote task %s", name)
        self._engines.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def image_basename(task_name: str, timestamp, framenum=None) -> str:
    """Name for an inline image: lower-case task root plus the timestamp.

    Without a timestamp the frame number is used instead.

    >>> image_basename("SCU2_850@host", 1234.5)
    'scu2_850_1234_50'
    >>> image_basename("SCU2_850@host", None, 12)
    'scu2_850_f00012'
    """
    root = task_name.split("@", 1)[0].lower()
    if timestamp is None:
        return f"{root}_f{int(framenum):05d}"
    tstr = f"{float(timestamp):.2f}".replace(".", "_", 1)
    return f"{root}_{tstr}"


def _header_from_cards(cards) -> fits.Header:
    header = fits.Header()
    if not cards:
        return header
    if isinstance(cards, Mapping):
        for key, value in cards.items():
            header[key] = value
        return header
    for card in cards:
        if isinstance(card, str):
            card = fits.Card.fromstring(card)
        header.append(card)
    return header


def materialize_image(task_name: str, payload: Mapping[str, Any], directory: Path) -> Path:
    """Write an inline IMAGE payload to a FITS file in ``directory``.

    Raises
    ------
    QuorumError
        If the payload has no DATA_ARRAY component, or carries neither a
        TIMESTAMP nor a FRAMENUM to name the file by.
    """
    image = payload.get("IMAGE") or {}
    data = image.get("DATA_ARRAY")
    if data is None:
        raise QuorumError(
            f"IMAGE parameter received from {task_name} did not include a DATA_ARRAY component"
        )
    timestamp = payload.get("TIMESTAMP")
    framenum = payload.get("FRAMENUM")
    if timestamp is None and framenum is None:
        raise QuorumError(f"IMAGE parameter received from {task_name} has neither TIMESTAMP nor FRAMENUM")
    header = _header_from_cards(image.get("FITS"))

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / (image_basename(task_name, timestamp, framenum) + ".fits")
    fits.PrimaryHDU(data=np.asarray(data), header=header).writeto(path, overwrite=True)
    logger.debug("Wrote inline image from %s to %s", task_name, path.name)
    return path
