"""
Directory setup for the acquisition engine.

The input root belongs to the data acquisition system and must already
exist. The output root is the pipeline's working area and is created
(with its logs/ sub-directory) when missing.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def setup_data_directories(data_in, data_out):
    """
    Check the input root and create the output directories.

    Parameters
    ----------
    data_in : str or Path
        Input data root. Must exist.
    data_out : str or Path
        Output working directory. Created if missing.

    Returns
    -------
    dict
        Dictionary with paths: 'data_in', 'data_out', 'logs'

    Raises
    ------
    FileNotFoundError
        If the input root does not exist or is not a directory.
    """
    data_in = Path(data_in).expanduser().resolve()
    data_out = Path(data_out).expanduser().resolve()

    if not data_in.is_dir():
        raise FileNotFoundError(f"Input data directory {data_in} does not exist")

    directories = {
        "data_in": data_in,
        "data_out": data_out,
        "logs": data_out / "logs",
    }

    for key in ("data_out", "logs"):
        path = directories[key]
        if not path.exists():
            logger.info("Creating %s directory %s", key, path)
        path.mkdir(parents=True, exist_ok=True)

    return directories
