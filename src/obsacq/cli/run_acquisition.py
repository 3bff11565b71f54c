"""Core acquisition run logic.

This module contains the actual runner, separated from argument parsing
(which is left to whatever front end calls it).
"""

import json
import logging
import importlib.util
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from obsacq.pipeline.orchestrator import AcquisitionOrchestrator, RunSummary
from obsacq.pipeline.selection import parse_files
from obsacq.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig


logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def run_acquisition(
    user_config: str | dict,
    cli_args: Optional[Dict[str, Any]] = None,
    processor: Optional[Callable] = None,
    connect: Optional[Callable] = None,
    max_frames: Optional[int] = None,
    verbose: bool = False,
) -> RunSummary:
    """Resolve configuration and run the acquisition engine.

    1. Loads and resolves configuration (Param < User < CLI)
    2. Builds the orchestrator (directories, logging, tracker)
    3. Runs until the data run out, the run stalls or breaks

    Parameters
    ----------
    user_config : str or dict
        Path to a Python file with a CONFIG dict, or the dict itself.
    cli_args : dict, optional
        Operational overrides. Keys: loop, utdate, skip, from_obs, to_obs,
        obs_list, files, files_from, data_in, data_out, log_level. None
        values ignored. ``files_from`` (and FILES_FROM in the user config)
        names a text file of raw filenames, read with :func:`parse_files`.
    processor : callable, optional
        ``processor(frame)`` run for each frame.
    connect : callable, optional
        Remote task factory for the task loop.
    max_frames : int, optional
        Stop after this many frames.
    verbose : bool, optional
        DEBUG logging and a dump of the resolved configuration.

    Returns
    -------
    RunSummary

    Examples
    --------
    ::

        summary = run_acquisition(
            "config/ufti.py",
            cli_args={"loop": "flag", "utdate": "20020101", "skip": True},
        )
        print(summary.status)
    """
    param_cfg = ParamConfig()

    if isinstance(user_config, dict):
        user_cfg_dict = user_config
    else:
        user_cfg_dict = load_user_config_dict(user_config)
    user_cfg_dict = dict(user_cfg_dict)
    files_from = user_cfg_dict.pop("FILES_FROM", None)
    if files_from and not user_cfg_dict.get("FILES"):
        user_cfg_dict["FILES"] = parse_files(files_from)
    user_cfg = UserConfig.model_validate(user_cfg_dict)

    cli_args = dict(cli_args or {})
    files_from = cli_args.pop("files_from", None)
    if files_from:
        cli_args["files"] = parse_files(files_from)
    if verbose and "log_level" not in cli_args:
        cli_args["log_level"] = "DEBUG"

    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    config = resolve_config(param_cfg, user_cfg, cli_cfg)

    if verbose:
        logger.debug("Resolved configuration:\n%s", json.dumps(config.model_dump(), indent=2))

    orchestrator = AcquisitionOrchestrator(config, processor=processor, connect=connect)
    return orchestrator.run(max_frames=max_frames)
