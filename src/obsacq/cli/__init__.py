"""Execution entry points for the acquisition engine.

This package contains the run logic; argument parsing is left to callers.
"""

from obsacq.cli.run_acquisition import run_acquisition, load_user_config_dict

__all__ = ['run_acquisition', 'load_user_config_dict']
