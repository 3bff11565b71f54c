"""obsacq User Configuration.

This is the user-facing configuration file. Modify settings here to
customize acquisition. Expert defaults live in obsacq.schemas.param.

Usage:
    python scripts/run_acquisition.py scripts/user_config.py
    python scripts/run_acquisition.py scripts/user_config.py --loop wait
    python scripts/run_acquisition.py scripts/user_config.py --from 5 --skip
"""

CONFIG = {
    # ========================================================================
    # INSTRUMENT & DATA ROOTS
    # ========================================================================
    "INSTRUMENT": "UFTI",
    "DATA_IN": "/ukirtdata/raw/ufti/20020101",    # Written by the acquisition system
    "DATA_OUT": "/ukirtdata/reduced/ufti/20020101",  # Pipeline working directory

    # ========================================================================
    # WHAT TO ACQUIRE
    # ========================================================================
    "UT": "20020101",         # Defaults to the current UT date
    "LOOP": "flag",           # list, inf, wait, flag, task, file
    "SKIP": False,            # Skip missing observations instead of waiting
    "FROM": None,             # First observation number
    "TO": None,               # Last observation number
    "LIST": None,             # e.g. "1,3:5,9"
    "CONTINUE_ON_ERROR": False,

    # ========================================================================
    # POLLING
    # ========================================================================
    "TIMEOUT_SEC": 43200,     # Give up waiting for one observation after 12 h
    "PAUSE_SEC": 2,           # Seconds between filesystem polls

    # ========================================================================
    # NAMING (raw f20020101_00005.fits, flag .f20020101_00005.ok)
    # ========================================================================
    "naming": {
        "raw_prefix": "f",
        "raw_suffix": ".fits",
        "number_width": 5,
        "flag_style": "dotfile",
        "flag_contents": "listing",
    },

    # ========================================================================
    # FORMATS
    # ========================================================================
    "formats": {
        "raw_format": "FITS",
        "working_format": "NETCDF",
    },

    # ========================================================================
    # LIVE REMOTE TASKS (task loop only)
    # ========================================================================
    "TASKS": [],              # e.g. ["SCU2_850", "SCU2_450"]

    "LOG_LEVEL": "INFO",
}
