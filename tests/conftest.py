"""Root-level pytest fixtures for the obsacq test suite.

Provides shared configuration fixtures following Pydantic-based architecture.
All tests must use these fixtures instead of creating raw dict configs.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from obsacq.schemas import ParamConfig, UserConfig, resolve_config

from tests.helpers.data_area import DataArea, TEST_UT
from tests.helpers.fake_clock import FakeClock


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d).resolve()
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def data_area(temp_dir):
    """Input root (raw/) and output root (red/) with file writers.

    Both directories exist. Files are named for UT 20020101 with the
    default naming convention (f20020101_00005.fits, .f20020101_00005.ok).
    """
    return DataArea(temp_dir)


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def make_config(param_config, data_area):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs. Data
    roots default to ``data_area``, the UT date to 20020101 and the
    working format to FITS (no conversion) unless overridden.

    Examples
    --------
    >>> def test_flag_skip(make_config):
    ...     config = make_config(loop="flag", skip=True)
    ...     assert config.acquisition.skip
    """
    def _make(**user_overrides):
        user_overrides.setdefault("data_in", str(data_area.data_in))
        user_overrides.setdefault("data_out", str(data_area.data_out))
        user_overrides.setdefault("utdate", TEST_UT)
        user_overrides.setdefault("formats", {"working_format": "FITS"})
        user = UserConfig(**user_overrides)
        return resolve_config(param_config, user, None)

    return _make


@pytest.fixture
def internal_config(make_config):
    """Fully validated runtime configuration with test data roots."""
    return make_config()


# =============================================================================
# Time Fixtures
# =============================================================================

@pytest.fixture
def fake_clock():
    """Simulated clock; its sleep advances time and fires scheduled events."""
    return FakeClock()
