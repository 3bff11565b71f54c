"""Tests for the run_acquisition entry point."""

import logging

import pytest

from obsacq.cli.run_acquisition import load_user_config_dict, run_acquisition
from obsacq.pipeline.orchestrator import RunStatus

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def restore_root_logging():
    """run_acquisition replaces the root handlers; put the originals back."""
    root = logging.getLogger()
    saved, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in saved:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def user_dict(data_area):
    return {
        "INSTRUMENT": "UFTI",
        "DATA_IN": str(data_area.data_in),
        "DATA_OUT": str(data_area.data_out),
        "UT": "20020101",
        "formats": {"working_format": "FITS"},
    }


class TestLoadUserConfig:

    def test_loads_config_dict(self, temp_dir):
        path = temp_dir / "ufti.py"
        path.write_text('CONFIG = {"INSTRUMENT": "UFTI", "LOOP": "flag"}\n')
        assert load_user_config_dict(str(path)) == {"INSTRUMENT": "UFTI", "LOOP": "flag"}

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError, match="Config not found"):
            load_user_config_dict(str(temp_dir / "nope.py"))

    def test_no_config_dict(self, temp_dir):
        path = temp_dir / "empty.py"
        path.write_text("VALUE = 1\n")
        with pytest.raises(ValueError, match="No CONFIG dict"):
            load_user_config_dict(str(path))


class TestRunAcquisition:

    def test_run_from_dict(self, user_dict, data_area):
        for n in (1, 2):
            data_area.write_raw(n)
        frames = []

        summary = run_acquisition(user_dict, cli_args={"to_obs": 2}, processor=frames.append)

        assert summary.status is RunStatus.FINISHED
        assert [f.number for f in frames] == [1, 2]
        assert (data_area.data_out / "logs" / "acquisition_UFTI.log").exists()
        assert (data_area.data_out / "logs" / "UFTI_20020101_acquisition.db").exists()

    def test_run_from_file(self, user_dict, data_area, temp_dir):
        data_area.write_raw(4)
        path = temp_dir / "ufti.py"
        path.write_text(f"CONFIG = {user_dict!r}\n")

        summary = run_acquisition(str(path), cli_args={"obs_list": "4"}, max_frames=1)

        assert summary.status is RunStatus.LIMIT
        assert summary.delivered == 1

    def test_none_cli_values_are_ignored(self, user_dict, data_area):
        data_area.write_raw(1)
        summary = run_acquisition(user_dict, cli_args={"to_obs": 1, "loop": None, "skip": None})
        assert summary.loop == "list"

    def test_verbose_sets_debug(self, user_dict, data_area):
        data_area.write_raw(1)
        run_acquisition(user_dict, cli_args={"to_obs": 1}, verbose=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_cli_overrides_user(self, user_dict, data_area):
        data_area.write_raw(1)
        user_dict["LOOP"] = "wait"
        summary = run_acquisition(user_dict, cli_args={"loop": "list", "to_obs": 1})
        assert summary.loop == "list"

    def test_cli_files_from_list_file(self, user_dict, data_area, temp_dir):
        for n in (1, 2):
            data_area.write_raw(n)
        listing = temp_dir / "tonight.lis"
        listing.write_text(
            f"# tonight\n  {data_area.raw_name(2)}  \n\n{data_area.raw_name(1)} # repeat\n"
        )
        frames = []

        summary = run_acquisition(user_dict, cli_args={"files_from": str(listing)},
                                  processor=frames.append)

        assert summary.loop == "file"
        assert [p.name for f in frames for p in f.paths] == [data_area.raw_name(2), data_area.raw_name(1)]

    def test_user_files_from_list_file(self, user_dict, data_area, temp_dir):
        data_area.write_raw(3)
        listing = temp_dir / "files.lis"
        listing.write_text(f"{data_area.raw_name(3)}\n")
        user_dict["FILES_FROM"] = str(listing)

        summary = run_acquisition(user_dict)

        assert summary.loop == "file"
        assert summary.delivered == 1
