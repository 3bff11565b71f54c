import re
from datetime import date
from pathlib import Path

import pytest

from obsacq.instrument.naming import InstrumentNaming, data_roots, format_ut

pytestmark = pytest.mark.instrument


class TestFormatUt:

    def test_string_passes_through(self):
        assert format_ut("20020101") == "20020101"

    def test_dashes_are_removed(self):
        assert format_ut("2002-01-01") == "20020101"

    def test_date_objects(self):
        assert format_ut(date(2002, 1, 1)) == "20020101"

    def test_integer(self):
        assert format_ut(20020101) == "20020101"


class TestRawNames:

    def test_default_raw_name(self, internal_config):
        naming = InstrumentNaming(internal_config)
        assert naming.raw_name("20020101", 5) == "f20020101_00005.fits"
        assert not naming.uses_pattern

    def test_unpadded_numbers(self, make_config):
        naming = InstrumentNaming(make_config(naming={"number_width": 0}))
        assert naming.raw_name("20020101", 5) == "f20020101_5.fits"

    def test_custom_prefix_and_suffix(self, make_config):
        naming = InstrumentNaming(make_config(naming={"raw_prefix": "u", "raw_suffix": "sdf", "number_width": 4}))
        assert naming.raw_name("20020101", 12) == "u20020101_0012.sdf"

    def test_subsystems_give_a_pattern(self, make_config):
        naming = InstrumentNaming(make_config(naming={"subsystems": ["a", "b"]}))
        pattern = naming.raw_name("20020101", 5)

        assert naming.uses_pattern
        assert isinstance(pattern, re.Pattern)
        assert pattern.search("fa20020101_00005_0001.fits")
        assert pattern.search("fb20020101_00005_0012.fits")
        assert not pattern.search("fc20020101_00005_0001.fits")
        assert not pattern.search("fa20020101_00006_0001.fits")


class TestFlagNames:

    def test_dotfile_flag(self, internal_config):
        naming = InstrumentNaming(internal_config)
        assert naming.flag_names("20020101", 5) == [".f20020101_00005.ok"]
        assert naming.flag_dir("20020101") == Path(".")

    def test_subdir_flag(self, make_config):
        naming = InstrumentNaming(make_config(naming={"flag_style": "subdir"}))
        assert naming.flag_names("20020101", 5) == ["ok/20020101/f20020101_00005.ok"]
        assert naming.flag_dir("20020101") == Path("ok/20020101")

    def test_one_flag_per_subsystem(self, make_config):
        naming = InstrumentNaming(make_config(naming={"subsystems": ["a", "b"]}))
        assert naming.flag_names("20020101", 7) == [
            ".fa20020101_00007.ok",
            ".fb20020101_00007.ok",
        ]


class TestNumberFromName:

    @pytest.mark.parametrize("name, expected", [
        ("f20020101_00005.fits", 5),
        ("/data/raw/f20020101_00123.fits", 123),
        (".f20020101_00042.ok", 42),
        ("f20020101_7", 7),
        ("readme", -1),
    ])
    def test_literal_names(self, internal_config, name, expected):
        naming = InstrumentNaming(internal_config)
        assert naming.number_from_name(name) == expected

    def test_subsystem_names_ignore_subscan(self, make_config):
        naming = InstrumentNaming(make_config(naming={"subsystems": ["a"]}))
        assert naming.number_from_name("fa20020101_00005_0003.fits") == 5


def test_data_roots_are_absolute(internal_config, data_area):
    roots = data_roots(internal_config)
    assert roots.data_in == data_area.data_in
    assert roots.data_out == data_area.data_out
    assert roots.data_in.is_absolute()
