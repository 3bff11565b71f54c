import os

import pytest

from obsacq.contracts import ObservationNotFound, StagingInconsistency
from obsacq.instrument.linker import StagingLinker

pytestmark = pytest.mark.instrument


@pytest.fixture
def linker(data_area):
    return StagingLinker(data_area.data_out)


class TestStage:

    def test_stage_creates_symlink(self, linker, data_area):
        raw = data_area.write_raw(5)

        name = linker.stage(raw)

        target = data_area.data_out / name
        assert name == "f20020101_00005.fits"
        assert target.is_symlink()
        assert os.path.samefile(target, raw)

    def test_stage_is_idempotent(self, linker, data_area):
        raw = data_area.write_raw(5)

        assert linker.stage(raw) == linker.stage(raw)
        assert [p.name for p in data_area.data_out.iterdir()] == ["f20020101_00005.fits"]

    def test_real_file_in_output_is_reused(self, linker, data_area):
        converted = data_area.data_out / "f20020101_00005.nc"
        converted.write_bytes(b"converted")

        assert linker.stage(converted) == "f20020101_00005.nc"
        assert not converted.is_symlink()

    def test_missing_source(self, linker, data_area):
        with pytest.raises(ObservationNotFound, match="does not exist"):
            linker.stage(data_area.raw_path(5))

    def test_dangling_link_is_reported(self, linker, data_area):
        raw = data_area.write_raw(5)
        (data_area.data_out / raw.name).symlink_to(data_area.root / "gone.fits")

        with pytest.raises(StagingInconsistency, match="gone.fits, which does not exist"):
            linker.stage(raw)

    def test_foreign_link_is_not_overwritten(self, linker, data_area):
        raw = data_area.write_raw(5)
        other = data_area.write_file("elsewhere/f20020101_00005.fits")
        link = data_area.data_out / raw.name
        link.symlink_to(other)

        with pytest.raises(StagingInconsistency, match="already links to"):
            linker.stage(raw)
        assert os.readlink(link) == str(other)


def test_stage_all(linker, data_area):
    files = [data_area.write_raw(n) for n in (1, 2)]
    assert linker.stage_all(files) == ["f20020101_00001.fits", "f20020101_00002.fits"]
