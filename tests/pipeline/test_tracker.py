import pytest

from obsacq.pipeline.cursor import ObservationId
from obsacq.pipeline.tracker import AcquisitionTracker

pytestmark = pytest.mark.unit

OBS5 = ObservationId("20020101", 5)
OBS6 = ObservationId("20020101", 6)


def test_record_delivery(tracker):
    tracker.record_delivery(OBS5, "UFTI", "list", files=["f20020101_00005.fits"])

    status = tracker.get_status(OBS5)
    assert status["status"] == "delivered"
    assert status["files"] == ["f20020101_00005.fits"]
    assert status["deliveries"] == 1
    assert status["num_frames"] == 1
    assert status["strategy"] == "list"


def test_growing_flag_appends_files(tracker):
    tracker.record_delivery(OBS5, "UFTI", "flag", files=["a.fits"])
    tracker.record_delivery(OBS5, "UFTI", "flag", files=["a.fits", "b.fits"])

    status = tracker.get_status(OBS5)
    assert status["files"] == ["a.fits", "b.fits"]
    assert status["deliveries"] == 2
    assert status["num_frames"] == 2


def test_record_failure(tracker):
    tracker.record_failure(OBS6, "UFTI", "wait", "timeout", "Timeout whilst waiting")

    status = tracker.get_status(OBS6)
    assert status["status"] == "failed"
    assert status["error_kind"] == "timeout"
    assert status["error_message"] == "Timeout whilst waiting"


def test_delivery_clears_failure(tracker):
    tracker.record_failure(OBS5, "UFTI", "flag", "not_found", "missing")
    tracker.record_delivery(OBS5, "UFTI", "flag", files=["a.fits"])

    status = tracker.get_status(OBS5)
    assert status["status"] == "delivered"
    assert status["error_kind"] is None


def test_unknown_observation(tracker):
    assert tracker.get_status(OBS5) is None


def test_statistics(tracker):
    assert tracker.get_statistics() == {"total": 0, "delivered": 0, "failed": 0, "deliveries": 0, "frames": 0}

    tracker.record_delivery(OBS5, "UFTI", "flag", files=["a.fits"])
    tracker.record_delivery(OBS5, "UFTI", "flag", files=["b.fits"])
    tracker.record_failure(OBS6, "UFTI", "flag", "timeout", "slow")
    tracker.record_failure(ObservationId("20020102", 1), "UFTI", "flag", "timeout", "slow")

    stats = tracker.get_statistics(utdate="20020101")
    assert stats == {"total": 2, "delivered": 1, "failed": 1, "deliveries": 2, "frames": 2}
    assert tracker.get_statistics()["total"] == 3


def test_to_dataframe(tracker):
    tracker.record_delivery(OBS6, "UFTI", "list", files=["b.fits"])
    tracker.record_delivery(OBS5, "UFTI", "list", files=["a.fits"])

    df = tracker.to_dataframe()

    assert list(df["obsnum"]) == [5, 6]
    assert set(df["status"]) == {"delivered"}


def test_persists_across_instances(temp_dir):
    db = temp_dir / "logs" / "acq.db"
    with AcquisitionTracker(db) as first:
        first.record_delivery(OBS5, "UFTI", "list", files=["a.fits"])

    with AcquisitionTracker(db) as second:
        assert second.get_status(OBS5)["status"] == "delivered"


def test_close_twice(tracker):
    tracker.close()
    tracker.close()
