import numpy as np
import pytest
from astropy.io import fits

from obsacq.contracts import QuorumError, RemoteUnavailable
from obsacq.instrument.remote import TaskRegistry, image_basename, materialize_image

from tests.helpers.fake_tasks import FakeConnector, FakeTask, frame

pytestmark = pytest.mark.instrument


class BrokenTask:
    """Task whose connection drops on every read."""

    def get(self, parameter):
        raise ConnectionError("connection reset")


class TestTaskRegistry:

    def test_get_returns_parameter_value(self):
        connect = FakeConnector({"SCU2_850": FakeTask([frame(3, filename="a.sdf")])})
        registry = TaskRegistry(connect)

        assert registry.get("SCU2_850", "QL")["FRAMENUM"] == 3

    def test_engine_is_cached(self):
        connect = FakeConnector({"SCU2_850": FakeTask([{}])})
        registry = TaskRegistry(connect)

        registry.get("SCU2_850", "QL")
        registry.get("SCU2_850", "QL")

        assert connect.connects == ["SCU2_850"]

    def test_empty_value_becomes_dict(self):
        registry = TaskRegistry(FakeConnector({"T": FakeTask([None])}))
        assert registry.get("T", "QL") == {}

    def test_task_not_running(self):
        registry = TaskRegistry(FakeConnector({}))
        with pytest.raises(RemoteUnavailable, match="Is the data acquisition system running"):
            registry.engine("SCU2_450")

    def test_connect_raising(self):
        def connect(name):
            raise ConnectionRefusedError("refused")

        with pytest.raises(RemoteUnavailable, match="refused"):
            TaskRegistry(connect).engine("T")

    def test_dead_connection_is_dropped(self):
        connect = FakeConnector({"T": BrokenTask()})
        registry = TaskRegistry(connect)

        for _ in range(2):
            with pytest.raises(RemoteUnavailable, match="Unable to read QL"):
                registry.get("T", "QL")

        assert connect.connects == ["T", "T"]

    def test_context_manager_closes_tasks(self):
        task = FakeTask([{}])
        with TaskRegistry(FakeConnector({"T": task})) as registry:
            registry.get("T", "QL")
        assert task.closed


class TestImages:

    def test_image_basename(self):
        assert image_basename("SCU2_850@host", 1234.5) == "scu2_850_1234_50"
        assert image_basename("CAM", 7) == "cam_7_00"

    def test_materialize_with_card_strings(self, temp_dir):
        payload = frame(
            4,
            image={"DATA_ARRAY": np.ones((2, 3)), "FITS": ["OBJECT  = 'MARS    '"]},
            timestamp=1234.5,
        )

        path = materialize_image("SCU2_850", payload, temp_dir / "red")

        assert path == temp_dir / "red" / "scu2_850_1234_50.fits"
        with fits.open(path) as hdul:
            assert hdul[0].data.shape == (2, 3)
            assert hdul[0].header["OBJECT"] == "MARS"

    def test_materialize_with_card_mapping(self, temp_dir):
        payload = frame(4, image={"DATA_ARRAY": [[1, 2]], "FITS": {"FILTER": "K"}}, timestamp=1.0)
        path = materialize_image("CAM", payload, temp_dir)
        assert fits.getheader(path)["FILTER"] == "K"

    def test_materialize_is_deterministic(self, temp_dir):
        payload = frame(4, image={"DATA_ARRAY": np.zeros((2, 2))}, timestamp=2.0)
        first = materialize_image("CAM", payload, temp_dir)
        second = materialize_image("CAM", payload, temp_dir)
        assert first == second

    def test_missing_data_array(self, temp_dir):
        payload = frame(4, image={"FITS": []})
        with pytest.raises(QuorumError, match="did not include a DATA_ARRAY"):
            materialize_image("CAM", payload, temp_dir)

    def test_basename_falls_back_to_frame_number(self):
        assert image_basename("SCU2_850@host", None, 12) == "scu2_850_f00012"

    def test_frames_without_timestamp_get_distinct_files(self, temp_dir):
        first = materialize_image("CAM", {"FRAMENUM": 4, "IMAGE": {"DATA_ARRAY": np.zeros((2, 2))}}, temp_dir)
        second = materialize_image("CAM", {"FRAMENUM": 5, "IMAGE": {"DATA_ARRAY": np.ones((2, 2))}}, temp_dir)

        assert first.name == "cam_f00004.fits"
        assert second.name == "cam_f00005.fits"
        assert fits.getdata(first).sum() == 0

    def test_image_without_any_name_source(self, temp_dir):
        with pytest.raises(QuorumError, match="neither TIMESTAMP nor FRAMENUM"):
            materialize_image("CAM", {"IMAGE": {"DATA_ARRAY": [[1]]}}, temp_dir)
