import logging

import numpy as np
import pytest
from astropy.io import fits

from obsacq.contracts import (
    AcquisitionConfigError,
    AcquisitionTimeout,
    QuorumError,
    RemoteUnavailable,
)
from obsacq.instrument.remote import TaskRegistry
from obsacq.pipeline.cursor import Cursor
from obsacq.pipeline.strategies import LiveTaskQuorum

from tests.helpers.fake_tasks import FakeConnector, FakeTask, frame

pytestmark = pytest.mark.pipeline


@pytest.fixture
def task_config(make_config):
    return make_config(loop="task", tasks=["SCU2_850", "SCU2_450"], timeout_sec=10)


@pytest.fixture
def task_strategy(task_config, strategy_for, data_area):
    def _make(tasks):
        registry = TaskRegistry(FakeConnector(tasks))
        return strategy_for(task_config, tasks=registry, data_out=data_area.data_out)
    return _make


class TestLiveTaskQuorum:

    def test_all_tasks_report_same_frame(self, task_strategy, data_area):
        strategy = task_strategy({
            "SCU2_850": FakeTask([frame(5, filename="s8_00005.sdf")]),
            "SCU2_450": FakeTask([frame(5, filename="s4_00005.sdf")]),
        })
        assert isinstance(strategy, LiveTaskQuorum)

        result = strategy.discover(Cursor.starting_at(4))

        assert result.obs.obsnum == 5
        assert result.files == [data_area.data_in / "s4_00005.sdf", data_area.data_in / "s8_00005.sdf"]
        assert result.temporary == [False, False]
        assert result.group == 5
        assert result.cursor.next_obs == 5

    def test_frame_mismatch_restarts_collection(self, task_strategy, caplog):
        strategy = task_strategy({
            "SCU2_850": FakeTask([frame(5, filename="a5.sdf"), frame(6, filename="a6.sdf")]),
            "SCU2_450": FakeTask([frame(4, filename="b4.sdf"), frame(6, filename="b6.sdf")]),
        })

        with caplog.at_level(logging.WARNING):
            result = strategy.discover(Cursor.starting_at(4))

        assert result.obs.obsnum == 6
        assert sorted(p.name for p in result.files) == ["a6.sdf", "b6.sdf"]
        assert "discarding frame 5" in caplog.text

    def test_stale_frames_are_ignored(self, task_strategy, fake_clock):
        strategy = task_strategy({
            "SCU2_850": FakeTask([frame(3, filename="a3.sdf"), frame(3, filename="a3.sdf"), frame(4, filename="a4.sdf")]),
            "SCU2_450": FakeTask([frame(4, filename="b4.sdf")]),
        })

        result = strategy.discover(Cursor.starting_at(3))

        assert result.obs.obsnum == 4
        assert fake_clock.sleeps == [0.4]

    def test_waits_for_slow_task(self, task_strategy, fake_clock):
        slow = FakeTask([{}, {}, frame(2, filename="b2.sdf")])
        strategy = task_strategy({
            "SCU2_850": FakeTask([frame(2, filename="a2.sdf")]),
            "SCU2_450": slow,
        })

        result = strategy.discover(Cursor.starting_at(1))

        assert result.obs.obsnum == 2
        assert len(fake_clock.sleeps) == 1
        # the fast task is not asked again once it has reported
        assert strategy.tasks.engine("SCU2_850").calls == 1

    def test_inline_image_is_materialized(self, task_config, strategy_for, data_area):
        image = {"DATA_ARRAY": np.arange(6.0).reshape(2, 3), "FITS": ["OBJECT  = 'URANUS  '"]}
        registry = TaskRegistry(FakeConnector({
            "SCU2_850": FakeTask([frame(7, image=image, timestamp=1234.5)]),
            "SCU2_450": FakeTask([frame(7, filename="b7.sdf")]),
        }))
        strategy = strategy_for(task_config, tasks=registry, data_out=data_area.data_out)

        result = strategy.discover(Cursor.starting_at(6))

        written = data_area.data_out / "scu2_850_1234_50.fits"
        assert result.files == [data_area.data_in / "b7.sdf", written]
        assert result.temporary == [False, True]
        assert fits.getheader(written)["OBJECT"] == "URANUS"

    def test_payload_without_data(self, task_strategy):
        strategy = task_strategy({
            "SCU2_850": FakeTask([{"FRAMENUM": 2}]),
            "SCU2_450": FakeTask([frame(2, filename="b2.sdf")]),
        })
        with pytest.raises(QuorumError, match="neither FILENAME nor IMAGE") as err:
            strategy.discover(Cursor.starting_at(1))
        assert err.value.cursor.next_obs == 2

    def test_image_without_data_array(self, task_strategy):
        strategy = task_strategy({
            "SCU2_850": FakeTask([frame(2, image={"FITS": []})]),
            "SCU2_450": FakeTask([frame(2, filename="b2.sdf")]),
        })
        with pytest.raises(QuorumError, match="DATA_ARRAY") as err:
            strategy.discover(Cursor.starting_at(1))
        assert err.value.obs.obsnum == 2

    def test_shared_filename_is_inconsistent(self, task_strategy):
        strategy = task_strategy({
            "SCU2_850": FakeTask([frame(5, filename="shared.sdf")]),
            "SCU2_450": FakeTask([frame(5, filename="shared.sdf")]),
        })
        with pytest.raises(QuorumError, match="SCU2_850 and SCU2_450 both report shared.sdf") as err:
            strategy.discover(Cursor.starting_at(4))
        assert err.value.obs.obsnum == 5
        assert err.value.cursor.next_obs == 5

    def test_non_numeric_frame_number(self, task_strategy):
        strategy = task_strategy({
            "SCU2_850": FakeTask([{"FRAMENUM": "five", "FILENAME": "a.sdf"}]),
            "SCU2_450": FakeTask([frame(5, filename="b.sdf")]),
        })
        with pytest.raises(QuorumError, match="SCU2_850 reported a non-numeric FRAMENUM 'five'"):
            strategy.discover(Cursor.starting_at(4))

    def test_unreachable_task(self, task_strategy):
        strategy = task_strategy({"SCU2_850": FakeTask([frame(2, filename="a.sdf")])})
        with pytest.raises(RemoteUnavailable, match="SCU2_450"):
            strategy.discover(Cursor.starting_at(1))

    def test_timeout_uses_task_cadence(self, task_strategy, fake_clock):
        strategy = task_strategy({
            "SCU2_850": FakeTask([frame(1, filename="a.sdf")]),
            "SCU2_450": FakeTask([frame(1, filename="b.sdf")]),
        })
        with pytest.raises(AcquisitionTimeout, match="next monitored data set"):
            strategy.discover(Cursor.starting_at(1))
        assert fake_clock.sleeps[0] == pytest.approx(0.4)
        assert fake_clock.now == pytest.approx(10.0)


class TestConfiguration:

    def test_needs_sources(self, make_config, strategy_for):
        config = make_config(loop="task")
        with pytest.raises(AcquisitionConfigError, match="at least one remote task"):
            strategy_for(config, tasks=TaskRegistry(FakeConnector({})))

    def test_needs_registry(self, task_config, strategy_for):
        with pytest.raises(AcquisitionConfigError, match="registry"):
            strategy_for(task_config)
