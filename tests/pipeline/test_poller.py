import logging

import pytest

from obsacq.contracts import AcquisitionTimeout
from obsacq.pipeline.poller import Poller

pytestmark = pytest.mark.unit


def make_poller(fake_clock, timeout=5.0, pause=2.0, progress_every=15, yield_hook=None):
    return Poller(timeout, pause, progress_every,
                  clock=fake_clock, sleeper=fake_clock.sleep, yield_hook=yield_hook)


class TestPollWait:

    def test_last_sleep_is_clamped_to_budget(self, fake_clock):
        wait = make_poller(fake_clock).start("data file", obs="obs")

        with pytest.raises(AcquisitionTimeout, match=r"Timeout whilst waiting for data file \(5 s\)") as err:
            for _ in range(10):
                wait.pause()

        assert fake_clock.sleeps == [2.0, 2.0, 1.0]
        assert fake_clock.now == 5.0
        assert err.value.obs == "obs"

    def test_one_second_timeout(self, fake_clock):
        wait = make_poller(fake_clock, timeout=1.0, pause=2.0).start("flag")
        with pytest.raises(AcquisitionTimeout):
            wait.pause()
        assert fake_clock.sleeps == [1.0]

    def test_budget_starts_at_start(self, fake_clock):
        poller = make_poller(fake_clock)
        fake_clock.now = 100.0
        wait = poller.start("x")
        wait.pause()
        assert wait.elapsed == 2.0
        assert wait.npauses == 1

    def test_progress_message(self, fake_clock, caplog):
        wait = make_poller(fake_clock, timeout=100.0, progress_every=2).start("flag file")
        with caplog.at_level(logging.INFO, logger="obsacq.pipeline.poller"):
            for _ in range(4):
                wait.pause()
        messages = [r.getMessage() for r in caplog.records]
        assert messages == ["Still waiting for flag file (4 s)", "Still waiting for flag file (8 s)"]

    def test_updated_target_names_timeout(self, fake_clock):
        wait = make_poller(fake_clock, timeout=2.0).start("observation 5")
        wait.what = "observation 7"
        with pytest.raises(AcquisitionTimeout, match="observation 7"):
            wait.pause()


def test_yield_hook_is_called_between_slices(fake_clock):
    calls = []
    poller = make_poller(fake_clock, yield_hook=lambda: calls.append(fake_clock.now))

    poller.sleep(0.5)

    assert sum(fake_clock.sleeps) == pytest.approx(0.5)
    assert all(s <= 0.2 for s in fake_clock.sleeps)
    assert len(calls) == len(fake_clock.sleeps)


def test_default_time_sources():
    poller = Poller(1.0, 0.1, 1)
    assert poller.now() >= 0.0
