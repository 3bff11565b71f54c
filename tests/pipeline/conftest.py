import pytest

from obsacq.instrument.matcher import ObservationMatcher
from obsacq.instrument.naming import InstrumentNaming
from obsacq.pipeline.strategies import make_strategy
from obsacq.pipeline.tracker import AcquisitionTracker


@pytest.fixture
def tracker(temp_dir):
    db_path = temp_dir / "tracker.db"
    t = AcquisitionTracker(db_path)
    yield t
    t.close()


@pytest.fixture
def matcher_for(data_area):
    """Matcher over ``data_area`` for a given config."""
    def _make(config):
        return ObservationMatcher(InstrumentNaming(config), data_area.data_in)
    return _make


@pytest.fixture
def strategy_for(matcher_for, fake_clock):
    """Strategy from a config, polling on the fake clock."""
    def _make(config, name=None, **kwargs):
        return make_strategy(
            config, matcher_for(config), name=name,
            clock=fake_clock, sleeper=fake_clock.sleep, **kwargs,
        )
    return _make
