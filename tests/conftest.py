import pytest

from fakes import FakeClock
from kubewait.config import _ENV_OVERRIDES
from kubewait.poller import Poller


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the CI runner's environment from leaking into config tests."""
    for var in _ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def poller(clock):
    """A Poller on a fake clock: sleeping advances time instantly.

    Usage:
        result = poller.poll(PollSpec("x", check, timeout=10, interval=3))
        assert clock.sleeps == [3, 3, 3, 1]
    """
    return Poller(clock=clock, sleep=clock.sleep)
