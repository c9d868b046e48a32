import pytest

from sol_wallet_tracker.analysis import TokenOverlapAnalyzer
from sol_wallet_tracker.api_clients import SolanaTrackerClient
from sol_wallet_tracker.config import Config

from .fakes import BASE_URL, FakeClock, FakeSession


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return Config(api_key="test-key", base_url=BASE_URL)


@pytest.fixture
def session(clock):
    return FakeSession(clock)


@pytest.fixture
def client(config, session, clock):
    return SolanaTrackerClient(config, session=session, clock=clock)


@pytest.fixture
def analyzer(client, config):
    return TokenOverlapAnalyzer(client, config)
