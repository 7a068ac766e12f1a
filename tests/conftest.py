from unittest.mock import Mock

import pytest

from sabores_bot.config import get_settings
from sabores_bot.services.evolution_service import EvolutionClient
from sabores_bot.services.flow_catalog import load_flow_catalog
from sabores_bot.services.flow_router import FlowRouter
from sabores_bot.services.quote_service import QuoteService
from sabores_bot.services.session_store import InMemorySessionStore


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def mock_env(monkeypatch):
    """Set test environment variables."""
    monkeypatch.setenv("EVOLUTION_API_URL", "https://evolution.test")
    monkeypatch.setenv("EVOLUTION_API_KEY", "test-key")
    monkeypatch.setenv("INSTANCE_NAME", "sabores-test")
    monkeypatch.setenv("ADMIN_TOKEN", "admin-secret")
    monkeypatch.delenv("WEBHOOK_URL", raising=False)
    monkeypatch.delenv("ALERT_BOT_TOKEN", raising=False)
    monkeypatch.delenv("ALERT_CHAT_ID", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_store(clock):
    return InMemorySessionStore(ttl_seconds=30 * 60, clock=clock)


@pytest.fixture
def catalog():
    return load_flow_catalog()


@pytest.fixture
def flow_router(session_store, catalog):
    return FlowRouter(session_store, catalog)


@pytest.fixture
def quote_service(tmp_path):
    service = QuoteService(tmp_path / "orcamentos.json")
    service.init_file()
    return service


@pytest.fixture
def gateway():
    return Mock(spec=EvolutionClient)
