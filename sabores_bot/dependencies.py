"""Process-wide service instances, injectable with FastAPI ``Depends``.

Tests replace them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from sabores_bot.config import get_settings
from sabores_bot.services.evolution_service import EvolutionClient
from sabores_bot.services.flow_router import FlowRouter
from sabores_bot.services.quote_service import QuoteService
from sabores_bot.services.session_store import SessionStore, build_session_store


@lru_cache()
def get_session_store() -> SessionStore:
    return build_session_store(get_settings())


@lru_cache()
def get_flow_router() -> FlowRouter:
    return FlowRouter(get_session_store())


@lru_cache()
def get_quote_service() -> QuoteService:
    return QuoteService(get_settings().QUOTES_FILE)


@lru_cache()
def get_evolution_client() -> EvolutionClient:
    return EvolutionClient.from_settings(get_settings())
