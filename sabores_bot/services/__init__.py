from sabores_bot.services.flow_router import FlowRouter, RouteResult, is_quote_request
from sabores_bot.services.session_store import (
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
    build_session_store,
)
from sabores_bot.services.state_machine import ConversationState
from sabores_bot.services.trigger_matcher import match_flow, normalize_message
