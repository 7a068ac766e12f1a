from dataclasses import dataclass
from typing import Optional

from sabores_bot.logging_config import get_logger
from sabores_bot.services.flow_catalog import FlowCatalog, load_flow_catalog
from sabores_bot.services.session_store import SessionStore
from sabores_bot.services.state_machine import ConversationState
from sabores_bot.services.trigger_matcher import match_flow, normalize_message

logger = get_logger("flow_router")

QUOTE_LABELS = ("produto:",)
QUOTE_MIN_LENGTH = 50


@dataclass(frozen=True)
class RouteResult:
    response: str
    should_save_quote: bool = False
    flow: Optional[str] = None
    state: Optional[ConversationState] = None


def is_quote_request(message: str, normalized: str, has_image: bool = False) -> bool:
    """Heuristic: does a message sent during quote intake look like a real request?"""
    if any(label in normalized for label in QUOTE_LABELS):
        return True
    # Length is measured on the raw text, before trimming.
    return len(message) > QUOTE_MIN_LENGTH or has_image


class FlowRouter:
    """Decide the reply and next state for one inbound message.

    No network I/O here; delivering the reply and saving quotes is up to the caller.
    """

    def __init__(self, session_store: SessionStore, catalog: Optional[FlowCatalog] = None):
        self.session_store = session_store
        self.catalog = catalog or load_flow_catalog()

    def route(self, sender: str, message: str, has_image: bool = False) -> RouteResult:
        # Concurrent deliveries from one sender must not both act on the same state.
        with self.session_store.lock_for(sender):
            return self._route_locked(sender, message, has_image)

    def _route_locked(self, sender: str, message: str, has_image: bool) -> RouteResult:
        message = message or ""
        normalized = normalize_message(message)
        current_state = self.session_store.get_state(sender)

        logger.info(
            "Routing message",
            extra={"context": {"sender": sender, "state": current_state, "has_image": has_image}},
        )

        flow = match_flow(normalized, self.catalog.flows)
        if flow:
            self.session_store.set_state(sender, flow.state)
            return RouteResult(response=flow.reply, flow=flow.name, state=flow.state)

        if current_state == ConversationState.QUOTE_INTAKE:
            if is_quote_request(message, normalized, has_image):
                self.session_store.set_state(sender, ConversationState.NONE)
                return RouteResult(
                    response=self.catalog.quote_received,
                    should_save_quote=True,
                    state=ConversationState.NONE,
                )
            # Not a quote: falls through to "not understood", still in quote intake.

        if current_state == ConversationState.HUMAN_HANDOFF:
            return RouteResult(response=self.catalog.handoff_forwarded, state=current_state)

        return RouteResult(response=self.catalog.not_understood, state=current_state)
