from sabores_bot.schemas.quote import QuoteRequest, QuoteStats, QuoteStatus
from sabores_bot.schemas.webhook import EvolutionWebhookEvent, WebhookAck

__all__ = ["QuoteRequest", "QuoteStats", "QuoteStatus", "EvolutionWebhookEvent", "WebhookAck"]
