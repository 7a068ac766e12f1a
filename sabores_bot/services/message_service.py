from dataclasses import dataclass
from typing import Optional

from sabores_bot.logging_config import bind_logger, get_logger
from sabores_bot.schemas.quote import QuoteRequest
from sabores_bot.schemas.webhook import EvolutionWebhookEvent
from sabores_bot.services.alert_service import alert_critical, alert_error
from sabores_bot.services.evolution_service import EvolutionAPIError, EvolutionClient
from sabores_bot.services.flow_router import FlowRouter, RouteResult
from sabores_bot.services.quote_service import QuoteService, QuoteStorageError
from sabores_bot.services.result import GATEWAY_ERROR, STORAGE_ERROR, Result

logger = get_logger("message_service")

IMAGE_PLACEHOLDER = "[Imagem enviada]"


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    text: str
    has_image: bool = False
    push_name: Optional[str] = None


@dataclass
class ProcessingOutcome:
    route: RouteResult
    quote: Optional[Result[QuoteRequest]] = None
    delivery: Optional[Result[str]] = None


def extract_inbound_message(event: EvolutionWebhookEvent) -> Optional[InboundMessage]:
    """Unwrap an Evolution MESSAGES_UPSERT event; None for shapes we don't answer."""
    data = event.data
    if data is None:
        logger.info("Event without message data", extra={"context": {"event": event.event}})
        return None

    key, message = data.key, data.message
    if key is None or message is None:
        logger.info("Invalid message structure", extra={"context": {"event": event.event}})
        return None

    if not key.remoteJid:
        logger.info("Message without remoteJid", extra={"context": {"event": event.event}})
        return None

    if message.conversation:
        return InboundMessage(sender=key.remoteJid, text=message.conversation, push_name=data.pushName)
    if message.extendedTextMessage is not None:
        return InboundMessage(
            sender=key.remoteJid,
            text=message.extendedTextMessage.text or "",
            push_name=data.pushName,
        )
    if message.imageMessage is not None:
        return InboundMessage(
            sender=key.remoteJid,
            text=message.imageMessage.caption or IMAGE_PLACEHOLDER,
            has_image=True,
            push_name=data.pushName,
        )

    logger.info(
        "Unsupported message type",
        extra={"context": {"sender": key.remoteJid, "message_type": data.messageType}},
    )
    return None


def save_quote(quotes: QuoteService, inbound: InboundMessage) -> Result[QuoteRequest]:
    try:
        return Result.success(quotes.add_quote(inbound.sender, inbound.text, inbound.has_image))
    except QuoteStorageError as e:
        logger.error(f"Error saving quote from {inbound.sender}: {e}")
        alert_error("Quote could not be saved", {"sender": inbound.sender, "error": str(e)})
        return Result.from_exception(e, STORAGE_ERROR)


def deliver_reply(gateway: EvolutionClient, sender: str, text: str, fallback_text: str) -> Result[str]:
    """Send the reply; on failure try one generic error message before giving up."""
    try:
        gateway.send_text_message(sender, text)
        return Result.success(text)
    except EvolutionAPIError as e:
        logger.error(f"Error sending reply to {sender}: {e}")
        first_error = e

    try:
        gateway.send_text_message(sender, fallback_text)
    except EvolutionAPIError as e:
        logger.error(f"Error sending fallback message to {sender}: {e}")
        alert_critical("WhatsApp reply failed", {"sender": sender, "error": str(e)})
        return Result.from_exception(e, GATEWAY_ERROR)

    return Result.failure(f"Reply not delivered, fallback sent: {first_error}", GATEWAY_ERROR)


def process_inbound_message(
    inbound: InboundMessage,
    router: FlowRouter,
    quotes: QuoteService,
    gateway: EvolutionClient,
) -> ProcessingOutcome:
    log = bind_logger("message_service", sender=inbound.sender)
    log.info("Message received", context={"text": inbound.text, "has_image": inbound.has_image})

    route = router.route(inbound.sender, inbound.text, inbound.has_image)
    outcome = ProcessingOutcome(route=route)

    if route.should_save_quote:
        outcome.quote = save_quote(quotes, inbound)
        saved = outcome.quote.unwrap_or(None)
        if saved is not None:
            log.info("Quote saved", context={"quote_id": saved.id})

    outcome.delivery = deliver_reply(gateway, inbound.sender, route.response, router.catalog.temporary_error)
    if outcome.delivery.ok:
        log.info("Reply sent", context={"flow": route.flow, "state": route.state})
    return outcome


def handle_webhook_event(
    event: EvolutionWebhookEvent,
    router: FlowRouter,
    quotes: QuoteService,
    gateway: EvolutionClient,
) -> Optional[ProcessingOutcome]:
    """Background entry point: never lets an exception escape to the server."""
    try:
        inbound = extract_inbound_message(event)
        if inbound is None:
            return None
        return process_inbound_message(inbound, router, quotes, gateway)
    except Exception:
        logger.exception("Error processing webhook event")
        return None
