from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import ValidationError
from starlette.requests import ClientDisconnect

from sabores_bot.dependencies import get_evolution_client, get_flow_router, get_quote_service
from sabores_bot.logging_config import get_logger
from sabores_bot.schemas.webhook import EvolutionWebhookEvent, WebhookAck
from sabores_bot.services.evolution_service import EvolutionClient
from sabores_bot.services.flow_router import FlowRouter
from sabores_bot.services.message_service import handle_webhook_event
from sabores_bot.services.quote_service import QuoteService

logger = get_logger("webhook")

router = APIRouter()


async def _parse_webhook_event(request: Request) -> EvolutionWebhookEvent | WebhookAck:
    try:
        payload = await request.json()
    except ClientDisconnect:
        logger.info("Webhook client disconnected during read")
        return WebhookAck(success=True, message="Client disconnected")
    except ValueError as exc:
        raw = await request.body()
        if not raw or not raw.strip():
            logger.info("Webhook request with empty body")
            return WebhookAck(success=True, message="Empty payload")
        logger.warning(
            "Webhook payload is not valid JSON",
            extra={"context": {"error": str(exc), "body_preview": raw[:200].decode("utf-8", "ignore")}},
        )
        return WebhookAck(success=False, message="Invalid JSON payload")

    if not isinstance(payload, dict):
        logger.warning("Webhook payload is not an object")
        return WebhookAck(success=False, message="Invalid payload format")

    logger.debug("Webhook event", extra={"context": {"event": payload}})

    try:
        return EvolutionWebhookEvent.model_validate(payload)
    except ValidationError as exc:
        logger.warning(
            "Webhook payload validation failed",
            extra={"context": {"error_count": exc.error_count(), "payload_keys": list(payload.keys())[:20]}},
        )
        return WebhookAck(success=True, message="Ignored")


@router.post("/webhook", response_model=WebhookAck)
async def handle_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    flow_router: FlowRouter = Depends(get_flow_router),
    quotes: QuoteService = Depends(get_quote_service),
    gateway: EvolutionClient = Depends(get_evolution_client),
):
    """Acknowledge the Evolution API right away; the reply is produced in the background."""
    logger.info("Webhook received")
    parsed = await _parse_webhook_event(request)
    if isinstance(parsed, WebhookAck):
        return parsed

    background_tasks.add_task(handle_webhook_event, parsed, flow_router, quotes, gateway)
    return WebhookAck(success=True)


# Some Evolution setups post to the bare base URL.
router.add_api_route("/", handle_webhook, methods=["POST"], response_model=WebhookAck)
