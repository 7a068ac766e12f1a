"""Gateway status and webhook setup endpoints."""

import time
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sabores_bot.config import Settings, get_settings
from sabores_bot.dependencies import get_evolution_client
from sabores_bot.logging_config import get_logger
from sabores_bot.schemas.webhook import ConfigureWebhookRequest, ConfigureWebhookResponse, InstanceStatusResponse
from sabores_bot.services.evolution_service import EvolutionAPIError, EvolutionClient

logger = get_logger("status")

router = APIRouter()

STARTED_AT = time.monotonic()


@router.get("/")
def health(settings: Settings = Depends(get_settings)):
    return {
        "status": "online",
        "service": settings.SERVICE_NAME,
        "timestamp": int(time.time() * 1000),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
    }


@router.get("/status", response_model=InstanceStatusResponse)
def instance_status(
    settings: Settings = Depends(get_settings),
    gateway: EvolutionClient = Depends(get_evolution_client),
):
    try:
        status = gateway.get_instance_status()
    except EvolutionAPIError as e:
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
    return InstanceStatusResponse(success=True, instance=settings.INSTANCE_NAME, status=status)


@router.post("/configure-webhook", response_model=ConfigureWebhookResponse)
def configure_webhook(
    request: Optional[ConfigureWebhookRequest] = None,
    settings: Settings = Depends(get_settings),
    gateway: EvolutionClient = Depends(get_evolution_client),
):
    """Point the Evolution instance at our webhook (initial setup)."""
    webhook_url = settings.WEBHOOK_URL or (request.webhookUrl if request else None)
    if not webhook_url:
        return JSONResponse(status_code=400, content={"success": False, "error": "WEBHOOK_URL não configurado"})

    try:
        result = gateway.configure_webhook(webhook_url)
    except EvolutionAPIError as e:
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return ConfigureWebhookResponse(success=True, message="Webhook configurado com sucesso", result=result)
