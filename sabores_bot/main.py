import sys

import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError

from sabores_bot.config import get_settings, missing_required_settings
from sabores_bot.dependencies import get_evolution_client, get_quote_service
from sabores_bot.logging_config import get_logger, setup_logging
from sabores_bot.routers import admin, status, webhook
from sabores_bot.services.flow_catalog import load_flow_catalog

setup_logging()

logger = get_logger("main")

app = FastAPI(
    title="Sabores da Dori Bot",
    description="WhatsApp bot for the Sabores da Dori bakery",
    version="1.0.0",
)

app.include_router(status.router)
app.include_router(webhook.router)
app.include_router(admin.router)


@app.on_event("startup")
def on_startup() -> None:
    # Missing required settings abort startup here.
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, service=settings.SERVICE_NAME)

    get_evolution_client()
    logger.info("Evolution API client initialized")

    get_quote_service().init_file()
    logger.info("Quote storage initialized", extra={"context": {"path": settings.QUOTES_FILE}})

    load_flow_catalog()
    logger.info(
        "Server started",
        extra={
            "context": {
                "port": settings.PORT,
                "instance": settings.INSTANCE_NAME,
                "evolution_api": settings.EVOLUTION_API_URL,
                "session_backend": settings.SESSION_BACKEND,
            }
        },
    )


def run() -> None:
    """Console entry point: validate configuration, then serve."""
    try:
        settings = get_settings()
    except ValidationError as e:
        missing = missing_required_settings(e)
        logger.error(
            "Missing environment variables, configure .env before starting the server",
            extra={"context": {"missing": missing or None, "error_count": e.error_count()}},
        )
        sys.exit(1)

    uvicorn.run(
        "sabores_bot.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
