"""Admin API for following up on quote requests."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from sabores_bot.config import Settings, get_settings
from sabores_bot.dependencies import get_quote_service
from sabores_bot.schemas.quote import (
    QuoteRequest,
    QuoteStats,
    QuoteStatus,
    QuoteStatusUpdate,
    QuoteStatusUpdateResponse,
)
from sabores_bot.services.quote_service import QuoteService, QuoteStorageError

router = APIRouter(prefix="/admin", tags=["admin"])


def require_admin_token(
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    settings: Settings = Depends(get_settings),
) -> None:
    expected = settings.ADMIN_TOKEN
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="ADMIN_TOKEN not configured",
        )
    if not x_admin_token or x_admin_token != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


@router.get(
    "/quotes",
    response_model=list[QuoteRequest],
    response_model_by_alias=True,
    response_model_exclude_none=True,
    dependencies=[Depends(require_admin_token)],
)
def list_quotes(
    quote_status: Optional[QuoteStatus] = Query(default=None, alias="status"),
    quotes: QuoteService = Depends(get_quote_service),
):
    return quotes.list_quotes(quote_status)


@router.get(
    "/quotes/stats",
    response_model=QuoteStats,
    response_model_by_alias=True,
    dependencies=[Depends(require_admin_token)],
)
def quote_stats(quotes: QuoteService = Depends(get_quote_service)):
    return quotes.get_stats()


@router.patch(
    "/quotes/{quote_id}/status",
    response_model=QuoteStatusUpdateResponse,
    dependencies=[Depends(require_admin_token)],
)
def update_quote_status(
    quote_id: int,
    request: QuoteStatusUpdate,
    quotes: QuoteService = Depends(get_quote_service),
):
    try:
        updated = quotes.update_status(quote_id, request.status)
    except QuoteStorageError as e:
        raise HTTPException(status_code=500, detail=f"Could not save quotes: {e}")
    if not updated:
        raise HTTPException(status_code=404, detail=f"Quote {quote_id} not found")
    return QuoteStatusUpdateResponse(success=True, id=quote_id, status=request.status)
