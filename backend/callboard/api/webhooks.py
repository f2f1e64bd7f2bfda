import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from callboard.core.config import settings
from callboard.core.deps import get_call_store, get_publisher
from callboard.schemas import ErrorResponse, IngestionResponse
from callboard.services.events import EventPublisher
from callboard.services.ingestion import InvalidPayload, ingest_call
from callboard.services.store import CallStore, StorageFailure

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

logger = logging.getLogger(__name__)


@router.post(
    "/retell",
    response_model=IngestionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def retell_webhook(
    request: Request,
    store: CallStore = Depends(get_call_store),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
):
    try:
        webhook_data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Received unparseable webhook body")
        return JSONResponse(status_code=400, content={"error": "Invalid webhook data"})
    if isinstance(webhook_data, dict):
        logger.info("Received webhook for call_id=%s", webhook_data.get("call_id"))
    try:
        stored = await ingest_call(
            store,
            publisher,
            webhook_data,
            require_start_time=settings.require_start_time,
        )
    except InvalidPayload as exc:
        logger.warning("Rejected webhook: %s", exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except StorageFailure as exc:
        logger.error("Webhook storage failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})
    except Exception:
        logger.exception("Error processing webhook")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    return IngestionResponse(message="Call data received and stored", id=stored.id)
