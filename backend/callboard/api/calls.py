import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from callboard.core.deps import get_call_store
from callboard.schemas import ErrorResponse, PaginatedCalls
from callboard.services.store import CallStore, StorageFailure

router = APIRouter(prefix="/api/calls", tags=["calls"])

logger = logging.getLogger(__name__)


@router.get("", response_model=PaginatedCalls, responses={500: {"model": ErrorResponse}})
def list_calls(
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    store: CallStore = Depends(get_call_store),
):
    try:
        items = store.list_recent(offset=(page - 1) * page_size, limit=page_size)
    except StorageFailure:
        logger.exception("Error listing calls")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    return PaginatedCalls(items=items, page=page, page_size=page_size)
