import logging
import random
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from callboard.core.config import settings
from callboard.core.deps import get_call_store, get_compliance_rng
from callboard.schemas import DashboardView, ErrorResponse
from callboard.services.analytics import build_dashboard
from callboard.services.store import CallStore, get_calls_for_timeframe, utcnow

router = APIRouter(prefix="/api", tags=["analysis"])

logger = logging.getLogger(__name__)


def parse_days(value: Optional[str]) -> int:
    if value is None:
        return settings.default_days
    try:
        days = int(value.strip())
    except ValueError:
        return settings.default_days
    if days < 0:
        return settings.default_days
    if days > settings.max_days:
        logger.warning("Capped days=%s to %s", days, settings.max_days)
        return settings.max_days
    return days


@router.get(
    "/call-analysis",
    response_model=DashboardView,
    responses={500: {"model": ErrorResponse}},
)
def call_analysis(
    days: Optional[str] = Query(None),
    store: CallStore = Depends(get_call_store),
    rng: random.Random = Depends(get_compliance_rng),
):
    window_days = parse_days(days)
    try:
        now = utcnow()
        calls = get_calls_for_timeframe(store, window_days, now=now)
        return build_dashboard(
            calls,
            window_days,
            now=now,
            rng=rng,
            recent_limit=settings.recent_calls_limit,
        )
    except Exception:
        logger.exception("Error processing call analysis for days=%s", window_days)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
