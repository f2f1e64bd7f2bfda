from fastapi import APIRouter, Request
from sqlalchemy import text

from callboard.core.database import SessionLocal

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    finally:
        db.close()
    publisher = getattr(request.app.state, "publisher", None)
    if publisher and publisher.enabled:
        await publisher.ping()
    return {"status": "ready"}
