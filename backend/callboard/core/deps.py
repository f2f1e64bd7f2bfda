import random
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from callboard.core.config import settings
from callboard.core.database import get_db
from callboard.services.events import EventPublisher
from callboard.services.store import CallStore, SqlCallStore


def get_call_store(db: Session = Depends(get_db)) -> CallStore:
    return SqlCallStore(db)


def get_publisher(request: Request) -> Optional[EventPublisher]:
    return getattr(request.app.state, "publisher", None)


def get_compliance_rng() -> random.Random:
    return random.Random(settings.compliance_seed)
