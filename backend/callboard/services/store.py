import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from callboard.models import CallRecord
from callboard.schemas import CallRecordOut

logger = logging.getLogger(__name__)


class StorageFailure(Exception):
    """The call store could not persist or return records."""


class CallStore(Protocol):
    def insert(self, record: dict) -> Optional[CallRecordOut]:
        ...

    def query_by_time_range(self, start: datetime, end: datetime) -> List[CallRecordOut]:
        ...

    def list_recent(self, offset: int, limit: int) -> List[CallRecordOut]:
        ...


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class SqlCallStore:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, record: dict) -> Optional[CallRecordOut]:
        values = dict(record)
        for field in ("start_time", "end_time"):
            values[field] = to_naive_utc(values[field])
        row = CallRecord(**values)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error storing call data for call_id=%s", record.get("call_id"))
            return None
        return CallRecordOut.model_validate(row)

    def query_by_time_range(self, start: datetime, end: datetime) -> List[CallRecordOut]:
        try:
            rows = (
                self.db.query(CallRecord)
                .filter(
                    CallRecord.start_time >= to_naive_utc(start),
                    CallRecord.start_time <= to_naive_utc(end),
                )
                .order_by(CallRecord.start_time.desc())
                .all()
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageFailure("Error fetching calls") from exc
        return [CallRecordOut.model_validate(row) for row in rows]

    def list_recent(self, offset: int, limit: int) -> List[CallRecordOut]:
        try:
            rows = (
                self.db.query(CallRecord)
                .order_by(CallRecord.start_time.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageFailure("Error listing calls") from exc
        return [CallRecordOut.model_validate(row) for row in rows]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_window_range(days: int, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    if days < 0:
        raise ValueError("days must be >= 0")
    range_end = now or utcnow()
    range_start = range_end - timedelta(days=days)
    return range_start, range_end


def get_calls_for_timeframe(
    store: CallStore, days: int, now: Optional[datetime] = None
) -> List[CallRecordOut]:
    range_start, range_end = get_window_range(days, now=now)
    calls = store.query_by_time_range(range_start, range_end)
    logger.debug(
        "Fetched %s calls between %s and %s",
        len(calls),
        range_start.isoformat(),
        range_end.isoformat(),
    )
    return calls
