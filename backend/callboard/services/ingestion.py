import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from callboard.schemas import CallRecordOut
from callboard.services.events import EventPublisher
from callboard.services.store import CallStore, StorageFailure, utcnow

logger = logging.getLogger(__name__)

MIN_RATING = 0.0
MAX_RATING = 5.0
# Largest value the Integer duration column holds.
MAX_DURATION = 2**31 - 1


class InvalidPayload(Exception):
    """The webhook payload cannot be turned into a call record."""


def parse_timestamp(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise InvalidPayload(f"Invalid {field}")
    elif isinstance(value, (int, float)):
        # Epoch milliseconds, as sent by Retell for start/end timestamps.
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidPayload(f"Invalid {field}") from exc
    elif isinstance(value, str):
        cleaned = value.strip()
        if cleaned.endswith("Z"):
            cleaned = cleaned[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(cleaned)
        except ValueError as exc:
            raise InvalidPayload(f"Invalid {field}: {value!r}") from exc
    else:
        raise InvalidPayload(f"Invalid {field}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_number(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise InvalidPayload(f"Invalid {field}")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidPayload(f"Invalid {field}: {value!r}") from exc
    if math.isnan(number) or math.isinf(number):
        raise InvalidPayload(f"Invalid {field}: {value!r}")
    return number


def normalize_rating(value: Any, call_id: str) -> float:
    if not value:
        return MIN_RATING
    rating = parse_number(value, "rating")
    clamped = min(max(rating, MIN_RATING), MAX_RATING)
    if clamped != rating:
        logger.warning("Clamped rating %s to %s for call_id=%s", rating, clamped, call_id)
    return clamped


def normalize_duration(value: Any, call_id: str) -> int:
    if not value:
        return 0
    duration = int(parse_number(value, "duration"))
    if duration < 0:
        logger.warning("Clamped negative duration %s to 0 for call_id=%s", duration, call_id)
        return 0
    if duration > MAX_DURATION:
        logger.warning(
            "Clamped duration %s to %s for call_id=%s", duration, MAX_DURATION, call_id
        )
        return MAX_DURATION
    return duration


def normalize_timestamp(
    payload: dict, field: str, now: datetime, require: bool = False
) -> datetime:
    value = payload.get(field)
    if not value:
        if require:
            raise InvalidPayload(f"Missing {field}")
        logger.warning(
            "Webhook for call_id=%s has no %s; defaulting to ingestion time",
            payload.get("call_id"),
            field,
        )
        return now
    return parse_timestamp(value, field)


def normalize_payload(
    payload: Any, now: Optional[datetime] = None, require_start_time: bool = False
) -> dict:
    if not payload or not isinstance(payload, dict):
        raise InvalidPayload("Invalid webhook data")
    if not payload.get("call_id"):
        raise InvalidPayload("Invalid webhook data")
    now = now or utcnow()
    call_id = str(payload["call_id"])
    return {
        "call_id": call_id,
        "call_type": str(payload.get("call_type") or "unknown"),
        "from_number": str(payload.get("from_number") or "unknown"),
        "to_number": str(payload.get("to_number") or "unknown"),
        "duration": normalize_duration(payload.get("duration"), call_id),
        "rating": normalize_rating(payload.get("rating"), call_id),
        "appointment_booked": bool(payload.get("appointment_booked") or False),
        "summary": str(payload.get("summary") or ""),
        "start_time": normalize_timestamp(payload, "start_time", now, require=require_start_time),
        "end_time": normalize_timestamp(payload, "end_time", now),
        "sentiment": str(payload.get("sentiment") or "neutral"),
    }


def store_call_data(store: CallStore, payload: Any, require_start_time: bool = False) -> CallRecordOut:
    record = normalize_payload(payload, require_start_time=require_start_time)
    stored = store.insert(record)
    if stored is None:
        raise StorageFailure("Failed to store call data")
    logger.info("Stored call_id=%s as id=%s", stored.call_id, stored.id)
    return stored


async def ingest_call(
    store: CallStore,
    publisher: Optional[EventPublisher],
    payload: Any,
    require_start_time: bool = False,
) -> CallRecordOut:
    stored = store_call_data(store, payload, require_start_time=require_start_time)
    if publisher:
        await publisher.publish({"type": "call_inserted", "payload": stored.model_dump(mode="json")})
    return stored
