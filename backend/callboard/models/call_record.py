import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from callboard.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class CallRecord(Base):
    __tablename__ = "calls"

    # Timestamps are stored as naive UTC.
    id = Column(String(36), primary_key=True, default=_new_id)
    call_id = Column(Text, nullable=False, index=True)
    call_type = Column(Text, nullable=False, default="unknown")
    from_number = Column(Text, nullable=False, default="unknown")
    to_number = Column(Text, nullable=False, default="unknown")
    duration = Column(Integer, nullable=False, default=0)
    rating = Column(Float, nullable=False, default=0)
    appointment_booked = Column(Boolean, nullable=False, default=False)
    summary = Column(Text, nullable=False, default="")
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    sentiment = Column(Text, nullable=False, default="neutral")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
