from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CallRecordOut(BaseModel):
    id: str
    call_id: str
    call_type: str = "unknown"
    from_number: str = "unknown"
    to_number: str = "unknown"
    duration: int = 0
    rating: float = 0
    appointment_booked: bool = False
    summary: str = ""
    start_time: datetime
    end_time: datetime
    sentiment: str = "neutral"
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("start_time", "end_time", "created_at")
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class RecentCall(CallRecordOut):
    formatted_start_time: str


class PaginatedCalls(BaseModel):
    items: List[CallRecordOut]
    page: int
    page_size: int


class IngestionResponse(BaseModel):
    message: str
    id: str


class ErrorResponse(BaseModel):
    error: str


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DashboardStats(CamelModel):
    total_calls: int
    appointments_booked: int
    average_duration: float
    average_rating: float
    conversion_rate: float


class VolumePoint(CamelModel):
    date: str
    count: int


class TypeSlice(CamelModel):
    name: str
    value: int


class CustomerData(CamelModel):
    satisfaction: float
    nps: float
    first_call_resolution: float


class SecurityData(CamelModel):
    compliance_rate: float
    security_issues: int
    data_protection: float


class TimeSeriesPoint(CamelModel):
    name: str
    calls: int
    resolution_rate: float
    satisfaction: float
    nps: float
    compliance_rate: float
    security_issues: int


class DashboardView(CamelModel):
    stats: DashboardStats
    volume_data: List[VolumePoint]
    recent_calls: List[RecentCall]
    type_distribution: List[TypeSlice]
    customer_data: CustomerData
    security_data: SecurityData
    time_series_data: List[TimeSeriesPoint]
    last_updated: datetime
