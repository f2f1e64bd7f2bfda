import math
import random
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence

from callboard.schemas import (
    CallRecordOut,
    CustomerData,
    DashboardStats,
    DashboardView,
    RecentCall,
    SecurityData,
    TimeSeriesPoint,
    TypeSlice,
    VolumePoint,
    ensure_utc,
)
from callboard.services.store import utcnow

PROMOTER_THRESHOLD = 4.5
PASSIVE_THRESHOLD = 3.5
MAX_RATING = 5

# Placeholder compliance figures; nothing in a call record feeds them yet.
COMPLIANCE_RATE = 98.5
DATA_PROTECTION_SCORE = 9.2
SECURITY_ISSUE_RATIO = 0.02
DAILY_SECURITY_ISSUE_RATIO = 0.03
DAILY_COMPLIANCE_FLOOR = 95.0
DAILY_COMPLIANCE_SPREAD = 5.0

RECENT_CALLS_LIMIT = 10
START_TIME_FORMAT = "%m/%d/%Y, %I:%M:%S %p"


def round2(value: float) -> float:
    """Round half away from zero to two decimals."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _rating(call: CallRecordOut) -> float:
    return call.rating or 0


def _booked(calls: Sequence[CallRecordOut]) -> int:
    return sum(1 for call in calls if call.appointment_booked)


def _average_rating(calls: Sequence[CallRecordOut]) -> float:
    if not calls:
        return 0
    return sum(_rating(call) for call in calls) / len(calls)


def _rate(part: int, total: int) -> float:
    if total == 0:
        return 0
    return part / total * 100


def _net_promoter_score(calls: Sequence[CallRecordOut]) -> float:
    if not calls:
        return 0
    promoters = sum(1 for call in calls if _rating(call) >= PROMOTER_THRESHOLD)
    detractors = sum(1 for call in calls if _rating(call) < PASSIVE_THRESHOLD)
    return (promoters / len(calls) - detractors / len(calls)) * 100


def call_date(call: CallRecordOut) -> str:
    return ensure_utc(call.start_time).date().isoformat()


def day_range(days: int, today: date) -> List[str]:
    return [(today - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]


def bucket_by_date(calls: Sequence[CallRecordOut]) -> Dict[str, List[CallRecordOut]]:
    buckets: Dict[str, List[CallRecordOut]] = defaultdict(list)
    for call in calls:
        buckets[call_date(call)].append(call)
    return buckets


def calculate_stats(calls: Sequence[CallRecordOut]) -> DashboardStats:
    total_calls = len(calls)
    appointments_booked = _booked(calls)
    total_duration = sum(call.duration or 0 for call in calls)
    return DashboardStats(
        total_calls=total_calls,
        appointments_booked=appointments_booked,
        average_duration=total_duration / total_calls if total_calls else 0,
        average_rating=_average_rating(calls),
        conversion_rate=round2(_rate(appointments_booked, total_calls)),
    )


def calculate_volume_data(
    calls: Sequence[CallRecordOut], days: int, now: Optional[datetime] = None
) -> List[VolumePoint]:
    today = ensure_utc(now or utcnow()).date()
    buckets = bucket_by_date(calls)
    return [VolumePoint(date=day, count=len(buckets.get(day, []))) for day in day_range(days, today)]


def format_recent_calls(
    calls: Sequence[CallRecordOut], limit: int = RECENT_CALLS_LIMIT
) -> List[RecentCall]:
    return [
        RecentCall(
            **call.model_dump(),
            formatted_start_time=ensure_utc(call.start_time).strftime(START_TIME_FORMAT),
        )
        for call in calls[:limit]
    ]


def calculate_type_distribution(calls: Sequence[CallRecordOut]) -> List[TypeSlice]:
    types: Dict[str, int] = {}
    for call in calls:
        call_type = call.call_type or "unknown"
        types[call_type] = types.get(call_type, 0) + 1
    return [TypeSlice(name=name, value=value) for name, value in types.items()]


def calculate_customer_data(calls: Sequence[CallRecordOut]) -> CustomerData:
    # First call resolution is approximated by appointments booked.
    return CustomerData(
        satisfaction=round2(_average_rating(calls) / MAX_RATING * 100),
        nps=round2(_net_promoter_score(calls)),
        first_call_resolution=round2(_rate(_booked(calls), len(calls))),
    )


def calculate_security_data(calls: Sequence[CallRecordOut]) -> SecurityData:
    return SecurityData(
        compliance_rate=COMPLIANCE_RATE,
        security_issues=math.floor(len(calls) * SECURITY_ISSUE_RATIO),
        data_protection=DATA_PROTECTION_SCORE,
    )


def calculate_time_series_data(
    calls: Sequence[CallRecordOut],
    days: int,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[TimeSeriesPoint]:
    rng = rng or random.Random()
    today = ensure_utc(now or utcnow()).date()
    buckets = bucket_by_date(calls)
    points = []
    for day in day_range(days, today):
        calls_for_date = buckets.get(day, [])
        call_count = len(calls_for_date)
        # Compliance is random filler until transcripts are scored.
        compliance_rate = DAILY_COMPLIANCE_FLOOR + rng.random() * DAILY_COMPLIANCE_SPREAD
        points.append(
            TimeSeriesPoint(
                name=day,
                calls=call_count,
                resolution_rate=round2(_rate(_booked(calls_for_date), call_count)),
                satisfaction=round2(_average_rating(calls_for_date) / MAX_RATING * 100),
                nps=round2(_net_promoter_score(calls_for_date)),
                compliance_rate=round2(compliance_rate),
                security_issues=math.floor(call_count * DAILY_SECURITY_ISSUE_RATIO),
            )
        )
    return points


def build_dashboard(
    calls: Sequence[CallRecordOut],
    days: int,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    recent_limit: int = RECENT_CALLS_LIMIT,
) -> DashboardView:
    now = ensure_utc(now or utcnow())
    return DashboardView(
        stats=calculate_stats(calls),
        volume_data=calculate_volume_data(calls, days, now=now),
        recent_calls=format_recent_calls(calls, limit=recent_limit),
        type_distribution=calculate_type_distribution(calls),
        customer_data=calculate_customer_data(calls),
        security_data=calculate_security_data(calls),
        time_series_data=calculate_time_series_data(calls, days, now=now, rng=rng),
        last_updated=now,
    )
