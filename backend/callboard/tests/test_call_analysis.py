from datetime import datetime, timedelta, timezone

from callboard.core.deps import get_call_store
from callboard.main import app
from callboard.services.store import StorageFailure

DASHBOARD_KEYS = {
    "stats",
    "volumeData",
    "recentCalls",
    "typeDistribution",
    "customerData",
    "securityData",
    "timeSeriesData",
    "lastUpdated",
}


class BrokenStore:
    def query_by_time_range(self, start, end):
        raise StorageFailure("Error fetching calls")


def _today_start_time() -> str:
    now = datetime.now(timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return max(now - timedelta(minutes=1), midnight).isoformat()


def test_empty_dashboard_defaults_to_seven_days(client):
    response = client.get("/api/call-analysis")
    assert response.status_code == 200
    data = response.json()
    assert set(data) == DASHBOARD_KEYS
    assert data["stats"] == {
        "totalCalls": 0,
        "appointmentsBooked": 0,
        "averageDuration": 0,
        "averageRating": 0,
        "conversionRate": 0,
    }
    assert len(data["volumeData"]) == 7
    assert len(data["timeSeriesData"]) == 7
    assert data["volumeData"][-1]["date"] == datetime.now(timezone.utc).date().isoformat()
    assert data["recentCalls"] == []
    assert data["typeDistribution"] == []
    assert data["securityData"] == {"complianceRate": 98.5, "securityIssues": 0, "dataProtection": 9.2}


def test_unparsable_or_negative_days_fall_back_to_default(client):
    for value in ("abc", "-3", "1.5"):
        data = client.get("/api/call-analysis", params={"days": value}).json()
        assert len(data["volumeData"]) == 7


def test_zero_days_yields_empty_series(client):
    data = client.get("/api/call-analysis", params={"days": 0}).json()
    assert data["volumeData"] == []
    assert data["timeSeriesData"] == []


def test_dashboard_aggregates_window(client):
    client.post(
        "/api/webhooks/retell",
        json={
            "call_id": "today",
            "call_type": "sales",
            "start_time": _today_start_time(),
            "rating": 5,
            "appointment_booked": True,
        },
    )
    old_start = (datetime.now(timezone.utc) - timedelta(days=3)).isoformat()
    client.post(
        "/api/webhooks/retell",
        json={"call_id": "older", "call_type": "support", "start_time": old_start, "rating": 2},
    )

    one_day = client.get("/api/call-analysis", params={"days": 1}).json()
    assert one_day["stats"]["totalCalls"] == 1
    assert one_day["stats"]["conversionRate"] == 100.0
    assert one_day["customerData"]["firstCallResolution"] == 100.0
    assert one_day["volumeData"] == [
        {"date": datetime.now(timezone.utc).date().isoformat(), "count": 1}
    ]
    assert one_day["recentCalls"][0]["call_id"] == "today"
    assert one_day["recentCalls"][0]["formatted_start_time"]

    week = client.get("/api/call-analysis", params={"days": 7}).json()
    assert week["stats"]["totalCalls"] == 2
    assert week["stats"]["conversionRate"] == 50.0
    assert week["customerData"]["nps"] == 0
    assert [call["call_id"] for call in week["recentCalls"]] == ["today", "older"]
    assert week["typeDistribution"] == [
        {"name": "sales", "value": 1},
        {"name": "support", "value": 1},
    ]
    assert sum(point["count"] for point in week["volumeData"]) == 2
    assert sum(point["calls"] for point in week["timeSeriesData"]) == 2


def test_store_failure_returns_generic_error(client):
    app.dependency_overrides[get_call_store] = lambda: BrokenStore()
    response = client.get("/api/call-analysis", params={"days": 3})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_huge_days_is_capped(client):
    response = client.get("/api/call-analysis", params={"days": 10**7})
    assert response.status_code == 200
    assert len(response.json()["volumeData"]) == 3650
