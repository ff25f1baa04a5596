from datetime import datetime, timedelta

import pytest

from sandbox_core.analytics import analyze_spec_usage, compute_analytics, parse_timeframe
from sandbox_core.db.models import ApiCallLog

NOW = datetime(2024, 5, 1, 12, 30)


def make_call(method="GET", path="/pets", status=200, ms=10.0, minutes_ago=0, operation_path=None):
    return ApiCallLog(
        method=method,
        path=path,
        operation_path=operation_path or path,
        status_code=status,
        response_time_ms=ms,
        created_at=NOW - timedelta(minutes=minutes_ago),
    )


@pytest.mark.parametrize(
    "timeframe, delta",
    [("1h", timedelta(hours=1)), ("24h", timedelta(days=1)), ("7d", timedelta(days=7)), ("30d", timedelta(days=30))],
)
def test_parse_timeframe(timeframe, delta):
    assert parse_timeframe(timeframe, now=NOW) == NOW - delta


def test_parse_timeframe_rejects_unknown():
    with pytest.raises(ValueError, match="Timeframe inválido"):
        parse_timeframe("2w")


def test_compute_analytics():
    calls = [
        make_call(ms=10),
        make_call(ms=30),
        make_call(method="POST", path="/pet", status=201, ms=20, minutes_ago=90),
        make_call(path="/pet/1", operation_path="/pet/{petId}", status=404, ms=5),
    ]

    result = compute_analytics(calls, "24h")

    assert result["timeframe"] == "24h"
    assert result["summary"] == {
        "totalRequests": 4,
        "avgResponseTime": 16.25,
        "minResponseTime": 5,
        "maxResponseTime": 30,
    }
    assert result["methodDistribution"] == {"GET": 3, "POST": 1}
    assert result["statusDistribution"] == {"200": 2, "201": 1, "404": 1}
    assert result["popularEndpoints"][0] == {"method": "GET", "path": "/pets", "count": 2, "avg_response_time": 20.0}
    assert {"hour": "2024-05-01T12:00", "count": 3} in result["hourlyDistribution"]
    assert {"hour": "2024-05-01T11:00", "count": 1} in result["hourlyDistribution"]


def test_compute_analytics_empty():
    result = compute_analytics([], "1h")
    assert result["summary"]["totalRequests"] == 0
    assert result["summary"]["avgResponseTime"] == 0
    assert result["popularEndpoints"] == []


def test_analyze_spec_usage(petstore):
    calls = [
        make_call(path="/pets"),
        make_call(path="/pets", status=500),
        make_call(path="/pet/1", operation_path="/pet/{petId}"),
    ]

    analysis = analyze_spec_usage(petstore, calls)

    assert analysis["totalEndpoints"] == 5
    assert analysis["totalCalls"] == 3
    assert analysis["errorRate"] == round(1 / 3, 4)
    uncalled = {(e["method"], e["path"]) for e in analysis["uncalledEndpoints"]}
    assert uncalled == {("POST", "/pet"), ("PUT", "/pet"), ("DELETE", "/pet/{petId}")}
    assert analysis["mostCalled"][0] == {"method": "GET", "path": "/pets", "count": 2}
    assert any("error rate" in s for s in analysis["suggestions"])
    assert any("POST" in s for s in analysis["suggestions"])


def test_analyze_spec_usage_without_calls(petstore):
    analysis = analyze_spec_usage(petstore, [])
    assert analysis["errorRate"] == 0
    assert analysis["suggestions"] == ["No calls recorded yet: try the endpoints through /api/mock"]
