"""
Métricas sobre el log de llamadas de /api/mock.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from .db.models import ApiCallLog, utcnow
from .openapi import iter_operations

TIMEFRAMES = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}

HIGH_ERROR_RATE = 0.1


def parse_timeframe(timeframe: str, now: Optional[datetime] = None) -> datetime:
    """
    Convierte "1h" | "24h" | "7d" | "30d" en el instante de inicio.

    Raises:
        ValueError: si el timeframe no es uno de los soportados
    """
    try:
        delta = TIMEFRAMES[timeframe]
    except KeyError as e:
        raise ValueError(
            f"Timeframe inválido: {timeframe}. Valores válidos: {', '.join(TIMEFRAMES)}"
        ) from e
    return (now or utcnow()) - delta


def compute_analytics(calls: Iterable[ApiCallLog], timeframe: str = "24h") -> Dict[str, Any]:
    """
    Agrega las llamadas en resumen, distribuciones y endpoints más usados.
    """
    calls = list(calls)
    times = [c.response_time_ms for c in calls]

    by_endpoint: Dict[tuple[str, str], List[float]] = defaultdict(list)
    for call in calls:
        by_endpoint[(call.method, call.operation_path or call.path)].append(call.response_time_ms)

    popular = sorted(by_endpoint.items(), key=lambda item: len(item[1]), reverse=True)[:10]

    hourly: Counter = Counter(call.created_at.strftime("%Y-%m-%dT%H:00") for call in calls)

    return {
        "timeframe": timeframe,
        "summary": {
            "totalRequests": len(calls),
            "avgResponseTime": round(sum(times) / len(times), 2) if times else 0,
            "minResponseTime": round(min(times), 2) if times else 0,
            "maxResponseTime": round(max(times), 2) if times else 0,
        },
        "methodDistribution": dict(Counter(c.method for c in calls)),
        "statusDistribution": {str(code): n for code, n in Counter(c.status_code for c in calls).items()},
        "popularEndpoints": [
            {
                "method": method,
                "path": path,
                "count": len(durations),
                "avg_response_time": round(sum(durations) / len(durations), 2),
            }
            for (method, path), durations in popular
        ],
        "hourlyDistribution": [{"hour": hour, "count": hourly[hour]} for hour in sorted(hourly)],
    }


def analyze_spec_usage(document: Dict[str, Any], calls: Iterable[ApiCallLog]) -> Dict[str, Any]:
    """
    Análisis de uso de una spec: qué endpoints nunca se llamaron, tasa de
    errores y sugerencias simples.
    """
    calls = list(calls)
    declared = [(method.upper(), path) for path, method, _ in iter_operations(document)]

    counts = Counter((c.method, c.operation_path or c.path) for c in calls)
    errors = sum(1 for c in calls if c.status_code >= 400)
    error_rate = errors / len(calls) if calls else 0.0

    uncalled = [{"method": m, "path": p} for m, p in declared if counts[(m, p)] == 0]
    most_called = [
        {"method": m, "path": p, "count": n} for (m, p), n in counts.most_common(5)
    ]

    suggestions: List[str] = []
    if not calls:
        suggestions.append("No calls recorded yet: try the endpoints through /api/mock")
    if uncalled and calls:
        suggestions.append(f"{len(uncalled)} endpoint(s) have never been called")
    if error_rate > HIGH_ERROR_RATE:
        suggestions.append(f"High error rate ({error_rate:.0%}): check request paths and payloads")
    if calls and any(m == "POST" for m, _ in declared) and not any(c.method == "POST" for c in calls):
        suggestions.append("Create some resources with POST to exercise stateful responses")

    return {
        "totalEndpoints": len(declared),
        "totalCalls": len(calls),
        "errorRate": round(error_rate, 4),
        "uncalledEndpoints": uncalled,
        "mostCalled": most_called,
        "suggestions": suggestions,
    }
