"""In-memory app metrics: HTTP latency and status mix, plus model-call latency and failures per request kind."""
from __future__ import annotations

import time
from collections import Counter, deque
from dataclasses import dataclass, field
from threading import Lock

from starlette.requests import Request
from starlette.responses import Response

_LATENCY_WINDOW = 500
_ERROR_RATE_ALERT_THRESHOLD = 0.10
# Model calls dominate latency; a full submit is three of them.
_LATENCY_P95_ALERT_MS = 30000
_MODEL_FAILURE_ALERT_THRESHOLD = 0.25


def _percentile_ms(samples, q: float) -> float | None:
    if not samples:
        return None
    ordered = sorted(sample * 1000 for sample in samples)
    return round(ordered[int((len(ordered) - 1) * q)], 2)


@dataclass
class _KindStats:
    calls: int = 0
    failures: int = 0
    latencies: deque = field(default_factory=lambda: deque(maxlen=_LATENCY_WINDOW))

    def as_dict(self) -> dict:
        return {
            "calls": self.calls,
            "failures": self.failures,
            "latency_ms_p50": _percentile_ms(self.latencies, 0.50),
            "latency_ms_p95": _percentile_ms(self.latencies, 0.95),
        }


_lock = Lock()
_status_classes: Counter[str] = Counter()
_request_latencies: deque[float] = deque(maxlen=_LATENCY_WINDOW)
_model_calls: dict[str, _KindStats] = {}


def record_request(duration_sec: float, status_code: int) -> None:
    with _lock:
        _status_classes[f"{status_code // 100}xx"] += 1
        _request_latencies.append(duration_sec)


def record_llm_call(request_kind: str, ok: bool, duration_sec: float | None = None) -> None:
    with _lock:
        stats = _model_calls.setdefault(request_kind, _KindStats())
        stats.calls += 1
        if not ok:
            stats.failures += 1
        if duration_sec is not None:
            stats.latencies.append(duration_sec)


def get_metrics() -> dict:
    with _lock:
        statuses = dict(_status_classes)
        latencies = list(_request_latencies)
        per_kind = {kind: stats.as_dict() for kind, stats in _model_calls.items()}

    total = sum(statuses.values())
    errors = statuses.get("4xx", 0) + statuses.get("5xx", 0)
    error_rate = (errors / total) if total else 0.0
    latency_ms_p95 = _percentile_ms(latencies, 0.95)
    model_calls = sum(stats["calls"] for stats in per_kind.values())
    model_failures = sum(stats["failures"] for stats in per_kind.values())

    alerts: list[str] = []
    if total and error_rate >= _ERROR_RATE_ALERT_THRESHOLD:
        alerts.append("high_error_rate")
    if latency_ms_p95 is not None and latency_ms_p95 >= _LATENCY_P95_ALERT_MS:
        alerts.append("high_latency_p95")
    if model_calls and model_failures / model_calls >= _MODEL_FAILURE_ALERT_THRESHOLD:
        alerts.append("high_model_failure_rate")

    return {
        "request_count": total,
        "error_count": errors,
        "error_rate": round(error_rate, 4),
        "status_classes": statuses,
        "latency_ms_p50": _percentile_ms(latencies, 0.50),
        "latency_ms_p95": latency_ms_p95,
        "llm_calls": {kind: stats["calls"] for kind, stats in per_kind.items()},
        "llm_failures": {kind: stats["failures"] for kind, stats in per_kind.items() if stats["failures"]},
        "llm_by_kind": per_kind,
        "alerts": alerts,
    }


def reset_metrics() -> None:
    """Reset counters (e.g. for tests)."""
    with _lock:
        _status_classes.clear()
        _request_latencies.clear()
        _model_calls.clear()


async def metrics_middleware(request: Request, call_next) -> Response:
    """Time every API request except health checks and the metrics endpoint itself."""
    path = request.url.path
    if path == "/health" or path.startswith("/metrics"):
        return await call_next(request)
    start = time.perf_counter()
    response = await call_next(request)
    record_request(time.perf_counter() - start, response.status_code)
    return response
