from __future__ import annotations

from fastapi import APIRouter

from codetutor.core.app_metrics import get_metrics
from codetutor.core.cache_metrics import get_cache_metrics
from codetutor.core.rate_limit import api_rate_limiter

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("/app")
async def app_metrics():
    """Request latency (p50/p95), error rate, model calls per kind and difficulty-cache hit ratio."""
    out = get_metrics()
    out["cache"] = get_cache_metrics()
    cache = out["cache"]
    if cache["get_total"] >= 10 and cache["hit_ratio"] is not None and cache["hit_ratio"] < 0.5:
        out["alerts"] = list(out.get("alerts", [])) + ["low_cache_hit_ratio"]
    out["rate_limit"] = api_rate_limiter.status()
    return out
