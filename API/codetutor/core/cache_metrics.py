"""In-memory difficulty-cache metrics: hit/miss/set counts per payload kind and hit ratio."""
from __future__ import annotations

from collections import Counter
from threading import Lock

_lock = Lock()
_hits: Counter[str] = Counter()
_misses: Counter[str] = Counter()
_sets: Counter[str] = Counter()


def record_cache_get(kind: str, hit: bool) -> None:
    with _lock:
        (_hits if hit else _misses)[kind] += 1


def record_cache_set(kind: str) -> None:
    with _lock:
        _sets[kind] += 1


def get_cache_metrics() -> dict:
    with _lock:
        hits = dict(_hits)
        misses = dict(_misses)
        sets = dict(_sets)
    total_hits = sum(hits.values())
    total_gets = total_hits + sum(misses.values())
    hit_ratio = (total_hits / total_gets) if total_gets else None
    return {
        "hits": hits,
        "misses": misses,
        "sets": sets,
        "get_total": total_gets,
        "hit_ratio": round(hit_ratio, 4) if hit_ratio is not None else None,
    }


def reset_cache_metrics() -> None:
    """Reset counters (e.g. for tests)."""
    with _lock:
        _hits.clear()
        _misses.clear()
        _sets.clear()
