from __future__ import annotations

from collections import Counter
from typing import Any


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    searches = [e for e in events if e["type"] == "search"]
    failures = [e for e in events if e["type"] == "search_failed"]
    total = len(searches)

    # Average response time
    times = [s["response_time_ms"] for s in searches if "response_time_ms" in s]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Average result list length
    returned = [s.get("results_returned", 0) for s in searches]
    avg_returned = round(sum(returned) / total, 1) if total else 0.0

    # Most searched dates
    date_counter: Counter[str] = Counter()
    for s in searches:
        date_counter[str(s.get("date", "unknown"))] += 1
    top_dates = [{"date": d, "count": c} for d, c in date_counter.most_common(10)]

    # Categories that made it into results
    category_counter: Counter[str] = Counter()
    for s in searches:
        for c in s.get("categories", []) or []:
            category_counter[c] += 1
    top_categories = [{"name": n, "count": c} for n, c in category_counter.most_common(10)]

    cache_hits = sum(1 for s in searches if s.get("cache_hit"))
    cache_misses = total - cache_hits

    failure_reasons = Counter(f.get("error", "unknown") for f in failures)

    return {
        "total_searches": total,
        "failed_searches": len(failures),
        "failure_reasons": dict(failure_reasons),
        "avg_response_time_ms": avg_time,
        "avg_results_returned": avg_returned,
        "top_dates": top_dates,
        "top_categories": top_categories,
        "cache_stats": {
            "hits": cache_hits,
            "misses": cache_misses,
            "hit_rate": _rate(cache_hits, total),
        },
    }
