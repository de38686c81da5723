from __future__ import annotations

import logging
from datetime import date

from fastapi import FastAPI, HTTPException, Query

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events
from .recommendations.cache import get_cache_stats
from .recommendations.config import DEFAULT_SERVICE_CONFIG
from .recommendations.data_store import get_repository
from .recommendations.models import RecommendationResponse, SearchParams
from .recommendations.retrieval import get_recommendations

logger = logging.getLogger(__name__)

app = FastAPI(title="Venue Ranking API", version="1.0.0")


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata() -> dict:
    try:
        repository = get_repository()
    except Exception as exc:
        logger.exception("Metadata request failed")
        raise HTTPException(status_code=500, detail="Failed to load metadata") from exc
    return {
        "categories": repository.categories(),
        "dates": [d.isoformat() for d in repository.dates()],
    }


@app.get("/users/{user_id}/recommendations", response_model=RecommendationResponse)
def recommendations(
    user_id: str,
    search_date: date | None = Query(default=None, alias="date"),
    limit: int = Query(
        default=DEFAULT_SERVICE_CONFIG.default_limit,
        ge=1,
        le=DEFAULT_SERVICE_CONFIG.max_limit,
    ),
) -> RecommendationResponse:
    params = SearchParams(date=search_date or date.today(), limit=limit)
    try:
        return get_recommendations(user_id, params)
    except Exception as exc:
        logger.exception("Recommendation request failed for user %s", user_id)
        raise HTTPException(
            status_code=500, detail="Failed to compute recommendations",
        ) from exc


# ── Operational endpoints ────────────────────────────────────────────────


@app.get("/analytics")
def analytics() -> dict:
    return compute_analytics(get_events())


@app.get("/cache/stats")
def cache_stats() -> dict:
    return get_cache_stats()
