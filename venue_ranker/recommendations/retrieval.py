from __future__ import annotations

import logging
import time
from dataclasses import asdict
from datetime import date
from typing import Any

from ..analytics.store import record_event
from .cache import cache_get, cache_set
from .config import DEFAULT_SERVICE_CONFIG, ServiceConfig
from .data_store import InMemoryRepository, get_repository
from .models import (
    Item,
    ItemOut,
    RecommendationItem,
    RecommendationResponse,
    ScoreBreakdown,
    ScoredItem,
    SearchParams,
)
from .scoring import Scorer

logger = logging.getLogger(__name__)


def _item_out(item: Item, search_date: date) -> ItemOut:
    entry = item.availability_on(search_date)
    return ItemOut(
        id=item.id,
        name=item.name,
        category=item.category,
        rating=item.rating,
        total_bookings=item.total_bookings,
        location=item.location.as_lon_lat() if item.location else None,
        free_slots=entry.free_slots if entry else 0,
        total_slots=entry.total_slots if entry else 0,
    )


def _recommendation(scored: ScoredItem, search_date: date) -> RecommendationItem:
    return RecommendationItem(
        item=_item_out(scored.item, search_date),
        score=round(scored.score, 4),
        breakdown=ScoreBreakdown(**{k: round(v, 4) for k, v in scored.breakdown.items()}),
    )


def _search_event(
    user_id: str,
    params: SearchParams,
    response: RecommendationResponse,
    start_time: float,
    cache_hit: bool,
) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "date": params.date.isoformat(),
        "limit": params.limit,
        "total_candidates": response.total_candidates,
        "results_returned": len(response.recommendations),
        "categories": [r.item.category for r in response.recommendations],
        "response_time_ms": round((time.perf_counter() - start_time) * 1000, 3),
        "cache_hit": cache_hit,
    }


def get_recommendations(
    user_id: str,
    params: SearchParams,
    repository: InMemoryRepository | None = None,
    scorer: Scorer | None = None,
    config: ServiceConfig = DEFAULT_SERVICE_CONFIG,
    use_cache: bool = True,
) -> RecommendationResponse:
    """Rank the candidate items for one user on one date.

    Candidates come from the repository, pre-filtered by availability when
    ``config.exclude_fully_booked`` is set. Failures are logged, recorded as
    a ``search_failed`` event and re-raised to the caller.

    Responses are cached for ``config.cache_ttl`` seconds. A caller that
    supplies its own repository or scorer always gets a fresh ranking.
    """
    start_time = time.perf_counter()

    use_cache = use_cache and repository is None and scorer is None
    scorer = scorer or Scorer(max_workers=config.max_workers)

    request_dict = {
        "user_id": user_id,
        "date": params.date.isoformat(),
        "limit": params.limit,
        "exclude_fully_booked": config.exclude_fully_booked,
        "scoring": asdict(scorer.config),
    }
    if use_cache:
        cached = cache_get(request_dict)
        if cached is not None:
            record_event("search", _search_event(user_id, params, cached, start_time, True))
            return cached

    repository = repository or get_repository()

    try:
        user = repository.fetch_user(user_id)
        candidates = repository.fetch_candidate_items(
            params.date, exclude_fully_booked=config.exclude_fully_booked,
        )
        ranked = scorer.rank_scored(candidates, user, params)
    except Exception as exc:
        logger.warning(
            "Ranking failed for user %s on %s", user_id, params.date, exc_info=True,
        )
        record_event("search_failed", {
            "user_id": user_id,
            "date": params.date.isoformat(),
            "error": type(exc).__name__,
        })
        raise

    logger.debug(
        "Ranked %d of %d candidates for user %s on %s",
        len(ranked), len(candidates), user_id, params.date,
    )

    response = RecommendationResponse(
        user_id=user_id,
        date=params.date,
        limit=params.limit,
        total_candidates=len(candidates),
        recommendations=[_recommendation(s, params.date) for s in ranked],
    )

    if use_cache:
        cache_set(request_dict, response, ttl=config.cache_ttl)
    record_event("search", _search_event(user_id, params, response, start_time, False))
    return response
