"""
Deterministic multi-factor scoring of bookable items.

Each candidate gets five sub-scores in [0, 1]:

* **preference**   – the user's stored weight for the item's category
* **popularity**   – total bookings against a fixed ceiling
* **rating**       – average rating out of 5
* **location**     – haversine distance from the user, fading to 0 at the
  configured maximum distance
* **availability** – fraction of free slots on the searched date

The final score is the weighted sum of the five, using the weights held by
``ScoringConfig``. Scoring reads nothing but its arguments, so items can be
scored in any order or in parallel.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Sequence

import numpy as np

from .config import DEFAULT_SCORING_CONFIG, ScoringConfig
from .models import Item, ScoredItem, SearchParams, User, to_date_key


def haversine_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    radius_km: float = 6371.0,
) -> float:
    """Great-circle distance in kilometres. Latitude comes first."""
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    dphi = np.radians(lat2 - lat1)
    dlmb = np.radians(lon2 - lon1)
    a = np.sin(dphi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlmb / 2) ** 2
    # rounding can push a past 1 for near-antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return float(radius_km * c)


class Scorer:
    def __init__(
        self,
        config: ScoringConfig = DEFAULT_SCORING_CONFIG,
        max_workers: int = 1,
    ) -> None:
        self.config = config
        self.max_workers = max(1, max_workers)

    # ── Sub-scores ──────────────────────────────────────────────────────

    def preference_score(self, item: Item, user: User) -> float:
        if not user.preferences:
            return self.config.neutral_preference
        for pref in user.preferences:
            if pref.category == item.category:
                return pref.weight
        return self.config.unmatched_preference

    def popularity_score(self, item: Item) -> float:
        return min(item.total_bookings / self.config.max_bookings, 1.0)

    def rating_score(self, item: Item) -> float:
        return item.rating / self.config.max_rating

    def location_score(self, item: Item, user: User) -> float:
        if user.location is None or item.location is None:
            return self.config.neutral_location
        distance = haversine_km(
            user.location.latitude,
            user.location.longitude,
            item.location.latitude,
            item.location.longitude,
            radius_km=self.config.earth_radius_km,
        )
        return max(0.0, 1.0 - distance / self.config.max_distance_km)

    def availability_score(self, item: Item, search_date: date) -> float:
        entry = item.availability_on(to_date_key(search_date))
        # A day with no slots counts as unavailable.
        if entry is None or entry.total_slots == 0:
            return 0.0
        return entry.free_slots / entry.total_slots

    # ── Aggregation ─────────────────────────────────────────────────────

    def breakdown(self, item: Item, user: User, params: SearchParams) -> dict[str, float]:
        return {
            "preference": self.preference_score(item, user),
            "popularity": self.popularity_score(item),
            "rating": self.rating_score(item),
            "location": self.location_score(item, user),
            "availability": self.availability_score(item, params.date),
        }

    def _weighted(self, components: dict[str, float]) -> float:
        weights = self.config.weights.as_dict()
        return sum(weights[key] * components[key] for key in weights)

    def score(self, item: Item, user: User, params: SearchParams) -> float:
        """Weighted sum of the five sub-scores for one item."""
        return self._weighted(self.breakdown(item, user, params))

    def _score_one(self, item: Item, user: User, params: SearchParams) -> ScoredItem:
        components = self.breakdown(item, user, params)
        return ScoredItem(item=item, score=self._weighted(components), breakdown=components)

    def rank_scored(
        self,
        items: Sequence[Item],
        user: User,
        params: SearchParams,
    ) -> list[ScoredItem]:
        """Score every candidate and return the best ``params.limit`` of them.

        The sort is stable, so equal scores keep their candidate order.
        """
        if self.max_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                scored = list(pool.map(lambda it: self._score_one(it, user, params), items))
        else:
            scored = [self._score_one(it, user, params) for it in items]

        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[: params.limit]

    def rank(self, items: Sequence[Item], user: User, params: SearchParams) -> list[Item]:
        return [s.item for s in self.rank_scored(items, user, params)]
