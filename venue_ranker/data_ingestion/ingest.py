from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, List

import pandas as pd

from ..recommendations.models import Item, User, to_date_key
from .config import DEFAULT_INGESTION_CONFIG, IngestionConfig

logger = logging.getLogger(__name__)

ITEM_COLUMNS: List[str] = ["id", "name", "category", "rating", "total_bookings", "longitude", "latitude"]
SLOT_COLUMNS: List[str] = ["item_id", "date", "time", "is_booked"]
USER_COLUMNS: List[str] = ["id", "name", "longitude", "latitude"]
PREFERENCE_COLUMNS: List[str] = ["user_id", "category", "weight"]
BOOKING_COLUMNS: List[str] = ["user_id", "booking_id"]

_TRUE_VALUES = {"1", "true", "yes", "y", "t", "booked"}


def _to_float(value: Any) -> float | None:
    if value is None or pd.isna(value):
        return None
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


def _normalize_rating(rating: Any) -> float:
    if rating is None or pd.isna(rating):
        return 0.0
    raw = str(rating).strip()
    # Handle "X/5" format (e.g. "4.1/5")
    if "/" in raw:
        raw = raw.split("/")[0].strip()
    value = _to_float(raw)
    if value is None:
        return 0.0
    # Clamp to [0, 5]
    return max(0.0, min(5.0, value))


def _normalize_weight(weight: Any) -> float | None:
    value = _to_float(weight)
    if value is None:
        return None
    return max(0.0, min(1.0, value))


def _normalize_bookings(value: Any) -> int:
    number = _to_float(value)
    if number is None or number < 0:
        return 0
    return int(number)


def _normalize_location(longitude: Any, latitude: Any) -> list[float] | None:
    lon, lat = _to_float(longitude), _to_float(latitude)
    if lon is None or lat is None:
        return None
    if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
        return None
    return [lon, lat]


def _normalize_date(value: Any) -> date | None:
    if value is None or pd.isna(value):
        return None
    try:
        return to_date_key(str(value))
    except ValueError:
        return None


def _parse_bool(value: Any) -> bool:
    if value is None or pd.isna(value):
        return False
    return str(value).strip().lower() in _TRUE_VALUES


def _clean_text(value: Any) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _read_csv(path: Path, columns: List[str], required: bool) -> pd.DataFrame:
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Raw export missing: {path}")
        return pd.DataFrame(columns=columns)
    df = pd.read_csv(path, dtype=str)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name} is missing columns: {missing}")
    return df[columns]


def _build_availability(slots: pd.DataFrame) -> dict[str, list[dict[str, Any]]]:
    slots = slots.copy()
    slots["item_id"] = slots["item_id"].apply(_clean_text)
    slots["time"] = slots["time"].apply(_clean_text)
    slots["date"] = slots["date"].apply(_normalize_date)
    slots = slots[(slots["item_id"] != "") & (slots["time"] != "") & slots["date"].notna()]

    availability: dict[str, list[dict[str, Any]]] = {}
    for (item_id, day), group in slots.groupby(["item_id", "date"], sort=True):
        availability.setdefault(item_id, []).append({
            "date": day.isoformat(),
            "slots": [
                {"time": t, "is_booked": _parse_bool(b)}
                for t, b in zip(group["time"], group["is_booked"])
            ],
        })
    return availability


def _build_items(items: pd.DataFrame, slots: pd.DataFrame) -> list[dict[str, Any]]:
    availability = _build_availability(slots)
    records: list[dict[str, Any]] = []
    seen: set[str] = set()
    for row in items.itertuples(index=False):
        item_id = _clean_text(row.id)
        category = _clean_text(row.category)
        if not item_id or not category:
            logger.warning("Skipping item row without id or category: %r", row)
            continue
        if item_id in seen:
            logger.warning("Skipping duplicate item id %s", item_id)
            continue
        seen.add(item_id)
        record = {
            "id": item_id,
            "name": _clean_text(row.name),
            "category": category,
            "rating": _normalize_rating(row.rating),
            "total_bookings": _normalize_bookings(row.total_bookings),
            "location": _normalize_location(row.longitude, row.latitude),
            "availability": availability.get(item_id, []),
        }
        Item.model_validate(record)
        records.append(record)
    return records


def _build_users(
    users: pd.DataFrame,
    preferences: pd.DataFrame,
    bookings: pd.DataFrame,
) -> list[dict[str, Any]]:
    preferences = preferences.copy()
    preferences["user_id"] = preferences["user_id"].apply(_clean_text)
    preferences["category"] = preferences["category"].apply(_clean_text)
    preferences["weight"] = preferences["weight"].apply(_normalize_weight)
    preferences = preferences[
        (preferences["user_id"] != "")
        & (preferences["category"] != "")
        & preferences["weight"].notna()
    ]
    # One weight per category; the first row wins.
    preferences = preferences.drop_duplicates(subset=["user_id", "category"], keep="first")

    prefs_by_user: dict[str, list[dict[str, Any]]] = {}
    for row in preferences.itertuples(index=False):
        prefs_by_user.setdefault(row.user_id, []).append(
            {"category": row.category, "weight": float(row.weight)}
        )

    history_by_user: dict[str, list[str]] = {}
    for row in bookings.itertuples(index=False):
        user_id, booking_id = _clean_text(row.user_id), _clean_text(row.booking_id)
        if user_id and booking_id:
            history_by_user.setdefault(user_id, []).append(booking_id)

    records: list[dict[str, Any]] = []
    seen: set[str] = set()
    for row in users.itertuples(index=False):
        user_id = _clean_text(row.id)
        if not user_id or user_id in seen:
            continue
        seen.add(user_id)
        record = {
            "id": user_id,
            "name": _clean_text(row.name) or None,
            "preferences": prefs_by_user.get(user_id, []),
            "location": _normalize_location(row.longitude, row.latitude),
            "booking_history": history_by_user.get(user_id, []),
        }
        User.model_validate(record)
        records.append(record)
    return records


def _write_json(path: Path, records: list[dict[str, Any]]) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(records, handle, ensure_ascii=False, indent=2)


def run_ingestion(config: IngestionConfig = DEFAULT_INGESTION_CONFIG) -> tuple[Path, Path]:
    """
    Convert the raw CSV exports into processed user and item records.

    Steps:
    - Read items, slots, users, preferences and bookings exports.
    - Clamp ratings and preference weights into range, drop invalid
      coordinates and reduce slot dates to calendar dates.
    - Persist users.json and items.json for the retrieval layer.
    """
    config.processed_data_dir.mkdir(parents=True, exist_ok=True)

    items = _read_csv(config.raw_path(config.items_filename), ITEM_COLUMNS, required=True)
    slots = _read_csv(config.raw_path(config.slots_filename), SLOT_COLUMNS, required=False)
    users = _read_csv(config.raw_path(config.users_filename), USER_COLUMNS, required=True)
    preferences = _read_csv(
        config.raw_path(config.preferences_filename), PREFERENCE_COLUMNS, required=False,
    )
    bookings = _read_csv(config.raw_path(config.bookings_filename), BOOKING_COLUMNS, required=False)

    item_records = _build_items(items, slots)
    user_records = _build_users(users, preferences, bookings)

    _write_json(config.processed_items_path, item_records)
    _write_json(config.processed_users_path, user_records)
    logger.info(
        "Ingested %d items and %d users into %s",
        len(item_records), len(user_records), config.processed_data_dir,
    )
    return config.processed_users_path, config.processed_items_path


if __name__ == "__main__":
    users_path, items_path = run_ingestion()
    print(f"Ingestion complete. Processed data saved to: {users_path}, {items_path}")
