from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Iterable

from pydantic import TypeAdapter, ValidationError

from .config import DEFAULT_SERVICE_CONFIG
from .errors import MalformedItemError, MissingUserError, RetrievalError
from .models import Item, User, to_date_key

logger = logging.getLogger(__name__)

USERS_FILENAME = "users.json"
ITEMS_FILENAME = "items.json"

_USERS_ADAPTER = TypeAdapter(list[User])
_ITEMS_ADAPTER = TypeAdapter(list[Item])


class InMemoryRepository:
    """Read-only store of users and items, kept in storage order."""

    def __init__(self, users: Iterable[User], items: Iterable[Item]) -> None:
        self._users: dict[str, User] = {}
        for user in users:
            self._users.setdefault(user.id, user)
        self._items: list[Item] = list(items)

    @classmethod
    def from_directory(cls, data_dir: Path) -> "InMemoryRepository":
        users_path = data_dir / USERS_FILENAME
        items_path = data_dir / ITEMS_FILENAME
        try:
            users_raw = users_path.read_bytes()
            items_raw = items_path.read_bytes()
        except OSError as exc:
            raise RetrievalError(f"Cannot read data files in {data_dir}") from exc

        try:
            users = _USERS_ADAPTER.validate_json(users_raw)
        except ValidationError as exc:
            raise RetrievalError(f"Invalid user records in {users_path}") from exc
        try:
            items = _ITEMS_ADAPTER.validate_json(items_raw)
        except ValidationError as exc:
            raise MalformedItemError(f"Invalid item records in {items_path}") from exc

        logger.info("Loaded %d users and %d items from %s", len(users), len(items), data_dir)
        return cls(users, items)

    def fetch_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise MissingUserError(user_id)
        return user

    def fetch_candidate_items(
        self,
        search_date: date,
        exclude_fully_booked: bool = False,
    ) -> list[Item]:
        """Return items in storage order.

        With *exclude_fully_booked*, items without at least one free slot on
        *search_date* are left out.
        """
        if not exclude_fully_booked:
            return list(self._items)
        key = to_date_key(search_date)
        candidates: list[Item] = []
        for item in self._items:
            entry = item.availability_on(key)
            if entry is not None and entry.free_slots > 0:
                candidates.append(item)
        return candidates

    def categories(self) -> list[str]:
        return sorted({item.category for item in self._items})

    def dates(self) -> list[date]:
        return sorted({entry.date for item in self._items for entry in item.availability})


_repository: InMemoryRepository | None = None


def get_repository() -> InMemoryRepository:
    """Return the shared repository, loading it on first call."""
    global _repository
    if _repository is None:
        _repository = InMemoryRepository.from_directory(DEFAULT_SERVICE_CONFIG.data_dir)
    return _repository


def reset_repository() -> None:
    global _repository
    _repository = None
