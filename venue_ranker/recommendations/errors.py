"""Exceptions raised while retrieving and ranking items."""


class RankingError(Exception):
    """Base error for ranking failures."""


class MissingUserError(RankingError):
    """Raised when a user identifier does not resolve to a stored user."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class MalformedItemError(RankingError):
    """Raised when a stored item record cannot be loaded as an Item."""


class RetrievalError(RankingError):
    """Raised when the retrieval collaborator fails to produce records."""
