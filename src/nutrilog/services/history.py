"""Per-user rolling log of recent parses."""

from collections import deque
from datetime import datetime
from typing import Any

from nutrilog.models.food import FoodItem
from nutrilog.utils.dates import utc_now


class UserHistoryLog:
    """
    Bounded, append-only history keyed by user id.

    Each user keeps only the last ``max_entries`` entries; older ones are
    evicted as new ones arrive. Held in process memory.
    """

    def __init__(self, max_entries: int = 10):
        self.max_entries = max(int(max_entries), 1)
        self._entries: dict[str, deque[dict[str, Any]]] = {}

    def record(
        self,
        user_id: str | None,
        kind: str,
        items: list[FoodItem],
        at: datetime | None = None,
    ) -> None:
        """Append a parse to the user's history. Calls without a user are ignored."""
        if not user_id:
            return
        entries = self._entries.setdefault(user_id, deque(maxlen=self.max_entries))
        entries.append(
            {
                "type": kind,
                "items": [item.model_dump(by_alias=True) for item in items],
                "at": at or utc_now(),
            }
        )

    def recent(self, user_id: str) -> list[dict[str, Any]]:
        """The user's entries, oldest first."""
        return list(self._entries.get(user_id, ()))

    def clear(self, user_id: str | None = None) -> None:
        if user_id is None:
            self._entries.clear()
        else:
            self._entries.pop(user_id, None)
