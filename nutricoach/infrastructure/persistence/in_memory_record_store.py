"""In-memory meal record store.

Implements the IMealRecordStore port with a dictionary, for tests and
local use. Data is lost on process restart.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

import structlog

from nutricoach.domain.nutrition.models import MealRecord, NewMealRecord
from nutricoach.domain.shared.errors import PersistenceError
from nutricoach.domain.shared.value_objects import UserId

logger = structlog.get_logger(__name__)


class InMemoryMealRecordStore:
    """
    Dictionary-backed implementation of IMealRecordStore.

    Records are frozen models, so they are stored and returned as-is.

    Example:
        >>> store = InMemoryMealRecordStore(user_id="user_123")
        >>> record = await store.create_meal_record(new_record)
        >>> records = await store.list_meal_records("user_123")
    """

    def __init__(self, user_id: Optional[str] = None) -> None:
        """
        Initialize store with empty storage.

        Args:
            user_id: Identity reported by get_current_user (anonymous if None)
        """
        self._storage: Dict[str, MealRecord] = {}
        self._user_id = user_id

    async def create_meal_record(self, record: NewMealRecord) -> MealRecord:
        """Store a record, assigning id and creation time."""
        stored = MealRecord(
            **record.model_dump(),
            id=str(uuid4()),
            created_at=datetime.now(timezone.utc),
        )
        self._storage[stored.id] = stored
        logger.debug("Meal record created", record_id=stored.id, meal_name=stored.meal_name)
        return stored

    async def delete_meal_record(self, record_id: str) -> None:
        """
        Delete a record by id.

        Raises:
            PersistenceError: If no such record exists
        """
        if record_id not in self._storage:
            raise PersistenceError(f"Meal record {record_id} not found")
        del self._storage[record_id]
        logger.debug("Meal record deleted", record_id=record_id)

    async def list_meal_records(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[MealRecord]:
        """List a user's records in [start, end), newest logged first."""
        records = [
            r
            for r in self._storage.values()
            if r.user_id == user_id
            and (start is None or r.logged_at >= start)
            and (end is None or r.logged_at < end)
        ]
        records.sort(key=lambda r: r.logged_at, reverse=True)
        return records

    async def get_current_user(self) -> UserId:
        """Configured identity, or the anonymous fallback."""
        if self._user_id:
            return UserId.from_string(self._user_id)
        return UserId.anonymous()

    def count(self) -> int:
        """Number of stored records."""
        return len(self._storage)

    def clear(self) -> None:
        """Clear all storage (for testing)."""
        self._storage.clear()
