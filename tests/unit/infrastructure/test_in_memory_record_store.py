"""Tests for InMemoryMealRecordStore."""

from datetime import datetime, timedelta, timezone

import pytest

from nutricoach.domain.nutrition.models import MealType, NewMealRecord
from nutricoach.domain.ports import IMealRecordStore
from nutricoach.domain.shared.errors import PersistenceError
from nutricoach.infrastructure.persistence.in_memory_record_store import (
    InMemoryMealRecordStore,
)

BASE = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def _new_record(name: str, hours: int = 0, user_id: str = "user_123") -> NewMealRecord:
    return NewMealRecord(
        user_id=user_id,
        meal_name=name,
        meal_type=MealType.BREAKFAST,
        calories=100,
        protein=5,
        confidence=0.9,
        logged_at=BASE + timedelta(hours=hours),
    )


class TestInMemoryMealRecordStore:
    """Test in-memory record store."""

    def test_implements_port(self) -> None:
        """Should satisfy IMealRecordStore."""
        assert isinstance(InMemoryMealRecordStore(), IMealRecordStore)

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_created_at(self) -> None:
        """Should assign an id and a creation time."""
        store = InMemoryMealRecordStore()

        record = await store.create_meal_record(_new_record("eggs"))

        assert record.id
        assert record.created_at.tzinfo is not None
        assert record.meal_name == "eggs"
        assert record.logged_at == BASE
        assert store.count() == 1

    @pytest.mark.asyncio
    async def test_ids_are_unique(self) -> None:
        """Should never reuse an id."""
        store = InMemoryMealRecordStore()

        first = await store.create_meal_record(_new_record("eggs"))
        second = await store.create_meal_record(_new_record("eggs"))

        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_list_filters_and_orders(self) -> None:
        """Should filter by user and [start, end), newest first."""
        store = InMemoryMealRecordStore()
        await store.create_meal_record(_new_record("early", hours=0))
        await store.create_meal_record(_new_record("mid", hours=4))
        await store.create_meal_record(_new_record("late", hours=10))
        await store.create_meal_record(_new_record("other", hours=4, user_id="user_456"))

        everything = await store.list_meal_records("user_123")
        window = await store.list_meal_records(
            "user_123", start=BASE + timedelta(hours=4), end=BASE + timedelta(hours=10)
        )

        assert [r.meal_name for r in everything] == ["late", "mid", "early"]
        assert [r.meal_name for r in window] == ["mid"]

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        """Should delete by id and fail on unknown ids."""
        store = InMemoryMealRecordStore()
        record = await store.create_meal_record(_new_record("eggs"))

        await store.delete_meal_record(record.id)

        assert store.count() == 0
        with pytest.raises(PersistenceError, match="not found"):
            await store.delete_meal_record(record.id)

    @pytest.mark.asyncio
    async def test_current_user(self) -> None:
        """Should report the configured identity or anonymous."""
        assert (await InMemoryMealRecordStore(user_id="user_123").get_current_user()).value == (
            "user_123"
        )
        assert (await InMemoryMealRecordStore().get_current_user()).is_anonymous()

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        """Should drop every record."""
        store = InMemoryMealRecordStore()
        await store.create_meal_record(_new_record("eggs"))

        store.clear()

        assert store.count() == 0
