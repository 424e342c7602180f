"""
Ports (Interfaces) for conversation collaborators.

Abstract interfaces for the services a conversation turn depends on:
the text-completion service, the meal record store, the local app state
and the channel that delivers supplementary messages.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Protocol, runtime_checkable

from nutricoach.domain.nutrition.models import (
    DailyTotals,
    MealRecord,
    NewMealRecord,
    NutritionGoals,
)
from nutricoach.domain.shared.value_objects import UserId


@runtime_checkable
class ITextCompletionClient(Protocol):
    """
    Port for the external text-completion service.

    Used for the free-form assistant reply and for strict-JSON
    extraction. No schema is enforced server-side; callers validate.
    """

    async def complete_text(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> str:
        """
        Generate a single completion.

        Args:
            messages: Role-tagged messages ({"role": ..., "content": ...})
            max_tokens: Maximum output tokens
            temperature: Sampling temperature

        Returns:
            Completion text

        Raises:
            ExternalServiceError: Network/HTTP failure or empty completion
        """
        ...


@runtime_checkable
class IMealRecordStore(Protocol):
    """
    Port for the backend meal record store.

    Every operation may fail (network, auth); adapters raise
    PersistenceError.
    """

    async def create_meal_record(self, record: NewMealRecord) -> MealRecord:
        """
        Persist a meal record.

        Returns:
            Stored record with assigned id and creation timestamp

        Raises:
            PersistenceError: If the store rejects or cannot be reached
        """
        ...

    async def delete_meal_record(self, record_id: str) -> None:
        """
        Delete a meal record by id.

        Raises:
            PersistenceError: If the delete fails
        """
        ...

    async def list_meal_records(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[MealRecord]:
        """
        List a user's records, newest logged first.

        Args:
            user_id: Owner
            start: Inclusive lower bound on logged_at
            end: Exclusive upper bound on logged_at
        """
        ...

    async def get_current_user(self) -> UserId:
        """Signed-in identity, or the anonymous fallback."""
        ...


@runtime_checkable
class IAppState(Protocol):
    """
    Port for the local app state snapshot.

    Derived daily totals are recomputed from the full meal list on every
    mutation.
    """

    @property
    def todays_meals(self) -> List[MealRecord]:
        """Meals logged today, in append order."""
        ...

    @property
    def daily_totals(self) -> DailyTotals:
        """Totals over ``todays_meals``."""
        ...

    @property
    def goals(self) -> NutritionGoals:
        """Current nutrition goals."""
        ...

    def append_meal(self, record: MealRecord) -> None:
        """Add a logged meal and recompute totals."""
        ...

    def set_goals(self, goals: NutritionGoals) -> None:
        """Replace the nutrition goals."""
        ...

    def set_todays_meals(self, records: List[MealRecord]) -> None:
        """Replace today's meal list (session start, after a delete) and recompute totals."""
        ...


@runtime_checkable
class IMessageSink(Protocol):
    """Port for delivering assistant messages outside the turn's reply."""

    async def send(self, message: str) -> None:
        """Deliver one assistant message to the user."""
        ...
