"""Tests for IntentDispatcher."""

from datetime import datetime, timezone
from typing import List
from unittest.mock import AsyncMock

import pytest

from nutricoach.application.conversation.intent_dispatcher import IntentDispatcher, resolve_meal
from nutricoach.application.conversation.session import ConversationSession
from nutricoach.domain.conversation.actions import AIAction, IntentType, MealSuggestion
from nutricoach.domain.extraction.suggestions import MealSuggestionService
from nutricoach.domain.nutrition.models import MealRecord, MealType, NewMealRecord
from nutricoach.domain.shared.errors import (
    MealNotFoundError,
    PersistenceError,
    ServiceUnavailableError,
)
from nutricoach.infrastructure.persistence.in_memory_record_store import (
    InMemoryMealRecordStore,
)

EVENING = datetime(2024, 5, 1, 19, 0, tzinfo=timezone.utc)


def _action(intent: IntentType, **data: object) -> AIAction:
    return AIAction(type=intent, data=data, confidence=0.9)


async def _log(
    store: InMemoryMealRecordStore,
    session: ConversationSession,
    name: str,
    meal_type: MealType,
    calories: float,
) -> MealRecord:
    record = await store.create_meal_record(
        NewMealRecord(
            user_id="user_123",
            meal_name=name,
            meal_type=meal_type,
            calories=calories,
            protein=10,
            confidence=0.9,
        )
    )
    session.app_state.append_meal(record)
    return record


@pytest.fixture
def suggestion_service() -> AsyncMock:
    service = AsyncMock(spec=MealSuggestionService)
    service.generate.return_value = []
    return service


@pytest.fixture
def dispatcher(
    suggestion_service: AsyncMock, record_store: InMemoryMealRecordStore
) -> IntentDispatcher:
    return IntentDispatcher(suggestion_service, record_store, clock=lambda: EVENING)


# ═══════════════════════════════════════════════════════════
# MEAL RESOLUTION
# ═══════════════════════════════════════════════════════════


class TestResolveMeal:
    """Test edit/delete target resolution."""

    def _records(self) -> List[MealRecord]:
        return [
            MealRecord(
                id=str(i),
                user_id="user_123",
                meal_name=name,
                meal_type=meal_type,
                confidence=0.9,
                logged_at=EVENING,
                created_at=EVENING,
            )
            for i, (name, meal_type) in enumerate(
                [
                    ("oatmeal", MealType.BREAKFAST),
                    ("chicken salad", MealType.LUNCH),
                    ("salmon", MealType.DINNER),
                ]
            )
        ]

    def test_by_name(self) -> None:
        """Should match a name contained in the identifier."""
        assert resolve_meal(self._records(), "the chicken salad").meal_name == "chicken salad"

    def test_by_partial_name(self) -> None:
        """Should match an identifier contained in the name."""
        assert resolve_meal(self._records(), "salad").meal_name == "chicken salad"

    def test_by_meal_type(self) -> None:
        """Should fall back to the meal type."""
        assert resolve_meal(self._records(), "my breakfast").meal_name == "oatmeal"

    def test_single_meal_fallback(self) -> None:
        """Should pick the only meal when nothing else matches."""
        only = self._records()[:1]
        assert resolve_meal(only, "") is only[0]

    def test_not_found(self) -> None:
        """Should raise MealNotFoundError when ambiguous."""
        with pytest.raises(MealNotFoundError):
            resolve_meal(self._records(), "pizza")


# ═══════════════════════════════════════════════════════════
# DISPATCH
# ═══════════════════════════════════════════════════════════


class TestIntentDispatcher:
    """Test intent dispatch."""

    @pytest.mark.asyncio
    async def test_update_goals(
        self, dispatcher: IntentDispatcher, session: ConversationSession
    ) -> None:
        """Should merge positive numeric goals through set_goals."""
        # ACT
        messages = await dispatcher.dispatch(
            session,
            [_action(IntentType.UPDATE_GOALS, calories=1800, protein=140, carbs=-5, fat="lots")],
        )

        # ASSERT
        goals = session.app_state.goals
        assert (goals.calories, goals.protein, goals.carbs, goals.fat) == (1800, 140, 250, 65)
        assert len(messages) == 1
        assert "Calories: 1800 kcal" in messages[0]

    @pytest.mark.asyncio
    async def test_update_goals_without_values_is_silent(
        self, dispatcher: IntentDispatcher, session: ConversationSession
    ) -> None:
        """Should not touch goals or reply when no usable value was given."""
        messages = await dispatcher.dispatch(session, [_action(IntentType.UPDATE_GOALS)])

        assert messages == []
        assert session.app_state.goals.calories == 2000

    @pytest.mark.asyncio
    async def test_ignored_intents(
        self, dispatcher: IntentDispatcher, session: ConversationSession
    ) -> None:
        """Should skip log_meal and plan_meal."""
        messages = await dispatcher.dispatch(
            session,
            [_action(IntentType.LOG_MEAL, food="eggs"), _action(IntentType.PLAN_MEAL)],
        )

        assert messages == []

    @pytest.mark.asyncio
    async def test_suggest_meals(
        self,
        dispatcher: IntentDispatcher,
        session: ConversationSession,
        suggestion_service: AsyncMock,
    ) -> None:
        """Should request suggestions for the named meal type."""
        suggestion_service.generate.return_value = [MealSuggestion(name="Greek yogurt bowl")]

        messages = await dispatcher.dispatch(
            session,
            [_action(IntentType.SUGGEST_MEALS, meal_type="snack", preferences=["high protein"])],
        )

        args = suggestion_service.generate.call_args.args
        assert args[0] == "snack"
        assert args[3] == ["high protein"]
        assert "1. Greek yogurt bowl" in messages[0]

    @pytest.mark.asyncio
    async def test_suggest_meals_infers_meal_type(
        self,
        dispatcher: IntentDispatcher,
        session: ConversationSession,
        suggestion_service: AsyncMock,
    ) -> None:
        """Should infer the meal type from the clock when none is given."""
        await dispatcher.dispatch(session, [_action(IntentType.SUGGEST_MEALS)])

        assert suggestion_service.generate.call_args.args[0] == "dinner"

    @pytest.mark.asyncio
    async def test_failing_intent_does_not_abort_siblings(
        self,
        dispatcher: IntentDispatcher,
        session: ConversationSession,
        suggestion_service: AsyncMock,
    ) -> None:
        """Should log a failed intent and keep dispatching."""
        suggestion_service.generate.side_effect = ServiceUnavailableError("down")

        messages = await dispatcher.dispatch(
            session,
            [
                _action(IntentType.SUGGEST_MEALS, meal_type="lunch"),
                _action(IntentType.SHOW_PROGRESS),
            ],
        )

        assert len(messages) == 1
        assert messages[0].startswith("Here's your progress today")

    @pytest.mark.asyncio
    async def test_show_progress(
        self,
        dispatcher: IntentDispatcher,
        session: ConversationSession,
        record_store: InMemoryMealRecordStore,
    ) -> None:
        """Should render progress from the app state."""
        await _log(record_store, session, "pasta", MealType.LUNCH, 1000)

        messages = await dispatcher.dispatch(session, [_action(IntentType.SHOW_PROGRESS)])

        assert "1000 kcal / 2000 kcal (50%)" in messages[0]

    @pytest.mark.asyncio
    async def test_calculate_remaining_single_macro(
        self,
        dispatcher: IntentDispatcher,
        session: ConversationSession,
        record_store: InMemoryMealRecordStore,
    ) -> None:
        """Should report only the requested macro."""
        await _log(record_store, session, "pasta", MealType.LUNCH, 1000)

        messages = await dispatcher.dispatch(
            session, [_action(IntentType.CALCULATE_REMAINING, macro="protein")]
        )

        assert "• Protein: 140g" in messages[0]
        assert "Calories" not in messages[0]

    @pytest.mark.asyncio
    async def test_calculate_remaining_all(
        self, dispatcher: IntentDispatcher, session: ConversationSession
    ) -> None:
        """Should report every macro for "all" or unknown values."""
        messages = await dispatcher.dispatch(
            session, [_action(IntentType.CALCULATE_REMAINING, macro="all")]
        )

        for label in ("Calories", "Protein", "Carbs", "Fat"):
            assert label in messages[0]

    @pytest.mark.asyncio
    async def test_edit_meal(
        self,
        dispatcher: IntentDispatcher,
        session: ConversationSession,
        record_store: InMemoryMealRecordStore,
    ) -> None:
        """Should prompt for changes to the matched meal."""
        await _log(record_store, session, "chicken salad", MealType.LUNCH, 450)

        messages = await dispatcher.dispatch(
            session,
            [_action(IntentType.EDIT_MEAL, meal_identifier="salad", changes="no croutons")],
        )

        assert "chicken salad" in messages[0]
        assert "no croutons" in messages[0]

    @pytest.mark.asyncio
    async def test_delete_meal(
        self,
        dispatcher: IntentDispatcher,
        session: ConversationSession,
        record_store: InMemoryMealRecordStore,
    ) -> None:
        """Should delete from the store and drop the meal from today's list."""
        await _log(record_store, session, "oatmeal", MealType.BREAKFAST, 300)
        await _log(record_store, session, "chicken salad", MealType.LUNCH, 450)

        messages = await dispatcher.dispatch(
            session, [_action(IntentType.DELETE_MEAL, meal_identifier="chicken salad")]
        )

        assert "removed chicken salad" in messages[0]
        assert [m.meal_name for m in session.app_state.todays_meals] == ["oatmeal"]
        assert session.app_state.daily_totals.calories == 300
        assert record_store.count() == 1

    @pytest.mark.asyncio
    async def test_delete_meal_not_found(
        self,
        dispatcher: IntentDispatcher,
        session: ConversationSession,
        record_store: InMemoryMealRecordStore,
    ) -> None:
        """Should reply conversationally when nothing matches."""
        await _log(record_store, session, "oatmeal", MealType.BREAKFAST, 300)
        await _log(record_store, session, "salmon", MealType.DINNER, 500)

        messages = await dispatcher.dispatch(
            session, [_action(IntentType.DELETE_MEAL, meal_identifier="pizza")]
        )

        assert '"pizza"' in messages[0]
        assert record_store.count() == 2

    @pytest.mark.asyncio
    async def test_delete_meal_store_failure(
        self,
        suggestion_service: AsyncMock,
        session: ConversationSession,
        record_store: InMemoryMealRecordStore,
    ) -> None:
        """Should keep the meal and apologise when the store fails."""
        record = await _log(record_store, session, "oatmeal", MealType.BREAKFAST, 300)
        failing_store = AsyncMock(spec=InMemoryMealRecordStore)
        failing_store.delete_meal_record.side_effect = PersistenceError("503")
        dispatcher = IntentDispatcher(suggestion_service, failing_store)

        messages = await dispatcher.dispatch(
            session, [_action(IntentType.DELETE_MEAL, meal_identifier="oatmeal")]
        )

        failing_store.delete_meal_record.assert_awaited_once_with(record.id)
        assert "couldn't remove oatmeal" in messages[0]
        assert len(session.app_state.todays_meals) == 1
