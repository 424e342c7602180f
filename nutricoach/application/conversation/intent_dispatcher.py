"""
Intent dispatch.

Runs the intents detected in a fresh turn (goal updates, suggestions,
progress, edit/delete, remaining macros). Each intent is isolated: a
failure is logged and never aborts its siblings or the turn.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from nutricoach.application.conversation import responses
from nutricoach.application.conversation.session import ConversationSession
from nutricoach.domain.conversation.actions import IGNORED_INTENTS, AIAction, IntentType
from nutricoach.domain.extraction.suggestions import MealSuggestionService
from nutricoach.domain.nutrition.models import (
    MealRecord,
    MealType,
    NutritionGoals,
    calculate_progress,
)
from nutricoach.domain.nutrition.timing import infer_meal_type
from nutricoach.domain.ports import IMealRecordStore
from nutricoach.domain.shared.errors import MealNotFoundError, PersistenceError

logger = structlog.get_logger(__name__)

GOAL_FIELDS = ("calories", "protein", "carbs", "fat")


def resolve_meal(meals: Sequence[MealRecord], identifier: str) -> MealRecord:
    """
    Find the logged meal an edit/delete request refers to.

    Tries, in order: name substring match, meal-type substring match,
    and the only meal logged today. The most recent match wins.

    Raises:
        MealNotFoundError: If nothing matches
    """
    needle = (identifier or "").strip().lower()

    if needle:
        for meal in reversed(meals):
            name = meal.meal_name.lower()
            if name in needle or needle in name:
                return meal

        for meal in reversed(meals):
            if meal.meal_type.value in needle:
                return meal

    if len(meals) == 1:
        return meals[0]

    raise MealNotFoundError(f"No meal matching '{identifier}' logged today")


def _positive_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value > 0 else None


class IntentDispatcher:
    """
    Dispatch detected intents against the session's state.

    Example:
        >>> dispatcher = IntentDispatcher(suggestions, record_store)
        >>> messages = await dispatcher.dispatch(session, actions)
    """

    def __init__(
        self,
        suggestion_service: MealSuggestionService,
        record_store: IMealRecordStore,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ) -> None:
        self._suggestions = suggestion_service
        self._store = record_store
        self._clock = clock

    async def dispatch(self, session: ConversationSession, actions: Sequence[AIAction]) -> List[str]:
        """
        Run each intent in order.

        Returns:
            Messages to show, one per intent that produced one
        """
        messages: List[str] = []

        for action in actions:
            if action.type in IGNORED_INTENTS:
                continue

            try:
                message = await self._handle(session, action)
            except Exception as e:
                logger.warning(
                    "Intent dispatch failed",
                    intent=action.type.value,
                    error=str(e),
                )
                continue

            if message:
                messages.append(message)

        return messages

    async def _handle(self, session: ConversationSession, action: AIAction) -> Optional[str]:
        data = action.data
        if action.type == IntentType.UPDATE_GOALS:
            return self._update_goals(session, data)
        if action.type == IntentType.SUGGEST_MEALS:
            return await self._suggest_meals(session, data)
        if action.type == IntentType.SHOW_PROGRESS:
            state = session.app_state
            return responses.render_progress(calculate_progress(state.daily_totals, state.goals))
        if action.type == IntentType.EDIT_MEAL:
            return self._edit_meal(session, data)
        if action.type == IntentType.DELETE_MEAL:
            return await self._delete_meal(session, data)
        if action.type == IntentType.CALCULATE_REMAINING:
            return self._calculate_remaining(session, data)
        return None

    # ═══════════════════════════════════════════════════════════
    # HANDLERS
    # ═══════════════════════════════════════════════════════════

    def _update_goals(self, session: ConversationSession, data: Dict[str, Any]) -> Optional[str]:
        updates = {}
        for field in GOAL_FIELDS:
            value = _positive_number(data.get(field))
            if value is not None:
                updates[field] = value

        if not updates:
            return None

        goals = NutritionGoals(**{**session.app_state.goals.model_dump(), **updates})
        session.app_state.set_goals(goals)
        return responses.render_goal_update(goals)

    async def _suggest_meals(
        self, session: ConversationSession, data: Dict[str, Any]
    ) -> Optional[str]:
        meal_type = MealType.parse(data.get("meal_type")) or infer_meal_type(self._clock())
        preferences = [str(p) for p in data.get("preferences") or [] if p]

        suggestions = await self._suggestions.generate(
            meal_type.value,
            session.app_state.daily_totals,
            session.app_state.goals,
            preferences,
        )
        if not suggestions:
            return None
        return responses.render_suggestions(meal_type, suggestions)

    def _edit_meal(self, session: ConversationSession, data: Dict[str, Any]) -> str:
        identifier = str(data.get("meal_identifier") or "")
        try:
            record = resolve_meal(session.app_state.todays_meals, identifier)
        except MealNotFoundError:
            return responses.render_meal_not_found(identifier)
        return responses.render_edit_prompt(record, str(data.get("changes") or ""))

    async def _delete_meal(self, session: ConversationSession, data: Dict[str, Any]) -> str:
        identifier = str(data.get("meal_identifier") or "")
        meals = session.app_state.todays_meals
        try:
            record = resolve_meal(meals, identifier)
        except MealNotFoundError:
            return responses.render_meal_not_found(identifier)

        try:
            await self._store.delete_meal_record(record.id)
        except PersistenceError as e:
            logger.warning("Meal delete failed", record_id=record.id, error=str(e))
            return responses.render_delete_failure(record)

        session.app_state.set_todays_meals([m for m in meals if m.id != record.id])
        logger.info("Meal deleted", record_id=record.id, meal_name=record.meal_name)
        return responses.render_delete_success(record)

    def _calculate_remaining(self, session: ConversationSession, data: Dict[str, Any]) -> str:
        macro = str(data.get("macro") or "all").lower()
        macros = (macro,) if macro in GOAL_FIELDS else GOAL_FIELDS
        state = session.app_state
        return responses.render_remaining(macros, state.daily_totals, state.goals)
