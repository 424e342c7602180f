"""Meal suggestions fitted to the remaining macros of the day."""

from __future__ import annotations

from typing import List, Optional, Sequence

import structlog
from pydantic import ValidationError as PydanticValidationError

from nutricoach.domain.conversation.actions import MealSuggestion
from nutricoach.domain.extraction.parsing import parse_json_list
from nutricoach.domain.extraction.prompts import build_suggestion_messages
from nutricoach.domain.nutrition.models import DailyTotals, NutritionGoals
from nutricoach.domain.ports import ITextCompletionClient
from nutricoach.domain.shared.errors import ExtractionError

logger = structlog.get_logger(__name__)

MAX_SUGGESTIONS = 3
SUGGESTION_MAX_TOKENS = 800
SUGGESTION_TEMPERATURE = 0.7


def remaining_macros(current: DailyTotals, target: NutritionGoals) -> NutritionGoals:
    """Goal minus current per macro, floored at zero."""
    return NutritionGoals(
        calories=max(0.0, target.calories - current.calories),
        protein=max(0.0, target.protein - current.protein),
        carbs=max(0.0, target.carbs - current.carbs),
        fat=max(0.0, target.fat - current.fat),
    )


class MealSuggestionService:
    """Generate up to three meal suggestions via the text-completion service."""

    def __init__(self, client: ITextCompletionClient) -> None:
        self._client = client

    async def generate(
        self,
        meal_type: str,
        current: DailyTotals,
        target: NutritionGoals,
        preferences: Optional[Sequence[str]] = None,
    ) -> List[MealSuggestion]:
        """
        Suggest meals for a meal slot.

        Args:
            meal_type: breakfast, lunch, dinner or snack
            current: Today's totals so far
            target: Daily goals
            preferences: Free-text dietary preferences

        Returns:
            At most three suggestions; empty when output is unusable

        Raises:
            ExternalServiceError: If the completion call fails
        """
        remaining = remaining_macros(current, target)
        messages = build_suggestion_messages(meal_type, remaining, preferences)
        content = await self._client.complete_text(
            messages,
            max_tokens=SUGGESTION_MAX_TOKENS,
            temperature=SUGGESTION_TEMPERATURE,
        )

        try:
            raw_suggestions = parse_json_list(content, root_keys=("suggestions", "meals"))
        except ExtractionError as e:
            logger.info("Meal suggestions discarded", reason=str(e))
            return []

        suggestions: List[MealSuggestion] = []
        for raw in raw_suggestions:
            try:
                suggestions.append(MealSuggestion.model_validate(raw))
            except PydanticValidationError:
                continue
            if len(suggestions) == MAX_SUGGESTIONS:
                break

        return suggestions
