"""Intents detected in a conversation turn, and meal suggestions."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IntentType(str, Enum):
    """Higher-level intents the action extractor can report."""

    LOG_MEAL = "log_meal"
    UPDATE_GOALS = "update_goals"
    SUGGEST_MEALS = "suggest_meals"
    SHOW_PROGRESS = "show_progress"
    PLAN_MEAL = "plan_meal"
    EDIT_MEAL = "edit_meal"
    DELETE_MEAL = "delete_meal"
    CALCULATE_REMAINING = "calculate_remaining"


# Meal logging goes through the pending-action path, never through dispatch.
IGNORED_INTENTS = frozenset({IntentType.LOG_MEAL, IntentType.PLAN_MEAL})


class AIAction(BaseModel):
    """
    One detected intent with its payload.

    Payload shapes by type:
        update_goals: {"calories", "protein", "carbs", "fat"} (numbers, any subset)
        suggest_meals: {"meal_type", "preferences": [...], "calorie_range": [min, max]}
        show_progress: {}
        edit_meal: {"meal_identifier", "changes"}
        delete_meal: {"meal_identifier"}
        calculate_remaining: {"macro": "protein|calories|carbs|fat|all"}
    """

    model_config = ConfigDict(frozen=True)

    type: IntentType
    data: Dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(..., ge=0.0, le=1.0)

    @field_validator("data", mode="before")
    @classmethod
    def null_data_is_empty(cls, v: Any) -> Any:
        """Extractors emit null for empty payloads."""
        return {} if v is None else v


class MealSuggestion(BaseModel):
    """A suggested meal fitting the remaining macros."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    calories: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)
    description: str = ""
    ingredients: List[str] = Field(default_factory=list)
