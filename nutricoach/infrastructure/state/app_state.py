"""Local app state: today's meals, derived totals and nutrition goals."""

from __future__ import annotations

from typing import Iterable, List, Optional

import structlog

from nutricoach.domain.nutrition.models import (
    DailyTotals,
    MealRecord,
    NutritionGoals,
    calculate_daily_totals,
)

logger = structlog.get_logger(__name__)


class InMemoryAppState:
    """
    Implementation of IAppState.

    Every mutation recomputes ``daily_totals`` from the full meal list.

    Example:
        >>> state = InMemoryAppState()
        >>> state.append_meal(record)
        >>> state.daily_totals.calories
        140.0
    """

    def __init__(
        self,
        goals: Optional[NutritionGoals] = None,
        meals: Iterable[MealRecord] = (),
    ) -> None:
        self._goals = goals or NutritionGoals()
        self._meals: List[MealRecord] = list(meals)
        self._totals = calculate_daily_totals(self._meals)

    @property
    def todays_meals(self) -> List[MealRecord]:
        """Meals logged today, in append order (copy)."""
        return list(self._meals)

    @property
    def daily_totals(self) -> DailyTotals:
        """Totals over today's meals."""
        return self._totals

    @property
    def goals(self) -> NutritionGoals:
        """Current nutrition goals."""
        return self._goals

    def append_meal(self, record: MealRecord) -> None:
        """Add a logged meal and recompute totals."""
        self._meals.append(record)
        self._totals = calculate_daily_totals(self._meals)

    def set_goals(self, goals: NutritionGoals) -> None:
        """Replace the nutrition goals."""
        self._goals = goals
        logger.info("Nutrition goals updated", **goals.model_dump())

    def set_todays_meals(self, records: List[MealRecord]) -> None:
        """Replace today's meals and recompute totals."""
        self._meals = list(records)
        self._totals = calculate_daily_totals(self._meals)
