"""Meal timing helpers: meal-type inference and eating-time parsing."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from nutricoach.domain.nutrition.models import MealType

_TIME_RE = re.compile(
    r"\b(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<meridiem>a\.?m\.?|p\.?m\.?)?(?![\w:])",
    re.IGNORECASE,
)


def infer_meal_type(now: datetime) -> MealType:
    """
    Guess the meal slot from the clock.

    Before 11:00 breakfast, before 18:00 lunch, otherwise dinner.
    """
    if now.hour < 11:
        return MealType.BREAKFAST
    if now.hour < 18:
        return MealType.LUNCH
    return MealType.DINNER


def parse_eating_time(text: Optional[str], now: datetime) -> Optional[datetime]:
    """
    Parse a free-text eating time into a datetime on ``now``'s day.

    Accepts "8am", "8:30 pm", "14:00". A bare number without minutes or
    am/pm ("2") is too ambiguous and is rejected.

    Args:
        text: Time text as carried by a candidate meal
        now: Reference time (date and tzinfo are taken from it)

    Returns:
        Datetime, or None when nothing parseable was found

    Example:
        >>> now = datetime(2024, 5, 1, 12, 0)
        >>> parse_eating_time("8am", now)
        datetime.datetime(2024, 5, 1, 8, 0)
    """
    if not text:
        return None

    for match in _TIME_RE.finditer(text):
        hour = int(match.group("hour"))
        minute = int(match.group("minute") or 0)
        meridiem = (match.group("meridiem") or "").replace(".", "").lower()

        if not meridiem and match.group("minute") is None:
            continue

        if meridiem:
            if not 1 <= hour <= 12:
                continue
            if meridiem == "pm" and hour != 12:
                hour += 12
            elif meridiem == "am" and hour == 12:
                hour = 0

        if hour > 23 or minute > 59:
            continue

        return now.replace(hour=hour, minute=minute, second=0, microsecond=0)

    return None
