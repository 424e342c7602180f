"""
User-visible conversation messages.

Every outcome of a turn, including failures, reaches the user as one of
these conversational strings, never as a raw error payload.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from nutricoach.domain.conversation.actions import MealSuggestion
from nutricoach.domain.nutrition.models import (
    CandidateMeal,
    DailyTotals,
    MacroProgress,
    MealRecord,
    MealType,
    NutritionGoals,
)

GENERIC_RETRY_MESSAGE = (
    "Sorry, I'm having trouble connecting right now. Please try again in a moment. 🙏"
)

ORPHAN_CONFIRMATION_MESSAGE = (
    "I'm not sure what you'd like me to add yet! 🤔 Could you tell me what you ate, "
    'with amounts? For example: "2 scrambled eggs and 1 slice of toast for breakfast".'
)

REJECTION_MESSAGE = (
    "No problem, I won't add that. 👍 Tell me what you actually had and I'll set it up again."
)

DETAIL_RETRY_MESSAGE = (
    "Thanks! I couldn't quite put that together. Could you describe the whole meal "
    "again with amounts (e.g. 6 oz chicken, 1 cup rice)?"
)

PERSISTENCE_FAILURE_MESSAGE = (
    "Sorry, I couldn't save that to your nutrition tracker just now. 😕 "
    'Reply "yes" to try again.'
)

_MACRO_UNITS = {"calories": " kcal", "protein": "g", "carbs": "g", "fat": "g"}
_MACRO_LABELS = {"calories": "Calories", "protein": "Protein", "carbs": "Carbs", "fat": "Fat"}
MACROS = ("calories", "protein", "carbs", "fat")

# Phrases showing the assistant's own reply already asked the follow-up.
DETAIL_QUESTION_MARKERS = ("how many", "what type", "what size", "how much")
CONFIRMATION_MARKERS = ("should i add", "tracker", "confirm")


def asks_for_details(reply: str) -> bool:
    """True when the assistant reply already asks for amounts."""
    lowered = reply.lower()
    return any(marker in lowered for marker in DETAIL_QUESTION_MARKERS)


def asks_for_confirmation(reply: str) -> bool:
    """True when the assistant reply already asks to log the meal."""
    lowered = reply.lower()
    return any(marker in lowered for marker in CONFIRMATION_MARKERS)


def _amount(value: float, macro: str) -> str:
    return f"{value:.0f}{_MACRO_UNITS[macro]}"


def render_commit_success(meal: CandidateMeal, meal_type: MealType) -> str:
    """Success summary after all items of a meal were logged."""
    totals = meal.total_macros
    return (
        f"Added to your {meal_type.value}! ✅ That's {totals.calories:.0f} calories "
        f"and {totals.protein:.0f}g protein logged. Keep it up! 💪"
    )


def render_goal_update(goals: NutritionGoals) -> str:
    """Confirmation of updated goals."""
    return (
        "Got it! I've updated your daily goals 🎯\n"
        f"• Calories: {_amount(goals.calories, 'calories')}\n"
        f"• Protein: {_amount(goals.protein, 'protein')}\n"
        f"• Carbs: {_amount(goals.carbs, 'carbs')}\n"
        f"• Fat: {_amount(goals.fat, 'fat')}"
    )


def render_suggestions(meal_type: MealType, suggestions: Sequence[MealSuggestion]) -> str:
    """Numbered list of up to three meal suggestions."""
    lines: List[str] = [f"Here are some {meal_type.value} ideas that fit your remaining macros 🍽️"]
    for number, suggestion in enumerate(suggestions[:3], start=1):
        lines.append(
            f"\n{number}. {suggestion.name} ({suggestion.calories:.0f} kcal, "
            f"{suggestion.protein:.0f}g protein, {suggestion.carbs:.0f}g carbs, "
            f"{suggestion.fat:.0f}g fat)"
        )
        if suggestion.description:
            lines.append(f"   {suggestion.description}")
        if suggestion.ingredients:
            lines.append(f"   Ingredients: {', '.join(suggestion.ingredients)}")
    return "\n".join(lines)


def render_progress(progress: Dict[str, MacroProgress]) -> str:
    """Current / target / percentage per macro."""
    lines = ["Here's your progress today 📊"]
    for macro in MACROS:
        p = progress[macro]
        lines.append(
            f"• {_MACRO_LABELS[macro]}: {_amount(p.current, macro)} / "
            f"{_amount(p.target, macro)} ({p.percentage:.0f}%)"
        )
    return "\n".join(lines)


def render_remaining(macros: Iterable[str], totals: DailyTotals, goals: NutritionGoals) -> str:
    """Goal minus actual per requested macro, with overshoot spelled out."""
    lines = ["Here's what you have left for today:"]
    for macro in macros:
        remaining = getattr(goals, macro) - getattr(totals, macro)
        if remaining >= 0:
            lines.append(f"• {_MACRO_LABELS[macro]}: {_amount(remaining, macro)}")
        else:
            lines.append(f"• {_MACRO_LABELS[macro]}: over by {_amount(-remaining, macro)}")
    return "\n".join(lines)


def render_edit_prompt(record: MealRecord, changes: str = "") -> str:
    """Ask what to change about a logged meal."""
    message = (
        f"I found your {record.meal_name} from {record.meal_type.value} "
        f"({record.calories:.0f} kcal). ✏️"
    )
    if changes:
        return f"{message} You'd like to change: {changes}. Can you confirm the new details?"
    return f"{message} What would you like to change about it?"


def render_delete_success(record: MealRecord) -> str:
    """Confirmation of a deleted meal."""
    return f"Done! I've removed {record.meal_name} from today's log. 🗑️"


def render_delete_failure(record: MealRecord) -> str:
    """Retryable apology for a failed delete."""
    return f"Sorry, I couldn't remove {record.meal_name} right now. Please try again in a moment."


def render_meal_not_found(identifier: str) -> str:
    """No logged meal matched an edit/delete request."""
    if identifier:
        return f"I couldn't find a meal matching \"{identifier}\" in today's log. 🤔"
    return "I couldn't tell which meal you meant. Which one should I look at?"
