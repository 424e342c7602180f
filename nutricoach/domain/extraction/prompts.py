"""
Prompts for the text-completion service.

Static instructions live in the system prompts; per-turn content goes
into the user message.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from nutricoach.domain.nutrition.models import DailyTotals, NutritionGoals

# ═══════════════════════════════════════════════════════════
# SYSTEM PROMPTS
# ═══════════════════════════════════════════════════════════

ASSISTANT_SYSTEM_PROMPT = """You are NutriCoach, a friendly nutrition coach inside a meal-tracking app.

SCOPE: food, meals, macros, meal planning, grocery and dietary needs only.

STYLE:
- Conversational, warm, encouraging; never shame food choices
- Simple language, concise answers
- When the user tells you what they ate, acknowledge it and estimate
  nutrition from typical portions
- If amounts are missing, ask how much they had
- Do not claim a meal is logged; the app asks the user to confirm first
"""

MEAL_EXTRACTION_SYSTEM_PROMPT = """You are a nutrition data extraction specialist. Extract structured meal and macro information from conversations.

TASK: Parse the user's message and AI response to extract meal logging data in JSON format.

RULES:
- Only extract if the conversation involves actual food items being logged/tracked
- Estimate realistic macro values based on typical portions
- Return null if no meal logging is detected
- Be conservative with confidence scores

RESPONSE FORMAT (JSON only):
{
  "items": [
    {
      "name": "string",
      "quantity": "string",
      "unit": "string",
      "macros": {
        "calories": number,
        "protein": number,
        "carbs": number,
        "fat": number
      }
    }
  ],
  "totalMacros": {
    "calories": number,
    "protein": number,
    "carbs": number,
    "fat": number
  },
  "mealType": "breakfast|lunch|dinner|snack",
  "eatingTime": "time of day if the user said it (e.g. 8am), else null",
  "confidence": 0.0-1.0
}

Return only valid JSON or null if no meal data detected."""

ACTION_EXTRACTION_SYSTEM_PROMPT = """You are an AI action parser. Analyze conversations between a user and NutriCoach to detect specific actions that should be performed in the nutrition app.

DETECT THESE ACTIONS:

1. LOG_MEAL: When user mentions eating/drinking something specific
   {"type": "log_meal", "data": {"food": "food name", "quantity": "amount", "meal_type": "breakfast|lunch|dinner|snack"}, "confidence": 0.0-1.0}

2. UPDATE_GOALS: When discussing changing nutrition targets
   {"type": "update_goals", "data": {"calories": number, "protein": number, "carbs": number, "fat": number}, "confidence": 0.0-1.0}

3. SUGGEST_MEALS: When asking for meal recommendations
   {"type": "suggest_meals", "data": {"meal_type": "breakfast|lunch|dinner|snack", "preferences": ["dietary preferences"], "calorie_range": [min, max]}, "confidence": 0.0-1.0}

4. SHOW_PROGRESS: When asking about current nutrition status
   {"type": "show_progress", "data": {}, "confidence": 0.0-1.0}

5. EDIT_MEAL: When user wants to modify a logged meal
   {"type": "edit_meal", "data": {"meal_identifier": "description of which meal to edit", "changes": "what to change about it"}, "confidence": 0.0-1.0}

6. DELETE_MEAL: When user wants to remove a logged meal
   {"type": "delete_meal", "data": {"meal_identifier": "description of which meal to delete"}, "confidence": 0.0-1.0}

7. CALCULATE_REMAINING: When asking how much more they need to reach goals
   {"type": "calculate_remaining", "data": {"macro": "protein|calories|carbs|fat|all"}, "confidence": 0.0-1.0}

RULES:
- Only return actions with confidence > 0.7
- Return empty array if no clear actions detected
- Be conservative - better to miss an action than create wrong one

Return valid JSON array or empty array []"""

SUGGESTION_SYSTEM_PROMPT = """You are a nutrition-focused meal suggestion expert. Generate 3 meal suggestions that fit the user's remaining macro needs.

RESPONSE FORMAT (JSON only):
[
  {
    "name": "Meal Name",
    "calories": 450,
    "protein": 25,
    "carbs": 35,
    "fat": 18,
    "description": "Brief appealing description",
    "ingredients": ["ingredient1", "ingredient2", "ingredient3"]
  }
]

Return exactly 3 suggestions in valid JSON format."""


# ═══════════════════════════════════════════════════════════
# MESSAGE BUILDERS
# ═══════════════════════════════════════════════════════════


def build_conversation_context(user_message: str, ai_response: str) -> str:
    """User/assistant exchange as shown to the extractors."""
    return f'User: "{user_message}"\nAI: "{ai_response}"'


def build_assistant_messages(
    utterance: str,
    goals: NutritionGoals,
    totals: DailyTotals,
    history: Iterable[Dict[str, str]] = (),
) -> List[Dict[str, str]]:
    """Build the message array for the free-form assistant reply.

    The system message carries today's goals and progress; recent turns
    follow in order, then the new utterance.

    Args:
        utterance: New user message
        goals: Current nutrition goals
        totals: Today's totals
        history: Recent role-tagged turns, oldest first

    Returns:
        List of message dicts
    """
    context = (
        f"\n\nTODAY'S GOALS: {goals.calories:.0f} kcal, {goals.protein:.0f}g protein, "
        f"{goals.carbs:.0f}g carbs, {goals.fat:.0f}g fat"
        f"\nTODAY'S PROGRESS: {totals.calories:.0f} kcal, {totals.protein:.0f}g protein, "
        f"{totals.carbs:.0f}g carbs, {totals.fat:.0f}g fat"
    )
    return [
        {"role": "system", "content": ASSISTANT_SYSTEM_PROMPT + context},
        *history,
        {"role": "user", "content": utterance},
    ]


def build_meal_extraction_messages(user_message: str, ai_response: str) -> List[Dict[str, str]]:
    """Build the message array for meal extraction."""
    return [
        {"role": "system", "content": MEAL_EXTRACTION_SYSTEM_PROMPT},
        {"role": "user", "content": build_conversation_context(user_message, ai_response)},
    ]


def build_action_extraction_messages(user_message: str, ai_response: str) -> List[Dict[str, str]]:
    """Build the message array for action extraction."""
    return [
        {"role": "system", "content": ACTION_EXTRACTION_SYSTEM_PROMPT},
        {"role": "user", "content": build_conversation_context(user_message, ai_response)},
    ]


def build_suggestion_messages(
    meal_type: str,
    remaining: NutritionGoals,
    preferences: Optional[Sequence[str]] = None,
) -> List[Dict[str, str]]:
    """Build the message array for meal suggestions.

    Args:
        meal_type: Meal slot to suggest for
        remaining: Remaining macros (goal minus current, floored at 0)
        preferences: Free-text dietary preferences
    """
    user_message = (
        f"Suggest realistic, practical meals for {meal_type}.\n"
        f"Target the remaining macros: {remaining.calories:.0f} calories, "
        f"{remaining.protein:.0f}g protein, {remaining.carbs:.0f}g carbs, "
        f"{remaining.fat:.0f}g fat\n"
        f"Consider preferences: {', '.join(preferences or []) or 'none specified'}\n"
        "Each suggestion should be achievable and tasty."
    )
    return [
        {"role": "system", "content": SUGGESTION_SYSTEM_PROMPT},
        {"role": "user", "content": user_message},
    ]
