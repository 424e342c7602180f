"""
Scope classifier.

Keyword/pattern heuristic deciding whether an utterance is about food and
nutrition, and whether it is clearly enough off-topic to short-circuit
the turn with a canned redirection. Redirection is conservative:
ambiguous utterances fall through to normal handling.
"""

from __future__ import annotations

import re
from typing import List, Pattern, Tuple

from pydantic import BaseModel, ConfigDict, Field

# ═══════════════════════════════════════════════════════════
# VOCABULARY
# ═══════════════════════════════════════════════════════════

NUTRITION_KEYWORDS: Tuple[str, ...] = (
    # Core nutrition
    "nutrition", "macro", "macros", "micro", "micronutrient",
    "calorie", "calories", "protein", "carb", "carbs", "carbohydrate",
    "fat", "fiber", "sugar", "sodium", "cholesterol",
    # Food & eating
    "food", "meal", "eat", "eating", "ate",
    "breakfast", "lunch", "dinner", "snack",
    "recipe", "ingredient", "cook", "cooking", "bake", "baking",
    "prep", "portion",
    # Planning & shopping
    "plan", "planning", "meal plan", "grocery", "shopping", "pantry",
    "kitchen", "menu", "weekly meals",
    # Dietary needs
    "diet", "dietary", "pcos", "hashimoto", "hashimotos",
    "gluten", "lactose", "intolerance", "allergy", "allergic", "celiac",
    "keto", "paleo", "vegan", "vegetarian",
    # Health & wellness, nutrition side only
    "vitamin", "mineral", "supplement", "hydration", "water", "intake",
    "deficiency", "balanced", "healthy eating", "metabolism",
    # Food places & quality
    "restaurant", "dining", "takeout", "delivery",
    "fresh", "organic", "processed", "whole food",
)

NON_NUTRITION_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    (
        "fitness",
        re.compile(
            r"\b(workout|exercise|gym|fitness|training|cardio|weights|running"
            r"|jogging|yoga|pilates|sports|athletic)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "medical",
        re.compile(
            r"\b(doctor|medicine|medication|surgery|hospital|treatment|therapy"
            r"|diagnosis|symptoms|disease|illness)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "technology",
        re.compile(
            r"\b(computer|software|app|technology|programming|coding|internet"
            r"|website|phone|device)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "lifestyle",
        re.compile(
            r"\b(travel|vacation|work|job|career|relationship|dating|family"
            r"|school|education|hobby)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "entertainment",
        re.compile(
            r"\b(movie|music|tv|show|game|entertainment|celebrity|news"
            r"|politics|weather)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "chitchat",
        re.compile(
            r"\b(how are you|what's up|tell me about|what do you think|opinion"
            r"|advice|help with)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "shopping",
        re.compile(
            r"\b(clothes|clothing|shoes|electronics|car|house|furniture)\b",
            re.IGNORECASE,
        ),
    ),
)

FOOD_CONTEXT_PATTERN = re.compile(
    r"\b(had|have|having|ate|eating|drink|drinking|taste|tasty|delicious|hungry|full)\b",
    re.IGNORECASE,
)
MEAL_TIMING_PATTERN = re.compile(
    r"\b(morning|afternoon|evening|today|yesterday|tonight|earlier|later|before|after)\b",
    re.IGNORECASE,
)

FOOD_CONTEXT_BOOST = 2
MEAL_TIMING_BOOST = 1
MAX_CONFIDENCE = 0.95
REDIRECTION_THRESHOLD = 0.8

_KEYWORD_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(r"\b" + re.escape(keyword) + r"s?\b", re.IGNORECASE)
    for keyword in NUTRITION_KEYWORDS
)

REDIRECTION_RESPONSES: Tuple[str, ...] = (
    "I'm your dedicated nutrition coach! 🥗 I'm here specifically to help with "
    "your food, meals, and nutrition goals. What can I help you with regarding "
    "your eating today?",
    "Hey there! I focus exclusively on nutrition and meal planning 🍎 Let's talk "
    "about your food journey - what's on your plate today?",
    "I'm all about that nutrition life! 💪 I'm designed to help with meals, "
    "macros, and healthy eating. What would you like to know about your food "
    "choices?",
    "My expertise is in nutrition and meal planning! 🥑 I'd love to help you "
    "with anything food-related - what are you curious about regarding your "
    "eating habits?",
    "I'm your nutrition-focused buddy! 🌟 Let's keep our chat centered on food, "
    "meals, and your health goals. What nutritional topic can I help you with?",
)


# ═══════════════════════════════════════════════════════════
# RESULT
# ═══════════════════════════════════════════════════════════


class ScopeAnalysis(BaseModel):
    """
    Scope verdict for one utterance.

    Attributes:
        is_nutrition_related: At least one nutrition signal and no off-topic signal
        confidence: Nutrition confidence, capped at 0.95
        detected_topics: Off-topic families that matched ("fitness", ...)
        redirection_needed: Off-topic with high confidence; end the turn
        non_nutrition_confidence: Off-topic share against keyword hits, capped at 0.95
    """

    model_config = ConfigDict(frozen=True)

    is_nutrition_related: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    detected_topics: List[str] = Field(default_factory=list)
    redirection_needed: bool
    non_nutrition_confidence: float = Field(0.0, ge=0.0, le=1.0)


# ═══════════════════════════════════════════════════════════
# CLASSIFIER
# ═══════════════════════════════════════════════════════════


def analyze_message_scope(message: str) -> ScopeAnalysis:
    """
    Classify an utterance as on-topic (nutrition) or off-topic.

    Nutrition score counts keyword hits, plus 2 for an eating/drinking
    verb and 1 for a meal-timing word. Off-topic score counts the pattern
    families that match. Redirection compares off-topic families with
    nutrition keyword hits only (the verb and timing boosts are left
    out): the off-topic share must exceed 0.8.

    Args:
        message: Raw utterance

    Returns:
        ScopeAnalysis (never raises)

    Example:
        >>> analyze_message_scope("what's a good workout routine?").redirection_needed
        True
        >>> analyze_message_scope("I ate oatmeal for breakfast").is_nutrition_related
        True
    """
    text = message or ""

    keyword_hits = sum(1 for pattern in _KEYWORD_PATTERNS if pattern.search(text))
    nutrition_score = keyword_hits
    if FOOD_CONTEXT_PATTERN.search(text):
        nutrition_score += FOOD_CONTEXT_BOOST
    if MEAL_TIMING_PATTERN.search(text):
        nutrition_score += MEAL_TIMING_BOOST

    detected_topics = [name for name, pattern in NON_NUTRITION_PATTERNS if pattern.search(text)]
    non_nutrition_score = len(detected_topics)

    is_nutrition_related = nutrition_score > 0 and non_nutrition_score == 0
    confidence = min(
        nutrition_score / (nutrition_score + non_nutrition_score + 1),
        MAX_CONFIDENCE,
    )

    if non_nutrition_score:
        non_nutrition_confidence = min(
            non_nutrition_score / (non_nutrition_score + keyword_hits),
            MAX_CONFIDENCE,
        )
    else:
        non_nutrition_confidence = 0.0

    redirection_needed = (
        not is_nutrition_related and non_nutrition_confidence > REDIRECTION_THRESHOLD
    )

    return ScopeAnalysis(
        is_nutrition_related=is_nutrition_related,
        confidence=confidence,
        detected_topics=detected_topics,
        redirection_needed=redirection_needed,
        non_nutrition_confidence=non_nutrition_confidence,
    )


def get_redirection_response(index: int) -> str:
    """Canned redirection reply; callers rotate ``index`` per session."""
    return REDIRECTION_RESPONSES[index % len(REDIRECTION_RESPONSES)]


def is_clearly_nutrition_related(message: str) -> bool:
    """True when the utterance is on-topic with confidence above 0.7."""
    analysis = analyze_message_scope(message)
    return analysis.is_nutrition_related and analysis.confidence > 0.7
