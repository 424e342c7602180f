"""
Meal detail analyzer.

Decides whether the food items of a candidate meal come with enough
quantitative detail (count, weight, volume) to log accurately, and
produces follow-up questions for the ones that don't.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from nutricoach.domain.nutrition.models import DetailGap

# ═══════════════════════════════════════════════════════════
# FOOD CATEGORIES
# ═══════════════════════════════════════════════════════════

# Ordered: the first matching category wins.
QUANTITY_PATTERNS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "eggs": {
        "keywords": ("egg", "eggs", "scrambled", "fried", "boiled", "poached"),
        "questions": ("How many eggs?", "What size eggs (large, medium, small)?"),
    },
    "bread": {
        "keywords": ("toast", "bread", "slice", "slices", "bagel", "muffin"),
        "questions": ("How many slices?", "What type of bread?", "What size (regular, thick cut)?"),
    },
    "meat": {
        "keywords": ("chicken", "beef", "pork", "turkey", "salmon", "fish", "steak"),
        "questions": ("How many ounces/grams?", "What cut/type?", "How was it prepared?"),
    },
    "dairy": {
        "keywords": ("milk", "yogurt", "cheese", "cream"),
        "questions": ("How much (cups/oz)?", "What type (whole, skim, etc.)?"),
    },
    "vegetables": {
        "keywords": ("vegetables", "veggies", "salad", "broccoli", "carrots", "spinach"),
        "questions": ("How much (cups/servings)?", "Raw or cooked?", "What vegetables specifically?"),
    },
    "grains": {
        "keywords": ("rice", "pasta", "quinoa", "oats", "cereal"),
        "questions": ("How much (cups cooked)?", "What type?"),
    },
    "nuts": {
        "keywords": ("nuts", "almonds", "peanuts", "walnuts", "seeds"),
        "questions": ("How much (oz/handful/tablespoons)?", "What type of nuts?"),
    },
    "fruits": {
        "keywords": ("fruit", "apple", "banana", "orange", "berries", "grapes"),
        "questions": ("How many pieces?", "What size?", "What type of fruit?"),
    },
    "beverages": {
        "keywords": ("coffee", "juice", "soda", "smoothie", "water", "tea"),
        "questions": ("How much (oz/cups)?", "What type?", "Any additions (milk, sugar)?"),
    },
    "snacks": {
        "keywords": ("chips", "crackers", "cookies", "chocolate", "candy"),
        "questions": ("How much (oz/pieces/servings)?", "What brand/type?"),
    },
}

_SIZE = r"(?:(?:small|medium|large|extra\s*large|jumbo)\s+)?"

QUANTITY_INDICATORS: Tuple[Pattern[str], ...] = (
    re.compile(
        r"\b\d+\s*(oz|ounces|grams?|g|lbs?|pounds?|cups?|tbsp|tablespoons?|tsp|teaspoons?)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(one|two|three|four|five|six|seven|eight|nine|ten|\d+)\s*" + _SIZE
        + r"(pieces?|slices?|eggs?|cups?)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(small|medium|large|extra\s*large)\s*(serving|portion|size)\b", re.IGNORECASE),
    re.compile(r"\b(handful|pinch|dash|splash)\b", re.IGNORECASE),
    re.compile(r"\b\d+\/\d+\s*(cup|oz)\b", re.IGNORECASE),
)

_WEIGHT_UNIT = re.compile(r"(oz|ounce|gram|pound|lb)", re.IGNORECASE)
_BREAD_COUNT = re.compile(r"(slice|piece)", re.IGNORECASE)
_EGG_COUNT = re.compile(
    r"\b(one|two|three|four|five|six|\d+)\s*" + _SIZE + r"eggs?\b", re.IGNORECASE
)
_ANY_NUMBER = re.compile(r"\b\d+")
_QUANTITY_WORD = re.compile(
    r"\b(one|two|three|four|five|six|small|medium|large|cup|oz|slice|piece)\b",
    re.IGNORECASE,
)

MAX_QUESTIONS = 4
QUESTIONS_PER_GAP = 2
EATING_TIME_QUESTION = "What time did you eat this?"


class MealDetailAnalysis(BaseModel):
    """Detail sufficiency verdict for a set of food items."""

    model_config = ConfigDict(frozen=True)

    has_all_details: bool
    missing_details: List[DetailGap] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)


# ═══════════════════════════════════════════════════════════
# ANALYSIS
# ═══════════════════════════════════════════════════════════


def _match_category(item: str, message: str) -> Optional[str]:
    """First category naming the item, else first category named in the message."""
    for text in (item, message):
        for category, table in QUANTITY_PATTERNS.items():
            if any(keyword in text for keyword in table["keywords"]):
                return category
    return None


def has_quantity_indicator(text: str) -> bool:
    """True when the text carries an explicit amount ("2 eggs", "6 oz", "handful")."""
    return any(pattern.search(text) for pattern in QUANTITY_INDICATORS)


def _missing_for(category: str, message: str) -> List[str]:
    missing: List[str] = []

    if not has_quantity_indicator(message):
        missing.append("quantity")

    if category == "meat" and not _WEIGHT_UNIT.search(message):
        missing.append("weight")
    elif category == "bread" and not _BREAD_COUNT.search(message):
        missing.append("count")
    elif category == "eggs" and not _EGG_COUNT.search(message):
        missing.append("count")

    return missing


def analyze_meal_details(food_items: Sequence[str], message: str) -> MealDetailAnalysis:
    """
    Check each food item for missing quantitative detail.

    Every item is matched against a fixed category table (first match
    wins). A matched item with no amount anywhere in the utterance gets a
    "quantity" gap; meat also needs a weight unit, bread a slice/piece
    count and eggs an explicit count.

    Args:
        food_items: Item names from the candidate meal
        message: Utterance the items were extracted from

    Returns:
        MealDetailAnalysis; ``has_all_details`` iff the gap list is empty

    Example:
        >>> analyze_meal_details(["eggs"], "I had eggs for breakfast").has_all_details
        False
        >>> analyze_meal_details(["eggs"], "I had 2 large eggs").has_all_details
        True
    """
    lowered = (message or "").lower()
    gaps: List[DetailGap] = []

    for item in food_items:
        category = _match_category(item.lower(), lowered)
        if category is None:
            continue

        missing = _missing_for(category, lowered)
        if missing:
            gaps.append(
                DetailGap(
                    food_item=item,
                    missing_details=missing,
                    suggested_questions=list(QUANTITY_PATTERNS[category]["questions"]),
                )
            )

    if gaps:
        confidence = max(0.1, 0.8 - len(gaps) * 0.2)
    else:
        confidence = 0.9

    return MealDetailAnalysis(
        has_all_details=not gaps,
        missing_details=gaps,
        confidence=confidence,
    )


def generate_detail_questions(analysis: MealDetailAnalysis) -> str:
    """
    Render the follow-up question message for an incomplete meal.

    Takes up to two questions per gap, drops duplicates, caps the list at
    four and always ends with the eating-time question. Returns "" when
    nothing is missing.
    """
    if analysis.has_all_details:
        return ""

    questions: List[str] = []
    for gap in analysis.missing_details:
        for question in gap.suggested_questions[:QUESTIONS_PER_GAP]:
            if question not in questions:
                questions.append(question)

    questions = questions[:MAX_QUESTIONS]
    questions.append(EATING_TIME_QUESTION)

    return (
        "Let me get some more details for accurate tracking: "
        + " ".join(questions)
        + " Then I can add this to your nutrition tracker! 📊"
    )


def has_provided_missing_details(response: str, missing_details: Sequence[DetailGap]) -> bool:
    """
    Decide whether a follow-up reply supplies the outstanding amounts.

    Any quantity-like evidence (a number, a quantity word or an amount
    pattern) counts as satisfying every gap; the reply is not matched
    gap by gap.
    """
    if not missing_details:
        return False
    text = response or ""
    return bool(
        has_quantity_indicator(text) or _ANY_NUMBER.search(text) or _QUANTITY_WORD.search(text)
    )
