"""
Nutrition domain models.

Candidate meals produced by extraction, the gaps found in them, the
persisted meal record shape and the daily goal/total snapshot.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class MealType(str, Enum):
    """Meal slot a food entry belongs to."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"

    @classmethod
    def parse(cls, value: Any) -> Optional[MealType]:
        """Lenient parse: accepts case variants and "snacks"; None if unknown."""
        if isinstance(value, MealType):
            return value
        if not isinstance(value, str):
            return None
        cleaned = value.strip().lower()
        if cleaned == "snacks":
            cleaned = "snack"
        try:
            return cls(cleaned)
        except ValueError:
            return None


class MacroSet(BaseModel):
    """
    Macro nutrients for an item or a meal.

    Example:
        >>> macros = MacroSet(calories=140, protein=12, carbs=1, fat=10)
        >>> assert macros.fiber is None
    """

    model_config = ConfigDict(frozen=True)

    calories: float = Field(0.0, ge=0, description="Energy (kcal)")
    protein: float = Field(0.0, ge=0, description="Protein (g)")
    carbs: float = Field(0.0, ge=0, description="Carbohydrates (g)")
    fat: float = Field(0.0, ge=0, description="Fat (g)")
    fiber: Optional[float] = Field(None, ge=0, description="Fiber (g)")
    sugar: Optional[float] = Field(None, ge=0, description="Sugar (g)")


def sum_macros(items: Iterable[MacroSet]) -> MacroSet:
    """
    Sum macro sets field by field.

    Optional fields stay None unless at least one input carries them.
    """
    calories = protein = carbs = fat = 0.0
    fiber: Optional[float] = None
    sugar: Optional[float] = None

    for m in items:
        calories += m.calories
        protein += m.protein
        carbs += m.carbs
        fat += m.fat
        if m.fiber is not None:
            fiber = (fiber or 0.0) + m.fiber
        if m.sugar is not None:
            sugar = (sugar or 0.0) + m.sugar

    return MacroSet(
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
        fiber=fiber,
        sugar=sugar,
    )


class FoodItem(BaseModel):
    """
    Single food item of a candidate meal.

    Immutable: a follow-up that supplies missing details replaces the
    whole candidate meal, never an individual field.

    Attributes:
        name: Food name as the user would recognise it ("large eggs")
        quantity: Amount as text ("2", "1/2", "6")
        unit: Unit of the amount ("slice", "oz", ""), may be empty
        macros: Macros for this quantity
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=200)
    quantity: str = Field("1", description="Amount as text")
    unit: str = Field("", description="Unit of the amount")
    macros: MacroSet = Field(default_factory=MacroSet)

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        """Ensure not just whitespace."""
        if not v.strip():
            raise ValueError("Food name cannot be empty or whitespace")
        return v.strip()

    @field_validator("quantity", "unit", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        """Extractors sometimes emit numbers; keep everything as text."""
        if v is None:
            return ""
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return str(v).strip()


class DetailGap(BaseModel):
    """
    Missing quantitative detail for one food item.

    Example:
        >>> gap = DetailGap(
        ...     food_item="chicken",
        ...     missing_details=["quantity", "weight"],
        ...     suggested_questions=["How many ounces/grams?"],
        ... )
    """

    model_config = ConfigDict(frozen=True)

    food_item: str
    missing_details: List[str] = Field(default_factory=list)
    suggested_questions: List[str] = Field(default_factory=list)


class CandidateMeal(BaseModel):
    """
    Structured, not-yet-persisted meal proposal.

    ``total_macros`` is always derived from the items, so whatever the
    extractor claimed as a total is replaced by the per-item sum.

    Invariant: ``needs_details`` is True exactly when ``missing_details``
    is non-empty.

    Accepts both snake_case and the camelCase keys used in extractor JSON
    (``totalMacros``, ``mealType``, ``eatingTime``).
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=False,
    )

    items: List[FoodItem] = Field(..., min_length=1)
    total_macros: MacroSet = Field(default_factory=MacroSet)
    meal_type: Optional[MealType] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    eating_time: Optional[str] = None
    needs_details: bool = False
    missing_details: List[DetailGap] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def derive_total_macros(cls, data: Any) -> Any:
        """Replace any declared total with the sum of item macros."""
        if not isinstance(data, dict):
            return data
        if not isinstance(data.get("items"), list) or not data["items"]:
            return data

        items = [
            item if isinstance(item, FoodItem) else FoodItem.model_validate(item)
            for item in data["items"]
        ]
        cleaned = {k: v for k, v in data.items() if k not in ("totalMacros", "total_macros")}
        cleaned["items"] = items
        cleaned["total_macros"] = sum_macros(item.macros for item in items)
        return cleaned

    @field_validator("meal_type", mode="before")
    @classmethod
    def lenient_meal_type(cls, v: Any) -> Optional[MealType]:
        """Unknown meal types become None rather than failing the meal."""
        return MealType.parse(v)

    @field_validator("eating_time", mode="before")
    @classmethod
    def blank_time_is_none(cls, v: Any) -> Optional[str]:
        """Empty strings mean "not given"."""
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @model_validator(mode="after")
    def gaps_match_flag(self) -> CandidateMeal:
        """Keep needs_details and missing_details consistent."""
        if self.needs_details and not self.missing_details:
            raise ValueError("needs_details=True requires at least one gap")
        if not self.needs_details and self.missing_details:
            raise ValueError("needs_details=False requires an empty gap list")
        return self

    @property
    def item_names(self) -> List[str]:
        """Names of all items, in order."""
        return [item.name for item in self.items]

    def with_details(self, gaps: List[DetailGap]) -> CandidateMeal:
        """Copy annotated with the given gap list."""
        return self.model_copy(
            update={"needs_details": bool(gaps), "missing_details": list(gaps)}
        )


class NutritionGoals(BaseModel):
    """Daily nutrition targets."""

    model_config = ConfigDict(frozen=True)

    calories: float = Field(2000, ge=0)
    protein: float = Field(150, ge=0)
    carbs: float = Field(250, ge=0)
    fat: float = Field(65, ge=0)


class NewMealRecord(BaseModel):
    """
    Fields for creating a meal record in the record store.

    One record per food item of a confirmed candidate meal.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    meal_name: str = Field(..., min_length=1)
    meal_type: MealType
    calories: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)
    fiber: Optional[float] = None
    sugar: Optional[float] = None
    sodium: Optional[float] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    logged_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MealRecord(NewMealRecord):
    """Stored meal record, with the id and creation time assigned by the store."""

    id: str = Field(..., min_length=1)
    created_at: datetime

    @property
    def macros(self) -> MacroSet:
        """Macros of this record."""
        return MacroSet(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            fiber=self.fiber,
            sugar=self.sugar,
        )


class DailyTotals(BaseModel):
    """Running totals for one day."""

    model_config = ConfigDict(frozen=True)

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0


def calculate_daily_totals(meals: Iterable[MealRecord]) -> DailyTotals:
    """
    Compute daily totals from the full meal list.

    Always recomputed from scratch; never updated incrementally.
    """
    totals = {
        "calories": 0.0,
        "protein": 0.0,
        "carbs": 0.0,
        "fat": 0.0,
        "fiber": 0.0,
        "sugar": 0.0,
        "sodium": 0.0,
    }
    for meal in meals:
        for field in totals:
            totals[field] += getattr(meal, field) or 0.0
    return DailyTotals(**totals)


class MacroProgress(BaseModel):
    """Progress of one macro against its goal."""

    model_config = ConfigDict(frozen=True)

    current: float
    target: float
    percentage: float


def calculate_progress(totals: DailyTotals, goals: NutritionGoals) -> Dict[str, MacroProgress]:
    """Current / target / percentage for calories, protein, carbs and fat."""
    progress: Dict[str, MacroProgress] = {}
    for field in ("calories", "protein", "carbs", "fat"):
        current = getattr(totals, field)
        target = getattr(goals, field)
        percentage = (current / target * 100) if target else 0.0
        progress[field] = MacroProgress(current=current, target=target, percentage=percentage)
    return progress
