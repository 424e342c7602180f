"""
Meal extraction.

Turns a user utterance plus the assistant's reply into a structured
candidate meal via the text-completion service.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from nutricoach.domain.extraction.parsing import parse_json_payload
from nutricoach.domain.extraction.prompts import build_meal_extraction_messages
from nutricoach.domain.nutrition.models import CandidateMeal
from nutricoach.domain.ports import ITextCompletionClient
from nutricoach.domain.shared.errors import ExtractionError

logger = structlog.get_logger(__name__)

MEAL_CONFIDENCE_THRESHOLD = 0.6
MEAL_EXTRACTION_MAX_TOKENS = 800
MEAL_EXTRACTION_TEMPERATURE = 0.3


class MealExtractor:
    """
    Extract a candidate meal from a conversation exchange.

    Fail-closed: unparseable output, schema mismatches and candidates at
    or below the confidence threshold all come back as None. Service
    failures (ExternalServiceError) propagate to the caller.

    Example:
        >>> extractor = MealExtractor(client=openai_client)
        >>> meal = await extractor.extract(
        ...     user_message="I had 2 eggs for breakfast",
        ...     ai_response="Nice! Two eggs are about 140 calories.",
        ... )
        >>> assert meal is None or meal.confidence > 0.6
    """

    def __init__(
        self,
        client: ITextCompletionClient,
        min_confidence: float = MEAL_CONFIDENCE_THRESHOLD,
    ) -> None:
        """
        Initialize meal extractor.

        Args:
            client: Text-completion client
            min_confidence: Candidates must exceed this confidence
        """
        self._client = client
        self._min_confidence = min_confidence

    async def extract(self, user_message: str, ai_response: str) -> Optional[CandidateMeal]:
        """
        Extract a candidate meal.

        Args:
            user_message: User utterance (possibly several joined together)
            ai_response: Assistant reply shown for it

        Returns:
            CandidateMeal, or None when no usable meal was found

        Raises:
            ExternalServiceError: If the completion call fails
        """
        messages = build_meal_extraction_messages(user_message, ai_response)
        content = await self._client.complete_text(
            messages,
            max_tokens=MEAL_EXTRACTION_MAX_TOKENS,
            temperature=MEAL_EXTRACTION_TEMPERATURE,
        )

        try:
            meal = self.parse(content)
        except ExtractionError as e:
            logger.info("Meal extraction discarded", reason=str(e))
            return None

        if meal is not None:
            logger.debug(
                "Meal extracted",
                items=meal.item_names,
                confidence=meal.confidence,
            )
        return meal

    def parse(self, content: Optional[str]) -> Optional[CandidateMeal]:
        """
        Validate completion text as a candidate meal.

        Returns:
            CandidateMeal, or None when the output says there is no meal

        Raises:
            ExtractionError: On non-JSON, schema mismatch or low confidence
        """
        data: Any = parse_json_payload(content)
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ExtractionError(f"Expected a JSON object, got {type(data).__name__}")
        items = data.get("items")
        if not items:
            return None
        if not isinstance(items, list):
            raise ExtractionError(f"Expected an item list, got {type(items).__name__}")

        try:
            meal = CandidateMeal.model_validate(data)
        except PydanticValidationError as e:
            raise ExtractionError(f"Meal schema mismatch: {e.error_count()} errors") from e

        if meal.confidence <= self._min_confidence:
            raise ExtractionError(
                f"Meal confidence {meal.confidence} not above {self._min_confidence}"
            )

        return meal
