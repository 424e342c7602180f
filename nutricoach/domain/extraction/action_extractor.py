"""Action (intent) extraction from a conversation exchange."""

from __future__ import annotations

from typing import List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from nutricoach.domain.conversation.actions import AIAction
from nutricoach.domain.extraction.parsing import parse_json_list
from nutricoach.domain.extraction.prompts import build_action_extraction_messages
from nutricoach.domain.ports import ITextCompletionClient
from nutricoach.domain.shared.errors import ExtractionError

logger = structlog.get_logger(__name__)

ACTION_CONFIDENCE_THRESHOLD = 0.7
ACTION_EXTRACTION_MAX_TOKENS = 400
ACTION_EXTRACTION_TEMPERATURE = 0.1


class ActionExtractor:
    """
    Extract typed intents (goal update, suggestion request, edit, ...).

    Entries that fail validation are skipped individually; only intents
    above the confidence threshold are returned.
    """

    def __init__(
        self,
        client: ITextCompletionClient,
        min_confidence: float = ACTION_CONFIDENCE_THRESHOLD,
    ) -> None:
        self._client = client
        self._min_confidence = min_confidence

    async def extract(self, user_message: str, ai_response: str) -> List[AIAction]:
        """
        Extract intents.

        Returns:
            Intents above threshold, possibly empty

        Raises:
            ExternalServiceError: If the completion call fails
        """
        messages = build_action_extraction_messages(user_message, ai_response)
        content = await self._client.complete_text(
            messages,
            max_tokens=ACTION_EXTRACTION_MAX_TOKENS,
            temperature=ACTION_EXTRACTION_TEMPERATURE,
        )

        try:
            actions = self.parse(content)
        except ExtractionError as e:
            logger.info("Action extraction discarded", reason=str(e))
            return []

        if actions:
            logger.debug("Actions extracted", types=[a.type.value for a in actions])
        return actions

    def parse(self, content: Optional[str]) -> List[AIAction]:
        """
        Validate completion text as a list of intents.

        Raises:
            ExtractionError: If the content is not a JSON array
        """
        raw_actions = parse_json_list(content, root_keys=("actions",))

        actions: List[AIAction] = []
        for raw in raw_actions:
            try:
                action = AIAction.model_validate(raw)
            except PydanticValidationError:
                # Skip invalid entries
                continue
            if action.confidence > self._min_confidence:
                actions.append(action)

        return actions
