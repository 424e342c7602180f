"""Tests for ActionExtractor."""

import json
from unittest.mock import AsyncMock

import pytest

from nutricoach.domain.conversation.actions import IntentType
from nutricoach.domain.extraction.action_extractor import ActionExtractor
from nutricoach.domain.extraction.prompts import ACTION_EXTRACTION_SYSTEM_PROMPT
from nutricoach.domain.shared.errors import TimeoutError


@pytest.fixture
def extractor(mock_completion_client: AsyncMock) -> ActionExtractor:
    return ActionExtractor(client=mock_completion_client)


class TestActionExtractor:
    """Test ActionExtractor."""

    @pytest.mark.asyncio
    async def test_extract_actions_above_threshold(
        self, extractor: ActionExtractor, mock_completion_client: AsyncMock
    ) -> None:
        """Should keep only intents above 0.7 confidence."""
        # ARRANGE
        mock_completion_client.complete_text.return_value = json.dumps(
            [
                {"type": "update_goals", "data": {"calories": 1800}, "confidence": 0.9},
                {"type": "show_progress", "data": None, "confidence": 0.7},
                {"type": "suggest_meals", "data": {"meal_type": "dinner"}, "confidence": 0.85},
            ]
        )

        # ACT
        actions = await extractor.extract("set my goal to 1800 and suggest dinner", "Sure!")

        # ASSERT
        assert [a.type for a in actions] == [IntentType.UPDATE_GOALS, IntentType.SUGGEST_MEALS]
        assert actions[0].data == {"calories": 1800}

        args, kwargs = mock_completion_client.complete_text.call_args
        assert args[0][0]["content"] == ACTION_EXTRACTION_SYSTEM_PROMPT
        assert kwargs["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_extract_wrapped_array(
        self, extractor: ActionExtractor, mock_completion_client: AsyncMock
    ) -> None:
        """Should accept the array under an "actions" key."""
        mock_completion_client.complete_text.return_value = json.dumps(
            {"actions": [{"type": "show_progress", "data": None, "confidence": 0.95}]}
        )

        actions = await extractor.extract("how am I doing?", "Let's see!")

        assert len(actions) == 1
        assert actions[0].type == IntentType.SHOW_PROGRESS
        assert actions[0].data == {}

    @pytest.mark.asyncio
    async def test_invalid_entries_skipped(
        self, extractor: ActionExtractor, mock_completion_client: AsyncMock
    ) -> None:
        """Should skip unknown types and malformed entries."""
        mock_completion_client.complete_text.return_value = json.dumps(
            [
                {"type": "order_pizza", "data": {}, "confidence": 0.99},
                {"type": "show_progress"},
                "garbage",
                {"type": "calculate_remaining", "data": {"macro": "protein"}, "confidence": 0.8},
            ]
        )

        actions = await extractor.extract("how much protein is left?", "Let me check")

        assert [a.type for a in actions] == [IntentType.CALCULATE_REMAINING]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "no actions", '{"foo": 1}'])
    async def test_unusable_output_is_empty(
        self, extractor: ActionExtractor, mock_completion_client: AsyncMock, content: str
    ) -> None:
        """Should return an empty list for unusable output."""
        mock_completion_client.complete_text.return_value = content

        assert await extractor.extract("hello", "hi") == []

    @pytest.mark.asyncio
    async def test_service_error_propagates(
        self, extractor: ActionExtractor, mock_completion_client: AsyncMock
    ) -> None:
        """Should let service failures reach the caller."""
        mock_completion_client.complete_text.side_effect = TimeoutError("timed out")

        with pytest.raises(TimeoutError):
            await extractor.extract("hello", "hi")
