"""
Shared fixtures for nutricoach tests.

Completion output is scripted per prompt kind so tests never touch the
network.
"""

import json
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Union
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from nutricoach.application.conversation.orchestrator import ConversationOrchestrator
from nutricoach.application.conversation.session import ConversationSession
from nutricoach.config import Settings
from nutricoach.domain.extraction.prompts import (
    ACTION_EXTRACTION_SYSTEM_PROMPT,
    MEAL_EXTRACTION_SYSTEM_PROMPT,
    SUGGESTION_SYSTEM_PROMPT,
)
from nutricoach.domain.nutrition.models import (
    CandidateMeal,
    FoodItem,
    MacroSet,
    MealType,
)
from nutricoach.domain.ports import ITextCompletionClient
from nutricoach.domain.shared.value_objects import UserId
from nutricoach.infrastructure.persistence.in_memory_record_store import (
    InMemoryMealRecordStore,
)
from nutricoach.infrastructure.state.app_state import InMemoryAppState

FIXED_NOW = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

Script = Union[str, Exception, Callable[[List[Dict[str, str]]], str], None]


# ═══════════════════════════════════════════════════════════
# TEST DOUBLES
# ═══════════════════════════════════════════════════════════


class ScriptedCompletionClient:
    """
    ITextCompletionClient answering by prompt kind.

    Each kind ("assistant", "meal", "actions", "suggestions") holds a
    queue of scripted answers; the last one repeats. An Exception entry
    is raised instead of returned.
    """

    def __init__(self) -> None:
        self.scripts: Dict[str, List[Script]] = {
            "assistant": ["Sounds tasty!"],
            "meal": ["null"],
            "actions": ["[]"],
            "suggestions": ["[]"],
        }
        self.calls: List[Dict[str, Any]] = []

    def script(self, kind: str, *answers: Script) -> None:
        self.scripts[kind] = list(answers)

    def calls_of(self, kind: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["kind"] == kind]

    @staticmethod
    def _kind(messages: List[Dict[str, str]]) -> str:
        system = messages[0]["content"] if messages else ""
        if system == MEAL_EXTRACTION_SYSTEM_PROMPT:
            return "meal"
        if system == ACTION_EXTRACTION_SYSTEM_PROMPT:
            return "actions"
        if system == SUGGESTION_SYSTEM_PROMPT:
            return "suggestions"
        return "assistant"

    async def complete_text(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> str:
        kind = self._kind(messages)
        self.calls.append(
            {
                "kind": kind,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )

        queue = self.scripts[kind]
        answer = queue.pop(0) if len(queue) > 1 else queue[0]

        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(messages)
        return answer if answer is not None else ""


class RecordingSink:
    """IMessageSink that keeps every delivered message."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    async def send(self, message: str) -> None:
        self.messages.append(message)


def meal_json(
    items: List[Dict[str, Any]],
    meal_type: Optional[str] = "breakfast",
    confidence: float = 0.9,
    eating_time: Optional[str] = None,
) -> str:
    """Meal extraction answer as the service would return it."""
    return json.dumps(
        {
            "items": items,
            "totalMacros": {"calories": 0, "protein": 0, "carbs": 0, "fat": 0},
            "mealType": meal_type,
            "eatingTime": eating_time,
            "confidence": confidence,
        }
    )


def item_json(
    name: str,
    quantity: str,
    unit: str,
    calories: float,
    protein: float = 0.0,
    carbs: float = 0.0,
    fat: float = 0.0,
) -> Dict[str, Any]:
    """One extracted food item."""
    return {
        "name": name,
        "quantity": quantity,
        "unit": unit,
        "macros": {"calories": calories, "protein": protein, "carbs": carbs, "fat": fat},
    }


# ═══════════════════════════════════════════════════════════
# DOMAIN MODEL FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def egg_item() -> FoodItem:
    """Two large eggs."""
    return FoodItem(
        name="large eggs",
        quantity="2",
        unit="",
        macros=MacroSet(calories=140, protein=12, carbs=1, fat=10),
    )


@pytest.fixture
def toast_item() -> FoodItem:
    """One slice of whole wheat toast."""
    return FoodItem(
        name="whole wheat toast",
        quantity="1",
        unit="slice",
        macros=MacroSet(calories=80, protein=4, carbs=14, fat=1, fiber=2),
    )


@pytest.fixture
def breakfast_meal(egg_item: FoodItem, toast_item: FoodItem) -> CandidateMeal:
    """Complete eggs-and-toast breakfast eaten at 8am."""
    return CandidateMeal(
        items=[egg_item, toast_item],
        meal_type=MealType.BREAKFAST,
        confidence=0.9,
        eating_time="8am",
    )


# ═══════════════════════════════════════════════════════════
# COLLABORATOR FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def completion_client() -> ScriptedCompletionClient:
    """Scripted text-completion client."""
    return ScriptedCompletionClient()


@pytest.fixture
def mock_completion_client() -> Any:
    """Interface-based mock of the completion client."""
    return AsyncMock(spec=ITextCompletionClient)


@pytest.fixture
def record_store() -> InMemoryMealRecordStore:
    """In-memory record store for user_123."""
    return InMemoryMealRecordStore(user_id="user_123")


@pytest.fixture
def app_state() -> InMemoryAppState:
    """Fresh app state with default goals."""
    return InMemoryAppState()


@pytest.fixture
def sink() -> RecordingSink:
    """Recording message sink."""
    return RecordingSink()


@pytest.fixture
def settings() -> Settings:
    """Settings with no follow-up delay."""
    return Settings(followup_delay_s=0.0)


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Fixed local clock (09:30)."""
    return lambda: FIXED_NOW


@pytest_asyncio.fixture
async def orchestrator(
    completion_client: ScriptedCompletionClient,
    record_store: InMemoryMealRecordStore,
    settings: Settings,
    clock: Callable[[], datetime],
) -> AsyncIterator[ConversationOrchestrator]:
    """Orchestrator wired to scripted collaborators; drains follow-ups on teardown."""
    orchestrator = ConversationOrchestrator(
        completion_client=completion_client,
        record_store=record_store,
        settings=settings,
        clock=clock,
    )
    yield orchestrator
    await orchestrator.wait_for_followups()


@pytest.fixture
def session(app_state: InMemoryAppState, sink: RecordingSink) -> ConversationSession:
    """Conversation session for user_123."""
    return ConversationSession(
        user_id=UserId(value="user_123"),
        app_state=app_state,
        sink=sink,
    )
