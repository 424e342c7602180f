"""
Conversation Orchestrator.

Sequences the classifiers, extractors and the pending action store for
each user turn, and decides when a proposed meal is safe to commit.

Turn ladder (first matching branch wins):
1. Redirect: clearly off-topic, canned reply, nothing else runs
2. Detail-completion: pending meal needs details and the reply has them
3. Confirm-and-commit: "yes" to a complete pending meal
4. Reject: "no" to a pending meal
5. Orphan confirmation: "yes" with nothing pending
6. Fresh turn: assistant reply, then meal extraction and intent dispatch

Design Pattern: Service Layer + Dependency Injection
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional, Set, cast

import structlog
from pydantic import BaseModel, ConfigDict, Field

from nutricoach.application.conversation import responses
from nutricoach.application.conversation.intent_dispatcher import IntentDispatcher
from nutricoach.application.conversation.session import ConversationSession
from nutricoach.config import Settings
from nutricoach.domain.conversation.confirmation import detect_confirmation
from nutricoach.domain.conversation.meal_details import (
    analyze_meal_details,
    generate_detail_questions,
    has_provided_missing_details,
)
from nutricoach.domain.conversation.pending_actions import (
    ActionType,
    PendingAction,
    generate_confirmation_message,
)
from nutricoach.domain.conversation.scope import analyze_message_scope
from nutricoach.domain.extraction.action_extractor import ActionExtractor
from nutricoach.domain.extraction.meal_extractor import MealExtractor
from nutricoach.domain.extraction.prompts import build_assistant_messages
from nutricoach.domain.extraction.suggestions import MealSuggestionService
from nutricoach.domain.nutrition.models import CandidateMeal, MealRecord, NewMealRecord
from nutricoach.domain.nutrition.timing import infer_meal_type, parse_eating_time
from nutricoach.domain.ports import (
    IAppState,
    IMealRecordStore,
    IMessageSink,
    ITextCompletionClient,
)
from nutricoach.domain.shared.errors import (
    ExternalServiceError,
    PersistenceError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

ASSISTANT_MAX_TOKENS = 1000
ASSISTANT_TEMPERATURE = 0.7


def _local_now() -> datetime:
    return datetime.now().astimezone()


class TurnOutcome(str, Enum):
    """Which branch of the turn ladder handled the utterance."""

    REDIRECTED = "redirected"
    DETAILS_COMPLETED = "details_completed"
    DETAILS_UNRESOLVED = "details_unresolved"
    COMMITTED = "committed"
    COMMIT_FAILED = "commit_failed"
    REJECTED = "rejected"
    ORPHAN_CONFIRMATION = "orphan_confirmation"
    FRESH_TURN = "fresh_turn"
    SERVICE_UNAVAILABLE = "service_unavailable"


class TurnResult(BaseModel):
    """
    Result of one turn.

    Attributes:
        outcome: Branch that handled the turn
        replies: Messages to show now, in order
        pending_action_id: Meal proposal the turn created or left open
    """

    model_config = ConfigDict(frozen=True)

    outcome: TurnOutcome
    replies: List[str] = Field(default_factory=list)
    pending_action_id: Optional[str] = None


class ConversationOrchestrator:
    """
    Dialogue controller for the meal-logging conversation.

    Shared across sessions; all per-conversation state lives in the
    ConversationSession passed to ``handle_turn``.

    Dependencies (injected via Ports/Interfaces):
    - completion_client: ITextCompletionClient - assistant replies + extraction
    - record_store: IMealRecordStore - persisted meal records

    Example:
        >>> orchestrator = ConversationOrchestrator(
        ...     completion_client=openai_client,
        ...     record_store=store,
        ... )
        >>> session = await orchestrator.open_session(sink, app_state)
        >>> result = await orchestrator.handle_turn(session, "I had 2 eggs at 8am")
        >>> print(result.replies[0])
    """

    def __init__(
        self,
        completion_client: ITextCompletionClient,
        record_store: IMealRecordStore,
        settings: Optional[Settings] = None,
        meal_extractor: Optional[MealExtractor] = None,
        action_extractor: Optional[ActionExtractor] = None,
        suggestion_service: Optional[MealSuggestionService] = None,
        clock: Callable[[], datetime] = _local_now,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            completion_client: Text-completion client
            record_store: Meal record store
            settings: Runtime settings (defaults if None)
            meal_extractor: Meal extractor (built on completion_client if None)
            action_extractor: Action extractor (built on completion_client if None)
            suggestion_service: Suggestion service (built on completion_client if None)
            clock: Local time source, injectable for tests
        """
        self.completion_client = completion_client
        self.record_store = record_store
        self.settings = settings or Settings()
        self.meal_extractor = meal_extractor or MealExtractor(completion_client)
        self.action_extractor = action_extractor or ActionExtractor(completion_client)
        self.dispatcher = IntentDispatcher(
            suggestion_service or MealSuggestionService(completion_client),
            record_store,
            clock=clock,
        )
        self._clock = clock
        self._followups: Set["asyncio.Task[None]"] = set()

    async def open_session(
        self,
        sink: IMessageSink,
        app_state: IAppState,
    ) -> ConversationSession:
        """
        Start a conversation for the store's current user.

        Today's meals are loaded from the record store into ``app_state``;
        if the store is unreachable the session starts with the local
        state as it is.

        Args:
            sink: Channel for delayed supplementary messages
            app_state: Local app state snapshot
        """
        user_id = await self.record_store.get_current_user()

        midnight = self._clock().replace(hour=0, minute=0, second=0, microsecond=0)
        try:
            todays_meals = await self.record_store.list_meal_records(str(user_id), start=midnight)
        except PersistenceError as e:
            logger.warning("Could not load today's meals", user_id=str(user_id), error=str(e))
        else:
            app_state.set_todays_meals(todays_meals)
            logger.debug("Today's meals loaded", user_id=str(user_id), count=len(todays_meals))

        return ConversationSession(
            user_id=user_id,
            app_state=app_state,
            sink=sink,
            max_history=self.settings.max_message_history,
        )

    async def handle_turn(self, session: ConversationSession, utterance: str) -> TurnResult:
        """
        Process one user utterance.

        Args:
            session: Conversation the utterance belongs to
            utterance: Raw user text

        Returns:
            TurnResult with the replies to show

        Raises:
            ValidationError: If the utterance is empty
        """
        text = (utterance or "").strip()
        if not text:
            raise ValidationError("Utterance cannot be empty")

        session.pending_actions.clear_old_actions(
            timedelta(minutes=self.settings.pending_action_max_age_min)
        )

        result = await self._run_ladder(session, text)
        session.record_turn(text, result.replies)

        logger.info(
            "Turn handled",
            user_id=str(session.user_id),
            outcome=result.outcome.value,
            pending_action_id=result.pending_action_id,
        )
        return result

    async def wait_for_followups(self) -> None:
        """Wait for all scheduled supplementary messages to fire or be suppressed."""
        tasks = list(self._followups)
        if tasks:
            await asyncio.gather(*tasks)

    async def _run_ladder(self, session: ConversationSession, text: str) -> TurnResult:
        # 1. Redirect
        scope = analyze_message_scope(text)
        if scope.redirection_needed:
            logger.info("Off-topic message redirected", topics=scope.detected_topics)
            return TurnResult(
                outcome=TurnOutcome.REDIRECTED,
                replies=[session.next_redirection()],
            )

        pending = session.pending_actions.get_latest_pending_meal()
        confirmation = detect_confirmation(text)

        # 2. Detail-completion
        if (
            pending is not None
            and pending.meal is not None
            and pending.needs_details
            and has_provided_missing_details(text, pending.meal.missing_details)
        ):
            return await self._complete_details(session, pending, text)

        # 3. Confirm-and-commit
        if confirmation.is_confirmation and pending is not None and not pending.needs_details:
            return await self._commit(session, pending)

        # 4. Reject
        if confirmation.is_rejection and pending is not None:
            session.pending_actions.reject_action(pending.id)
            return TurnResult(outcome=TurnOutcome.REJECTED, replies=[responses.REJECTION_MESSAGE])

        # 5. Orphan confirmation
        if confirmation.is_confirmation and pending is None:
            return TurnResult(
                outcome=TurnOutcome.ORPHAN_CONFIRMATION,
                replies=[responses.ORPHAN_CONFIRMATION_MESSAGE],
            )

        # 6. Fresh turn
        return await self._fresh_turn(session, text)

    # ═══════════════════════════════════════════════════════════
    # LADDER BRANCHES
    # ═══════════════════════════════════════════════════════════

    async def _complete_details(
        self, session: ConversationSession, pending: PendingAction, text: str
    ) -> TurnResult:
        combined = f"{pending.user_message} {text}"
        try:
            meal = await self.meal_extractor.extract(combined, pending.ai_response)
        except ExternalServiceError as e:
            logger.warning("Detail re-extraction failed", action_id=pending.id, error=str(e))
            meal = None

        if meal is None:
            return TurnResult(
                outcome=TurnOutcome.DETAILS_UNRESOLVED,
                replies=[responses.DETAIL_RETRY_MESSAGE],
                pending_action_id=pending.id,
            )

        meal = self._with_meal_type(meal.with_details([]))
        session.pending_actions.replace_data(pending.id, meal)
        logger.info("Pending meal completed", action_id=pending.id, items=meal.item_names)

        return TurnResult(
            outcome=TurnOutcome.DETAILS_COMPLETED,
            replies=[generate_confirmation_message(meal)],
            pending_action_id=pending.id,
        )

    async def _commit(self, session: ConversationSession, pending: PendingAction) -> TurnResult:
        meal = cast(CandidateMeal, pending.meal)

        now = self._clock()
        meal_type = meal.meal_type or infer_meal_type(now)
        logged_at = parse_eating_time(meal.eating_time, now) or now

        created: List[MealRecord] = []
        try:
            for item in meal.items:
                record = await self.record_store.create_meal_record(
                    NewMealRecord(
                        user_id=str(session.user_id),
                        meal_name=item.name,
                        meal_type=meal_type,
                        calories=item.macros.calories,
                        protein=item.macros.protein,
                        carbs=item.macros.carbs,
                        fat=item.macros.fat,
                        fiber=item.macros.fiber,
                        sugar=item.macros.sugar,
                        confidence=meal.confidence,
                        logged_at=logged_at,
                    )
                )
                created.append(record)
        except PersistenceError as e:
            logger.warning(
                "Meal commit failed",
                action_id=pending.id,
                created=len(created),
                error=str(e),
            )
            await self._rollback(created)
            return TurnResult(
                outcome=TurnOutcome.COMMIT_FAILED,
                replies=[responses.PERSISTENCE_FAILURE_MESSAGE],
                pending_action_id=pending.id,
            )

        session.pending_actions.confirm_action(pending.id)
        for record in created:
            session.app_state.append_meal(record)

        logger.info(
            "Meal committed",
            action_id=pending.id,
            items=meal.item_names,
            calories=meal.total_macros.calories,
        )
        return TurnResult(
            outcome=TurnOutcome.COMMITTED,
            replies=[responses.render_commit_success(meal, meal_type)],
            pending_action_id=pending.id,
        )

    async def _rollback(self, records: List[MealRecord]) -> None:
        """Best-effort delete of records created before a failed commit."""
        for record in records:
            try:
                await self.record_store.delete_meal_record(record.id)
            except PersistenceError as e:
                logger.warning("Rollback delete failed", record_id=record.id, error=str(e))

    async def _fresh_turn(self, session: ConversationSession, text: str) -> TurnResult:
        state = session.app_state
        messages = build_assistant_messages(
            text, state.goals, state.daily_totals, session.history_messages()
        )

        try:
            reply = await self.completion_client.complete_text(
                messages,
                max_tokens=ASSISTANT_MAX_TOKENS,
                temperature=ASSISTANT_TEMPERATURE,
            )
        except ExternalServiceError as e:
            logger.warning("Assistant reply failed", error=str(e))
            return TurnResult(
                outcome=TurnOutcome.SERVICE_UNAVAILABLE,
                replies=[responses.GENERIC_RETRY_MESSAGE],
            )

        replies = [reply]
        pending_id = await self._propose_meal(session, text, reply)

        try:
            actions = await self.action_extractor.extract(text, reply)
        except ExternalServiceError as e:
            logger.warning("Action extraction failed", error=str(e))
            actions = []

        replies.extend(await self.dispatcher.dispatch(session, actions))

        return TurnResult(
            outcome=TurnOutcome.FRESH_TURN,
            replies=replies,
            pending_action_id=pending_id,
        )

    # ═══════════════════════════════════════════════════════════
    # MEAL PROPOSALS
    # ═══════════════════════════════════════════════════════════

    async def _propose_meal(
        self, session: ConversationSession, text: str, reply: str
    ) -> Optional[str]:
        """Extract a meal from the exchange and register it as pending."""
        try:
            meal = await self.meal_extractor.extract(text, reply)
        except ExternalServiceError as e:
            logger.warning("Meal extraction failed", error=str(e))
            return None

        if meal is None:
            return None

        analysis = analyze_meal_details(meal.item_names, text)
        meal = self._with_meal_type(meal.with_details(analysis.missing_details))

        action_id = session.pending_actions.add_pending_action(
            ActionType.MEAL_LOG,
            meal,
            user_message=text,
            ai_response=reply,
        )
        logger.info(
            "Meal proposed",
            action_id=action_id,
            items=meal.item_names,
            needs_details=meal.needs_details,
        )

        if meal.needs_details:
            if not responses.asks_for_details(reply):
                self._schedule_followup(
                    session, action_id, generate_detail_questions(analysis), needs_details=True
                )
        elif not responses.asks_for_confirmation(reply):
            self._schedule_followup(
                session, action_id, generate_confirmation_message(meal), needs_details=False
            )

        return action_id

    def _with_meal_type(self, meal: CandidateMeal) -> CandidateMeal:
        if meal.meal_type is not None:
            return meal
        return meal.model_copy(update={"meal_type": infer_meal_type(self._clock())})

    def _schedule_followup(
        self,
        session: ConversationSession,
        action_id: str,
        message: str,
        needs_details: bool,
    ) -> None:
        task = asyncio.create_task(
            self._emit_followup(session, action_id, message, needs_details)
        )
        self._followups.add(task)
        task.add_done_callback(self._followups.discard)

    async def _emit_followup(
        self,
        session: ConversationSession,
        action_id: str,
        message: str,
        needs_details: bool,
    ) -> None:
        """Send a supplementary message unless the proposal has moved on."""
        await asyncio.sleep(self.settings.followup_delay_s)

        action = session.pending_actions.get_action(action_id)
        if action is None or not action.is_pending or action.needs_details != needs_details:
            logger.debug("Stale follow-up suppressed", action_id=action_id)
            return

        try:
            await session.sink.send(message)
        except Exception as e:
            logger.warning("Follow-up delivery failed", action_id=action_id, error=str(e))
            return

        session.record_assistant_message(message)
