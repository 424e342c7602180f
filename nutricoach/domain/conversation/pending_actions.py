"""
Pending action store.

Session-scoped registry of proposals awaiting explicit user confirmation.
Status moves exactly once, from pending to confirmed or rejected; entries
past the age horizon are purged lazily by ``clear_old_actions``.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict

from nutricoach.domain.nutrition.models import CandidateMeal
from nutricoach.domain.shared.value_objects import ActionId

logger = structlog.get_logger(__name__)

DEFAULT_MAX_AGE = timedelta(minutes=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActionType(str, Enum):
    """Kind of proposal."""

    MEAL_LOG = "meal_log"
    GOAL_UPDATE = "goal_update"
    MEAL_SUGGESTION = "meal_suggestion"


class ActionStatus(str, Enum):
    """Lifecycle status; confirmed and rejected are terminal."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class PendingAction(BaseModel):
    """
    Proposal awaiting confirmation.

    Only ``PendingActionStore`` changes ``status`` and ``data``; everyone
    else treats instances as read-only.

    Attributes:
        id: ActionId string ("action_<ms>_<suffix>")
        type: Proposal kind
        data: CandidateMeal for meal_log, a plain payload otherwise
        user_message: Utterance that produced the proposal
        ai_response: Assistant reply shown for that utterance
        timestamp: Creation time
        status: Lifecycle status
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    type: ActionType
    data: Union[CandidateMeal, Dict[str, Any]]
    user_message: str = ""
    ai_response: str = ""
    timestamp: datetime
    status: ActionStatus = ActionStatus.PENDING

    @property
    def is_pending(self) -> bool:
        """True while awaiting a decision."""
        return self.status == ActionStatus.PENDING

    @property
    def meal(self) -> Optional[CandidateMeal]:
        """Candidate meal payload, for meal_log actions."""
        return self.data if isinstance(self.data, CandidateMeal) else None

    @property
    def needs_details(self) -> bool:
        """True for a meal proposal still missing quantitative details."""
        meal = self.meal
        return meal is not None and meal.needs_details


class PendingActionStore:
    """
    In-memory registry of pending actions for one conversation session.

    Not shared across sessions. Insertion order is creation order, so
    "latest" means last added.

    Example:
        >>> store = PendingActionStore()
        >>> action_id = store.add_pending_action(ActionType.GOAL_UPDATE, {"calories": 1800})
        >>> len(store.get_pending_actions())
        1
        >>> store.confirm_action(action_id).status
        <ActionStatus.CONFIRMED: 'confirmed'>
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        """
        Initialize an empty store.

        Args:
            clock: Time source, injectable for tests
        """
        self._clock = clock
        self._actions: "OrderedDict[str, PendingAction]" = OrderedDict()

    def add_pending_action(
        self,
        action_type: ActionType,
        data: Union[CandidateMeal, Dict[str, Any]],
        user_message: str = "",
        ai_response: str = "",
    ) -> str:
        """
        Register a new proposal with status pending.

        Returns:
            Fresh action id
        """
        action_id = ActionId.generate().value
        while action_id in self._actions:
            action_id = ActionId.generate().value

        self._actions[action_id] = PendingAction(
            id=action_id,
            type=action_type,
            data=data,
            user_message=user_message,
            ai_response=ai_response,
            timestamp=self._clock(),
        )

        logger.debug("Pending action added", action_id=action_id, action_type=action_type.value)
        return action_id

    def get_action(self, action_id: str) -> Optional[PendingAction]:
        """Look up an action by id regardless of status."""
        return self._actions.get(action_id)

    def get_pending_actions(self) -> List[PendingAction]:
        """All actions still pending, oldest first."""
        return [action for action in self._actions.values() if action.is_pending]

    def confirm_action(self, action_id: str) -> Optional[PendingAction]:
        """
        Mark a pending action confirmed.

        Returns:
            The updated action, or None when the id is unknown or the
            action is no longer pending
        """
        return self._transition(action_id, ActionStatus.CONFIRMED)

    def reject_action(self, action_id: str) -> Optional[PendingAction]:
        """Mark a pending action rejected; None if unknown or not pending."""
        return self._transition(action_id, ActionStatus.REJECTED)

    def replace_data(
        self, action_id: str, data: Union[CandidateMeal, Dict[str, Any]]
    ) -> Optional[PendingAction]:
        """
        Replace the payload of a pending action wholesale.

        Used when a follow-up supplies missing meal details. Returns None
        when the action is unknown or no longer pending.
        """
        action = self._actions.get(action_id)
        if action is None or not action.is_pending:
            return None
        action.data = data
        return action

    def clear_old_actions(self, max_age: timedelta = DEFAULT_MAX_AGE) -> int:
        """
        Drop actions older than ``max_age``, whatever their status.

        Returns:
            Number of actions removed
        """
        cutoff = self._clock() - max_age
        stale = [action_id for action_id, a in self._actions.items() if a.timestamp < cutoff]
        for action_id in stale:
            del self._actions[action_id]

        if stale:
            logger.debug("Old pending actions cleared", count=len(stale))
        return len(stale)

    def get_latest_pending_meal(self) -> Optional[PendingAction]:
        """Most recently added pending meal_log action, or None."""
        for action in reversed(self._actions.values()):
            if action.type == ActionType.MEAL_LOG and action.is_pending:
                return action
        return None

    def _transition(self, action_id: str, status: ActionStatus) -> Optional[PendingAction]:
        action = self._actions.get(action_id)
        if action is None or not action.is_pending:
            return None
        action.status = status
        logger.info("Pending action resolved", action_id=action_id, status=status.value)
        return action

    def __len__(self) -> int:
        return len(self._actions)


# ═══════════════════════════════════════════════════════════
# CONFIRMATION MESSAGE
# ═══════════════════════════════════════════════════════════


def _describe_item(quantity: str, unit: str, name: str) -> str:
    if unit:
        return f"{quantity} {unit} of {name}"
    return f"{quantity} {name}".strip()


def needs_time_confirmation(meal: CandidateMeal) -> bool:
    """True when the meal carries no eating time."""
    return not meal.eating_time


def generate_confirmation_message(meal: CandidateMeal) -> str:
    """
    Render the "should I add this?" summary for a candidate meal.

    Built only from the meal's own items, meal type, eating time and
    total calories.
    """
    items = ", ".join(_describe_item(i.quantity, i.unit, i.name) for i in meal.items)

    if meal.meal_type is not None:
        meal_type = meal.meal_type.value if isinstance(meal.meal_type, Enum) else meal.meal_type
    else:
        meal_type = "this meal"

    if needs_time_confirmation(meal):
        time_text = "- what time did you eat this?"
    else:
        time_text = f"at {meal.eating_time}"

    return (
        "Perfect! Let me make sure I have this right 📝\n\n"
        f"You had {items} for {meal_type} {time_text}\n\n"
        f"That's about {meal.total_macros.calories:.0f} calories total. "
        "Should I add this to your nutrition tracker? \n\n"
        'Reply "yes" to confirm or let me know if I need to adjust anything! 😊'
    )
