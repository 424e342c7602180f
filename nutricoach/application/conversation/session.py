"""Conversation session: per-conversation state handed to the orchestrator."""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List, Optional

from nutricoach.domain.conversation.pending_actions import PendingActionStore
from nutricoach.domain.conversation.scope import get_redirection_response
from nutricoach.domain.ports import IAppState, IMessageSink
from nutricoach.domain.shared.value_objects import UserId


class ConversationSession:
    """
    State of one conversation.

    Owns the pending action store, so proposals never leak between
    conversations. Turns of one session are handled strictly one at a
    time.

    Attributes:
        user_id: Owner of logged records
        app_state: Today's meals, totals and goals
        sink: Channel for delayed supplementary messages
        pending_actions: Proposals awaiting confirmation
    """

    def __init__(
        self,
        user_id: UserId,
        app_state: IAppState,
        sink: IMessageSink,
        pending_actions: Optional[PendingActionStore] = None,
        max_history: int = 10,
    ) -> None:
        self.user_id = user_id
        self.app_state = app_state
        self.sink = sink
        self.pending_actions = (
            pending_actions if pending_actions is not None else PendingActionStore()
        )
        self._history: Deque[Dict[str, str]] = deque(maxlen=max_history)
        self._redirect_index = 0

    def next_redirection(self) -> str:
        """Next canned redirection reply, round-robin."""
        response = get_redirection_response(self._redirect_index)
        self._redirect_index += 1
        return response

    def record_turn(self, utterance: str, replies: List[str]) -> None:
        """Remember a user utterance and the replies it received."""
        self._history.append({"role": "user", "content": utterance})
        for reply in replies:
            self._history.append({"role": "assistant", "content": reply})

    def record_assistant_message(self, message: str) -> None:
        """Remember an assistant message sent outside a turn."""
        self._history.append({"role": "assistant", "content": message})

    def history_messages(self) -> List[Dict[str, str]]:
        """Recent role-tagged messages, oldest first."""
        return list(self._history)
