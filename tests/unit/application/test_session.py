"""Tests for ConversationSession."""

from nutricoach.application.conversation.session import ConversationSession
from nutricoach.domain.conversation.pending_actions import PendingActionStore
from nutricoach.domain.conversation.scope import REDIRECTION_RESPONSES
from nutricoach.domain.shared.value_objects import UserId
from nutricoach.infrastructure.state.app_state import InMemoryAppState


def _session(**kwargs: object) -> ConversationSession:
    return ConversationSession(
        user_id=UserId(value="user_123"),
        app_state=InMemoryAppState(),
        sink=object(),  # type: ignore[arg-type]
        **kwargs,  # type: ignore[arg-type]
    )


class TestConversationSession:
    """Test per-conversation state."""

    def test_redirections_rotate(self) -> None:
        """Should hand out redirection replies round-robin."""
        session = _session()

        replies = [session.next_redirection() for _ in range(len(REDIRECTION_RESPONSES) + 1)]

        assert replies[:-1] == list(REDIRECTION_RESPONSES)
        assert replies[-1] == REDIRECTION_RESPONSES[0]

    def test_history_is_bounded(self) -> None:
        """Should keep only the most recent messages."""
        session = _session(max_history=4)

        session.record_turn("one", ["reply one"])
        session.record_turn("two", ["reply two a", "reply two b"])
        session.record_assistant_message("follow-up")

        assert session.history_messages() == [
            {"role": "user", "content": "two"},
            {"role": "assistant", "content": "reply two a"},
            {"role": "assistant", "content": "reply two b"},
            {"role": "assistant", "content": "follow-up"},
        ]

    def test_keeps_injected_empty_store(self) -> None:
        """Should use the pending action store it was given, even when empty."""
        store = PendingActionStore()

        assert _session(pending_actions=store).pending_actions is store

    def test_sessions_do_not_share_pending_actions(self) -> None:
        """Should give every session its own store."""
        assert _session().pending_actions is not _session().pending_actions
