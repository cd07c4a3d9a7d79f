"""
Assembly of streamed deltas into assistant messages.

Each user turn gets a turn id; every delta of that turn lands in the single
assistant message the turn owns.
"""

from __future__ import annotations

from .models import ChatMessage


class AssistantAccumulator:
    """Accumulates content deltas per turn id."""

    def __init__(self) -> None:
        self._turns: dict[str, ChatMessage] = {}

    def append(self, turn_id: str, delta: str) -> tuple[ChatMessage, bool]:
        """
        Append a delta to the turn's assistant message.

        Returns the message and whether it was created by this call. The first
        delta of a turn creates the message; later deltas grow it in place.
        """
        message = self._turns.get(turn_id)
        created = message is None
        if message is None:
            message = ChatMessage(role="assistant")
            self._turns[turn_id] = message

        message.content += delta
        return message, created

    def get(self, turn_id: str) -> ChatMessage | None:
        return self._turns.get(turn_id)

    def content(self, turn_id: str) -> str:
        message = self._turns.get(turn_id)
        return message.content if message else ""

    def discard(self, turn_id: str) -> None:
        self._turns.pop(turn_id, None)

    def reset(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)
