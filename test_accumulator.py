#!/usr/bin/env python3
"""Tests for per-turn assembly of streamed assistant messages."""

from loan_assistant.chat.accumulator import AssistantAccumulator


class TestAssistantAccumulator:
    """One assistant message per turn, growing in place."""

    def test_first_delta_creates_message(self):
        acc = AssistantAccumulator()
        message, created = acc.append("turn-1", "Hel")

        assert created
        assert message.role == "assistant"
        assert message.content == "Hel"

    def test_later_deltas_grow_same_message(self):
        acc = AssistantAccumulator()
        first, _ = acc.append("turn-1", "Hel")
        second, created = acc.append("turn-1", "lo")

        assert not created
        assert second is first
        assert first.content == "Hello"
        assert len(acc) == 1

    def test_turns_are_independent(self):
        acc = AssistantAccumulator()
        a, _ = acc.append("turn-1", "one")
        b, created = acc.append("turn-2", "two")

        assert created
        assert a.id != b.id
        assert acc.content("turn-1") == "one"
        assert acc.content("turn-2") == "two"

    def test_unknown_turn(self):
        acc = AssistantAccumulator()
        assert acc.get("missing") is None
        assert acc.content("missing") == ""

    def test_discard_and_reset(self):
        acc = AssistantAccumulator()
        acc.append("turn-1", "one")
        acc.append("turn-2", "two")

        acc.discard("turn-1")
        assert acc.get("turn-1") is None
        acc.discard("turn-1")  # no-op

        acc.reset()
        assert len(acc) == 0
