"""
Streaming-specific dataclasses for the chat completion stream.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FrameKind(Enum):
    """Kinds of server-sent event frames we act on."""
    DATA = "data"
    DONE = "done"


@dataclass(frozen=True)
class StreamFrame:
    """One parsed `data:` line from the response body."""
    kind: FrameKind
    payload: str
    data: dict[str, Any] | None = None

    @property
    def content_delta(self) -> str | None:
        """Text fragment carried by this frame, if any."""
        if self.kind is not FrameKind.DATA or not isinstance(self.data, dict):
            return None

        choices = self.data.get("choices")
        if not isinstance(choices, list) or not choices:
            return None

        choice = choices[0]
        if not isinstance(choice, dict):
            return None

        delta = choice.get("delta")
        if not isinstance(delta, dict):
            return None

        content = delta.get("content")
        return content if isinstance(content, str) else None
