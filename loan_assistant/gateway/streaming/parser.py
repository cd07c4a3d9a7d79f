"""
Incremental SSE frame parser for the chat completion stream.

Bytes arrive in arbitrary chunks: a chunk can end in the middle of a line, in
the middle of a JSON payload, or in the middle of a multi-byte character. The
parser keeps a carry-over buffer and only acts on complete lines.
"""

from __future__ import annotations

import codecs
import json
import logging

from .models import FrameKind, StreamFrame

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class SSEFrameParser:
    """Splits a byte stream into `data:` frames, deferring truncated payloads."""

    def __init__(
        self,
        data_prefix: str = DATA_PREFIX,
        done_sentinel: str = DONE_SENTINEL,
    ):
        self.data_prefix = data_prefix
        self.done_sentinel = done_sentinel
        # Invalid bytes decode to U+FFFD instead of failing the stream
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False
        self.stats = {
            'total_frames': 0,
            'deferred_lines': 0,
            'dropped_lines': 0,
        }

    def feed(self, chunk: bytes) -> list[StreamFrame]:
        """
        Consume one chunk of the response body.

        Returns the frames completed by this chunk, in arrival order. A line
        whose payload does not parse as JSON is assumed to be a frame split
        across chunks: it goes back onto the buffer and processing stops
        until more bytes arrive.
        """
        if self.done:
            return []

        self._buffer += self._decoder.decode(chunk)
        frames: list[StreamFrame] = []

        while (newline_index := self._buffer.find("\n")) != -1:
            line = self._buffer[:newline_index]
            self._buffer = self._buffer[newline_index + 1:]

            payload = self._payload_of(line)
            if payload is None:
                continue

            if payload == self.done_sentinel:
                self.done = True
                frames.append(StreamFrame(kind=FrameKind.DONE, payload=payload))
                break

            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                self.stats['deferred_lines'] += 1
                self._buffer = line + "\n" + self._buffer
                break

            frames.append(StreamFrame(kind=FrameKind.DATA, payload=payload, data=data))

        self.stats['total_frames'] += len(frames)
        return frames

    def finish(self) -> list[StreamFrame]:
        """
        Final pass over whatever is left once the body is exhausted.

        Same line rules as `feed`, except that unparseable lines are dropped:
        no further bytes will arrive to complete them.
        """
        if self.done:
            if self._buffer.strip():
                logger.debug("Discarding %d chars after end sentinel", len(self._buffer))
            self._buffer = ""
            return []

        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        if not remainder.strip():
            return []

        frames: list[StreamFrame] = []
        for raw_line in remainder.split("\n"):
            payload = self._payload_of(raw_line)
            if payload is None or payload == self.done_sentinel:
                continue

            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                self.stats['dropped_lines'] += 1
                logger.debug("Dropping unparseable trailing frame: %.80s", payload)
                continue

            frames.append(StreamFrame(kind=FrameKind.DATA, payload=payload, data=data))

        self.stats['total_frames'] += len(frames)
        return frames

    def _payload_of(self, line: str) -> str | None:
        """Payload of a `data:` line, or None for lines that carry nothing."""
        if line.endswith("\r"):
            line = line[:-1]
        if line.startswith(":") or not line.strip():
            return None
        if not line.startswith(self.data_prefix):
            return None
        return line[len(self.data_prefix):].strip()

    def get_stats(self) -> dict[str, int]:
        """Get parser statistics for monitoring."""
        return self.stats.copy()


def parse_deltas(chunks: list[bytes]) -> list[str]:
    """Run a whole chunk sequence through a fresh parser and collect deltas."""
    parser = SSEFrameParser()
    frames: list[StreamFrame] = []
    for chunk in chunks:
        frames.extend(parser.feed(chunk))
        if parser.done:
            break
    frames.extend(parser.finish())
    return [
        delta for frame in frames
        if (delta := frame.content_delta)
    ]
