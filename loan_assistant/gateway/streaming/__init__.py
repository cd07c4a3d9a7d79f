"""
Streaming support for the chat completion endpoint.

This module contains:
- SSE frame parsing with carry-over of partial lines
- Frame models and content-delta extraction
"""

from .models import FrameKind, StreamFrame
from .parser import SSEFrameParser, parse_deltas

__all__ = ["FrameKind", "SSEFrameParser", "StreamFrame", "parse_deltas"]
