"""User-facing notifications (toasts) raised by background operations."""

from __future__ import annotations

from collections.abc import Callable
from typing import Literal

from pydantic import BaseModel

NoticeLevel = Literal["info", "success", "warning", "error"]


class Notice(BaseModel):
    level: NoticeLevel
    title: str
    description: str = ""


Notifier = Callable[[Notice], None]
