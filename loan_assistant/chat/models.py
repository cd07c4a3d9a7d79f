# loan_assistant/chat/models.py
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Role = Literal["user", "assistant"]


class ChatMessage(BaseModel):
    """
    One entry of the visible conversation.

    Assistant messages are created on the first streamed delta of a turn and
    grow in place until the stream ends.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: Role
    content: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_api(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ConversationContext(BaseModel):
    """
    Sparse facts gathered from the conversation so far.

    Immutable: merging returns a new record, and a merge never unsets a field.
    """
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    customer_name: str | None = None
    loan_amount: int | None = None
    tenure: int | None = None
    interest_rate: float | None = None
    emi: int | None = None
    credit_score: int | None = None
    kyc_verified: bool | None = None
    purpose: str | None = None
    employment_type: str | None = None
    monthly_income: int | None = None

    def merge(self, updates: dict[str, Any]) -> ConversationContext:
        """Overlay non-None updates; absent or None keys keep their value."""
        changes = {k: v for k, v in updates.items() if v is not None}
        if not changes:
            return self
        return self.model_copy(update=changes)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
