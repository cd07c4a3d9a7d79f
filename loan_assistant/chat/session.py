"""
Chat session for the loan assistant.

This module owns one conversation end to end:
- Sending user turns and streaming the assistant reply into a single message
- Extracting loan facts from each completed reply into the conversation context
- Firing the one-shot sanction-letter generation once an approval is seen
- Converting gateway failures into a fallback reply or a toast
- Cancelling in-flight work when the conversation is reset

State is only touched from the event loop; the per-session `is_loading` flag
rejects a second submission while a reply is streaming.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from loan_assistant.gateway.exceptions import GatewayError
from loan_assistant.gateway.models import SanctionLetterResult
from loan_assistant.logging_utils import (
    ContextualLogger,
    GatewayErrorHandler,
    operation_context,
)
from loan_assistant.notices import Notice, Notifier

from .accumulator import AssistantAccumulator
from .context_extractor import MIN_LOAN_AMOUNT, extract_context
from .models import ChatMessage, ConversationContext
from .sanction import SanctionTrigger, build_sanction_request
from .scope import ConversationScope

if TYPE_CHECKING:  # pragma: no cover
    from loan_assistant.gateway.client import GatewayClient

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_MESSAGE = (
    "I apologize, but I'm experiencing some technical difficulties. "
    "Please try again in a moment. 🙏"
)

MessagesListener = Callable[[list[ChatMessage]], None]


class ChatSession:
    """
    Conversation orchestrator.
    1. Takes your message
    2. Streams the assistant reply from the gateway
    3. Learns loan facts from the reply
    4. Generates the sanction letter once, when the loan is approved
    """

    def __init__(
        self,
        client: GatewayClient,
        chat_config: dict[str, Any],
        *,
        notify: Notifier | None = None,
        on_update: MessagesListener | None = None,
    ):
        self.client = client
        self.chat_config = chat_config
        self.notify = notify
        self.on_update = on_update

        sanction_config = chat_config.get("sanction", {})
        self.fallback_message: str = chat_config.get(
            "fallback_message", DEFAULT_FALLBACK_MESSAGE
        )
        self.min_loan_amount: int = chat_config.get("min_loan_amount", MIN_LOAN_AMOUNT)
        self.sanction_delay: float = sanction_config.get("delay_seconds", 1.5)
        self.sanction_defaults: dict[str, Any] = sanction_config.get("defaults", {})

        self.messages: list[ChatMessage] = []
        self.context = ConversationContext()
        self.is_loading = False
        self.application_id = str(uuid.uuid4())
        self.sanction = SanctionTrigger(chat_config.get("approval_keywords", ()))

        self._accumulator = AssistantAccumulator()
        self._scope = ConversationScope()

    async def send_message(self, content: str) -> ChatMessage | None:
        """
        Send a user turn and wait for the assistant reply.

        Returns the assistant message (the fallback apology on failure), or
        None when the turn was rejected, produced no text, or was cancelled by
        a reset.
        """
        content = content.strip()
        if not content:
            return None
        if self.is_loading:
            logger.warning("Ignoring message while a reply is still streaming")
            return None

        user_message = ChatMessage(role="user", content=content)
        history = [m.to_api() for m in self.messages] + [user_message.to_api()]
        self.messages.append(user_message)
        self._publish()

        self.is_loading = True
        generation = self._scope.generation
        turn_id = str(uuid.uuid4())
        task = self._scope.spawn(
            self._run_turn(turn_id, history), name=f"chat-turn-{turn_id}"
        )

        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            # After a reset the session state belongs to the new conversation
            if self._scope.generation == generation:
                self.is_loading = False
                self._accumulator.discard(turn_id)

        if task.cancelled():
            return None
        return task.result()

    async def _run_turn(
        self, turn_id: str, history: list[dict[str, str]]
    ) -> ChatMessage | None:
        try:
            async with operation_context(
                "chat turn",
                context={"application_id": self.application_id, "turn_id": turn_id},
            ):
                async for delta in self.client.stream_chat(
                    history, self.context.to_payload()
                ):
                    message, created = self._accumulator.append(turn_id, delta)
                    if created:
                        self.messages.append(message)
                    self._publish()

        except GatewayError as e:
            category, _ = GatewayErrorHandler.classify_error(e)
            logger.error(
                f"Chat request failed ({category}, status={e.status_code}): {e}"
            )
            fallback = ChatMessage(role="assistant", content=self.fallback_message)
            self.messages.append(fallback)
            self._publish()
            return fallback

        reply = self._accumulator.get(turn_id)
        if reply is None:
            logger.warning("Chat stream completed without any content")
            return None

        self._apply_reply(reply.content)
        return reply

    def _apply_reply(self, text: str) -> None:
        """Merge facts from a completed reply and maybe schedule the sanction letter."""
        self.context = extract_context(
            text, self.context, min_loan_amount=self.min_loan_amount
        )

        if self.sanction.should_fire(self.context, text) and self.sanction.begin():
            logger.info(
                f"Approval detected for application {self.application_id}; "
                f"generating sanction letter in {self.sanction_delay}s"
            )
            self._scope.spawn(
                self._generate_sanction_letter(self.context, self.application_id),
                name="sanction-letter",
            )

    async def _generate_sanction_letter(
        self, context: ConversationContext, application_id: str
    ) -> SanctionLetterResult | None:
        sanction_logger = ContextualLogger({"application_id": application_id})
        await asyncio.sleep(self.sanction_delay)

        request = build_sanction_request(context, application_id, self.sanction_defaults)
        try:
            result = await self.client.generate_sanction_letter(request)
        except GatewayError as e:
            category, _ = GatewayErrorHandler.classify_error(e)
            sanction_logger.error(
                "Sanction letter generation failed", error_category=category
            )
            self.sanction.fail(str(e))
            self._notify(GatewayErrorHandler.to_notice(e, "Sanction letter failed"))
            return None

        sanction_logger.info(
            "Sanction letter generated",
            loan_amount=request.loan_amount,
            emi_amount=request.emi_amount,
        )
        self.sanction.complete(result.url)
        self._notify(Notice(
            level="success",
            title="Sanction letter ready",
            description=result.url,
        ))
        return result

    def update_context(self, updates: dict[str, Any]) -> ConversationContext:
        """Merge facts learned outside the chat (e.g. from KYC analysis)."""
        self.context = self.context.merge(updates)
        return self.context

    async def reset(self) -> None:
        """Discard the conversation and cancel everything still running for it."""
        await self._scope.cancel_all()
        self.messages.clear()
        self.context = ConversationContext()
        self.sanction.reset()
        self._accumulator.reset()
        self.is_loading = False
        self.application_id = str(uuid.uuid4())
        self._publish()

    async def wait_for_background(self) -> None:
        """Wait for scheduled work such as sanction-letter generation."""
        await self._scope.join()

    def _publish(self) -> None:
        if self.on_update is not None:
            self.on_update(list(self.messages))

    def _notify(self, notice: Notice) -> None:
        if self.notify is not None:
            self.notify(notice)
