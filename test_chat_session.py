#!/usr/bin/env python3
"""
Tests for ChatSession: streaming into one message, extraction, the sanction
trigger, failure fallback and reset cancellation.

The gateway is faked with httpx.MockTransport.
"""

import asyncio
import json
import typing

import httpx
import pytest

from loan_assistant.chat.sanction import SanctionState
from loan_assistant.chat.session import DEFAULT_FALLBACK_MESSAGE, ChatSession
from loan_assistant.gateway.client import GatewayClient

GATEWAY_CONFIG = {
    "base_url": "https://gateway.test/functions/v1/",
    "endpoints": {
        "chat": "loan-chat",
        "validate_document": "validate-document",
        "analyze_documents": "analyze-documents",
        "generate_sanction_letter": "generate-sanction-letter",
    },
    "http_client": {"connect_timeout": 5.0, "read_timeout": 5.0},
}

CHAT_CONFIG = {
    "fallback_message": DEFAULT_FALLBACK_MESSAGE,
    "approval_keywords": ["approved", "sanctioned", "congratulations", "sanction letter"],
    "min_loan_amount": 10000,
    "sanction": {
        "delay_seconds": 0,
        "defaults": {
            "customer_name": "Valued Customer",
            "interest_rate": 10.5,
            "tenure_months": 36,
            "purpose": "Personal Use",
            "credit_score": 750,
        },
    },
}

APPROVAL_REPLY = (
    "Congratulations! Your loan of ₹5,00,000 is approved. EMI of ₹16,497 "
    "at 11.5% per annum for 36 months."
)


def sse_body(*deltas: str) -> bytes:
    frames = [
        "data: " + json.dumps({"choices": [{"delta": {"content": d}}]}) + "\n\n"
        for d in deltas
    ]
    return ("".join(frames) + "data: [DONE]\n\n").encode()


def split_reply(text: str, size: int = 9) -> list[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


class FakeGateway:
    """Routes requests by endpoint and records what was sent."""

    def __init__(self, replies=None, chat_status=200, sanction_status=200):
        self.replies = list(replies or [])
        self.chat_status = chat_status
        self.sanction_status = sanction_status
        self.chat_requests: list[dict] = []
        self.sanction_requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if request.url.path.endswith("/loan-chat"):
            self.chat_requests.append(body)
            if self.chat_status != 200:
                return httpx.Response(self.chat_status, json={"error": "Rate limits exceeded"})
            reply = self.replies.pop(0)
            return httpx.Response(
                200,
                content=sse_body(*split_reply(reply)),
                headers={"content-type": "text/event-stream"},
            )
        if request.url.path.endswith("/generate-sanction-letter"):
            self.sanction_requests.append(body)
            if self.sanction_status != 200:
                return httpx.Response(self.sanction_status, json={"error": "Upload failed"})
            return httpx.Response(200, json={
                "success": True,
                "url": "https://files.test/sanction-letters/letter.pdf",
                "fileName": "letter.pdf",
            })
        return httpx.Response(404)


def make_session(gateway, notices=None, updates=None):
    client = GatewayClient(GATEWAY_CONFIG, "test-key", transport=httpx.MockTransport(gateway))
    session = ChatSession(
        client,
        CHAT_CONFIG,
        notify=notices.append if notices is not None else None,
        on_update=(
            (lambda msgs: updates.append([(m.role, m.content) for m in msgs]))
            if updates is not None else None
        ),
    )
    return client, session


class TestStreaming:
    """Deltas of one turn accumulate into one assistant message."""

    @pytest.mark.asyncio
    async def test_reply_is_one_message(self):
        gateway = FakeGateway(replies=["Hello! How much would you like to borrow?"])
        updates = []
        client, session = make_session(gateway, updates=updates)

        async with client:
            reply = await session.send_message("Hi")

        assert reply is not None
        assert reply.content == "Hello! How much would you like to borrow?"
        assert [m.role for m in session.messages] == ["user", "assistant"]
        assert not session.is_loading

        # Every snapshot holds at most one assistant message for the turn
        assert len(updates) > 2
        assert all(sum(role == "assistant" for role, _ in snap) <= 1 for snap in updates)
        lengths = [len(snap[-1][1]) for snap in updates if snap[-1][0] == "assistant"]
        assert lengths == sorted(lengths)

    @pytest.mark.asyncio
    async def test_invalid_utf8_in_stream(self):
        body = (
            b'data: {"choices":[{"delta":{"content":"Loan \xff ready"}}]}\n\n'
            b"data: [DONE]\n\n"
        )
        client = GatewayClient(
            GATEWAY_CONFIG, "k",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=body)),
        )
        session = ChatSession(client, CHAT_CONFIG)

        async with client:
            reply = await session.send_message("Hi")

        assert reply.content == "Loan \ufffd ready"
        assert [m.role for m in session.messages] == ["user", "assistant"]
        assert not session.is_loading

    @pytest.mark.asyncio
    async def test_request_carries_history_and_context(self):
        gateway = FakeGateway(replies=[
            "A loan of ₹3,00,000 is possible.",
            "Sure, let's continue.",
        ])
        client, session = make_session(gateway)

        async with client:
            await session.send_message("Can I borrow?")
            await session.send_message("Great")

        first, second = gateway.chat_requests
        assert first == {
            "messages": [{"role": "user", "content": "Can I borrow?"}],
            "conversationContext": {},
        }
        assert [m["role"] for m in second["messages"]] == ["user", "assistant", "user"]
        assert second["conversationContext"] == {"loanAmount": 300000}

    @pytest.mark.asyncio
    async def test_blank_message_is_ignored(self):
        gateway = FakeGateway()
        client, session = make_session(gateway)

        async with client:
            assert await session.send_message("   ") is None

        assert session.messages == []
        assert gateway.chat_requests == []

    @pytest.mark.asyncio
    async def test_send_while_loading_is_ignored(self):
        gateway = FakeGateway(replies=["First reply"])
        client, session = make_session(gateway)

        async with client:
            first = asyncio.create_task(session.send_message("one"))
            await asyncio.sleep(0)
            assert session.is_loading
            assert await session.send_message("two") is None
            await first

        assert [m.content for m in session.messages if m.role == "user"] == ["one"]
        assert len(gateway.chat_requests) == 1


class TestFailureFallback:
    """Gateway failures become exactly one apology message."""

    @pytest.mark.asyncio
    async def test_rate_limited_reply(self):
        gateway = FakeGateway(chat_status=429)
        client, session = make_session(gateway)

        async with client:
            reply = await session.send_message("Hi")

        assert reply is not None
        assert reply.content == DEFAULT_FALLBACK_MESSAGE
        assert [m.role for m in session.messages] == ["user", "assistant"]
        assert not session.is_loading

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = GatewayClient(GATEWAY_CONFIG, "k", transport=httpx.MockTransport(handler))
        session = ChatSession(client, CHAT_CONFIG)

        async with client:
            reply = await session.send_message("Hi")

        assert reply.content == DEFAULT_FALLBACK_MESSAGE
        assert len(session.messages) == 2
        assert not session.is_loading


class TestSanctionGeneration:
    """Approval triggers one sanction letter per conversation."""

    @pytest.mark.asyncio
    async def test_generates_once_across_approvals(self):
        gateway = FakeGateway(replies=[APPROVAL_REPLY, "Yes, your loan is approved!"])
        notices = []
        client, session = make_session(gateway, notices=notices)

        async with client:
            await session.send_message("Please approve my loan")
            await session.send_message("Is it approved?")
            await session.wait_for_background()

        assert len(gateway.sanction_requests) == 1
        sent = gateway.sanction_requests[0]
        assert sent["loanAmount"] == 500000
        assert sent["emiAmount"] == 16497
        assert sent["interestRate"] == 11.5
        assert sent["tenureMonths"] == 36
        assert sent["customerName"] == "Valued Customer"
        assert sent["applicationId"] == session.application_id

        assert session.sanction.generated
        assert [n.level for n in notices] == ["success"]
        assert notices[0].description == "https://files.test/sanction-letters/letter.pdf"

    @pytest.mark.asyncio
    async def test_failure_notifies_and_does_not_retry(self):
        gateway = FakeGateway(replies=[APPROVAL_REPLY, APPROVAL_REPLY], sanction_status=500)
        notices = []
        client, session = make_session(gateway, notices=notices)

        async with client:
            await session.send_message("Approve please")
            await session.wait_for_background()
            await session.send_message("Again?")
            await session.wait_for_background()

        assert len(gateway.sanction_requests) == 1
        assert session.sanction.state is SanctionState.FAILED
        assert [n.level for n in notices] == ["error"]
        assert notices[0].title == "Sanction letter failed"

    @pytest.mark.asyncio
    async def test_no_letter_without_amount(self):
        gateway = FakeGateway(replies=["Congratulations on your new job!"])
        client, session = make_session(gateway)

        async with client:
            await session.send_message("I got a job")
            await session.wait_for_background()

        assert gateway.sanction_requests == []
        assert session.sanction.state is SanctionState.AWAITING_APPROVAL


class TestReset:
    """Reset cancels in-flight work and discards its results."""

    @pytest.mark.asyncio
    async def test_reset_cancels_stream(self):
        streaming = asyncio.Event()

        async def endless_body():
            yield sse_body("Partial")[:-len(b"data: [DONE]\n\n")]
            streaming.set()
            await asyncio.Event().wait()

        def handler(request):
            return httpx.Response(200, content=endless_body())

        client = GatewayClient(GATEWAY_CONFIG, "k", transport=httpx.MockTransport(handler))
        session = ChatSession(client, CHAT_CONFIG)
        old_application_id = session.application_id

        async with client:
            send = asyncio.create_task(session.send_message("Hi"))
            await asyncio.wait_for(streaming.wait(), timeout=2)
            assert session.messages[-1].content == "Partial"

            await session.reset()
            result = await asyncio.wait_for(send, timeout=2)

        assert result is None
        assert session.messages == []
        assert not session.is_loading
        assert session.context.to_payload() == {}
        assert session.application_id != old_application_id

    @pytest.mark.asyncio
    async def test_reset_cancels_pending_sanction(self):
        gateway = FakeGateway(replies=[APPROVAL_REPLY])
        client, session = make_session(gateway)
        session.sanction_delay = 60

        async with client:
            await session.send_message("Approve please")
            assert session.sanction.state is SanctionState.GENERATING

            await session.reset()
            await session.wait_for_background()

        assert gateway.sanction_requests == []
        assert session.sanction.state is SanctionState.AWAITING_APPROVAL

    @pytest.mark.asyncio
    async def test_update_context_merges(self):
        gateway = FakeGateway()
        client, session = make_session(gateway)

        async with client:
            session.update_context({"kyc_verified": True, "monthly_income": 80000})

        assert session.context.to_payload() == {"kycVerified": True, "monthlyIncome": 80000}


class TestAnnotations:

    def test_client_is_typed_as_gateway_client(self):
        hints = typing.get_type_hints(
            ChatSession.__init__, localns={"GatewayClient": GatewayClient}
        )
        assert hints["client"] is GatewayClient
