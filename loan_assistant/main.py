"""
Terminal front end for the loan assistant.

Runs onboarding, then an interactive chat with the assistant. Commands:
    /context                 show what the assistant has learned so far
    /kyc PAN AADHAAR INCOME  validate and analyze KYC document files
    /emi AMOUNT RATE MONTHS  quick EMI calculation
    /sip MONTHLY [PROFILE]   five-year SIP projection and allocation
    /reset                   start a new conversation
    /quit                    exit
"""

from __future__ import annotations

import asyncio
import contextlib
import getpass
import logging
import signal
import sys

from loan_assistant.chat.models import ChatMessage
from loan_assistant.chat.session import ChatSession
from loan_assistant.config import Configuration
from loan_assistant.documents import (
    DocumentRejectedError,
    KycVerifier,
    analysis_context_updates,
    load_document,
)
from loan_assistant.finance.emi import calculate_emi
from loan_assistant.finance.portfolio import allocate, project_sip_value
from loan_assistant.gateway.client import GatewayClient
from loan_assistant.logging_utils import configure_logging
from loan_assistant.notices import Notice
from loan_assistant.onboarding import OnboardingRepo

PRIVACY_TEXT = (
    "Your documents and conversation are sent to our AI service to assess "
    "your loan application. We do not share them with third parties."
)
TOUR_TEXT = (
    "Tell the assistant how much you need and for how long. It will check "
    "eligibility, quote an EMI, and issue a sanction letter once approved. "
    "Type /kyc to verify your documents at any time."
)


class TerminalView:
    """Prints streamed message snapshots as they grow."""

    def __init__(self) -> None:
        self._printed: dict[str, int] = {}

    def on_update(self, messages: list[ChatMessage]) -> None:
        if not messages:
            self._printed.clear()
            return
        message = messages[-1]
        if message.role != "assistant":
            return

        shown = self._printed.get(message.id)
        if shown is None:
            print("\nAssistant: ", end="", flush=True)
            shown = 0
        print(message.content[shown:], end="", flush=True)
        self._printed[message.id] = len(message.content)

    def end_turn(self) -> None:
        print()

    @staticmethod
    def notify(notice: Notice) -> None:
        marker = {"success": "+", "error": "!", "warning": "!", "info": "-"}[notice.level]
        line = f"[{marker}] {notice.title}"
        if notice.description:
            line += f": {notice.description}"
        print(f"\n{line}", flush=True)


async def prompt(text: str) -> str:
    return await asyncio.to_thread(input, text)


async def run_onboarding(repo: OnboardingRepo, user_id: str) -> bool:
    """Walk the user through onboarding; False if they decline the privacy terms."""
    record = await repo.get(user_id)
    if record.show_privacy_modal:
        print(PRIVACY_TEXT)
        answer = (await prompt("Do you agree? [y/N] ")).strip().lower()
        if answer not in ("y", "yes"):
            return False
        record = await repo.agree_to_privacy(user_id)

    if record.show_tour:
        print(TOUR_TEXT)
        answer = (await prompt("Press Enter to continue, or type 'skip': ")).strip()
        if answer.lower() == "skip":
            await repo.skip_tour(user_id)
        else:
            await repo.complete_tour(user_id)
    return True


async def run_kyc(
    session: ChatSession,
    verifier: KycVerifier,
    config: Configuration,
    paths: list[str],
) -> None:
    if len(paths) != 3:
        print("Usage: /kyc PAN_FILE AADHAAR_FILE INCOME_FILE")
        return

    documents_config = config.get_documents_config()
    for document_type, path in zip(("pan", "aadhaar", "income"), paths, strict=True):
        try:
            upload = load_document(path, document_type, documents_config)
        except (DocumentRejectedError, OSError) as e:
            print(f"Cannot use {path}: {e}")
            return
        result = await verifier.validate(upload)
        if result is not None:
            status = "valid" if result.is_valid else "invalid"
            print(f"{document_type}: {status} ({result.confidence:.0f}% confidence)")
            for error in result.errors:
                print(f"  - {error}")

    context = session.context
    analysis = await verifier.analyze(
        context.customer_name or "Customer", context.loan_amount or 500000
    )
    if analysis is not None:
        session.update_context(analysis_context_updates(analysis))
        for recommendation in analysis.recommendations:
            print(f"  * {recommendation}")


async def chat_loop(
    session: ChatSession,
    view: TerminalView,
    verifier: KycVerifier,
    config: Configuration,
) -> None:
    while True:
        line = (await prompt("\nYou: ")).strip()
        if not line:
            continue

        command, *args = line.split()
        if command == "/quit":
            return
        if command == "/reset":
            await session.reset()
            verifier.reset()
            print("Started a new conversation.")
        elif command == "/context":
            print(session.context.to_payload() or "Nothing learned yet.")
        elif command == "/kyc":
            await run_kyc(session, verifier, config, args)
        elif command == "/emi":
            try:
                amount, rate, months = float(args[0]), float(args[1]), int(args[2])
                print(f"EMI: ₹{calculate_emi(amount, rate, months):,}")
            except (IndexError, ValueError) as e:
                print(f"Usage: /emi AMOUNT RATE MONTHS ({e})")
        elif command == "/sip":
            try:
                monthly = float(args[0])
                profile = args[1] if len(args) > 1 else "moderate"
                split = allocate(monthly, profile)
                print(f"5-year value: ₹{project_sip_value(monthly):,}")
                print(", ".join(f"{name} ₹{amount:,}" for name, amount in split.items()))
            except (IndexError, ValueError) as e:
                print(f"Usage: /sip MONTHLY [conservative|moderate|aggressive] ({e})")
        else:
            await session.send_message(line)
            view.end_turn()


async def main() -> None:
    """Main entry point - terminal chat with graceful shutdown handling."""
    config = Configuration()
    configure_logging(config.get_logging_config())

    gateway_config = config.get_gateway_config()
    api_key = config.gateway_api_key
    chat_config = config.get_chat_config()
    onboarding_config = config.get_onboarding_config()

    # Setup graceful shutdown handler
    shutdown_event = asyncio.Event()

    def signal_handler() -> None:
        """Handle shutdown signals gracefully."""
        logging.info("Received shutdown signal, initiating graceful shutdown...")
        shutdown_event.set()

    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, signal_handler)

    view = TerminalView()
    async with (
        OnboardingRepo(onboarding_config["db_path"]) as repo,
        GatewayClient(gateway_config, api_key) as client,
    ):
        session = ChatSession(
            client, chat_config, notify=view.notify, on_update=view.on_update
        )
        verifier = KycVerifier(client, notify=view.notify)

        try:
            if not await run_onboarding(repo, getpass.getuser()):
                print("You need to accept the privacy terms to continue.")
                return

            chat_task = asyncio.create_task(chat_loop(session, view, verifier, config))
            shutdown_task = asyncio.create_task(shutdown_event.wait())

            # Wait for either the user quitting or a shutdown signal
            done, pending = await asyncio.wait(
                [chat_task, shutdown_task], return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

            if chat_task in done and (exception := chat_task.exception()) is not None:
                raise exception

        except (KeyboardInterrupt, EOFError):
            logging.info("Input closed, shutting down...")
        finally:
            await session.reset()
            logging.info("Application shutdown complete")


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
