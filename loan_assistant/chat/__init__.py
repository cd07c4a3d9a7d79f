from .accumulator import AssistantAccumulator
from .context_extractor import contains_approval, extract_context
from .models import ChatMessage, ConversationContext
from .sanction import SanctionState, SanctionTrigger, build_sanction_request
from .scope import ConversationScope
from .session import ChatSession

__all__ = [
    "AssistantAccumulator",
    "ChatMessage",
    "ChatSession",
    "ConversationContext",
    "ConversationScope",
    "SanctionState",
    "SanctionTrigger",
    "build_sanction_request",
    "contains_approval",
    "extract_context",
]
