"""Conversational core: classification, session memory, routing and action resolution."""

from src.chat.classifier import EXIT_WORDS, classify_input
from src.chat.session import MAX_TURNS, ConversationSession
from src.chat.router import (
    SYSTEM_INSTRUCTION,
    NaturalLanguageRouter,
    detect_action_hints,
)
from src.chat.approvals import ApprovalDecision, is_affirmative, parse_approval_reply
from src.chat.actions import (
    ActionOutcome,
    ActionSuggestionResolver,
    ConfirmationRequest,
    Prompter,
    ResolutionContext,
)

__all__ = [
    "EXIT_WORDS",
    "MAX_TURNS",
    "SYSTEM_INSTRUCTION",
    "ActionOutcome",
    "ActionSuggestionResolver",
    "ApprovalDecision",
    "ConfirmationRequest",
    "ConversationSession",
    "NaturalLanguageRouter",
    "Prompter",
    "ResolutionContext",
    "classify_input",
    "detect_action_hints",
    "is_affirmative",
    "parse_approval_reply",
]
