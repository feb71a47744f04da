"""
Data Models Package

This package contains all Pydantic models used by the bookkeeping assistant.
All data flowing through a conversational turn must conform to these schemas.
"""

from src.models.chat import (
    ActionKind,
    ActionSuggestion,
    ClassifiedInput,
    ExitSignal,
    InputKind,
    Turn,
    TurnResult,
    TurnRole,
    TransactionCandidate,
    TurnStatus,
    confirm_transactions_action,
)
from src.models.ledger import (
    Account,
    AccountSummary,
    AccountType,
    Transaction,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Conversation models
    "ActionKind",
    "ActionSuggestion",
    "ClassifiedInput",
    "ExitSignal",
    "InputKind",
    "Turn",
    "TurnResult",
    "TurnRole",
    "TransactionCandidate",
    "TurnStatus",
    "confirm_transactions_action",
    # Ledger models
    "Account",
    "AccountSummary",
    "AccountType",
    "Transaction",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
