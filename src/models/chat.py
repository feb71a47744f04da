"""
Conversation Models

Value objects that flow through one conversational turn:

    raw line -> ClassifiedInput -> TurnResult -> ActionSuggestion(s)

Turns are the only objects that outlive a single turn, and only inside
a ConversationSession.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.models.ledger import Transaction


# =============================================================================
# ENUMS
# =============================================================================

class TurnRole(str, Enum):
    """Who produced a turn."""
    USER = "user"
    ASSISTANT = "assistant"


class InputKind(str, Enum):
    """How a raw line of input is interpreted."""
    NOOP = "noop"
    EXIT = "exit"
    SLASH_COMMAND = "slash_command"
    NATURAL_LANGUAGE = "natural_language"


class TurnStatus(str, Enum):
    """How a turn ended. Every status is a normal conversational outcome."""
    OK = "ok"
    UNKNOWN_COMMAND = "unknown_command"
    DEGRADED = "degraded"  # A collaborator failed; reply is a fallback


class ActionKind(str, Enum):
    """
    Action kinds the resolver knows how to handle.

    ActionSuggestion.kind is a plain string so new kinds can be emitted
    before the resolver learns them; unknown kinds fall back to a
    generic pass-through.
    """
    SUGGEST_REVIEW = "suggest_review"
    CONFIRM_TRANSACTIONS = "confirm_transactions"
    CATEGORIZE_EXPENSE = "categorize_expense"
    LOAD_SAMPLE_DATA = "load_sample_data"


# =============================================================================
# TURNS
# =============================================================================

class Turn(BaseModel):
    """One message in a conversation. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: TurnRole
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ClassifiedInput(BaseModel):
    """Result of classifying one raw line."""
    model_config = ConfigDict(frozen=True)

    kind: InputKind
    raw: str = ""


# =============================================================================
# TURN RESULTS
# =============================================================================

class ActionSuggestion(BaseModel):
    """
    A structured follow-up attached to a reply.

    `data` carries whatever the kind needs, e.g. for
    confirm_transactions: {"transactions": [{id, description, amount,
    suggested_category}, ...]}.
    """

    kind: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def known_kind(self) -> Optional[ActionKind]:
        """The recognized kind, or None for kinds the resolver doesn't know."""
        try:
            return ActionKind(self.kind)
        except ValueError:
            return None


class TransactionCandidate(BaseModel):
    """A transaction offered to the user for category approval."""

    id: int
    description: str
    amount: Decimal
    transaction_date: Optional[date] = None
    suggested_category: Optional[str] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionCandidate":
        return cls(
            id=transaction.id,
            description=transaction.description,
            amount=transaction.amount,
            transaction_date=transaction.transaction_date,
            suggested_category=transaction.ai_suggested_category,
        )

    def format_line(self, number: int, currency_symbol: str = "$") -> str:
        sign = "+" if self.amount > 0 else "-"
        category = self.suggested_category or "no suggestion"
        return (
            f"{number}. {self.description} - "
            f"{sign}{currency_symbol}{abs(self.amount):,.2f} ({category})"
        )


def confirm_transactions_action(
    transactions: list[Transaction],
) -> ActionSuggestion:
    """Build a confirm_transactions suggestion for a batch of transactions."""
    return ActionSuggestion(
        kind=ActionKind.CONFIRM_TRANSACTIONS.value,
        data={
            "transactions": [
                TransactionCandidate.from_transaction(t).model_dump(mode="json")
                for t in transactions
            ],
        },
    )


class TurnResult(BaseModel):
    """Output of any handler: reply text plus suggested follow-ups."""

    reply_text: str
    suggested_actions: list[ActionSuggestion] = Field(default_factory=list)
    status: TurnStatus = TurnStatus.OK
    command: Optional[str] = Field(
        default=None,
        description="Canonical command name, for slash-command turns"
    )

    @property
    def degraded(self) -> bool:
        return self.status == TurnStatus.DEGRADED


class ExitSignal(BaseModel):
    """Returned instead of a TurnResult when the user asks to leave."""
    model_config = ConfigDict(frozen=True)

    farewell: str = "Thanks for using AI Bookkeeping! Have a great day!"
