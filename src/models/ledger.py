"""
Ledger Data Models

Accounts and transactions as the Ledger Store hands them to the
conversational core. The core only reads these records and, on user
approval, asks the store to update a transaction's category.

DESIGN DECISION: We use Pydantic v2 models for ledger records.
Amounts are Decimal so balances and totals never drift through
float rounding.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Kinds of accounts the ledger tracks."""
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT_CARD = "credit_card"
    LOAN = "loan"
    OTHER = "other"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Account(BaseModel):
    """A bank or card account held in the ledger."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Store-assigned identifier (None until created)"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Display name of the account"
    )
    account_type: AccountType = Field(
        default=AccountType.CHECKING,
        description="Kind of account"
    )
    balance: Decimal = Field(
        default=Decimal("0.00"),
        description="Current balance (negative for credit balances owed)"
    )
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
    )
    bank_name: Optional[str] = None
    account_number_last4: Optional[str] = Field(
        default=None,
        pattern=r"^\d{4}$",
        description="Last four digits of the account number"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Transaction(BaseModel):
    """
    A single ledger transaction.

    Positive amounts are money in, negative amounts are money out.
    A transaction needs categorization until a user approves a category.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Store-assigned identifier (None until created)"
    )
    account_id: int = Field(..., description="Owning account")
    amount: Decimal = Field(..., description="Signed amount")
    description: str = Field(..., min_length=1, max_length=500)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    merchant_name: Optional[str] = None
    transaction_date: date
    pending: bool = False

    needs_categorization: bool = Field(
        default=True,
        description="True until a category has been approved"
    )
    ai_suggested_category: Optional[str] = Field(
        default=None,
        description="Category proposed by the assistant, not yet approved"
    )
    user_approved: bool = Field(
        default=False,
        description="Was the category explicitly approved by the user?"
    )

    # Denormalized for display
    account_name: Optional[str] = None

    @field_validator('category', 'ai_suggested_category')
    @classmethod
    def blank_category_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    def format_amount(self, currency_symbol: str = "$") -> str:
        """Signed amount, e.g. '+$3,500.00' or '-$89.99'."""
        sign = "+" if self.amount > 0 else "-"
        return f"{sign}{currency_symbol}{abs(self.amount):,.2f}"


class AccountSummary(BaseModel):
    """Counts and totals shown by /status."""

    total_accounts: int = Field(default=0, ge=0)
    total_balance: Decimal = Decimal("0.00")
    recent_transactions: int = Field(default=0, ge=0)
    uncategorized_transactions: int = Field(default=0, ge=0)

    @classmethod
    def empty(cls) -> "AccountSummary":
        """Summary used when the ledger has no data (or cannot be reached)."""
        return cls()
