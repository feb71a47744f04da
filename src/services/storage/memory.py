"""
In-Memory Storage Implementation

Process-local ledger and audit storage. Used as the default backend
when no spreadsheet is configured, and by the test-suite.

Nothing here is persisted; data lives as long as the store object.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from src.models.audit import AuditEvent
from src.models.ledger import Account, AccountSummary, Transaction
from src.services.storage.interface import (
    AuditStorageInterface,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)


class InMemoryLedgerStore(LedgerStoreInterface):
    """Ledger Store backed by plain Python lists."""

    def __init__(
        self,
        accounts: Optional[list[Account]] = None,
        transactions: Optional[list[Transaction]] = None,
        today: Optional[date] = None,
    ):
        self._accounts: list[Account] = []
        self._transactions: list[Transaction] = []
        self._next_account_id = 1
        self._next_transaction_id = 1
        # Fixed "today" makes recent-activity counts deterministic in tests
        self._today = today

        for account in accounts or []:
            self._insert_account(account)
        for transaction in transactions or []:
            self._insert_transaction(transaction)

    def _insert_account(self, account: Account) -> Account:
        if account.id is None:
            account = account.model_copy(update={"id": self._next_account_id})
        self._next_account_id = max(self._next_account_id, account.id) + 1
        self._accounts.append(account)
        return account

    def _insert_transaction(self, transaction: Transaction) -> Transaction:
        account = self._find_account(transaction.account_id)
        update = {"account_name": account.name if account else None}
        if transaction.id is None:
            update["id"] = self._next_transaction_id
        transaction = transaction.model_copy(update=update)
        self._next_transaction_id = max(self._next_transaction_id, transaction.id) + 1
        self._transactions.append(transaction)
        return transaction

    def _find_account(self, account_id: int) -> Optional[Account]:
        for account in self._accounts:
            if account.id == account_id:
                return account
        return None

    def _by_date_desc(self, transactions: list[Transaction]) -> list[Transaction]:
        return sorted(transactions, key=lambda t: t.transaction_date, reverse=True)

    async def list_accounts(self) -> list[Account]:
        return sorted(self._accounts, key=lambda a: a.created_at, reverse=True)

    async def list_recent_transactions(self, limit: int = 50) -> list[Transaction]:
        return self._by_date_desc(self._transactions)[:limit]

    async def list_uncategorized_transactions(self) -> list[Transaction]:
        return self._by_date_desc(
            [t for t in self._transactions if t.needs_categorization]
        )

    async def get_account_summary(self, recent_days: int = 7) -> AccountSummary:
        cutoff = (self._today or date.today()) - timedelta(days=recent_days)
        return AccountSummary(
            total_accounts=len(self._accounts),
            total_balance=sum((a.balance for a in self._accounts), Decimal("0.00")),
            recent_transactions=sum(
                1 for t in self._transactions if t.transaction_date >= cutoff
            ),
            uncategorized_transactions=sum(
                1 for t in self._transactions if t.needs_categorization
            ),
        )

    async def update_transaction_category(
        self,
        transaction_id: int,
        category: str,
        user_approved: bool = True,
    ) -> Transaction:
        for idx, transaction in enumerate(self._transactions):
            if transaction.id == transaction_id:
                updated = transaction.model_copy(update={
                    "category": category,
                    "needs_categorization": False,
                    "user_approved": user_approved,
                })
                self._transactions[idx] = updated
                return updated
        raise NotFoundError(f"Transaction not found: {transaction_id}")

    async def create_account(self, account: Account) -> Account:
        return self._insert_account(account)

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        if self._find_account(transaction.account_id) is None:
            raise StorageError(f"Unknown account: {transaction.account_id}")
        return self._insert_transaction(transaction)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in memory."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
