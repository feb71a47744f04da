"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for ledger storage.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the conversational core decoupled from storage implementation

The interface is intentionally narrow. The conversational core never
issues raw queries; it calls these named operations and treats any
StorageError as "no data available".
"""

from abc import ABC, abstractmethod

from src.models.audit import AuditEvent
from src.models.ledger import Account, AccountSummary, Transaction


class LedgerStoreInterface(ABC):
    """
    Abstract interface for the Ledger Store collaborator.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """
        List all accounts, newest first.

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def list_recent_transactions(self, limit: int = 50) -> list[Transaction]:
        """
        List the most recent transactions.

        Args:
            limit: Maximum number of transactions to return

        Returns:
            Transactions ordered by date, newest first
        """
        pass

    @abstractmethod
    async def list_uncategorized_transactions(self) -> list[Transaction]:
        """
        List transactions still needing categorization, newest first.
        """
        pass

    @abstractmethod
    async def get_account_summary(self, recent_days: int = 7) -> AccountSummary:
        """
        Compute account and transaction counts plus the total balance.

        Args:
            recent_days: Window for counting recent transactions
        """
        pass

    @abstractmethod
    async def update_transaction_category(
        self,
        transaction_id: int,
        category: str,
        user_approved: bool = True,
    ) -> Transaction:
        """
        Set a transaction's category and mark it categorized.

        Returns:
            The updated transaction

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def create_account(self, account: Account) -> Account:
        """Create an account and return it with its assigned id."""
        pass

    @abstractmethod
    async def create_transaction(self, transaction: Transaction) -> Transaction:
        """Create a transaction and return it with its assigned id."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
