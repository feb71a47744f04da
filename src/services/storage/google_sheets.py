"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the persistent ledger backend because:
1. Non-technical users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for a small business ledger)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing the conversational core.
"""

import json
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import GoogleSheetsSettings, get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.ledger import Account, AccountSummary, AccountType, Transaction
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)


# Column mappings for Accounts sheet
ACCOUNT_COLUMNS = [
    "id",
    "name",
    "account_type",
    "balance",
    "currency",
    "bank_name",
    "account_number_last4",
    "created_at",
]

# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "account_id",
    "amount",
    "description",
    "category",
    "subcategory",
    "merchant_name",
    "transaction_date",
    "pending",
    "needs_categorization",
    "ai_suggested_category",
    "user_approved",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# 1-based positions used for in-place updates
CATEGORY_COLUMN = TRANSACTION_COLUMNS.index("category") + 1
NEEDS_CATEGORIZATION_COLUMN = TRANSACTION_COLUMNS.index("needs_categorization") + 1
USER_APPROVED_COLUMN = TRANSACTION_COLUMNS.index("user_approved") + 1


def _safe_getter(row: list):
    """Handle short rows gracefully."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_accounts_sheet(self) -> gspread.Worksheet:
        """Get or create the Accounts worksheet."""
        return self._get_or_create_sheet(
            self._settings.accounts_sheet_name, ACCOUNT_COLUMNS, rows=100
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsLedgerStore(LedgerStoreInterface):
    """
    Google Sheets implementation of the Ledger Store.

    Accounts and transactions are stored one per row in two worksheets.
    Ids are integers assigned as max(existing id) + 1.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _account_to_row(self, account: Account) -> list:
        return [
            str(account.id),
            account.name,
            account.account_type.value,
            str(account.balance),
            account.currency,
            account.bank_name or "",
            account.account_number_last4 or "",
            account.created_at.isoformat(),
        ]

    def _row_to_account(self, row: list) -> Account:
        safe_get = _safe_getter(row)
        return Account(
            id=int(safe_get(0)),
            name=safe_get(1),
            account_type=AccountType(safe_get(2, "other")),
            balance=Decimal(safe_get(3, "0")),
            currency=safe_get(4, "USD"),
            bank_name=safe_get(5) or None,
            account_number_last4=safe_get(6) or None,
            created_at=datetime.fromisoformat(safe_get(7)),
        )

    def _transaction_to_row(self, transaction: Transaction) -> list:
        return [
            str(transaction.id),
            str(transaction.account_id),
            str(transaction.amount),
            transaction.description,
            transaction.category or "",
            transaction.subcategory or "",
            transaction.merchant_name or "",
            transaction.transaction_date.isoformat(),
            str(transaction.pending),
            str(transaction.needs_categorization),
            transaction.ai_suggested_category or "",
            str(transaction.user_approved),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        safe_get = _safe_getter(row)
        return Transaction(
            id=int(safe_get(0)),
            account_id=int(safe_get(1)),
            amount=Decimal(safe_get(2)),
            description=safe_get(3),
            category=safe_get(4) or None,
            subcategory=safe_get(5) or None,
            merchant_name=safe_get(6) or None,
            transaction_date=date.fromisoformat(safe_get(7)),
            pending=safe_get(8).lower() == "true",
            needs_categorization=safe_get(9, "True").lower() == "true",
            ai_suggested_category=safe_get(10) or None,
            user_approved=safe_get(11).lower() == "true",
        )

    def _read_accounts(self) -> list[Account]:
        sheet = self._client.get_accounts_sheet()
        accounts = []
        for row in sheet.get_all_values()[1:]:  # Skip header
            if not row or not row[0]:
                continue
            try:
                accounts.append(self._row_to_account(row))
            except Exception:
                continue  # Skip malformed rows
        return accounts

    def _read_transactions(self) -> list[Transaction]:
        sheet = self._client.get_transactions_sheet()
        account_names = {a.id: a.name for a in self._read_accounts()}
        transactions = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                transaction = self._row_to_transaction(row)
            except Exception:
                continue
            transaction.account_name = account_names.get(transaction.account_id)
            transactions.append(transaction)
        # Sort by date descending (newest first)
        transactions.sort(key=lambda t: t.transaction_date, reverse=True)
        return transactions

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def list_accounts(self) -> list[Account]:
        try:
            accounts = self._read_accounts()
        except Exception as e:
            raise StorageError(f"Failed to list accounts: {e}")
        accounts.sort(key=lambda a: a.created_at, reverse=True)
        return accounts

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def list_recent_transactions(self, limit: int = 50) -> list[Transaction]:
        try:
            return self._read_transactions()[:limit]
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

    async def list_uncategorized_transactions(self) -> list[Transaction]:
        try:
            return [t for t in self._read_transactions() if t.needs_categorization]
        except Exception as e:
            raise StorageError(f"Failed to list uncategorized transactions: {e}")

    async def get_account_summary(self, recent_days: int = 7) -> AccountSummary:
        try:
            accounts = self._read_accounts()
            transactions = self._read_transactions()
        except Exception as e:
            raise StorageError(f"Failed to compute account summary: {e}")

        cutoff = date.today() - timedelta(days=recent_days)
        return AccountSummary(
            total_accounts=len(accounts),
            total_balance=sum((a.balance for a in accounts), Decimal("0.00")),
            recent_transactions=sum(1 for t in transactions if t.transaction_date >= cutoff),
            uncategorized_transactions=sum(1 for t in transactions if t.needs_categorization),
        )

    async def update_transaction_category(
        self,
        transaction_id: int,
        category: str,
        user_approved: bool = True,
    ) -> Transaction:
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()

            # Find the row with this transaction ID
            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
                if row and row[0] == str(transaction_id):
                    sheet.update_cell(idx, CATEGORY_COLUMN, category)
                    sheet.update_cell(idx, NEEDS_CATEGORIZATION_COLUMN, "False")
                    sheet.update_cell(idx, USER_APPROVED_COLUMN, str(user_approved))

                    updated = self._row_to_transaction(row)
                    updated.category = category
                    updated.needs_categorization = False
                    updated.user_approved = user_approved
                    return updated

            raise NotFoundError(f"Transaction not found: {transaction_id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

    def _next_id(self, sheet: gspread.Worksheet) -> int:
        ids = [int(row[0]) for row in sheet.get_all_values()[1:] if row and row[0].isdigit()]
        return max(ids, default=0) + 1

    async def create_account(self, account: Account) -> Account:
        try:
            sheet = self._client.get_accounts_sheet()
            created = account.model_copy(update={"id": self._next_id(sheet)})
            sheet.append_row(self._account_to_row(created), value_input_option="RAW")
            return created
        except Exception as e:
            raise StorageError(f"Failed to create account: {e}")

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        try:
            sheet = self._client.get_transactions_sheet()
            created = transaction.model_copy(update={"id": self._next_id(sheet)})
            sheet.append_row(self._transaction_to_row(created), value_input_option="RAW")
            return created
        except Exception as e:
            raise StorageError(f"Failed to create transaction: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=safe_get(0),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=safe_get(6) or None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and row[0]:
                    try:
                        events.append(self._row_to_event(row))
                    except Exception:
                        continue

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
