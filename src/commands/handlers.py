"""
Slash Command Handlers

The fixed command table of the bookkeeping assistant:

    /help (/h)            /status (/s)        /transactions (/tx, /t)
    /categorize (/cat, /c) /connect (/conn)   /export (/exp)
    /settings (/config)

Each handler queries the Ledger Store and formats a TurnResult.
Handlers let store faults propagate (the dispatcher turns them into a
degraded reply), except /status, which falls back to an all-zero
summary so the user still sees their status layout.
"""

from typing import Optional

import structlog

from src.commands.dispatcher import format_command_listing
from src.commands.registry import Command, CommandRegistry
from src.config import ChatSettings
from src.models.chat import (
    ActionKind,
    ActionSuggestion,
    TurnResult,
    TurnStatus,
    confirm_transactions_action,
)
from src.models.ledger import Account, AccountSummary, Transaction
from src.services.storage import LedgerStoreInterface


logger = structlog.get_logger(__name__)


class LedgerCommandHandlers:
    """Handlers for the built-in slash commands."""

    def __init__(
        self,
        store: LedgerStoreInterface,
        chat_settings: Optional[ChatSettings] = None,
        model_name: Optional[str] = None,
    ):
        self._store = store
        self._settings = chat_settings or ChatSettings()
        self._model_name = model_name
        self._registry: Optional[CommandRegistry] = None

    def bind(self, registry: CommandRegistry) -> None:
        """Give /help access to the registry it lists."""
        self._registry = registry

    @property
    def _prefix(self) -> str:
        return self._settings.command_prefix

    def _money(self, amount) -> str:
        return f"{self._settings.currency_symbol}{amount:,.2f}"

    def commands(self) -> list[Command]:
        """The command table, in display order."""
        return [
            Command(
                name="help",
                description="Show available commands",
                aliases=("h",),
                handler=self.show_help,
            ),
            Command(
                name="status",
                description="Show account status and recent activity",
                aliases=("s",),
                handler=self.show_status,
            ),
            Command(
                name="transactions",
                description="List recent transactions",
                aliases=("tx", "t"),
                handler=self.show_transactions,
            ),
            Command(
                name="categorize",
                description="Review and categorize uncategorized transactions",
                aliases=("cat", "c"),
                handler=self.categorize_transactions,
            ),
            Command(
                name="connect",
                description="Connect bank accounts or services",
                aliases=("conn",),
                handler=self.connect_account,
            ),
            Command(
                name="export",
                description="Export financial data",
                aliases=("exp",),
                handler=self.export_data,
            ),
            Command(
                name="settings",
                description="Manage application settings",
                aliases=("config",),
                handler=self.show_settings,
            ),
        ]

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def show_help(self, args: str = "") -> TurnResult:
        p = self._prefix
        lines = [
            "🤖 AI Bookkeeping Assistant Help",
            "",
            "Natural Language Examples:",
            '  "What transactions need categorizing?"',
            '  "Show me expenses from last week"',
            '  "Approve all transactions except the coffee one"',
            '  "Categorize the $50 transaction as office supplies"',
            "",
        ]
        if self._registry is not None:
            lines.append(format_command_listing(self._registry, p))
            lines.append("")
        lines.extend([
            "Tips:",
            "  • You can mix natural language with slash commands",
            f'  • Type "{p}" to see command suggestions',
            '  • Use "exit" or Ctrl+C to quit',
        ])
        return TurnResult(reply_text="\n".join(lines))

    async def show_status(self, args: str = "") -> TurnResult:
        try:
            summary = await self._store.get_account_summary(
                recent_days=self._settings.recent_activity_days,
            )
            accounts = await self._store.list_accounts()
        except Exception as e:
            # Any store fault reads as "no data available"
            logger.warning("status_unavailable", error=str(e), error_type=type(e).__name__)
            return TurnResult(
                reply_text=self._format_empty_status(),
                status=TurnStatus.DEGRADED,
            )

        return TurnResult(reply_text=self._format_status(summary, accounts))

    def _format_status(self, summary: AccountSummary, accounts: list[Account]) -> str:
        days = self._settings.recent_activity_days
        lines = ["📊 Account Status", "", f"Connected Accounts: {len(accounts)}"]
        for account in accounts:
            account_type = account.account_type.value.replace("_", " ")
            lines.append(f"  • {account.name} ({account_type}) - {self._money(account.balance)}")
        lines.extend([
            "",
            f"Recent Transactions ({days} days): {summary.recent_transactions}",
            f"Uncategorized Transactions: {summary.uncategorized_transactions}",
            f"Total Balance: {self._money(summary.total_balance)}",
        ])
        if not accounts:
            lines.extend([
                "",
                f"💡 Get started by connecting your bank account with {self._prefix}connect",
            ])
        return "\n".join(lines)

    def _format_empty_status(self) -> str:
        summary = AccountSummary.empty()
        return "\n".join([
            "📊 Account Status",
            "",
            f"Connected Accounts: {summary.total_accounts} (use {self._prefix}connect to add accounts)",
            f"Recent Transactions: {summary.recent_transactions}",
            f"Uncategorized Transactions: {summary.uncategorized_transactions}",
            f"Total Balance: {self._money(summary.total_balance)}",
        ])

    async def show_transactions(self, args: str = "") -> TurnResult:
        limit = self._settings.recent_transactions_limit
        if args.strip().isdigit() and int(args.strip()) > 0:
            limit = int(args.strip())

        transactions = await self._store.list_recent_transactions(limit=limit)

        if not transactions:
            return TurnResult(reply_text=(
                "💳 Recent Transactions\n\n"
                "No transactions found. Connect your bank account to see transactions.\n"
                f"Use {self._prefix}connect to get started."
            ))

        lines = ["💳 Recent Transactions", ""]
        for number, transaction in enumerate(transactions, start=1):
            lines.extend(self._format_transaction(number, transaction))
        return TurnResult(reply_text="\n".join(lines).rstrip())

    def _format_transaction(self, number: int, transaction: Transaction) -> list[str]:
        status = (
            "⚠️  Needs categorization"
            if transaction.needs_categorization
            else "✅ Categorized"
        )
        lines = [
            f"{number}. {transaction.description}",
            "   " + " • ".join([
                transaction.format_amount(self._settings.currency_symbol),
                transaction.transaction_date.isoformat(),
                status,
            ]),
        ]
        if transaction.category:
            lines.append(f"   Category: {transaction.category}")
        lines.append("")
        return lines

    async def categorize_transactions(self, args: str = "") -> TurnResult:
        uncategorized = await self._store.list_uncategorized_transactions()

        if not uncategorized:
            return TurnResult(
                reply_text="🏷️  Transaction Categorization\n\n✅ All transactions are categorized!"
            )

        preview_limit = self._settings.categorize_preview_limit
        preview = uncategorized[:preview_limit]

        lines = [
            "🏷️  Transaction Categorization",
            "",
            f"Found {len(uncategorized)} transactions needing categorization:",
            "",
        ]
        for number, transaction in enumerate(preview, start=1):
            lines.append(f"{number}. {transaction.description}")
            lines.append(
                f"   {transaction.format_amount(self._settings.currency_symbol)} • "
                f"{transaction.transaction_date.isoformat()}"
            )
            if transaction.ai_suggested_category:
                lines.append(f"   AI suggests: {transaction.ai_suggested_category}")
            lines.append("")

        remaining = len(uncategorized) - len(preview)
        if remaining > 0:
            lines.append(f"... and {remaining} more transactions")
            lines.append("")

        lines.append(
            '💡 Use natural language like "categorize transaction 1 as office supplies" '
            "to categorize them."
        )

        return TurnResult(
            reply_text="\n".join(lines),
            suggested_actions=[confirm_transactions_action(preview)],
        )

    async def connect_account(self, args: str = "") -> TurnResult:
        return TurnResult(
            reply_text=(
                "🔗 Connect Bank Account\n\n"
                "🚧 Bank integration coming soon!\n"
                "This will use Plaid to securely connect your bank accounts."
            ),
            suggested_actions=[
                ActionSuggestion(kind=ActionKind.LOAD_SAMPLE_DATA.value),
            ],
        )

    async def export_data(self, args: str = "") -> TurnResult:
        return TurnResult(reply_text=(
            "📄 Export Financial Data\n\n"
            "Available formats: CSV, PDF, QuickBooks (coming soon)\n"
            "No data available to export yet."
        ))

    async def show_settings(self, args: str = "") -> TurnResult:
        lines = [
            "⚙️  Settings",
            "",
            f"AI model: {self._model_name or 'not configured'}",
            f"Conversation memory: last {self._settings.max_turns} messages",
            f"Command prefix: {self._prefix}",
            "",
            "Coming soon:",
            "• Default transaction categories",
            "• AI preferences",
            "• Export preferences",
            "• Connected accounts",
        ]
        return TurnResult(reply_text="\n".join(lines))


def build_command_registry(handlers: LedgerCommandHandlers) -> CommandRegistry:
    """
    Build the registry for the built-in command table.

    Raises:
        DuplicateAliasError: If the table itself is misconfigured
    """
    registry = CommandRegistry(handlers.commands())
    handlers.bind(registry)
    return registry
