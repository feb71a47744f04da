"""
Tests for the slash command layer: registry, dispatcher and handlers.
"""

import pytest

from src.commands import (
    Command,
    CommandRegistry,
    DuplicateAliasError,
    LedgerCommandHandlers,
    SlashCommandDispatcher,
    UnknownCommandError,
    build_command_registry,
)
from src.models.chat import ActionKind, TurnResult, TurnStatus

from tests.fakes import FailingLedgerStore


async def _reply(args: str = "") -> TurnResult:
    return TurnResult(reply_text="ok")


async def _explode(args: str = "") -> TurnResult:
    raise RuntimeError("database unreachable")


def _dispatcher(store, chat_settings) -> SlashCommandDispatcher:
    handlers = LedgerCommandHandlers(store, chat_settings, model_name="gemini-1.5-flash")
    return SlashCommandDispatcher(build_command_registry(handlers), "/")


class TestCommandRegistry:
    """Tests for alias resolution and registration rules."""

    def test_aliases_resolve_to_same_command(self, empty_store, chat_settings):
        registry = build_command_registry(LedgerCommandHandlers(empty_store, chat_settings))

        assert registry.resolve("transactions") is registry.resolve("tx")
        assert registry.resolve("tx") is registry.resolve("t")
        assert registry.resolve("categorize") is registry.resolve("cat")
        assert registry.resolve("settings") is registry.resolve("config")

    def test_lookup_is_case_insensitive(self, empty_store, chat_settings):
        registry = build_command_registry(LedgerCommandHandlers(empty_store, chat_settings))
        assert registry.resolve("STATUS").name == "status"
        assert "Tx" in registry

    def test_duplicate_alias_rejected(self):
        registry = CommandRegistry()
        registry.register(Command(name="status", description="", aliases=("s",), handler=_reply))

        with pytest.raises(DuplicateAliasError) as exc_info:
            registry.register(Command(name="settings", description="", aliases=("s",), handler=_reply))

        assert exc_info.value.key == "s"
        assert exc_info.value.existing == "status"

    def test_failed_registration_leaves_registry_unchanged(self):
        registry = CommandRegistry([
            Command(name="help", description="", aliases=("h",), handler=_reply),
        ])

        with pytest.raises(DuplicateAliasError):
            registry.register(Command(name="history", description="", aliases=("hist", "h"), handler=_reply))

        assert registry.resolve("history") is None
        assert registry.resolve("hist") is None
        assert len(registry) == 1

    def test_require_raises_for_unknown_token(self):
        registry = CommandRegistry()
        with pytest.raises(UnknownCommandError) as exc_info:
            registry.require("frobnicate")
        assert exc_info.value.token == "frobnicate"

    def test_list_unique_yields_each_command_once(self, empty_store, chat_settings):
        registry = build_command_registry(LedgerCommandHandlers(empty_store, chat_settings))

        names = [command.name for command in registry.list_unique()]

        assert names == [
            "help", "status", "transactions", "categorize",
            "connect", "export", "settings",
        ]

    def test_list_unique_is_restartable(self, empty_store, chat_settings):
        registry = build_command_registry(LedgerCommandHandlers(empty_store, chat_settings))

        first = list(registry.list_unique())
        second = list(registry.list_unique())

        assert len(first) == len(second) == 7


class TestSlashCommandDispatcher:
    """Tests for dispatching and fault handling."""

    @pytest.mark.asyncio
    async def test_bare_prefix_lists_all_commands(self, empty_store, chat_settings):
        result = await _dispatcher(empty_store, chat_settings).process("/")

        assert result.status == TurnStatus.OK
        assert result.reply_text.startswith("Available slash commands:")
        for name in ("help", "status", "transactions", "categorize", "connect", "export", "settings"):
            assert f"/{name}" in result.reply_text
        assert "/transactions (/tx, /t)" in result.reply_text
        assert "/settings (/config)" in result.reply_text

    @pytest.mark.asyncio
    async def test_unknown_command(self, empty_store, chat_settings):
        result = await _dispatcher(empty_store, chat_settings).process("/frobnicate")

        assert "Unknown command: /frobnicate" in result.reply_text
        assert "/help" in result.reply_text
        assert result.suggested_actions == []
        assert result.status == TurnStatus.UNKNOWN_COMMAND

    @pytest.mark.asyncio
    async def test_alias_dispatches_to_canonical_command(self, sample_store, chat_settings):
        result = await _dispatcher(sample_store, chat_settings).process("/TX 3")

        assert result.command == "transactions"
        assert "💳 Recent Transactions" in result.reply_text
        assert "3. " in result.reply_text
        assert "4. " not in result.reply_text

    @pytest.mark.asyncio
    async def test_handler_fault_becomes_degraded_reply(self):
        registry = CommandRegistry([
            Command(name="boom", description="Always fails", handler=_explode),
        ])
        result = await SlashCommandDispatcher(registry).process("/boom")

        assert result.degraded
        assert result.command == "boom"
        assert "database unreachable" not in result.reply_text

    @pytest.mark.asyncio
    async def test_store_fault_on_transactions_is_degraded(self, chat_settings):
        result = await _dispatcher(FailingLedgerStore(), chat_settings).process("/transactions")

        assert result.degraded
        assert "backend down" not in result.reply_text


class TestLedgerCommandHandlers:
    """Tests for the built-in command replies."""

    @pytest.mark.asyncio
    async def test_status_with_sample_data(self, sample_store, chat_settings):
        result = await _dispatcher(sample_store, chat_settings).process("/status")

        assert "Connected Accounts: 2" in result.reply_text
        assert "Business Checking (checking) - $15,750.25" in result.reply_text
        assert "Uncategorized Transactions: 19" in result.reply_text
        assert "Total Balance: $12,902.33" in result.reply_text
        assert "/connect" not in result.reply_text

    @pytest.mark.asyncio
    async def test_status_without_accounts_suggests_connect(self, empty_store, chat_settings):
        result = await _dispatcher(empty_store, chat_settings).process("/s")

        assert "Connected Accounts: 0" in result.reply_text
        assert "/connect" in result.reply_text

    @pytest.mark.asyncio
    async def test_status_falls_back_to_zero_summary(self, chat_settings):
        result = await _dispatcher(FailingLedgerStore(), chat_settings).process("/status")

        assert result.degraded
        assert "Connected Accounts: 0" in result.reply_text
        assert "Recent Transactions: 0" in result.reply_text
        assert "Uncategorized Transactions: 0" in result.reply_text
        assert "Total Balance: $0.00" in result.reply_text

    @pytest.mark.asyncio
    async def test_transactions_empty_ledger(self, empty_store, chat_settings):
        result = await _dispatcher(empty_store, chat_settings).process("/transactions")
        assert "No transactions found" in result.reply_text

    @pytest.mark.asyncio
    async def test_categorize_attaches_confirmation(self, sample_store, chat_settings):
        result = await _dispatcher(sample_store, chat_settings).process("/categorize")

        assert "Found 19 transactions needing categorization" in result.reply_text
        assert "... and 14 more transactions" in result.reply_text
        assert len(result.suggested_actions) == 1

        action = result.suggested_actions[0]
        assert action.known_kind == ActionKind.CONFIRM_TRANSACTIONS
        assert len(action.data["transactions"]) == 5
        assert action.data["transactions"][0]["description"] == "Microsoft 365 Business Premium"

    @pytest.mark.asyncio
    async def test_categorize_when_everything_is_categorized(self, empty_store, chat_settings):
        result = await _dispatcher(empty_store, chat_settings).process("/c")

        assert "All transactions are categorized" in result.reply_text
        assert result.suggested_actions == []

    @pytest.mark.asyncio
    async def test_connect_offers_sample_data(self, empty_store, chat_settings):
        result = await _dispatcher(empty_store, chat_settings).process("/connect")

        assert [a.kind for a in result.suggested_actions] == ["load_sample_data"]

    @pytest.mark.asyncio
    async def test_help_lists_commands_and_tips(self, empty_store, chat_settings):
        result = await _dispatcher(empty_store, chat_settings).process("/help")

        assert "Natural Language Examples" in result.reply_text
        assert "/categorize (/cat, /c)" in result.reply_text
        assert "exit" in result.reply_text

    @pytest.mark.asyncio
    async def test_settings_shows_model_and_history_cap(self, empty_store, chat_settings):
        result = await _dispatcher(empty_store, chat_settings).process("/config")

        assert "gemini-1.5-flash" in result.reply_text
        assert "last 20 messages" in result.reply_text

    @pytest.mark.asyncio
    async def test_export_is_not_available_yet(self, empty_store, chat_settings):
        result = await _dispatcher(empty_store, chat_settings).process("/exp")
        assert "No data available to export yet" in result.reply_text
