"""Shared fixtures."""

from datetime import date

import pytest

from src.audit import AuditLogger
from src.config import ChatSettings
from src.services.storage import InMemoryAuditStorage, InMemoryLedgerStore
from src.services.storage.sample_data import (
    build_sample_accounts,
    build_sample_transactions,
)


TODAY = date(2024, 6, 20)


@pytest.fixture
def chat_settings():
    return ChatSettings(
        max_turns=20,
        command_prefix="/",
        recent_transactions_limit=10,
        categorize_preview_limit=5,
        recent_activity_days=7,
        currency_symbol="$",
    )


@pytest.fixture
def empty_store():
    return InMemoryLedgerStore(today=TODAY)


@pytest.fixture
def sample_store():
    """Sample ledger: accounts 1 (checking) and 2 (credit), 20 transactions."""
    return InMemoryLedgerStore(
        accounts=list(build_sample_accounts().values()),
        transactions=build_sample_transactions({"checking": 1, "credit": 2}),
        today=TODAY,
    )


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def flaky_store():
    """Same ledger as sample_store, but the third category update fails."""
    from tests.fakes import FlakyLedgerStore

    return FlakyLedgerStore(
        accounts=list(build_sample_accounts().values()),
        transactions=build_sample_transactions({"checking": 1, "credit": 2}),
        today=TODAY,
        fail_on_update=3,
    )
