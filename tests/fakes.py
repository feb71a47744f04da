"""
In-memory fakes for the two collaborators.

No test talks to Gemini or Google Sheets.
"""

from typing import Optional, Sequence

from src.agents import AnswerGeneratorInterface, GeneratedAnswer, GeneratorUnavailableError
from src.models.chat import ActionSuggestion, Turn
from src.services.storage import InMemoryLedgerStore, LedgerStoreInterface, StorageError


class FakeAnswerGenerator(AnswerGeneratorInterface):
    """Returns canned replies and records what it was sent."""

    def __init__(
        self,
        reply: str = "Happy to help with your books.",
        action_hints: Optional[list[ActionSuggestion]] = None,
    ):
        self.reply = reply
        self.action_hints = action_hints or []
        self.calls: list[tuple[str, tuple[Turn, ...]]] = []

    async def generate(self, system_instruction: str, turns: Sequence[Turn]) -> GeneratedAnswer:
        self.calls.append((system_instruction, tuple(turns)))
        return GeneratedAnswer(reply=self.reply, action_hints=list(self.action_hints))


class FailingAnswerGenerator(AnswerGeneratorInterface):
    """Always unavailable."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error or GeneratorUnavailableError()
        self.calls = 0

    async def generate(self, system_instruction: str, turns: Sequence[Turn]) -> GeneratedAnswer:
        self.calls += 1
        raise self.error


class FailingLedgerStore(LedgerStoreInterface):
    """A store whose backend is down."""

    async def list_accounts(self):
        raise StorageError("backend down")

    async def list_recent_transactions(self, limit: int = 50):
        raise StorageError("backend down")

    async def list_uncategorized_transactions(self):
        raise StorageError("backend down")

    async def get_account_summary(self, recent_days: int = 7):
        raise StorageError("backend down")

    async def update_transaction_category(self, transaction_id, category, user_approved=True):
        raise StorageError("backend down")

    async def create_account(self, account):
        raise StorageError("backend down")

    async def create_transaction(self, transaction):
        raise StorageError("backend down")


class FlakyLedgerStore(InMemoryLedgerStore):
    """An in-memory store whose Nth category update fails."""

    def __init__(self, *args, fail_on_update: int = 3, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_on_update = fail_on_update
        self.update_calls = 0
        self.written: list[int] = []

    async def update_transaction_category(self, transaction_id, category, user_approved=True):
        self.update_calls += 1
        if self.update_calls == self.fail_on_update:
            raise StorageError("quota exceeded")
        updated = await super().update_transaction_category(
            transaction_id, category, user_approved=user_approved,
        )
        self.written.append(transaction_id)
        return updated
