"""
Action Suggestion Resolver

Executes the structured follow-ups attached to a TurnResult.

    describe(action)                 -> ConfirmationRequest | None
    apply(action, answer, context)   -> ActionOutcome
    resolve(actions, prompter)       -> list[ActionOutcome]

DESIGN DECISION: Asking and doing are split. describe() says what to ask;
the presenter asks however it likes (terminal prompt, Streamlit form);
apply() acts on the answer. resolve() chains the two for presenters that
can await an answer inline.

CRITICAL: Nothing is written to the ledger without the user's answer.
"""

from collections import deque
from typing import Awaitable, Callable, Optional, Sequence
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from src.audit import AuditLogger
from src.chat.approvals import is_affirmative, parse_approval_reply
from src.config import ChatSettings
from src.models.chat import (
    ActionKind,
    ActionSuggestion,
    TransactionCandidate,
    confirm_transactions_action,
)
from src.services.storage import (
    LedgerStoreInterface,
    StorageError,
    load_sample_data,
)


logger = structlog.get_logger(__name__)


APPROVAL_QUESTION = (
    'Approve all, or specify changes '
    '(e.g., "approve all except 2, categorize that as office supplies"):'
)
REVIEW_QUESTION = "Would you like me to show you transactions that need attention?"
SAMPLE_DATA_QUESTION = "Would you like to load sample data to try out the features?"


class ConfirmationRequest(BaseModel):
    """What to ask the user before applying an action."""

    kind: str
    question: str
    lines: list[str] = Field(default_factory=list)
    yes_no: bool = Field(
        default=False,
        description="True when a plain yes/no answer is expected"
    )


class ActionOutcome(BaseModel):
    """Result of applying one action."""

    kind: str
    message: str
    success: bool = True
    approved_ids: list[int] = Field(default_factory=list)
    follow_up: list[ActionSuggestion] = Field(default_factory=list)


class ResolutionContext(BaseModel):
    """State carried across the actions of one resolve() run."""

    confirmed_ids: set[int] = Field(default_factory=set)
    correlation_id: Optional[UUID] = None


Prompter = Callable[[ConfirmationRequest], Awaitable[str]]


class ActionSuggestionResolver:
    """Resolves suggested actions against the Ledger Store."""

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        chat_settings: Optional[ChatSettings] = None,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._settings = chat_settings or ChatSettings()

    # ------------------------------------------------------------------
    # Describe
    # ------------------------------------------------------------------

    def describe(self, action: ActionSuggestion) -> Optional[ConfirmationRequest]:
        """The question to ask before applying `action`, or None if none is needed."""
        kind = action.known_kind

        if kind == ActionKind.SUGGEST_REVIEW:
            return ConfirmationRequest(
                kind=action.kind,
                question=action.data.get("message") or REVIEW_QUESTION,
                yes_no=True,
            )

        if kind == ActionKind.CONFIRM_TRANSACTIONS:
            candidates = self.candidates(action)
            if not candidates:
                return None
            symbol = self._settings.currency_symbol
            return ConfirmationRequest(
                kind=action.kind,
                question=APPROVAL_QUESTION,
                lines=[
                    candidate.format_line(number, symbol)
                    for number, candidate in enumerate(candidates, start=1)
                ],
            )

        if kind == ActionKind.CATEGORIZE_EXPENSE:
            description = action.data.get("description") or f"transaction {action.data.get('transaction_id')}"
            return ConfirmationRequest(
                kind=action.kind,
                question=f'Categorize "{description}" as {action.data.get("category")}?',
                yes_no=True,
            )

        if kind == ActionKind.LOAD_SAMPLE_DATA:
            return ConfirmationRequest(
                kind=action.kind,
                question=SAMPLE_DATA_QUESTION,
                yes_no=True,
            )

        return None

    @staticmethod
    def candidates(action: ActionSuggestion) -> list[TransactionCandidate]:
        return [
            TransactionCandidate.model_validate(item)
            for item in action.data.get("transactions", [])
        ]

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    async def apply(
        self,
        action: ActionSuggestion,
        answer: str = "",
        context: Optional[ResolutionContext] = None,
    ) -> ActionOutcome:
        """
        Apply one action given the user's answer.

        Store faults become a failed outcome; they are never raised.
        """
        context = context or ResolutionContext()
        kind = action.known_kind

        try:
            if kind == ActionKind.SUGGEST_REVIEW:
                return await self._apply_suggest_review(action, answer, context)
            if kind == ActionKind.CONFIRM_TRANSACTIONS:
                return await self._apply_confirm_transactions(action, answer, context)
            if kind == ActionKind.CATEGORIZE_EXPENSE:
                return await self._apply_categorize_expense(action, answer, context)
            if kind == ActionKind.LOAD_SAMPLE_DATA:
                return await self._apply_load_sample_data(action, answer, context)
        except StorageError as e:
            logger.error(
                "action_failed",
                kind=action.kind,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._audit.log_action_failed(action.kind, str(e), context.correlation_id)
            return ActionOutcome(
                kind=action.kind,
                message="Sorry, I couldn't save that change right now. Nothing was updated.",
                success=False,
            )

        return ActionOutcome(kind=action.kind, message=f"Executing action: {action.kind}")

    async def _apply_suggest_review(
        self,
        action: ActionSuggestion,
        answer: str,
        context: ResolutionContext,
    ) -> ActionOutcome:
        if not is_affirmative(answer):
            return ActionOutcome(kind=action.kind, message="No problem.")

        pending = [
            t for t in await self._store.list_uncategorized_transactions()
            if t.id not in context.confirmed_ids
        ]
        if not pending:
            return ActionOutcome(
                kind=action.kind,
                message="✅ All transactions are categorized!",
            )

        batch = pending[:self._settings.categorize_preview_limit]
        return ActionOutcome(
            kind=action.kind,
            message=f"📋 {len(pending)} transactions need attention.",
            follow_up=[confirm_transactions_action(batch)],
        )

    async def _apply_confirm_transactions(
        self,
        action: ActionSuggestion,
        answer: str,
        context: ResolutionContext,
    ) -> ActionOutcome:
        candidates = self.candidates(action)
        decision = parse_approval_reply(
            answer,
            len(candidates),
            descriptions=[c.description for c in candidates],
        )

        approvals: dict[int, str] = {}
        pending = 0
        failure: Optional[StorageError] = None
        for number, candidate in enumerate(candidates, start=1):
            if candidate.id in context.confirmed_ids:
                continue
            category = decision.overrides.get(number) or candidate.suggested_category
            if number not in decision.approved or not category:
                pending += 1
                continue
            if failure is not None:
                pending += 1
                continue
            try:
                await self._store.update_transaction_category(
                    candidate.id, category, user_approved=True,
                )
            except StorageError as e:
                failure = e
                pending += 1
                continue
            approvals[candidate.id] = category
            context.confirmed_ids.add(candidate.id)

        if approvals:
            await self._audit.log_transactions_approved(approvals, context.correlation_id)
        if failure is not None:
            logger.error(
                "action_failed",
                kind=action.kind,
                saved=len(approvals),
                error=str(failure),
                error_type=type(failure).__name__,
            )
            await self._audit.log_action_failed(action.kind, str(failure), context.correlation_id)

        lines = []
        if failure is not None:
            lines.append("Sorry, I couldn't save every change right now.")
        if approvals:
            lines.append(f"✅ Approved {len(approvals)} transaction{'s' if len(approvals) != 1 else ''}.")
            for number, candidate in enumerate(candidates, start=1):
                if number in decision.overrides and candidate.id in approvals:
                    lines.append(f'   "{candidate.description}" → {decision.overrides[number]}')
        else:
            lines.append("No changes made.")
        for number in decision.out_of_range:
            lines.append(f"⚠️  There is no transaction #{number}; ignored.")
        if pending:
            lines.append(f"{pending} left for later review.")

        return ActionOutcome(
            kind=action.kind,
            message="\n".join(lines),
            success=failure is None,
            approved_ids=list(approvals),
        )

    async def _apply_categorize_expense(
        self,
        action: ActionSuggestion,
        answer: str,
        context: ResolutionContext,
    ) -> ActionOutcome:
        transaction_id = action.data.get("transaction_id")
        category = action.data.get("category")
        if transaction_id is None or not category:
            return ActionOutcome(
                kind=action.kind,
                message="That suggestion is missing a transaction or category.",
                success=False,
            )
        if not is_affirmative(answer):
            return ActionOutcome(kind=action.kind, message="Left unchanged.")

        transaction_id = int(transaction_id)
        await self._store.update_transaction_category(
            transaction_id, category, user_approved=True,
        )
        context.confirmed_ids.add(transaction_id)
        await self._audit.log_transaction_categorized(
            transaction_id, category, context.correlation_id,
        )

        description = action.data.get("description") or f"transaction {transaction_id}"
        return ActionOutcome(
            kind=action.kind,
            message=f'✅ Categorized "{description}" as {category}',
            approved_ids=[transaction_id],
        )

    async def _apply_load_sample_data(
        self,
        action: ActionSuggestion,
        answer: str,
        context: ResolutionContext,
    ) -> ActionOutcome:
        if not is_affirmative(answer):
            return ActionOutcome(kind=action.kind, message="No sample data loaded.")

        count = await load_sample_data(self._store)
        await self._audit.log_sample_data_loaded(count, context.correlation_id)
        prefix = self._settings.command_prefix
        return ActionOutcome(
            kind=action.kind,
            message=(
                f"✅ Loaded {count} sample transactions. "
                f"Try {prefix}status or {prefix}categorize."
            ),
        )

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    async def resolve(
        self,
        actions: Sequence[ActionSuggestion],
        prompter: Prompter,
        correlation_id: Optional[UUID] = None,
        context: Optional[ResolutionContext] = None,
    ) -> list[ActionOutcome]:
        """
        Process actions in order, asking through `prompter` where needed.

        Follow-ups produced by an action run right after it, before the
        remaining actions. Pass `context` to carry confirmed ids over from
        earlier steps.
        """
        context = context or ResolutionContext(correlation_id=correlation_id)
        queue = deque(actions)
        outcomes = []

        while queue:
            action = queue.popleft()
            request = self.describe(action)
            answer = await prompter(request) if request is not None else ""
            outcome = await self.apply(action, answer, context)
            outcomes.append(outcome)
            queue.extendleft(reversed(outcome.follow_up))

        return outcomes
