"""
Main Orchestrator for the AI Bookkeeping Assistant

This module ties together all the components and defines the
end-to-end flow of one conversational turn:

    raw line -> classify -> dispatch (slash command | natural language)
             -> resolve suggested actions -> idle

DESIGN DECISION: The interactive loop is an explicit state machine

    IDLE -> CLASSIFYING -> DISPATCHING -> RESOLVING -> IDLE
                 |
                 +-- exit --> TERMINATED

Every exit from DISPATCHING or RESOLVING, success or fault, returns to
IDLE. Only the exit classification ends the session. Presenters never
see a raw collaborator fault; they get a degraded TurnResult instead.

Every step is audited, with one correlation id per turn.
"""

from collections import deque
from enum import Enum
from typing import Optional, Union
from uuid import UUID, uuid4

import structlog

from src.agents import (
    AnswerGeneratorInterface,
    GeminiAnswerGenerator,
    GeneratorUnavailableError,
)
from src.audit import AuditLogger, create_correlation_id
from src.chat import (
    ActionOutcome,
    ActionSuggestionResolver,
    ConfirmationRequest,
    ConversationSession,
    NaturalLanguageRouter,
    Prompter,
    ResolutionContext,
    classify_input,
)
from src.commands import (
    LedgerCommandHandlers,
    SlashCommandDispatcher,
    build_command_registry,
)
from src.config import ChatSettings, get_settings
from src.models.chat import (
    ActionSuggestion,
    ExitSignal,
    InputKind,
    TurnResult,
    TurnStatus,
)
from src.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    InMemoryLedgerStore,
    LedgerStoreInterface,
)


logger = structlog.get_logger(__name__)


class ChatState(str, Enum):
    """States of the interactive loop."""
    IDLE = "idle"
    CLASSIFYING = "classifying"
    DISPATCHING = "dispatching"
    RESOLVING = "resolving"
    TERMINATED = "terminated"


class SessionEndedError(Exception):
    """Raised when input arrives after the session has ended."""
    pass


GENERATOR_UNAVAILABLE_REPLY = (
    "Sorry, I'm having trouble answering right now. "
    "Please try again, or type {prefix}help for commands that work offline."
)
UNEXPECTED_ERROR_REPLY = "Sorry, I encountered an error. Please try again."


class ConversationController:
    """
    Runs one interactive session.

    Owns the session's ConversationSession; nothing else writes to it
    except the router, and only after a successful reply.

    Flow per line:
    1. handle_line() classifies and dispatches, returning the reply
    2. If the reply carries actions, the controller stays in RESOLVING
    3. The presenter answers them via resolve_pending() (inline prompts)
       or pending_request()/answer_pending() (forms), or drops them with
       dismiss_pending()
    """

    def __init__(
        self,
        dispatcher: SlashCommandDispatcher,
        router: NaturalLanguageRouter,
        resolver: ActionSuggestionResolver,
        audit_logger: Optional[AuditLogger] = None,
        command_prefix: str = "/",
    ):
        self._dispatcher = dispatcher
        self._router = router
        self._resolver = resolver
        self._audit = audit_logger or AuditLogger()
        self._prefix = command_prefix

        self._session_id: UUID = uuid4()
        self._state = ChatState.IDLE
        self._pending: deque[ActionSuggestion] = deque()
        self._context = ResolutionContext()
        self._started = False

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def session_id(self) -> UUID:
        return self._session_id

    @property
    def session(self) -> ConversationSession:
        return self._router.session

    @property
    def has_pending_actions(self) -> bool:
        return bool(self._pending)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Mark the session as started. Safe to call more than once."""
        if self._started:
            return
        self._started = True
        logger.info("session_started", session_id=str(self._session_id))
        await self._audit.log_session_started(self._session_id)

    async def end(self) -> ExitSignal:
        """End the session. The controller accepts no further input."""
        if self._state != ChatState.TERMINATED:
            history_length = len(self.session)
            self._pending.clear()
            self.session.clear()
            self._state = ChatState.TERMINATED
            logger.info("session_ended", session_id=str(self._session_id))
            await self._audit.log_session_ended(self._session_id, history_length)
        return ExitSignal()

    async def clear_history(self) -> None:
        """Forget the conversation so far and drop pending actions."""
        self._ensure_active()
        history_length = len(self.session)
        self.session.clear()
        self.dismiss_pending()
        await self._audit.log_session_cleared(self._session_id, history_length)

    def _ensure_active(self) -> None:
        if self._state == ChatState.TERMINATED:
            raise SessionEndedError("This conversation has ended.")

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def handle_line(self, raw: str) -> Union[None, ExitSignal, TurnResult]:
        """
        Handle one line of user input.

        Returns:
            None for blank input, ExitSignal for an exit word,
            otherwise the TurnResult to render.

        Raises:
            SessionEndedError: If called after the session ended
        """
        self._ensure_active()
        await self.start()

        if self._pending:
            # New input supersedes unanswered follow-ups
            logger.info("pending_actions_dismissed", count=len(self._pending))
            self.dismiss_pending()

        self._state = ChatState.CLASSIFYING
        classified = classify_input(raw, self._prefix)

        if classified.kind == InputKind.NOOP:
            self._state = ChatState.IDLE
            return None

        if classified.kind == InputKind.EXIT:
            return await self.end()

        correlation_id = create_correlation_id()
        self._state = ChatState.DISPATCHING

        try:
            if classified.kind == InputKind.SLASH_COMMAND:
                result = await self._dispatch_command(classified.raw, correlation_id)
            else:
                result = await self._route_query(classified.raw, correlation_id)
        except Exception as e:
            logger.error(
                "turn_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            self._state = ChatState.IDLE
            return TurnResult(reply_text=UNEXPECTED_ERROR_REPLY, status=TurnStatus.DEGRADED)

        if result.suggested_actions:
            await self._audit.log_actions_suggested(
                [action.kind for action in result.suggested_actions],
                correlation_id,
            )
            self._pending = deque(result.suggested_actions)
            self._context = ResolutionContext(correlation_id=correlation_id)
            self._state = ChatState.RESOLVING
        else:
            self._state = ChatState.IDLE

        return result

    async def _dispatch_command(self, line: str, correlation_id: UUID) -> TurnResult:
        result = await self._dispatcher.process(line)

        if result.status == TurnStatus.UNKNOWN_COMMAND:
            await self._audit.log_command_unknown(line, correlation_id)
        elif result.status == TurnStatus.DEGRADED:
            await self._audit.log_command_failed(result.command, correlation_id)
        elif result.command is not None:
            await self._audit.log_command_executed(result.command, correlation_id)

        return result

    async def _route_query(self, text: str, correlation_id: UUID) -> TurnResult:
        await self._audit.log_query_received(text, correlation_id)

        try:
            result = await self._router.route(text)
        except GeneratorUnavailableError as e:
            await self._audit.log_generator_failed(str(e), correlation_id)
            return TurnResult(
                reply_text=GENERATOR_UNAVAILABLE_REPLY.format(prefix=self._prefix),
                status=TurnStatus.DEGRADED,
            )

        await self._audit.log_response_generated(
            len(result.reply_text),
            [action.kind for action in result.suggested_actions],
            correlation_id,
        )
        return result

    # ------------------------------------------------------------------
    # Action resolution
    # ------------------------------------------------------------------

    def pending_request(self) -> Optional[ConfirmationRequest]:
        """The question for the next pending action, or None if it needs none."""
        if not self._pending:
            return None
        return self._resolver.describe(self._pending[0])

    async def answer_pending(self, answer: str = "") -> Optional[ActionOutcome]:
        """
        Apply the next pending action with the user's answer.

        Follow-up actions are queued ahead of the remaining ones.
        Returns None when nothing is pending.
        """
        if not self._pending:
            return None

        action = self._pending.popleft()
        try:
            outcome = await self._resolver.apply(action, answer, self._context)
        except Exception as e:
            logger.error(
                "action_resolution_failed",
                kind=action.kind,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._audit.log_action_failed(action.kind, str(e), self._context.correlation_id)
            outcome = ActionOutcome(
                kind=action.kind,
                message=UNEXPECTED_ERROR_REPLY,
                success=False,
            )

        self._pending.extendleft(reversed(outcome.follow_up))
        if not self._pending:
            self._state = ChatState.IDLE
        return outcome

    async def resolve_pending(self, prompter: Prompter) -> list[ActionOutcome]:
        """
        Resolve every pending action, asking through `prompter`.

        The queue is handed to the resolver in one go; answer_pending is the
        step-wise equivalent for presenters that ask one form at a time.
        """
        if not self._pending:
            return []

        actions = list(self._pending)
        self._pending.clear()
        try:
            return await self._resolver.resolve(actions, prompter, context=self._context)
        except Exception as e:
            logger.error(
                "action_resolution_failed",
                kinds=[action.kind for action in actions],
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._audit.log_action_failed(actions[0].kind, str(e), self._context.correlation_id)
            return [ActionOutcome(kind=actions[0].kind, message=UNEXPECTED_ERROR_REPLY, success=False)]
        finally:
            if self._state != ChatState.TERMINATED:
                self._state = ChatState.IDLE

    def dismiss_pending(self) -> None:
        """Drop unanswered actions and return to IDLE."""
        self._pending.clear()
        self._context = ResolutionContext()
        if self._state != ChatState.TERMINATED:
            self._state = ChatState.IDLE


def build_controller(
    store: LedgerStoreInterface,
    generator: AnswerGeneratorInterface,
    audit_logger: Optional[AuditLogger] = None,
    chat_settings: Optional[ChatSettings] = None,
    model_name: Optional[str] = None,
) -> ConversationController:
    """
    Wire a controller from its collaborators.

    Raises:
        DuplicateAliasError: If the command table is misconfigured
    """
    chat_settings = chat_settings or ChatSettings()
    audit_logger = audit_logger or AuditLogger()

    handlers = LedgerCommandHandlers(store, chat_settings, model_name=model_name)
    registry = build_command_registry(handlers)

    return ConversationController(
        dispatcher=SlashCommandDispatcher(registry, chat_settings.command_prefix),
        router=NaturalLanguageRouter(
            generator,
            ConversationSession(chat_settings.max_turns),
        ),
        resolver=ActionSuggestionResolver(store, audit_logger, chat_settings),
        audit_logger=audit_logger,
        command_prefix=chat_settings.command_prefix,
    )


def create_storage(
    use_storage: bool = True,
) -> tuple[LedgerStoreInterface, Optional[AuditStorageInterface]]:
    """
    Create the configured ledger store and audit storage.

    Falls back to an in-memory ledger (and local-only audit logging)
    when Google Sheets is not selected or not reachable.

    Returns:
        (ledger_store, audit_storage)
    """
    settings = get_settings()

    if use_storage and settings.app.ledger_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient(settings.google_sheets)
            sheets_client.connect()
            return (
                GoogleSheetsLedgerStore(sheets_client),
                GoogleSheetsAuditStorage(sheets_client),
            )
        except Exception as e:
            # Storage not configured - continue with the in-memory ledger
            logger.warning("storage_not_configured", error=str(e))

    return InMemoryLedgerStore(), None


def create_app_components(
    use_storage: bool = True,
    generator: Optional[AnswerGeneratorInterface] = None,
) -> ConversationController:
    """
    Factory function to create a ready-to-use controller.

    Args:
        use_storage: Whether to honor the configured ledger backend.
                    Set to False to always use the in-memory store.
        generator: Answer Generator override; defaults to Gemini

    Returns:
        ConversationController for one interactive session
    """
    settings = get_settings()
    store, audit_storage = create_storage(use_storage)
    generator = generator or GeminiAnswerGenerator(settings.gemini)

    return build_controller(
        store=store,
        generator=generator,
        audit_logger=AuditLogger(audit_storage),
        chat_settings=settings.chat,
        model_name=getattr(generator, "model_name", None),
    )
