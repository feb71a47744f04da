"""
Audit Logger

DESIGN DECISION: Every significant step of a conversation is logged.
This provides:
1. Complete traceability of commands, replies and approvals
2. Debugging capability when a collaborator fails
3. A record of every category change the user approved

The audit logger:
- Is async so it fits the turn's await chain
- Gracefully handles failures (doesn't break a turn if logging fails)
- Supports correlation IDs to trace the events of one turn
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, if configured (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_session_started(self, session_id: UUID) -> None:
        await self.log(AuditEventBuilder.session_event(
            AuditEventType.SESSION_STARTED, session_id,
        ))

    async def log_session_cleared(self, session_id: UUID, history_length: int) -> None:
        await self.log(AuditEventBuilder.session_event(
            AuditEventType.SESSION_CLEARED, session_id, history_length,
        ))

    async def log_session_ended(self, session_id: UUID, history_length: int) -> None:
        await self.log(AuditEventBuilder.session_event(
            AuditEventType.SESSION_ENDED, session_id, history_length,
        ))

    async def log_command_executed(
        self,
        command: str,
        correlation_id: UUID,
    ) -> None:
        """Log a successful slash command."""
        await self.log(AuditEventBuilder.command_executed(command, correlation_id))

    async def log_command_unknown(
        self,
        raw_line: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.command_unknown(raw_line, correlation_id))

    async def log_command_failed(
        self,
        command: Optional[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.command_failed(command, correlation_id))

    async def log_query_received(
        self,
        text: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.query_received(text, correlation_id))

    async def log_response_generated(
        self,
        reply_length: int,
        action_kinds: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.response_generated(
            reply_length, action_kinds, correlation_id,
        ))

    async def log_generator_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.generator_failed(error_message, correlation_id))

    async def log_actions_suggested(
        self,
        action_kinds: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.actions_suggested(action_kinds, correlation_id))

    async def log_transactions_approved(
        self,
        approvals: dict[int, str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a batch of user-approved categories."""
        await self.log(AuditEventBuilder.transactions_approved(approvals, correlation_id))

    async def log_transaction_categorized(
        self,
        transaction_id: int,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_categorized(
            transaction_id, category, correlation_id,
        ))

    async def log_sample_data_loaded(
        self,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.sample_data_loaded(transaction_count, correlation_id))

    async def log_action_failed(
        self,
        kind: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.action_failed(kind, error_message, correlation_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of every turn and pass it through all
    subsequent operations of that turn.
    """
    return uuid4()
