"""
Audit Models for the Bookkeeping Assistant

Every significant step of a conversation is logged for audit purposes.
This provides:
1. Traceability of what the user asked and what was changed
2. Debugging information when a collaborator fails
3. A record of every category the user approved

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every stage of a turn has its own event type.
    """
    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_CLEARED = "session_cleared"
    SESSION_ENDED = "session_ended"

    # Slash commands
    COMMAND_EXECUTED = "command_executed"
    COMMAND_UNKNOWN = "command_unknown"
    COMMAND_FAILED = "command_failed"

    # Natural language
    QUERY_RECEIVED = "query_received"
    RESPONSE_GENERATED = "response_generated"
    GENERATOR_FAILED = "generator_failed"

    # Follow-up actions
    ACTIONS_SUGGESTED = "actions_suggested"
    TRANSACTIONS_APPROVED = "transactions_approved"
    TRANSACTION_CATEGORIZED = "transaction_categorized"
    SAMPLE_DATA_LOADED = "sample_data_loaded"
    ACTION_FAILED = "action_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'command', 'transaction', 'session')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID or name of the entity this event relates to"
    )

    # Correlation - all events of one turn share an id
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one turn)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.command_executed("status", correlation_id)
        event = AuditEventBuilder.transactions_approved([3, 4], correlation_id)
    """

    @staticmethod
    def session_event(
        event_type: AuditEventType,
        session_id: UUID,
        history_length: int = 0,
    ) -> AuditEvent:
        descriptions = {
            AuditEventType.SESSION_STARTED: "Chat session started",
            AuditEventType.SESSION_CLEARED: "Conversation history cleared",
            AuditEventType.SESSION_ENDED: "Chat session ended",
        }
        return AuditEvent(
            event_type=event_type,
            entity_type="session",
            entity_id=str(session_id),
            correlation_id=session_id,
            description=descriptions.get(event_type, event_type.value),
            details={"history_length": history_length},
            is_user_action=event_type != AuditEventType.SESSION_STARTED,
        )

    @staticmethod
    def command_executed(
        command: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_EXECUTED,
            entity_type="command",
            entity_id=command,
            correlation_id=correlation_id,
            description=f"Slash command executed: /{command}",
            is_user_action=True,
        )

    @staticmethod
    def command_unknown(
        raw_line: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_UNKNOWN,
            severity=AuditSeverity.WARNING,
            entity_type="command",
            correlation_id=correlation_id,
            description=f"Unknown slash command: {raw_line[:100]}",
            details={"raw_line": raw_line},
            is_user_action=True,
        )

    @staticmethod
    def command_failed(
        command: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="command",
            entity_id=command,
            correlation_id=correlation_id,
            description=f"Slash command failed: /{command or ''}",
        )

    @staticmethod
    def query_received(
        text: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_RECEIVED,
            entity_type="query",
            correlation_id=correlation_id,
            description="Natural-language request received",
            details={"length": len(text)},
            is_user_action=True,
        )

    @staticmethod
    def response_generated(
        reply_length: int,
        action_kinds: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESPONSE_GENERATED,
            entity_type="query",
            correlation_id=correlation_id,
            description=f"Reply generated with {len(action_kinds)} suggested actions",
            details={
                "reply_length": reply_length,
                "action_kinds": action_kinds,
            },
        )

    @staticmethod
    def generator_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GENERATOR_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="query",
            correlation_id=correlation_id,
            description="Answer generator unavailable",
            error_message=error_message,
        )

    @staticmethod
    def actions_suggested(
        action_kinds: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACTIONS_SUGGESTED,
            entity_type="action",
            correlation_id=correlation_id,
            description=f"{len(action_kinds)} follow-up actions suggested",
            details={"action_kinds": action_kinds},
        )

    @staticmethod
    def transactions_approved(
        approvals: dict[int, str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_APPROVED,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"User approved categories for {len(approvals)} transactions",
            details={"approvals": {str(k): v for k, v in approvals.items()}},
            is_user_action=True,
        )

    @staticmethod
    def transaction_categorized(
        transaction_id: int,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CATEGORIZED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description=f"Transaction {transaction_id} categorized as {category}",
            details={"category": category},
            is_user_action=True,
        )

    @staticmethod
    def sample_data_loaded(
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAMPLE_DATA_LOADED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Sample data loaded: {transaction_count} transactions",
            details={"transaction_count": transaction_count},
            is_user_action=True,
        )

    @staticmethod
    def action_failed(
        kind: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="action",
            entity_id=kind,
            correlation_id=correlation_id,
            description=f"Follow-up action failed: {kind}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
