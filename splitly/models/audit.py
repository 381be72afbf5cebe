"""
Audit Models for Splitly Ledger Sync

Every significant sync and ledger action is logged as a typed event.
This provides:
1. Traceability of what the channel did and why (connects, drops, give-ups)
2. Debugging information when two devices disagree
3. A record of every user-initiated write and its outcome

DESIGN DECISION: Events are built in one place (AuditEventBuilder) so the
same action is always described the same way in the logs.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Channel lifecycle
    CHANNEL_CONNECTING = "channel_connecting"
    CHANNEL_CONNECTED = "channel_connected"
    CHANNEL_SKIPPED_NO_CREDENTIAL = "channel_skipped_no_credential"
    CHANNEL_CONNECT_FAILED = "channel_connect_failed"
    CHANNEL_DROPPED = "channel_dropped"
    CHANNEL_RETRY_EXHAUSTED = "channel_retry_exhausted"
    CHANNEL_DISCONNECTED = "channel_disconnected"
    CHANNEL_EMIT_FAILED = "channel_emit_failed"

    # Rooms
    ROOM_JOINED = "room_joined"
    ROOM_LEFT = "room_left"

    # Inbound events
    EVENT_APPLIED = "event_applied"
    EVENT_IGNORED = "event_ignored"
    EVENT_UNPARSEABLE = "event_unparseable"
    LISTENER_FAILED = "listener_failed"

    # Cache reloads
    LEDGER_RELOADED = "ledger_reloaded"
    LEDGER_RELOAD_FAILED = "ledger_reload_failed"
    GROUP_LOAD_FAILED = "group_load_failed"

    # User-initiated writes
    EXPENSE_SUBMITTED = "expense_submitted"
    EXPENSE_DELETED = "expense_deleted"
    SETTLEMENT_SUBMITTED = "settlement_submitted"
    SETTLEMENT_DELETED = "settlement_deleted"
    VALIDATION_REJECTED = "validation_rejected"

    # System events
    BACKEND_ERROR = "backend_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
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
        description="Type of entity (e.g., 'expense', 'settlement', 'room')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Backend id of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one user action)"
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

    # Error information (if applicable)
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


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.channel_connected(rooms=2, listeners=6)
        event = AuditEventBuilder.expense_submitted(expense_id, group_id, amount, correlation_id)
    """

    # -------------------------------------------------------------------------
    # Channel
    # -------------------------------------------------------------------------

    @staticmethod
    def channel_connecting(url: str, attempt: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHANNEL_CONNECTING,
            severity=AuditSeverity.DEBUG,
            entity_type="channel",
            description=f"Opening channel (attempt {attempt})",
            details={"url": url, "attempt": attempt},
        )

    @staticmethod
    def channel_connected(rooms: int, listeners: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHANNEL_CONNECTED,
            entity_type="channel",
            description="Channel connected",
            details={"rooms_rejoined": rooms, "listener_events": listeners},
        )

    @staticmethod
    def channel_skipped_no_credential() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHANNEL_SKIPPED_NO_CREDENTIAL,
            entity_type="channel",
            description="No credential available, channel stays disconnected",
        )

    @staticmethod
    def channel_connect_failed(attempt: int, max_attempts: int, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHANNEL_CONNECT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="channel",
            description=f"Channel connect failed ({attempt}/{max_attempts})",
            details={"attempt": attempt, "max_attempts": max_attempts},
            error_message=error_message,
        )

    @staticmethod
    def channel_dropped(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHANNEL_DROPPED,
            severity=AuditSeverity.WARNING,
            entity_type="channel",
            description="Channel dropped, reconnecting",
            details={"reason": reason},
        )

    @staticmethod
    def channel_retry_exhausted(attempts: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHANNEL_RETRY_EXHAUSTED,
            severity=AuditSeverity.ERROR,
            entity_type="channel",
            description=f"Giving up on the channel after {attempts} attempts",
            details={"attempts": attempts},
        )

    @staticmethod
    def channel_disconnected() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHANNEL_DISCONNECTED,
            entity_type="channel",
            description="Channel disconnected and subscriptions cleared",
        )

    @staticmethod
    def channel_emit_failed(event_name: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHANNEL_EMIT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="channel",
            description=f"Transport rejected '{event_name}'",
            details={"event_name": event_name},
            error_message=error_message,
        )

    @staticmethod
    def room_changed(group_id: str, joined: bool, emitted: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROOM_JOINED if joined else AuditEventType.ROOM_LEFT,
            severity=AuditSeverity.DEBUG,
            entity_type="room",
            entity_id=group_id,
            description=f"{'Joined' if joined else 'Left'} room for group {group_id}",
            details={"emitted": emitted},
        )

    @staticmethod
    def listener_failed(event_name: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LISTENER_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="listener",
            description=f"Listener for '{event_name}' raised",
            details={"event_name": event_name},
            error_message=error_message,
        )

    # -------------------------------------------------------------------------
    # Inbound events
    # -------------------------------------------------------------------------

    @staticmethod
    def event_applied(event_name: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_APPLIED,
            severity=AuditSeverity.DEBUG,
            entity_type="event",
            entity_id=entity_id,
            description=f"Applied '{event_name}'",
            details={"event_name": event_name},
        )

    @staticmethod
    def event_ignored(event_name: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_IGNORED,
            severity=AuditSeverity.DEBUG,
            entity_type="event",
            entity_id=entity_id,
            description=f"'{event_name}' changed nothing (duplicate or unknown id)",
            details={"event_name": event_name},
        )

    @staticmethod
    def event_unparseable(event_name: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_UNPARSEABLE,
            severity=AuditSeverity.WARNING,
            entity_type="event",
            description=f"Could not merge '{event_name}', falling back to full reload",
            details={"event_name": event_name},
            error_message=error_message,
        )

    # -------------------------------------------------------------------------
    # Reloads
    # -------------------------------------------------------------------------

    @staticmethod
    def ledger_reloaded(groups: int, expenses: int, settlements: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RELOADED,
            entity_type="ledger",
            description=f"Reloaded {groups} groups",
            details={
                "groups": groups,
                "expenses": expenses,
                "settlements": settlements,
            },
        )

    @staticmethod
    def ledger_reload_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RELOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Full reload failed",
            error_message=error_message,
        )

    @staticmethod
    def group_load_failed(group_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROUP_LOAD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="group",
            entity_id=group_id,
            description=f"Failed to load records for group {group_id}",
            error_message=error_message,
        )

    # -------------------------------------------------------------------------
    # User-initiated writes
    # -------------------------------------------------------------------------

    @staticmethod
    def expense_submitted(
        expense_id: str,
        group_id: str,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_SUBMITTED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense submitted: {amount}",
            details={"group_id": group_id, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def settlement_submitted(
        settlement_id: str,
        group_id: str,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_SUBMITTED,
            entity_type="settlement",
            entity_id=settlement_id,
            correlation_id=correlation_id,
            description=f"Settlement submitted: {amount}",
            details={"group_id": group_id, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(entity_type: str, entity_id: str, correlation_id: UUID) -> AuditEvent:
        event_type = (
            AuditEventType.EXPENSE_DELETED
            if entity_type == "expense"
            else AuditEventType.SETTLEMENT_DELETED
        )
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def validation_rejected(
        entity_type: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def backend_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKEND_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Backend call failed: {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )
