"""
Audit Logger

DESIGN DECISION: Every significant sync action is logged as a structured
event. This provides:
1. Traceability of channel lifecycle and cache reloads
2. Debugging capability when devices disagree
3. A history of user-initiated writes

The audit logger:
- Is synchronous (it only writes to the local structured log)
- Never raises into the caller
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from splitly.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


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


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at ``level``."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))


_LEVEL_METHODS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
}


class AuditLogger:
    """
    Central audit logging service.
    
    Writes every event to the structured local log under the
    ``audit_event`` key, at the level matching its severity.
    """
    
    def __init__(self, name: str = "splitly"):
        self._logger = structlog.get_logger(name)
    
    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        method = getattr(self._logger, _LEVEL_METHODS.get(event.severity, "info"))
        method("audit_event", **event.to_log_dict())
    
    def log_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed backend call."""
        self.log(AuditEventBuilder.backend_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.
    
    Use this at the start of a new user action (e.g., adding an expense).
    """
    return uuid4()
