"""
Audit Logger

Every import, review decision and date repair leaves an AuditEvent.
Flows log through AuditLogger, which writes a structured local line and
appends the event to the audit store when one is configured.

DESIGN DECISION: Auditing never breaks the flow it observes. A failing
audit store is logged locally and reported as False, but the import or
correction run carries on. Related events share a correlation id so one
import or run can be read back as a whole.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from expense_tracker.services.storage import AuditStorageInterface, StorageError


def configure_logging(settings: Optional[AppSettings] = None) -> None:
    """
    Configure structlog for local logging.

    Every line carries the app environment. Debug mode lowers the
    package log level from INFO to DEBUG.
    """
    settings = settings or get_settings().app
    environment = settings.app_environment

    def add_environment(logger, method_name, event_dict):
        event_dict.setdefault("environment", environment)
        return event_dict

    logging.getLogger("expense_tracker").setLevel(
        logging.DEBUG if settings.debug_mode else logging.INFO
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_environment,
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


configure_logging()


class AuditLogger:
    """
    Writes audit events for imports, reviews and corrections.

    Usage:
        audit_logger = AuditLogger(audit_storage)
        await audit_logger.log(AuditEventBuilder.row_skipped(...))
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Audit store the events are appended to.
                Without one, events only reach the local log.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log one event locally at its severity, then append it to the store.

        Returns False only when the store rejected the event.
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except StorageError as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Record an unexpected error that ended a flow."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """Fresh id shared by every event of one import or correction run."""
    return uuid4()
