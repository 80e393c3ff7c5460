"""
Audit Logger

Every write and every failed request is logged as a structured event.
This is the "console" of the dashboard: a failed save shows the user a
short notification, and the details end up here.

The audit logger:
- Never raises (a logging problem must not break a save or a delete)
- Renders JSON lines through structlog on top of stdlib logging
"""

import logging
import sys
from typing import Optional

import structlog

from bookkeeper.models.audit import AuditEvent, AuditEventBuilder
from bookkeeper.models.records import RecordId


def configure_logging(level: str = "INFO") -> None:
    """Configure stdlib logging and structlog for JSON output."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
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


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Keeps the most recent events in memory so the settings page can
    show what happened during this session.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("bookkeeper.audit")
        self._history: list[AuditEvent] = []
        self._history_size = history_size

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history))

    def log(self, event: AuditEvent) -> None:
        """Log an audit event locally."""
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[: len(self._history) - self._history_size]

    def log_created(
        self,
        collection: str,
        record_id: Optional[RecordId],
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_created(collection, record_id, details))

    def log_updated(
        self,
        collection: str,
        record_id: RecordId,
        fields: list[str],
    ) -> None:
        self.log(AuditEventBuilder.record_updated(collection, record_id, fields))

    def log_deleted(self, collection: str, record_id: RecordId) -> None:
        self.log(AuditEventBuilder.record_deleted(collection, record_id))

    def log_load_failed(self, collection: str, error: Exception) -> None:
        self.log(AuditEventBuilder.load_failed(collection, str(error)))

    def log_save_failed(
        self,
        collection: str,
        error: Exception,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.save_failed(collection, str(error), details))

    def log_update_failed(
        self,
        collection: str,
        record_id: RecordId,
        error: Exception,
    ) -> None:
        self.log(AuditEventBuilder.update_failed(collection, record_id, str(error)))

    def log_delete_failed(
        self,
        collection: str,
        record_id: RecordId,
        error: Exception,
    ) -> None:
        self.log(AuditEventBuilder.delete_failed(collection, record_id, str(error)))

    def log_validation_failed(self, collection: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.validation_failed(collection, issues))

    def log_catalog_reloaded(self, counts: dict[str, int], failed: list[str]) -> None:
        self.log(AuditEventBuilder.catalog_reloaded(counts, failed))
