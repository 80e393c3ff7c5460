"""
Audit Models for Bookkeeper

Every write and every failed request produces one audit event.
The events go to the structured log; they are the only trace of a
failure besides the transient notification the user sees.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from bookkeeper.models.records import RecordId


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Writes
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"

    # Failures
    LOAD_FAILED = "load_failed"
    SAVE_FAILED = "save_failed"
    UPDATE_FAILED = "update_failed"
    DELETE_FAILED = "delete_failed"
    VALIDATION_FAILED = "validation_failed"

    # Reference data
    CATALOG_RELOADED = "catalog_reloaded"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Which collection/record this is about
    collection: Optional[str] = None
    record_id: Optional[RecordId] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "collection": self.collection,
            "record_id": str(self.record_id) if self.record_id is not None else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("incomes", 42)
        event = AuditEventBuilder.delete_failed("clients", client_id, str(exc))
    """

    @staticmethod
    def record_created(
        collection: str,
        record_id: Optional[RecordId],
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            collection=collection,
            record_id=record_id,
            description=f"Created record in {collection}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        collection: str,
        record_id: RecordId,
        fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            collection=collection,
            record_id=record_id,
            description=f"Updated {', '.join(fields)} in {collection}",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(collection: str, record_id: RecordId) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            collection=collection,
            record_id=record_id,
            description=f"Deleted record from {collection}",
            is_user_action=True,
        )

    @staticmethod
    def load_failed(collection: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            collection=collection,
            description=f"Could not load {collection}",
            error_message=error_message,
        )

    @staticmethod
    def save_failed(
        collection: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            collection=collection,
            description=f"Could not save to {collection}",
            error_message=error_message,
            details=details or {},
        )

    @staticmethod
    def update_failed(
        collection: str,
        record_id: RecordId,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UPDATE_FAILED,
            severity=AuditSeverity.ERROR,
            collection=collection,
            record_id=record_id,
            description=f"Could not update record in {collection}",
            error_message=error_message,
        )

    @staticmethod
    def delete_failed(
        collection: str,
        record_id: RecordId,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELETE_FAILED,
            severity=AuditSeverity.ERROR,
            collection=collection,
            record_id=record_id,
            description=f"Could not delete record from {collection}",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(collection: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            collection=collection,
            description=f"Form for {collection} rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def catalog_reloaded(counts: dict[str, int], failed: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATALOG_RELOADED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            description=(
                f"Catalog reloaded with {len(failed)} failed sources"
                if failed else "Catalog reloaded"
            ),
            details={"counts": counts, "failed": failed},
        )
