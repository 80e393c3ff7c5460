"""
Calendar Controller

Keeps the list of calendar entries shown on the dashboard and turns the
gestures of the calendar widget into store writes.

Gestures:
- day click            -> create a one-hour event (after a title is entered)
- range selection      -> create an event spanning the selection
- event click          -> rename, or delete after confirmation
- drag / resize        -> move the event, written through immediately

DESIGN DECISION: Editing is an explicit state machine instead of modal
prompts. The UI asks the controller which dialog to show (`state`) and
hands back structured input; nothing blocks while the user types.

    IDLE --begin_create--> CREATING --confirm_create/cancel--> IDLE
    IDLE --begin_edit--> EDITING --rename/cancel--> IDLE
                         EDITING --request_delete--> CONFIRMING_DELETE
    CONFIRMING_DELETE --confirm_delete--> IDLE
    CONFIRMING_DELETE --cancel--> IDLE

Moves and resizes are applied to the entries optimistically and rolled
back if the store rejects them. Concurrent edits are last-write-wins.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from bookkeeper.audit import AuditLogger
from bookkeeper.formatting import DateLike, parse_datetime
from bookkeeper.models.records import CalendarEvent, RecordId
from bookkeeper.services.notifications import Notifier
from bookkeeper.services.storage import EVENTS, RecordStore, StorageError

logger = structlog.get_logger(__name__)

DAY_CLICK_DURATION = timedelta(hours=1)


class EditorState(str, Enum):
    IDLE = "idle"
    CREATING = "creating"
    EDITING = "editing"
    CONFIRMING_DELETE = "confirming_delete"


@dataclass(frozen=True)
class CalendarEntry:
    """One event as the calendar shows it."""
    id: RecordId
    title: str
    start: datetime
    end: Optional[datetime] = None

    @classmethod
    def from_record(cls, event: CalendarEvent) -> "CalendarEntry":
        return cls(id=event.id, title=event.title, start=event.start_at, end=event.end_at)

    def to_widget(self) -> dict[str, Any]:
        """Event object in the shape FullCalendar expects."""
        event = {"id": str(self.id), "title": self.title, "start": self.start.isoformat()}
        if self.end is not None:
            event["end"] = self.end.isoformat()
        return event


def _start_key(entry: CalendarEntry) -> datetime:
    # Day clicks arrive without an offset; treat them as UTC so they order
    # against stored timestamps
    start = entry.start
    return start if start.tzinfo is not None else start.replace(tzinfo=timezone.utc)


def _schedule_values(start: datetime, end: Optional[datetime]) -> dict[str, Any]:
    return {
        "start_at": start.isoformat(),
        "end_at": end.isoformat() if end is not None else None,
    }


class CalendarController:
    """Entries plus the edit state machine for the dashboard calendar."""

    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier,
        audit_logger: Optional[AuditLogger] = None,
        limit: int = 500,
    ):
        self._store = store
        self._notifier = notifier
        self._audit_logger = audit_logger
        self._limit = limit
        self._entries: list[CalendarEntry] = []

        self.state = EditorState.IDLE
        self.selection: Optional[tuple[datetime, Optional[datetime]]] = None
        self.editing_id: Optional[RecordId] = None

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    @property
    def entries(self) -> tuple[CalendarEntry, ...]:
        return tuple(self._entries)

    def widget_events(self) -> list[dict[str, Any]]:
        return [entry.to_widget() for entry in self._entries]

    def get(self, event_id: RecordId) -> Optional[CalendarEntry]:
        # Widget callbacks hand ids back as strings
        for entry in self._entries:
            if entry.id == event_id or str(entry.id) == str(event_id):
                return entry
        return None

    @property
    def editing(self) -> Optional[CalendarEntry]:
        return self.get(self.editing_id) if self.editing_id is not None else None

    def _put(self, entry: CalendarEntry) -> None:
        self._entries = [e for e in self._entries if e.id != entry.id]
        self._entries.append(entry)
        self._entries.sort(key=_start_key)

    async def load(self) -> bool:
        """Replace the entries with the first page of events by start time."""
        try:
            rows = await self._store.select(EVENTS, order_by="start_at", limit=self._limit)
            entries = [CalendarEntry.from_record(CalendarEvent.model_validate(r)) for r in rows]
        except (StorageError, ValidationError) as e:
            logger.error("calendar_load_failed", error=str(e))
            if self._audit_logger:
                self._audit_logger.log_load_failed(EVENTS, e)
            return False

        self._entries = entries
        return True

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def begin_create(
        self,
        start: DateLike,
        end: Optional[DateLike] = None,
        selection: bool = False,
    ) -> None:
        """
        Open the create dialog.

        Args:
            start: Clicked day or start of the selected range
            end: End of the selected range
            selection: True for a range selection; the end is then kept
                as given (None means open-ended). A day click gets a
                one-hour slot.
        """
        start_at = parse_datetime(start)
        if selection:
            end_at = parse_datetime(end) if end else None
        else:
            end_at = start_at + DAY_CLICK_DURATION
        self.state = EditorState.CREATING
        self.selection = (start_at, end_at)
        self.editing_id = None

    async def confirm_create(self, title: str) -> Optional[CalendarEntry]:
        """Insert the pending event. A blank title cancels the dialog."""
        if self.state != EditorState.CREATING or self.selection is None:
            return None
        title = (title or "").strip()
        if not title:
            self.cancel()
            return None

        start, end = self.selection
        try:
            rows = await self._store.insert(EVENTS, {"title": title, **_schedule_values(start, end)})
            entry = CalendarEntry.from_record(CalendarEvent.model_validate(rows[0]))
        except (StorageError, ValidationError, IndexError) as e:
            logger.error("event_create_failed", title=title, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_save_failed(EVENTS, e, {"title": title})
            self._notifier.error("Event could not be saved")
            return None

        self._put(entry)
        if self._audit_logger:
            self._audit_logger.log_created(EVENTS, entry.id)
        self.cancel()
        return entry

    # ------------------------------------------------------------------
    # Edit / delete
    # ------------------------------------------------------------------

    def begin_edit(self, event_id: RecordId) -> bool:
        entry = self.get(event_id)
        if entry is None:
            return False
        self.state = EditorState.EDITING
        self.editing_id = entry.id
        self.selection = None
        return True

    async def rename(self, title: str) -> bool:
        """
        Write a new title for the event being edited.

        Nothing is written if the trimmed title is blank or unchanged;
        the dialog just closes.
        """
        entry = self.editing
        if self.state != EditorState.EDITING or entry is None:
            return False
        title = (title or "").strip()
        if not title or title == entry.title:
            self.cancel()
            return False

        try:
            await self._store.update(EVENTS, entry.id, {"title": title})
        except StorageError as e:
            logger.error("event_rename_failed", event_id=entry.id, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_update_failed(EVENTS, entry.id, e)
            self._notifier.error("Update failed")
            return False

        self._put(replace(entry, title=title))
        if self._audit_logger:
            self._audit_logger.log_updated(EVENTS, entry.id, ["title"])
        self.cancel()
        return True

    def request_delete(self) -> bool:
        if self.state != EditorState.EDITING or self.editing is None:
            return False
        self.state = EditorState.CONFIRMING_DELETE
        return True

    async def confirm_delete(self) -> bool:
        entry = self.editing
        if self.state != EditorState.CONFIRMING_DELETE or entry is None:
            return False

        try:
            await self._store.delete(EVENTS, entry.id)
        except StorageError as e:
            logger.error("event_delete_failed", event_id=entry.id, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_delete_failed(EVENTS, entry.id, e)
            self._notifier.error("Delete failed")
            self.state = EditorState.EDITING
            return False

        self._entries = [e for e in self._entries if e.id != entry.id]
        if self._audit_logger:
            self._audit_logger.log_deleted(EVENTS, entry.id)
        self.cancel()
        return True

    def cancel(self) -> None:
        self.state = EditorState.IDLE
        self.selection = None
        self.editing_id = None

    # ------------------------------------------------------------------
    # Drag and resize
    # ------------------------------------------------------------------

    async def move(self, event_id: RecordId, start: DateLike, end: Optional[DateLike] = None) -> bool:
        """Event dragged to a new slot."""
        return await self._reschedule(event_id, start, end)

    async def resize(self, event_id: RecordId, start: DateLike, end: Optional[DateLike] = None) -> bool:
        """Event duration changed."""
        return await self._reschedule(event_id, start, end)

    async def _reschedule(
        self,
        event_id: RecordId,
        start: DateLike,
        end: Optional[DateLike],
    ) -> bool:
        previous = self.get(event_id)
        if previous is None:
            return False

        moved = replace(
            previous,
            start=parse_datetime(start),
            end=parse_datetime(end) if end else None,
        )
        self._put(moved)
        try:
            await self._store.update(EVENTS, previous.id, _schedule_values(moved.start, moved.end))
        except StorageError as e:
            logger.error("event_reschedule_failed", event_id=previous.id, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_update_failed(EVENTS, previous.id, e)
            self._notifier.error("Update failed")
            self._put(previous)
            return False

        if self._audit_logger:
            self._audit_logger.log_updated(EVENTS, previous.id, ["start_at", "end_at"])
        return True
