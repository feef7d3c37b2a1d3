# =============================================================================
# Reqdesk Client -- Notification Store and Message Log
# =============================================================================

from __future__ import annotations

from typing import Any, Callable

from ._logging import logger
from .types import ChatMessageRecord, NotificationRecord

RecordListener = Callable[[Any], Any]


def _notify(listeners: list[RecordListener], record: Any) -> None:
    for listener in list(listeners):
        try:
            listener(record)
        except Exception as exc:
            logger.error("Listener error for %r: %s", getattr(record, "id", record), exc)


class NotificationStore:
    """Newest-first collection of notifications with read/unread state.

    Counts are computed from the collection on every access, never kept as
    separate counters.

    Args:
        max_size: Keep at most this many records, evicting the oldest.
            ``None`` (default) keeps everything for the session.
    """

    def __init__(self, max_size: int | None = None) -> None:
        if max_size is not None and max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self._max_size = max_size
        self._records: list[NotificationRecord] = []
        self._listeners: list[RecordListener] = []

    # -- Views ----------------------------------------------------------------

    @property
    def records(self) -> list[NotificationRecord]:
        """Snapshot of the collection, newest first."""
        return list(self._records)

    @property
    def total_count(self) -> int:
        return len(self._records)

    @property
    def unread_count(self) -> int:
        return sum(1 for r in self._records if r.is_unread)

    def unread(self) -> list[NotificationRecord]:
        return [r for r in self._records if r.is_unread]

    def get(self, record_id: str | int) -> NotificationRecord | None:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return any(r.id == record_id for r in self._records)

    # -- Mutations ------------------------------------------------------------

    def add(self, record: NotificationRecord) -> bool:
        """Prepend *record*.  Returns False if its id is already present."""
        if record.id in self:
            logger.debug("Duplicate notification %r dropped", record.id)
            return False

        records = [record, *self._records]
        if self._max_size is not None and len(records) > self._max_size:
            evicted = len(records) - self._max_size
            records = records[: self._max_size]
            logger.debug("Evicted %d oldest notifications", evicted)
        self._records = records

        _notify(self._listeners, record)
        return True

    def mark_read(self, record_id: str | int) -> bool:
        """Mark one record read.  Unknown ids are ignored.

        Returns True if a record with *record_id* exists.
        """
        record = self.get(record_id)
        if record is None:
            logger.debug("mark_read: no notification %r", record_id)
            return False
        record.is_unread = False
        return True

    def mark_all_read(self) -> int:
        """Mark every record read.  Returns how many were unread."""
        changed = 0
        for record in self._records:
            if record.is_unread:
                record.is_unread = False
                changed += 1
        return changed

    def clear(self) -> None:
        self._records = []

    # -- Listeners ------------------------------------------------------------

    def add_listener(self, fn: RecordListener) -> None:
        """Call *fn(record)* for every newly stored notification."""
        self._listeners.append(fn)

    def remove_listener(self, fn: RecordListener) -> None:
        if fn in self._listeners:
            self._listeners.remove(fn)


class MessageLog:
    """Chronological, append-only chat history of one conversation."""

    def __init__(self, conversation_id: str) -> None:
        self._conversation_id = conversation_id
        self._messages: list[ChatMessageRecord] = []
        self._listeners: list[RecordListener] = []

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    @property
    def messages(self) -> list[ChatMessageRecord]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, message: ChatMessageRecord) -> None:
        if message.conversation_id != self._conversation_id:
            raise ValueError(
                f"message for conversation {message.conversation_id!r} "
                f"appended to log of {self._conversation_id!r}"
            )
        self._messages.append(message)
        _notify(self._listeners, message)

    def add_listener(self, fn: RecordListener) -> None:
        self._listeners.append(fn)

    def remove_listener(self, fn: RecordListener) -> None:
        if fn in self._listeners:
            self._listeners.remove(fn)
