"""In-memory message store for one chat session.

Hides how a session's messages are ordered and deduplicated while local
optimistic appends, write acknowledgments, initial loads and real-time
pushes arrive in arbitrary order.

Every entry is ordered by (created_at, insertion_seq). Methods are
synchronous, so on a single event loop no mutation can observe another
half-applied.
"""

import bisect
import itertools
import logging
from dataclasses import dataclass
from datetime import datetime

from ..config import TEMP_ID_PREFIX
from .models import DeliveryState, Message

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Entry:
    seq: int
    message: Message

    @property
    def key(self) -> tuple[datetime, int]:
        return (self.message.created_at, self.seq)


class MessageStore:
    """Ordered, deduplicated view of a session's messages.

    Owned by exactly one SessionSyncController. Temporary ids handed out by
    append_local are unique within the store and are purged once the entry
    is reconciled or superseded.
    """

    def __init__(self, session_id: str, temp_id_prefix: str = TEMP_ID_PREFIX):
        self._session_id = session_id
        self._temp_id_prefix = temp_id_prefix
        self._entries: list[_Entry] = []
        self._by_id: dict[str, _Entry] = {}
        self._temp_ids: set[str] = set()
        self._seq = itertools.count()
        self._temp_counter = itertools.count(1)

    @property
    def session_id(self) -> str:
        return self._session_id

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._by_id

    def get(self, message_id: str) -> Message | None:
        """Get a message by id (confirmed or temporary)."""
        entry = self._by_id.get(message_id)
        return entry.message if entry else None

    @property
    def pending_ids(self) -> frozenset[str]:
        """Temporary ids not yet reconciled."""
        return frozenset(self._temp_ids)

    def failed(self) -> list[Message]:
        """Local messages whose write failed, in display order."""
        return [
            e.message for e in self._entries
            if e.message.delivery == DeliveryState.FAILED
        ]

    def snapshot(self) -> tuple[Message, ...]:
        """Read-only ordered copy for rendering."""
        return tuple(entry.message for entry in self._entries)

    def append_local(self, message: Message) -> str:
        """Insert an optimistic message at the end of the current order.

        Args:
            message: Message created locally; its id is replaced

        Returns:
            The temporary id assigned to the entry
        """
        temp_id = self._new_temp_id()
        created_at = message.created_at
        if self._entries and self._entries[-1].message.created_at > created_at:
            # Local clock is behind the newest entry; keep the entry last.
            created_at = self._entries[-1].message.created_at

        entry = _Entry(
            seq=next(self._seq),
            message=message.model_copy(update={
                "id": temp_id,
                "session_id": self._session_id,
                "created_at": created_at,
                "delivery": DeliveryState.PENDING,
            }),
        )
        self._entries.append(entry)
        self._by_id[temp_id] = entry
        self._temp_ids.add(temp_id)
        return temp_id

    def reconcile_confirmed(self, temp_id: str, confirmed: Message) -> None:
        """Replace a temporary entry with the server-confirmed record.

        The entry keeps its position and insertion sequence unless the
        confirmed timestamp would put it out of order, in which case the
        store re-sorts. Reconciling the same pair twice is a no-op.

        Args:
            temp_id: Id returned by append_local
            confirmed: Record returned by the persistence store
        """
        temp_entry = self._by_id.get(temp_id) if temp_id in self._temp_ids else None
        existing = self._by_id.get(confirmed.id)

        if existing is not None:
            # Already present, e.g. a push for this row landed first.
            if temp_entry is not None:
                self._drop(temp_entry, temp_id)
                self._temp_ids.discard(temp_id)
            self._replace(existing, confirmed)
            return

        if temp_entry is None:
            logger.debug("Unknown temp id %s; inserting %s as new", temp_id, confirmed.id)
            self._insert_sorted(confirmed)
            return

        del self._by_id[temp_id]
        self._temp_ids.discard(temp_id)
        self._by_id[confirmed.id] = temp_entry
        self._replace(temp_entry, confirmed)

    def merge_remote(self, messages: list[Message]) -> None:
        """Merge a full remote listing by id.

        Known ids are replaced in place, unknown ids are added, and the result
        is sorted by (created_at, insertion_seq). Applying the same listing
        twice leaves the snapshot unchanged.
        """
        for message in messages:
            existing = self._by_id.get(message.id)
            if existing is not None:
                existing.message = message
            else:
                entry = _Entry(seq=next(self._seq), message=message)
                self._entries.append(entry)
                self._by_id[message.id] = entry
        self._entries.sort(key=lambda e: e.key)

    def apply_realtime_insert(self, message: Message) -> bool:
        """Insert a pushed message unless its id is already present.

        Returns:
            True if the message was added
        """
        if message.id in self._by_id:
            return False
        self._insert_sorted(message)
        return True

    def apply_realtime_update(self, message: Message) -> bool:
        """Replace a message by id, inserting it if unknown.

        Returns:
            True if an existing entry was replaced
        """
        existing = self._by_id.get(message.id)
        if existing is None:
            self._insert_sorted(message)
            return False
        self._replace(existing, message)
        return True

    def mark_failed(self, temp_id: str) -> None:
        """Flag a local entry as not durably saved."""
        if temp_id not in self._temp_ids:
            return
        entry = self._by_id[temp_id]
        entry.message = entry.message.model_copy(update={"delivery": DeliveryState.FAILED})

    def mark_pending(self, temp_id: str) -> None:
        """Flag a local entry as having a write in flight again."""
        if temp_id not in self._temp_ids:
            return
        entry = self._by_id[temp_id]
        entry.message = entry.message.model_copy(update={"delivery": DeliveryState.PENDING})

    def remove(self, message_id: str) -> bool:
        """Remove a message (explicit delete).

        Returns:
            True if a message was removed
        """
        entry = self._by_id.get(message_id)
        if entry is None:
            return False
        self._drop(entry, message_id)
        self._temp_ids.discard(message_id)
        return True

    def clear(self) -> None:
        """Remove every message."""
        self._entries.clear()
        self._by_id.clear()
        self._temp_ids.clear()

    def _new_temp_id(self) -> str:
        while True:
            temp_id = f"{self._temp_id_prefix}{next(self._temp_counter)}"
            if temp_id not in self._by_id:
                return temp_id

    def _insert_sorted(self, message: Message) -> None:
        entry = _Entry(seq=next(self._seq), message=message)
        bisect.insort(self._entries, entry, key=lambda e: e.key)
        self._by_id[message.id] = entry

    def _drop(self, entry: _Entry, message_id: str) -> None:
        self._entries.remove(entry)
        del self._by_id[message_id]

    def _replace(self, entry: _Entry, message: Message) -> None:
        entry.message = message
        index = self._entries.index(entry)
        out_of_order = (
            (index > 0 and self._entries[index - 1].key > entry.key)
            or (index < len(self._entries) - 1 and entry.key > self._entries[index + 1].key)
        )
        if out_of_order:
            logger.debug("Re-sorting after %s changed timestamp", message.id)
            self._entries.sort(key=lambda e: e.key)
