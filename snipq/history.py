from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from snipq.models import HistoryEntry, Settings, Snippet

logger = logging.getLogger(__name__)

HistorySink = Callable[[HistoryEntry], None]


class HistoryRecorder:
    """Fixed-capacity ring of recent expansions.

    Slots are preallocated and overwritten through a rotating write cursor,
    so the oldest entry is evicted once the ring is full. Recording is best
    effort: when the lock cannot be taken within ``lock_timeout`` seconds the
    entry is dropped, and errors from the optional ``sink`` are only logged.
    """

    def __init__(self, limit: int, sink: Optional[HistorySink] = None, lock_timeout: float = 0.005) -> None:
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout
        self._sink = sink
        self._slots: List[Optional[HistoryEntry]] = [None] * max(limit, 0)
        self._cursor = 0
        self._count = 0

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def __len__(self) -> int:
        return self._count

    def should_record(self, snippet: Snippet, settings: Settings) -> bool:
        if not settings.history_enabled:
            return False
        if settings.pin_for_sensitive and snippet.is_sensitive:
            return False
        return True

    def record(self, snippet: Snippet, entry: HistoryEntry, settings: Settings) -> bool:
        """Append ``entry`` if policy allows; never raises."""
        try:
            if not self.should_record(snippet, settings):
                return False
            if not self._lock.acquire(timeout=self._lock_timeout):
                logger.debug("History busy; dropped entry for %s", entry.snippet_id)
                return False
            try:
                if not self._slots:
                    return False
                self._slots[self._cursor] = entry
                self._cursor = (self._cursor + 1) % len(self._slots)
                self._count = min(self._count + 1, len(self._slots))
            finally:
                self._lock.release()
        except Exception:
            logger.exception("Failed to record history for %s", entry.snippet_id)
            return False

        if self._sink is not None:
            try:
                self._sink(entry)
            except Exception:
                logger.exception("History sink failed for %s", entry.snippet_id)
        return True

    def entries(self) -> List[HistoryEntry]:
        """Recorded entries, oldest first."""
        with self._lock:
            return self._ordered()

    def _ordered(self) -> List[HistoryEntry]:
        size = len(self._slots)
        if not size:
            return []
        start = (self._cursor - self._count) % size
        return [self._slots[(start + i) % size] for i in range(self._count)]

    def resize(self, limit: int) -> None:
        """Change capacity, keeping the newest entries that still fit."""
        limit = max(limit, 0)
        with self._lock:
            if limit == len(self._slots):
                return
            kept = self._ordered()[-limit:] if limit else []
            self._slots = list(kept) + [None] * (limit - len(kept))
            self._count = len(kept)
            self._cursor = self._count % limit if limit else 0

    def clear(self) -> None:
        with self._lock:
            self._slots = [None] * len(self._slots)
            self._cursor = 0
            self._count = 0
