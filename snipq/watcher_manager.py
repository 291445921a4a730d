from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class _VaultEventHandler(FileSystemEventHandler):
    def __init__(self, on_event: Callable[[FileSystemEvent], None]) -> None:
        super().__init__()
        self._on_event = on_event

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._on_event(event)


class WatcherManager:
    """Watch vault directories and call ``on_change`` after edits settle.

    Bursts of events (an editor writing several files) are coalesced with a
    ``threading.Timer`` of ``debounce`` seconds; ``debounce <= 0`` calls back
    immediately. Accepts an optional ``observer`` for test injection; the
    watchdog ``Observer`` is used otherwise.
    """

    def __init__(
        self,
        paths: List[Path],
        on_change: Callable[[], Any],
        observer: Optional[Any] = None,
        debounce: float = 0.25,
    ) -> None:
        self._paths = [Path(p) for p in paths]
        self._on_change = on_change
        self._observer = observer if observer is not None else Observer()
        self._debounce = debounce
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()
        self._started = False

    def start(self) -> None:
        if self._started:
            return
        handler = _VaultEventHandler(self._handle_event)
        try:
            for path in self._paths:
                if path.exists():
                    self._observer.schedule(handler, str(path), recursive=True)
                else:
                    logger.warning("Not watching missing path %s", path)
            self._observer.start()
            self._started = True
        except (OSError, RuntimeError) as exc:
            logger.error("Failed to start vault watcher: %s", exc)
            self._started = False

    def stop(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if not self._started:
            return
        try:
            self._observer.stop()
            self._observer.join(timeout=2)
        except RuntimeError as exc:
            logger.warning("Error stopping vault watcher: %s", exc)
        finally:
            self._started = False

    def is_running(self) -> bool:
        return self._started

    def _handle_event(self, event: FileSystemEvent) -> None:
        if event.is_directory and event.event_type == "modified":
            return
        logger.debug("Vault %s: %s", event.event_type, event.src_path)
        if self._debounce <= 0:
            self._fire()
            return
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._timer_lock:
            self._timer = None
        try:
            self._on_change()
        except Exception:
            logger.exception("Vault reload after change failed")
