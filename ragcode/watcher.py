"""Debounced file-system watching that reports created, modified and deleted files."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from enum import Enum

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ragcode.errors import ErrorType, validation_error, wrap

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.5
_SKIPPED_DIRS = frozenset({"node_modules", "vendor"})


class FileEvent(str, Enum):
    """Kind of change seen on a file."""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


ChangeHandler = Callable[[str, FileEvent], None]

_EVENT_KINDS = {
    "created": FileEvent.CREATE,
    "modified": FileEvent.MODIFY,
    "deleted": FileEvent.DELETE,
}


def _skip_dir(name: str) -> bool:
    return name.startswith(".") or name in _SKIPPED_DIRS


def _classify(event: FileSystemEvent) -> FileEvent | None:
    kind = _EVENT_KINDS.get(event.event_type)
    if kind is FileEvent.MODIFY and event.is_directory:
        return None
    return kind


class _EventForwarder(FileSystemEventHandler):
    def __init__(self, callback: Callable[[FileSystemEvent], None]) -> None:
        super().__init__()
        self._callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._callback(event)


class Watcher:
    """Watches directory trees and calls a handler once changes to a file settle."""

    def __init__(self, handler: ChangeHandler | None, debounce: float = DEFAULT_DEBOUNCE) -> None:
        if handler is None:
            raise validation_error("change handler cannot be nil")
        if debounce <= 0:
            debounce = DEFAULT_DEBOUNCE
        try:
            self._observer = Observer()
        except OSError as exc:
            raise wrap(exc, ErrorType.INTERNAL, "failed to create file watcher") from exc
        self.handler = handler
        self.debounce = debounce
        self.paths: list[str] = []
        self.watched_dirs: list[str] = []
        self._forwarder = _EventForwarder(self._on_event)
        self._lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._pending: dict[str, threading.Timer] = {}
        self._closed = threading.Event()
        self._observer_closed = False

    def __enter__(self) -> Watcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def add_path(self, path: str) -> None:
        """Watch a directory and all its subdirectories except hidden and vendored ones."""
        if not path:
            raise validation_error("file path cannot be empty")
        abs_path = os.path.abspath(path)
        if not os.path.exists(abs_path):
            raise validation_error(f"path does not exist: {path}")

        added: list[str] = []
        with self._lock:
            if os.path.isdir(abs_path) and not _skip_dir(os.path.basename(abs_path)):
                for root, dirs, _files in os.walk(abs_path):
                    dirs[:] = sorted(d for d in dirs if not _skip_dir(d))
                    try:
                        self._observer.schedule(self._forwarder, root, recursive=False)
                    except OSError as exc:
                        logger.warning("Failed to watch directory %s: %s", root, exc)
                        continue
                    added.append(root)
            self.watched_dirs.extend(added)
            self.paths.append(abs_path)
        logger.info("Added watch path (recursive): root=%s dirs_watched=%d", abs_path, len(added))

    def start(self, stop_event: threading.Event | None = None) -> None:
        """Watch for changes until ``stop_event`` is set or :meth:`stop` is called."""
        logger.info("Starting file watcher: paths=%d", len(self.paths))
        if self._closed.is_set():
            return
        try:
            self._observer.start()
        except OSError as exc:
            raise wrap(exc, ErrorType.INTERNAL, "failed to start file watcher") from exc
        while not self._closed.wait(0.05):
            if stop_event is not None and stop_event.is_set():
                break
        logger.info("File watcher stopped")
        self._close_observer()

    def stop(self) -> None:
        """Stop watching and cancel every pending debounced call."""
        with self._pending_lock:
            for timer in self._pending.values():
                timer.cancel()
            self._pending.clear()
        self._closed.set()
        self._close_observer()

    def _close_observer(self) -> None:
        with self._lock:
            if self._observer_closed:
                return
            self._observer_closed = True
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join()

    def _on_event(self, event: FileSystemEvent) -> None:
        kind = _classify(event)
        if kind is None or self._closed.is_set():
            return
        path = os.fsdecode(event.src_path)
        logger.info("File event detected: path=%s event=%s", path, kind.value)

        with self._pending_lock:
            previous = self._pending.get(path)
            if previous is not None:
                previous.cancel()
            timer = threading.Timer(self.debounce, self._fire, args=(path, kind))
            timer.daemon = True
            self._pending[path] = timer
            timer.start()

    def _fire(self, path: str, kind: FileEvent) -> None:
        with self._pending_lock:
            self._pending.pop(path, None)
        try:
            self.handler(path, kind)
        except Exception:
            logger.exception("Failed to handle file event: path=%s event=%s", path, kind.value)