"""Plugin directory events.

The registry reacts to an abstract stream of add/change/remove events for
named plugin sources (PluginEventSource). DirectoryWatcher implements it by
polling a directory's modification times, independent of OS watch APIs.
"""

import os
import threading
from collections.abc import Callable, Iterable
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Protocol

from extractors.loader import is_plugin_file
from models.config import settings
from utils.logging import get_logger

logger = get_logger(__name__)


class EventKind(str, Enum):
    """Kind of change to a plugin source."""

    ADDED = "add"
    CHANGED = "change"
    REMOVED = "remove"


class PluginEvent(NamedTuple):
    kind: EventKind
    path: Path


EventCallback = Callable[[PluginEvent], None]


class PluginEventSource(Protocol):
    """Anything that emits plugin source events to subscribers."""

    def subscribe(self, callback: EventCallback) -> None: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...


class DirectoryWatcher:
    """Polling watcher for a plugin directory.

    Files present when the watcher starts produce no events; the registry's
    initial scan covers them. Dotfiles, underscore-prefixed modules and
    unrecognized extensions are ignored.
    """

    def __init__(
        self,
        directory,
        extensions: Iterable[str] | None = None,
        interval: float | None = None,
    ) -> None:
        self.directory = Path(directory)
        self.extensions = list(extensions if extensions is not None else settings.plugins.extensions)
        self.interval = interval if interval is not None else settings.plugins.watch_interval_seconds
        self._callbacks: list[EventCallback] = []
        self._snapshot: dict[Path, int] | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def subscribe(self, callback: EventCallback) -> None:
        self._callbacks.append(callback)

    def _scan(self) -> dict[Path, int]:
        snapshot = {}
        try:
            with os.scandir(self.directory) as entries:
                for entry in entries:
                    if not entry.is_file() or not is_plugin_file(entry.name, self.extensions):
                        continue
                    try:
                        snapshot[Path(entry.path)] = entry.stat().st_mtime_ns
                    except FileNotFoundError:
                        # Deleted between listing and stat
                        continue
        except FileNotFoundError:
            logger.warning(f"Plugin directory {self.directory} does not exist")
        return snapshot

    def prime(self) -> None:
        """Record the current directory state without emitting events."""
        self._snapshot = self._scan()

    def poll(self) -> list[PluginEvent]:
        """Compare the directory to the last snapshot and emit the differences.

        Returns:
            Events emitted this round (removals last, paths sorted)
        """
        if self._snapshot is None:
            self.prime()
            return []

        current = self._scan()
        previous = self._snapshot
        events = []
        for path in sorted(current):
            if path not in previous:
                events.append(PluginEvent(EventKind.ADDED, path))
            elif current[path] != previous[path]:
                events.append(PluginEvent(EventKind.CHANGED, path))
        for path in sorted(previous.keys() - current.keys()):
            events.append(PluginEvent(EventKind.REMOVED, path))

        self._snapshot = current
        for event in events:
            logger.debug(f"Plugin {event.kind.value}: {event.path}")
            for callback in self._callbacks:
                callback(event)
        return events

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.poll()
            except Exception:
                logger.exception("Plugin watcher poll failed")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self.prime()
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="plugin-watcher", daemon=True)
        self._thread.start()
        logger.info(f"Watching {self.directory} every {self.interval}s")

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
            self._thread = None
