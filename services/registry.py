"""Plugin registry.

Owns the live extractor instances, keyed by the file name of their source
(without extension), and keeps them in sync with the plugin directory.
"""

import threading
from pathlib import Path

from extractors.loader import (
    Extractor,
    discard_module,
    list_plugin_files,
    load_extractor,
    plugin_key,
)
from models.config import settings
from models.models import ExtractorInfo
from services.watcher import EventKind, PluginEvent, PluginEventSource
from utils.exceptions import LoadError, NotFoundError
from utils.logging import get_logger, plugin_logger

logger = get_logger(__name__)


class PluginRegistry:
    """Registry of loaded extractor plugins.

    load/unload/reload mutate the registry and are serialized with each
    other. lookup/list_keys/info read it and never wait on a plugin being
    constructed: a reload swaps the new instance in a single step, so a
    healthy key never disappears while it is being replaced.

    Each plugin is constructed on its own thread bounded by the load timeout;
    a constructor that hangs past it fails with LoadError and its thread is
    left behind without blocking later loads.
    """

    def __init__(self, directory=None, extensions=None, load_timeout: float | None = None) -> None:
        self.directory = Path(directory if directory is not None else settings.plugins.directory)
        self.extensions = list(extensions if extensions is not None else settings.plugins.extensions)
        self.load_timeout = (
            load_timeout if load_timeout is not None else settings.plugins.load_timeout_seconds
        )
        self._plugins: dict[str, Extractor] = {}
        self._lock = threading.RLock()
        self._mutation_lock = threading.Lock()
        self._watcher: PluginEventSource | None = None

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._plugins

    def __len__(self) -> int:
        with self._lock:
            return len(self._plugins)

    def __enter__(self) -> "PluginRegistry":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _build(self, path: Path) -> Extractor:
        outcome = {}

        def run() -> None:
            try:
                outcome["instance"] = load_extractor(path)
            except Exception as e:
                outcome["error"] = e

        # One thread per build; a hung constructor is abandoned, never reused
        thread = threading.Thread(target=run, name=f"plugin-loader-{plugin_key(path)}", daemon=True)
        thread.start()
        thread.join(self.load_timeout)
        if thread.is_alive():
            raise LoadError(path, f"timed out after {self.load_timeout}s")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["instance"]

    def _swap(self, key: str, instance: Extractor) -> Extractor | None:
        with self._lock:
            previous = self._plugins.get(key)
            self._plugins[key] = instance
        return previous

    def _close(self, key: str, instance: Extractor) -> None:
        try:
            instance.close()
        except Exception:
            plugin_logger(logger, key).exception("Error closing plugin")

    def load(self, path) -> str:
        """Load a plugin source and register its extractor.

        Returns:
            The registry key (file name without extension)

        Raises:
            LoadError: If the source cannot produce an extractor; the registry
                is left unchanged
        """
        path = Path(path)
        key = plugin_key(path)
        with self._mutation_lock:
            instance = self._build(path)
            previous = self._swap(key, instance)
        if previous is not None:
            self._close(key, previous)
        plugin_logger(logger, key).info(f"Loaded from {path}")
        return key

    def unload(self, key: str) -> bool:
        """Remove a plugin. Unloading an unknown key is a no-op.

        Returns:
            True if a plugin was removed
        """
        with self._mutation_lock:
            with self._lock:
                instance = self._plugins.pop(key, None)
        if instance is None:
            plugin_logger(logger, key).info("Nothing to unload")
            return False

        self._close(key, instance)
        discard_module(key)
        plugin_logger(logger, key).info("Unloaded")
        return True

    def reload(self, key: str, path) -> str:
        """Replace a plugin with a fresh instance built from its source.

        The old instance is discarded entirely. If the new source fails to
        load, the key is removed, as if unloaded, and LoadError is raised.
        """
        path = Path(path)
        with self._mutation_lock:
            try:
                instance = self._build(path)
            except LoadError:
                with self._lock:
                    previous = self._plugins.pop(key, None)
                if previous is not None:
                    self._close(key, previous)
                    plugin_logger(logger, key).warning("Removed: new source failed to load")
                raise
            previous = self._swap(key, instance)
        if previous is not None:
            self._close(key, previous)
        plugin_logger(logger, key).info(f"Reloaded from {path}")
        return key

    def lookup(self, key: str) -> Extractor:
        """Get the extractor registered under a key.

        Raises:
            NotFoundError: If no plugin is registered under the key
        """
        with self._lock:
            instance = self._plugins.get(key)
        if instance is None:
            raise NotFoundError(key)
        return instance

    def list_keys(self) -> set[str]:
        with self._lock:
            return set(self._plugins)

    def info(self, key: str) -> ExtractorInfo:
        return self.lookup(key).info(key)

    def scan_directory(self, directory=None) -> list[str]:
        """Load every plugin file of a directory that is not registered yet.

        Files that fail to load are logged and skipped.

        Returns:
            Keys loaded by this scan
        """
        directory = Path(directory) if directory is not None else self.directory
        loaded = []
        for path in list_plugin_files(directory, self.extensions):
            if plugin_key(path) in self:
                continue
            try:
                loaded.append(self.load(path))
            except LoadError as e:
                logger.error(str(e))
        return loaded

    def handle_event(self, event: PluginEvent) -> None:
        """Apply one plugin source event (add → load, change → reload, remove → unload)."""
        key = plugin_key(event.path)
        try:
            if event.kind is EventKind.ADDED:
                self.load(event.path)
            elif event.kind is EventKind.CHANGED:
                self.reload(key, event.path)
            else:
                self.unload(key)
        except LoadError as e:
            logger.error(str(e))

    def start(self, watcher: PluginEventSource | None = None) -> None:
        """Load the plugin directory and, if given, follow a watcher's events."""
        self.scan_directory()
        if watcher is not None:
            watcher.subscribe(self.handle_event)
            watcher.start()
            self._watcher = watcher
        logger.info(f"Plugin registry started with {len(self)} plugins: {sorted(self.list_keys())}")

    def close(self) -> None:
        """Stop watching and drop every plugin."""
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

        with self._mutation_lock:
            with self._lock:
                plugins = self._plugins
                self._plugins = {}
        for key, instance in plugins.items():
            self._close(key, instance)
            discard_module(key)
        logger.info("Plugin registry closed")
