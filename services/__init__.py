"""Service layer.

- registry: Plugin registry (load/unload/reload/lookup, directory scan)
- watcher: Plugin source event stream and polling directory watcher
- dispatcher: Key resolution and extractor operation dispatch for the API
"""

from services.dispatcher import Dispatcher
from services.registry import PluginRegistry
from services.watcher import DirectoryWatcher, EventKind, PluginEvent

__all__ = ["Dispatcher", "PluginRegistry", "DirectoryWatcher", "EventKind", "PluginEvent"]
