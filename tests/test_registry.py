"""
Tests for services/registry.py

Coverage:
- load/unload/reload/lookup/list_keys
- Independent instances per key
- Reload replaces state atomically (no NotFound window)
- Failing sources contained by scan_directory and handle_event
- Load timeout on hung constructors
- Watcher events mapped to registry operations
"""

import asyncio
import threading
import time

import pytest

from extractors.loader import Extractor
from services.registry import PluginRegistry
from services.watcher import EventKind, PluginEvent
from utils.exceptions import LoadError, NotFoundError

from conftest import plugin_source

SLOW_PLUGIN = plugin_source(version="slow").replace(
    "    def __init__(self):\n",
    "    def __init__(self):\n        import time\n        time.sleep({delay})\n",
)


class TestLoad:
    """Test loading plugin sources."""

    def test_load_registers_under_file_stem(self, registry, write_plugin):
        """Key is the file name without extension."""
        key = registry.load(write_plugin("demo.py"))

        assert key == "demo"
        assert registry.list_keys() == {"demo"}
        assert isinstance(registry.lookup("demo"), Extractor)

    def test_distinct_keys_get_independent_instances(self, registry, write_plugin):
        """Two sources give two unrelated instances."""
        registry.load(write_plugin("alpha.py", site="alpha"))
        registry.load(write_plugin("beta.py", site="beta"))

        alpha = registry.lookup("alpha")
        beta = registry.lookup("beta")
        assert alpha is not beta
        assert alpha.site_name == "alpha"
        assert beta.site_name == "beta"

    def test_unloading_one_key_keeps_the_other(self, registry, write_plugin):
        registry.load(write_plugin("alpha.py", site="alpha"))
        registry.load(write_plugin("beta.py", site="beta"))
        beta = registry.lookup("beta")

        registry.unload("alpha")

        assert registry.lookup("beta") is beta
        with pytest.raises(NotFoundError):
            registry.lookup("alpha")

    def test_load_broken_source_raises_and_leaves_registry(self, registry, write_plugin):
        """A malformed source fails with LoadError naming the path."""
        registry.load(write_plugin("demo.py"))
        path = write_plugin("broken.py", source="def oops(:\n")

        with pytest.raises(LoadError) as exc_info:
            registry.load(path)

        assert exc_info.value.path == str(path)
        assert registry.list_keys() == {"demo"}

    def test_load_source_without_extractor_raises(self, registry, write_plugin):
        path = write_plugin("empty.py", source="VALUE = 1\n")

        with pytest.raises(LoadError):
            registry.load(path)
        assert "empty" not in registry

    def test_load_twice_replaces_entry(self, registry, write_plugin):
        """Loading an existing key replaces its instance."""
        path = write_plugin("demo.py")
        registry.load(path)
        first = registry.lookup("demo")

        registry.load(path)

        assert registry.lookup("demo") is not first
        assert first.closed is True
        assert len(registry) == 1

    def test_hung_constructor_times_out(self, plugin_dir, write_plugin):
        """A constructor that hangs must not block the registry."""
        path = write_plugin("hung.py", source=SLOW_PLUGIN.format(delay=3))
        reg = PluginRegistry(directory=plugin_dir, load_timeout=0.2)
        try:
            started = time.monotonic()
            with pytest.raises(LoadError, match="timed out"):
                reg.load(path)
            assert time.monotonic() - started < 2
            assert "hung" not in reg
        finally:
            reg.close()

    def test_healthy_plugin_loads_after_hung_ones(self, plugin_dir, write_plugin):
        """Abandoned constructors never starve later loads."""
        reg = PluginRegistry(directory=plugin_dir, load_timeout=0.2)
        try:
            for name in ("hung1.py", "hung2.py", "hung3.py"):
                with pytest.raises(LoadError, match="timed out"):
                    reg.load(write_plugin(name, source=SLOW_PLUGIN.format(delay=3)))

            assert reg.load(write_plugin("good.py")) == "good"
            assert reg.list_keys() == {"good"}
        finally:
            reg.close()


class TestUnload:
    """Test unloading plugins."""

    def test_lookup_after_unload_raises(self, registry, write_plugin):
        registry.load(write_plugin("demo.py"))

        assert registry.unload("demo") is True
        with pytest.raises(NotFoundError):
            registry.lookup("demo")

    def test_unload_absent_key_is_noop(self, registry):
        """Unloading an unknown key is not an error."""
        assert registry.unload("missing") is False
        assert registry.list_keys() == set()

    def test_unload_closes_instance(self, registry, write_plugin):
        registry.load(write_plugin("demo.py"))
        instance = registry.lookup("demo")

        registry.unload("demo")

        assert instance.closed is True


class TestReload:
    """Test reloading plugins."""

    def test_reload_reflects_new_source(self, registry, write_plugin):
        """After reload, lookup returns an instance built from the new source."""
        registry.load(write_plugin("demo.py", version="v1"))
        path = write_plugin("demo.py", version="v2")

        registry.reload("demo", path)

        work = asyncio.run(registry.lookup("demo").fetch_work_by_id("1"))
        assert work.metadata.title == "v2"

    def test_reload_drops_old_state(self, registry, write_plugin):
        """Nothing from the old instance survives a reload."""
        path = write_plugin("demo.py")
        registry.load(path)
        old = registry.lookup("demo")
        asyncio.run(old.fetch_work_by_id("1"))
        asyncio.run(old.fetch_work_by_id("2"))
        assert old.calls == 2

        registry.reload("demo", path)
        new = registry.lookup("demo")

        assert new is not old
        assert new.calls == 0
        assert old.closed is True

    def test_reload_never_exposes_missing_key(self, registry, write_plugin):
        """Lookups during a slow reload keep getting the old instance."""
        registry.load(write_plugin("demo.py", version="v1"))
        old = registry.lookup("demo")
        path = write_plugin("demo.py", source=SLOW_PLUGIN.format(delay=0.3))

        thread = threading.Thread(target=registry.reload, args=("demo", path))
        thread.start()
        seen = set()
        while thread.is_alive():
            seen.add(id(registry.lookup("demo")))
            time.sleep(0.01)
        thread.join()

        new = registry.lookup("demo")
        assert new is not old
        assert seen <= {id(old), id(new)}

    def test_failed_reload_removes_key(self, registry, write_plugin):
        """A reload whose new source is broken ends like unload + failed load."""
        registry.load(write_plugin("demo.py"))
        old = registry.lookup("demo")
        path = write_plugin("demo.py", source="raise RuntimeError('bad plugin')\n")

        with pytest.raises(LoadError):
            registry.reload("demo", path)

        assert "demo" not in registry
        assert old.closed is True


class TestScanDirectory:
    """Test directory scanning."""

    def test_scan_loads_all_plugins(self, registry, write_plugin):
        write_plugin("alpha.py", site="alpha")
        write_plugin("beta.py", site="beta")

        loaded = registry.scan_directory()

        assert loaded == ["alpha", "beta"]
        assert registry.list_keys() == {"alpha", "beta"}

    def test_scan_continues_past_broken_files(self, registry, write_plugin):
        """A broken file is logged and skipped, the rest still load."""
        write_plugin("alpha.py", site="alpha")
        write_plugin("broken.py", source="import does_not_exist_anywhere\n")
        write_plugin("gamma.py", site="gamma")

        registry.scan_directory()

        assert registry.list_keys() == {"alpha", "gamma"}

    def test_scan_is_idempotent(self, registry, write_plugin):
        """Already registered keys are not reloaded."""
        write_plugin("alpha.py", site="alpha")
        registry.scan_directory()
        alpha = registry.lookup("alpha")

        assert registry.scan_directory() == []
        assert registry.lookup("alpha") is alpha

    def test_scan_ignores_unrecognized_files(self, registry, write_plugin, plugin_dir):
        write_plugin("alpha.py", site="alpha")
        write_plugin(".hidden.py", site="hidden")
        write_plugin("_helpers.py", site="helpers")
        (plugin_dir / "notes.txt").write_text("not a plugin")

        registry.scan_directory()

        assert registry.list_keys() == {"alpha"}

    def test_scan_missing_directory(self, tmp_path):
        reg = PluginRegistry(directory=tmp_path / "nowhere")
        try:
            assert reg.scan_directory() == []
        finally:
            reg.close()

    def test_scan_bundled_plugins(self):
        """The bundled plugin directory provides the webtoon extractor."""
        reg = PluginRegistry()
        try:
            reg.scan_directory()
            assert "webtoon" in reg
            assert reg.info("webtoon").site_name == "Webtoon"
        finally:
            reg.close()


class TestHandleEvent:
    """Test watcher events applied to the registry."""

    def test_add_change_remove(self, registry, write_plugin):
        path = write_plugin("demo.py", version="v1")
        registry.handle_event(PluginEvent(EventKind.ADDED, path))
        first = registry.lookup("demo")

        write_plugin("demo.py", version="v2")
        registry.handle_event(PluginEvent(EventKind.CHANGED, path))
        second = registry.lookup("demo")
        assert second is not first

        registry.handle_event(PluginEvent(EventKind.REMOVED, path))
        assert "demo" not in registry

    def test_broken_add_is_contained(self, registry, write_plugin):
        """LoadError from an event never escapes."""
        path = write_plugin("broken.py", source="def oops(:\n")

        registry.handle_event(PluginEvent(EventKind.ADDED, path))

        assert "broken" not in registry


class TestLifecycle:
    """Test registry start and teardown."""

    def test_start_scans_and_subscribes(self, registry, write_plugin):
        write_plugin("demo.py")

        class RecordingSource:
            def __init__(self):
                self.callbacks = []
                self.started = False
                self.stopped = False

            def subscribe(self, callback):
                self.callbacks.append(callback)

            def start(self):
                self.started = True

            def stop(self):
                self.stopped = True

        source = RecordingSource()
        registry.start(source)

        assert "demo" in registry
        assert source.started is True
        assert source.callbacks == [registry.handle_event]

        registry.close()
        assert source.stopped is True

    def test_close_drops_all_instances(self, plugin_dir, write_plugin):
        write_plugin("alpha.py", site="alpha")
        write_plugin("beta.py", site="beta")

        with PluginRegistry(directory=plugin_dir) as reg:
            reg.scan_directory()
            instances = [reg.lookup("alpha"), reg.lookup("beta")]

        assert reg.list_keys() == set()
        assert all(instance.closed for instance in instances)
