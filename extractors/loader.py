import importlib.util
import inspect
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from models.models import ExtractorInfo, ImageURL, Work
from utils.exceptions import LoadError

MODULE_PREFIX = "_manhwa_hub_plugin_"


class Extractor(ABC):
    """Abstract base class for site extractor plugins.

    Subclasses describe their site through the identity attributes and
    implement the three coroutines below. Instances are constructed with no
    arguments and are expected to hold no state between calls.
    """

    site_name: str = ""
    site_url: str = ""
    site_logo: str = ""
    site_description: str = ""
    developer: str = ""

    @abstractmethod
    async def search_by_title(self, query: str) -> list[Work]:
        """Search the site for works matching a title.

        Args:
            query: Free-text title query

        Returns:
            Works in the order the site listed them, each with an empty
            chapter list (search is metadata-only)

        Raises:
            NetworkError: Transport failure or timeout
            ParseError: A structurally expected element yields nothing parseable
        """
        raise NotImplementedError

    @abstractmethod
    async def fetch_work_by_id(self, work_id: str) -> Work:
        """Fetch one work with its full chapter list.

        Args:
            work_id: Site-specific work identifier

        Raises:
            NetworkError: Transport failure or timeout
            ParseError: Mandatory field (title) missing
        """
        raise NotImplementedError

    @abstractmethod
    async def fetch_chapter_pages(self, chapter_url: str) -> list[ImageURL]:
        """Extract the image URLs of one chapter.

        Args:
            chapter_url: Chapter URL from Work.chapters

        Returns:
            Image URLs in reading (DOM) order
        """
        raise NotImplementedError

    def info(self, key: str = "") -> ExtractorInfo:
        return ExtractorInfo(
            key=key,
            site_name=self.site_name,
            site_url=self.site_url,
            site_logo=self.site_logo,
            site_description=self.site_description,
            developer=self.developer,
        )

    def close(self) -> None:
        """Release anything the instance holds. Called on unload and reload."""


def plugin_key(path) -> str:
    """Registry key of a plugin source file: its name without extension."""
    return Path(path).stem


def is_plugin_file(path, extensions: Iterable[str]) -> bool:
    """Check whether a path names a recognized extractor source file.

    Dotfiles and underscore-prefixed modules (__init__.py, _helpers.py) are
    never plugins.
    """
    name = Path(path).name
    if name.startswith((".", "_")):
        return False
    return Path(name).suffix in set(extensions)


def list_plugin_files(directory, extensions: Iterable[str]) -> list[Path]:
    """Recognized plugin files of a directory, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    extensions = list(extensions)
    return sorted(
        entry
        for entry in directory.iterdir()
        if entry.is_file() and is_plugin_file(entry, extensions)
    )


def execute_source(path):
    """Execute a plugin source file as a fresh module.

    The module is registered in sys.modules under a private name so that
    pydantic models and dataclasses defined in the plugin resolve correctly.
    Any previous module for the same key is replaced.

    The source is compiled on every call, never read from __pycache__: a
    rewrite within the same second and of the same size would otherwise
    execute stale bytecode.
    """
    path = Path(path)
    module_name = MODULE_PREFIX + plugin_key(path)
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None:
        raise LoadError(path, "not a loadable Python source")

    module = importlib.util.module_from_spec(spec)
    previous = sys.modules.get(module_name)
    sys.modules[module_name] = module
    try:
        code = compile(path.read_bytes(), str(path), "exec")
        exec(code, module.__dict__)
    except Exception as e:
        # A newer load may have registered its own module meanwhile
        if sys.modules.get(module_name) is module:
            if previous is not None:
                sys.modules[module_name] = previous
            else:
                sys.modules.pop(module_name, None)
        raise LoadError(path, f"{type(e).__name__}: {e}") from e
    return module


def discard_module(key: str) -> None:
    sys.modules.pop(MODULE_PREFIX + key, None)


def _is_constructible(obj, module_name: str) -> bool:
    return (
        inspect.isclass(obj)
        and issubclass(obj, Extractor)
        and not inspect.isabstract(obj)
        and obj.__module__ == module_name
    )


def resolve_entry_point(module, path=None):
    """Find the factory that builds a module's extractor.

    Resolution order:
        1. A module-level callable named ``load`` (the registration entry point)
        2. The first concrete Extractor subclass defined in the module, in
           declaration order

    Returns:
        Zero-argument callable producing an Extractor

    Raises:
        LoadError: If the module exposes neither
    """
    factory = getattr(module, "load", None)
    if callable(factory):
        return factory

    for obj in vars(module).values():
        if _is_constructible(obj, module.__name__):
            return obj

    raise LoadError(path or module.__name__, "no load() entry point or Extractor subclass found")


def load_extractor(path) -> Extractor:
    """Execute a plugin source and construct its extractor.

    Raises:
        LoadError: Source fails to execute, exports nothing constructible,
            construction fails, or the result is not an Extractor
    """
    module = execute_source(path)
    factory = resolve_entry_point(module, path)
    try:
        instance = factory()
    except Exception as e:
        raise LoadError(path, f"constructor failed: {type(e).__name__}: {e}") from e

    if not isinstance(instance, Extractor):
        raise LoadError(path, f"entry point returned {type(instance).__name__}, not an Extractor")
    return instance
