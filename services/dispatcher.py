"""Dispatcher between the API surface and the plugin registry.

Resolves a registry key and runs one extractor operation under a deadline.
Operation failures are logged with full detail and re-raised as
OperationError carrying only a generic message.
"""

import asyncio
from collections.abc import Awaitable

from models.config import settings
from models.models import ExtractorInfo, Work
from services.registry import PluginRegistry
from utils.exceptions import NetworkError, OperationError
from utils.logging import get_logger, plugin_logger

logger = get_logger(__name__)

WORK_FAILED = "Failed to get manhwa"
SEARCH_FAILED = "Failed to get manhwa list"
CHAPTER_FAILED = "Failed to get chapter images"


class Dispatcher:
    def __init__(self, registry: PluginRegistry, timeout: float | None = None) -> None:
        self.registry = registry
        self.timeout = timeout if timeout is not None else settings.http.operation_timeout_seconds

    def list_plugins(self) -> list[str]:
        return sorted(self.registry.list_keys())

    def plugin_info(self, key: str) -> ExtractorInfo:
        return self.registry.info(key)

    async def _run(self, key: str, operation: str, call: Awaitable, failure_message: str):
        log = plugin_logger(logger, key)
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            error = NetworkError(f"{operation} exceeded {self.timeout}s")
            log.error(f"{operation} failed: {error}")
            raise OperationError(failure_message) from error
        except Exception as e:
            log.opt(exception=e).error(f"{operation} failed: {type(e).__name__}: {e}")
            raise OperationError(failure_message) from e

    async def fetch_work(self, key: str, work_id: str) -> Work:
        """Run fetch_work_by_id on the plugin at key.

        Raises:
            NotFoundError: Unknown key
            OperationError: The operation failed or timed out
        """
        extractor = self.registry.lookup(key)
        return await self._run(
            key, f"fetch_work_by_id({work_id!r})", extractor.fetch_work_by_id(work_id), WORK_FAILED
        )

    async def search(self, key: str, name: str) -> list[Work]:
        extractor = self.registry.lookup(key)
        return await self._run(
            key, f"search_by_title({name!r})", extractor.search_by_title(name), SEARCH_FAILED
        )

    async def chapter_pages(self, key: str, chapter_url: str) -> list[str]:
        extractor = self.registry.lookup(key)
        return await self._run(
            key,
            f"fetch_chapter_pages({chapter_url!r})",
            extractor.fetch_chapter_pages(chapter_url),
            CHAPTER_FAILED,
        )
