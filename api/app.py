"""FastAPI application for manhwa-hub.

Provides REST API for:
- Listing loaded extractor plugins and their identity
- Fetching a work with its chapters
- Searching a site by title
- Fetching a chapter's image URLs

Run with:
    manhwa-hub serve
    uvicorn api.app:app --port 3000
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request

from models.config import settings
from models.models import ExtractorInfo, Work
from services.dispatcher import Dispatcher
from services.registry import PluginRegistry
from services.watcher import DirectoryWatcher
from utils.exceptions import NotFoundError, OperationError
from utils.logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "manhwa-hub"
SERVICE_VERSION = "0.1.0"


def create_app(registry: PluginRegistry | None = None) -> FastAPI:
    """Build the API application.

    Args:
        registry: Pre-built registry to serve (tests). When omitted, the
            lifespan creates one from settings, scans the plugin directory and
            starts the directory watcher; it is closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        owned = registry is None
        active = registry if registry is not None else PluginRegistry()
        if owned:
            watcher = None
            if settings.plugins.watch:
                watcher = DirectoryWatcher(active.directory, active.extensions)
            active.start(watcher)
        app.state.dispatcher = Dispatcher(active)
        logger.info(f"Serving plugins: {sorted(active.list_keys())}")

        yield

        # Shutdown
        if owned:
            active.close()

    app = FastAPI(
        title="Manhwa Hub",
        description="Webcomic metadata and chapter images from pluggable site extractors.",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )

    def dispatcher(request: Request) -> Dispatcher:
        return request.app.state.dispatcher

    @app.get("/", tags=["Health"])
    def root(request: Request) -> dict[str, Any]:
        """Root endpoint returning service info."""
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "plugins": len(dispatcher(request).list_plugins()),
        }

    @app.get("/plugins", tags=["Plugins"])
    def list_plugins(request: Request) -> list[str]:
        return dispatcher(request).list_plugins()

    @app.get("/plugins/{key}", tags=["Plugins"], response_model=ExtractorInfo)
    def plugin_info(key: str, request: Request) -> ExtractorInfo:
        try:
            return dispatcher(request).plugin_info(key)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Plugin not found") from None

    @app.get("/{key}/manhwa/{work_id}", tags=["Content"], response_model=Work)
    async def get_manhwa(key: str, work_id: str, request: Request) -> Work:
        try:
            return await dispatcher(request).fetch_work(key, work_id)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Plugin not found") from None
        except OperationError as e:
            raise HTTPException(status_code=500, detail=str(e)) from None

    @app.get("/{key}/search/{name}", tags=["Content"], response_model=list[Work])
    async def search_manhwa(key: str, name: str, request: Request) -> list[Work]:
        try:
            return await dispatcher(request).search(key, name)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Plugin not found") from None
        except OperationError as e:
            raise HTTPException(status_code=500, detail=str(e)) from None

    @app.get("/{key}/chapter/{url:path}", tags=["Content"])
    async def get_chapter_images(key: str, url: str, request: Request) -> list[str]:
        # An unencoded chapter URL loses its query string to the request
        if request.url.query:
            url = f"{url}?{request.url.query}"
        try:
            return await dispatcher(request).chapter_pages(key, url)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Plugin not found") from None
        except OperationError as e:
            raise HTTPException(status_code=500, detail=str(e)) from None

    return app


app = create_app()
