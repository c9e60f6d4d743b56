import argparse
import asyncio
import json
from pathlib import Path
from sys import exit

from models.config import settings
from services.dispatcher import Dispatcher
from services.registry import PluginRegistry
from utils.exceptions import ConfigError, NotFoundError, OperationError
from utils.logging import configure_logging


def resolve_plugin_dir(value) -> Path:
    """Validate a --plugin-dir argument, falling back to the configured directory."""
    if value is None:
        return Path(settings.plugins.directory)
    directory = Path(value).expanduser()
    if not directory.is_dir():
        raise ConfigError(f"Plugin directory {directory} is not a directory")
    return directory


def serve(args) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "api.app:app",
        host=args.host or settings.server.host,
        port=args.port or settings.server.port,
        log_level="debug" if args.debug else "info",
    )


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


async def _run_operation(dispatcher: Dispatcher, args):
    if args.command == "manhwa":
        work = await dispatcher.fetch_work(args.key, args.id)
        return work.model_dump(mode="json", by_alias=True)
    if args.command == "search":
        works = await dispatcher.search(args.key, args.name)
        return [work.model_dump(mode="json", by_alias=True) for work in works]
    return await dispatcher.chapter_pages(args.key, args.url)


def run_once(args) -> int:
    """Load the plugin directory once and run a single command against it."""
    with PluginRegistry(directory=args.plugin_dir) as registry:
        registry.scan_directory()
        dispatcher = Dispatcher(registry)

        if args.command == "plugins":
            _print_json(
                [
                    dispatcher.plugin_info(key).model_dump(mode="json", by_alias=True)
                    for key in dispatcher.list_plugins()
                ]
            )
            return 0

        try:
            _print_json(asyncio.run(_run_operation(dispatcher, args)))
        except NotFoundError:
            print(f"❌ Plugin not found: {args.key}")
            print(f"Available: {', '.join(dispatcher.list_plugins()) or 'none'}")
            return 1
        except OperationError as e:
            print(f"❌ {e} (see log for details)")
            return 1
    return 0


def cli() -> None:
    """Entry point for the manhwa-hub command."""
    parser = argparse.ArgumentParser(
        prog="manhwa-hub",
        description="Webcomic metadata and chapter images from pluggable site extractors.",
    )
    parser.add_argument("--debug", "-d", action="store_true", help="Log DEBUG to the console")
    parser.add_argument(
        "--plugin-dir",
        default=None,
        help=f"Plugin directory (default: {settings.plugins.directory})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)

    subparsers.add_parser("plugins", help="List loaded plugins")

    manhwa_parser = subparsers.add_parser("manhwa", help="Fetch a work with its chapters")
    manhwa_parser.add_argument("key", help="Plugin key (e.g. webtoon)")
    manhwa_parser.add_argument("id", help="Site-specific work id")

    search_parser = subparsers.add_parser("search", help="Search a site by title")
    search_parser.add_argument("key")
    search_parser.add_argument("name")

    chapter_parser = subparsers.add_parser("chapter", help="List a chapter's image URLs")
    chapter_parser.add_argument("key")
    chapter_parser.add_argument("url")

    args = parser.parse_args()
    configure_logging(debug=args.debug, force=True)

    try:
        args.plugin_dir = resolve_plugin_dir(args.plugin_dir)
    except ConfigError as e:
        parser.error(str(e))

    if args.command == "serve":
        settings.plugins.directory = args.plugin_dir
        serve(args)
        return

    exit(run_once(args))


if __name__ == "__main__":
    cli()
