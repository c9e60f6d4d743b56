"""Helpers shared by extractor plugins.

- new_client(): httpx.AsyncClient configured from settings
- fetch(): GET with httpx failures mapped to NetworkError
- clean_text(), parse_ordinal(), page_count(), background_image_url()
"""

import math
import re

import httpx

from models.config import settings
from utils.exceptions import NetworkError

_WHITESPACE = re.compile(r"\s+")
_ORDINAL = re.compile(r"#\s*(\d+)")
_CSS_URL = re.compile(r"url\(\s*['\"]?([^'\")\s]+)['\"]?\s*\)")


def new_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Create an async client for one extractor operation.

    Redirects are followed so that response.url is the canonical page.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http.timeout_seconds),
        headers={"User-Agent": settings.http.user_agent},
        follow_redirects=True,
        transport=transport,
    )


async def fetch(client: httpx.AsyncClient, url, params: dict | None = None) -> httpx.Response:
    """GET a page.

    Raises:
        NetworkError: On timeout, connection failure, malformed URL or non-2xx status
    """
    try:
        response = await client.get(url, params=params)
        response.raise_for_status()
    except httpx.TimeoutException as e:
        raise NetworkError(f"Timed out fetching {url}") from e
    except httpx.HTTPStatusError as e:
        raise NetworkError(f"HTTP {e.response.status_code} fetching {url}") from e
    except httpx.RequestError as e:
        raise NetworkError(f"Request to {url} failed: {e}") from e
    except httpx.InvalidURL as e:
        raise NetworkError(f"Invalid URL {url!r}: {e}") from e
    return response


def clean_text(text: str | None) -> str:
    """Collapse runs of whitespace and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def parse_ordinal(label: str | None) -> int | None:
    """Parse a chapter ordinal from a '#<n>' label.

    >>> parse_ordinal(" #23 ")
    23
    """
    if not label:
        return None
    match = _ORDINAL.search(label)
    if match is None:
        return None
    return int(match.group(1))


def page_count(highest_ordinal: int, page_size: int) -> int:
    """Number of index pages needed to list chapters 1..highest_ordinal."""
    if highest_ordinal <= 0:
        return 0
    return math.ceil(highest_ordinal / page_size)


def background_image_url(style: str | None) -> str | None:
    """Extract the url(...) value of an inline CSS background declaration.

    >>> background_image_url("background:#000 url(https://x/y.jpg) repeat-x")
    'https://x/y.jpg'
    """
    if not style:
        return None
    match = _CSS_URL.search(style)
    return match.group(1) if match else None


def absolute_url(base, href: str) -> str:
    return str(httpx.URL(str(base)).join(href))
