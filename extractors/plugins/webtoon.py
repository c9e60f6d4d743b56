"""Webtoon extractor.

Only works on Webtoon Originals: webtoons.com/en/... links. Canvas
(challenge) series use a different layout and are not supported.
"""

import asyncio

import httpx
from selectolax.parser import HTMLParser, Node

from extractors.common import (
    absolute_url,
    background_image_url,
    clean_text,
    fetch,
    new_client,
    page_count,
    parse_ordinal,
)
from extractors.loader import Extractor
from models.config import settings
from models.models import THUMBNAIL_NOT_FOUND, Chapter, ImageURL, Metadata, Work
from utils.exceptions import ParseError
from utils.logging import get_logger

logger = get_logger(__name__)

# Webtoon does not publish a status; completed series are republished
STATUS_UNKNOWN = "Unknown"


def _text(node: HTMLParser | Node | None, selector: str) -> str:
    if node is None:
        return ""
    found = node.css_first(selector)
    if found is None:
        return ""
    return clean_text(found.text(separator=" "))


def parse_metadata(html: str, url: str) -> Metadata:
    """Parse a work page into Metadata.

    Raises:
        ParseError: If the title is missing
    """
    tree = HTMLParser(html)

    title = _text(tree, "div.info h1")
    if not title:
        raise ParseError(f"No title found on {url}")

    author = (
        _text(tree, "div.author_area")
        .replace("author info", "")
        .replace(" ,", ",")
        .strip()
    )

    # Thumbnail is the background image of div.detail_body
    banner = tree.css_first("div.detail_body")
    style = banner.attributes.get("style") if banner is not None else None
    thumbnail = background_image_url(style) or THUMBNAIL_NOT_FOUND

    return Metadata(
        title=title,
        author=author,
        description=_text(tree, "p.summary"),
        genre=_text(tree, "div.info h2"),
        status=STATUS_UNKNOWN,
        rating=_text(tree, "em#_starScoreAverage"),
        thumbnail=thumbnail,
        url=url,
    )


def parse_highest_ordinal(html: str) -> int:
    """Ordinal of the first (newest) entry of a chapter-index page.

    Returns 0 for an empty listing.

    Raises:
        ParseError: If the first entry carries no '#<n>' label
    """
    first = HTMLParser(html).css_first("ul#_listUl > li")
    if first is None:
        return 0
    number = parse_ordinal(_text(first, "span.tx"))
    if number is None:
        raise ParseError("First chapter entry has no '#<n>' ordinal")
    return number


def parse_chapter_entries(html: str, base_url: str) -> list[Chapter]:
    """Parse every entry of one chapter-index page, in page order."""
    chapters = []
    for item in HTMLParser(html).css("ul#_listUl > li"):
        label = _text(item, "span.tx")
        number = parse_ordinal(label)
        if number is None:
            logger.warning(f"Skipping chapter entry without ordinal: {label!r}")
            continue

        link = item.css_first("a")
        href = link.attributes.get("href") if link is not None else None
        chapters.append(
            Chapter(
                title=_text(item, "span.subj"),
                url=absolute_url(base_url, href) if href else "",
                release_date=_text(item, "span.date"),
                number=number,
            )
        )
    return chapters


def order_chapters(chapters: list[Chapter]) -> list[Chapter]:
    """Sort chapters by ordinal ascending, keeping the first entry per ordinal."""
    seen = set()
    ordered = []
    for chapter in sorted(chapters, key=lambda c: c.number):
        if chapter.number in seen:
            continue
        seen.add(chapter.number)
        ordered.append(chapter)
    return ordered


def parse_image_urls(html: str) -> list[ImageURL]:
    """Real image URLs of a chapter page, in DOM order.

    Images are lazy-loaded: the src attribute holds a placeholder and the real
    URL lives in data-url.
    """
    urls = []
    for image in HTMLParser(html).css("div#_imageList > img"):
        url = image.attributes.get("data-url")
        if url:
            urls.append(url)
    return urls


def parse_search_links(html: str, base_url: str) -> list[str]:
    """Work page links of a search result page, in card order.

    Raises:
        ParseError: If result cards exist but none carries a link
    """
    cards = HTMLParser(html).css("ul.card_lst > li")
    links = []
    for card in cards:
        anchor = card.css_first("a")
        href = anchor.attributes.get("href") if anchor is not None else None
        if href:
            links.append(absolute_url(base_url, href))

    if cards and not links:
        raise ParseError(f"{len(cards)} search result cards without links")
    return links


class WebtoonExtractor(Extractor):
    site_name = "Webtoon"
    site_url = "https://www.webtoons.com/"
    site_logo = "https://www.webtoons.com/favicon.ico"
    site_description = "Webtoon Originals from webtoons.com (English)"
    developer = "HollowHuu"

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.transport = transport
        self.base_url = settings.webtoon.base_url.rstrip("/")
        self.page_size = settings.webtoon.page_size

    def work_url(self, work_id: str) -> str:
        # Any genre/slug works: the site redirects title_no to the canonical page
        return str(httpx.URL(f"{self.base_url}/en/fantasy/your-throne/list", params={"title_no": work_id}))

    async def search_by_title(self, query: str) -> list[Work]:
        async with new_client(self.transport) as client:
            response = await fetch(client, f"{self.base_url}/en/search", params={"keyword": query})
            links = parse_search_links(response.text, str(response.url))
            logger.debug(f"Search '{query}': {len(links)} result links")

            # gather keeps input order, so results line up with links
            tasks = [asyncio.ensure_future(self._fetch_metadata(client, link)) for link in links]
            try:
                metadata_list = await asyncio.gather(*tasks)
            except Exception:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

        return [Work.metadata_only(metadata) for metadata in metadata_list]

    async def fetch_work_by_id(self, work_id: str) -> Work:
        async with new_client(self.transport) as client:
            canonical_url, html = await self._fetch_canonical(client, self.work_url(work_id))
            metadata = parse_metadata(html, canonical_url)
            chapters = await self._fetch_chapters(client, canonical_url, html)

        return Work(metadata=metadata, chapters=chapters)

    async def fetch_chapter_pages(self, chapter_url: str) -> list[ImageURL]:
        async with new_client(self.transport) as client:
            response = await fetch(client, chapter_url)
        return parse_image_urls(response.text)

    async def _fetch_canonical(self, client: httpx.AsyncClient, url: str) -> tuple[str, str]:
        response = await fetch(client, url)
        canonical_url = str(response.url)
        if canonical_url != url:
            logger.debug(f"Canonical URL {url} -> {canonical_url}")
        return canonical_url, response.text

    async def _fetch_metadata(self, client: httpx.AsyncClient, url: str) -> Metadata:
        canonical_url, html = await self._fetch_canonical(client, url)
        return parse_metadata(html, canonical_url)

    async def _fetch_chapters(
        self, client: httpx.AsyncClient, canonical_url: str, index_html: str
    ) -> list[Chapter]:
        """Walk every chapter-index page of a work.

        The listing is newest-first, so the first entry's ordinal is the
        highest and fixes the number of pages.
        """
        highest = parse_highest_ordinal(index_html)
        pages = page_count(highest, self.page_size)
        logger.debug(f"{canonical_url}: {highest} chapters over {pages} pages")

        chapters = []
        for page in range(1, pages + 1):
            response = await fetch(client, canonical_url, params={"page": page})
            chapters.extend(parse_chapter_entries(response.text, canonical_url))

        return order_chapters(chapters)


def load() -> WebtoonExtractor:
    """Registration entry point."""
    return WebtoonExtractor()
