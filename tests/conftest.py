"""
Shared test fixtures and configuration for manhwa-hub test suite.

This module provides:
- Webtoon page fixtures (static HTML files and a chapter-index page renderer)
- A fake Webtoon site served through httpx.MockTransport
- Plugin source writers and an isolated PluginRegistry
"""

import asyncio
from pathlib import Path

import httpx
import pytest

from services.registry import PluginRegistry

FIXTURES_DIR = Path(__file__).parent / "fixtures"

WEBTOON = "https://www.webtoons.com"
SOLO_LEVELING_ID = "2009"
SOLO_LEVELING_URL = f"{WEBTOON}/en/action/solo-leveling/list?title_no=2009"
SOLO_LEVELING_THUMBNAIL = "https://swebtoon-phinf.pstatic.net/20240101_1/solo_bg.jpg"


# ========== Webtoon Page Fixtures ==========


def render_work_page(
    numbers,
    title: str = "Solo Leveling",
    thumbnail: str | None = SOLO_LEVELING_THUMBNAIL,
) -> str:
    """Render a Webtoon work page whose chapter index lists `numbers` in order."""
    items = "\n".join(
        f"""
        <li class="_episodeItem" data-episode-no="{n}">
          <a href="/en/action/solo-leveling/episode-{n}/viewer?episode_no={n}">
            <span class="thmb"><img src="https://swebtoon-phinf.pstatic.net/ep{n}.jpg" alt="Episode {n}"></span>
            <span class="subj"><span>Episode {n}</span></span>
            <span class="manage_blank"></span>
            <span class="date">Jan {n}, 2024</span>
            <span class="like_area _likeitArea"><em class="ico_like">like</em>{n}00</span>
            <span class="tx">#{n}</span>
          </a>
        </li>"""
        for n in numbers
    )
    title_html = f'<h1 class="subj">{title}</h1>' if title else ""
    style = f' style="background:#000000 url({thumbnail}) repeat-x"' if thumbnail else ""
    return f"""<!DOCTYPE html>
<html lang="en">
<head><title>{title} | WEBTOON</title></head>
<body>
<div id="content" class="episode">
  <div class="detail_header type_white">
    <div class="info">
      <h2 class="genre g_action">Action</h2>
      {title_html}
      <div class="author_area">
        Chugong ,
        DUBU(REDICE STUDIO)
        <button type="button" class="ico_info2 _btnAuthorInfo">author info</button>
      </div>
    </div>
  </div>
  <div class="detail_body banner"{style}>
    <div class="detail_lst">
      <ul id="_listUl">{items}
      </ul>
    </div>
    <div class="aside detail">
      <p class="summary">E-class hunter Jinwoo Sung is the weakest of them all.</p>
      <ul class="grade_area">
        <li><span class="ico_grade5">grade</span><em class="cnt" id="_starScoreAverage">9.81</em></li>
      </ul>
    </div>
  </div>
</div>
</body>
</html>"""


@pytest.fixture
def work_page():
    """Renderer for Webtoon work/chapter-index pages."""
    return render_work_page


@pytest.fixture
def fixture_html():
    """Reader for static HTML fixtures under tests/fixtures/webtoon."""

    def read(name: str) -> str:
        return (FIXTURES_DIR / "webtoon" / name).read_text(encoding="utf-8")

    return read


# ========== Fake Site Fixtures ==========


class FakeSite:
    """Routes MockTransport requests to canned pages by full URL."""

    def __init__(self) -> None:
        self.pages: dict[str, str] = {}
        self.redirects: dict[str, str] = {}
        self.statuses: dict[str, int] = {}
        self.delays: dict[str, float] = {}
        self.errors: dict[str, Exception] = {}
        self.requests: list[str] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.delays:
            await asyncio.sleep(self.delays[url])
        if url in self.errors:
            raise self.errors[url]
        if url in self.redirects:
            return httpx.Response(301, headers={"Location": self.redirects[url]})
        if url in self.statuses:
            return httpx.Response(self.statuses[url], text="error")
        if url in self.pages:
            return httpx.Response(200, html=self.pages[url])
        return httpx.Response(404, text="not found")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_site():
    """Empty fake site; tests register pages on it."""
    return FakeSite()


@pytest.fixture
def solo_leveling_site(fake_site, work_page):
    """Fake Webtoon serving Solo Leveling with 23 chapters over 3 index pages.

    The id URL redirects to the slug URL; index pages list newest first.
    """
    fake_site.redirects[f"{WEBTOON}/en/fantasy/your-throne/list?title_no=2009"] = SOLO_LEVELING_URL
    fake_site.pages[SOLO_LEVELING_URL] = work_page(range(23, 13, -1))
    fake_site.pages[f"{SOLO_LEVELING_URL}&page=1"] = work_page(range(23, 13, -1))
    fake_site.pages[f"{SOLO_LEVELING_URL}&page=2"] = work_page(range(13, 3, -1))
    fake_site.pages[f"{SOLO_LEVELING_URL}&page=3"] = work_page(range(3, 0, -1))
    return fake_site


# ========== Plugin Source Fixtures ==========


PLUGIN_TEMPLATE = '''
from extractors.loader import Extractor
from models.models import Metadata, Work


class {class_name}(Extractor):
    site_name = "{site}"
    site_url = "https://{site}.example/"
    developer = "tests"

    def __init__(self):
        self.calls = 0
        self.closed = False

    async def search_by_title(self, query):
        return [Work.metadata_only(Metadata(title=query, url="https://{site}.example/" + query))]

    async def fetch_work_by_id(self, work_id):
        self.calls += 1
        return Work(metadata=Metadata(title="{version}", url="https://{site}.example/" + work_id))

    async def fetch_chapter_pages(self, chapter_url):
        return [chapter_url + "/1.jpg", chapter_url + "/2.jpg"]

    def close(self):
        self.closed = True
'''


def plugin_source(site: str = "demo", version: str = "v1", class_name: str = "DemoExtractor") -> str:
    return PLUGIN_TEMPLATE.format(site=site, version=version, class_name=class_name)


@pytest.fixture
def plugin_dir(tmp_path):
    directory = tmp_path / "plugins"
    directory.mkdir()
    return directory


@pytest.fixture
def write_plugin(plugin_dir):
    """Write a plugin source file into the plugin directory.

    Call with a name and either a full `source` or template arguments.
    """

    def write(name: str, source: str | None = None, **template_args) -> Path:
        path = plugin_dir / name
        path.write_text(source if source is not None else plugin_source(**template_args))
        return path

    return write


@pytest.fixture
def registry(plugin_dir):
    """Isolated registry over the temporary plugin directory."""
    reg = PluginRegistry(directory=plugin_dir, extensions=[".py"], load_timeout=5.0)
    yield reg
    reg.close()
