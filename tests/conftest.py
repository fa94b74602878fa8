"""
Shared test fixtures for the SinhalaSub API tests.

Upstream pages are served by an httpx.MockTransport, so no test touches the
network; the fetcher dependency is overridden to use it and to skip backoff.
"""
import httpx
import pytest
from bs4 import BeautifulSoup
from fastapi import Depends
from fastapi.testclient import TestClient

from app import app, get_cache, get_fetcher
from cache import TTLCache
from fetcher import Fetcher


CATALOG_HTML = """
<html><body>
  <div class="item-box">
    <a data-url="avatar-2022" href="https://sinhalasub.lk/avatar-2022/">
      <img class="mli-thumb" data-original="/wp-content/uploads/avatar.jpg">
    </a>
    <div class="item-desc-title"><h3>Avatar (2022)</h3></div>
    <div class="item-desc-giha">Released 2022</div>
    <div class="item-desc-hl">HD</div>
  </div>
  <div class="item-box">
    <a data-url="show-name-s01e02" href="https://sinhalasub.lk/show-name-s01e02/">
      <img src="https://img.example.com/show.jpg">
    </a>
    <div class="item-desc-title"><h3>Show Name S01E02</h3></div>
  </div>
</body></html>
"""

MOVIE_HTML = """
<html><body>
  <div class="item-title"><h1>Avatar: The Way of Water</h1></div>
  <div class="description">Jake Sully lives with his newfound family.</div>
  <img class="mli-thumb" src="/wp-content/uploads/avatar-poster.jpg">
  <div class="movie-info"><strong>Director:</strong> James Cameron</div>
  <div class="imdb-rating">7.6</div>
  <div class="download-links">
    <a href="https://www.mediafire.com/file/abc123/avatar/file">Download 1080p MKV 1.4GB</a>
    <a href="/links/subtitle-777">Sinhala Subtitle</a>
  </div>
  <div class="links">
    <a href="https://www.mediafire.com/file/abc123/avatar/file">Download 1080p MKV 1.4GB</a>
  </div>
  <a href="#downloads">Download</a>
  <a href="javascript:void(0)">Download link</a>
  <a href="https://www.facebook.com/sharer.php?u=avatar">Share link</a>
  <form action="https://files.example.com/get/avatar-720p.mp4">
    <button>Direct Download 720p</button>
  </form>
</body></html>
"""

SERIES_HTML = """
<html><body>
  <h1>Show Name</h1>
  <div class="description">A show about names.</div>
  <div class="seasons">
    <div class="season-item"><span class="season-number">Season 1</span><span class="season-title">Pilot season</span></div>
    <div class="season-item"><span class="season-number">Season 2</span><span class="season-title">Return</span></div>
  </div>
  <div class="episodes">
    <div class="episode-item"><a href="/show-name-s01e01/"><h3>Show Name S01E01</h3></a></div>
    <div class="episode-item"><a href="/show-name-s01e02/"><h3>Show Name S01E02</h3></a></div>
    <div class="episode-item"><a href="/show-name-s02e01/"><h3>Show Name S02E01</h3></a></div>
    <div class="episode-item"><a href="/show-name-s01e02/"><h3>Show Name S01E02</h3></a></div>
  </div>
</body></html>
"""

EPISODE_HTML = """
<html><body>
  <h1>Show Name S01E02</h1>
  <div class="description">The second episode.</div>
  <div class="links">
    <a href="https://pixeldrain.com/u/xyz">Download 720p 700MB</a>
    <a href="https://sinhalasub.lk/subs/show-name-s01e02.srt">Subtitle</a>
  </div>
  <a href="/show-name-s01e03/">Next episode</a>
</body></html>
"""

DIRECT_HTML = """
<html><body>
  <a href="https://cdn.example.com/movies/avatar.mkv">Avatar 1080p</a>
  <a href="https://cdn.example.com/stream/avatar.mp4">Watch online</a>
  <a href="https://sinhalasub.lk/links/xyz" download>Mirror</a>
  <a href="https://www.mediafire.com/file/abc/avatar/file">Mediafire mirror</a>
</body></html>
"""


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """
    Serves canned pages by URL path and records every request.

    ``routes`` maps a path to a body (status 200) or to a (status, body) pair.
    Unknown paths answer 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, tuple):
            status, body = route
            return httpx.Response(status, text=body)
        return httpx.Response(200, text=route)


async def no_sleep(seconds: float) -> None:
    return None


def soup_of(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, 'html.parser')


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(default_ttl=60, sweep_interval=10, clock=clock)


@pytest.fixture
def upstream():
    return FakeUpstream({
        '/': CATALOG_HTML,
        '/avatar-2022': MOVIE_HTML,
        '/show-name': SERIES_HTML,
        '/show-name-s01e02': EPISODE_HTML,
        '/direct-page': DIRECT_HTML,
        '/broken': (500, 'upstream exploded'),
    })


@pytest.fixture
def api_client(upstream):
    """Test client whose fetcher talks to the fake upstream."""

    async def override_fetcher(cache: TTLCache = Depends(get_cache)):
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
            yield Fetcher(client, cache, sleep=no_sleep)

    app.dependency_overrides[get_fetcher] = override_fetcher
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
