# scraper.py
"""
Scraping operations for sinhalasub.lk.

Each operation validates its input, answers from the response cache when it
can, otherwise fetches the page through the Fetcher, runs the matching
extractor and caches the finished response:

- Search and latest listings (movies and TV series)
- Movie, series and episode details with download/subtitle links
- Episode lists of a series, optionally for one season
- Direct download links of any content page

Upstream failures surface as HTTPException(502); nothing is cached for them.
"""
import logging
import re
from typing import Callable, Optional, TypeVar
from urllib.parse import quote

from bs4 import BeautifulSoup
from fastapi import HTTPException
from httpx import AsyncClient

from cache import cache_key
from config import BASE_URL, HEADERS, LATEST_LIMIT, MAX_REDIRECTS, REQUEST_TIMEOUT
from extractors import (
    parse_catalog_items,
    parse_direct_links,
    parse_episode_detail,
    parse_episode_list,
    parse_movie_detail,
    parse_series_detail,
)
from fetcher import Fetcher
from models import (
    CatalogResults,
    DirectLinkCollection,
    DirectLinksResponse,
    EpisodeList,
    EpisodeResponse,
    EpisodesResponse,
    LatestQuery,
    LatestResponse,
    MovieResponse,
    SearchQuery,
    SearchResponse,
    SeasonList,
    SeriesResponse,
    link_collection,
)

logger = logging.getLogger(__name__)

CONTENT_TYPES = ('all', 'movie', 'series')

T = TypeVar('T')


# Helper function to validate the optional movie/series filter
def normalize_content_type(content_type: Optional[str]) -> str:
    content_type = (content_type or 'all').strip().lower()
    if content_type not in CONTENT_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid type. Supported types: {', '.join(CONTENT_TYPES)}")
    return content_type


# Helper function to validate a site identifier (slug) taken from the path
def normalize_content_id(content_id: Optional[str], label: str = "Content id") -> str:
    content_id = (content_id or '').strip().strip('/')
    if not content_id or not re.match(r'^[^\s?#]+$', content_id):
        raise HTTPException(status_code=400, detail=f"{label} cannot be empty or invalid")
    return content_id


def normalize_page(page: int) -> int:
    if page < 1:
        raise HTTPException(status_code=400, detail="Page must be a positive integer")
    return page


def content_url(content_id: str) -> str:
    return f"{BASE_URL}/{content_id}"


# Dependency to get an HTTP client, closed when the request is done
async def get_http_client():
    client = AsyncClient(
        headers=HEADERS,
        timeout=REQUEST_TIMEOUT,
        follow_redirects=True,
        max_redirects=MAX_REDIRECTS,
    )
    try:
        yield client
    finally:
        await client.aclose()


# Helper function to fetch one page and turn it into a response
async def scrape_page(fetcher: Fetcher, url: str, what: str, build: Callable[[BeautifulSoup], T]) -> T:
    try:
        soup = await fetcher.fetch(url)
        if soup is None:
            raise HTTPException(status_code=502, detail=f"Failed to fetch {what}")
        return build(soup)
    except HTTPException:
        raise  # Re-raise HTTPException as-is
    except Exception as e:
        logger.exception(f"Unexpected error while scraping {url}: {e}")
        raise HTTPException(status_code=500, detail=f"Scraping error: {str(e)}")


# Function to search movies and series
async def scrape_search(query: Optional[str], page: int, content_type: Optional[str], fetcher: Fetcher) -> SearchResponse:
    query = (query or '').strip()
    if not query:
        raise HTTPException(
            status_code=400,
            detail='Query parameter "q" is required, e.g. /search?q=avatar&type=movie&page=1',
        )
    page = normalize_page(page)
    content_type = normalize_content_type(content_type)

    key = cache_key('search', query.lower(), page, content_type)
    cached = fetcher.cache.get(key)
    if cached is not None:
        # Cache is shared across query casings; echo this caller's query
        return cached.model_copy(update={'search': SearchQuery(query=query, page=page, type=content_type)})

    def build(soup: BeautifulSoup) -> SearchResponse:
        items = parse_catalog_items(soup, content_type)
        logger.info(f"Search '{query}' page {page} ({content_type}): {len(items)} items")
        return SearchResponse(
            search=SearchQuery(query=query, page=page, type=content_type),
            results=CatalogResults(items=items, count=len(items)),
        )

    url = f"{BASE_URL}/?s={quote(query)}&paged={page}"
    response = await scrape_page(fetcher, url, "search results", build)
    fetcher.cache.set(key, response)
    return response


# Function to scrape the latest additions from the home page
async def scrape_latest(page: int, content_type: Optional[str], fetcher: Fetcher) -> LatestResponse:
    page = normalize_page(page)
    content_type = normalize_content_type(content_type)

    key = cache_key('latest', page, content_type)
    cached = fetcher.cache.get(key)
    if cached is not None:
        return cached

    def build(soup: BeautifulSoup) -> LatestResponse:
        items = parse_catalog_items(soup, content_type, limit=LATEST_LIMIT)
        logger.info(f"Latest page {page} ({content_type}): {len(items)} items")
        return LatestResponse(
            latest=LatestQuery(page=page, type=content_type),
            results=CatalogResults(items=items, count=len(items)),
        )

    url = BASE_URL if page == 1 else f"{BASE_URL}/page/{page}/"
    response = await scrape_page(fetcher, url, "latest content", build)
    fetcher.cache.set(key, response)
    return response


# Function to scrape a movie with all of its download and subtitle links
async def scrape_movie(movie_id: str, fetcher: Fetcher) -> MovieResponse:
    movie_id = normalize_content_id(movie_id, "Movie id")

    key = cache_key('movie', movie_id)
    cached = fetcher.cache.get(key)
    if cached is not None:
        return cached

    url = content_url(movie_id)

    def build(soup: BeautifulSoup) -> MovieResponse:
        info, links = parse_movie_detail(soup, movie_id, url)
        return MovieResponse(
            movie=info,
            downloads=link_collection(links.downloads),
            subtitles=link_collection(links.subtitles),
        )

    response = await scrape_page(fetcher, url, "movie details", build)
    fetcher.cache.set(key, response)
    return response


# Function to scrape a series page (seasons and the episodes listed on it)
async def scrape_series(series_id: str, fetcher: Fetcher) -> SeriesResponse:
    series_id = normalize_content_id(series_id, "Series id")

    key = cache_key('series', series_id)
    cached = fetcher.cache.get(key)
    if cached is not None:
        return cached

    url = content_url(series_id)

    def build(soup: BeautifulSoup) -> SeriesResponse:
        info, seasons, episodes = parse_series_detail(soup, series_id, url)
        logger.info(f"Series {series_id}: {len(seasons)} seasons, {len(episodes)} episodes")
        return SeriesResponse(
            series=info,
            seasons=SeasonList(list=seasons, count=len(seasons)),
            episodes=EpisodeList(list=episodes, count=len(episodes)),
        )

    response = await scrape_page(fetcher, url, "series details", build)
    fetcher.cache.set(key, response)
    return response


# Function to list the episodes of a series, optionally for a single season
async def scrape_episodes(series_id: str, season: Optional[str], fetcher: Fetcher) -> EpisodesResponse:
    series_id = normalize_content_id(series_id, "Series id")
    season = (season or '').strip() or None

    key = cache_key('episodes', series_id, season or 'all')
    cached = fetcher.cache.get(key)
    if cached is not None:
        return cached

    def build(soup: BeautifulSoup) -> EpisodesResponse:
        episodes = parse_episode_list(soup, season)
        logger.info(f"Episodes of {series_id} (season {season or 'all'}): {len(episodes)}")
        return EpisodesResponse(
            series_id=series_id,
            season=season or 'all',
            episodes=EpisodeList(list=episodes, count=len(episodes)),
        )

    response = await scrape_page(fetcher, content_url(series_id), "episodes", build)
    fetcher.cache.set(key, response)
    return response


# Function to scrape a single episode with its download and subtitle links
async def scrape_episode(episode_id: str, fetcher: Fetcher) -> EpisodeResponse:
    episode_id = normalize_content_id(episode_id, "Episode id")

    key = cache_key('episode', episode_id)
    cached = fetcher.cache.get(key)
    if cached is not None:
        return cached

    url = content_url(episode_id)

    def build(soup: BeautifulSoup) -> EpisodeResponse:
        info, links = parse_episode_detail(soup, episode_id, url)
        return EpisodeResponse(
            episode=info,
            downloads=link_collection(links.downloads),
            subtitles=link_collection(links.subtitles),
        )

    response = await scrape_page(fetcher, url, "episode details", build)
    fetcher.cache.set(key, response)
    return response


# Function to collect only the direct download links of a content page
async def scrape_direct_links(content_id: str, fetcher: Fetcher) -> DirectLinksResponse:
    content_id = normalize_content_id(content_id)

    key = cache_key('direct_links', content_id)
    cached = fetcher.cache.get(key)
    if cached is not None:
        return cached

    def build(soup: BeautifulSoup) -> DirectLinksResponse:
        links = parse_direct_links(soup)
        logger.info(f"Direct links of {content_id}: {len(links)}")
        return DirectLinksResponse(
            content_id=content_id,
            downloads=DirectLinkCollection(links=links, count=len(links)),
        )

    response = await scrape_page(fetcher, content_url(content_id), "content", build)
    fetcher.cache.set(key, response)
    return response
