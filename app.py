#  app.py
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import psutil
import uvicorn
from fastapi import Depends, FastAPI, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from httpx import AsyncClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from cache import TTLCache
from config import API_VERSION, CACHE_CHECK_PERIOD, CACHE_TTL, HOST, LOG_LEVEL, PORT
from fetcher import Fetcher
from link_classifier import REDIRECT_STEPS
from models import (
    CacheClearResponse,
    CacheStatus,
    DirectLinksResponse,
    EpisodeResponse,
    EpisodesResponse,
    ErrorResponse,
    HealthResponse,
    LatestResponse,
    MemoryUsage,
    MovieResponse,
    SearchResponse,
    SeriesResponse,
    ServerStatus,
)
from scraper import (
    get_http_client,
    scrape_direct_links,
    scrape_episode,
    scrape_episodes,
    scrape_latest,
    scrape_movie,
    scrape_search,
    scrape_series,
)

# Configure logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

# Error responses shared by every scraping endpoint
SCRAPE_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid parameters"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
    502: {"model": ErrorResponse, "description": "Failed to fetch data from source"},
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.cache = TTLCache(default_ttl=CACHE_TTL, sweep_interval=CACHE_CHECK_PERIOD)
    app.state.cache.start_sweeper()
    logger.info(f"SinhalaSub API v{API_VERSION} started (cache TTL {CACHE_TTL}s)")
    try:
        yield
    finally:
        await app.state.cache.stop_sweeper()
        app.state.cache.clear()
        logger.info("SinhalaSub API stopped")


# Initialize FastAPI app
app = FastAPI(
    title="SinhalaSub API",
    description="API to scrape movies, TV series, episodes, download links and subtitles from sinhalasub.lk.",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependency to get the shared response/page cache
def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache


# Dependency to get a fetcher bound to this request's HTTP client
def get_fetcher(
    client: AsyncClient = Depends(get_http_client),
    cache: TTLCache = Depends(get_cache),
) -> Fetcher:
    return Fetcher(client, cache)


def format_uptime(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {secs}s"


def memory_usage() -> MemoryUsage:
    """Resident and virtual memory of this process, in megabytes."""
    info = psutil.Process().memory_info()
    return MemoryUsage(
        rss=f"{info.rss / 1024 / 1024:.2f} MB",
        vms=f"{info.vms / 1024 / 1024:.2f} MB",
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        return JSONResponse(
            status_code=404,
            content={
                "success": False,
                "error": "Endpoint not found",
                "message": f"The endpoint {request.url.path} does not exist",
                "requested_url": str(request.url),
                "tip": "Visit / for the list of available endpoints",
            },
        )
    error = ErrorResponse(error=str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=error.model_dump(), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    error = ErrorResponse(error="Invalid request parameters", details=details)
    return JSONResponse(status_code=400, content=error.model_dump())


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    return {
        "success": True,
        "message": "SinhalaSub API",
        "version": API_VERSION,
        "endpoints": {
            "search": "/search?q={query}&type={all|movie|series}&page={page}",
            "latest": "/latest?page={page}&type={all|movie|series}",
            "movie": "/movie/{id}",
            "series": "/series/{id}",
            "episodes": "/episodes/{series_id}?season={season}",
            "episode": "/episode/{id}",
            "direct_links": "/direct-links/{id}",
            "health": "/health",
            "cache_clear": "POST /cache/clear",
        },
        "examples": {
            "search": "/search?q=avatar&type=movie",
            "movie": "/movie/avatar-the-way-of-water-2022-sinhala-subtitles",
            "episodes": "/episodes/house-of-the-dragon?season=1",
        },
        "features": [
            "Search movies and TV series by title",
            "Latest uploads with a movie or series filter",
            "Movie, series and episode details",
            "Download and subtitle links classified by delivery method",
            f"Responses cached for {CACHE_TTL} seconds",
        ],
        "download_info": {
            "fields": {
                "delivery_method": "direct, hosted, redirect or indirect",
                "service": "File host the link points to, when one is recognised",
                "requires_interaction": "False only when the URL downloads the file directly",
                "steps": "What a user has to do to reach the file",
            },
            "example": {
                "url": "https://sinhalasub.lk/links/12345",
                "delivery_method": "redirect",
                "service": "unknown",
                "requires_interaction": True,
                "steps": list(REDIRECT_STEPS),
            },
        },
        "usage": {
            "find_content": "Use /search or /latest and take the id of an item",
            "get_links": "Pass that id to /movie, /series or /episode",
            "direct_only": "Use /direct-links/{id} for links that download without a host page",
        },
        "documentation": "/docs",
    }


# Search movies and series
@app.get(
    "/search",
    response_model=SearchResponse,
    responses=SCRAPE_ERRORS,
    summary="Search movies and TV series",
    description="Search the catalog by name. Example: `?q=avatar&type=movie&page=1`",
)
async def search(
    q: Optional[str] = Query(None, description="Search term"),
    type: Optional[str] = Query("all", description="Filter by content type: all, movie or series"),
    page: int = Query(1, ge=1, description="Result page"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    return await scrape_search(q, page, type, fetcher)


# Latest additions
@app.get(
    "/latest",
    response_model=LatestResponse,
    responses=SCRAPE_ERRORS,
    summary="Get latest content",
    description="Latest movies and series from the home page listing. Example: `?page=2&type=series`",
)
async def latest(
    page: int = Query(1, ge=1, description="Listing page"),
    type: Optional[str] = Query("all", description="Filter by content type: all, movie or series"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    return await scrape_latest(page, type, fetcher)


# Movie details with download and subtitle links
@app.get(
    "/movie/{movie_id:path}",
    response_model=MovieResponse,
    responses=SCRAPE_ERRORS,
    summary="Get movie details",
    description="Movie information with its download links and subtitles.",
)
async def get_movie(
    movie_id: str = Path(..., description="Movie id (e.g., 'avatar-the-way-of-water-2022-sinhala-subtitles')"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    return await scrape_movie(movie_id, fetcher)


# Series details with seasons and episodes
@app.get(
    "/series/{series_id:path}",
    response_model=SeriesResponse,
    responses=SCRAPE_ERRORS,
    summary="Get TV series details",
    description="Series information with the seasons and episodes listed on its page.",
)
async def get_series(
    series_id: str = Path(..., description="Series id (e.g., 'house-of-the-dragon')"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    return await scrape_series(series_id, fetcher)


# Episodes of a series
@app.get(
    "/episodes/{series_id:path}",
    response_model=EpisodesResponse,
    responses=SCRAPE_ERRORS,
    summary="Get episodes of a series",
    description="All episodes of a series, or only one season with `?season=1` (also accepts S1, s01, Season 1).",
)
async def get_episodes(
    series_id: str = Path(..., description="Series id"),
    season: Optional[str] = Query(None, description="Season filter"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    return await scrape_episodes(series_id, season, fetcher)


# Single episode with download and subtitle links
@app.get(
    "/episode/{episode_id:path}",
    response_model=EpisodeResponse,
    responses=SCRAPE_ERRORS,
    summary="Get episode details",
    description="Episode information with its download links and subtitles.",
)
async def get_episode(
    episode_id: str = Path(..., description="Episode id"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    return await scrape_episode(episode_id, fetcher)


# Direct download links only
@app.get(
    "/direct-links/{content_id:path}",
    response_model=DirectLinksResponse,
    responses=SCRAPE_ERRORS,
    summary="Get direct download links",
    description="Links that point at a file (or are marked as direct downloads) on a movie or episode page.",
)
async def get_direct_links(
    content_id: str = Path(..., description="Movie or episode id"),
    fetcher: Fetcher = Depends(get_fetcher),
):
    return await scrape_direct_links(content_id, fetcher)


@app.get("/health", response_model=HealthResponse, tags=["Status"])
async def health(cache: TTLCache = Depends(get_cache)):
    return HealthResponse(
        server=ServerStatus(
            uptime=format_uptime(time.monotonic() - STARTED_AT),
            memory_usage=memory_usage(),
        ),
        cache=CacheStatus(total_keys=cache.size()),
    )


@app.post("/cache/clear", response_model=CacheClearResponse, tags=["Status"])
async def clear_cache(cache: TTLCache = Depends(get_cache)):
    return CacheClearResponse(keys_cleared=cache.clear())


if __name__ == "__main__":
    uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL.lower())
