# fetcher.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from bs4 import BeautifulSoup
from httpx import AsyncClient, HTTPStatusError, RequestError

from cache import TTLCache, cache_key
from config import HEADERS, MAX_ATTEMPTS, REQUEST_TIMEOUT, RETRY_BACKOFF

logger = logging.getLogger(__name__)


def parse_html(body: str) -> BeautifulSoup:
    return BeautifulSoup(body, 'html.parser')


class Fetcher:
    """
    Fetch pages from the source site through the shared cache.

    The raw body is cached rather than the parsed tree, so every caller gets
    a fresh document it is free to mutate. Transient failures (network
    errors, timeouts, non-2xx responses) are retried with a linearly growing
    delay; once the attempts are used up ``fetch`` returns None instead of
    raising, and the caller decides how to answer.
    """

    def __init__(
        self,
        client: AsyncClient,
        cache: TTLCache,
        max_attempts: int = MAX_ATTEMPTS,
        backoff: float = RETRY_BACKOFF,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.cache = cache
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff
        self._sleep = sleep

    async def fetch(self, url: str) -> Optional[BeautifulSoup]:
        key = cache_key('html', url)
        cached_body = self.cache.get(key)
        if cached_body is not None:
            logger.info(f"[CACHE HIT] {url}")
            return parse_html(cached_body)

        logger.info(f"[FETCHING] {url}")
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self.client.get(url, headers=HEADERS, timeout=REQUEST_TIMEOUT)
                response.raise_for_status()
                body = response.text
                logger.info(f"[SUCCESS] Status: {response.status_code}, Length: {len(body)} bytes")
                self.cache.set(key, body)
                return parse_html(body)
            except HTTPStatusError as e:
                logger.warning(f"[RETRY {attempt}/{self.max_attempts}] HTTP error {e.response.status_code} for {url}")
            except RequestError as e:
                logger.warning(f"[RETRY {attempt}/{self.max_attempts}] Network error for {url}: {e!r}")

            if attempt < self.max_attempts:
                await self._sleep(self.backoff * attempt)

        logger.error(f"[FAILED] Could not fetch {url} after {self.max_attempts} attempts")
        return None
