"""
Static Fetcher
Plain HTTP retrieval of page HTML with a shared requests session.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .errors import FetchFailure
from .run_config import CrawlConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResponse:
    """Raw HTML and status of a single GET."""
    html: str
    status_code: int

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400


class StaticFetcher:
    """
    Single-attempt GET fetcher.

    Non-2xx responses are returned to the caller; network failures and
    timeouts yield None so the caller can fall back to rendering.
    Each call is a standalone ``requests.get`` since calls run on
    executor threads concurrently.
    """

    def __init__(self, config: CrawlConfig):
        self.config = config
        self.headers = {
            'User-Agent': config.user_agent,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.9',
        }

    async def fetch(self, url: str) -> Optional[FetchResponse]:
        """
        Fetch page HTML without blocking the event loop.

        Returns:
            FetchResponse, or None on network failure/timeout
        """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._get, url)
        except FetchFailure as e:
            logger.debug(f"[FETCH] {e}")
            return None

    def _get(self, url: str) -> FetchResponse:
        try:
            response = requests.get(
                url,
                headers=self.headers,
                timeout=self.config.request_timeout_ms / 1000,
                allow_redirects=True,
            )
        except requests.Timeout as e:
            raise FetchFailure(f"Request timeout for {url}") from e
        except requests.RequestException as e:
            raise FetchFailure(f"Request failed for {url}: {e}") from e

        # Only HTML bodies are useful (missing content-type: try anyway)
        content_type = response.headers.get('Content-Type', '').lower()
        is_html = not content_type or 'text/html' in content_type or 'xhtml' in content_type
        if not is_html:
            html = ""
        else:
            # requests assumes ISO-8859-1 for text/* without a charset
            if 'charset=' not in content_type:
                response.encoding = response.apparent_encoding
            html = response.text

        logger.debug(f"[FETCH] {url} -> HTTP {response.status_code} ({len(html)} chars)")
        return FetchResponse(html=html, status_code=response.status_code)
