"""
Shared fixtures and fakes for the crawler tests.

Nothing here touches the network or launches a browser.
"""

import dataclasses
from typing import Dict, List, Optional, Union

import pytest

from faq_crawler.fetcher import FetchResponse
from faq_crawler.run_config import CrawlConfig


START_URL = "https://example.com"


def make_config(url: str = START_URL, **overrides) -> CrawlConfig:
    """Default config for ``url`` with no inter-batch pause."""
    config = CrawlConfig.from_options({"url": url})
    overrides.setdefault("pause_ms", 0)
    return dataclasses.replace(config, **overrides)


def html_page(body: str, title: str = "Example") -> str:
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"


class FakeFetcher:
    """
    Serves canned responses keyed by URL.

    Values may be an HTML string (HTTP 200), a ``FetchResponse``, ``None``
    (network failure) or an exception instance to raise.
    """

    def __init__(self, responses: Dict[str, Union[str, FetchResponse, None, Exception]]):
        self.responses = responses
        self.calls: List[str] = []

    async def fetch(self, url: str) -> Optional[FetchResponse]:
        self.calls.append(url)
        value = self.responses.get(url)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, str):
            return FetchResponse(html=value, status_code=200)
        return value


class FakeRenderer:
    """Returns canned rendered HTML keyed by URL (None when missing)."""

    def __init__(self, pages: Dict[str, str] = None):
        self.pages = pages or {}
        self.calls: List[str] = []

    async def render(self, url: str) -> Optional[str]:
        self.calls.append(url)
        return self.pages.get(url)


@pytest.fixture
def config() -> CrawlConfig:
    return make_config()
