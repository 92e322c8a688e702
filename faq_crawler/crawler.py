"""
FAQ Crawler
Batch-based frontier crawl with static fetching and browser-render fallback.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Set

from .errors import EmptyCrawl
from .fetcher import StaticFetcher
from .renderer import Renderer, create_renderer
from .run_config import CrawlConfig
from .scraper import Page, PageScraper
from .utils import URLNormalizer, spa_view_id

logger = logging.getLogger(__name__)


@dataclass
class FrontierState:
    """
    Queue, visited-set and accumulated pages of one crawl.

    Only mutated by ``FaqCrawler`` between batches.
    """
    queue: Deque[str] = field(default_factory=deque)
    visited: Set[str] = field(default_factory=set)
    queued: Set[str] = field(default_factory=set)   # mirrors ``queue`` for O(1) lookups
    pages: List[Page] = field(default_factory=list)

    @classmethod
    def seeded(cls, seed_urls) -> "FrontierState":
        state = cls()
        for url in seed_urls:
            state.offer(url)
        return state

    @property
    def known_work(self) -> int:
        return len(self.pages) + len(self.queue)

    def next_batch(self, size: int) -> List[str]:
        """Dequeue up to ``size`` unvisited URLs and mark them visited."""
        batch = []
        while self.queue and len(batch) < size:
            url = self.queue.popleft()
            self.queued.discard(url)
            if url in self.visited:
                continue
            self.visited.add(url)
            batch.append(url)
        return batch

    def offer(self, url: str) -> bool:
        """Enqueue a URL unless it is already visited or queued."""
        if url in self.visited or url in self.queued:
            return False
        self.queue.append(url)
        self.queued.add(url)
        return True


@dataclass
class _UrlOutcome:
    """Internal result of processing one URL."""
    url: str
    page: Optional[Page] = None
    rendered: bool = False
    error: str = ""


@dataclass
class CrawlResult:
    """
    Result of a crawl operation.
    """
    pages: List[Page] = field(default_factory=list)
    stats: Dict = field(default_factory=dict)
    errors: List[Dict] = field(default_factory=list)


class FaqCrawler:
    """
    Crawls a site in bounded-concurrency batches.

    Usage::

        crawler = FaqCrawler(CrawlConfig.from_options({"url": "https://example.com"}))
        result = await crawler.crawl()

        # Or from sync code:
        result = crawler.run()
    """

    def __init__(
        self,
        config: CrawlConfig,
        fetcher: StaticFetcher = None,
        renderer: Renderer = None,
    ):
        self.config = config
        self.fetcher = fetcher or StaticFetcher(config)
        self.renderer = renderer or create_renderer(config)
        self.url_normalizer = URLNormalizer()
        self.scraper = PageScraper(config.min_section_chars, self.url_normalizer)

    def run(self) -> CrawlResult:
        """Sync wrapper: run the async crawl from synchronous code."""
        return asyncio.run(self.crawl())

    async def crawl(self) -> CrawlResult:
        """
        Crawl from the configured seeds until the frontier drains or the
        page cap is reached.

        Raises:
            EmptyCrawl: if no page could be produced
        """
        state = FrontierState.seeded(self.config.seed_urls)
        errors: List[Dict] = []
        rendered = 0
        batches = 0
        start_time = time.time()

        logger.info(
            f"Starting crawl for {self.config.url} "
            f"({len(state.queue)} seed URL(s), concurrency={self.config.concurrency})"
        )

        while state.queue and len(state.pages) < self.config.max_pages:
            # Capped at the remaining page budget, so the last batch never
            # overshoots max_pages (a plain concurrency-sized batch could)
            batch_size = min(self.config.concurrency, self.config.max_pages - len(state.pages))
            batch = state.next_batch(batch_size)
            if not batch:
                break
            batches += 1

            outcomes = await asyncio.gather(*(self._process_url_safe(url) for url in batch))

            # All outcomes are materialized; the frontier is only touched here
            for outcome in outcomes:
                rendered += outcome.rendered
                if outcome.page is None:
                    errors.append({'url': outcome.url, 'error': outcome.error})
                    continue
                state.pages.append(outcome.page)
                self._enqueue_links(state, outcome.page)

            if self.config.pause_ms > 0:
                await asyncio.sleep(self.config.pause_ms / 1000)

        elapsed = time.time() - start_time
        if len(state.pages) >= self.config.max_pages:
            stop_reason = f"MAX_PAGES limit reached ({self.config.max_pages})"
        else:
            stop_reason = "Queue exhausted"

        stats = {
            'pages_crawled': len(state.pages),
            'pages_failed': len(errors),
            'pages_rendered': rendered,
            'urls_visited': len(state.visited),
            'batches': batches,
            'elapsed_time': round(elapsed, 2),
            'stop_reason': stop_reason,
        }
        logger.info(
            f"Crawl finished: {stats['pages_crawled']} pages, "
            f"{stats['pages_failed']} failed, {stats['pages_rendered']} rendered "
            f"in {stats['elapsed_time']}s ({stop_reason})"
        )

        if not state.pages:
            raise EmptyCrawl(self.config.url, failed=len(errors))

        return CrawlResult(pages=list(state.pages), stats=stats, errors=errors)

    def _enqueue_links(self, state: FrontierState, page: Page) -> None:
        for link in page.links:
            if state.known_work >= self.config.max_pages:
                return
            if not self.url_normalizer.same_origin(link, self.config.origin):
                continue
            state.offer(link)

    async def _process_url_safe(self, url: str) -> _UrlOutcome:
        """Per-URL failure boundary: a failure yields an outcome without a page."""
        try:
            return await self._process_url(url)
        except Exception as e:
            logger.warning(f"Failed to process {url}: {e}")
            return _UrlOutcome(url=url, error=str(e) or type(e).__name__)

    async def _process_url(self, url: str) -> _UrlOutcome:
        """Fetch, extract and (when needed) render one URL."""
        force_render = spa_view_id(url) is not None
        response = None if force_render else await self.fetcher.fetch(url)

        page = None
        if response is not None and response.html:
            page = self.scraper.extract(response.html, url)

        rendered = False
        if self.config.render_with_browser and (
            force_render
            or page is None
            or page.needs_render
            or (response is not None and response.is_error)
        ):
            html = await self.renderer.render(url)
            if html:
                rendered = True
                page = self.scraper.extract(html, url)

        if page is None:
            return _UrlOutcome(url=url, error="No content retrieved")

        logger.info(f"[CRAWLED] {url} ({page.section_count} sections)")
        return _UrlOutcome(url=url, page=page, rendered=rendered)
