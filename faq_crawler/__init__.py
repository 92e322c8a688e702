"""
FAQ Crawler Package
Crawls a website (including client-rendered SPA views) into a deduplicated
FAQ dataset for retrieval indexing.

CLI Usage:
    python -m faq_crawler --url <url> [options]

    Options:
        --seed-paths        Extra comma-separated paths to seed
        --spa-views         id=Label pairs for client-only views
        --max-pages         Maximum pages to crawl (default: 20)
        --max-faqs          Maximum FAQ entries (default: 80)
        --concurrency       URLs per batch, 1-5 (default: 2)
        --render-with-browser false   Disable the headless browser fallback
        --output            Dataset path (default: data/faq-dataset.json)
"""

from .crawler import FaqCrawler, FrontierState, CrawlResult
from .errors import FaqCrawlerError, InvalidUrl, FetchFailure, RenderFailure, EmptyCrawl
from .faq_model import Dataset, DatasetMetrics, FaqEntry, build_dataset
from .fetcher import StaticFetcher, FetchResponse
from .renderer import Renderer, NullRenderer, PlaywrightRenderer, create_renderer
from .run_config import CrawlConfig, SpaView
from .scraper import Page, PageScraper, Section, needs_browser_render
from .utils import URLNormalizer, poll_until

__all__ = [
    'FaqCrawler',
    'FrontierState',
    'CrawlResult',
    'CrawlConfig',
    'SpaView',
    # Extraction
    'Page',
    'PageScraper',
    'Section',
    'needs_browser_render',
    # Fetching / rendering
    'StaticFetcher',
    'FetchResponse',
    'Renderer',
    'NullRenderer',
    'PlaywrightRenderer',
    'create_renderer',
    # Dataset
    'Dataset',
    'DatasetMetrics',
    'FaqEntry',
    'build_dataset',
    # Errors
    'FaqCrawlerError',
    'InvalidUrl',
    'FetchFailure',
    'RenderFailure',
    'EmptyCrawl',
    'URLNormalizer',
    'poll_until',
]

__version__ = '1.0.0'
