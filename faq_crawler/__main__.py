#!/usr/bin/env python3
"""
FAQ Crawler CLI
===============
Crawl a site and write a deduplicated FAQ dataset for retrieval indexing.

All configuration flows through ``CrawlConfig.from_options``; the raw
option strings collected here are validated and defaulted there.

Run with: python -m faq_crawler --url https://example.com
"""

import argparse
import logging
import os
import sys
from typing import Dict, List, Optional

from dotenv import load_dotenv

from .crawler import CrawlResult, FaqCrawler
from .errors import FaqCrawlerError
from .faq_model import Dataset, build_dataset
from .run_config import CrawlConfig

logger = logging.getLogger(__name__)

# Environment fallback for --url
URL_ENV_VAR = "SCRAPE_URL"

# (option name, kebab-case flag, help text); the camelCase flag is accepted too
_OPTIONS = [
    ("url", "--url", f"Start URL (or set {URL_ENV_VAR})"),
    ("seedPaths", "--seed-paths", "Comma-separated extra paths resolved against the origin"),
    ("spaViews", "--spa-views", "Comma-separated id=Label pairs for client-only views"),
    ("maxPages", "--max-pages", "Maximum pages to crawl (default: 20)"),
    ("maxFaqs", "--max-faqs", "Maximum FAQ entries in the dataset (default: 80)"),
    ("concurrency", "--concurrency", "URLs processed per batch, 1-5 (default: 2)"),
    ("requestTimeout", "--request-timeout", "Static fetch timeout in ms (default: 12000)"),
    ("pauseMs", "--pause-ms", "Delay between batches in ms (default: 400)"),
    ("minSectionChars", "--min-section-chars", "Minimum section length (default: 180)"),
    ("browserTimeout", "--browser-timeout", "Browser wait timeout in ms (default: 20000)"),
    ("renderWithBrowser", "--render-with-browser", "'false' disables browser rendering"),
    ("userAgent", "--user-agent", "User-Agent header for fetches and renders"),
    ("output", "--output", "Dataset path (default: data/faq-dataset.json)"),
    ("siteName", "--site-name", "Site name used in questions (default: from hostname)"),
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="faq-crawler",
        description="Crawl a website into a deduplicated FAQ dataset",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m faq_crawler --url https://example.com
  python -m faq_crawler --url https://example.com --seed-paths about,pricing --max-pages 40
  python -m faq_crawler --url https://app.example.com --spa-views team=Team,faq=FAQ
        """
    )
    for name, flag, help_text in _OPTIONS:
        flags = [flag]
        if name != flag[2:]:
            flags.append(f"--{name}")
        parser.add_argument(*flags, dest=name, default=None, metavar="VALUE", help=help_text)
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help='Enable debug logging',
    )
    return parser


def parse_options(argv: Optional[List[str]] = None) -> Dict[str, Optional[str]]:
    """Parse argv into the raw option mapping consumed by ``CrawlConfig``."""
    args = build_parser().parse_args(argv)
    options = {name: getattr(args, name) for name, _, _ in _OPTIONS}
    if not options["url"]:
        options["url"] = os.environ.get(URL_ENV_VAR)
    options["verbose"] = args.verbose
    return options


def run(config: CrawlConfig, crawler: FaqCrawler = None) -> Dataset:
    """
    Crawl, build the dataset and write it to ``config.output_path``.

    Raises:
        EmptyCrawl: if no page was crawled (nothing is written)
    """
    crawler = crawler or FaqCrawler(config)
    result = crawler.run()

    dataset = build_dataset(result.pages, config)
    path = dataset.export_json(config.output_path)
    print_summary(dataset, result, path)
    return dataset


def print_summary(dataset: Dataset, result: CrawlResult, path: str) -> None:
    """Print run summary."""
    metrics = dataset.metrics
    print("\n" + "=" * 65)
    print("FAQ DATASET READY")
    print("=" * 65)
    print(f"  File:                {path}")
    print(f"  Pages crawled:       {metrics.pages_crawled}")
    print(f"  Sections extracted:  {metrics.sections_extracted}")
    print(f"  FAQs:                {metrics.total_faqs}")
    print(f"  Avg answer words:    {metrics.avg_answer_words}")
    print(f"  Estimated tokens:    {metrics.estimated_answer_tokens}")
    print(f"  Coverage score:      {metrics.coverage_score}")
    if result.stats.get('pages_rendered'):
        print(f"  Browser renders:     {result.stats['pages_rendered']}")
    if result.stats.get('pages_failed'):
        print(f"  Failed URLs:         {result.stats['pages_failed']}")
    print(f"  Total time:          {result.stats.get('elapsed_time', 0):.1f}s")
    print(f"  Stop reason:         {result.stats.get('stop_reason', 'completed')}")
    print("=" * 65)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit status."""
    load_dotenv()
    options = parse_options(argv)

    logging.basicConfig(
        level=logging.DEBUG if options.pop("verbose") else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        config = CrawlConfig.from_options(options)
        config.log_summary()
        run(config)
    except (FaqCrawlerError, ValueError, OSError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
