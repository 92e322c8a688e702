"""
Unified Run Configuration
=========================
Single source of truth for ALL crawler defaults and runtime limits.

The CLI hands raw option strings to ``CrawlConfig.from_options``; every
other module reads the resulting frozen ``CrawlConfig``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote, urlparse

from .utils import SPA_VIEW_PARAM, URLNormalizer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults: the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "max_pages": 20,
    "max_faqs": 80,
    "concurrency": 2,
    "request_timeout_ms": 12000,
    "pause_ms": 400,
    "min_section_chars": 180,
    "browser_timeout_ms": 20000,
    "render_with_browser": True,
    "output": "data/faq-dataset.json",
    "user_agent": (
        "FAQ-Crawler/1.0 (+https://github.com/faq-crawler; "
        "knowledge-base indexing bot)"
    ),
    # Renderer selectors
    "spa_nav_selector": ".nav-button",
    "main_selector": "main",
    "control_selector": 'button, [role="button"], [role="tab"]',
}

_MIN_CONCURRENCY = 1
_MAX_CONCURRENCY = 5

# camelCase option name -> config field
_NUMERIC_OPTIONS = {
    "maxPages": "max_pages",
    "maxFaqs": "max_faqs",
    "concurrency": "concurrency",
    "requestTimeout": "request_timeout_ms",
    "pauseMs": "pause_ms",
    "minSectionChars": "min_section_chars",
    "browserTimeout": "browser_timeout_ms",
}


@dataclass(frozen=True)
class SpaView:
    """A client-side-only route and the UI label of the control that opens it."""
    id: str
    label: str


@dataclass(frozen=True)
class CrawlConfig:
    """
    Immutable run parameters consumed by every crawler subsystem.

    Populate via:
      - ``CrawlConfig.from_options({"url": "https://example.com"})``
      - ``dataclasses.replace(cfg, pause_ms=0)`` for one-off overrides
    """

    # ---- Target ----
    url: str
    origin: str
    site_name: str
    seed_urls: Tuple[str, ...] = ()
    spa_views: Tuple[SpaView, ...] = ()

    # ---- Crawl limits ----
    max_pages: int = _DEFAULTS["max_pages"]
    max_faqs: int = _DEFAULTS["max_faqs"]
    concurrency: int = _DEFAULTS["concurrency"]
    request_timeout_ms: int = _DEFAULTS["request_timeout_ms"]
    pause_ms: int = _DEFAULTS["pause_ms"]
    min_section_chars: int = _DEFAULTS["min_section_chars"]

    # ---- Rendering ----
    browser_timeout_ms: int = _DEFAULTS["browser_timeout_ms"]
    render_with_browser: bool = _DEFAULTS["render_with_browser"]
    spa_nav_selector: str = _DEFAULTS["spa_nav_selector"]
    main_selector: str = _DEFAULTS["main_selector"]
    control_selector: str = _DEFAULTS["control_selector"]

    # ---- Identity / output ----
    user_agent: str = _DEFAULTS["user_agent"]
    output_path: str = _DEFAULTS["output"]

    spa_view_map: Dict[str, SpaView] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self, "spa_view_map", {view.id: view for view in self.spa_views}
        )

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_options(cls, options: Mapping[str, Optional[str]]) -> "CrawlConfig":
        """
        Build config from raw run options (camelCase keys, string values).

        Raises:
            InvalidUrl: if the start URL cannot be parsed
            ValueError: if no start URL was given
        """
        start = options.get("url")
        if not start:
            raise ValueError("A --url argument or SCRAPE_URL env variable is required.")

        normalizer = URLNormalizer()
        url = normalizer.normalize(start)
        origin = normalizer.origin(url)

        spa_views = parse_spa_views(options.get("spaViews"))
        seeds = build_seed_urls(options.get("seedPaths"), url, origin)
        seeds += build_spa_view_urls(spa_views, origin)

        numbers = {
            field_name: to_number(options.get(key), _DEFAULTS[field_name])
            for key, field_name in _NUMERIC_OPTIONS.items()
        }
        numbers["concurrency"] = min(
            max(numbers["concurrency"], _MIN_CONCURRENCY), _MAX_CONCURRENCY
        )

        render_flag = options.get("renderWithBrowser")
        render_with_browser = (
            str(render_flag).strip().lower() != "false"
            if render_flag is not None
            else _DEFAULTS["render_with_browser"]
        )

        output = options.get("output") or _DEFAULTS["output"]

        return cls(
            url=url,
            origin=origin,
            site_name=options.get("siteName") or derive_site_name(origin),
            seed_urls=tuple(dict.fromkeys(seeds)),
            spa_views=tuple(spa_views),
            render_with_browser=render_with_browser,
            user_agent=options.get("userAgent") or _DEFAULTS["user_agent"],
            output_path=str(Path.cwd() / output),
            **numbers,
        )

    def snapshot(self) -> dict:
        """Config subset recorded in the dataset."""
        return {
            "maxPages": self.max_pages,
            "maxFaqs": self.max_faqs,
            "minSectionChars": self.min_section_chars,
        }

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("FAQ CRAWL CONFIG")
        logger.info("=" * 60)
        logger.info(f"  URL:              {self.url}")
        logger.info(f"  Site Name:        {self.site_name}")
        logger.info(f"  Seeds:            {len(self.seed_urls)}")
        if self.spa_views:
            views = ", ".join(f"{v.id}={v.label}" for v in self.spa_views)
            logger.info(f"  SPA Views:        {views}")
        logger.info(f"  Max Pages:        {self.max_pages}")
        logger.info(f"  Max FAQs:         {self.max_faqs}")
        logger.info(f"  Concurrency:      {self.concurrency}")
        logger.info(f"  Request Timeout:  {self.request_timeout_ms}ms")
        logger.info(f"  Pause:            {self.pause_ms}ms between batches")
        logger.info(f"  Min Section:      {self.min_section_chars} chars")
        logger.info(f"  Browser Render:   {self.render_with_browser}")
        if self.render_with_browser:
            logger.info(f"  Browser Timeout:  {self.browser_timeout_ms}ms")
        logger.info(f"  Output:           {self.output_path}")
        logger.info("=" * 60)


# ---------------------------------------------------------------------------
# Option parsing helpers
# ---------------------------------------------------------------------------

def to_number(value, fallback: int) -> int:
    """Parse a positive finite number; anything else yields ``fallback``."""
    if value is None or isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number) or number <= 0:
        return fallback
    return int(number) if number >= 1 else fallback


def parse_spa_views(raw: Optional[str]) -> List[SpaView]:
    """Parse ``"id=Label,other=Other Label"`` into SpaView entries."""
    if not raw:
        return []

    views = []
    for pair in raw.split(","):
        view_id, sep, label = pair.strip().partition("=")
        view_id, label = view_id.strip(), label.strip()
        if not sep or not view_id or not label:
            logger.warning(f"Ignoring malformed SPA view '{pair.strip()}' (expected id=label)")
            continue
        views.append(SpaView(id=view_id, label=label))
    return views


def build_seed_urls(raw: Optional[str], start_url: str, origin: str) -> List[str]:
    """Start URL followed by comma-separated seed paths resolved against origin."""
    normalizer = URLNormalizer()
    seeds = [start_url]
    if raw:
        for segment in (s.strip() for s in raw.split(",")):
            if not segment:
                continue
            candidate = segment
            if not segment.lower().startswith(("http://", "https://")):
                relative = segment if segment.startswith("/") else f"/{segment}"
                candidate = origin + relative
            normalized = normalizer.try_normalize(candidate)
            if normalized:
                seeds.append(normalized)
            else:
                logger.warning(f"Ignoring unparseable seed path '{segment}'")
    return list(dict.fromkeys(seeds))


def build_spa_view_urls(views: List[SpaView], origin: str) -> List[str]:
    """Synthesize ``origin/?__spaView=<id>`` pseudo-URLs."""
    normalizer = URLNormalizer()
    urls = []
    for view in views:
        url = normalizer.try_normalize(
            f"{origin}/?{SPA_VIEW_PARAM}={quote(view.id, safe='')}"
        )
        if url:
            urls.append(url)
    return urls


def derive_site_name(origin: str) -> str:
    """``https://www.acme-labs.io`` -> ``"Acme Labs Io"``."""
    hostname = (urlparse(origin).hostname or "").lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]
    pieces = []
    for piece in filter(None, hostname.split(".")):
        pieces.append(" ".join(part[:1].upper() + part[1:] for part in piece.split("-")))
    return " ".join(pieces)
