"""
Utility Functions
URL normalization, text cleanup, truncation and polling helpers.
"""

import asyncio
import logging
import re
from typing import Awaitable, Callable, Optional, Tuple, Type
from urllib.parse import parse_qs, urljoin, urlparse, urlunparse

from .errors import InvalidUrl

logger = logging.getLogger(__name__)

# Query parameter that marks a synthetic SPA-view URL
SPA_VIEW_PARAM = '__spaView'

# Appended to every truncated text; counted inside the length limit
ELLIPSIS = ' …'

_DEFAULT_PORTS = {'http': 80, 'https': 443}
_WHITESPACE_RE = re.compile(r'\s+')
_ZERO_WIDTH_RE = re.compile('\u200b')
_SLUG_RE = re.compile(r'[^a-z0-9]+')


class URLNormalizer:
    """
    Canonicalizes URLs so they can be used as frontier dedup keys.
    Removes fragments and trailing slashes, lowercases scheme/host and
    drops default ports. Query strings are preserved as-is.
    """

    SKIPPED_PREFIXES = ('#', 'mailto:', 'tel:')

    def normalize(self, url: str, base_url: str = None) -> str:
        """
        Normalize a URL for consistent comparison.

        Args:
            url: The URL to normalize
            base_url: Optional base URL for resolving relative URLs

        Returns:
            Normalized URL string

        Raises:
            InvalidUrl: if the URL cannot be turned into an absolute http(s) URL
        """
        if not url or not url.strip():
            raise InvalidUrl(url or '', 'empty')

        url = url.strip()

        try:
            if base_url:
                url = urljoin(base_url, url)
            parsed = urlparse(url)
            port = parsed.port
        except ValueError as e:
            raise InvalidUrl(url, str(e)) from e

        scheme = parsed.scheme.lower()
        if scheme not in _DEFAULT_PORTS:
            raise InvalidUrl(url, f"unsupported scheme '{parsed.scheme}'")

        host = (parsed.hostname or '').lower()
        if not host:
            raise InvalidUrl(url, 'missing host')

        netloc = host
        if ':' in host:
            netloc = f'[{host}]'
        if port is not None and port != _DEFAULT_PORTS[scheme]:
            netloc = f'{netloc}:{port}'
        if parsed.username:
            userinfo = parsed.username
            if parsed.password:
                userinfo = f'{userinfo}:{parsed.password}'
            netloc = f'{userinfo}@{netloc}'

        # Remove trailing slash unless it's the root
        path = parsed.path or '/'
        if path != '/' and path.endswith('/'):
            path = path.rstrip('/') or '/'

        return urlunparse((scheme, netloc, path, parsed.params, parsed.query, ''))

    def try_normalize(self, url: str, base_url: str = None) -> Optional[str]:
        """Like ``normalize`` but returns None for invalid URLs."""
        try:
            return self.normalize(url, base_url)
        except InvalidUrl as e:
            logger.debug(f"[LINK] Dropped {e.url!r}: {e.reason}")
            return None

    def origin(self, url: str) -> str:
        """Return ``scheme://host[:port]`` of a normalized URL."""
        parsed = urlparse(self.normalize(url))
        return f'{parsed.scheme}://{parsed.netloc.rsplit("@", 1)[-1]}'

    def same_origin(self, url: str, origin: str) -> bool:
        """Check whether ``url`` lives on ``origin`` (scheme, host and port)."""
        try:
            return self.origin(url) == self.origin(origin)
        except InvalidUrl:
            return False


def spa_view_id(url: str) -> Optional[str]:
    """Return the SPA view id encoded in a synthetic view URL, if any."""
    try:
        values = parse_qs(urlparse(url).query).get(SPA_VIEW_PARAM)
    except ValueError:
        return None
    return values[0] if values else None


def clean_text(text: str) -> str:
    """Collapse whitespace and drop zero-width spaces."""
    if not text:
        return ""
    text = _WHITESPACE_RE.sub(' ', text)
    text = _ZERO_WIDTH_RE.sub('', text)
    return text.strip()


def truncate(text: str, limit: int) -> str:
    """
    Shorten text to at most ``limit`` characters, ellipsis included.

    Cuts at the last sentence boundary when one exists in the final 40%
    of the kept text, otherwise at the hard limit.
    """
    if not text or len(text) <= limit:
        return text

    budget = max(limit - len(ELLIPSIS), 0)
    shortened = text[:budget]
    last_period = shortened.rfind('.')
    if last_period > budget * 0.6:
        shortened = shortened[:last_period + 1]
    return f"{shortened.strip()}{ELLIPSIS}"


def count_words(text: str) -> int:
    """Count whitespace-separated tokens."""
    return len(clean_text(text).split())


def slugify(text: str) -> str:
    """Lowercase ASCII slug: ``"Our Mission!"`` -> ``"our-mission"``."""
    return _SLUG_RE.sub('-', clean_text(text).lower()).strip('-')


async def poll_until(
    predicate: Callable[[], Awaitable[bool]],
    timeout_ms: float,
    interval_ms: float = 100,
    ignore: Tuple[Type[BaseException], ...] = (),
) -> bool:
    """
    Poll an async predicate until it returns True or the deadline passes.

    Args:
        predicate: Zero-argument coroutine function returning a truthy value
        timeout_ms: Deadline in milliseconds
        interval_ms: Delay between attempts in milliseconds
        ignore: Exception types that count as "not yet" instead of propagating

    Returns:
        True if the predicate succeeded before the deadline, False otherwise
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_ms / 1000

    while True:
        try:
            if await predicate():
                return True
        except ignore as e:
            logger.debug(f"[POLL] Predicate not ready: {e}")

        remaining = deadline - loop.time()
        if remaining <= 0:
            return False
        await asyncio.sleep(min(interval_ms / 1000, remaining))
