"""
Crawler Errors
==============
Failure taxonomy for a crawl run.

Only ``InvalidUrl`` on the seed and ``EmptyCrawl`` abort a run; the other
failures are downgraded to warnings at the per-URL boundary.
"""


class FaqCrawlerError(Exception):
    """Base class for every error raised by the crawler."""


class InvalidUrl(FaqCrawlerError, ValueError):
    """A URL could not be parsed into an absolute http(s) URL."""

    def __init__(self, url: str, reason: str = "unparseable"):
        self.url = url
        self.reason = reason
        super().__init__(f"Unable to parse URL: {url} ({reason})")


class FetchFailure(FaqCrawlerError):
    """Static HTTP fetch failed (network error or timeout)."""


class RenderFailure(FaqCrawlerError):
    """Headless browser rendering failed for a URL."""


class EmptyCrawl(FaqCrawlerError):
    """The crawl finished without producing a single page."""

    def __init__(self, start_url: str, failed: int = 0):
        self.start_url = start_url
        self.failed = failed
        super().__init__(
            f"No pages were crawled successfully from {start_url} "
            f"({failed} URL(s) failed)"
        )
