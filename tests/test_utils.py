"""
Tests for URL normalization, text helpers and the polling primitive.
"""

import asyncio

import pytest

from faq_crawler.errors import InvalidUrl
from faq_crawler.utils import (
    ELLIPSIS,
    URLNormalizer,
    clean_text,
    count_words,
    poll_until,
    slugify,
    spa_view_id,
    truncate,
)


# ====================================================================
# URL normalization
# ====================================================================

class TestNormalize:
    """Canonical URLs used as frontier dedup keys."""

    def setup_method(self):
        self.normalizer = URLNormalizer()

    def test_trailing_slash_equivalence(self):
        """/a/ and /a normalize identically."""
        assert self.normalizer.normalize("https://x.com/a/") == self.normalizer.normalize("https://x.com/a")

    def test_fragment_removed(self):
        assert self.normalizer.normalize("https://x.com/a#team") == "https://x.com/a"

    def test_root_keeps_slash(self):
        assert self.normalizer.normalize("https://x.com") == "https://x.com/"
        assert self.normalizer.normalize("https://x.com/") == "https://x.com/"

    def test_host_and_scheme_lowercased(self):
        assert self.normalizer.normalize("HTTPS://Example.COM/Docs") == "https://example.com/Docs"

    def test_default_port_dropped(self):
        assert self.normalizer.normalize("https://x.com:443/a") == "https://x.com/a"
        assert self.normalizer.normalize("http://x.com:8080/a") == "http://x.com:8080/a"

    def test_query_preserved(self):
        url = "https://x.com/?__spaView=team"
        assert self.normalizer.normalize(url) == url

    def test_relative_resolved_against_base(self):
        assert self.normalizer.normalize("../b/", "https://x.com/a/c") == "https://x.com/b"
        assert self.normalizer.normalize("/pricing", "https://x.com/a") == "https://x.com/pricing"

    @pytest.mark.parametrize("url", [
        "https://x.com/a/",
        "https://X.com:443/a/b/#frag",
        "http://x.com",
        "https://x.com/?q=1#top",
        "https://x.com/path//",
    ])
    def test_idempotent(self, url):
        once = self.normalizer.normalize(url)
        assert self.normalizer.normalize(once) == once

    @pytest.mark.parametrize("url", [
        "",
        "   ",
        "not a url",
        "mailto:team@x.com",
        "javascript:void(0)",
        "ftp://x.com/file",
        "https://",
        "http://[::1",
    ])
    def test_invalid_raises(self, url):
        with pytest.raises(InvalidUrl):
            self.normalizer.normalize(url)

    def test_try_normalize_returns_none(self):
        assert self.normalizer.try_normalize("mailto:team@x.com") is None

    def test_invalid_url_is_value_error(self):
        """Callers catching ValueError still see InvalidUrl."""
        with pytest.raises(ValueError):
            self.normalizer.normalize("nope")


class TestOrigin:

    def setup_method(self):
        self.normalizer = URLNormalizer()

    def test_origin(self):
        assert self.normalizer.origin("https://x.com/a/b?c=1") == "https://x.com"

    def test_same_origin(self):
        assert self.normalizer.same_origin("https://x.com/a", "https://x.com")
        assert not self.normalizer.same_origin("https://x.com.evil.io/a", "https://x.com")
        assert not self.normalizer.same_origin("http://x.com/a", "https://x.com")
        assert not self.normalizer.same_origin("https://x.com:8443/a", "https://x.com")

    def test_same_origin_invalid(self):
        assert not self.normalizer.same_origin("mailto:a@x.com", "https://x.com")


def test_spa_view_id():
    assert spa_view_id("https://x.com/?__spaView=team") == "team"
    assert spa_view_id("https://x.com/team") is None


# ====================================================================
# Text helpers
# ====================================================================

class TestText:

    def test_clean_text(self):
        assert clean_text("  a\n\tb   c\u200b ") == "a b c"
        assert clean_text(None) == ""

    def test_count_words(self):
        assert count_words(" one  two\nthree ") == 3
        assert count_words("") == 0

    def test_slugify(self):
        assert slugify("Our Mission") == "our-mission"
        assert slugify("  What's New? (2024) ") == "what-s-new-2024"

    def test_truncate_short_text_untouched(self):
        assert truncate("short", 10) == "short"

    def test_truncate_respects_limit(self):
        text = "word " * 100
        result = truncate(text, 50)
        assert len(result) <= 50
        assert result.endswith(ELLIPSIS)

    def test_truncate_at_sentence_boundary(self):
        text = "First sentence is here. Second sentence runs much longer than the limit allows"
        result = truncate(text, 30)
        assert result == "First sentence is here." + ELLIPSIS

    def test_truncate_ignores_early_period(self):
        """A period in the first 60% of the cut is not used."""
        text = "Hi. " + "x" * 100
        result = truncate(text, 40)
        assert result.startswith("Hi. xxx")
        assert len(result) == 40


# ====================================================================
# Polling
# ====================================================================

class TestPollUntil:

    def test_succeeds_after_retries(self):
        attempts = []

        async def predicate():
            attempts.append(1)
            return len(attempts) >= 3

        assert asyncio.run(poll_until(predicate, timeout_ms=1000, interval_ms=1))
        assert len(attempts) == 3

    def test_times_out(self):
        async def predicate():
            return False

        assert asyncio.run(poll_until(predicate, timeout_ms=30, interval_ms=5)) is False

    def test_ignored_errors_count_as_not_ready(self):
        attempts = []

        async def predicate():
            attempts.append(1)
            if len(attempts) < 2:
                raise RuntimeError("context destroyed")
            return True

        assert asyncio.run(poll_until(predicate, 1000, interval_ms=1, ignore=(RuntimeError,)))

    def test_other_errors_propagate(self):
        async def predicate():
            raise KeyError("boom")

        with pytest.raises(KeyError):
            asyncio.run(poll_until(predicate, 1000, interval_ms=1, ignore=(RuntimeError,)))
