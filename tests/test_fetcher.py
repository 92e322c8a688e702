"""
Tests for the static fetcher, with ``requests.get`` stubbed out.
"""

import asyncio

import pytest
import requests

from faq_crawler import fetcher as fetcher_module
from faq_crawler.fetcher import FetchResponse, StaticFetcher

from conftest import make_config


URL = "https://example.com/"

FRENCH_PAGE = (
    "<html><head><title>Café</title></head>"
    "<body><p>Crème brûlée, façade, naïve résumé.</p></body></html>"
)


def make_response(body: bytes, status_code=200, content_type="text/html; charset=utf-8"):
    """A real ``requests.Response`` decoded the way requests decodes one off the wire."""
    response = requests.Response()
    response._content = body
    response.status_code = status_code
    if content_type is not None:
        response.headers["Content-Type"] = content_type
    response.encoding = requests.utils.get_encoding_from_headers(response.headers)
    return response


@pytest.fixture
def stub_get(monkeypatch):
    """Install a fake ``requests.get`` returning (or raising) ``stub_get.result``."""
    class StubGet:
        def __init__(self):
            self.result = None
            self.calls = []

        def __call__(self, url, headers=None, timeout=None, allow_redirects=True):
            self.calls.append({"url": url, "headers": headers, "timeout": timeout})
            if isinstance(self.result, Exception):
                raise self.result
            return self.result

    stub = StubGet()
    monkeypatch.setattr(fetcher_module.requests, "get", stub)
    return stub


def fetch(**config_overrides):
    fetcher = StaticFetcher(make_config(**config_overrides))
    return asyncio.run(fetcher.fetch(URL))


class TestStaticFetcher:

    def test_html_response(self, stub_get):
        stub_get.result = make_response(b"<html>ok</html>")
        response = fetch(request_timeout_ms=1500, user_agent="TestBot/2.0")

        assert response == FetchResponse(html="<html>ok</html>", status_code=200)
        call = stub_get.calls[0]
        assert call["url"] == URL
        assert call["timeout"] == 1.5
        assert call["headers"]["User-Agent"] == "TestBot/2.0"
        assert "text/html" in call["headers"]["Accept"]

    def test_error_status_returned(self, stub_get):
        stub_get.result = make_response(b"<html>missing</html>", status_code=404)
        response = fetch()
        assert response.status_code == 404
        assert response.is_error
        assert response.html == "<html>missing</html>"

    def test_non_html_body_dropped(self, stub_get):
        stub_get.result = make_response(b'{"a": 1}', content_type="application/json")
        response = fetch()
        assert response.html == ""
        assert not response.is_error

    def test_missing_content_type_kept(self, stub_get):
        stub_get.result = make_response(b"<p>hi</p>", content_type=None)
        assert fetch().html == "<p>hi</p>"

    def test_timeout_yields_none(self, stub_get):
        stub_get.result = requests.Timeout("read timed out")
        assert fetch() is None

    def test_connection_error_yields_none(self, stub_get):
        stub_get.result = requests.ConnectionError("refused")
        assert fetch() is None


class TestDecoding:

    def test_utf8_without_declared_charset(self, stub_get):
        """Bare text/html is not decoded as ISO-8859-1."""
        stub_get.result = make_response(FRENCH_PAGE.encode("utf-8"), content_type="text/html")
        html = fetch().html
        assert "<title>Café</title>" in html
        assert "Crème brûlée" in html

    def test_declared_charset_respected(self, stub_get):
        stub_get.result = make_response(
            FRENCH_PAGE.encode("iso-8859-1"),
            content_type="text/html; charset=ISO-8859-1",
        )
        assert "<title>Café</title>" in fetch().html

    def test_utf8_declared(self, stub_get):
        stub_get.result = make_response(FRENCH_PAGE.encode("utf-8"))
        assert fetch().html == FRENCH_PAGE
