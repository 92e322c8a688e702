"""
Page Scraper
Extracts structured FAQ source content from HTML pages.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Tuple

from bs4 import BeautifulSoup, Comment

from .utils import URLNormalizer, clean_text, count_words, truncate

logger = logging.getLogger(__name__)

_BS_PARSER = "lxml"

_HEADING_RE = re.compile(r'^h[1-3]$', re.IGNORECASE)

# Length limits for derived text
SNIPPET_CHARS = 320
SUMMARY_CHARS = 600
SUMMARY_PRIMARY_MIN = 250

# Render-need thresholds (see ``needs_browser_render``)
RENDER_MIN_SUMMARY_CHARS = 160
RENDER_MIN_WORDS = 40


@dataclass(frozen=True)
class Section:
    """A heading and the text that follows it."""
    heading: str
    content: str
    snippet: str

    @classmethod
    def build(cls, heading: str, content: str) -> "Section":
        return cls(heading=heading, content=content, snippet=truncate(content, SNIPPET_CHARS))


@dataclass(frozen=True)
class Page:
    """
    Structured data extracted from one crawled URL.
    """
    url: str
    title: str = ""
    description: str = ""
    summary: str = ""
    sections: Tuple[Section, ...] = ()
    links: Tuple[str, ...] = ()
    word_count: int = 0

    @property
    def section_count(self) -> int:
        return len(self.sections)

    @property
    def summary_length(self) -> int:
        return len(self.summary)

    @property
    def needs_render(self) -> bool:
        """Whether the static HTML looked client-rendered or empty."""
        return needs_browser_render(self.section_count, self.summary_length, self.word_count)


def needs_browser_render(section_count: int, summary_length: int, word_count: int) -> bool:
    """
    Decide whether a statically fetched page must be re-fetched in a browser.

    =============  ==========================================
    sections       must be 0
    summary chars  < RENDER_MIN_SUMMARY_CHARS (160), **or**
    words          < RENDER_MIN_WORDS (40)
    =============  ==========================================
    """
    return section_count == 0 and (
        summary_length < RENDER_MIN_SUMMARY_CHARS or word_count < RENDER_MIN_WORDS
    )


class PageScraper:
    """
    Turns one HTML document into a ``Page``.
    """

    # Tags removed before any text is read (never visible content)
    ALWAYS_STRIP_TAGS = {
        'script', 'style', 'noscript', 'iframe', 'svg', 'canvas', 'template'
    }

    def __init__(self, min_section_chars: int, normalizer: URLNormalizer = None):
        """
        Initialize the scraper.

        Args:
            min_section_chars: Minimum content length for a section to be kept
            normalizer: URL normalizer used for discovered links
        """
        self.min_section_chars = min_section_chars
        self.normalizer = normalizer or URLNormalizer()

    def extract(self, html: str, url: str) -> Page:
        """
        Scrape content from HTML.

        Args:
            html: HTML content
            url: Normalized page URL (base for relative links)

        Returns:
            Page with extracted content
        """
        soup = BeautifulSoup(html, _BS_PARSER)
        self._remove_unwanted_elements(soup)

        body_text = self._body_text(soup)
        sections = self._extract_sections(soup, body_text)
        summary = self._build_summary(soup, sections, body_text)
        links = self._extract_links(soup, url)

        page = Page(
            url=url,
            title=self._extract_title(soup) or url,
            description=self._extract_meta_description(soup),
            summary=summary,
            sections=tuple(sections),
            links=tuple(links),
            word_count=count_words(summary or body_text),
        )

        logger.debug(
            f"[SCRAPE] {url[:70]} | title='{page.title[:50]}', "
            f"sections={page.section_count}, words={page.word_count}, "
            f"links={len(page.links)}"
        )
        return page

    def _remove_unwanted_elements(self, soup: BeautifulSoup) -> None:
        """Remove comments, scripts, styles and other non-content elements."""
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        for element in soup.find_all(list(self.ALWAYS_STRIP_TAGS)):
            element.decompose()

    def _extract_title(self, soup: BeautifulSoup) -> str:
        title_tag = soup.find('title')
        if title_tag:
            return clean_text(title_tag.get_text())
        return ""

    def _extract_meta_description(self, soup: BeautifulSoup) -> str:
        meta = soup.find('meta', attrs={'name': 'description'})
        if meta and meta.get('content'):
            return clean_text(meta['content'])
        return ""

    def _body_text(self, soup: BeautifulSoup) -> str:
        body = soup.find('body') or soup
        return clean_text(body.get_text(separator=' '))

    def _extract_sections(self, soup: BeautifulSoup, body_text: str) -> List[Section]:
        """
        Heading sections first, then long paragraphs, then the whole body.
        """
        sections = self._heading_sections(soup)
        if sections:
            return sections

        for index, paragraph in enumerate(soup.find_all('p'), 1):
            text = clean_text(paragraph.get_text(separator=' '))
            if len(text) >= self.min_section_chars:
                sections.append(Section.build(f"Key Insight {index}", text))
        if sections:
            return sections

        if len(body_text) >= self.min_section_chars:
            sections.append(Section.build("Site Overview", body_text))
        return sections

    def _heading_sections(self, soup: BeautifulSoup) -> List[Section]:
        sections = []
        for heading_tag in soup.find_all(['h1', 'h2', 'h3']):
            heading = clean_text(heading_tag.get_text(separator=' '))
            if not heading:
                continue

            chunks = []
            for sibling in heading_tag.find_next_siblings():
                if _HEADING_RE.match(sibling.name or ''):
                    break
                text = clean_text(sibling.get_text(separator=' '))
                if text:
                    chunks.append(text)

            content = ' '.join(chunks)
            if len(content) >= self.min_section_chars:
                sections.append(Section.build(heading, content))
        return sections

    def _build_summary(
        self,
        soup: BeautifulSoup,
        sections: List[Section],
        body_text: str
    ) -> str:
        primary = ' '.join(s.content for s in sections).strip()
        if len(primary) > SUMMARY_PRIMARY_MIN:
            text = primary
        else:
            main = soup.find('main')
            text = (clean_text(main.get_text(separator=' ')) if main else '') or body_text
        return truncate(text, SUMMARY_CHARS) if text else ""

    def _extract_links(self, soup: BeautifulSoup, current_url: str) -> List[str]:
        """Resolved, normalized, in-order unique anchor targets."""
        links = {}
        for anchor in soup.find_all('a', href=True):
            href = anchor['href'].strip()
            if not href or href.lower().startswith(URLNormalizer.SKIPPED_PREFIXES):
                continue

            normalized = self.normalizer.try_normalize(href, current_url)
            if normalized:
                links[normalized] = None
        return list(links)
