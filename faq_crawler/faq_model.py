"""
FAQ Dataset Model
=================
Converts crawled pages into a deduplicated FAQ dataset for retrieval
indexing.

Every page contributes an overview entry built from its summary and one
entry per extracted section. Questions are synthesized from titles and
headings; the first occurrence of a question (case-insensitive) wins.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

from .run_config import CrawlConfig
from .scraper import Page
from .utils import count_words, slugify, truncate

logger = logging.getLogger(__name__)

MAX_ANSWER_CHARS = 1200

# Approximate tokens per word (conservative for English text)
_TOKENS_PER_WORD = 1.3

_TRAILING_PUNCT_RE = re.compile(r'[:?]+$')

TAG_PAGE_OVERVIEW = "page-overview"
TAG_SECTION = "section"


@dataclass(frozen=True)
class FaqEntry:
    """A synthesized question/answer pair."""
    question: str
    answer: str
    source_url: str
    tags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "answer": self.answer,
            "sourceUrl": self.source_url,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class DatasetMetrics:
    """Aggregate numbers over the final FAQ list."""
    pages_crawled: int = 0
    sections_extracted: int = 0
    total_faqs: int = 0
    avg_answer_words: float = 0.0
    estimated_answer_tokens: int = 0
    coverage_score: float = 0.0

    @classmethod
    def compute(cls, faqs: List[FaqEntry], pages: List[Page]) -> "DatasetMetrics":
        total_words = sum(count_words(faq.answer) for faq in faqs)
        return cls(
            pages_crawled=len(pages),
            sections_extracted=sum(page.section_count for page in pages),
            total_faqs=len(faqs),
            avg_answer_words=round(total_words / len(faqs), 1) if faqs else 0,
            estimated_answer_tokens=round(total_words * _TOKENS_PER_WORD),
            coverage_score=round(len(faqs) / max(len(pages), 1), 2),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pagesCrawled": self.pages_crawled,
            "sectionsExtracted": self.sections_extracted,
            "totalFaqs": self.total_faqs,
            "avgAnswerWords": self.avg_answer_words,
            "estimatedAnswerTokens": self.estimated_answer_tokens,
            "coverageScore": self.coverage_score,
        }


@dataclass(frozen=True)
class Dataset:
    """
    The complete FAQ dataset of one crawl run.

    Built once by ``build_dataset``; the JSON form is the only interface
    consumed by downstream indexers.
    """
    generated_at: str
    source: Dict[str, str]
    config: Dict[str, Any]
    metrics: DatasetMetrics
    faqs: List[FaqEntry]
    crawl_report: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": self.generated_at,
            "source": dict(self.source),
            "config": dict(self.config),
            "metrics": self.metrics.to_dict(),
            "faqs": [faq.to_dict() for faq in self.faqs],
            "crawlReport": [dict(row) for row in self.crawl_report],
        }

    def export_json(self, filepath: str) -> str:
        """Export to JSON file, creating parent directories."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return str(path.absolute())


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class _FaqCollector:
    """Ordered FAQ list with case-insensitive question dedup."""

    def __init__(self):
        self.faqs: List[FaqEntry] = []
        self._seen = set()
        self.duplicates = 0

    def add(self, question: str, answer: str, source_url: str, tags: Tuple[str, ...]) -> None:
        key = question.lower()
        if key in self._seen:
            self.duplicates += 1
            return
        self._seen.add(key)
        self.faqs.append(FaqEntry(
            question=question,
            answer=truncate(answer, MAX_ANSWER_CHARS),
            source_url=source_url,
            tags=tags,
        ))


def overview_question(title: str, site_name: str) -> str:
    return f"What does the “{title}” page cover on {site_name}?"


def section_question(heading: str, site_name: str) -> str:
    return f"What does “{heading}” highlight on {site_name}?"


def build_dataset(pages: Iterable[Page], config: CrawlConfig) -> Dataset:
    """
    Build the FAQ dataset from pages in crawl order.

    Overview entries need a summary at least ``min_section_chars`` long,
    the same bar a section has to clear.
    """
    pages = list(pages)
    collector = _FaqCollector()

    for page in pages:
        if page.summary and len(page.summary) >= config.min_section_chars:
            collector.add(
                overview_question(page.title, config.site_name),
                page.summary,
                page.url,
                (TAG_PAGE_OVERVIEW,),
            )

        for section in page.sections:
            heading = _TRAILING_PUNCT_RE.sub('', section.heading).strip()
            collector.add(
                section_question(heading, config.site_name),
                section.content,
                page.url,
                (TAG_SECTION, slugify(heading)),
            )

    faqs = collector.faqs[:config.max_faqs]
    if collector.duplicates:
        logger.info(f"Dropped {collector.duplicates} duplicate question(s)")
    if len(collector.faqs) > len(faqs):
        logger.info(f"Capped FAQ list at {config.max_faqs} (of {len(collector.faqs)})")

    return Dataset(
        generated_at=_utc_timestamp(),
        source={"url": config.url, "siteName": config.site_name},
        config=config.snapshot(),
        metrics=DatasetMetrics.compute(faqs, pages),
        faqs=faqs,
        crawl_report=[
            {
                "url": page.url,
                "title": page.title,
                "sections": page.section_count,
                "hasSummary": bool(page.summary),
            }
            for page in pages
        ],
    )


def _utc_timestamp() -> str:
    """ISO 8601 UTC timestamp with millisecond precision and ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
