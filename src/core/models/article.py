#!/usr/bin/env python3
"""
Article data models.

CandidateArticle is the transient record built from an upstream search
response. PersistedArticle is a row already stored in the news table.
"""

import math
from datetime import datetime
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

import pytz
from dateutil import parser as date_parser

# Persisted when the upstream response carried no score
DEFAULT_RELEVANCE_SCORE = 0.5


def _parse_datetime_safe(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return date_parser.parse(str(value))
    except (ValueError, OverflowError):
        return None


def _utc_now() -> datetime:
    return datetime.now(pytz.UTC)


@dataclass
class CandidateArticle:
    """
    A candidate news item produced by one ingestion call.

    The url is the unique key. relevance_score is None when the upstream
    response did not provide one.
    """
    title: str
    url: str
    source: str
    summary: str = ""
    relevance_score: Optional[float] = None
    matched_clusters: List[str] = field(default_factory=list)
    is_competitor_covered: bool = False
    published_at: datetime = field(default_factory=_utc_now)
    is_placeholder: bool = False

    def __post_init__(self):
        """Clean and validate data after initialization."""
        self.title = (self.title or "").strip()
        self.url = (self.url or "").strip()
        self.source = (self.source or "").strip()
        self.summary = (self.summary or "").strip()

        if self.relevance_score is not None:
            score = float(self.relevance_score)
            self.relevance_score = max(0.0, min(1.0, score)) if math.isfinite(score) else None

        parsed = _parse_datetime_safe(self.published_at)
        self.published_at = parsed or _utc_now()

    def to_record(self) -> Dict[str, Any]:
        """Row for the news table."""
        score = self.relevance_score if self.relevance_score is not None else DEFAULT_RELEVANCE_SCORE
        return {
            'headline': self.title,
            'original_title': self.title,
            'url': self.url,
            'source': self.source,
            'summary': self.summary,
            'perplexity_score': score,
            'timestamp': self.published_at.isoformat(),
            'matched_clusters': list(self.matched_clusters) or None,
            'is_competitor_covered': self.is_competitor_covered,
            'status': 'pending',
            'destinations': [],
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'title': self.title,
            'url': self.url,
            'source': self.source,
            'summary': self.summary,
            'relevance_score': self.relevance_score,
            'matched_clusters': list(self.matched_clusters),
            'is_competitor_covered': self.is_competitor_covered,
            'published_at': self.published_at.isoformat(),
            'is_placeholder': self.is_placeholder,
        }

    def __repr__(self):
        return f"CandidateArticle(title='{self.title[:50]}...', source='{self.source}', score={self.relevance_score})"


@dataclass
class PersistedArticle:
    """A news row already stored, as read back for backlog processing."""
    id: Any
    headline: str
    url: str
    summary: str = ""
    source: str = ""
    matched_clusters: Optional[List[str]] = None

    @property
    def text(self) -> str:
        """Headline and summary joined, as sent to the classifier."""
        return f"{self.headline}\n\n{self.summary or ''}".strip()

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'PersistedArticle':
        """Create from a news table row."""
        return cls(
            id=row.get('id'),
            headline=row.get('headline') or row.get('original_title') or '',
            url=row.get('url') or '',
            summary=row.get('summary') or '',
            source=row.get('source') or '',
            matched_clusters=row.get('matched_clusters'),
        )
