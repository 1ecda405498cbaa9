#!/usr/bin/env python3
"""
Article normalizer.

Maps loosely shaped upstream records onto CandidateArticle through a fixed
alias table. Normalization is total: any input yields a candidate, and
validity is decided afterwards by validate_candidate.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from .models.article import CandidateArticle
from .exceptions import ValidationRejected

logger = logging.getLogger(__name__)

UNKNOWN_SOURCE = "Unknown Source"

# Canonical field -> accepted record keys, first present wins
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    'title': ('title', 'headline'),
    'url': ('url', 'link'),
    'summary': ('summary', 'description'),
    'source': ('source',),
    'relevance_score': ('relevance_score', 'perplexity_score', 'score'),
    'matched_clusters': ('matched_clusters', 'clusters', 'cluster'),
    'is_competitor_covered': ('is_competitor_covered',),
    'published_at': ('published_at', 'timestamp', 'date'),
}


def _first_present(record: Mapping[str, Any], aliases: Tuple[str, ...]) -> Any:
    for key in aliases:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_score(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_clusters(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return []


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', '1')
    return bool(value)


def source_from_url(url: str) -> str:
    """Host of the url without a leading 'www.', or 'Unknown Source'."""
    if not url:
        return UNKNOWN_SOURCE
    try:
        host = urlparse(url).hostname
    except ValueError:
        return UNKNOWN_SOURCE
    if not host:
        return UNKNOWN_SOURCE
    if host.startswith('www.'):
        host = host[4:]
    return host or UNKNOWN_SOURCE


class ArticleNormalizer:
    """Maps arbitrary records onto the canonical candidate shape."""

    def normalize(self, record: Any) -> CandidateArticle:
        """Normalize one record. Non-mapping records are treated as empty."""
        if not isinstance(record, Mapping):
            record = {}

        url = _as_text(_first_present(record, FIELD_ALIASES['url']))
        source = _as_text(_first_present(record, FIELD_ALIASES['source'])) or source_from_url(url)

        return CandidateArticle(
            title=_as_text(_first_present(record, FIELD_ALIASES['title'])),
            url=url,
            source=source,
            summary=_as_text(_first_present(record, FIELD_ALIASES['summary'])),
            relevance_score=_as_score(_first_present(record, FIELD_ALIASES['relevance_score'])),
            matched_clusters=_as_clusters(_first_present(record, FIELD_ALIASES['matched_clusters'])),
            is_competitor_covered=_as_bool(_first_present(record, FIELD_ALIASES['is_competitor_covered'])),
            published_at=_first_present(record, FIELD_ALIASES['published_at']),
        )

    def normalize_all(self, records: List[Any]) -> List[CandidateArticle]:
        return [self.normalize(record) for record in records]


def validate_candidate(article: CandidateArticle) -> None:
    """
    Reject a candidate that cannot be persisted.

    Raises:
        ValidationRejected: title missing or url not an absolute http(s) url
    """
    if not article.title:
        raise ValidationRejected('title', article.title)

    try:
        parsed = urlparse(article.url)
    except ValueError:
        raise ValidationRejected('url', article.url)

    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValidationRejected('url', article.url)
