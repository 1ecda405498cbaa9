#!/usr/bin/env python3
"""
Classification data models.

Contains the keyword-cluster taxonomy entries and classification results.
"""

from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field

# Confidence reported by substring classification, which computes none
INLINE_CONFIDENCE = 0.5


@dataclass(frozen=True)
class ClusterDefinition:
    """One primary-theme/sub-theme grouping with its keywords."""
    primary_theme: str
    sub_theme: str
    keywords: Tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return f"{self.primary_theme}: {self.sub_theme}"

    def describe(self) -> str:
        """Taxonomy line used inside classification prompts."""
        keywords = ', '.join(self.keywords) if self.keywords else 'No keywords'
        return f"{self.label} ({keywords})"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'ClusterDefinition':
        """Create from a keyword_clusters table row."""
        keywords = row.get('keywords') or []
        return cls(
            primary_theme=(row.get('primary_theme') or '').strip(),
            sub_theme=(row.get('sub_theme') or '').strip(),
            keywords=tuple(k.strip() for k in keywords if isinstance(k, str) and k.strip()),
        )


@dataclass
class ClassificationResult:
    """Outcome of classifying one item against the taxonomy."""
    matched_clusters: List[str]
    confidence_score: float
    rationale: Optional[str] = None
    method: str = "llm"  # inline, llm or inconclusive
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        self.confidence_score = max(0.0, min(1.0, self.confidence_score))

    @property
    def is_inconclusive(self) -> bool:
        return self.method == "inconclusive"

    @classmethod
    def inconclusive(cls, reason: str) -> 'ClassificationResult':
        """Result persisted when no structured answer could be recovered."""
        return cls(matched_clusters=[], confidence_score=0.0, rationale=reason, method="inconclusive")

    def to_update(self) -> Dict[str, Any]:
        """Column values written onto the news row."""
        return {
            'matched_clusters': list(self.matched_clusters),
            'cluster_confidence_score': self.confidence_score,
            'cluster_analysis_rationale': self.rationale,
            'cluster_analysis_timestamp': self.analyzed_at.isoformat(),
        }
