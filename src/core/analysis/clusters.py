#!/usr/bin/env python3
"""
Cluster classifier.

Matches news text against a snapshot of the keyword-cluster taxonomy, either
inline by keyword substring tests or through an upstream classification call.
"""

import logging
from typing import List, Dict, Optional, Sequence, Any

from ..models.analysis import ClusterDefinition, ClassificationResult, INLINE_CONFIDENCE
from ..extraction import StructuredExtractor
from .prompts import ClassificationPrompts

logger = logging.getLogger(__name__)


def merge_labels(*groups: Sequence[str]) -> List[str]:
    """Concatenate label lists, dropping repeats and keeping first occurrence order."""
    merged = []
    seen = set()
    for group in groups:
        for label in group:
            key = label.lower()
            if key not in seen:
                seen.add(key)
                merged.append(label)
    return merged


def _as_confidence(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class ClusterClassifier:
    """Classifies items against an immutable taxonomy snapshot."""

    def __init__(self, client=None, extractor: Optional[StructuredExtractor] = None,
                 model: Optional[str] = None):
        """
        Args:
            client: Upstream client with an async complete() method; only
                needed for classify()
            extractor: Structured extractor for the classifier response
            model: Model override for classification calls
        """
        self.client = client
        self.extractor = extractor or StructuredExtractor()
        self.model = model

    def classify_inline(self, title: str, summary: str,
                        clusters: Sequence[ClusterDefinition]) -> ClassificationResult:
        """Every cluster with a keyword found in the title or summary, in taxonomy order."""
        haystack = f"{title or ''}\n{summary or ''}".lower()
        matched = []

        for cluster in clusters:
            if any(keyword.lower() in haystack for keyword in cluster.keywords if keyword):
                matched.append(cluster.label)

        return ClassificationResult(
            matched_clusters=matched,
            confidence_score=INLINE_CONFIDENCE,
            rationale=None,
            method="inline",
        )

    def canonical_labels(self, labels: Any, clusters: Sequence[ClusterDefinition]) -> List[str]:
        """
        Map returned labels onto taxonomy labels.

        A label matches by its full 'primary: sub' form or by the bare sub
        theme, case-insensitively. Unknown labels are dropped.
        """
        if isinstance(labels, str):
            labels = [labels]
        if not isinstance(labels, (list, tuple)):
            return []

        by_label: Dict[str, str] = {}
        by_sub: Dict[str, str] = {}
        for cluster in clusters:
            by_label.setdefault(cluster.label.lower(), cluster.label)
            by_sub.setdefault(cluster.sub_theme.lower(), cluster.label)

        resolved = []
        for label in labels:
            if not isinstance(label, str):
                continue
            key = " ".join(label.split()).lower()
            canonical = by_label.get(key) or by_sub.get(key)
            if canonical is None and '>' in key:
                canonical = by_label.get(key.replace(' > ', ': ').replace('>', ': '))
            if canonical is None:
                logger.debug(f"Dropping unknown cluster label: {label!r}")
                continue
            resolved.append(canonical)

        return merge_labels(resolved)

    async def classify(self, text: str, clusters: Sequence[ClusterDefinition],
                       metadata: Optional[Dict[str, Any]] = None) -> ClassificationResult:
        """
        Classify text with an upstream call.

        Returns an inconclusive result when the response cannot be parsed.
        Upstream failures propagate so the item stays unclassified.
        """
        if self.client is None:
            raise RuntimeError("ClusterClassifier.classify requires an upstream client")

        prompt = ClassificationPrompts.cluster_prompt(text, clusters)
        completion = await self.client.complete(
            prompt,
            system_prompt=ClassificationPrompts.CLUSTER_SYSTEM_PROMPT,
            model=self.model,
            temperature=0.1,
            max_tokens=500,
            function_name="analyze_news_clusters",
            metadata=metadata,
        )

        report = self.extractor.extract_with_report(completion.content, single_object=True)
        parsed = report.records[0] if report.records and isinstance(report.records[0], dict) else None

        if parsed is None:
            reason = (
                f"Could not classify: no structured result in response "
                f"({report.text_length} chars, tried {', '.join(report.attempted) or 'nothing'})"
            )
            logger.warning(reason)
            return ClassificationResult.inconclusive(reason)

        matched = self.canonical_labels(parsed.get('matched_clusters'), clusters)
        rationale = parsed.get('rationale')

        return ClassificationResult(
            matched_clusters=matched,
            confidence_score=_as_confidence(parsed.get('confidence_score')),
            rationale=str(rationale) if rationale is not None else None,
            method="llm",
        )
