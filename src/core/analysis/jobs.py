#!/usr/bin/env python3
"""
Backlog jobs for stored news items.

ClusterAnalysisJob classifies rows that were never classified.
KeywordTrackingJob extracts keywords from rows not yet analyzed and updates
the tracked keyword counters. Both run their items through the
BatchOrchestrator and return a JobReport.
"""

import logging
from typing import List, Optional, Tuple

from ..database.store import NewsStore, call_store
from ..exceptions import ConfigurationError
from ..models.article import PersistedArticle
from ..models.analysis import ClusterDefinition
from ..models.keyword import TrackedKeywordEntry
from ..models.metrics import JobReport
from ..orchestration import BatchOrchestrator
from ..tracking.aggregator import KeywordTrackingAggregator
from .clusters import ClusterClassifier
from .keywords import KeywordExtractor

logger = logging.getLogger(__name__)


class ClusterAnalysisJob:
    """Classifies unclassified stored items against the current taxonomy."""

    def __init__(self, store: NewsStore, classifier: ClusterClassifier,
                 orchestrator: Optional[BatchOrchestrator] = None, store_timeout: float = 15.0):
        self.store = store
        self.classifier = classifier
        self.orchestrator = orchestrator or BatchOrchestrator()
        self.store_timeout = store_timeout

    async def load_taxonomy(self) -> Tuple[ClusterDefinition, ...]:
        """
        Immutable taxonomy snapshot for this run.

        Raises:
            ConfigurationError: No clusters are defined
        """
        rows = await call_store(self.store_timeout, self.store.get_clusters)
        clusters = tuple(
            c for c in (ClusterDefinition.from_row(row) for row in rows or [])
            if c.primary_theme and c.sub_theme
        )
        if not clusters:
            raise ConfigurationError('keyword_clusters', "no keyword clusters defined")
        return clusters

    async def run(self, max_items: int = 50) -> JobReport:
        clusters = await self.load_taxonomy()
        rows = await call_store(self.store_timeout, self.store.get_unclassified_articles, max_items)
        items = [PersistedArticle.from_row(row) for row in rows or []]

        logger.info(f"Cluster analysis: {len(items)} unclassified item(s), {len(clusters)} cluster(s)")

        report = JobReport(job="cluster_analysis")

        async def handle(item: PersistedArticle):
            result = await self.classifier.classify(item.text, clusters, metadata={'news_id': item.id})
            await call_store(self.store_timeout, self.store.save_classification, item.id, result.to_update())
            report.increment('inconclusive' if result.is_inconclusive else 'classified')
            return result.matched_clusters

        report.tally = await self.orchestrator.run(items, handle, key=lambda item: item.id)
        return report


class KeywordTrackingJob:
    """Counts tracked keyword mentions in stored items not yet analyzed."""

    def __init__(self, store: NewsStore, keyword_extractor: KeywordExtractor,
                 aggregator: KeywordTrackingAggregator,
                 orchestrator: Optional[BatchOrchestrator] = None, store_timeout: float = 15.0):
        self.store = store
        self.keyword_extractor = keyword_extractor
        self.aggregator = aggregator
        self.orchestrator = orchestrator or BatchOrchestrator()
        self.store_timeout = store_timeout

    async def load_tracked(self) -> List[TrackedKeywordEntry]:
        rows = await call_store(self.store_timeout, self.store.get_active_tracked_keywords)
        entries = [TrackedKeywordEntry.from_row(row) for row in rows or []]
        return [entry for entry in entries if entry.keyword and entry.is_active]

    async def run(self, max_items: int = 50) -> JobReport:
        tracked = tuple(await self.load_tracked())
        report = JobReport(job="keyword_tracking")

        if not tracked:
            logger.warning("Keyword tracking: no active tracked keywords, nothing to do")
            return report

        rows = await call_store(self.store_timeout, self.store.get_unanalyzed_articles, max_items)
        items = [PersistedArticle.from_row(row) for row in rows or []]

        logger.info(f"Keyword tracking: {len(items)} unanalyzed item(s), {len(tracked)} tracked keyword(s)")

        async def handle(item: PersistedArticle):
            extracted = await self.keyword_extractor.extract(item.text, metadata={'news_id': item.id})

            # Marked before counting so a retried item is never counted twice
            await call_store(self.store_timeout, self.store.mark_keywords_analyzed, item.id, extracted)

            matched = await self.aggregator.apply(item.id, extracted, tracked)
            report.increment('analyzed')
            report.increment('increments', len(matched))
            return [entry.keyword for entry in matched]

        report.tally = await self.orchestrator.run(items, handle, key=lambda item: item.id)
        return report
