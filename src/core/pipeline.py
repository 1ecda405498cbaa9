#!/usr/bin/env python3
"""
News ingestion pipeline.

For each requested keyword: build the search prompt, call the provider,
extract and normalize candidate articles, validate, filter by relevance,
deduplicate, optionally classify inline, and insert. Per-item and per-call
problems are counted in the RunSummary; only configuration errors abort.
"""

import time
import logging
from typing import List, Optional, Sequence

from .database.store import NewsStore, call_store
from .deduplication import DeduplicationGate
from .extraction import StructuredExtractor
from .filtering import RelevanceFilter
from .normalizer import ArticleNormalizer, validate_candidate
from .analysis.clusters import ClusterClassifier, merge_labels
from .prompts import SearchPrompt, SEARCH_SYSTEM_PROMPT
from .llm_logger import estimate_cost
from .models.article import CandidateArticle
from .models.analysis import ClusterDefinition
from .models.metrics import RunSummary
from .exceptions import (
    ConfigurationError, UpstreamUnavailable, ValidationRejected, StorageFailure
)

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "No structured articles found for '{keyword}'"


def placeholder_article(keyword: str, raw_text: str) -> CandidateArticle:
    """Diagnostic record standing in for a response nothing could be extracted from."""
    return CandidateArticle(
        title=PLACEHOLDER_TITLE.format(keyword=keyword),
        url="",
        source="Perplexity",
        summary=(raw_text or "")[:500],
        relevance_score=None,
        is_placeholder=True,
    )


class IngestionPipeline:
    """Imports candidate articles discovered through the search provider."""

    def __init__(self,
                 client,
                 store: NewsStore,
                 min_score: float = 0.0,
                 limit: int = 0,
                 inline_clusters: bool = True,
                 inline_max_clusters: int = 50,
                 store_timeout: float = 15.0,
                 extractor: Optional[StructuredExtractor] = None,
                 normalizer: Optional[ArticleNormalizer] = None,
                 classifier: Optional[ClusterClassifier] = None):
        """
        Args:
            client: Search client with an async complete() method
            store: Persistence store
            min_score: Relevance threshold, 0 disables
            limit: Max candidates kept per call, 0 disables
            inline_clusters: Classify candidates by keyword substring before insert
            inline_max_clusters: Skip inline classification for larger taxonomies
            store_timeout: Timeout for each store call
        """
        self.client = client
        self.store = store
        self.store_timeout = store_timeout
        self.extractor = extractor or StructuredExtractor()
        self.normalizer = normalizer or ArticleNormalizer()
        self.relevance_filter = RelevanceFilter(min_score=min_score, limit=limit)
        self.classifier = classifier or ClusterClassifier(extractor=self.extractor)
        self.inline_clusters = inline_clusters
        self.inline_max_clusters = inline_max_clusters
        self.gate = DeduplicationGate(store, store_timeout=store_timeout)

    async def load_prompt(self, prompt_id=None) -> SearchPrompt:
        """
        Stored prompt by id, the active stored prompt, or the default.

        Raises:
            ConfigurationError: A prompt id was given but no such prompt exists
        """
        try:
            row = await call_store(self.store_timeout, self.store.get_prompt, prompt_id)
        except StorageFailure as e:
            if prompt_id is not None:
                raise ConfigurationError('prompt_id', f"could not load prompt {prompt_id}: {e}")
            logger.warning(f"Could not load active prompt, using default: {e}")
            return SearchPrompt()

        if row is None:
            if prompt_id is not None:
                raise ConfigurationError('prompt_id', f"prompt {prompt_id} not found")
            return SearchPrompt()

        prompt = SearchPrompt.from_row(row)
        logger.info(f"Using stored prompt {prompt.prompt_id} (model: {prompt.model or 'default'})")
        return prompt

    async def load_clusters(self) -> List[ClusterDefinition]:
        """Snapshot of the taxonomy; empty if it cannot be read."""
        try:
            rows = await call_store(self.store_timeout, self.store.get_clusters)
        except StorageFailure as e:
            logger.warning(f"Could not load keyword clusters: {e}")
            return []
        return [c for c in (ClusterDefinition.from_row(row) for row in rows or []) if c.primary_theme and c.sub_theme]

    async def run(self,
                  keywords: Sequence[str],
                  prompt: Optional[SearchPrompt] = None,
                  clusters: Optional[Sequence[ClusterDefinition]] = None,
                  prompt_id=None) -> RunSummary:
        """
        Run one ingestion pass over the keywords.

        Args:
            keywords: Search keywords, one upstream call each
            prompt: Prompt to use; loaded from the store when None
            clusters: Taxonomy snapshot; loaded from the store when None
            prompt_id: Stored prompt to load when prompt is None

        Returns:
            RunSummary of the run

        Raises:
            ConfigurationError: No keywords, or the requested prompt is missing
        """
        keywords = [k.strip() for k in keywords if k and k.strip()]
        if not keywords:
            raise ConfigurationError('keywords', "at least one keyword is required")

        summary = RunSummary(keywords=list(keywords))
        start_time = time.time()

        if prompt is None:
            prompt = await self.load_prompt(prompt_id)
        if clusters is None:
            clusters = await self.load_clusters()
        clusters = tuple(clusters)

        self.gate.reset()
        logger.info(f"Starting ingestion run {summary.run_id} for {len(keywords)} keyword(s), {len(clusters)} cluster(s)")

        for keyword in keywords:
            await self._ingest_keyword(keyword, prompt, clusters, summary)

        summary.processing_time = time.time() - start_time
        logger.info(
            f"Run {summary.run_id} finished: {summary.inserted} inserted, "
            f"{summary.skipped_duplicate} duplicate, {summary.skipped_low_score} low score, "
            f"{summary.invalid} invalid, {summary.error_count} error(s)"
        )
        return summary

    async def _ingest_keyword(self, keyword: str, prompt: SearchPrompt,
                              clusters: Sequence[ClusterDefinition], summary: RunSummary) -> None:
        text = prompt.render([keyword], clusters)

        try:
            completion = await self.client.complete(
                text,
                system_prompt=SEARCH_SYSTEM_PROMPT,
                model=prompt.model,
                temperature=prompt.temperature,
                max_tokens=prompt.max_tokens,
                recency_filter=prompt.recency_filter,
                domain_filter=prompt.domain_filter,
                function_name="fetch_perplexity_news",
                metadata={'keyword': keyword, 'run_id': summary.run_id},
            )
        except UpstreamUnavailable as e:
            summary.add_error(f"{keyword}: {e.message}")
            return

        summary.total_tokens += completion.total_tokens
        summary.estimated_cost += estimate_cost(completion.model, completion.total_tokens)

        records = self.extractor.extract(completion.content)
        if not records:
            summary.empty_responses += 1
            summary.placeholders.append(placeholder_article(keyword, completion.content).to_dict())
            logger.warning(f"No articles extracted for '{keyword}'; placeholder recorded, not persisted")
            return

        candidates = []
        for article in self.normalizer.normalize_all(records):
            summary.total_candidates += 1
            try:
                validate_candidate(article)
            except ValidationRejected as e:
                summary.invalid += 1
                logger.debug(f"Rejected candidate for '{keyword}': {e.message}")
                continue
            candidates.append(article)

        outcome = self.relevance_filter.apply(candidates)
        summary.skipped_low_score += outcome.below_threshold
        summary.truncated += outcome.truncated

        use_inline = self.inline_clusters and clusters and len(clusters) <= self.inline_max_clusters

        for article in outcome.kept:
            if use_inline:
                inline = self.classifier.classify_inline(article.title, article.summary, clusters)
                article.matched_clusters = merge_labels(article.matched_clusters, inline.matched_clusters)

            try:
                inserted = await self.gate.admit(article)
            except StorageFailure as e:
                summary.add_error(f"{article.url}: {e.message}")
                continue

            if inserted:
                summary.inserted += 1
            else:
                summary.skipped_duplicate += 1

