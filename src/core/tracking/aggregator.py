#!/usr/bin/env python3
"""
Keyword tracking aggregator.

Increments the article count of every tracked keyword matched by an
analyzed item, once per entry, through the store's single-row atomic
increment. No counter state is held in memory.
"""

import logging
from datetime import datetime, timezone
from typing import List, Sequence, Any

from ..database.store import NewsStore, call_store
from ..exceptions import StorageFailure
from ..models.keyword import TrackedKeywordEntry
from .matcher import KeywordMatcher

logger = logging.getLogger(__name__)


class KeywordTrackingAggregator:
    """Applies matches for one analyzed item to the tracked keyword counters."""

    def __init__(self, store: NewsStore, matcher: KeywordMatcher = None, store_timeout: float = 15.0):
        self.store = store
        self.matcher = matcher or KeywordMatcher()
        self.store_timeout = store_timeout

    async def apply(self, item_id: Any, extracted: Sequence[str],
                    tracked: Sequence[TrackedKeywordEntry]) -> List[TrackedKeywordEntry]:
        """
        Increment each tracked entry matched by the extracted keywords.

        Every matched entry is attempted even if an earlier increment fails;
        failures are raised together afterwards.

        Returns:
            The matched entries

        Raises:
            StorageFailure: One or more increments failed
        """
        matched = self.matcher.match(extracted, tracked)
        if not matched:
            return matched

        matched_at = datetime.now(timezone.utc)
        failures = []
        for entry in matched:
            try:
                await call_store(self.store_timeout, self.store.increment_keyword_count, entry.id, matched_at)
            except StorageFailure as e:
                logger.error(f"Failed to increment tracked keyword '{entry.keyword}' for item {item_id}: {e}")
                failures.append(entry.keyword)

        logger.info(f"Item {item_id} matched {len(matched)} tracked keyword(s)")

        if failures:
            raise StorageFailure(
                'increment_keyword_count', 'keyword_tracking',
                RuntimeError(f"{len(failures)} increment(s) failed: {', '.join(failures)}")
            )
        return matched
