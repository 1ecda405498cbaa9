#!/usr/bin/env python3
"""
Deduplication gate.

Checks each candidate's url against the store and against the urls already
handled in this run before allowing an insert. The check-then-insert is not
transactional; the url unique constraint in the store is the backstop and
its rejection is counted as a duplicate.
"""

import logging
from typing import Set

from ..database.store import NewsStore, call_store
from ..exceptions import DuplicateConflict, StorageFailure
from ..models.article import CandidateArticle

logger = logging.getLogger(__name__)


class DeduplicationGate:
    """Allows at most one insert per distinct url within a run."""

    def __init__(self, store: NewsStore, store_timeout: float = 15.0):
        self.store = store
        self.store_timeout = store_timeout
        self._seen: Set[str] = set()

    def reset(self) -> None:
        """Forget the urls seen so far (start of a new run)."""
        self._seen.clear()

    async def is_duplicate(self, url: str) -> bool:
        """True when the url was handled earlier in this run or is already stored."""
        if url in self._seen:
            return True

        try:
            return bool(await call_store(self.store_timeout, self.store.url_exists, url))
        except StorageFailure as e:
            logger.warning(f"Existence check failed for {url}, relying on unique constraint: {e}")
            return False

    async def admit(self, article: CandidateArticle) -> bool:
        """
        Insert the article unless it is a duplicate.

        Returns:
            True if a row was inserted, False if it was skipped as a duplicate

        Raises:
            StorageFailure: The insert failed for any reason other than a duplicate
        """
        url = article.url
        if await self.is_duplicate(url):
            logger.debug(f"Skipping duplicate url: {url}")
            self._seen.add(url)
            return False

        try:
            await call_store(self.store_timeout, self.store.insert_article, article.to_record())
        except DuplicateConflict:
            logger.info(f"Unique constraint rejected {url}, counted as duplicate")
            self._seen.add(url)
            return False

        self._seen.add(url)
        logger.debug(f"Inserted article: {article.title[:60]}")
        return True
