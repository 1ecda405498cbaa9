#!/usr/bin/env python3
"""
News store interface.

Defines the persistence operations the pipeline depends on. Implementations
are blocking; async callers go through call_store so every store access
carries a timeout.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Dict, Any, Optional, Callable

from ..exceptions import StorageFailure

logger = logging.getLogger(__name__)

NEWS_TABLE = 'news'
CLUSTERS_TABLE = 'keyword_clusters'
TRACKING_TABLE = 'keyword_tracking'
PROMPTS_TABLE = 'llm_prompts'
USAGE_TABLE = 'llm_usage_logs'


class NewsStore(ABC):
    """Persistence collaborator for articles, taxonomy, tracked keywords and usage logs."""

    # Articles

    @abstractmethod
    def url_exists(self, url: str) -> bool:
        """Check whether a news row with this url is already stored."""
        pass

    @abstractmethod
    def insert_article(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a news row.

        Raises:
            DuplicateConflict: The url unique constraint rejected the row
            StorageFailure: Any other persistence error
        """
        pass

    @abstractmethod
    def get_unclassified_articles(self, limit: int) -> List[Dict[str, Any]]:
        """Rows that have never been classified (matched_clusters is null)."""
        pass

    @abstractmethod
    def save_classification(self, article_id: Any, update: Dict[str, Any]) -> None:
        """Overwrite the classification columns of one row."""
        pass

    @abstractmethod
    def get_unanalyzed_articles(self, limit: int) -> List[Dict[str, Any]]:
        """Rows whose keywords have not been analyzed yet."""
        pass

    @abstractmethod
    def mark_keywords_analyzed(self, article_id: Any, keywords: List[str]) -> None:
        """Store the extracted keywords and stamp the row as analyzed."""
        pass

    # Taxonomy and tracked keywords

    @abstractmethod
    def get_clusters(self) -> List[Dict[str, Any]]:
        """All keyword cluster rows."""
        pass

    @abstractmethod
    def get_active_tracked_keywords(self) -> List[Dict[str, Any]]:
        """Tracked keyword rows with status 'active'."""
        pass

    @abstractmethod
    def increment_keyword_count(self, keyword_id: Any, matched_at: datetime) -> None:
        """Atomically add one to a tracked keyword's article_count."""
        pass

    # Prompts

    @abstractmethod
    def get_prompt(self, prompt_id: Optional[Any] = None) -> Optional[Dict[str, Any]]:
        """A stored news search prompt by id, or the active one when id is None."""
        pass

    # Usage telemetry

    @abstractmethod
    def append_usage_record(self, record: Dict[str, Any]) -> None:
        """Append one row to the usage log."""
        pass

    @abstractmethod
    def get_usage_summary(self, since: datetime) -> List[Dict[str, Any]]:
        """Usage rows created since the given time."""
        pass

    def close(self) -> None:
        """Release any held connection."""
        pass


async def call_store(timeout: float, operation: Callable[..., Any], *args, **kwargs) -> Any:
    """
    Run a blocking store operation in a worker thread with a timeout.

    Exceptions raised by the store pass through unchanged; a timeout becomes
    a StorageFailure for the item being processed.
    """
    name = getattr(operation, '__name__', 'store_call')
    try:
        return await asyncio.wait_for(asyncio.to_thread(operation, *args, **kwargs), timeout)
    except asyncio.TimeoutError:
        logger.error(f"Store operation {name} timed out after {timeout}s")
        raise StorageFailure(name, 'unknown', TimeoutError(f"timed out after {timeout}s"))
