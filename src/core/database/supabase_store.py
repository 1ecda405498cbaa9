#!/usr/bin/env python3
"""
Supabase REST API news store.

Uses the Supabase REST API over HTTPS, for networks that block direct
PostgreSQL ports.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

from supabase import create_client, Client

from ..exceptions import DuplicateConflict, StorageFailure
from .store import (
    NewsStore, NEWS_TABLE, CLUSTERS_TABLE, TRACKING_TABLE, PROMPTS_TABLE, USAGE_TABLE
)

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = '23505'


def _is_unique_violation(error: Exception) -> bool:
    code = getattr(error, 'code', None)
    return code == UNIQUE_VIOLATION or UNIQUE_VIOLATION in str(error)


class SupabaseNewsStore(NewsStore):
    """News store backed by the Supabase REST API."""

    def __init__(self, supabase_url: str, supabase_key: str, client: Optional[Client] = None):
        """
        Args:
            supabase_url: Project url
            supabase_key: Service key (preferred) or anon key
            client: Pre-built client, mainly for tests
        """
        self.client = client or create_client(supabase_url, supabase_key)
        logger.info("Supabase news store initialized")

    # Articles

    def url_exists(self, url: str) -> bool:
        try:
            result = (self.client.table(NEWS_TABLE)
                      .select('id')
                      .eq('url', url)
                      .limit(1)
                      .execute())
            return bool(result.data)
        except Exception as e:
            logger.error(f"Failed to check url via API: {e}")
            raise StorageFailure('url_exists', NEWS_TABLE, e)

    def insert_article(self, record: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = (self.client.table(NEWS_TABLE)
                      .insert(record)
                      .execute())
            return result.data[0] if result.data else record
        except Exception as e:
            if _is_unique_violation(e):
                raise DuplicateConflict(NEWS_TABLE, record.get('url', ''))
            logger.error(f"Failed to insert article via API: {e}")
            raise StorageFailure('insert_article', NEWS_TABLE, e)

    def get_unclassified_articles(self, limit: int) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table(NEWS_TABLE)
                      .select('id, headline, original_title, url, summary, source, matched_clusters')
                      .is_('matched_clusters', 'null')
                      .order('timestamp', desc=True)
                      .limit(limit)
                      .execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to get unclassified articles via API: {e}")
            raise StorageFailure('get_unclassified_articles', NEWS_TABLE, e)

    def save_classification(self, article_id: Any, update: Dict[str, Any]) -> None:
        try:
            (self.client.table(NEWS_TABLE)
             .update(update)
             .eq('id', article_id)
             .execute())
        except Exception as e:
            logger.error(f"Failed to save classification for {article_id} via API: {e}")
            raise StorageFailure('save_classification', NEWS_TABLE, e)

    def get_unanalyzed_articles(self, limit: int) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table(NEWS_TABLE)
                      .select('id, headline, original_title, url, summary, source, matched_clusters')
                      .is_('keywords_analyzed_at', 'null')
                      .order('timestamp', desc=True)
                      .limit(limit)
                      .execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to get unanalyzed articles via API: {e}")
            raise StorageFailure('get_unanalyzed_articles', NEWS_TABLE, e)

    def mark_keywords_analyzed(self, article_id: Any, keywords: List[str]) -> None:
        try:
            (self.client.table(NEWS_TABLE)
             .update({
                 'extracted_keywords': list(keywords),
                 'keywords_analyzed_at': datetime.now(timezone.utc).isoformat(),
             })
             .eq('id', article_id)
             .execute())
        except Exception as e:
            logger.error(f"Failed to mark {article_id} analyzed via API: {e}")
            raise StorageFailure('mark_keywords_analyzed', NEWS_TABLE, e)

    # Taxonomy and tracked keywords

    def get_clusters(self) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table(CLUSTERS_TABLE)
                      .select('primary_theme, sub_theme, keywords')
                      .order('primary_theme')
                      .order('sub_theme')
                      .execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to get keyword clusters via API: {e}")
            raise StorageFailure('get_clusters', CLUSTERS_TABLE, e)

    def get_active_tracked_keywords(self) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table(TRACKING_TABLE)
                      .select('id, keyword, status, article_count, last_matched_date')
                      .eq('status', 'active')
                      .execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to get tracked keywords via API: {e}")
            raise StorageFailure('get_active_tracked_keywords', TRACKING_TABLE, e)

    def increment_keyword_count(self, keyword_id: Any, matched_at: datetime) -> None:
        # Server-side function keeps the increment a single-row atomic update
        try:
            (self.client.rpc('increment_keyword_count', {
                'keyword_id': keyword_id,
                'matched_at': matched_at.isoformat(),
            }).execute())
        except Exception as e:
            logger.error(f"Failed to increment tracked keyword {keyword_id} via API: {e}")
            raise StorageFailure('increment_keyword_count', TRACKING_TABLE, e)

    # Prompts

    def get_prompt(self, prompt_id: Optional[Any] = None) -> Optional[Dict[str, Any]]:
        try:
            query = self.client.table(PROMPTS_TABLE).select('id, prompt_text, model, include_clusters')
            if prompt_id is not None:
                query = query.eq('id', prompt_id)
            else:
                query = (query.eq('function_name', 'news_search')
                         .eq('is_active', True)
                         .order('updated_at', desc=True))
            result = query.limit(1).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Failed to get prompt via API: {e}")
            raise StorageFailure('get_prompt', PROMPTS_TABLE, e)

    # Usage telemetry

    def append_usage_record(self, record: Dict[str, Any]) -> None:
        try:
            (self.client.table(USAGE_TABLE)
             .insert(record)
             .execute())
        except Exception as e:
            logger.error(f"Failed to append usage record via API: {e}")
            raise StorageFailure('append_usage_record', USAGE_TABLE, e)

    def get_usage_summary(self, since: datetime) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table(USAGE_TABLE)
                      .select('function_name, model, total_tokens, estimated_cost, status, created_at')
                      .gte('created_at', since.isoformat())
                      .order('created_at', desc=True)
                      .execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to get usage records via API: {e}")
            raise StorageFailure('get_usage_summary', USAGE_TABLE, e)
