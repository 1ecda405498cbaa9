#!/usr/bin/env python3
"""
Direct PostgreSQL news store.

Handles database connections with lifecycle management and error recovery,
and implements the news store with plain SQL.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Json

from ..exceptions import DuplicateConflict, StorageFailure
from .store import (
    NewsStore, NEWS_TABLE, CLUSTERS_TABLE, TRACKING_TABLE, PROMPTS_TABLE, USAGE_TABLE
)

logger = logging.getLogger(__name__)

NEWS_COLUMNS = (
    'headline', 'original_title', 'url', 'source', 'summary', 'perplexity_score', 'timestamp',
    'matched_clusters', 'is_competitor_covered', 'status', 'destinations',
)


class ConnectionManager:
    """Manages a database connection with error handling and recovery."""

    def __init__(self, connection_string: str, connect_timeout: int = 30):
        self.connection_string = connection_string
        self.connect_timeout = connect_timeout
        self.connection: Optional[psycopg.Connection] = None
        self._connect()

    def _connect(self) -> None:
        try:
            self.connection = psycopg.connect(
                self.connection_string,
                row_factory=dict_row,
                autocommit=True,
                connect_timeout=self.connect_timeout
            )
            logger.debug("Database connection established")
        except psycopg.Error as e:
            raise StorageFailure('connect', 'postgres', e)

    def ensure_connection(self) -> None:
        """Ensure database connection is active, reconnect if needed."""
        try:
            if not self.connection or self.connection.closed:
                self._connect()
            else:
                with self.connection.cursor() as cursor:
                    cursor.execute("SELECT 1")
        except psycopg.Error:
            logger.warning("Connection test failed, reconnecting...")
            self._connect()

    @contextmanager
    def get_cursor(self):
        """
        Get database cursor as context manager.

        Yields:
            Database cursor
        """
        self.ensure_connection()
        with self.connection.cursor() as cursor:
            yield cursor

    def close(self) -> None:
        if self.connection and not self.connection.closed:
            self.connection.close()
            logger.debug("Database connection closed")


class PostgresNewsStore(NewsStore):
    """News store over a direct PostgreSQL connection."""

    def __init__(self, connection_manager: ConnectionManager):
        self.connection_manager = connection_manager

    @classmethod
    def connect(cls, connection_string: str, connect_timeout: int = 30) -> 'PostgresNewsStore':
        return cls(ConnectionManager(connection_string, connect_timeout))

    def _fetch_all(self, operation: str, table: str, query: str, params=()) -> List[Dict[str, Any]]:
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(query, params)
                return [dict(row) for row in cursor.fetchall()]
        except psycopg.Error as e:
            logger.error(f"Failed to {operation}: {e}")
            raise StorageFailure(operation, table, e)

    def _execute(self, operation: str, table: str, query: str, params=()) -> None:
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(query, params)
        except psycopg.Error as e:
            logger.error(f"Failed to {operation}: {e}")
            raise StorageFailure(operation, table, e)

    # Articles

    def url_exists(self, url: str) -> bool:
        rows = self._fetch_all('url_exists', NEWS_TABLE,
                               "SELECT 1 AS found FROM news WHERE url = %s LIMIT 1", (url,))
        return bool(rows)

    def insert_article(self, record: Dict[str, Any]) -> Dict[str, Any]:
        values = [record.get(column) for column in NEWS_COLUMNS]
        placeholders = ', '.join(['%s'] * len(NEWS_COLUMNS))
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(
                    f"INSERT INTO news ({', '.join(NEWS_COLUMNS)}) VALUES ({placeholders}) RETURNING id",
                    values
                )
                row = cursor.fetchone()
                return {**record, 'id': row['id'] if row else None}
        except psycopg.errors.UniqueViolation:
            raise DuplicateConflict(NEWS_TABLE, record.get('url', ''))
        except psycopg.Error as e:
            logger.error(f"Failed to insert article: {e}")
            raise StorageFailure('insert_article', NEWS_TABLE, e)

    def get_unclassified_articles(self, limit: int) -> List[Dict[str, Any]]:
        return self._fetch_all('get_unclassified_articles', NEWS_TABLE, """
            SELECT id, headline, original_title, url, summary, source, matched_clusters
            FROM news
            WHERE matched_clusters IS NULL
            ORDER BY timestamp DESC NULLS LAST
            LIMIT %s
        """, (limit,))

    def save_classification(self, article_id: Any, update: Dict[str, Any]) -> None:
        self._execute('save_classification', NEWS_TABLE, """
            UPDATE news
            SET matched_clusters = %s,
                cluster_confidence_score = %s,
                cluster_analysis_rationale = %s,
                cluster_analysis_timestamp = %s
            WHERE id = %s
        """, (
            update.get('matched_clusters'),
            update.get('cluster_confidence_score'),
            update.get('cluster_analysis_rationale'),
            update.get('cluster_analysis_timestamp'),
            article_id,
        ))

    def get_unanalyzed_articles(self, limit: int) -> List[Dict[str, Any]]:
        return self._fetch_all('get_unanalyzed_articles', NEWS_TABLE, """
            SELECT id, headline, original_title, url, summary, source, matched_clusters
            FROM news
            WHERE keywords_analyzed_at IS NULL
            ORDER BY timestamp DESC NULLS LAST
            LIMIT %s
        """, (limit,))

    def mark_keywords_analyzed(self, article_id: Any, keywords: List[str]) -> None:
        self._execute('mark_keywords_analyzed', NEWS_TABLE, """
            UPDATE news
            SET extracted_keywords = %s, keywords_analyzed_at = %s
            WHERE id = %s
        """, (list(keywords), datetime.now(timezone.utc), article_id))

    # Taxonomy and tracked keywords

    def get_clusters(self) -> List[Dict[str, Any]]:
        return self._fetch_all('get_clusters', CLUSTERS_TABLE, """
            SELECT primary_theme, sub_theme, keywords
            FROM keyword_clusters
            ORDER BY primary_theme, sub_theme
        """)

    def get_active_tracked_keywords(self) -> List[Dict[str, Any]]:
        return self._fetch_all('get_active_tracked_keywords', TRACKING_TABLE, """
            SELECT id, keyword, status, article_count, last_matched_date
            FROM keyword_tracking
            WHERE status = 'active'
        """)

    def increment_keyword_count(self, keyword_id: Any, matched_at: datetime) -> None:
        self._execute('increment_keyword_count', TRACKING_TABLE, """
            UPDATE keyword_tracking
            SET article_count = article_count + 1,
                last_matched_date = %s
            WHERE id = %s
        """, (matched_at, keyword_id))

    # Prompts

    def get_prompt(self, prompt_id: Optional[Any] = None) -> Optional[Dict[str, Any]]:
        if prompt_id is not None:
            rows = self._fetch_all('get_prompt', PROMPTS_TABLE, """
                SELECT id, prompt_text, model, include_clusters
                FROM llm_prompts
                WHERE id = %s
            """, (prompt_id,))
        else:
            rows = self._fetch_all('get_prompt', PROMPTS_TABLE, """
                SELECT id, prompt_text, model, include_clusters
                FROM llm_prompts
                WHERE function_name = 'news_search' AND is_active
                ORDER BY updated_at DESC
                LIMIT 1
            """)
        return rows[0] if rows else None

    # Usage telemetry

    def append_usage_record(self, record: Dict[str, Any]) -> None:
        self._execute('append_usage_record', USAGE_TABLE, """
            INSERT INTO llm_usage_logs (
                function_name, model, prompt_tokens, completion_tokens, total_tokens,
                estimated_cost, duration_ms, status, error_message, metadata, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """, (
            record['function_name'],
            record['model'],
            record['prompt_tokens'],
            record['completion_tokens'],
            record['total_tokens'],
            record['estimated_cost'],
            record['duration_ms'],
            record['status'],
            record.get('error_message'),
            Json(record.get('metadata') or {}),
            record['created_at'],
        ))

    def get_usage_summary(self, since: datetime) -> List[Dict[str, Any]]:
        return self._fetch_all('get_usage_summary', USAGE_TABLE, """
            SELECT function_name, model, total_tokens, estimated_cost, status, created_at
            FROM llm_usage_logs
            WHERE created_at >= %s
            ORDER BY created_at DESC
        """, (since,))

    def close(self) -> None:
        self.connection_manager.close()
