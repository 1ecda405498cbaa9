#!/usr/bin/env python3
"""
Database package for the news intake pipeline.

Provides the news store interface and its Supabase REST and direct
PostgreSQL implementations.
"""

import logging

from .store import NewsStore, call_store
from .supabase_store import SupabaseNewsStore
from .postgres_store import PostgresNewsStore, ConnectionManager

logger = logging.getLogger(__name__)


def create_news_store(config_manager) -> NewsStore:
    """
    Build the store selected by configuration.

    A database password selects the direct PostgreSQL connection, otherwise
    the Supabase REST API is used.
    """
    config = config_manager.get_config()
    database = config.database

    if database.use_direct_connection:
        logger.info("Using direct PostgreSQL news store")
        return PostgresNewsStore.connect(
            config_manager.get_database_connection_string(),
            connect_timeout=database.connection_timeout
        )

    logger.info("Using Supabase REST news store")
    return SupabaseNewsStore(database.supabase_url, database.api_key)


__all__ = [
    'NewsStore',
    'call_store',
    'SupabaseNewsStore',
    'PostgresNewsStore',
    'ConnectionManager',
    'create_news_store',
]
