#!/usr/bin/env python3
"""
Apply the news pipeline database schema.

With SUPABASE_DB_PASSWORD set the migration runs over a direct connection;
otherwise the SQL is printed for the Supabase SQL Editor.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from core.config import get_config_manager
from core.database import ConnectionManager

MIGRATION_PATH = os.path.join(os.path.dirname(__file__), "database", "migrations", "001_news_pipeline.sql")


def apply_migration() -> bool:
    """Apply the news pipeline migration."""
    if not os.path.exists(MIGRATION_PATH):
        print(f"Migration file not found: {MIGRATION_PATH}")
        return False

    with open(MIGRATION_PATH, 'r') as f:
        migration_sql = f.read()

    config_manager = get_config_manager()
    if config_manager.get_config().database.use_direct_connection:
        manager = ConnectionManager(
            config_manager.get_database_connection_string(),
            connect_timeout=config_manager.get_config().database.connection_timeout
        )
        try:
            with manager.get_cursor() as cursor:
                cursor.execute(migration_sql)
        finally:
            manager.close()
        print(f"Applied {os.path.basename(MIGRATION_PATH)}")
        return True

    print("Database Migration: news pipeline schema")
    print("=" * 60)
    print(migration_sql)
    print("=" * 60)

    print("\nMANUAL ACTION REQUIRED:")
    print("Please copy the above SQL and run it in your Supabase SQL Editor:")
    print("1. Go to https://supabase.com/dashboard/project/[your-project]/sql")
    print("2. Paste the SQL above")
    print("3. Click 'Run'")
    print("\nAfter running the migration, try an import with:")
    print("python run.py news import --keywords \"mortgage rates\"")

    return True


if __name__ == "__main__":
    success = apply_migration()
    sys.exit(0 if success else 1)
