#!/usr/bin/env python3
"""
Centralized Configuration Manager

Provides a single source of truth for all application configuration,
including environment variables, defaults, and validation.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional
from pathlib import Path

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Database connection configuration."""
    supabase_url: str
    supabase_db_password: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_service_key: Optional[str] = None
    connection_timeout: int = 30

    @property
    def api_key(self) -> Optional[str]:
        """Key used by the REST client; the service key wins."""
        return self.supabase_service_key or self.supabase_anon_key

    @property
    def use_direct_connection(self) -> bool:
        return bool(self.supabase_db_password)


@dataclass
class IntegrationConfig:
    """Text-generation provider configuration."""
    perplexity_api_key: Optional[str] = None
    perplexity_base_url: str = "https://api.perplexity.ai"
    search_model: str = "sonar"
    classifier_model: str = "sonar"


@dataclass
class PipelineConfig:
    """Ingestion and backlog processing settings."""
    # Relevance filtering (0 disables the step)
    min_score: float = 0.0
    result_limit: int = 0

    # Batching
    batch_size: int = 5
    batch_delay_seconds: float = 1.0
    max_backlog_items: int = 50

    # Timeouts
    upstream_timeout_seconds: float = 60.0
    store_timeout_seconds: float = 15.0

    # Inline classification is skipped for larger taxonomies
    inline_max_clusters: int = 50

    # Logging
    log_level: str = "INFO"
    verbose_logging: bool = False
    llm_debug_log: Optional[str] = None


@dataclass
class Config:
    """Master configuration container."""
    database: DatabaseConfig
    integrations: IntegrationConfig
    pipeline: PipelineConfig


class ConfigManager:
    """Manages application configuration with validation and environment loading."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to .env file relative to project root
        """
        self._config: Optional[Config] = None
        self._env_file_path = env_file_path
        self._load_environment()

    def _load_environment(self) -> None:
        """Load environment variables from .env file."""
        project_root = Path(__file__).parent.parent.parent
        env_path = project_root / self._env_file_path

        if env_path.exists():
            self._load_env_file(env_path)
        else:
            logger.debug(f"No .env file found at {env_path}")

    def _load_env_file(self, env_path: Path) -> None:
        """Load variables from .env file."""
        try:
            with open(env_path, 'r', encoding='utf-8') as f:
                lines = f.readlines()
        except OSError as e:
            logger.error(f"Error reading .env file {env_path}: {e}")
            return

        loaded_count = 0
        for line_num, line in enumerate(lines, 1):
            line = line.strip()

            if not line or line.startswith('#'):
                continue

            if '=' not in line:
                logger.warning(f"Invalid .env format at line {line_num}")
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                value = value[1:-1]

            # Environment variables take precedence
            if key not in os.environ:
                os.environ[key] = value
                loaded_count += 1
                logger.debug(f"Loaded {key} from .env")
            else:
                logger.debug(f"Skipped {key} (already in environment)")

        logger.info(f"Loaded {loaded_count} variables from {env_path}")

    def get_config(self, force_reload: bool = False) -> Config:
        """
        Get application configuration.

        Args:
            force_reload: Force reloading configuration from environment

        Returns:
            Complete configuration object
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _build_config(self) -> Config:
        """Build configuration from environment variables."""
        database_config = DatabaseConfig(
            supabase_url=self._get_required_env('SUPABASE_URL'),
            supabase_db_password=os.getenv('SUPABASE_DB_PASSWORD') or None,
            supabase_anon_key=os.getenv('SUPABASE_ANON_KEY') or None,
            supabase_service_key=os.getenv('SUPABASE_SERVICE_KEY') or None,
            connection_timeout=self._get_int('DB_CONNECTION_TIMEOUT', 30),
        )

        integration_config = IntegrationConfig(
            perplexity_api_key=os.getenv('PERPLEXITY_API_KEY') or None,
            perplexity_base_url=os.getenv('PERPLEXITY_BASE_URL', 'https://api.perplexity.ai'),
            search_model=os.getenv('SEARCH_MODEL', 'sonar'),
            classifier_model=os.getenv('CLASSIFIER_MODEL', 'sonar'),
        )

        pipeline_config = PipelineConfig(
            min_score=self._get_float('NEWS_MIN_SCORE', 0.0),
            result_limit=self._get_int('NEWS_RESULT_LIMIT', 0),
            batch_size=self._get_int('BATCH_SIZE', 5),
            batch_delay_seconds=self._get_float('BATCH_DELAY_SECONDS', 1.0),
            max_backlog_items=self._get_int('MAX_BACKLOG_ITEMS', 50),
            upstream_timeout_seconds=self._get_float('UPSTREAM_TIMEOUT_SECONDS', 60.0),
            store_timeout_seconds=self._get_float('STORE_TIMEOUT_SECONDS', 15.0),
            inline_max_clusters=self._get_int('INLINE_MAX_CLUSTERS', 50),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=os.getenv('VERBOSE_LOGGING', 'false').lower() == 'true',
            llm_debug_log=os.getenv('LLM_DEBUG_LOG') or None,
        )

        config = Config(
            database=database_config,
            integrations=integration_config,
            pipeline=pipeline_config
        )

        self._validate_config(config)
        return config

    def _get_required_env(self, key: str) -> str:
        """Get required environment variable."""
        value = os.getenv(key)
        if not value:
            raise ConfigurationError(key, "required environment variable is not set")
        return value

    def _get_int(self, key: str, default: int) -> int:
        raw = os.getenv(key)
        if raw is None or raw == '':
            return default
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(key, f"expected an integer, got {raw!r}")

    def _get_float(self, key: str, default: float) -> float:
        raw = os.getenv(key)
        if raw is None or raw == '':
            return default
        try:
            return float(raw)
        except ValueError:
            raise ConfigurationError(key, f"expected a number, got {raw!r}")

    def _validate_config(self, config: Config) -> None:
        """Validate configuration values."""
        errors = []

        if not config.database.supabase_url.startswith('https://'):
            errors.append("SUPABASE_URL must start with https://")

        if not config.database.api_key and not config.database.use_direct_connection:
            errors.append("one of SUPABASE_SERVICE_KEY, SUPABASE_ANON_KEY or SUPABASE_DB_PASSWORD is required")

        pipeline = config.pipeline
        if pipeline.min_score < 0 or pipeline.min_score > 1:
            errors.append("NEWS_MIN_SCORE must be between 0 and 1")

        if pipeline.result_limit < 0:
            errors.append("NEWS_RESULT_LIMIT must not be negative")

        if pipeline.batch_size < 1 or pipeline.batch_size > 20:
            errors.append("BATCH_SIZE must be between 1 and 20")

        if pipeline.batch_delay_seconds < 0:
            errors.append("BATCH_DELAY_SECONDS must not be negative")

        if pipeline.upstream_timeout_seconds <= 0 or pipeline.store_timeout_seconds <= 0:
            errors.append("UPSTREAM_TIMEOUT_SECONDS and STORE_TIMEOUT_SECONDS must be positive")

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if pipeline.log_level not in valid_log_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")

        if errors:
            raise ConfigurationError('environment', '; '.join(errors))

        logger.info("Configuration validation passed")

    def get_database_connection_string(self) -> str:
        """Get PostgreSQL connection string for Supabase."""
        config = self.get_config()

        if not config.database.supabase_db_password:
            raise ConfigurationError('SUPABASE_DB_PASSWORD', "required for a direct database connection")

        host = config.database.supabase_url.replace('https://', '').rstrip('/')
        password = config.database.supabase_db_password

        # Connection pooling port
        return f"postgresql://postgres:{password}@{host}:6543/postgres?sslmode=require"

    def update_logging(self) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()

        numeric_level = getattr(logging, config.pipeline.log_level)
        logging.getLogger().setLevel(numeric_level)

        if config.pipeline.verbose_logging:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            formatter = logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')
            handler.setFormatter(formatter)


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Reset configuration manager (useful for testing)."""
    global _config_manager
    _config_manager = None
