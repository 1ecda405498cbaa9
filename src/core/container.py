#!/usr/bin/env python3
"""
Dependency Injection Container

Provides a centralized way to build the store, the upstream client, telemetry
and the pipeline components from configuration. Supports singleton and
factory registrations; tests register instances to swap in fakes.
"""

import logging
from typing import Any, Dict, Callable, TypeVar, Optional
from functools import wraps
import threading

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Simple dependency injection container with lifecycle management."""

    def __init__(self):
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def register_singleton(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service created once and reused.

        Args:
            service_name: Unique name for the service
            factory: Function that creates the service instance
        """
        with self._lock:
            factory._is_singleton = True
            self._factories[service_name] = factory
            self._singletons.pop(service_name, None)

    def register_factory(self, service_name: str, factory: Callable[[], T]) -> None:
        """Register a service created anew on every get()."""
        with self._lock:
            self._factories[service_name] = factory

    def register_instance(self, service_name: str, instance: T) -> None:
        """Register an existing instance as singleton."""
        with self._lock:
            self._singletons[service_name] = instance

    def get(self, service_name: str) -> Any:
        """
        Get service instance by name.

        Raises:
            KeyError: If service is not registered
        """
        if service_name in self._singletons:
            return self._singletons[service_name]

        if service_name not in self._factories:
            raise KeyError(f"Service '{service_name}' not registered")

        with self._lock:
            factory = self._factories[service_name]

            if getattr(factory, '_is_singleton', False):
                if service_name not in self._singletons:
                    self._singletons[service_name] = factory()
                    logger.debug(f"Created singleton instance for '{service_name}'")
                return self._singletons[service_name]

            instance = factory()
            logger.debug(f"Created new instance for '{service_name}'")
            return instance

    def has(self, service_name: str) -> bool:
        return service_name in self._factories or service_name in self._singletons

    def clear(self) -> None:
        with self._lock:
            self._factories.clear()
            self._singletons.clear()


def singleton(factory_func: Callable[[], T]) -> Callable[[], T]:
    """
    Decorator to mark a factory function as singleton.

    Usage:
        @singleton
        def create_store():
            return create_news_store(get_config_manager())
    """
    @wraps(factory_func)
    def wrapper():
        return factory_func()

    wrapper._is_singleton = True
    return wrapper


# Global container instance
_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get global container instance (thread-safe singleton)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
                _setup_default_services(_container)
    return _container


def reset_container() -> None:
    """Reset global container (useful for testing)."""
    global _container
    with _container_lock:
        if _container:
            _container.clear()
        _container = None


def _setup_default_services(container: Container) -> None:
    """Set up default service registrations with configuration injection."""

    @singleton
    def create_config_manager():
        from core.config import get_config_manager
        return get_config_manager()

    @singleton
    def create_config():
        return container.get('config_manager').get_config()

    @singleton
    def create_store():
        from core.database import create_news_store
        return create_news_store(container.get('config_manager'))

    @singleton
    def create_telemetry():
        from core.llm_logger import UsageTelemetryRecorder
        config = container.get('config')
        return UsageTelemetryRecorder(
            store=container.get('store'),
            store_timeout=config.pipeline.store_timeout_seconds,
            debug_log_path=config.pipeline.llm_debug_log,
        )

    @singleton
    def create_search_client():
        from integrations.perplexity_client import PerplexityClient
        config = container.get('config')
        return PerplexityClient(
            api_key=config.integrations.perplexity_api_key,
            model=config.integrations.search_model,
            base_url=config.integrations.perplexity_base_url,
            timeout=config.pipeline.upstream_timeout_seconds,
            telemetry=container.get('telemetry'),
        )

    container.register_singleton('config_manager', create_config_manager)
    container.register_singleton('config', create_config)
    container.register_singleton('store', create_store)
    container.register_singleton('telemetry', create_telemetry)
    container.register_singleton('search_client', create_search_client)

    logger.debug("Default services registered in container")


# Convenience functions for common usage patterns

def get_config():
    """Get configuration instance from container."""
    return get_container().get('config')


def get_store():
    """Get the news store from container."""
    return get_container().get('store')


def get_search_client():
    """Get the upstream search client from container."""
    return get_container().get('search_client')


def get_telemetry():
    """Get the usage telemetry recorder from container."""
    return get_container().get('telemetry')


def create_orchestrator(batch_size: Optional[int] = None, batch_delay: Optional[float] = None):
    """Create a batch orchestrator from configuration with optional overrides."""
    from core.orchestration import BatchOrchestrator
    pipeline = get_config().pipeline
    return BatchOrchestrator(
        batch_size=batch_size or pipeline.batch_size,
        batch_delay=pipeline.batch_delay_seconds if batch_delay is None else batch_delay,
        item_timeout=pipeline.upstream_timeout_seconds * 2,
    )


def create_ingestion_pipeline(min_score: Optional[float] = None,
                              limit: Optional[int] = None,
                              inline_clusters: bool = True):
    """Create an ingestion pipeline from configuration with optional overrides."""
    from core.pipeline import IngestionPipeline
    pipeline = get_config().pipeline
    return IngestionPipeline(
        client=get_search_client(),
        store=get_store(),
        min_score=pipeline.min_score if min_score is None else min_score,
        limit=pipeline.result_limit if limit is None else limit,
        inline_clusters=inline_clusters,
        inline_max_clusters=pipeline.inline_max_clusters,
        store_timeout=pipeline.store_timeout_seconds,
    )


def create_cluster_analysis_job(batch_size: Optional[int] = None, batch_delay: Optional[float] = None):
    """Create the cluster analysis backlog job."""
    from core.analysis import ClusterClassifier, ClusterAnalysisJob
    config = get_config()
    classifier = ClusterClassifier(client=get_search_client(), model=config.integrations.classifier_model)
    return ClusterAnalysisJob(
        store=get_store(),
        classifier=classifier,
        orchestrator=create_orchestrator(batch_size, batch_delay),
        store_timeout=config.pipeline.store_timeout_seconds,
    )


def create_keyword_tracking_job(batch_size: Optional[int] = None, batch_delay: Optional[float] = None):
    """Create the keyword tracking backlog job."""
    from core.analysis import KeywordExtractor, KeywordTrackingJob
    from core.tracking import KeywordTrackingAggregator
    config = get_config()
    store = get_store()
    return KeywordTrackingJob(
        store=store,
        keyword_extractor=KeywordExtractor(client=get_search_client(), model=config.integrations.classifier_model),
        aggregator=KeywordTrackingAggregator(store, store_timeout=config.pipeline.store_timeout_seconds),
        orchestrator=create_orchestrator(batch_size, batch_delay),
        store_timeout=config.pipeline.store_timeout_seconds,
    )
