#!/usr/bin/env python3
"""
Exception hierarchy for the news intake pipeline.

Per-item failures (upstream, extraction, validation, duplicates, storage) are
contained by the pipeline and surfaced in the run summary. Only configuration
problems are allowed to abort a whole run.
"""

from typing import Optional, Dict, Any


class NewsPipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Upstream text-generation provider
class UpstreamUnavailable(NewsPipelineError):
    """The text-generation call failed."""

    def __init__(self, provider: str, model: str, original_error: Exception):
        message = f"Upstream call to {provider} ({model}) failed: {original_error}"
        context = {
            'provider': provider,
            'model': model,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


class UpstreamTimeout(UpstreamUnavailable):
    """The text-generation call did not answer in time."""

    def __init__(self, provider: str, model: str, timeout_seconds: float):
        super().__init__(provider, model, TimeoutError(f"no response after {timeout_seconds}s"))
        self.context['timeout_seconds'] = timeout_seconds


# Parsing and validation
class ExtractionFailure(NewsPipelineError):
    """No extraction strategy produced a parseable result."""

    def __init__(self, operation: str, text_length: int, strategies_tried: list):
        message = f"Could not extract structured data for {operation} ({text_length} chars)"
        context = {
            'operation': operation,
            'text_length': text_length,
            'strategies_tried': list(strategies_tried)
        }
        super().__init__(message, context=context)


class ValidationRejected(NewsPipelineError):
    """A normalized record lacks a usable url or title."""

    def __init__(self, field: str, value: Any):
        message = f"Record rejected: invalid {field}"
        context = {
            'field': field,
            'value': str(value)[:200]
        }
        super().__init__(message, context=context)


# Storage
class DuplicateConflict(NewsPipelineError):
    """A record with the same unique key already exists."""

    def __init__(self, table: str, key: str):
        message = f"Duplicate key in {table}: {key}"
        context = {
            'table': table,
            'key': key
        }
        super().__init__(message, context=context)


class StorageFailure(NewsPipelineError):
    """Any other persistence error."""

    def __init__(self, operation: str, table: str, original_error: Exception):
        message = f"Storage {operation} failed on table {table}: {original_error}"
        context = {
            'operation': operation,
            'table': table,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


# Configuration
class ConfigurationError(NewsPipelineError):
    """Configuration is invalid or missing. Fatal to the run."""

    def __init__(self, config_key: str, issue: str):
        message = f"Configuration error for {config_key}: {issue}"
        context = {
            'config_key': config_key,
            'issue': issue
        }
        super().__init__(message, context=context)
