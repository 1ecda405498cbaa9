#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
LLM usage telemetry.

Records cost, latency and outcome of every upstream call as an append-only
UsageRecord. Records go to the llm_usage_logs table and, optionally, to a
plain-text debug file. Telemetry is a side channel: failures to record are
logged and never interrupt the caller.
"""

import time
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Dict, Any, Optional
from pathlib import Path

from .models.metrics import UsageRecord
from .exceptions import StorageFailure
from .database.store import NewsStore, call_store
from .text_sanitizer import preview

logger = logging.getLogger(__name__)

# USD per one million tokens
MODEL_PRICES_PER_MILLION = {
    'sonar': 1.0,
    'sonar-pro': 3.0,
    'sonar-reasoning': 1.0,
    'sonar-reasoning-pro': 2.0,
    'sonar-deep-research': 2.0,
}
DEFAULT_PRICE_PER_MILLION = 1.0


def estimate_cost(model: str, total_tokens: int) -> float:
    """Estimated USD cost of a call from its total token count."""
    price = MODEL_PRICES_PER_MILLION.get((model or '').lower(), DEFAULT_PRICE_PER_MILLION)
    return (total_tokens / 1_000_000) * price


class LLMDebugLog:
    """Writes upstream interactions to a clear debug file, overwritten per run."""

    def __init__(self, log_file_path: str):
        self.log_file_path = Path(log_file_path)
        self._clear_log()

    def _clear_log(self):
        try:
            with open(self.log_file_path, 'w', encoding='utf-8') as f:
                f.write(f"=== LLM DEBUG LOG - {datetime.now().isoformat()} ===\n\n")
        except OSError as e:
            logger.error(f"Failed to clear LLM log file: {e}")

    def _write_section(self, title: str, content: str):
        try:
            with open(self.log_file_path, 'a', encoding='utf-8') as f:
                f.write(f"\n{'=' * 80}\n")
                f.write(f"{title}\n")
                f.write(f"{'=' * 80}\n")
                f.write(f"{content}\n")
        except OSError as e:
            logger.error(f"Failed to write to LLM log file: {e}")

    def log_interaction(self, function_name: str, prompt: str, response: str, record: UsageRecord):
        """Log one upstream call with truncated prompt and response."""
        content = f"Timestamp: {record.created_at.isoformat()}\n"
        content += f"Model: {record.model}\n"
        content += f"Status: {record.status}\n"
        content += (
            f"Token Usage: {record.prompt_tokens} prompt + {record.completion_tokens} completion"
            f" = {record.total_tokens} total (${record.estimated_cost:.6f})\n"
        )
        content += f"Duration: {record.duration_ms} ms\n"
        if record.error_message:
            content += f"Error: {record.error_message}\n"
        content += f"\nPROMPT ({len(prompt or '')} chars):\n{preview(prompt, 2000)}\n"
        content += f"\nRESPONSE ({len(response or '')} chars):\n{preview(response, 4000)}\n"

        self._write_section(f"LLM INTERACTION ({function_name})", content)


class UsageTelemetryRecorder:
    """Builds UsageRecords and appends them to the usage log."""

    def __init__(self, store: Optional[NewsStore] = None, store_timeout: float = 15.0,
                 debug_log_path: Optional[str] = None):
        """
        Args:
            store: Destination for usage rows; None keeps records in memory only
            store_timeout: Timeout for each append
            debug_log_path: Optional file for full interaction logs
        """
        self.store = store
        self.store_timeout = store_timeout
        self.records: List[UsageRecord] = []
        self.debug_log = LLMDebugLog(debug_log_path) if debug_log_path else None

    def build_record(self,
                     function_name: str,
                     model: str,
                     usage: Optional[Dict[str, int]] = None,
                     status: str = "success",
                     started_at: Optional[float] = None,
                     error: Optional[str] = None,
                     metadata: Optional[Dict[str, Any]] = None) -> UsageRecord:
        """
        Create an immutable usage record.

        Args:
            function_name: Logical operation that made the call
            model: Model identifier
            usage: Token counts (prompt_tokens, completion_tokens, total_tokens)
            status: 'success' or 'error'
            started_at: time.monotonic() value taken before the call
            error: Error message for failed calls
            metadata: Free-form context (keyword, article id, ...)
        """
        usage = usage or {}
        prompt_tokens = int(usage.get('prompt_tokens') or 0)
        completion_tokens = int(usage.get('completion_tokens') or 0)
        total_tokens = int(usage.get('total_tokens') or (prompt_tokens + completion_tokens))
        duration_ms = int((time.monotonic() - started_at) * 1000) if started_at is not None else 0

        return UsageRecord(
            function_name=function_name,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
            estimated_cost=estimate_cost(model, total_tokens),
            duration_ms=duration_ms,
            status=status,
            error_message=error,
            metadata=dict(metadata or {}),
        )

    async def record(self, usage_record: UsageRecord, prompt: str = "", response: str = "") -> UsageRecord:
        """Keep the record, append it to the store and the debug file."""
        self.records.append(usage_record)

        if self.debug_log:
            self.debug_log.log_interaction(usage_record.function_name, prompt, response, usage_record)

        if self.store is not None:
            try:
                await call_store(self.store_timeout, self.store.append_usage_record, usage_record.to_record())
            except StorageFailure as e:
                logger.warning(f"Failed to append usage record for {usage_record.function_name}: {e}")

        logger.debug(
            f"Usage recorded: {usage_record.function_name} {usage_record.model} "
            f"{usage_record.total_tokens} tokens, {usage_record.status}"
        )
        return usage_record

    def totals(self) -> Dict[str, Any]:
        """Totals over the records kept in memory."""
        return {
            'calls': len(self.records),
            'errors': sum(1 for r in self.records if r.status == 'error'),
            'total_tokens': sum(r.total_tokens for r in self.records),
            'estimated_cost': sum(r.estimated_cost for r in self.records),
        }


def summarize_usage(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Aggregate usage rows by model, by function and by day."""
    summary = {
        'calls': 0,
        'errors': 0,
        'total_tokens': 0,
        'estimated_cost': 0.0,
        'by_model': {},
        'by_function': {},
        'by_day': {},
    }

    for row in rows:
        tokens = int(row.get('total_tokens') or 0)
        cost = float(row.get('estimated_cost') or 0.0)
        is_error = row.get('status') == 'error'

        summary['calls'] += 1
        summary['errors'] += 1 if is_error else 0
        summary['total_tokens'] += tokens
        summary['estimated_cost'] += cost

        created_at = str(row.get('created_at') or '')[:10] or 'unknown'
        for bucket, key in (('by_model', row.get('model') or 'unknown'),
                            ('by_function', row.get('function_name') or 'unknown'),
                            ('by_day', created_at)):
            entry = summary[bucket].setdefault(key, {'calls': 0, 'total_tokens': 0, 'estimated_cost': 0.0})
            entry['calls'] += 1
            entry['total_tokens'] += tokens
            entry['estimated_cost'] += cost

    return summary


def usage_window_start(days: int) -> datetime:
    """Start of a trailing window of the given number of days."""
    return datetime.now(timezone.utc) - timedelta(days=days)
