#!/usr/bin/env python3
"""
Metrics and run outcome data models.

Contains usage telemetry records, batch tallies and the per-run summaries
returned by the ingestion pipeline and backlog jobs.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field


@dataclass(frozen=True)
class UsageRecord:
    """Append-only log entry for a single upstream call."""
    function_name: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0
    duration_ms: int = 0
    status: str = "success"
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_record(self) -> Dict[str, Any]:
        """Row for the llm_usage_logs table."""
        return {
            'function_name': self.function_name,
            'model': self.model,
            'prompt_tokens': self.prompt_tokens,
            'completion_tokens': self.completion_tokens,
            'total_tokens': self.total_tokens,
            'estimated_cost': round(self.estimated_cost, 6),
            'duration_ms': self.duration_ms,
            'status': self.status,
            'error_message': self.error_message,
            'metadata': dict(self.metadata),
            'created_at': self.created_at.isoformat(),
        }


@dataclass
class ItemOutcome:
    """Result of processing one backlog item."""
    key: Any
    success: bool
    error: Optional[str] = None
    value: Any = None


@dataclass
class BatchTally:
    """Per-item outcomes of a batched run, listed in original item order."""
    outcomes: List[ItemOutcome] = field(default_factory=list)
    batch_sizes: List[int] = field(default_factory=list)
    stopped_early: bool = False
    not_dispatched: int = 0

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def errors(self) -> List[str]:
        return [f"{o.key}: {o.error}" for o in self.outcomes if not o.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'succeeded': self.succeeded,
            'failed': self.failed,
            'batches': list(self.batch_sizes),
            'stopped_early': self.stopped_early,
            'not_dispatched': self.not_dispatched,
            'errors': self.errors(),
        }


@dataclass
class RunSummary:
    """Externally observable outcome of one ingestion run."""
    keywords: List[str]
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    total_candidates: int = 0
    inserted: int = 0
    skipped_duplicate: int = 0
    skipped_low_score: int = 0
    truncated: int = 0
    invalid: int = 0
    empty_responses: int = 0
    errors: List[str] = field(default_factory=list)
    placeholders: List[Dict[str, Any]] = field(default_factory=list)
    total_tokens: int = 0
    estimated_cost: float = 0.0
    processing_time: float = 0.0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'run_id': self.run_id,
            'keywords': list(self.keywords),
            'started_at': self.started_at.isoformat(),
            'total_candidates': self.total_candidates,
            'inserted': self.inserted,
            'skipped_duplicate': self.skipped_duplicate,
            'skipped_low_score': self.skipped_low_score,
            'truncated': self.truncated,
            'invalid': self.invalid,
            'empty_responses': self.empty_responses,
            'error_count': self.error_count,
            'errors': list(self.errors),
            'placeholders': list(self.placeholders),
            'total_tokens': self.total_tokens,
            'estimated_cost': round(self.estimated_cost, 6),
            'processing_time': round(self.processing_time, 2),
        }


@dataclass
class JobReport:
    """Outcome of a backlog job (cluster analysis or keyword tracking)."""
    job: str
    tally: BatchTally = field(default_factory=BatchTally)
    counters: Dict[str, int] = field(default_factory=dict)

    def increment(self, name: str, amount: int = 1) -> None:
        self.counters[name] = self.counters.get(name, 0) + amount

    def to_dict(self) -> Dict[str, Any]:
        result = {'job': self.job}
        result.update(self.tally.to_dict())
        result['counters'] = dict(self.counters)
        return result
