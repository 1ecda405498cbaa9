#!/usr/bin/env python3
"""
Core data models for the news intake pipeline.

Contains all data structures used throughout the application.
"""

from .article import CandidateArticle, PersistedArticle, DEFAULT_RELEVANCE_SCORE
from .analysis import ClusterDefinition, ClassificationResult, INLINE_CONFIDENCE
from .keyword import TrackedKeywordEntry
from .metrics import UsageRecord, ItemOutcome, BatchTally, RunSummary, JobReport

__all__ = [
    'CandidateArticle', 'PersistedArticle', 'DEFAULT_RELEVANCE_SCORE',
    'ClusterDefinition', 'ClassificationResult', 'INLINE_CONFIDENCE',
    'TrackedKeywordEntry',
    'UsageRecord', 'ItemOutcome', 'BatchTally', 'RunSummary', 'JobReport',
]
