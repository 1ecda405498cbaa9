#!/usr/bin/env python3
"""
Follow-up analysis of news items: cluster classification and keyword extraction.
"""

from .clusters import ClusterClassifier, merge_labels
from .keywords import KeywordExtractor
from .prompts import ClassificationPrompts
from .jobs import ClusterAnalysisJob, KeywordTrackingJob

__all__ = [
    'ClusterClassifier',
    'merge_labels',
    'KeywordExtractor',
    'ClassificationPrompts',
    'ClusterAnalysisJob',
    'KeywordTrackingJob',
]
