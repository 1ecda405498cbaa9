#!/usr/bin/env python3
"""
Tracked keyword matching and counting.
"""

from .matcher import KeywordMatcher, match_rule, keywords_match, MIN_OVERLAP_RATIO
from .aggregator import KeywordTrackingAggregator

__all__ = [
    'KeywordMatcher',
    'KeywordTrackingAggregator',
    'match_rule',
    'keywords_match',
    'MIN_OVERLAP_RATIO',
]
