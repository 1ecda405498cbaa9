#!/usr/bin/env python3
"""
Relevance filter.

Applies the minimum-score and result-limit policies to normalized
candidates. A threshold or limit of 0 disables that step.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from .models.article import CandidateArticle

logger = logging.getLogger(__name__)


@dataclass
class FilterOutcome:
    """Candidates kept by the filter and how many were dropped at each step."""
    kept: List[CandidateArticle] = field(default_factory=list)
    below_threshold: int = 0
    truncated: int = 0


class RelevanceFilter:
    """Keeps candidates scoring at least min_score, then the first `limit` of them."""

    def __init__(self, min_score: float = 0.0, limit: int = 0):
        if min_score < 0 or min_score > 1:
            raise ValueError(f"min_score must be between 0 and 1, got {min_score}")
        if limit < 0:
            raise ValueError(f"limit must not be negative, got {limit}")
        self.min_score = min_score
        self.limit = limit

    def apply(self, articles: List[CandidateArticle]) -> FilterOutcome:
        outcome = FilterOutcome()

        if self.min_score > 0:
            for article in articles:
                # Unscored items pass
                if article.relevance_score is None or article.relevance_score >= self.min_score:
                    outcome.kept.append(article)
                else:
                    outcome.below_threshold += 1
        else:
            outcome.kept = list(articles)

        if self.limit > 0 and len(outcome.kept) > self.limit:
            outcome.truncated = len(outcome.kept) - self.limit
            outcome.kept = outcome.kept[:self.limit]

        if outcome.below_threshold or outcome.truncated:
            logger.info(
                f"Relevance filter kept {len(outcome.kept)}/{len(articles)} "
                f"(below {self.min_score}: {outcome.below_threshold}, over limit: {outcome.truncated})"
            )
        return outcome
