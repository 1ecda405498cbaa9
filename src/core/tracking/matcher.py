#!/usr/bin/env python3
"""
Keyword matcher.

Approximate matching between keywords extracted from an item and the
tracked-keyword registry. Each (extracted, tracked) pair is compared after
normalization, trying these rules in order:

1. exact equality
2. containment in either direction
3. equality after folding one trailing 's' on each side
4. significant-word overlap: tracked words longer than two characters that
   are contained in, or contain, some word of the extracted keyword; the pair
   matches when the matched fraction exceeds MIN_OVERLAP_RATIO
"""

import logging
from typing import List, Optional, Sequence

from ..models.keyword import TrackedKeywordEntry
from ..text_sanitizer import normalize_keyword

logger = logging.getLogger(__name__)

MIN_OVERLAP_RATIO = 0.5
MIN_SIGNIFICANT_WORD_LENGTH = 3


def _fold_plural(text: str) -> str:
    return text[:-1] if text.endswith('s') else text


def significant_words(text: str) -> List[str]:
    return [word for word in text.split() if len(word) >= MIN_SIGNIFICANT_WORD_LENGTH]


def match_rule(extracted: str, tracked: str, min_overlap_ratio: float = MIN_OVERLAP_RATIO) -> Optional[str]:
    """
    Name of the first rule matching the pair, or None.

    Args:
        extracted: Keyword extracted from an item
        tracked: Tracked keyword
        min_overlap_ratio: Fraction of significant words that must be exceeded
    """
    a = normalize_keyword(extracted)
    b = normalize_keyword(tracked)
    if not a or not b:
        return None

    if a == b:
        return "exact"

    if b in a or a in b:
        return "containment"

    if _fold_plural(a) == _fold_plural(b):
        return "plural"

    tracked_words = significant_words(b)
    if tracked_words:
        extracted_words = a.split()
        hits = sum(
            1 for word in tracked_words
            if any(word in other or other in word for other in extracted_words)
        )
        if hits / len(tracked_words) > min_overlap_ratio:
            return "overlap"

    return None


def keywords_match(extracted: str, tracked: str, min_overlap_ratio: float = MIN_OVERLAP_RATIO) -> bool:
    return match_rule(extracted, tracked, min_overlap_ratio) is not None


class KeywordMatcher:
    """Finds the tracked entries matched by an item's extracted keywords."""

    def __init__(self, min_overlap_ratio: float = MIN_OVERLAP_RATIO):
        self.min_overlap_ratio = min_overlap_ratio

    def match(self, extracted: Sequence[str],
              tracked: Sequence[TrackedKeywordEntry]) -> List[TrackedKeywordEntry]:
        """
        Tracked entries matched by at least one extracted keyword.

        Each entry appears once no matter how many extracted keywords match
        it. Result order follows the tracked sequence.
        """
        matched = []
        for entry in tracked:
            for keyword in extracted:
                rule = match_rule(keyword, entry.keyword, self.min_overlap_ratio)
                if rule:
                    logger.debug(f"'{keyword}' matched tracked '{entry.keyword}' by {rule}")
                    matched.append(entry)
                    break
        return matched
