#!/usr/bin/env python3
"""
Structured extractor.

Runs the extraction strategies in order against raw upstream text and
returns the records recovered by the first one that succeeds. Malformed
input never raises; when every strategy fails the result is empty.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Any, Optional, Dict

from .strategies import ExtractionStrategy, default_strategies
from ..text_sanitizer import preview

logger = logging.getLogger(__name__)


@dataclass
class ExtractionReport:
    """Records recovered from one response plus how they were found."""
    records: List[Any]
    strategy: Optional[str] = None
    attempted: List[str] = field(default_factory=list)
    text_length: int = 0

    @property
    def succeeded(self) -> bool:
        return self.strategy is not None


class StructuredExtractor:
    """Recovers records from free-form text with an ordered strategy chain."""

    def __init__(self, strategies: Optional[List[ExtractionStrategy]] = None):
        self.strategies = strategies if strategies is not None else default_strategies()
        logger.debug(f"Initialized extractor with strategies: {[s.get_name() for s in self.strategies]}")

    def extract_with_report(self, text: Optional[str], single_object: bool = False) -> ExtractionReport:
        """
        Run the strategy chain and report which strategies were tried.

        Args:
            text: Raw upstream response text
            single_object: Expect one JSON object instead of a list of records

        Returns:
            ExtractionReport with the records (possibly empty)
        """
        if not text or not text.strip():
            logger.warning("Extraction skipped: empty response text")
            return ExtractionReport(records=[], text_length=0)

        report = ExtractionReport(records=[], text_length=len(text))

        for strategy in self.strategies:
            name = strategy.get_name()
            report.attempted.append(name)

            records = strategy.extract(text, single_object=single_object)
            if records is None:
                logger.debug(f"Extraction strategy '{name}' did not apply ({len(text)} chars)")
                continue

            report.records = list(records)
            report.strategy = name
            logger.info(f"Extracted {len(records)} record(s) with strategy '{name}' from {len(text)} chars")
            return report

        logger.warning(
            f"All extraction strategies failed for {len(text)} chars "
            f"(tried: {', '.join(report.attempted)}); preview: {preview(text)!r}"
        )
        return report

    def extract(self, text: Optional[str]) -> List[Any]:
        """Extract a list of records, or an empty list."""
        return self.extract_with_report(text).records

    def extract_object(self, text: Optional[str]) -> Optional[Dict[str, Any]]:
        """Extract a single JSON object, or None when nothing could be recovered."""
        records = self.extract_with_report(text, single_object=True).records
        if records and isinstance(records[0], dict):
            return records[0]
        return None
