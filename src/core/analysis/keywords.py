#!/usr/bin/env python3
"""
Keyword extraction for stored news items.

Asks the upstream provider for the key topics of an item and returns them
as a clean list of free-text keywords for the keyword matcher.
"""

import logging
from typing import List, Dict, Optional, Any

from ..extraction import StructuredExtractor
from ..exceptions import ExtractionFailure
from .prompts import ClassificationPrompts

logger = logging.getLogger(__name__)

KEYWORD_FIELDS = ('extracted_keywords', 'keywords')


class KeywordExtractor:
    """Extracts free-text keywords from news text with an upstream call."""

    def __init__(self, client, extractor: Optional[StructuredExtractor] = None,
                 model: Optional[str] = None, max_keywords: int = 15):
        self.client = client
        self.extractor = extractor or StructuredExtractor()
        self.model = model
        self.max_keywords = max_keywords

    async def extract(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> List[str]:
        """
        Extract keywords from text.

        Raises:
            UpstreamUnavailable: The upstream call failed
            ExtractionFailure: The response held no keyword list
        """
        completion = await self.client.complete(
            ClassificationPrompts.keyword_prompt(text, self.max_keywords),
            system_prompt=ClassificationPrompts.KEYWORD_SYSTEM_PROMPT,
            model=self.model,
            temperature=0.1,
            max_tokens=500,
            function_name="analyze_article_content",
            metadata=metadata,
        )

        report = self.extractor.extract_with_report(completion.content, single_object=True)
        parsed = report.records[0] if report.records and isinstance(report.records[0], dict) else None

        raw = None
        if parsed is not None:
            for field in KEYWORD_FIELDS:
                if isinstance(parsed.get(field), list):
                    raw = parsed[field]
                    break

        if raw is None:
            raise ExtractionFailure("keyword extraction", report.text_length, report.attempted)

        keywords = []
        seen = set()
        for item in raw:
            if not isinstance(item, str) or not item.strip():
                continue
            keyword = item.strip()
            if keyword.lower() not in seen:
                seen.add(keyword.lower())
                keywords.append(keyword)

        logger.debug(f"Extracted {len(keywords)} keywords")
        return keywords[:self.max_keywords]
