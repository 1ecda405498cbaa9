#!/usr/bin/env python3
"""
Tracked keyword data model.
"""

from datetime import datetime
from typing import Dict, Any, Optional
from dataclasses import dataclass

from dateutil import parser as date_parser

KEYWORD_STATUSES = ('active', 'paused', 'archived')


@dataclass
class TrackedKeywordEntry:
    """A keyword of interest whose matching-article count is maintained."""
    id: Any
    keyword: str
    status: str = 'active'
    article_count: int = 0
    last_matched_date: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == 'active'

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'TrackedKeywordEntry':
        """Create from a keyword_tracking table row."""
        last_matched = row.get('last_matched_date') or row.get('last_searched_date')
        if isinstance(last_matched, str):
            try:
                last_matched = date_parser.parse(last_matched)
            except (ValueError, OverflowError):
                last_matched = None

        return cls(
            id=row.get('id'),
            keyword=(row.get('keyword') or '').strip(),
            status=(row.get('status') or 'active').lower(),
            article_count=int(row.get('article_count') or 0),
            last_matched_date=last_matched,
        )
