#!/usr/bin/env python3
"""
Keyword command endpoints for tracked keyword counting and ad-hoc matching.
"""

import logging
from argparse import Namespace

from .base import BaseCommand
from core.container import create_keyword_tracking_job
from core.models.keyword import TrackedKeywordEntry
from core.tracking.matcher import KeywordMatcher, match_rule

logger = logging.getLogger(__name__)


class KeywordsCommand(BaseCommand):
    """Count tracked keyword mentions in stored news items."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        try:
            if subcommand == "track":
                return self.track(args)
            elif subcommand == "match":
                return self.match(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"keywords {subcommand}")

    def track(self, args: Namespace) -> int:
        """Extract keywords from unanalyzed items and update tracked counts."""
        max_items = args.max_items or self.config.pipeline.max_backlog_items
        job = create_keyword_tracking_job(batch_size=args.batch_size, batch_delay=args.delay)

        async def work():
            try:
                return await job.run(max_items=max_items)
            finally:
                await self._close_services(job.keyword_extractor.client)

        report = self.run_async(work, orchestrator=job.orchestrator)
        self.print_result(report.to_dict())

        return 1 if report.tally.failed and not report.tally.succeeded else 0

    def match(self, args: Namespace) -> int:
        """Show which tracked keywords the given extracted keywords would count."""
        tracked = [TrackedKeywordEntry(id=index, keyword=keyword)
                   for index, keyword in enumerate(args.tracked)]
        matcher = KeywordMatcher()

        matched = matcher.match(args.extracted, tracked)
        details = []
        for entry in matched:
            rules = {
                extracted: match_rule(extracted, entry.keyword, matcher.min_overlap_ratio)
                for extracted in args.extracted
            }
            details.append({
                'tracked': entry.keyword,
                'matched_by': {k: rule for k, rule in rules.items() if rule},
            })

        self.print_result({'matched': details, 'unmatched': [
            entry.keyword for entry in tracked if entry not in matched
        ]})
        return 0
