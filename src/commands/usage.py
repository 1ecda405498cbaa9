#!/usr/bin/env python3
"""
Usage command endpoints for provider token and cost reporting.
"""

import logging
from argparse import Namespace

from .base import BaseCommand
from core.database import call_store
from core.llm_logger import summarize_usage, usage_window_start

logger = logging.getLogger(__name__)


class UsageCommand(BaseCommand):
    """Report provider usage recorded in the usage log."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        try:
            if subcommand == "summary":
                return self.summary(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"usage {subcommand}")

    def summary(self, args: Namespace) -> int:
        """Summarize usage over the last N days."""
        if args.days < 1:
            raise ValueError(f"--days must be at least 1, got {args.days}")

        since = usage_window_start(args.days)
        store = self.store
        timeout = self.config.pipeline.store_timeout_seconds

        async def work():
            return await call_store(timeout, store.get_usage_summary, since)

        rows = self.run_async(work)
        summary = summarize_usage(rows or [])
        summary['days'] = args.days
        summary['since'] = since.isoformat()
        self.print_result(summary)
        return 0
