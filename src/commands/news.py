#!/usr/bin/env python3
"""
News command endpoints for importing articles through the search provider.
"""

import logging
from argparse import Namespace

from .base import BaseCommand
from core.container import create_ingestion_pipeline

logger = logging.getLogger(__name__)


class NewsCommand(BaseCommand):
    """Import news articles discovered by the search provider."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute news subcommand."""
        try:
            if subcommand == "import":
                return self.import_news(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"news {subcommand}")

    def import_news(self, args: Namespace) -> int:
        """Run one ingestion pass over the requested keywords."""
        keywords = []
        for value in args.keywords:
            keywords.extend(k.strip() for k in value.split(',') if k.strip())

        pipeline = create_ingestion_pipeline(
            min_score=args.min_score,
            limit=args.limit,
            inline_clusters=not args.no_inline_clusters,
        )

        async def work():
            try:
                return await pipeline.run(keywords, prompt_id=args.prompt_id)
            finally:
                await self._close_services(pipeline.client)

        summary = self.run_async(work)
        self.print_result(summary.to_dict())

        if summary.error_count and not summary.inserted:
            logger.warning(f"Run {summary.run_id} inserted nothing and had {summary.error_count} error(s)")
            return 1
        return 0
