#!/usr/bin/env python3
"""
Cluster command endpoints for classifying stored news against the taxonomy.
"""

import logging
from argparse import Namespace

from .base import BaseCommand
from core.container import create_cluster_analysis_job

logger = logging.getLogger(__name__)


class ClustersCommand(BaseCommand):
    """Classify stored news items into keyword clusters."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        try:
            if subcommand == "analyze":
                return self.analyze(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"clusters {subcommand}")

    def analyze(self, args: Namespace) -> int:
        """Classify the unclassified backlog in paced batches."""
        max_items = args.max_items or self.config.pipeline.max_backlog_items
        job = create_cluster_analysis_job(batch_size=args.batch_size, batch_delay=args.delay)

        async def work():
            try:
                return await job.run(max_items=max_items)
            finally:
                await self._close_services(job.classifier.client)

        report = self.run_async(work, orchestrator=job.orchestrator)
        self.print_result(report.to_dict())

        return 1 if report.tally.failed and not report.tally.succeeded else 0
