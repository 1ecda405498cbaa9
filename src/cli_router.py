#!/usr/bin/env python3
"""
CLI Router for the news intake pipeline.

Modular command architecture: each top-level command maps to a command class.
"""

import argparse
import logging
import sys
from typing import Optional, List

from core.config import get_config_manager
from core.exceptions import ConfigurationError
from commands import get_command, COMMANDS

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _score(value: str) -> float:
    number = float(value)
    if not 0.0 <= number <= 1.0:
        raise argparse.ArgumentTypeError(f"must be between 0 and 1, got {number}")
    return number


class CLIRouter:
    """
    CLI router for news intake commands.

    Command structure:
    - python run.py news import --keywords "mortgage rates" "housing market"
    - python run.py clusters analyze --max-items 100
    - python run.py keywords track
    - python run.py usage summary --days 7
    """

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="LLM-backed news intake pipeline",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_news_parser(subparsers)
        self._add_clusters_parser(subparsers)
        self._add_keywords_parser(subparsers)
        self._add_usage_parser(subparsers)

        return parser

    def _add_news_parser(self, subparsers):
        """Add news command parser."""
        news_parser = subparsers.add_parser(
            'news',
            help='Import news articles through the search provider'
        )

        news_subparsers = news_parser.add_subparsers(
            dest='subcommand',
            help='News operations',
            metavar='{import}'
        )

        import_parser = news_subparsers.add_parser('import', help='Search, extract and store articles for keywords')
        import_parser.add_argument('--keywords', nargs='+', required=True, help='Search keywords (space or comma separated)')
        import_parser.add_argument('--prompt-id', default=None, help='Stored prompt to use (default: active prompt)')
        import_parser.add_argument('--min-score', type=_score, default=None, help='Minimum relevance score, 0 disables (default: NEWS_MIN_SCORE)')
        import_parser.add_argument('--limit', type=int, default=None, help='Max articles kept per search, 0 disables (default: NEWS_RESULT_LIMIT)')
        import_parser.add_argument('--no-inline-clusters', action='store_true', help='Skip keyword-based cluster tagging before insert')

    def _add_clusters_parser(self, subparsers):
        """Add clusters command parser."""
        clusters_parser = subparsers.add_parser(
            'clusters',
            help='Cluster classification of stored news'
        )

        clusters_subparsers = clusters_parser.add_subparsers(
            dest='subcommand',
            help='Cluster operations',
            metavar='{analyze}'
        )

        analyze_parser = clusters_subparsers.add_parser('analyze', help='Classify unclassified news items')
        self._add_backlog_arguments(analyze_parser)

    def _add_keywords_parser(self, subparsers):
        """Add keywords command parser."""
        keywords_parser = subparsers.add_parser(
            'keywords',
            help='Tracked keyword counting'
        )

        keywords_subparsers = keywords_parser.add_subparsers(
            dest='subcommand',
            help='Keyword operations',
            metavar='{track,match}'
        )

        track_parser = keywords_subparsers.add_parser('track', help='Extract keywords from unanalyzed items and count tracked matches')
        self._add_backlog_arguments(track_parser)

        match_parser = keywords_subparsers.add_parser('match', help='Check which tracked keywords extracted keywords would match')
        match_parser.add_argument('--tracked', nargs='+', required=True, help='Tracked keywords')
        match_parser.add_argument('--extracted', nargs='+', required=True, help='Extracted keywords')

    def _add_usage_parser(self, subparsers):
        """Add usage command parser."""
        usage_parser = subparsers.add_parser(
            'usage',
            help='Provider usage and cost reporting'
        )

        usage_subparsers = usage_parser.add_subparsers(
            dest='subcommand',
            help='Usage operations',
            metavar='{summary}'
        )

        summary_parser = usage_subparsers.add_parser('summary', help='Summarize token usage and estimated cost')
        summary_parser.add_argument('--days', type=_positive_int, default=7, help='Days to include (default: 7)')

    def _add_backlog_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument('--max-items', type=_positive_int, default=None, help='Max backlog items per run (default: MAX_BACKLOG_ITEMS)')
        parser.add_argument('--batch-size', type=_positive_int, default=None, help='Items processed concurrently (default: BATCH_SIZE)')
        parser.add_argument('--delay', type=float, default=None, help='Seconds between batches (default: BATCH_DELAY_SECONDS)')

    def _get_examples_text(self) -> str:
        return """
Examples:
  # Import articles for keywords
  python run.py news import --keywords "mortgage rates" "housing market"
  python run.py news import --keywords fintech --min-score 0.6 --limit 5

  # Backlog jobs (Ctrl-C stops after the current batch)
  python run.py clusters analyze --max-items 100 --batch-size 5 --delay 1
  python run.py keywords track

  # Diagnostics
  python run.py keywords match --tracked "interest rate" --extracted "mortgage rate"
  python run.py usage summary --days 7
"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            self.parser.parse_args([args.command, '--help'])
            return 1

        try:
            command = get_command(args.command)
            return command.execute(subcommand, args)
        except Exception as e:
            logger.error(f"Error executing {args.command} {subcommand}: {e}", exc_info=True)
            return 1


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        get_config_manager().update_logging()
    except ConfigurationError as e:
        # Commands that need configuration report it themselves
        logger.warning(f"Logging left at defaults: {e}")

    router = CLIRouter()
    return router.route_command(args)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
