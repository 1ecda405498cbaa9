#!/usr/bin/env python3
"""
Base command class for the modular command architecture.

Provides common functionality and interface that all commands inherit.
Uses dependency injection for better testability and maintainability.
"""

import asyncio
import json
import logging
import signal
from abc import ABC, abstractmethod
from argparse import Namespace
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.container import get_container
from core.exceptions import ConfigurationError, NewsPipelineError

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """
    Base class for all command endpoints.

    Provides access to configured services, async execution with a graceful
    stop on Ctrl-C, JSON output and error handling that all commands share.
    """

    def __init__(self, container=None):
        """
        Initialize base command with dependency injection container.

        Args:
            container: Optional container instance. If None, uses global container.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        """Get configuration from container."""
        return self._container.get('config')

    @property
    def store(self):
        """Get news store from container."""
        return self._container.get('store')

    @property
    def search_client(self):
        """Get upstream search client from container."""
        return self._container.get('search_client')

    @property
    def telemetry(self):
        """Get usage telemetry recorder from container."""
        return self._container.get('telemetry')

    @abstractmethod
    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Execute the command with given subcommand and arguments.

        Args:
            subcommand: The specific action to perform
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        pass

    def get_available_subcommands(self) -> List[str]:
        """Public methods other than the shared ones are subcommands."""
        shared = {'execute', 'get_available_subcommands', 'handle_error', 'run_async', 'print_result'}
        methods = []
        for attr_name in dir(self):
            if attr_name.startswith('_') or attr_name in shared:
                continue
            if callable(getattr(type(self), attr_name, None)):
                methods.append(attr_name)
        return methods

    def run_async(self, work: Callable[[], Awaitable[Any]], orchestrator=None) -> Any:
        """
        Run a coroutine to completion.

        When an orchestrator is given, the first Ctrl-C asks it to stop after
        the batch in flight instead of aborting the run.
        """
        if orchestrator is None:
            return asyncio.run(work())

        def _request_stop(signum, frame):
            orchestrator.request_stop()

        previous = signal.signal(signal.SIGINT, _request_stop)
        try:
            return asyncio.run(work())
        finally:
            signal.signal(signal.SIGINT, previous)

    def print_result(self, result: Dict[str, Any]) -> None:
        print(json.dumps(result, indent=2, ensure_ascii=False, default=str))

    def handle_error(self, error: Exception, context: str = "") -> int:
        """
        Standard error handling for commands.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            Appropriate exit code
        """
        error_msg = f"{context}: {error}" if context else str(error)

        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Command interrupted by user")
            return 130
        elif isinstance(error, ConfigurationError):
            self.logger.error(error_msg)
            return 78
        elif isinstance(error, NewsPipelineError):
            self.logger.error(f"{error_msg} {error.to_dict()}")
            return 1

        self.logger.error(error_msg, exc_info=True)
        if isinstance(error, ValueError):
            return 22
        return 1

    async def _close_services(self, *services: Optional[Any]) -> None:
        for service in services:
            if service is None:
                continue
            result = service.close()
            if asyncio.iscoroutine(result):
                await result
