#!/usr/bin/env python3
"""
Perplexity integration for news search and classification calls.

Uses the OpenAI SDK against Perplexity's OpenAI-compatible chat completions
endpoint. Every call is bounded by a timeout, never retried automatically,
and reported to the usage telemetry recorder whether it succeeds or fails.
"""

import os
import time
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any

import openai
from openai import AsyncOpenAI

from core.exceptions import ConfigurationError, UpstreamUnavailable, UpstreamTimeout
from core.llm_logger import UsageTelemetryRecorder
from core.text_sanitizer import preview

logger = logging.getLogger(__name__)

PROVIDER_NAME = "perplexity"
DEFAULT_BASE_URL = "https://api.perplexity.ai"


@dataclass
class CompletionResult:
    """Text returned by one upstream call plus its token usage."""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    citations: List[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def total_tokens(self) -> int:
        return int(self.usage.get('total_tokens') or 0)


class PerplexityClient:
    """Async client for Perplexity chat completions."""

    def __init__(self,
                 api_key: Optional[str] = None,
                 model: str = "sonar",
                 base_url: str = DEFAULT_BASE_URL,
                 timeout: float = 60.0,
                 telemetry: Optional[UsageTelemetryRecorder] = None):
        """
        Initialize Perplexity client.

        Args:
            api_key: Perplexity API key. If None, tries PERPLEXITY_API_KEY.
            model: Default model for calls that do not name one
            base_url: API base url
            timeout: Per-request timeout in seconds
            telemetry: Recorder notified after every call
        """
        api_key = api_key or os.getenv('PERPLEXITY_API_KEY')
        if not api_key:
            raise ConfigurationError('PERPLEXITY_API_KEY', "API key not provided and not found in environment")

        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.model = model
        self.timeout = timeout
        self.max_tokens = 4000
        self.temperature = 0.2
        self.telemetry = telemetry

    async def complete(self,
                       prompt: str,
                       system_prompt: Optional[str] = None,
                       model: Optional[str] = None,
                       temperature: Optional[float] = None,
                       max_tokens: Optional[int] = None,
                       recency_filter: Optional[str] = None,
                       domain_filter: Optional[List[str]] = None,
                       function_name: str = "complete",
                       metadata: Optional[Dict[str, Any]] = None) -> CompletionResult:
        """
        Send one chat completion request.

        Args:
            prompt: User message
            system_prompt: Optional system message
            model: Model override
            temperature: Sampling temperature override
            max_tokens: Output size override
            recency_filter: Search recency hint (day, week, month, year)
            domain_filter: Search domain allow/deny list
            function_name: Operation name recorded in usage telemetry
            metadata: Extra context recorded in usage telemetry

        Returns:
            CompletionResult with the raw response text

        Raises:
            UpstreamTimeout: No answer within the timeout
            UpstreamUnavailable: The provider call failed
        """
        model = model or self.model
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        extra_body = {}
        if recency_filter:
            extra_body['search_recency_filter'] = recency_filter
        if domain_filter:
            extra_body['search_domain_filter'] = list(domain_filter)

        logger.info(f"Making Perplexity call for {function_name} with {model} ({len(prompt)} chars)")
        logger.debug(f"Prompt preview: {preview(prompt, 300)!r}")

        started_at = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=model,
                    messages=messages,
                    max_tokens=max_tokens or self.max_tokens,
                    temperature=self.temperature if temperature is None else temperature,
                    extra_body=extra_body or None,
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, openai.APITimeoutError):
            error = UpstreamTimeout(PROVIDER_NAME, model, self.timeout)
            logger.error(error.message)
            await self._record(function_name, model, None, started_at, prompt, "", error.message, metadata)
            raise error
        except openai.OpenAIError as e:
            error = UpstreamUnavailable(PROVIDER_NAME, model, e)
            logger.error(error.message)
            await self._record(function_name, model, None, started_at, prompt, "", error.message, metadata)
            raise error

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""

        usage = {}
        if response.usage is not None:
            usage = {
                'prompt_tokens': response.usage.prompt_tokens or 0,
                'completion_tokens': response.usage.completion_tokens or 0,
                'total_tokens': response.usage.total_tokens or 0,
            }

        duration_ms = int((time.monotonic() - started_at) * 1000)
        logger.info(
            f"Perplexity call successful - tokens: {usage.get('prompt_tokens', 'unknown')} prompt + "
            f"{usage.get('completion_tokens', 'unknown')} completion = {usage.get('total_tokens', 'unknown')} total "
            f"in {duration_ms} ms"
        )
        logger.debug(f"Response preview: {preview(content, 300)!r}")

        await self._record(function_name, model, usage, started_at, prompt, content, None, metadata)

        return CompletionResult(
            content=content,
            model=model,
            usage=usage,
            citations=list(getattr(response, 'citations', None) or []),
            duration_ms=duration_ms,
        )

    async def _record(self, function_name, model, usage, started_at, prompt, response, error, metadata):
        if self.telemetry is None:
            return
        record = self.telemetry.build_record(
            function_name=function_name,
            model=model,
            usage=usage,
            status="error" if error else "success",
            started_at=started_at,
            error=error,
            metadata=metadata,
        )
        await self.telemetry.record(record, prompt=prompt, response=response)

    async def close(self) -> None:
        await self.client.close()
