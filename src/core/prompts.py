#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
News search prompts.

Builds the prompt sent to the search provider for one ingestion call, either
from the built-in template or from a stored llm_prompts row. Stored prompts
may start with a metadata block holding search setting overrides:

    /*
    {"search_settings": {"recency_filter": "week", "temperature": 0.1}}
    */
"""

import re
import json
import logging
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Sequence

from .models.analysis import ClusterDefinition

logger = logging.getLogger(__name__)

QUERY_PLACEHOLDER = "[QUERY]"
METADATA_BLOCK = re.compile(r'^\s*/\*\n(.*?)\n\*/\n?', re.DOTALL)

SEARCH_SYSTEM_PROMPT = "You are a research assistant that helps find relevant news articles."

DEFAULT_SEARCH_TEMPLATE = """Search for the latest news and developments related to the following topics in the mortgage and housing industry: [QUERY]

Please return information in the following format for each article:
{
  "articles": [
    {
      "title": "Article title",
      "url": "https://article-url.com",
      "source": "Source name",
      "summary": "A brief summary of the article",
      "relevance_score": 0.95,
      "matched_clusters": ["Primary Theme: Sub Theme"]
    }
  ]
}"""

DEFAULT_SEARCH_SETTINGS = {
    'temperature': 0.2,
    'max_tokens': 1000,
    'recency_filter': 'day',
    'domain_filter': None,
}


@dataclass
class SearchPrompt:
    """A search prompt template with its model and search settings."""
    template: str = DEFAULT_SEARCH_TEMPLATE
    model: Optional[str] = None
    include_clusters: bool = False
    search_settings: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_SEARCH_SETTINGS))
    prompt_id: Optional[Any] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'SearchPrompt':
        """Create from an llm_prompts row, reading the optional metadata block."""
        text = row.get('prompt_text') or ''
        settings = dict(DEFAULT_SEARCH_SETTINGS)

        match = METADATA_BLOCK.match(text)
        if match:
            try:
                metadata = json.loads(match.group(1))
            except ValueError as e:
                logger.warning(f"Ignoring unparseable metadata in prompt {row.get('id')}: {e}")
                metadata = {}
            if isinstance(metadata, dict) and isinstance(metadata.get('search_settings'), dict):
                settings.update(metadata['search_settings'])
            text = text[match.end():]

        return cls(
            template=text.strip() or DEFAULT_SEARCH_TEMPLATE,
            model=row.get('model') or None,
            include_clusters=bool(row.get('include_clusters')),
            search_settings=settings,
            prompt_id=row.get('id'),
        )

    @property
    def temperature(self) -> float:
        value = self.search_settings.get('temperature')
        return float(DEFAULT_SEARCH_SETTINGS['temperature'] if value is None else value)

    @property
    def max_tokens(self) -> int:
        value = self.search_settings.get('max_tokens')
        return int(DEFAULT_SEARCH_SETTINGS['max_tokens'] if value is None else value)

    @property
    def recency_filter(self) -> Optional[str]:
        return self.search_settings.get('recency_filter') or None

    @property
    def domain_filter(self) -> Optional[List[str]]:
        """Domain list, or None when unset or left to the provider ('auto')."""
        value = self.search_settings.get('domain_filter')
        if not value or value == 'auto':
            return None
        if isinstance(value, str):
            return [part.strip() for part in value.split(',') if part.strip()]
        return [str(part) for part in value]

    def render(self, keywords: Sequence[str], clusters: Sequence[ClusterDefinition] = ()) -> str:
        """Fill in the keywords and, when enabled, the cluster context."""
        keywords = [k.strip() for k in keywords if k and k.strip()]
        prompt = self.template

        if self.include_clusters and clusters:
            context = format_cluster_context(clusters, self.search_settings.get('selected_themes'))
            if context:
                prompt += "\n\nRELEVANT KEYWORD CLUSTERS:\n" + context

        if QUERY_PLACEHOLDER in prompt:
            return prompt.replace(QUERY_PLACEHOLDER, ", ".join(keywords))

        if len(keywords) == 1:
            keyword_block = keywords[0]
        else:
            keyword_block = "\n".join(f"{i}. {k}" for i, k in enumerate(keywords, 1))
        return f"{prompt}\n\nKEYWORDS: {keyword_block}"


def format_cluster_context(clusters: Sequence[ClusterDefinition],
                           selected_themes: Optional[Dict[str, List[str]]] = None) -> str:
    """
    Cluster lines for a search prompt, one 'primary > sub: keywords' per cluster.

    selected_themes ({"primary": [...], "sub": [...]}) narrows the list.
    """
    selected = clusters
    if selected_themes:
        primaries = set(selected_themes.get('primary') or [])
        subs = set(selected_themes.get('sub') or [])
        selected = [c for c in clusters if c.primary_theme in primaries or c.sub_theme in subs]

    return "\n".join(
        f"{c.primary_theme} > {c.sub_theme}: {', '.join(c.keywords)}" for c in selected
    )
