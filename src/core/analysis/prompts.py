#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Prompts for follow-up analysis of stored news items.

Centralizes the cluster classification and keyword extraction prompts used
by the backlog jobs.
"""

from typing import Sequence

from ..models.analysis import ClusterDefinition


class ClassificationPrompts:
    """Prompt templates for classification and keyword extraction calls."""

    CLUSTER_SYSTEM_PROMPT = (
        "You are a specialized AI that analyzes mortgage industry news and categorizes content "
        "into predefined clusters. Respond only with valid JSON. No markdown formatting, "
        "explanations, or additional text."
    )

    KEYWORD_SYSTEM_PROMPT = (
        "You are an expert content analyst for mortgage industry publications. "
        "Always respond with valid JSON only, no markdown formatting."
    )

    CLUSTER_TEMPLATE = """Analyze this mortgage industry news content and match it to the most relevant keyword clusters.
Only assign clusters that are truly relevant.

NEWS CONTENT:
{content}

AVAILABLE CLUSTERS:
{clusters}

Return your answer in this JSON format:
{{
  "matched_clusters": ["Primary Theme: Sub Theme", "Primary Theme: Sub Theme"],
  "confidence_score": 0.85,
  "rationale": "Brief explanation of why these clusters match"
}}"""

    KEYWORD_TEMPLATE = """Extract the key topics and search keywords discussed in this news item.
Use short noun phrases of one to four words, most important first, at most {max_keywords}.

NEWS CONTENT:
{content}

Return your answer in this JSON format:
{{
  "extracted_keywords": ["keyword one", "keyword two"]
}}"""

    @staticmethod
    def format_taxonomy(clusters: Sequence[ClusterDefinition]) -> str:
        """One 'primary: sub (kw1, kw2)' line per cluster."""
        return "\n".join(cluster.describe() for cluster in clusters)

    @classmethod
    def cluster_prompt(cls, content: str, clusters: Sequence[ClusterDefinition]) -> str:
        return cls.CLUSTER_TEMPLATE.format(content=content, clusters=cls.format_taxonomy(clusters))

    @classmethod
    def keyword_prompt(cls, content: str, max_keywords: int = 15) -> str:
        return cls.KEYWORD_TEMPLATE.format(content=content, max_keywords=max_keywords)
