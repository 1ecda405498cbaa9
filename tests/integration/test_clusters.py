import asyncio
import json

import pytest

from core.analysis import ClassificationPrompts, ClusterClassifier, merge_labels
from core.exceptions import UpstreamUnavailable
from core.models.analysis import INLINE_CONFIDENCE, ClassificationResult, ClusterDefinition


def test_cluster_definition_from_row():
    cluster = ClusterDefinition.from_row({"primary_theme": " Technology ", "sub_theme": "Fintech",
                                          "keywords": ["digital mortgage", "", None, " AI "]})

    assert cluster.label == "Technology: Fintech"
    assert cluster.keywords == ("digital mortgage", "AI")
    assert cluster.describe() == "Technology: Fintech (digital mortgage, AI)"


def test_taxonomy_lines_in_prompt(clusters):
    prompt = ClassificationPrompts.cluster_prompt("Fed holds rates", clusters)

    assert "Market Trends: Interest Rates (mortgage rate, Fed)" in prompt
    assert "NEWS CONTENT:\nFed holds rates" in prompt
    assert ClusterDefinition("A", "B").describe() == "A: B (No keywords)"


def test_inline_classification_matches_keywords_case_insensitively(clusters):
    result = ClusterClassifier().classify_inline(
        "Lenders roll out AI Underwriting", "Mortgage rate volatility pushes digital tools", clusters
    )

    assert result.matched_clusters == ["Market Trends: Interest Rates", "Technology: Fintech"]
    assert result.confidence_score == INLINE_CONFIDENCE
    assert result.method == "inline"


def test_inline_classification_without_matches(clusters):
    result = ClusterClassifier().classify_inline("Local sports roundup", "", clusters)
    assert result.matched_clusters == []


def test_merge_labels_keeps_first_occurrence():
    assert merge_labels(["A: B", "C: D"], ["c: d", "E: F"]) == ["A: B", "C: D", "E: F"]


def test_canonical_labels(clusters):
    classifier = ClusterClassifier()

    labels = classifier.canonical_labels(
        ["market trends: interest rates", "Fintech", "Technology > Fintech", "Unknown: Theme", 7],
        clusters,
    )

    assert labels == ["Market Trends: Interest Rates", "Technology: Fintech"]
    assert classifier.canonical_labels("Housing Supply", clusters) == ["Market Trends: Housing Supply"]
    assert classifier.canonical_labels(None, clusters) == []


def test_upstream_classification(clusters, search_client_factory):
    client = search_client_factory([json.dumps({
        "matched_clusters": ["Market Trends: Interest Rates", "Made Up: Cluster"],
        "confidence_score": 0.85,
        "rationale": "Discusses the Fed decision",
    })])
    classifier = ClusterClassifier(client=client, model="sonar-pro")

    result = asyncio.run(classifier.classify("Fed holds rates", clusters, metadata={"news_id": 1}))

    assert result.matched_clusters == ["Market Trends: Interest Rates"]
    assert result.confidence_score == 0.85
    assert result.rationale == "Discusses the Fed decision"
    assert result.method == "llm"
    assert client.calls[0]["function_name"] == "analyze_news_clusters"
    assert client.calls[0]["model"] == "sonar-pro"


def test_fenced_classifier_response(clusters, search_client_factory):
    body = json.dumps({"matched_clusters": ["Fintech"], "confidence_score": 2})
    client = search_client_factory([f"```json\n{body}\n```"])

    result = asyncio.run(ClusterClassifier(client=client).classify("text", clusters))

    assert result.matched_clusters == ["Technology: Fintech"]
    assert result.confidence_score == 1.0


def test_unparseable_response_is_inconclusive(clusters, search_client_factory):
    client = search_client_factory(["I am not sure which clusters apply here."])

    result = asyncio.run(ClusterClassifier(client=client).classify("text", clusters))

    assert result.is_inconclusive
    assert result.matched_clusters == []
    assert result.confidence_score == 0.0
    assert "Could not classify" in result.rationale


def test_upstream_failure_propagates(clusters, search_client_factory):
    client = search_client_factory([UpstreamUnavailable("perplexity", "sonar", RuntimeError("503"))])

    with pytest.raises(UpstreamUnavailable):
        asyncio.run(ClusterClassifier(client=client).classify("text", clusters))


def test_result_update_overwrites_classification_columns():
    update = ClassificationResult(["A: B"], 0.7, "because").to_update()

    assert update["matched_clusters"] == ["A: B"]
    assert update["cluster_confidence_score"] == 0.7
    assert update["cluster_analysis_rationale"] == "because"
    assert "cluster_analysis_timestamp" in update
