import asyncio
import json

import pytest

from core.analysis import ClusterAnalysisJob, ClusterClassifier, KeywordExtractor, KeywordTrackingJob
from core.exceptions import ConfigurationError, ExtractionFailure, UpstreamUnavailable
from core.orchestration import BatchOrchestrator
from core.tracking import KeywordTrackingAggregator


def fast_orchestrator(batch_size=5):
    return BatchOrchestrator(batch_size=batch_size, batch_delay=0)


def cluster_job(store, client, batch_size=5):
    return ClusterAnalysisJob(store, ClusterClassifier(client=client), orchestrator=fast_orchestrator(batch_size))


def keyword_job(store, client):
    return KeywordTrackingJob(
        store,
        KeywordExtractor(client),
        KeywordTrackingAggregator(store),
        orchestrator=fast_orchestrator(),
    )


def seed_news(store, count):
    return [store.add_news(f"Headline {i}", f"https://example.com/{i}", f"Summary {i}")["id"] for i in range(count)]


def test_cluster_job_requires_taxonomy(store, search_client_factory):
    seed_news(store, 2)

    with pytest.raises(ConfigurationError):
        asyncio.run(cluster_job(store, search_client_factory()).run())


def test_cluster_job_classifies_backlog(store, search_client_factory, cluster_rows):
    store.clusters = cluster_rows
    ids = seed_news(store, 3)
    client = search_client_factory([
        json.dumps({"matched_clusters": ["Interest Rates"], "confidence_score": 0.9, "rationale": "rates"}),
        "no idea",
        UpstreamUnavailable("perplexity", "sonar", RuntimeError("503")),
    ])

    report = asyncio.run(cluster_job(store, client).run(max_items=10))

    assert report.tally.total == 3
    assert report.tally.succeeded == 2
    assert report.tally.failed == 1
    assert report.counters == {"classified": 1, "inconclusive": 1}
    classified = [store.news[i] for i in ids if store.news[i]["matched_clusters"] is not None]
    assert len(classified) == 2
    # The failed item stays in the backlog for the next run
    assert len(store.get_unclassified_articles(10)) == 1


def test_cluster_job_prompt_includes_item_text(store, search_client_factory, cluster_rows):
    store.clusters = cluster_rows
    seed_news(store, 1)
    client = search_client_factory(default=json.dumps({"matched_clusters": [], "confidence_score": 0.1}))

    asyncio.run(cluster_job(store, client).run())

    assert "Headline 0\n\nSummary 0" in client.calls[0]["prompt"]
    assert client.calls[0]["metadata"] == {"news_id": 1}


def test_cluster_job_respects_max_items(store, search_client_factory, cluster_rows):
    store.clusters = cluster_rows
    seed_news(store, 12)
    client = search_client_factory(default=json.dumps({"matched_clusters": [], "confidence_score": 0.1}))

    report = asyncio.run(cluster_job(store, client, batch_size=5).run(max_items=12))

    assert report.tally.batch_sizes == [5, 5, 2]
    assert report.to_dict()["total"] == 12


def test_keyword_job_counts_tracked_matches(store, search_client_factory):
    mortgage = store.add_tracked("mortgage rate")
    crypto = store.add_tracked("crypto")
    ids = seed_news(store, 2)
    client = search_client_factory([
        json.dumps({"extracted_keywords": ["mortgage rates", "Fed policy", "mortgage rate"]}),
        json.dumps({"keywords": ["housing inventory"]}),
    ])

    report = asyncio.run(keyword_job(store, client).run())

    assert report.tally.succeeded == 2
    assert report.counters == {"analyzed": 2, "increments": 1}
    assert store.tracked[mortgage]["article_count"] == 1
    assert store.tracked[crypto]["article_count"] == 0
    assert store.news[ids[0]]["extracted_keywords"] == ["mortgage rates", "Fed policy", "mortgage rate"]
    assert all(store.news[i]["keywords_analyzed_at"] for i in ids)


def test_keyword_job_leaves_unparseable_item_unanalyzed(store, search_client_factory):
    store.add_tracked("mortgage rate")
    ids = seed_news(store, 1)
    client = search_client_factory(["Here are some keywords: rates, housing"])

    report = asyncio.run(keyword_job(store, client).run())

    assert report.tally.failed == 1
    assert store.news[ids[0]]["keywords_analyzed_at"] is None


def test_keyword_job_does_not_count_twice_when_increment_fails(store, search_client_factory):
    mortgage = store.add_tracked("mortgage rate")
    store.fail_increment_ids.add(mortgage)
    seed_news(store, 1)
    client = search_client_factory(default=json.dumps({"extracted_keywords": ["mortgage rate"]}))
    job = keyword_job(store, client)

    first = asyncio.run(job.run())
    second = asyncio.run(job.run())

    assert first.tally.failed == 1
    assert second.tally.total == 0
    assert len(client.calls) == 1


def test_keyword_job_without_tracked_keywords_does_nothing(store, search_client_factory):
    seed_news(store, 3)
    client = search_client_factory()

    report = asyncio.run(keyword_job(store, client).run())

    assert report.tally.total == 0
    assert client.calls == []


def test_keyword_extractor_dedupes_and_caps(search_client_factory):
    client = search_client_factory([json.dumps({"extracted_keywords": ["Rates", "rates", " ", 5, "Housing", "FHA"]})])

    keywords = asyncio.run(KeywordExtractor(client, max_keywords=2).extract("text"))

    assert keywords == ["Rates", "Housing"]
    assert client.calls[0]["function_name"] == "analyze_article_content"


def test_keyword_extractor_raises_on_missing_list(search_client_factory):
    client = search_client_factory([json.dumps({"topics": "rates"})])

    with pytest.raises(ExtractionFailure):
        asyncio.run(KeywordExtractor(client).extract("text"))
