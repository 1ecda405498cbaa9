import asyncio

import pytest

from core.deduplication import DeduplicationGate
from core.exceptions import StorageFailure
from core.models.article import CandidateArticle


def candidate(url="https://example.com/fed", title="Fed holds rates"):
    return CandidateArticle(title=title, url=url, source="example.com", relevance_score=0.9)


def test_same_url_twice_in_one_run_inserts_once(store):
    gate = DeduplicationGate(store)

    async def run():
        return [await gate.admit(candidate()), await gate.admit(candidate(title="Fed holds rates (update)"))]

    results = asyncio.run(run())

    assert results == [True, False]
    assert len(store.news) == 1
    assert results.count(False) == 1


def test_url_already_stored_is_skipped(store):
    store.add_news("Existing", "https://example.com/fed")
    gate = DeduplicationGate(store)

    assert asyncio.run(gate.admit(candidate())) is False
    assert len(store.news) == 1


def test_unique_constraint_rejection_counts_as_duplicate(store):
    store.add_news("Existing", "https://example.com/fed")
    store.hide_existing_urls = True
    gate = DeduplicationGate(store)

    assert asyncio.run(gate.admit(candidate())) is False
    assert store.calls.count("insert_article") == 2


def test_failed_existence_check_falls_back_to_insert(store):
    store.fail_operations.add("url_exists")
    gate = DeduplicationGate(store)

    assert asyncio.run(gate.admit(candidate())) is True
    assert len(store.news) == 1


def test_insert_failure_propagates(store):
    store.fail_operations.add("insert_article")
    gate = DeduplicationGate(store)

    with pytest.raises(StorageFailure):
        asyncio.run(gate.admit(candidate()))


def test_url_from_failed_insert_is_not_treated_as_seen(store):
    store.fail_operations.add("insert_article")
    gate = DeduplicationGate(store)

    with pytest.raises(StorageFailure):
        asyncio.run(gate.admit(candidate()))

    store.fail_operations.clear()

    assert asyncio.run(gate.admit(candidate())) is True
    assert len(store.news) == 1


def test_reset_forgets_seen_urls(store):
    gate = DeduplicationGate(store)
    asyncio.run(gate.admit(candidate()))
    store.news.clear()

    gate.reset()

    assert asyncio.run(gate.is_duplicate("https://example.com/fed")) is False


def test_persisted_record_shape(store):
    gate = DeduplicationGate(store)
    asyncio.run(gate.admit(candidate()))

    row = next(iter(store.news.values()))
    assert row["headline"] == "Fed holds rates"
    assert row["url"] == "https://example.com/fed"
    assert row["perplexity_score"] == 0.9
    assert row["destinations"] == []
