import pytest

from core.filtering import RelevanceFilter
from core.models.article import CandidateArticle


def make(score, index=0):
    return CandidateArticle(title=f"Article {index}", url=f"https://example.com/{index}", source="x",
                            relevance_score=score)


def test_threshold_keeps_original_order():
    articles = [make(0.9, 1), make(0.5, 2), make(0.7, 3)]

    outcome = RelevanceFilter(min_score=0.6, limit=10).apply(articles)

    assert [a.relevance_score for a in outcome.kept] == [0.9, 0.7]
    assert outcome.below_threshold == 1
    assert outcome.truncated == 0


def test_score_equal_to_threshold_is_kept():
    outcome = RelevanceFilter(min_score=0.6).apply([make(0.6)])
    assert len(outcome.kept) == 1


def test_unscored_items_pass_threshold():
    outcome = RelevanceFilter(min_score=0.8).apply([make(None, 1), make(0.2, 2)])

    assert [a.title for a in outcome.kept] == ["Article 1"]
    assert outcome.below_threshold == 1


def test_limit_truncates_after_threshold():
    articles = [make(0.9, i) for i in range(5)] + [make(0.1, 9)]

    outcome = RelevanceFilter(min_score=0.5, limit=3).apply(articles)

    assert [a.title for a in outcome.kept] == ["Article 0", "Article 1", "Article 2"]
    assert outcome.below_threshold == 1
    assert outcome.truncated == 2


def test_zero_disables_both_steps():
    articles = [make(0.0, i) for i in range(12)]

    outcome = RelevanceFilter(min_score=0.0, limit=0).apply(articles)

    assert outcome.kept == articles
    assert outcome.below_threshold == 0
    assert outcome.truncated == 0


@pytest.mark.parametrize("min_score,limit", [(-0.1, 0), (1.5, 0), (0.5, -1)])
def test_rejects_out_of_range_settings(min_score, limit):
    with pytest.raises(ValueError):
        RelevanceFilter(min_score=min_score, limit=limit)
