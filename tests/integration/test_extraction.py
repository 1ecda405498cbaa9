import json
import logging

import pytest

from core.extraction import StructuredExtractor
from core.extraction.strategies import (
    BraceSliceStrategy,
    DirectJsonStrategy,
    ExtractionStrategy,
    FencedBlockStrategy,
    LineScanStrategy,
    MarkdownRecordStrategy,
    accept_document,
    default_strategies,
)

ARTICLES = [
    {"title": "Fed holds rates", "url": "https://example.com/fed", "relevance_score": 0.9},
    {"title": "Inventory climbs", "url": "https://example.com/inventory", "relevance_score": 0.7},
]


class RecordingStrategy(ExtractionStrategy):
    """Wraps a strategy and records whether it was invoked."""

    def __init__(self, inner: ExtractionStrategy, log: list) -> None:
        self.inner = inner
        self.log = log

    def get_name(self) -> str:
        return self.inner.get_name()

    def extract(self, text, single_object=False):
        self.log.append(self.get_name())
        return self.inner.extract(text, single_object=single_object)


def recording_extractor():
    log = []
    return StructuredExtractor([RecordingStrategy(s, log) for s in default_strategies()]), log


def test_strategy_order():
    names = [s.get_name() for s in default_strategies()]
    assert names == ["direct", "fenced", "brace_slice", "line_scan", "markdown"]


def test_valid_json_uses_only_direct_strategy():
    extractor, log = recording_extractor()

    records = extractor.extract(json.dumps(ARTICLES))

    assert records == ARTICLES
    assert log == ["direct"]


def test_valid_container_object_uses_only_direct_strategy():
    extractor, log = recording_extractor()

    records = extractor.extract(json.dumps({"articles": ARTICLES}))

    assert records == ARTICLES
    assert log == ["direct"]


@pytest.mark.parametrize("fence", ["```json", "```", "```JSON "])
def test_fenced_block_matches_unwrapped(fence):
    extractor = StructuredExtractor()
    body = json.dumps({"articles": ARTICLES}, indent=2)

    fenced = extractor.extract_with_report(f"{fence}\n{body}\n```")

    assert fenced.records == extractor.extract(body)
    assert fenced.strategy == "fenced"


def test_fenced_block_inside_prose():
    text = "Here is what I found:\n\n```json\n" + json.dumps(ARTICLES) + "\n```\n\nLet me know if you need more."

    report = StructuredExtractor().extract_with_report(text)

    assert report.records == ARTICLES
    assert report.strategy == "fenced"


def test_brace_slice_recovers_object_inside_prose():
    text = 'Sure! Here are the results: {"articles": ' + json.dumps(ARTICLES) + '} Hope this helps.'

    report = StructuredExtractor().extract_with_report(text)

    assert report.records == ARTICLES
    assert report.strategy == "brace_slice"


def test_brace_slice_recovers_bare_array_inside_prose():
    text = "Results follow. " + json.dumps(ARTICLES) + " End of results."

    assert BraceSliceStrategy().extract(text) == ARTICLES


def test_line_scan_recovers_first_object_when_slice_spans_two():
    text = (
        "First result:\n"
        '{"title": "Fed holds rates", "url": "https://example.com/fed"}\n'
        "Second result (unverified):\n"
        '{"title": "broken"\n'
        "}\n"
    )

    report = StructuredExtractor().extract_with_report(text)

    assert report.strategy == "line_scan"
    assert report.records == [{"title": "Fed holds rates", "url": "https://example.com/fed"}]


def test_free_text_returns_empty_list(caplog):
    caplog.set_level(logging.WARNING, logger="core.extraction.extractor")
    text = "I could not find any relevant news for this topic today. Please try again later."

    report = StructuredExtractor().extract_with_report(text)

    assert report.records == []
    assert not report.succeeded
    assert report.attempted == ["direct", "fenced", "brace_slice", "line_scan", "markdown"]
    assert "All extraction strategies failed" in caplog.text


@pytest.mark.parametrize("text", [None, "", "   \n", "{", "}{", "[1, 2", "```json\n{broken\n```"])
def test_malformed_input_never_raises(text):
    assert StructuredExtractor().extract(text) == []


def test_markdown_records_with_labels():
    text = (
        "## Mortgage news\n\n"
        "1. **Title:** Fed holds rates steady\n"
        "   **URL:** https://example.com/fed\n"
        "   **Summary:** The Federal Reserve left rates unchanged.\n"
        "   **Source:** [Reuters](https://reuters.com)\n"
        "2. **Title:** Housing inventory climbs\n"
        "   **URL:** [link](https://example.com/inventory)\n"
    )

    records = StructuredExtractor().extract(text)

    assert records == [
        {
            "title": "Fed holds rates steady",
            "url": "https://example.com/fed",
            "summary": "The Federal Reserve left rates unchanged.",
            "source": "Reuters",
        },
        {"title": "Housing inventory climbs", "url": "https://example.com/inventory"},
    ]


def test_markdown_heading_names_record_with_link():
    text = (
        "### Fed holds rates steady\n"
        "The Federal Reserve left rates unchanged. [Read more](https://example.com/fed)\n\n"
        "### Outlook\n"
        "Analysts expect cuts later this year.\n"
    )

    records = MarkdownRecordStrategy().extract(text)

    assert records == [{"title": "Fed holds rates steady", "url": "https://example.com/fed"}]


def test_markdown_strategy_skips_unstructured_text():
    assert MarkdownRecordStrategy().extract("plain text with https://example.com inside") is None


def test_single_object_mode():
    extractor = StructuredExtractor()
    text = 'Classification:\n```json\n{"matched_clusters": ["Fintech"], "confidence_score": 0.8}\n```'

    assert extractor.extract_object(text) == {"matched_clusters": ["Fintech"], "confidence_score": 0.8}
    assert extractor.extract_object("no json here") is None


def test_single_article_object_is_accepted_in_container_mode():
    record = {"headline": "Fed holds rates", "link": "https://example.com/fed"}
    assert DirectJsonStrategy().extract(json.dumps(record)) == [record]


def test_unrelated_object_is_rejected_in_container_mode():
    assert accept_document({"status": "ok"}, single_object=False) is None
    assert accept_document({"status": "ok"}, single_object=True) == [{"status": "ok"}]


def test_fenced_strategy_does_not_apply_without_fence():
    assert FencedBlockStrategy().extract(json.dumps(ARTICLES)) is None
    assert LineScanStrategy().extract("no braces at all") is None
