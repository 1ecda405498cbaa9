import pytest

from core.text_sanitizer import normalize_keyword, normalize_quotes, preview


def test_normalize_quotes():
    text = "“Rates” are ‘steady’ „today‚"
    assert normalize_quotes(text) == "\"Rates\" are 'steady' \"today'"


def test_normalize_quotes_passes_empty_text():
    assert normalize_quotes("") == ""
    assert normalize_quotes(None) is None


@pytest.mark.parametrize("raw,expected", [
    ("Mortgage Rates", "mortgage rates"),
    ("  30-Year   Fixed ", "30year fixed"),
    ("“FHA” loans!", "fha loans"),
    ("Fed's decision", "feds decision"),
    ("", ""),
])
def test_normalize_keyword(raw, expected):
    assert normalize_keyword(raw) == expected


def test_preview_flattens_and_truncates():
    text = "line one\n\nline two\t" + "x" * 200

    result = preview(text, limit=20)

    assert result == "line one line two xx..."
    assert "\n" not in result


def test_preview_short_text_unchanged():
    assert preview("short") == "short"
    assert preview("") == ""
