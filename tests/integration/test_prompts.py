from core.models.analysis import ClusterDefinition
from core.prompts import DEFAULT_SEARCH_TEMPLATE, QUERY_PLACEHOLDER, SearchPrompt, format_cluster_context

CLUSTERS = [
    ClusterDefinition("Market Trends", "Interest Rates", ("mortgage rate", "Fed")),
    ClusterDefinition("Technology", "Fintech", ("digital mortgage",)),
]


def test_default_prompt_replaces_query_placeholder():
    prompt = SearchPrompt()

    text = prompt.render(["mortgage rates", "housing market"])

    assert QUERY_PLACEHOLDER in DEFAULT_SEARCH_TEMPLATE
    assert QUERY_PLACEHOLDER not in text
    assert "mortgage rates, housing market" in text


def test_template_without_placeholder_appends_keywords():
    assert SearchPrompt(template="Find news.").render(["rates"]) == "Find news.\n\nKEYWORDS: rates"
    assert SearchPrompt(template="Find news.").render(["rates", "fha"]) == "Find news.\n\nKEYWORDS: 1. rates\n2. fha"


def test_cluster_context_only_when_enabled():
    plain = SearchPrompt(template="Q: [QUERY]").render(["rates"], CLUSTERS)
    with_clusters = SearchPrompt(template="Q: [QUERY]", include_clusters=True).render(["rates"], CLUSTERS)

    assert "RELEVANT KEYWORD CLUSTERS" not in plain
    assert "RELEVANT KEYWORD CLUSTERS:\nMarket Trends > Interest Rates: mortgage rate, Fed" in with_clusters
    assert with_clusters.startswith("Q: rates")


def test_selected_themes_narrow_cluster_context():
    context = format_cluster_context(CLUSTERS, {"primary": ["Technology"], "sub": []})
    assert context == "Technology > Fintech: digital mortgage"


def test_from_row_reads_metadata_block():
    prompt = SearchPrompt.from_row({
        "id": 3,
        "model": "sonar-pro",
        "include_clusters": True,
        "prompt_text": '/*\n{"search_settings": {"domain_filter": "housingwire.com, reuters.com", "max_tokens": 2000}}\n*/\nNews on [QUERY]',
    })

    assert prompt.template == "News on [QUERY]"
    assert prompt.prompt_id == 3
    assert prompt.model == "sonar-pro"
    assert prompt.include_clusters is True
    assert prompt.domain_filter == ["housingwire.com", "reuters.com"]
    assert prompt.max_tokens == 2000
    assert prompt.recency_filter == "day"


def test_from_row_ignores_broken_metadata():
    prompt = SearchPrompt.from_row({"id": 4, "prompt_text": "/*\n{not json}\n*/\nNews on [QUERY]"})

    assert prompt.template == "News on [QUERY]"
    assert prompt.temperature == 0.2


def test_auto_domain_filter_means_none():
    prompt = SearchPrompt(search_settings={"domain_filter": "auto"})
    assert prompt.domain_filter is None


def test_empty_stored_text_falls_back_to_default_template():
    assert SearchPrompt.from_row({"id": 5, "prompt_text": ""}).template == DEFAULT_SEARCH_TEMPLATE


def test_zero_settings_are_kept():
    prompt = SearchPrompt.from_row({
        "id": 5,
        "prompt_text": '/*\n{"search_settings": {"temperature": 0, "max_tokens": 0}}\n*/\nNews on [QUERY]',
    })

    assert prompt.temperature == 0.0
    assert prompt.max_tokens == 0
