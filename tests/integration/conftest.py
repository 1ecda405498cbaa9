import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Union

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from core.database.store import NewsStore  # noqa: E402
from core.exceptions import DuplicateConflict, StorageFailure, UpstreamUnavailable  # noqa: E402
from core.models.analysis import ClusterDefinition  # noqa: E402
from integrations.perplexity_client import CompletionResult  # noqa: E402


class FakeNewsStore(NewsStore):
    """In-memory store with a url unique constraint and switchable failures."""

    def __init__(self) -> None:
        self.news: Dict[int, Dict[str, Any]] = {}
        self.clusters: List[Dict[str, Any]] = []
        self.tracked: Dict[int, Dict[str, Any]] = {}
        self.prompts: List[Dict[str, Any]] = []
        self.usage: List[Dict[str, Any]] = []
        self.fail_operations: Set[str] = set()
        self.fail_increment_ids: Set[Any] = set()
        self.hide_existing_urls = False
        self.calls: List[str] = []
        self._next_id = 1

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_operations:
            raise StorageFailure(operation, "fake", RuntimeError(f"{operation} unavailable"))

    # Articles

    def url_exists(self, url: str) -> bool:
        self._enter("url_exists")
        if self.hide_existing_urls:
            return False
        return any(row["url"] == url for row in self.news.values())

    def insert_article(self, record: Dict[str, Any]) -> Dict[str, Any]:
        self._enter("insert_article")
        if any(row["url"] == record["url"] for row in self.news.values()):
            raise DuplicateConflict("news", record["url"])
        row = dict(record, id=self._next_id, keywords_analyzed_at=None)
        self.news[self._next_id] = row
        self._next_id += 1
        return row

    def add_news(self, headline: str, url: str, summary: str = "", **extra: Any) -> Dict[str, Any]:
        row = {
            "headline": headline,
            "url": url,
            "summary": summary,
            "source": "example.com",
            "matched_clusters": None,
            "keywords_analyzed_at": None,
        }
        row.update(extra)
        return self.insert_article(row)

    def get_unclassified_articles(self, limit: int) -> List[Dict[str, Any]]:
        self._enter("get_unclassified_articles")
        rows = [row for row in self.news.values() if row.get("matched_clusters") is None]
        return [dict(row) for row in rows[:limit]]

    def save_classification(self, article_id: Any, update: Dict[str, Any]) -> None:
        self._enter("save_classification")
        self.news[article_id].update(update)

    def get_unanalyzed_articles(self, limit: int) -> List[Dict[str, Any]]:
        self._enter("get_unanalyzed_articles")
        rows = [row for row in self.news.values() if row.get("keywords_analyzed_at") is None]
        return [dict(row) for row in rows[:limit]]

    def mark_keywords_analyzed(self, article_id: Any, keywords: List[str]) -> None:
        self._enter("mark_keywords_analyzed")
        self.news[article_id]["extracted_keywords"] = list(keywords)
        self.news[article_id]["keywords_analyzed_at"] = datetime.utcnow().isoformat()

    # Taxonomy and tracked keywords

    def get_clusters(self) -> List[Dict[str, Any]]:
        self._enter("get_clusters")
        return [dict(row) for row in self.clusters]

    def add_tracked(self, keyword: str, status: str = "active", article_count: int = 0) -> int:
        keyword_id = len(self.tracked) + 1
        self.tracked[keyword_id] = {
            "id": keyword_id,
            "keyword": keyword,
            "status": status,
            "article_count": article_count,
            "last_matched_date": None,
        }
        return keyword_id

    def get_active_tracked_keywords(self) -> List[Dict[str, Any]]:
        self._enter("get_active_tracked_keywords")
        return [dict(row) for row in self.tracked.values() if row["status"] == "active"]

    def increment_keyword_count(self, keyword_id: Any, matched_at: datetime) -> None:
        self._enter("increment_keyword_count")
        if keyword_id in self.fail_increment_ids:
            raise StorageFailure("increment_keyword_count", "keyword_tracking", RuntimeError("row locked"))
        row = self.tracked[keyword_id]
        row["article_count"] += 1
        row["last_matched_date"] = matched_at

    # Prompts

    def get_prompt(self, prompt_id: Optional[Any] = None) -> Optional[Dict[str, Any]]:
        self._enter("get_prompt")
        if prompt_id is not None:
            return next((dict(p) for p in self.prompts if p["id"] == prompt_id), None)
        active = [p for p in self.prompts if p.get("is_active") and p.get("function_name") == "news_search"]
        return dict(active[-1]) if active else None

    # Usage telemetry

    def append_usage_record(self, record: Dict[str, Any]) -> None:
        self._enter("append_usage_record")
        self.usage.append(dict(record))

    def get_usage_summary(self, since: datetime) -> List[Dict[str, Any]]:
        self._enter("get_usage_summary")
        return [dict(row) for row in self.usage if row["created_at"] >= since.isoformat()]


Response = Union[str, Exception, Callable[[str], str]]


class FakeSearchClient:
    """Returns queued responses in order; exceptions in the queue are raised."""

    def __init__(self, responses: Optional[List[Response]] = None, default: Optional[Response] = None) -> None:
        self.responses: List[Response] = list(responses or [])
        self.default = default
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    async def complete(self, prompt: str, **kwargs: Any) -> CompletionResult:
        self.calls.append({"prompt": prompt, **kwargs})
        response = self.responses.pop(0) if self.responses else self.default
        if response is None:
            raise UpstreamUnavailable("fake", kwargs.get("model") or "sonar", RuntimeError("no response queued"))
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(prompt)
        return CompletionResult(
            content=response,
            model=kwargs.get("model") or "sonar",
            usage={"prompt_tokens": 100, "completion_tokens": 50, "total_tokens": 150},
        )

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def store() -> FakeNewsStore:
    return FakeNewsStore()


@pytest.fixture
def search_client_factory():
    def _factory(responses: Optional[List[Response]] = None, default: Optional[Response] = None) -> FakeSearchClient:
        return FakeSearchClient(responses, default)

    return _factory


@pytest.fixture
def cluster_rows() -> List[Dict[str, Any]]:
    return [
        {"primary_theme": "Market Trends", "sub_theme": "Interest Rates", "keywords": ["mortgage rate", "Fed"]},
        {"primary_theme": "Market Trends", "sub_theme": "Housing Supply", "keywords": ["inventory", "new construction"]},
        {"primary_theme": "Technology", "sub_theme": "Fintech", "keywords": ["digital mortgage", "AI underwriting"]},
    ]


@pytest.fixture
def clusters(cluster_rows) -> List[ClusterDefinition]:
    return [ClusterDefinition.from_row(row) for row in cluster_rows]
