"""Shared fixtures: in-memory stores and a scripted AI provider."""
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import pytest

from pulsereader.config import SourceConfig
from pulsereader.enrichment.models import AnalysisInput, AnalysisResult
from pulsereader.enrichment.provider import EnrichmentProvider
from pulsereader.errors import DuplicateArticleError, ProviderError, StoreError
from pulsereader.ingestion import FeedItem
from pulsereader.models import Article, ArticleAnalysis, NewArticle, Source, Topic
from pulsereader.pipeline.interfaces import ArticleStore, SourceRegistry, TopicStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeSourceRegistry(SourceRegistry):
    """Sources kept in a dict, with every mark_fetch_results call recorded."""

    def __init__(self, sources: Sequence[Source] = ()) -> None:
        self.sources: Dict[int, Source] = {s.id: s for s in sources}
        self.mark_calls: List[tuple] = []
        self.fail_mark = False

    def list_active_sources(self) -> List[Source]:
        return [s for s in self.sources.values() if s.is_active]

    def mark_fetch_results(self, succeeded_ids, failures, fetched_at) -> None:
        self.mark_calls.append((list(succeeded_ids), dict(failures), fetched_at))
        if self.fail_mark:
            raise StoreError("update failed")
        for source_id in succeeded_ids:
            source = self.sources[source_id]
            self.sources[source_id] = source.model_copy(
                update={"last_fetched_at": fetched_at, "last_error": None}
            )
        for source_id, error in failures.items():
            self.sources[source_id] = self.sources[source_id].model_copy(update={"last_error": error})

    def sync_sources(self, sources: Sequence[SourceConfig]) -> Dict[str, int]:
        by_url = {s.url: s for s in self.sources.values()}
        result = {}
        for config in sources:
            existing = by_url.get(config.url)
            source_id = existing.id if existing else len(self.sources) + 1
            self.sources[source_id] = Source(
                id=source_id, name=config.name, url=config.url, is_active=config.enabled
            )
            result[config.url] = source_id
        return result


class FakeArticleStore(ArticleStore):
    """Articles unique by link, with switches to make inserts fail."""

    def __init__(self) -> None:
        self.articles: Dict[int, Article] = {}
        self.topic_links: Dict[int, List[int]] = {}
        self.batch_calls = 0
        self.single_calls = 0
        self.apply_calls = 0
        self.fail_batches = False
        self.fail_links: set = set()
        self.fail_apply = False

    def _create(self, command: NewArticle) -> Article:
        article = Article(id=len(self.articles) + 1, created_at=NOW, **command.model_dump())
        self.articles[article.id] = article
        return article

    def links(self) -> List[str]:
        return [a.link for a in self.articles.values()]

    def seed(self, link: str, source_id: int = 1) -> Article:
        return self._create(
            NewArticle(source_id=source_id, title="Existing", link=link, publication_date=NOW)
        )

    def insert_articles(self, commands: Sequence[NewArticle]) -> List[Article]:
        self.batch_calls += 1
        if self.fail_batches:
            raise StoreError("batch insert rejected")
        created = []
        for command in commands:
            if command.link not in self.links():
                created.append(self._create(command))
        return created

    def insert_article(self, command: NewArticle) -> Article:
        self.single_calls += 1
        if command.link in self.fail_links:
            raise StoreError(f"cannot store {command.link}")
        if command.link in self.links():
            raise DuplicateArticleError(f"duplicate {command.link}")
        return self._create(command)

    def apply_analyses(self, analyses: Sequence[ArticleAnalysis]) -> None:
        self.apply_calls += 1
        if self.fail_apply:
            raise StoreError("write-back failed")
        for analysis in analyses:
            article = self.articles[analysis.article_id]
            self.articles[article.id] = article.model_copy(update={"sentiment": analysis.sentiment})
            links = self.topic_links.setdefault(article.id, [])
            links.extend(t for t in analysis.topic_ids if t not in links)

    def list_unanalyzed(self, limit: int) -> List[Article]:
        pending = [a for a in self.articles.values() if a.sentiment is None]
        return pending[:limit]


class FakeTopicStore(TopicStore):
    """Topics keyed by lowercased name."""

    def __init__(self) -> None:
        self.topics: Dict[str, Topic] = {}
        self.calls = 0

    def find_by_name(self, name: str) -> Optional[Topic]:
        return self.topics.get(name.strip().lower())

    def find_or_create_many(self, names: Sequence[str]) -> Dict[str, Topic]:
        self.calls += 1
        result = {}
        for name in names:
            key = name.strip().lower()
            if key not in self.topics:
                self.topics[key] = Topic(id=len(self.topics) + 1, name=name.strip())
            result[key] = self.topics[key]
        return result


class FakeProvider(EnrichmentProvider):
    """Provider returning canned results, optionally failing."""

    def __init__(self, sentiment: str = "positive", topics: Sequence[str] = ("politics",)) -> None:
        self.result = AnalysisResult(sentiment=sentiment, topics=list(topics))
        self.batch_calls: List[List[int]] = []
        self.single_calls: List[int] = []
        self.fail_batch = False
        self.fail_ids: set = set()
        self.omit_ids: set = set()

    def analyze_article(self, item: AnalysisInput) -> AnalysisResult:
        self.single_calls.append(item.article_id)
        if item.article_id in self.fail_ids:
            raise ProviderError("provider timed out")
        return self.result

    def analyze_batch(self, items: Sequence[AnalysisInput]) -> Dict[int, AnalysisResult]:
        self.batch_calls.append([i.article_id for i in items])
        if self.fail_batch:
            raise ProviderError("batch rejected")
        return {i.article_id: self.result for i in items if i.article_id not in self.omit_ids}


async def no_sleep(_seconds: float) -> None:
    return None


def make_source(source_id: int = 1, name: str = "Feed", last_fetched_at=None, **kwargs) -> Source:
    return Source(
        id=source_id,
        name=name,
        url=f"https://example.com/{source_id}/rss",
        last_fetched_at=last_fetched_at,
        **kwargs,
    )


def make_items(count: int, prefix: str = "https://example.com/a") -> List[FeedItem]:
    return [
        FeedItem(
            title=f"Story {i}",
            link=f"{prefix}/{i}",
            publication_date=NOW,
            description=f"Description {i}",
        )
        for i in range(count)
    ]


@pytest.fixture
def article_store() -> FakeArticleStore:
    return FakeArticleStore()


@pytest.fixture
def topic_store() -> FakeTopicStore:
    return FakeTopicStore()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()
