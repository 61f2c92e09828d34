"""Collaborator interfaces consumed by the pipeline."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import SourceConfig
from ..models import Article, ArticleAnalysis, NewArticle, Source, Topic


class SourceRegistry(ABC):
    """Read active sources and record fetch outcomes."""

    @abstractmethod
    def list_active_sources(self) -> List[Source]:
        """Return every active source."""

    @abstractmethod
    def mark_fetch_results(
        self,
        succeeded_ids: Sequence[int],
        failures: Dict[int, str],
        fetched_at: datetime,
    ) -> None:
        """
        Record the outcome of a run in a single operation.

        Succeeded sources get last_fetched_at advanced and last_error cleared;
        failed sources only get last_error set.
        """

    @abstractmethod
    def sync_sources(self, sources: Sequence[SourceConfig]) -> Dict[str, int]:
        """Upsert configured sources by feed URL. Returns url -> id."""


class ArticleStore(ABC):
    """Article persistence with a uniqueness constraint on link."""

    @abstractmethod
    def insert_articles(self, commands: Sequence[NewArticle]) -> List[Article]:
        """
        Insert a batch in one operation, skipping existing links.

        Returns only the rows that were newly created.
        """

    @abstractmethod
    def insert_article(self, command: NewArticle) -> Article:
        """Insert one article. Raises DuplicateArticleError on a link conflict."""

    @abstractmethod
    def apply_analyses(self, analyses: Sequence[ArticleAnalysis]) -> None:
        """Write sentiment and topic associations for several articles at once."""

    @abstractmethod
    def list_unanalyzed(self, limit: int) -> List[Article]:
        """Oldest articles whose sentiment is still null."""


class TopicStore(ABC):
    """Topic dictionary with case-insensitive names."""

    @abstractmethod
    def find_or_create_many(self, names: Sequence[str]) -> Dict[str, Topic]:
        """
        Resolve names to topics, creating the missing ones.

        Keys of the result are lowercased names.
        """

    def find_or_create(self, name: str) -> Tuple[Topic, bool]:
        """Resolve one name. Returns (topic, created)."""
        name = name.strip()
        existing = self.find_by_name(name)
        if existing is not None:
            return existing, False
        return self.find_or_create_many([name])[name.lower()], True

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[Topic]:
        """Case-insensitive lookup."""
