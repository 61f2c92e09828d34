"""Batched article persistence with per-item fallback."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, Union

from ..errors import DuplicateArticleError, StoreError, StoreUnavailableError
from ..ingestion import FeedItem
from ..models import Article, NewArticle, Source
from .context import RunContext
from .interfaces import ArticleStore

logger = logging.getLogger(__name__)

CreatedCallback = Callable[[List[Article]], Awaitable[None]]


@dataclass
class BatchOutcome:
    """A batch insert that went through."""

    created: List[Article]
    duplicates: int


@dataclass
class BatchFailure:
    """A batch insert that failed outright."""

    error: str


@dataclass
class PersistResult:
    """Totals for one source."""

    created: List[Article] = field(default_factory=list)
    duplicates: int = 0
    skipped_for_budget: int = 0
    failed: int = 0


class PersistenceBatcher:
    """Write feed items as articles, deduplicating on canonical link."""

    def __init__(
        self,
        store: ArticleStore,
        batch_size: int = 20,
        fallback_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.batch_size = batch_size
        self.fallback_delay = fallback_delay
        self._sleep = sleep

    async def persist(
        self,
        ctx: RunContext,
        source: Source,
        items: Sequence[FeedItem],
        on_created: Optional[CreatedCallback] = None,
    ) -> PersistResult:
        """
        Persist items in fixed-size batches.

        The budget is re-checked before every batch; once it runs out the
        remaining items are recorded as skipped for this source. After each
        batch that created articles, on_created is awaited with them.
        """
        result = PersistResult()
        commands = [self._to_command(source, item) for item in items]

        for start in range(0, len(commands), self.batch_size):
            if not ctx.budget.reserve(1):
                self._skip(ctx, source, result, len(commands) - start)
                break

            batch = commands[start:start + self.batch_size]
            outcome = self.attempt_batch(ctx, batch)
            exhausted = False

            if isinstance(outcome, BatchFailure):
                logger.warning(
                    "Batch insert of %d articles for %s failed, falling back to individual inserts: %s",
                    len(batch), source.name, outcome.error,
                )
                outcome, exhausted = await self._fallback(ctx, source, batch, result)

            result.created.extend(outcome.created)
            result.duplicates += outcome.duplicates
            ctx.summary.articles_created += len(outcome.created)
            ctx.summary.duplicates_skipped += outcome.duplicates

            if outcome.duplicates:
                logger.info(
                    "Skipped %d duplicate articles in batch for %s",
                    outcome.duplicates, source.name,
                )

            if outcome.created and on_created is not None:
                await on_created(outcome.created)

            if exhausted:
                remaining = len(commands) - (start + len(batch))
                if remaining:
                    self._skip(ctx, source, result, remaining)
                break

        return result

    def attempt_batch(self, ctx: RunContext, batch: Sequence[NewArticle]) -> Union[BatchOutcome, BatchFailure]:
        """Insert a whole batch with one store call."""
        ctx.charge(1)
        try:
            created = self.store.insert_articles(batch)
        except StoreUnavailableError:
            raise
        except StoreError as e:
            return BatchFailure(error=str(e))
        return BatchOutcome(created=created, duplicates=len(batch) - len(created))

    def attempt_individual(self, ctx: RunContext, command: NewArticle) -> Optional[Article]:
        """
        Insert one article with its own store call.

        Returns None for a duplicate link. Other store errors propagate to
        the caller, which isolates them per item.
        """
        ctx.charge(1)
        try:
            return self.store.insert_article(command)
        except DuplicateArticleError:
            return None

    async def _fallback(
        self,
        ctx: RunContext,
        source: Source,
        batch: Sequence[NewArticle],
        result: PersistResult,
    ) -> Tuple[BatchOutcome, bool]:
        """Insert a failed batch item by item, isolating per-item errors.

        The flag is True when the budget ran out part way through.
        """
        created: List[Article] = []
        duplicates = 0
        exhausted = False

        for index, command in enumerate(batch):
            if not ctx.budget.reserve(1):
                self._skip(ctx, source, result, len(batch) - index)
                exhausted = True
                break

            if index > 0 and self.fallback_delay:
                await self._sleep(self.fallback_delay)

            try:
                article = self.attempt_individual(ctx, command)
            except StoreUnavailableError:
                raise
            except StoreError as e:
                result.failed += 1
                logger.warning(
                    "Failed to create article %s for %s: %s",
                    command.link, source.name, e,
                )
                continue

            if article is None:
                duplicates += 1
            else:
                created.append(article)

        return BatchOutcome(created=created, duplicates=duplicates), exhausted

    def _skip(self, ctx: RunContext, source: Source, result: PersistResult, count: int) -> None:
        result.skipped_for_budget += count
        ctx.summary.record_skipped_articles(source.id, source.name, count)
        ctx.stop_early()
        logger.warning(
            "Budget exhausted, skipping %d remaining articles for %s",
            count, source.name,
        )

    @staticmethod
    def _to_command(source: Source, item: FeedItem) -> NewArticle:
        return NewArticle(
            source_id=source.id,
            title=item.title,
            description=item.description,
            link=item.link,
            publication_date=item.publication_date,
        )
