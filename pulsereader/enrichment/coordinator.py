"""Sentiment and topic enrichment of newly created articles."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from ..errors import EnrichmentError, StoreError, StoreUnavailableError
from ..models import Article, ArticleAnalysis
from ..pipeline.context import RunContext
from ..pipeline.interfaces import ArticleStore, TopicStore
from .models import AnalysisInput, AnalysisResult
from .provider import EnrichmentProvider

logger = logging.getLogger(__name__)

# provider call + topic resolution + write-back
OPERATIONS_PER_CALL = 3


@dataclass
class BatchAnalysis:
    """Results of a batch provider call that went through."""

    results: Dict[int, AnalysisResult]


@dataclass
class AnalysisFailure:
    """A provider call that failed outright."""

    error: str


class EnrichmentCoordinator:
    """Send articles to the AI provider and write the labels back."""

    def __init__(
        self,
        provider: Optional[EnrichmentProvider],
        article_store: ArticleStore,
        topic_store: TopicStore,
        batch_size: int = 10,
        fallback_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.article_store = article_store
        self.topic_store = topic_store
        self.batch_size = batch_size
        self.fallback_delay = fallback_delay
        self._sleep = sleep

    @property
    def enabled(self) -> bool:
        """False when no provider credential was configured."""
        return self.provider is not None

    async def enrich(self, ctx: RunContext, articles: Sequence[Article]) -> None:
        """
        Enrich articles in provider batches, falling back to one call per article.

        Counters land in ctx.summary.ai_analysis. A failure for one article
        leaves it stored with a null sentiment and never affects the others.
        """
        if not self.enabled or not articles:
            return

        stats = ctx.summary.ai_analysis
        logger.info("Starting AI analysis for %d articles", len(articles))

        for start in range(0, len(articles), self.batch_size):
            chunk = list(articles[start:start + self.batch_size])

            if not ctx.budget.reserve(OPERATIONS_PER_CALL):
                self._skip(ctx, len(articles) - start)
                return

            pending = chunk
            if self.provider.supports_batch and len(chunk) > 1:
                outcome = await self.attempt_batch(ctx, chunk)
                if isinstance(outcome, BatchAnalysis):
                    done = [a for a in chunk if a.id in outcome.results]
                    stats.attempted += len(done)
                    self._count(ctx, done, self._write_back(ctx, done, outcome.results))
                    pending = [a for a in chunk if a.id not in outcome.results]
                    if pending:
                        logger.info("%d articles missing from batch response, analysing individually", len(pending))
                else:
                    logger.warning(
                        "AI analysis batch of %d failed, falling back to individual analysis: %s",
                        len(chunk), outcome.error,
                    )

            if not await self._fallback(ctx, pending, articles_left=len(articles) - start - len(chunk)):
                return

        logger.info(
            "AI analysis finished: %d successful, %d failed, %d skipped",
            stats.successful, stats.failed, stats.skipped,
        )
        logger.debug("Provider usage: %s", self.provider.get_usage_stats())

    async def attempt_batch(self, ctx: RunContext, articles: Sequence[Article]) -> Union[BatchAnalysis, AnalysisFailure]:
        """One provider call for a whole chunk."""
        inputs = [AnalysisInput.from_article(a) for a in articles]
        ctx.charge(1)
        try:
            results = await asyncio.to_thread(self.provider.analyze_batch, inputs)
        except EnrichmentError as e:
            return AnalysisFailure(error=str(e))
        return BatchAnalysis(results=results)

    async def attempt_individual(self, ctx: RunContext, article: Article) -> Union[AnalysisResult, AnalysisFailure]:
        """One provider call for one article."""
        item = AnalysisInput.from_article(article)
        ctx.charge(1)
        try:
            return await asyncio.to_thread(self.provider.analyze_article, item)
        except EnrichmentError as e:
            return AnalysisFailure(error=str(e))

    async def _fallback(self, ctx: RunContext, articles: List[Article], articles_left: int) -> bool:
        """Analyse articles one by one. Returns False once the budget ran out."""
        stats = ctx.summary.ai_analysis
        for index, article in enumerate(articles):
            if not ctx.budget.reserve(OPERATIONS_PER_CALL):
                self._skip(ctx, len(articles) - index + articles_left)
                return False

            if index > 0 and self.fallback_delay:
                await self._sleep(self.fallback_delay)

            stats.attempted += 1
            outcome = await self.attempt_individual(ctx, article)
            if isinstance(outcome, AnalysisFailure):
                stats.failed += 1
                logger.warning("AI analysis failed for article %s: %s", article.id, outcome.error)
                continue

            self._count(ctx, [article], self._write_back(ctx, [article], {article.id: outcome}))
        return True

    def _write_back(self, ctx: RunContext, articles: Sequence[Article], results: Dict[int, AnalysisResult]) -> bool:
        """Resolve topics and persist sentiment plus associations."""
        if not articles:
            return True

        names: List[str] = []
        for article in articles:
            names.extend(results[article.id].topics)

        try:
            topics = {}
            if names:
                ctx.charge(1)
                topics = self.topic_store.find_or_create_many(names)

            analyses = []
            for article in articles:
                result = results[article.id]
                topic_ids = []
                for name in result.topics:
                    topic = topics.get(name.lower())
                    if topic is not None and topic.id not in topic_ids:
                        topic_ids.append(topic.id)
                analyses.append(
                    ArticleAnalysis(article_id=article.id, sentiment=result.sentiment, topic_ids=topic_ids)
                )

            ctx.charge(1)
            self.article_store.apply_analyses(analyses)
        except StoreUnavailableError:
            raise
        except StoreError as e:
            logger.warning("Failed to save AI analysis for %d articles: %s", len(articles), e)
            return False
        return True

    @staticmethod
    def _count(ctx: RunContext, articles: Sequence[Article], saved: bool) -> None:
        stats = ctx.summary.ai_analysis
        if saved:
            stats.successful += len(articles)
        else:
            stats.failed += len(articles)

    @staticmethod
    def _skip(ctx: RunContext, count: int) -> None:
        if count <= 0:
            return
        ctx.summary.ai_analysis.skipped += count
        ctx.stop_early()
        logger.warning("Budget exhausted, skipping AI analysis for %d articles", count)
