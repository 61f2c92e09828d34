"""Run coordinator driving one budgeted ingestion run."""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import pendulum

from ..enrichment.coordinator import EnrichmentCoordinator
from ..errors import StoreError, StoreUnavailableError
from ..ingestion import FeedFetcher
from ..models import Article, RunSummary, Source
from .context import RunContext
from .interfaces import SourceRegistry
from .persistence import PersistenceBatcher
from .scheduler import select_sources

logger = logging.getLogger(__name__)

# Units kept back for the closing source-registry update
FINALIZE_OPERATIONS = 1


class RunState(str, Enum):
    """Stages a run moves through."""

    IDLE = "idle"
    SELECTING_SOURCES = "selecting_sources"
    PROCESSING_SOURCE = "processing_source"
    FINALIZING = "finalizing"
    DONE = "done"


class RunCoordinator:
    """Fetch, persist and enrich a bounded slice of sources under one budget."""

    def __init__(
        self,
        registry: SourceRegistry,
        fetcher: FeedFetcher,
        batcher: PersistenceBatcher,
        enricher: Optional[EnrichmentCoordinator] = None,
        max_sources: int = 1,
        operation_budget: int = 45,
        source_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.registry = registry
        self.fetcher = fetcher
        self.batcher = batcher
        self.enricher = enricher
        self.max_sources = max_sources
        self.operation_budget = operation_budget
        self.source_delay = source_delay
        self._sleep = sleep
        self.state = RunState.IDLE

    def _enter(self, state: RunState) -> None:
        logger.debug("Run state %s -> %s", self.state.value, state.value)
        self.state = state

    async def run(self) -> RunSummary:
        """
        Execute one run and return its summary.

        Source-level failures are recorded in the summary and never abort the
        run. Only an unavailable store propagates.
        """
        held = FINALIZE_OPERATIONS if self.operation_budget > FINALIZE_OPERATIONS else 0
        ctx = RunContext.with_ceiling(self.operation_budget, held=held)
        summary = ctx.summary

        self._enter(RunState.SELECTING_SOURCES)
        active = self.registry.list_active_sources()
        selected = select_sources(active, self.max_sources)
        logger.info(
            "Selected %d of %d active sources (budget %d)",
            len(selected), len(active), self.operation_budget,
        )

        succeeded_ids: List[int] = []

        for index, source in enumerate(selected):
            if not ctx.budget.reserve(1):
                logger.warning("Budget exhausted before %s, stopping early", source.name)
                ctx.stop_early()
                break

            self._enter(RunState.PROCESSING_SOURCE)
            if index > 0 and self.source_delay:
                await self._sleep(self.source_delay)

            try:
                error = await self._process_source(ctx, source)
            except StoreUnavailableError:
                raise
            except Exception as e:
                logger.exception("Unexpected error while processing %s", source.name)
                error = str(e) or e.__class__.__name__

            summary.processed += 1
            if error is None:
                summary.succeeded += 1
                succeeded_ids.append(source.id)
            else:
                summary.failed += 1
                summary.record_failure(source.id, source.name, error)

        self._enter(RunState.FINALIZING)
        summary.skipped_sources = len(active) - summary.processed
        self._finalize(ctx, succeeded_ids)
        summary.has_more_work = summary.skipped_sources > 0 or summary.stopped_early
        summary.total_operations = ctx.budget.consumed

        self._enter(RunState.DONE)
        logger.info(
            "Run finished: %d processed, %d succeeded, %d failed, %d articles created, "
            "%d duplicates, %d operations",
            summary.processed, summary.succeeded, summary.failed,
            summary.articles_created, summary.duplicates_skipped, summary.total_operations,
        )
        return summary

    def run_sync(self) -> RunSummary:
        """Run to completion from synchronous code."""
        return asyncio.run(self.run())

    async def _process_source(self, ctx: RunContext, source: Source) -> Optional[str]:
        """Handle one source. Returns its error message, or None on success."""
        result = await self.fetcher.fetch_feed(source)
        if result.request_sent:
            ctx.charge(1)

        if not result.success:
            logger.warning("Failed to fetch %s: %s", source.name, result.error)
            return result.error or "Unknown fetch error"

        on_created = None
        if self.enricher is not None and self.enricher.enabled:
            async def on_created(articles: List[Article]) -> None:
                await self.enricher.enrich(ctx, articles)

        outcome = await self.batcher.persist(ctx, source, result.items, on_created=on_created)
        logger.info(
            "%s: %d new, %d duplicates, %d skipped, %d failed",
            source.name, len(outcome.created), outcome.duplicates,
            outcome.skipped_for_budget, outcome.failed,
        )
        return None

    def _finalize(self, ctx: RunContext, succeeded_ids: List[int]) -> None:
        ctx.budget.release()
        failures = ctx.summary.source_failures()
        if not succeeded_ids and not failures:
            return

        if not ctx.budget.reserve(1):
            logger.warning("No budget left to record fetch results for %d sources", len(succeeded_ids) + len(failures))
            return

        ctx.charge(1)
        try:
            self.registry.mark_fetch_results(succeeded_ids, failures, pendulum.now("UTC"))
        except (StoreError, StoreUnavailableError) as e:
            logger.error("Failed to record fetch results: %s", e)
