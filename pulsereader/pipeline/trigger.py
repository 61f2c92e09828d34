"""Authorized entry points that wire collaborators and run a job."""

import asyncio
import hmac
import logging
from typing import Optional

from psycopg import Connection

from ..config import Settings
from ..db import (
    PostgresArticleStore,
    PostgresSourceRegistry,
    PostgresTopicStore,
    RunManager,
    get_connection,
)
from ..enrichment.coordinator import EnrichmentCoordinator
from ..enrichment.provider import EnrichmentProvider, build_provider
from ..errors import (
    AuthenticationRequiredError,
    ConfigurationError,
    ForbiddenError,
)
from ..ingestion import FeedFetcher
from ..models import RunSummary
from .context import RunContext
from .coordinator import RunCoordinator
from .persistence import PersistenceBatcher

logger = logging.getLogger(__name__)


def _matches(token: str, expected: Optional[str]) -> bool:
    if not expected:
        return False
    return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


def authorize_trigger(settings: Settings, token: Optional[str]) -> None:
    """
    Reject callers that are not allowed to start a run.

    Raises:
        ConfigurationError: no service token is configured
        AuthenticationRequiredError: token missing or unknown
        ForbiddenError: the non-privileged client token was presented
    """
    if not settings.service_token:
        raise ConfigurationError("No service token configured; refusing to run")
    if not token:
        raise AuthenticationRequiredError("A trigger token is required")
    if _matches(token, settings.service_token):
        return
    if _matches(token, settings.client_token):
        raise ForbiddenError("The client token may not trigger runs")
    raise AuthenticationRequiredError("Invalid trigger token")


def build_enricher(
    settings: Settings,
    conn: Connection,
    provider: Optional[EnrichmentProvider] = None,
) -> EnrichmentCoordinator:
    """Enrichment coordinator over the Postgres stores."""
    if provider is None:
        provider = build_provider(settings.llm)
    return EnrichmentCoordinator(
        provider=provider,
        article_store=PostgresArticleStore(conn),
        topic_store=PostgresTopicStore(conn),
        batch_size=settings.pipeline.enrichment_batch_size,
        fallback_delay=settings.pipeline.fallback_delay,
    )


def build_coordinator(
    settings: Settings,
    conn: Connection,
    provider: Optional[EnrichmentProvider] = None,
) -> RunCoordinator:
    """Run coordinator wired to Postgres, the feed fetcher and the AI provider."""
    pipeline = settings.pipeline
    return RunCoordinator(
        registry=PostgresSourceRegistry(conn),
        fetcher=FeedFetcher(timeout=pipeline.fetch_timeout, user_agent=pipeline.user_agent),
        batcher=PersistenceBatcher(
            PostgresArticleStore(conn),
            batch_size=pipeline.batch_size,
            fallback_delay=pipeline.fallback_delay,
        ),
        enricher=build_enricher(settings, conn, provider),
        max_sources=pipeline.max_sources_per_run,
        operation_budget=pipeline.operation_budget,
        source_delay=pipeline.source_delay,
    )


def run_fetch_job(settings: Settings, token: Optional[str]) -> RunSummary:
    """
    Authorize, take the run lease and execute one ingestion run.

    Structural failures (auth, configuration, store unavailable, lease held)
    raise; everything else is reported in the returned summary.
    """
    authorize_trigger(settings, token)

    with get_connection(settings.database) as conn:
        runs = RunManager(conn, ttl_minutes=settings.pipeline.lease_ttl_minutes)
        run = runs.acquire_lease("fetch")
        status = "failed"
        try:
            summary = asyncio.run(build_coordinator(settings, conn).run())
            status = "success"
        finally:
            runs.release_lease(run.id, status)

    return summary


async def backfill(ctx: RunContext, enricher: EnrichmentCoordinator, limit: int) -> RunSummary:
    """Enrich stored articles that still lack a sentiment."""
    articles = enricher.article_store.list_unanalyzed(limit)
    logger.info("Found %d articles without analysis", len(articles))
    await enricher.enrich(ctx, articles)
    ctx.summary.has_more_work = len(articles) == limit or ctx.summary.stopped_early
    return ctx.summary


def run_backfill(settings: Settings, token: Optional[str], limit: int = 50) -> RunSummary:
    """Authorize, take the run lease and enrich unanalyzed articles."""
    authorize_trigger(settings, token)
    if not settings.enrichment_enabled:
        raise ConfigurationError("No AI provider API key configured; nothing to backfill with")

    with get_connection(settings.database) as conn:
        runs = RunManager(conn, ttl_minutes=settings.pipeline.lease_ttl_minutes)
        run = runs.acquire_lease("backfill")
        status = "failed"
        try:
            ctx = RunContext.with_ceiling(settings.pipeline.operation_budget)
            summary = asyncio.run(backfill(ctx, build_enricher(settings, conn), limit))
            status = "success"
        finally:
            runs.release_lease(run.id, status)

    return summary
