"""Tests for trigger authorization and job wiring."""
import asyncio
from contextlib import contextmanager
from unittest.mock import MagicMock

import pytest

from conftest import no_sleep

from pulsereader.config import ConfigModel, resolve_settings
from pulsereader.enrichment import EnrichmentCoordinator
from pulsereader.errors import (
    AuthenticationRequiredError,
    ConfigurationError,
    ForbiddenError,
    RunInProgressError,
)
from pulsereader.models import NewArticle, RunSummary
from pulsereader.pipeline import trigger
from pulsereader.pipeline.context import RunContext

ENV = {
    "PULSEREADER_SERVICE_TOKEN": "service-secret",
    "PULSEREADER_CLIENT_TOKEN": "client-key",
}


def _settings(**extra_env):
    return resolve_settings(ConfigModel(), {**ENV, **extra_env})


@pytest.fixture
def fake_db(monkeypatch):
    """Replace the connection and lease manager with mocks."""
    conn = MagicMock()
    opened = []

    @contextmanager
    def fake_connection(_settings):
        opened.append(True)
        yield conn

    runs = MagicMock()
    runs.acquire_lease.return_value = MagicMock(id=7)
    monkeypatch.setattr(trigger, "get_connection", fake_connection)
    monkeypatch.setattr(trigger, "RunManager", lambda _conn, ttl_minutes: runs)
    return opened, runs


def test_service_token_accepted():
    trigger.authorize_trigger(_settings(), "service-secret")


@pytest.mark.parametrize("token", [None, "", "wrong"])
def test_missing_or_unknown_token(token):
    with pytest.raises(AuthenticationRequiredError) as exc_info:
        trigger.authorize_trigger(_settings(), token)

    assert exc_info.value.code == "AUTHENTICATION_REQUIRED"


def test_client_token_forbidden():
    with pytest.raises(ForbiddenError) as exc_info:
        trigger.authorize_trigger(_settings(), "client-key")

    assert exc_info.value.code == "FORBIDDEN"


def test_no_service_token_configured():
    settings = resolve_settings(ConfigModel(), {})

    with pytest.raises(ConfigurationError):
        trigger.authorize_trigger(settings, "anything")


def test_rejected_caller_never_touches_database(fake_db):
    opened, runs = fake_db

    with pytest.raises(ForbiddenError):
        trigger.run_fetch_job(_settings(), "client-key")

    assert opened == []
    runs.acquire_lease.assert_not_called()


def test_run_fetch_job_releases_lease_on_success(fake_db, monkeypatch):
    _, runs = fake_db
    coordinator = MagicMock()

    async def run():
        return RunSummary(processed=1, succeeded=1)

    coordinator.run = run
    monkeypatch.setattr(trigger, "build_coordinator", lambda settings, conn: coordinator)

    summary = trigger.run_fetch_job(_settings(), "service-secret")

    assert summary.succeeded == 1
    runs.acquire_lease.assert_called_once_with("fetch")
    runs.release_lease.assert_called_once_with(7, "success")


def test_run_fetch_job_marks_failed_run(fake_db, monkeypatch):
    _, runs = fake_db

    def broken(settings, conn):
        raise RuntimeError("wiring failed")

    monkeypatch.setattr(trigger, "build_coordinator", broken)

    with pytest.raises(RuntimeError):
        trigger.run_fetch_job(_settings(), "service-secret")

    runs.release_lease.assert_called_once_with(7, "failed")


def test_lease_conflict(fake_db, monkeypatch):
    _, runs = fake_db
    runs.acquire_lease.side_effect = RunInProgressError("busy")
    build = MagicMock()
    monkeypatch.setattr(trigger, "build_coordinator", build)

    with pytest.raises(RunInProgressError) as exc_info:
        trigger.run_fetch_job(_settings(), "service-secret")

    assert exc_info.value.code == "RUN_IN_PROGRESS"
    build.assert_not_called()
    runs.release_lease.assert_not_called()


def test_backfill_requires_credential(fake_db):
    opened, _ = fake_db

    with pytest.raises(ConfigurationError):
        trigger.run_backfill(_settings(), "service-secret")

    assert opened == []


def test_backfill_enriches_unanalyzed_articles(article_store, topic_store, provider):
    for i in range(3):
        article_store.insert_article(
            NewArticle(source_id=1, title=f"T{i}", link=f"https://example.com/{i}", publication_date="2024-05-01T00:00:00Z")
        )
    enricher = EnrichmentCoordinator(provider, article_store, topic_store, sleep=no_sleep)

    summary = asyncio.run(trigger.backfill(RunContext.with_ceiling(45), enricher, limit=2))

    assert summary.ai_analysis.successful == 2
    assert summary.has_more_work
    assert len(article_store.list_unanalyzed(10)) == 1
