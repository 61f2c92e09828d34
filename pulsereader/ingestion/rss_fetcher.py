"""RSS/Atom feed fetcher and parser."""

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

import feedparser
import httpx
import pendulum
from bs4 import BeautifulSoup

from ..models import Source
from .links import canonicalize_link
from .models import FeedItem, FeedResult

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 5000

_WHITESPACE = re.compile(r"\s+")


def _strip_html(value: str) -> str:
    """Convert an HTML fragment to collapsed plain text."""
    text = BeautifulSoup(value, "html.parser").get_text(" ")
    return _WHITESPACE.sub(" ", text).strip()


def _entry_datetime(entry, fallback: datetime) -> datetime:
    for key in ("published_parsed", "updated_parsed", "created_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    return fallback


def _entry_description(entry) -> Optional[str]:
    raw = entry.get("summary") or entry.get("description")
    if not raw and entry.get("content"):
        raw = entry["content"][0].get("value")
    if not raw:
        return None

    description = _strip_html(raw)
    if len(description) > MAX_DESCRIPTION_LENGTH:
        description = description[:MAX_DESCRIPTION_LENGTH]
    return description or None


def parse_feed(content: bytes, feed_url: str, fetched_at: Optional[datetime] = None) -> Optional[List[FeedItem]]:
    """
    Parse RSS 2.0, RSS 1.0 or Atom content into normalized feed items.

    Returns None when the payload is not a feed at all. Entries without a
    title or link are dropped, and entries sharing a canonical link are
    collapsed to the first occurrence.
    """
    if fetched_at is None:
        fetched_at = pendulum.now("UTC")

    feed = feedparser.parse(content)

    # feedparser flags recoverable issues (encoding overrides, etc.) as bozo;
    # only treat it as fatal when nothing feed-like came out of the payload.
    if feed.bozo and not feed.entries and not feed.get("version"):
        return None

    items: List[FeedItem] = []
    seen = set()
    for entry in feed.entries:
        title = _WHITESPACE.sub(" ", entry.get("title") or "").strip()
        raw_link = entry.get("link")
        if not title or not raw_link:
            continue

        try:
            link = canonicalize_link(raw_link, base_url=feed_url)
        except ValueError:
            logger.debug("Skipping entry with malformed link %r", raw_link)
            continue

        if link in seen:
            continue
        seen.add(link)

        items.append(
            FeedItem(
                title=title,
                link=link,
                publication_date=_entry_datetime(entry, fetched_at),
                description=_entry_description(entry),
            )
        )

    return items


class FeedFetcher:
    """Fetch and parse a single source's feed."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = "Mozilla/5.0 (compatible; PulseReader/1.0)",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize feed fetcher."""
        self.timeout = timeout
        self.user_agent = user_agent
        self.transport = transport

    async def fetch_feed(self, source: Source) -> FeedResult:
        """Fetch and parse a single feed with one network request."""
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }

        def failure(error: str, request_sent: bool = True) -> FeedResult:
            return FeedResult(
                source_name=source.name,
                source_url=source.url,
                success=False,
                error=error,
                request_sent=request_sent,
            )

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers=headers,
                transport=self.transport,
            ) as client:
                response = await client.get(source.url)
                response.raise_for_status()
                content = response.content

        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            return failure(f"Invalid feed URL: {e}", request_sent=False)
        except httpx.HTTPStatusError as e:
            return failure(f"HTTP {e.response.status_code}: {e.response.reason_phrase}")
        except httpx.TimeoutException:
            return failure(f"Request timed out after {self.timeout:.0f}s")
        except httpx.HTTPError as e:
            return failure(f"HTTP error: {e}")

        items = parse_feed(content, str(response.url))
        if items is None:
            return failure("Invalid feed: payload is not RSS or Atom")

        if not items:
            logger.warning("Feed %s contains no items", source.url)
        else:
            logger.info("Fetched %d items from %s", len(items), source.name)

        return FeedResult(
            source_name=source.name,
            source_url=source.url,
            success=True,
            items=items,
        )
