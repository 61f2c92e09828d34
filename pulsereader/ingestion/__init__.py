"""Feed fetching and parsing."""

from .links import canonicalize_link
from .models import FeedItem, FeedResult
from .rss_fetcher import FeedFetcher, parse_feed

__all__ = [
    "FeedFetcher",
    "FeedItem",
    "FeedResult",
    "canonicalize_link",
    "parse_feed",
]
