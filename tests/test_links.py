"""Tests for canonical link normalization."""
import pytest

from pulsereader.ingestion import canonicalize_link


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("HTTPS://Example.COM/News/", "https://example.com/News"),
        ("https://example.com", "https://example.com/"),
        ("https://example.com:443/a", "https://example.com/a"),
        ("http://example.com:8080/a", "http://example.com:8080/a"),
        ("https://example.com/a#comments", "https://example.com/a"),
        (
            "https://example.com/a?utm_source=rss&id=7&fbclid=xyz&UTM_Medium=feed",
            "https://example.com/a?id=7",
        ),
        ("  https://example.com/a  ", "https://example.com/a"),
    ],
)
def test_canonicalize(raw, expected):
    assert canonicalize_link(raw) == expected


def test_query_order_preserved():
    assert canonicalize_link("https://example.com/a?b=2&a=1") == "https://example.com/a?b=2&a=1"


def test_relative_link_resolved_against_feed():
    link = canonicalize_link("/story/1?utm_campaign=x", base_url="https://news.example.com/rss.xml")

    assert link == "https://news.example.com/story/1"


def test_idempotent():
    once = canonicalize_link("HTTP://Example.com:80/path/?q=a b&utm_term=z#top")

    assert canonicalize_link(once) == once


@pytest.mark.parametrize("raw", ["mailto:editor@example.com", "/relative/only", "ftp://example.com/file"])
def test_rejects_non_http_links(raw):
    with pytest.raises(ValueError):
        canonicalize_link(raw)
