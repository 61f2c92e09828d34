"""Canonical link normalization used as the article deduplication key."""

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

TRACKING_PARAMS = {"fbclid", "gclid", "mc_cid", "mc_eid"}

DEFAULT_PORTS = {"http": 80, "https": 443}


def _is_tracking(key: str) -> bool:
    key = key.lower()
    return key.startswith("utm_") or key in TRACKING_PARAMS


def canonicalize_link(link: str, base_url: Optional[str] = None) -> str:
    """
    Normalize a link so repeated fetches of the same entry map to one key.

    Scheme and host are lowercased, default ports, fragments and tracking
    parameters are dropped, and trailing slashes are removed from non-root
    paths. The remaining query keeps its original order. Applying this twice
    yields the same string.

    Raises ValueError for anything that is not an absolute http(s) link.
    """
    link = link.strip()
    if base_url:
        link = urljoin(base_url, link)

    parts = urlsplit(link)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if scheme not in DEFAULT_PORTS or not host:
        raise ValueError(f"Not an absolute http(s) link: {link!r}")
    if ":" in host:
        host = f"[{host}]"

    port = parts.port
    netloc = host
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{host}:{port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path or "/"
    if len(path) > 1:
        path = path.rstrip("/") or "/"

    query_pairs = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not _is_tracking(key)
    ]
    query = urlencode(query_pairs)

    return urlunsplit((scheme, netloc, path, query, ""))
