# sitegrade/scanner/http.py
"""
HTTP helpers shared by all probes.

Every probe talks to the target through a requests.Session built here,
so the User-Agent and TLS behaviour are the same for the whole scan.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Tuple
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "sitegrade-scanner/1.0 (+https://github.com/sitegrade/sitegrade)"

# Max response body read for content checks (1MB). The rest is never downloaded.
MAX_BODY_BYTES = 1_000_000
READ_CHUNK_SIZE = 64 * 1024


def build_session() -> requests.Session:
    """Default session factory used by the orchestrator."""
    session = requests.Session()
    session.headers.update({
        "User-Agent": os.getenv("SITEGRADE_USER_AGENT", DEFAULT_USER_AGENT),
        "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
    })
    return session


def append_query(url: str, query: str) -> str:
    """
    Append a raw query fragment to a URL.

    The fragment is added verbatim (callers decide what to encode), using
    "&" when the URL already carries a query string.
    """
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"


def encode_component(value: str) -> str:
    """Percent-encode a query value the way browsers' encodeURIComponent does."""
    return quote(value, safe="-_.!~*'()")


def read_body(response: requests.Response, limit: int = MAX_BODY_BYTES) -> str:
    """
    Read at most `limit` bytes of a streamed response and release the
    connection. Decoded with the charset requests derived from the headers,
    UTF-8 when there is none.
    """
    chunks: List[bytes] = []
    received = 0
    try:
        for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
            chunks.append(chunk)
            received += len(chunk)
            if received >= limit:
                logger.debug(f"Body of {response.url} cut at {limit} bytes")
                break
    finally:
        response.close()

    body = b"".join(chunks)[:limit]
    try:
        return body.decode(response.encoding or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def fetch(
    session: requests.Session,
    url: str,
    timeout: float,
    **kwargs,
) -> Tuple[requests.Response, str]:
    """
    GET with a bounded body read.

    Returns the (already closed) response, for status and headers, and its
    decoded body, truncated to MAX_BODY_BYTES.
    """
    response = session.get(url, timeout=timeout, stream=True, **kwargs)
    return response, read_body(response)


def get_set_cookie_headers(response: requests.Response) -> List[str]:
    """
    Every Set-Cookie header value, unmerged.

    requests folds repeated Set-Cookie headers into one comma-joined value,
    so read the raw urllib3 headers when available.
    """
    raw = getattr(response, "raw", None)
    raw_headers = getattr(raw, "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        values = raw_headers.getlist("Set-Cookie")
        if values:
            return list(values)
    header_value: Optional[str] = response.headers.get("Set-Cookie")
    return [header_value] if header_value else []
