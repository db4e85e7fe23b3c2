# sitegrade/scanner/context.py
"""
Target context classification.

Labels a scan target as training / business / general from its URL and
landing page HTML. The label only changes scoring leniency; it never hides
findings.

Priority:
    1. Known training platform host, or training wording on the page → training
    2. Commercial wording on the page                                 → business
    3. Anything else                                                  → general
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

from sitegrade.scanner.base import ScanContextLabel

TRAINING_HOST_MARKERS = (
    "dvwa",
    "juice-shop",
    "hackthebox",
    "tryhackme",
    "ctf",
    "webgoat",
    "bwapp",
    "portswigger-labs",
)

TRAINING_PATTERNS = (
    re.compile(r"\bctf\b", re.IGNORECASE),
    re.compile(r"hacking\s+challenge", re.IGNORECASE),
    re.compile(r"security\s+training", re.IGNORECASE),
    re.compile(r"practice\s+lab", re.IGNORECASE),
    re.compile(r"intentional(ly)?\s+vulnerab", re.IGNORECASE),
)

BUSINESS_PATTERNS = (
    re.compile(r"privacy\s+policy", re.IGNORECASE),
    re.compile(r"terms\s+of\s+service", re.IGNORECASE),
    re.compile(r"checkout", re.IGNORECASE),
    re.compile(r"payment", re.IGNORECASE),
    re.compile(r"\blog\s?in\b", re.IGNORECASE),
    re.compile(r"sign\s+in", re.IGNORECASE),
)


def target_host(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def is_training_host(url: str) -> bool:
    host = target_host(url)
    return any(marker in host for marker in TRAINING_HOST_MARKERS)


def classify_context(url: str, html: Optional[str]) -> ScanContextLabel:
    """Pure function of (url, html); page HTML may be missing when the fetch failed."""
    html = html or ""

    if is_training_host(url) or any(p.search(html) for p in TRAINING_PATTERNS):
        return ScanContextLabel.TRAINING

    if any(p.search(html) for p in BUSINESS_PATTERNS):
        return ScanContextLabel.BUSINESS

    return ScanContextLabel.GENERAL
