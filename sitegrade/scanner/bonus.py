# sitegrade/scanner/bonus.py
"""
Positive-hygiene bonus.

Awards score credit for good practices observed on the landing page, using
only the page bundle fetched by the PII probe. The bonus is purely
additive: a missing signal costs nothing.

Two buckets, each item worth one point:
    site/header (cap 6)  - header hardening and clean markup
    api/pii     (cap 4)  - API, CORS, cookie and contact-data hygiene
Total is capped at 10.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sitegrade.scanner.base import PageBundle

logger = logging.getLogger(__name__)

SITE_HEADER_CAP = 6
API_PII_CAP = 4
BONUS_CAP = 10

PLAINTEXT_LINK_RE = re.compile(r"""(?:href|src|action)\s*=\s*["']http://""", re.IGNORECASE)
PRIVACY_POLICY_RE = re.compile(r"privacy\s+policy", re.IGNORECASE)

API_CALL_PATTERNS = (
    re.compile(r"""fetch\(\s*["'`]([^"'`]+)["'`]"""),
    re.compile(r"""axios(?:\.(?:get|post|put|patch|delete|request))?\(\s*["'`]([^"'`]+)["'`]"""),
    re.compile(r"""["'`]((?:https?:)?//[^"'`\s]*graphql[^"'`\s]*)["'`]""", re.IGNORECASE),
)

ANTI_CSRF_RE = re.compile(
    r"""<(?:input|meta)\b[^>]*name\s*=\s*["'][^"']*(?:csrf|xsrf|_token)[^"']*["']""",
    re.IGNORECASE,
)
SAMESITE_STRICT_OR_LAX_RE = re.compile(r"samesite\s*=\s*(?:lax|strict)", re.IGNORECASE)
FORM_TAG_RE = re.compile(r"<form\b", re.IGNORECASE)


@dataclass
class BonusRecord:
    """
    site_header_items / api_pii_items: awarded signals, capped per bucket.
    details: every signal evaluated, before capping (signal name → detected).
    """
    site_header_items: List[str] = field(default_factory=list)
    api_pii_items: List[str] = field(default_factory=list)
    details: Dict[str, bool] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return min(BONUS_CAP, len(self.site_header_items) + len(self.api_pii_items))

    def breakdown(self) -> dict:
        return {
            "site_header": len(self.site_header_items),
            "api_pii": len(self.api_pii_items),
            "site_header_items": list(self.site_header_items),
            "api_pii_items": list(self.api_pii_items),
            "total": self.total,
        }


# ---------------------------------------------------------------------------
# Signal helpers
# ---------------------------------------------------------------------------

def discover_api_urls(html: str) -> List[str]:
    """URLs passed to fetch()/axios or naming a graphql endpoint."""
    urls: List[str] = []
    for pattern in API_CALL_PATTERNS:
        for url in pattern.findall(html):
            if url not in urls:
                urls.append(url)
    return urls


def api_calls_use_https(html: str) -> bool:
    """
    True when at least one absolute API URL was found and all of them are
    https. Relative URLs inherit the page scheme and are not counted.
    """
    absolute = [u for u in discover_api_urls(html) if u.lower().startswith(("http://", "https://"))]
    return bool(absolute) and all(u.lower().startswith("https://") for u in absolute)


def has_strict_cookie(set_cookies: List[str]) -> bool:
    for cookie in set_cookies:
        lowered = cookie.lower()
        if "secure" in lowered and "httponly" in lowered and SAMESITE_STRICT_OR_LAX_RE.search(cookie):
            return True
    return False


def has_obfuscated_email(html: str) -> bool:
    lowered = html.lower()
    has_at = "[at]" in lowered or " at " in lowered
    has_dot = "[dot]" in lowered or " dot " in lowered
    return has_at and has_dot


def has_contact_form_without_mailto(html: str) -> bool:
    return bool(FORM_TAG_RE.search(html)) and "mailto:" not in html.lower()


def _site_header_signals(page: PageBundle) -> List[Tuple[str, bool]]:
    html = page.content
    return [
        ("hsts", bool(page.header("Strict-Transport-Security"))),
        ("csp", bool(page.header("Content-Security-Policy"))),
        ("x_frame_options", bool(page.header("X-Frame-Options"))),
        ("no_plaintext_links", not PLAINTEXT_LINK_RE.search(html)),
        ("no_server_banner", page.header("Server") is None and page.header("X-Powered-By") is None),
        ("privacy_policy", bool(PRIVACY_POLICY_RE.search(html))),
        ("permissions_policy", bool(page.header("Permissions-Policy"))),
    ]


def _api_pii_signals(page: PageBundle) -> List[Tuple[str, bool]]:
    html = page.content
    acao = page.header("Access-Control-Allow-Origin")
    return [
        ("api_https", api_calls_use_https(html)),
        ("cors_restricted", bool(acao) and acao.strip() != "*"),
        ("rate_limit_headers", any(k.lower().startswith("x-ratelimit") for k in page.headers)),
        ("anti_csrf_token", bool(ANTI_CSRF_RE.search(html))),
        ("strict_cookie", has_strict_cookie(page.set_cookies)),
        ("email_obfuscation", has_obfuscated_email(html)),
        ("contact_form", has_contact_form_without_mailto(html)),
    ]


def compute_bonus(page: Optional[PageBundle]) -> BonusRecord:
    """No page bundle (the PII probe failed or timed out) means no bonus."""
    record = BonusRecord()
    if page is None:
        return record

    site = _site_header_signals(page)
    api = _api_pii_signals(page)
    record.details = {name: detected for name, detected in site + api}
    record.site_header_items = [name for name, detected in site if detected][:SITE_HEADER_CAP]
    record.api_pii_items = [name for name, detected in api if detected][:API_PII_CAP]

    logger.debug(
        f"Bonus for {page.url}: site/header={len(record.site_header_items)} "
        f"api/pii={len(record.api_pii_items)} total={record.total}"
    )
    return record
