# sitegrade/scanner/probes/pii.py
"""
PII / Credential Exposure probe.

Fetches the landing page once and scans the source for:
    - Personal email addresses (role aliases and asset filenames ignored)
    - Client-side credentials (API keys and tokens)

This is the only probe that hands its page fetch back to the orchestrator:
the PageBundle feeds the context classifier and the bonus computation.

Secrets are never logged. Evidence carries only a 20-character prefix.
"""

from __future__ import annotations

import logging
import re
import string
from typing import Iterator, List

from sitegrade.scanner.base import BaseProbe, PageBundle, ProbeContext, ProbeResult
from sitegrade.scanner.http import fetch, get_set_cookie_headers
from sitegrade.scanner.templates import (
    CREDENTIAL_PATTERNS,
    build_finding,
    credential_template_id,
)

logger = logging.getLogger(__name__)

# Addresses are matched outward from each "@": the local part is walked
# back over at most MAX_LOCAL_CHARS, the domain matched forward. Runs of
# text without "@" are never searched.
MAX_LOCAL_CHARS = 64
EMAIL_LOCAL_CHARS = frozenset(string.ascii_letters + string.digits + "._%+-")
EMAIL_DOMAIN_RE = re.compile(r"[A-Za-z0-9.-]{1,253}\.[A-Za-z]{2,24}")

ROLE_ALIASES = frozenset({
    "info", "support", "contact", "hello", "admin", "sales", "help",
    "noreply", "no-reply", "team", "office", "press", "privacy", "security",
    "webmaster", "billing", "careers", "jobs", "hr", "marketing", "feedback",
    "abuse", "postmaster",
})

ASSET_EXTENSIONS = frozenset({
    "png", "jpg", "jpeg", "gif", "svg", "webp", "ico", "css", "js",
})

# Retina asset names: logo@2x.png, icon@1.5x.webp
DENSITY_SUFFIX_RE = re.compile(r"^\d+(\.\d+)?x\.", re.IGNORECASE)

PUBLIC_PROVIDERS = frozenset({
    "gmail.com", "googlemail.com",
    "yahoo.com", "yahoo.co.uk", "yahoo.fr", "yahoo.de", "ymail.com",
    "hotmail.com", "hotmail.co.uk", "hotmail.fr", "outlook.com", "live.com", "msn.com",
    "icloud.com", "me.com", "mac.com",
    "aol.com", "protonmail.com", "proton.me", "pm.me",
    "gmx.com", "gmx.de", "gmx.net", "mail.com",
    "yandex.com", "yandex.ru", "zoho.com",
})

# first.last, first_last, first-last (optionally numbered)
INDIVIDUAL_LOCAL_RE = re.compile(r"^[a-z]+[._-][a-z]+\d*$")

MAX_EMAIL_SAMPLES = 3
SECRET_PREFIX_CHARS = 20


# ---------------------------------------------------------------------------
# Email classification
# ---------------------------------------------------------------------------

def is_role_alias(email: str) -> bool:
    local = email.split("@", 1)[0].lower()
    return local in ROLE_ALIASES


def is_asset_false_positive(email: str) -> bool:
    """Tokens like logo@2x.png are file names, not addresses."""
    domain = email.split("@", 1)[1].lower()
    tld = domain.rsplit(".", 1)[-1]
    return tld in ASSET_EXTENSIONS or bool(DENSITY_SUFFIX_RE.match(domain))


def is_public_provider(domain: str) -> bool:
    """Exact mailbox-provider domains only; live.example.org is not live.com."""
    return domain.lower() in PUBLIC_PROVIDERS


def classify_email(email: str) -> str:
    """
    Returns one of:
        "role"     - shared mailbox (info@, support@ ...), ignored
        "asset"    - file name that looks like an address, ignored
        "personal" - public provider or individual-looking local part, flagged
        "other"    - corporate address with a non-personal local part, ignored
    """
    if is_role_alias(email):
        return "role"
    if is_asset_false_positive(email):
        return "asset"
    local, domain = email.split("@", 1)
    if is_public_provider(domain) or INDIVIDUAL_LOCAL_RE.match(local.lower()):
        return "personal"
    return "other"


def iter_emails(html: str) -> Iterator[str]:
    """Email-shaped tokens in document order, non-overlapping."""
    consumed = 0
    at = html.find("@")
    while at != -1:
        start = at
        floor = max(consumed, at - MAX_LOCAL_CHARS)
        while start > floor and html[start - 1] in EMAIL_LOCAL_CHARS:
            start -= 1

        domain = EMAIL_DOMAIN_RE.match(html, at + 1) if start < at else None
        if domain:
            yield html[start:domain.end()]
            consumed = domain.end()
            at = html.find("@", consumed)
        else:
            at = html.find("@", at + 1)


def find_personal_emails(html: str) -> List[str]:
    """Distinct flagged addresses in first-seen order."""
    flagged: List[str] = []
    seen = set()
    for email in iter_emails(html):
        if email in seen:
            continue
        seen.add(email)
        if classify_email(email) == "personal":
            flagged.append(email)
    return flagged


def mask_secret(value: str) -> str:
    return value[:SECRET_PREFIX_CHARS] + "..."


# ---------------------------------------------------------------------------
# Probe
# ---------------------------------------------------------------------------

class PIIExposureProbe(BaseProbe):

    @property
    def name(self) -> str:
        return "pii_exposure"

    def execute(self, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult(probe_name=self.name)

        with ctx.session_factory() as session:
            response, html = fetch(session, ctx.url, ctx.timeout)

        result.page = PageBundle(
            url=ctx.url,
            status_code=response.status_code,
            content=html,
            headers=dict(response.headers),
            set_cookies=get_set_cookie_headers(response),
        )

        emails = find_personal_emails(html)
        if emails:
            sample = ", ".join(emails[:MAX_EMAIL_SAMPLES])
            if len(emails) > MAX_EMAIL_SAMPLES:
                sample += "..."
            result.findings.append(build_finding(
                "pii-email-exposure",
                evidence=[sample],
                count=len(emails),
            ))

        for cred_name, pattern, _cvss in CREDENTIAL_PATTERNS:
            matches = list(dict.fromkeys(pattern.findall(html)))
            if not matches:
                continue
            logger.info(f"{cred_name} pattern matched {len(matches)} time(s) on {ctx.url}")
            result.findings.append(build_finding(
                credential_template_id(cred_name),
                evidence=[mask_secret(matches[0])],
                count=len(matches),
            ))

        return result
