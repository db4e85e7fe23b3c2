# sitegrade/scanner/probes/cookies.py
"""
Insecure Cookies probe.

Checks every Set-Cookie header on the landing page for the Secure,
HttpOnly and SameSite attributes. Each missing attribute on each cookie
yields its own finding; the deduplicator later folds them into one finding
per attribute with one evidence entry per cookie.
"""

from __future__ import annotations

from sitegrade.scanner.base import BaseProbe, ProbeContext, ProbeResult
from sitegrade.scanner.http import get_set_cookie_headers
from sitegrade.scanner.templates import build_finding

# (attribute marker, template emitted when missing)
COOKIE_ATTRIBUTE_CHECKS = (
    ("secure", "insecure-cookie"),
    ("httponly", "missing-httponly"),
    ("samesite", "missing-samesite"),
)


class InsecureCookiesProbe(BaseProbe):

    @property
    def name(self) -> str:
        return "insecure_cookies"

    def execute(self, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult(probe_name=self.name)

        with ctx.session_factory() as session:
            # headers only; the body is never read
            with session.get(ctx.url, timeout=ctx.timeout, stream=True) as response:
                cookie_headers = get_set_cookie_headers(response)

        for cookie_header in cookie_headers:
            lowered = cookie_header.lower()
            for marker, template_id in COOKIE_ATTRIBUTE_CHECKS:
                if marker not in lowered:
                    result.findings.append(build_finding(template_id, evidence=[cookie_header]))
        return result
