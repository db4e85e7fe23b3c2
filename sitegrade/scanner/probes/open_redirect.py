# sitegrade/scanner/probes/open_redirect.py
"""
Open Redirect probe.

Tries the usual redirect parameters with an external destination and
reports the first 3xx whose Location points there. Stops at the first hit.
"""

from __future__ import annotations

import logging

import requests

from sitegrade.scanner.base import BaseProbe, ProbeContext, ProbeResult
from sitegrade.scanner.http import append_query
from sitegrade.scanner.templates import build_finding

logger = logging.getLogger(__name__)

REDIRECT_DESTINATION = "https://evil.com"
REDIRECT_MARKER = "evil.com"
REDIRECT_PARAMS = ("redirect", "url", "return_to", "next")


class OpenRedirectProbe(BaseProbe):

    @property
    def name(self) -> str:
        return "open_redirect"

    def execute(self, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult(probe_name=self.name)

        with ctx.session_factory() as session:
            for param in REDIRECT_PARAMS:
                test_url = append_query(ctx.url, f"{param}={REDIRECT_DESTINATION}")
                try:
                    response = session.head(test_url, timeout=ctx.timeout, allow_redirects=False)
                except requests.RequestException as e:
                    logger.debug(f"{self.name}: {test_url} failed ({e})")
                    continue

                if not 300 <= response.status_code < 400:
                    continue
                location = response.headers.get("Location") or ""
                if REDIRECT_MARKER in location:
                    result.findings.append(build_finding(
                        "open-redirect",
                        evidence=[f"Redirect to: {location}"],
                    ))
                    break

        return result
