# sitegrade/scanner/probes/headers.py
"""
Security Headers probe.

One HEAD request against the target. Every security header from the
catalog that is absent from the response produces one finding.

Checks performed (CVSS from the catalog):
    HIGH:
        - Missing Strict-Transport-Security (7.5)
    MEDIUM:
        - Missing Content-Security-Policy (6.1)
        - Missing X-Frame-Options (5.4)
        - Missing X-Content-Type-Options (4.3)
    LOW:
        - Missing Referrer-Policy (3.7)
        - Missing X-XSS-Protection (3.1)
        - Missing Permissions-Policy (2.7)
"""

from __future__ import annotations

import logging

from sitegrade.scanner.base import BaseProbe, ProbeContext, ProbeResult
from sitegrade.scanner.templates import SECURITY_HEADER_TEMPLATES, build_finding

logger = logging.getLogger(__name__)


class SecurityHeadersProbe(BaseProbe):

    @property
    def name(self) -> str:
        return "security_headers"

    def execute(self, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult(probe_name=self.name)

        with ctx.session_factory() as session:
            response = session.head(ctx.url, timeout=ctx.timeout, allow_redirects=True)

        # requests' CaseInsensitiveDict makes the lookup case-insensitive
        headers = response.headers
        for header_name, template_id in SECURITY_HEADER_TEMPLATES:
            if not headers.get(header_name):
                result.findings.append(build_finding(template_id))

        logger.debug(f"{self.name}: {len(result.findings)} missing headers on {ctx.url}")
        return result
