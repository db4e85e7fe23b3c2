# sitegrade/scanner/probes/platform.py
"""
Platform Fingerprint probe.

Detects information the platform leaks about itself:
    - WordPress version in wp-includes asset URLs
    - Server header disclosure (Cloudflare's generic header is ignored)
"""

from __future__ import annotations

import logging
import re

from sitegrade.scanner.base import BaseProbe, ProbeContext, ProbeResult
from sitegrade.scanner.http import fetch
from sitegrade.scanner.templates import build_finding

logger = logging.getLogger(__name__)

WP_VERSION_RE = re.compile(r"wp-includes.*?ver=([0-9.]+)")


class PlatformFingerprintProbe(BaseProbe):

    @property
    def name(self) -> str:
        return "platform_fingerprint"

    def execute(self, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult(probe_name=self.name)

        with ctx.session_factory() as session:
            response, html = fetch(session, ctx.url, ctx.timeout)
        headers = response.headers

        powered_by = headers.get("X-Powered-By") or ""
        if "wp-content" in html or "WordPress" in powered_by:
            match = WP_VERSION_RE.search(html)
            if match:
                result.findings.append(build_finding(
                    "wordpress-version-exposed",
                    evidence=[match.group(0)],
                    version=match.group(1),
                ))

        server = headers.get("Server")
        if server and "cloudflare" not in server.lower():
            result.findings.append(build_finding(
                "server-disclosure",
                evidence=[f"Server: {server}"],
                server=server,
            ))

        return result
