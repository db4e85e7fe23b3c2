# sitegrade/scanner/probes/xss.py
"""
Reflected XSS probe.

Sends a harmless script payload in the "q" parameter and looks for it,
unescaped, in the response body. This is a heuristic: reflection is not
proof of exploitability, so the finding carries medium confidence.
"""

from __future__ import annotations

from sitegrade.scanner.base import BaseProbe, ProbeContext, ProbeResult
from sitegrade.scanner.http import append_query, encode_component, fetch
from sitegrade.scanner.templates import build_finding

XSS_PAYLOAD = '<script>alert("xss")</script>'


class ReflectedXSSProbe(BaseProbe):

    @property
    def name(self) -> str:
        return "reflected_xss"

    def execute(self, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult(probe_name=self.name)
        test_url = append_query(ctx.url, f"q={encode_component(XSS_PAYLOAD)}")

        with ctx.session_factory() as session:
            _response, body = fetch(session, test_url, ctx.timeout)

        if XSS_PAYLOAD in body:
            result.findings.append(build_finding(
                "reflected-xss",
                evidence=[f"Payload reflected unescaped at: {test_url}"],
            ))
        return result
