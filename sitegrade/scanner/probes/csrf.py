# sitegrade/scanner/probes/csrf.py
"""
CSRF Form probe.

Coarse heuristic: the page has at least one <form> and the markup never
mentions "csrf" or "_token". Tokens with other names are missed.
"""

from __future__ import annotations

import re

from sitegrade.scanner.base import BaseProbe, ProbeContext, ProbeResult
from sitegrade.scanner.http import fetch
from sitegrade.scanner.templates import build_finding

FORM_TAG_RE = re.compile(r"<form[^>]*>", re.IGNORECASE)
CSRF_MARKERS = ("csrf", "_token")


class CSRFFormProbe(BaseProbe):

    @property
    def name(self) -> str:
        return "csrf_form"

    def execute(self, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult(probe_name=self.name)

        with ctx.session_factory() as session:
            _response, html = fetch(session, ctx.url, ctx.timeout)

        forms = FORM_TAG_RE.findall(html)
        if forms and not any(marker in html for marker in CSRF_MARKERS):
            result.findings.append(build_finding(
                "missing-csrf",
                evidence=[f"{len(forms)} form(s) without a recognisable CSRF token"],
            ))
        return result
