# sitegrade/scanner/probes/exposed_files.py
"""
Exposed Files probe.

Requests a fixed list of sensitive paths relative to the target and
treats any HTTP 200 as "exposed". A failing request for one path means
"not exposed" for that path, it is not a probe error. Only the status
line and headers are read; bodies are never downloaded.
"""

from __future__ import annotations

import logging

import requests

from sitegrade.scanner.base import BaseProbe, ProbeContext, ProbeResult
from sitegrade.scanner.templates import (
    SENSITIVE_FILES,
    build_finding,
    exposed_file_template_id,
)

logger = logging.getLogger(__name__)


class ExposedFilesProbe(BaseProbe):

    @property
    def name(self) -> str:
        return "exposed_files"

    def execute(self, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult(probe_name=self.name)

        with ctx.session_factory() as session:
            for path, _cvss, _impact, _description in SENSITIVE_FILES:
                target = f"{ctx.base_url}{path}"
                try:
                    with session.get(target, timeout=ctx.timeout, stream=True) as response:
                        status_code = response.status_code
                except requests.RequestException as e:
                    logger.debug(f"{self.name}: {target} not reachable ({e})")
                    continue

                if status_code != 200:
                    continue

                logger.info(f"{self.name}: {target} returned 200")
                result.findings.append(build_finding(
                    exposed_file_template_id(path),
                    evidence=[f"File accessible at: {target}"],
                ))

        return result
