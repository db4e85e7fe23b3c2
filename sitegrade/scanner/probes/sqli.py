# sitegrade/scanner/probes/sqli.py
"""
SQL Injection (error-based) probe.

Sends SQL metacharacters in the "id" parameter and fingerprints database
driver error messages in the response. The first match is reported and
the probe returns immediately.
"""

from __future__ import annotations

import logging

import requests

from sitegrade.scanner.base import BaseProbe, ProbeContext, ProbeResult
from sitegrade.scanner.http import append_query, encode_component, fetch
from sitegrade.scanner.templates import build_finding

logger = logging.getLogger(__name__)

SQL_PAYLOADS = (
    "'",
    "1'",
    "1' OR '1'='1",
    "'; DROP TABLE users; --",
)

SQL_ERROR_SIGNATURES = (
    "mysql_fetch_array",
    "ORA-01756",
    "Microsoft OLE DB Provider",
    "ODBC SQL Server Driver",
    "SQLServer JDBC Driver",
    "PostgreSQL query failed",
    "Warning: mysql_",
    "valid MySQL result",
    "MySqlClient.",
)


class SQLInjectionErrorProbe(BaseProbe):

    @property
    def name(self) -> str:
        return "sql_injection_error"

    def execute(self, ctx: ProbeContext) -> ProbeResult:
        result = ProbeResult(probe_name=self.name)

        with ctx.session_factory() as session:
            for payload in SQL_PAYLOADS:
                test_url = append_query(ctx.url, f"id={encode_component(payload)}")
                try:
                    _response, body = fetch(session, test_url, ctx.timeout)
                except requests.RequestException as e:
                    logger.debug(f"{self.name}: {test_url} failed ({e})")
                    continue

                body = body.lower()
                for signature in SQL_ERROR_SIGNATURES:
                    if signature.lower() in body:
                        result.findings.append(build_finding(
                            "sql-injection-error",
                            evidence=[f"Error pattern found: {signature}"],
                        ))
                        return result

        return result
