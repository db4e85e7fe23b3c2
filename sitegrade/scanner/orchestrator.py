# sitegrade/scanner/orchestrator.py
"""
Scan Orchestrator: coordinates the full scan pipeline.

    1. Fan out every registered probe against the target, one thread each
    2. Wait at most probe_timeout; late probes become errors, not failures
    3. Deduplicate findings across probes
    4. Classify the target context from the PII probe's page bundle
    5. Compute the hygiene bonus from the same bundle
    6. Overlay contextual CVSS, score and grade
    7. Assemble the ScanReport

Usage from scans/routes.py:
    from sitegrade.scanner import ScanOrchestrator

    orchestrator = ScanOrchestrator()
    orchestrator.execute(scan)          # drives Scan status + persists findings

Or without persistence:
    report = ScanOrchestrator().run("https://example.com")
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Type

from sitegrade.scanner.base import (
    BaseProbe,
    Finding,
    PageBundle,
    ProbeContext,
    ProbeResult,
    SessionFactory,
    now_utc,
)
from sitegrade.scanner.bonus import compute_bonus
from sitegrade.scanner.context import classify_context
from sitegrade.scanner.dedup import FindingDeduplicator
from sitegrade.scanner.http import build_session
from sitegrade.scanner.probes import ALL_PROBES
from sitegrade.scanner.report import ScanReport, disclaimer_for, top_recommendations
from sitegrade.scanner.scoring import apply_context, calc_security_score, grade_from_score

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10.0


def _default_probe_timeout() -> float:
    raw = os.getenv("SITEGRADE_PROBE_TIMEOUT")
    if not raw:
        return DEFAULT_PROBE_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid SITEGRADE_PROBE_TIMEOUT={raw!r}, using {DEFAULT_PROBE_TIMEOUT}s")
        return DEFAULT_PROBE_TIMEOUT


def _format_seconds(seconds: float) -> str:
    return f"{seconds:g}s"


class ScanOrchestrator:
    """
    Args:
        probes:          Probe classes to run, keyed by name. Defaults to ALL_PROBES.
        probe_timeout:   Seconds the whole fan-out may take, measured from
                         submission. Also used as the per-request timeout.
        session_factory: Builds one requests.Session per probe.
    """

    def __init__(
        self,
        probes: Optional[Dict[str, Type[BaseProbe]]] = None,
        probe_timeout: Optional[float] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.probes = dict(probes if probes is not None else ALL_PROBES)
        self.probe_timeout = probe_timeout if probe_timeout is not None else _default_probe_timeout()
        self.session_factory = session_factory or build_session

    # -------------------------------------------------------------------
    # Engine
    # -------------------------------------------------------------------

    def run(self, url: str) -> ScanReport:
        """
        Run all probes against one validated URL and produce a report.

        Never raises for probe-level problems: those end up in report.errors.
        """
        started_at = now_utc()
        total_start = time.monotonic()

        ctx = ProbeContext(
            url=url,
            timeout=self.probe_timeout,
            session_factory=self.session_factory,
        )

        results, errors = self._run_probes(ctx)

        # --- Collect ---
        raw_findings: List[Finding] = []
        page: Optional[PageBundle] = None
        for result in results:
            raw_findings.extend(result.findings)
            if result.page is not None:
                page = result.page

        # --- Deduplicate ---
        dedup = FindingDeduplicator()
        dedup.add_results(raw_findings)
        findings = dedup.get_results()
        stats = dedup.get_stats()
        logger.info(f"Removed {stats['merged']} duplicate findings for {url}")

        # --- Classify + bonus ---
        page_html = page.content if page else None
        context = classify_context(url, page_html)
        bonus = compute_bonus(page)

        # --- Score ---
        findings = apply_context(findings, context, page_html)
        score = calc_security_score(findings, context, bonus.total)
        grade = grade_from_score(score)

        duration = round(time.monotonic() - total_start, 2)
        logger.info(
            f"Scan of {url} finished in {duration}s: score={score} grade={grade} "
            f"context={context.value} findings={len(findings)} errors={len(errors)}"
        )

        return ScanReport(
            url=url,
            score=score,
            grade=grade,
            context=context,
            findings=findings,
            bonus=bonus,
            errors=errors,
            disclaimer=disclaimer_for(context),
            recommendations=top_recommendations(findings),
            started_at=started_at,
            finished_at=now_utc(),
            duration_seconds=duration,
        )

    def _run_probes(self, ctx: ProbeContext) -> tuple[List[ProbeResult], List[str]]:
        """
        Fan out every probe on its own worker and join with one deadline.

        Results come back in registry order. The executor is not joined on
        exit: a probe stuck in I/O keeps its thread until its own request
        timeout fires, but the scan does not wait for it.
        """
        results: List[ProbeResult] = []
        errors: List[str] = []
        if not self.probes:
            return results, errors

        executor = ThreadPoolExecutor(
            max_workers=len(self.probes),
            thread_name_prefix="sitegrade-probe",
        )
        try:
            future_to_name: Dict[Future, str] = {}
            for name, probe_cls in self.probes.items():
                probe: BaseProbe = probe_cls()
                logger.debug(f"Submitting probe '{name}' for {ctx.url}")
                future_to_name[executor.submit(probe.run, ctx)] = name

            done, _pending = wait(future_to_name, timeout=self.probe_timeout)

            for future, name in future_to_name.items():
                if future not in done:
                    logger.warning(f"Probe '{name}' timed out after {self.probe_timeout}s for {ctx.url}")
                    errors.append(f"{name}: timed out after {_format_seconds(self.probe_timeout)}")
                    continue

                try:
                    result: ProbeResult = future.result()
                except Exception as e:
                    # BaseProbe.run already converts exceptions; this is a last resort
                    logger.exception(f"Probe '{name}' raised outside its boundary")
                    errors.append(f"{name}: {type(e).__name__}: {e}")
                    continue

                if result.success:
                    logger.info(
                        f"Probe '{name}' completed in {result.duration_seconds}s "
                        f"with {len(result.findings)} finding(s)"
                    )
                else:
                    logger.warning(f"Probe '{name}' failed: {result.errors}")
                for err in result.errors:
                    errors.append(f"{name}: {err}")
                results.append(result)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return results, errors

    # -------------------------------------------------------------------
    # Persistence lifecycle
    # -------------------------------------------------------------------

    def execute(self, scan) -> Optional[ScanReport]:
        """
        Run a persisted Scan through pending → running → completed | failed.

        Findings are inserted in a single batch after all probes have joined.
        Any exception outside the probes marks the scan failed; the error is
        recorded on the row rather than raised.

        Must be called inside a Flask application context.
        """
        from sitegrade.extensions import db
        from sitegrade.models import ScanFinding, now_utc as db_now

        scan_id = scan.id
        try:
            scan.status = "running"
            scan.started_at = db_now()
            db.session.commit()

            report = self.run(scan.url)

            for finding in report.findings:
                db.session.add(ScanFinding.from_finding(scan_id, finding))

            scan.status = "completed"
            scan.score = report.score
            scan.grade = report.grade
            scan.metadata_json = report.to_metadata()
            scan.completed_at = db_now()
            db.session.commit()

            logger.info(f"Scan #{scan_id} completed: {len(report.findings)} findings persisted")
            return report

        except Exception as e:
            logger.exception(f"Scan #{scan_id} failed")
            db.session.rollback()
            try:
                scan.status = "failed"
                scan.error_message = str(e)[:500]
                scan.completed_at = db_now()
                db.session.commit()
            except Exception:
                logger.exception(f"Could not mark scan #{scan_id} as failed")
                db.session.rollback()
            return None
