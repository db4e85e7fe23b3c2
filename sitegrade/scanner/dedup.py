# sitegrade/scanner/dedup.py
"""
Deduplication of findings across probes.

Takes the raw Finding lists from every probe and produces one Finding per
(category, title) with evidence and reference links merged.

Runs single-threaded, after all probes have joined.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Tuple

from sitegrade.scanner.base import SEVERITY_ORDER, Finding, severity_from_cvss


@dataclass
class MergedFinding:
    """Mutable accumulator for one dedupe key."""
    first: Finding
    impact_score: int
    cvss_score: float
    severity: str
    evidence: List[str] = field(default_factory=list)
    reference_links: List[str] = field(default_factory=list)

    def absorb(self, finding: Finding):
        self.impact_score = max(self.impact_score, finding.impact_score)
        self.cvss_score = max(self.cvss_score, finding.cvss_score)
        if SEVERITY_ORDER[finding.severity] < SEVERITY_ORDER[self.severity]:
            self.severity = finding.severity
        for item in finding.evidence:
            if item not in self.evidence:
                self.evidence.append(item)
        for link in finding.reference_links:
            if link not in self.reference_links:
                self.reference_links.append(link)

    def finalize(self) -> Finding:
        banded = severity_from_cvss(self.cvss_score)
        severity = min(banded, self.severity, key=lambda s: SEVERITY_ORDER[s])
        return replace(
            self.first,
            impact_score=self.impact_score,
            cvss_score=self.cvss_score,
            severity=severity,
            evidence=tuple(self.evidence),
            reference_links=tuple(self.reference_links),
        )


class FindingDeduplicator:
    """
    Merges findings sharing (category, title), compared case-insensitively.

    Strategy:
    1. Group by Finding.dedupe_key, in order of first occurrence
    2. Keep the max impact_score and max cvss_score; severity is re-derived
       from the merged CVSS but never drops below any merged input
    3. Append every distinct evidence string and reference link, first-seen order
    4. Non-merged fields (id, description, recommendation ...) come from
       the first occurrence
    """

    def __init__(self):
        self._merged: Dict[Tuple[str, str], MergedFinding] = {}
        self._received = 0

    def add_results(self, findings: Iterable[Finding]):
        for finding in findings:
            self._received += 1
            self._merge_finding(finding)

    def _merge_finding(self, finding: Finding):
        key = finding.dedupe_key
        existing = self._merged.get(key)
        if existing is None:
            existing = MergedFinding(
                first=finding,
                impact_score=finding.impact_score,
                cvss_score=finding.cvss_score,
                severity=finding.severity,
            )
            self._merged[key] = existing
        existing.absorb(finding)

    def get_results(self) -> List[Finding]:
        return [merged.finalize() for merged in self._merged.values()]

    def get_stats(self) -> dict:
        return {
            "received": self._received,
            "unique": len(self._merged),
            "merged": self._received - len(self._merged),
        }


def deduplicate(findings: Iterable[Finding]) -> List[Finding]:
    engine = FindingDeduplicator()
    engine.add_results(findings)
    return engine.get_results()
