# sitegrade/scanner/report.py
"""
Report assembly: packages the scored findings for persistence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sitegrade.scanner.base import Finding, ScanContextLabel
from sitegrade.scanner.bonus import BonusRecord

MAX_RECOMMENDATIONS = 5

BASE_DISCLAIMER = (
    "This automated scan performs non-intrusive checks against publicly "
    "reachable pages. Heuristic findings (marked medium confidence) may be "
    "false positives, and a clean result does not prove the absence of "
    "vulnerabilities."
)

TRAINING_DISCLAIMER = (
    " The target looks like a security training or CTF environment: "
    "missing headers and intentional vulnerabilities were down-weighted "
    "and the score is capped at 88."
)


def disclaimer_for(context: ScanContextLabel) -> str:
    if context == ScanContextLabel.TRAINING:
        return BASE_DISCLAIMER + TRAINING_DISCLAIMER
    return BASE_DISCLAIMER


def top_recommendations(findings: List[Finding], limit: int = MAX_RECOMMENDATIONS) -> List[str]:
    """Distinct remediation texts, highest contextual CVSS first."""
    ordered = sorted(findings, key=lambda f: f.effective_cvss, reverse=True)
    recommendations: List[str] = []
    for finding in ordered:
        if finding.recommendation and finding.recommendation not in recommendations:
            recommendations.append(finding.recommendation)
        if len(recommendations) >= limit:
            break
    return recommendations


@dataclass
class ScanReport:
    """Write-once result of one scan invocation."""
    url: str
    score: int
    grade: str
    context: ScanContextLabel
    findings: List[Finding] = field(default_factory=list)
    bonus: BonusRecord = field(default_factory=BonusRecord)
    errors: List[str] = field(default_factory=list)
    disclaimer: str = ""
    recommendations: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    @property
    def severity_counts(self) -> Dict[str, int]:
        counts = {"critical": 0, "high": 0, "medium": 0, "low": 0}
        for f in self.findings:
            counts[f.severity] = counts.get(f.severity, 0) + 1
        return counts

    def to_metadata(self) -> Dict[str, Any]:
        """Metadata blob stored alongside the scan row."""
        return {
            "context": self.context.value,
            "bonus_breakdown": self.bonus.breakdown(),
            "bonus_details": dict(self.bonus.details),
            "recommendations": list(self.recommendations),
            "disclaimer": self.disclaimer,
            "errors": list(self.errors),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "score": self.score,
            "grade": self.grade,
            "findings": [f.to_dict() for f in self.findings],
            "severity_counts": self.severity_counts,
            "metadata": self.to_metadata(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
        }
