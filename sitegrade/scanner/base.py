# sitegrade/scanner/base.py
"""
Base classes for the sitegrade scan engine.

Architecture:
    ProbeContext flows into every probe:  Probes → Deduplicator → Scorer → Report

BaseProbe:   Inspects the target URL over HTTP and returns Findings.
             Probes never see each other's results and never raise past
             their own boundary: failures become ProbeResult.errors.

Finding:     Immutable record of one detected issue. Only the deduplicator
             (merging evidence) and the scorer (contextual_cvss) produce
             derived copies, always through dataclasses.replace().

This separation means:
  - A slow or broken probe only costs its own findings, never the scan
  - Severity bands live in one place (severity_from_cvss), not in probes
  - Probes can be exercised in tests with a fake HTTP session
"""

from __future__ import annotations

import enum
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_utc() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


SEVERITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def severity_from_cvss(cvss: float) -> str:
    """CVSS v3.1 qualitative band. Scores of 0.0 are reported as low."""
    if cvss >= 9.0:
        return "critical"
    if cvss >= 7.0:
        return "high"
    if cvss >= 4.0:
        return "medium"
    return "low"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class ScanContextLabel(str, enum.Enum):
    """Classification of the scan target, decides scoring leniency."""
    TRAINING = "training"
    BUSINESS = "business"
    GENERAL = "general"


# ---------------------------------------------------------------------------
# Data structures that flow through the entire pipeline
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Finding:
    """
    A single detected security issue.

    Fields:
        id:              Stable slug of the check, e.g. "missing-hsts".
        title:           Human-readable title. (category, title) is the
                         deduplication key.
        description:     What was found.
        category:        Probe domain, e.g. "Security Headers".
        severity:        critical / high / medium / low. Derived from
                         cvss_score by the catalog, never chosen by a probe.
        recommendation:  How to fix it.
        evidence:        Raw strings supporting the finding, in encounter order.
        reference_links: Documentation URLs, de-duplicated.
        cvss_score:      CVSS v3.1 base score, 0.0–10.0.
        owasp_category:  OWASP classification label.
        impact_score:    Raw importance weight, 0–30.
        confidence:      high / medium / low. Heuristic checks stay "medium".
        cvss_vector:     Optional CVSS vector string.
        contextual_cvss: cvss_score after context down-weighting. None until
                         the scorer has run.
    """
    id: str
    title: str
    description: str
    category: str
    severity: str
    recommendation: str
    cvss_score: float
    owasp_category: str
    impact_score: int
    evidence: Tuple[str, ...] = ()
    reference_links: Tuple[str, ...] = ()
    confidence: str = "high"
    cvss_vector: Optional[str] = None
    contextual_cvss: Optional[float] = None

    @property
    def dedupe_key(self) -> Tuple[str, str]:
        return (self.category.lower(), self.title.lower())

    @property
    def effective_cvss(self) -> float:
        """contextual_cvss when scored, cvss_score otherwise."""
        if self.contextual_cvss is None:
            return self.cvss_score
        return self.contextual_cvss

    def to_dict(self) -> Dict[str, Any]:
        """Serialised shape handed to the persistence collaborator."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "severity": self.severity,
            "recommendation": self.recommendation,
            "evidence": list(self.evidence),
            "reference_links": list(self.reference_links),
            "cvss_score": self.cvss_score,
            "cvss_vector": self.cvss_vector,
            "contextual_cvss": self.effective_cvss,
            "owasp_category": self.owasp_category,
            "impact_score": int(clamp(self.impact_score, 0, 10)),
            "confidence": self.confidence,
        }


@dataclass
class PageBundle:
    """
    The single page fetch shared with the classifier and bonus computation.
    Produced by the PII probe only; read-only once the probes have joined.
    """
    url: str
    status_code: int
    content: str
    headers: Dict[str, str] = field(default_factory=dict)
    set_cookies: List[str] = field(default_factory=list)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass
class ProbeResult:
    """
    Standardized output from any probe run.

    Fields:
        probe_name:       Which probe produced this (e.g., "security_headers")
        success:          Did the probe complete without fatal errors?
        findings:         Findings produced, possibly empty.
        page:             Page bundle (PII probe only).
        errors:           Error messages surfaced to the scan's error list.
        duration_seconds: Wall-clock time the probe took.
    """
    probe_name: str
    success: bool = True
    findings: List[Finding] = field(default_factory=list)
    page: Optional[PageBundle] = None
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def add_error(self, msg: str):
        self.errors.append(msg)


SessionFactory = Callable[[], requests.Session]


@dataclass
class ProbeContext:
    """
    Read-only input handed to every probe.

    url:             Validated http/https target URL.
    timeout:         Per-request timeout in seconds.
    session_factory: Builds the HTTP session a probe uses. Each probe gets
                     its own session; requests.Session is not shared
                     across threads.
    """
    url: str
    timeout: float
    session_factory: SessionFactory

    @property
    def base_url(self) -> str:
        """Target without a trailing slash, for path concatenation."""
        return self.url.rstrip("/")


# ---------------------------------------------------------------------------
# Abstract base class
# ---------------------------------------------------------------------------

class BaseProbe(ABC):
    """
    Abstract base for probes.

    To create a new probe:
        1. Subclass BaseProbe
        2. Set the `name` property (e.g., "security_headers")
        3. Implement `execute(ctx) -> ProbeResult`
        4. Register it in sitegrade/scanner/probes/__init__.py ALL_PROBES

    The base class handles automatically:
        - Timing (duration_seconds is set automatically)
        - Error catching (exceptions become ProbeResult with success=False)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique probe identifier."""
        ...

    def run(self, ctx: ProbeContext) -> ProbeResult:
        """
        Execute the probe with automatic timing and error handling.

        DO NOT OVERRIDE THIS METHOD. Override `execute()` instead.

        Always returns a ProbeResult, even on failure.
        """
        result = ProbeResult(probe_name=self.name)
        start = time.monotonic()

        try:
            result = self.execute(ctx)
            result.probe_name = self.name
        except requests.RequestException as e:
            logger.warning(f"Probe '{self.name}' request failed for {ctx.url}: {e}")
            result = ProbeResult(
                probe_name=self.name,
                success=False,
                errors=[f"{type(e).__name__}: {str(e)}"],
            )
        except Exception as e:
            logger.exception(f"Probe '{self.name}' failed for {ctx.url}")
            result = ProbeResult(
                probe_name=self.name,
                success=False,
                errors=[f"{type(e).__name__}: {str(e)}"],
            )
        finally:
            result.duration_seconds = round(time.monotonic() - start, 2)

        return result

    @abstractmethod
    def execute(self, ctx: ProbeContext) -> ProbeResult:
        """
        Perform the actual inspection. Override this in subclasses.

        Request failures that mean "the check could not run" should be
        allowed to raise; run() turns them into a probe error. Failures
        that mean "nothing exposed" (a single speculative path) are
        swallowed inside execute().
        """
        ...
