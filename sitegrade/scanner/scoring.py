# sitegrade/scanner/scoring.py
# =============================================================================
# Contextual Security Score Calculator
# =============================================================================
# Single source of truth for the scan score and grade.
#
# Worst-case model: the single highest contextual CVSS drives the penalty,
# so a site with many low findings is not buried, while one critical issue
# still fails it.
#
#   general / business:  90 - maxCVSS × 7 + bonus
#   training:            85 - maxCVSS × 4 + bonus, never above 88
#   no findings:         base + bonus
#
# Result clamped to 0–100 and rounded half-up to an integer.
#
# Grades:  A ≥ 90,  B ≥ 80,  C ≥ 70,  D ≥ 60,  F below.
# =============================================================================

from __future__ import annotations

import math
import re
from dataclasses import replace
from typing import List, Optional

from sitegrade.scanner.base import Finding, ScanContextLabel, clamp
from sitegrade.scanner.templates import (
    CATEGORY_CSRF,
    CATEGORY_EXPOSED_FILES,
    CATEGORY_HEADERS,
    CATEGORY_SQLI,
    CATEGORY_XSS,
)

TRAINING_HEADER_FACTOR = 0.4
TRAINING_VULN_FACTOR = 0.3

TRAINING_CEILING = 88

VULNERABILITY_CATEGORIES = frozenset({
    CATEGORY_XSS.lower(),
    CATEGORY_SQLI.lower(),
    CATEGORY_CSRF.lower(),
    CATEGORY_EXPOSED_FILES.lower(),
})

INTENTIONAL_RE = re.compile(r"ctf|challenge|training|practice|intentional|deliberate", re.IGNORECASE)


def score_parameters(context: ScanContextLabel) -> tuple[int, int]:
    """(base, multiplier) for a context."""
    if context == ScanContextLabel.TRAINING:
        return 85, 4
    return 90, 7


def is_missing_header(finding: Finding) -> bool:
    if finding.category.lower() == CATEGORY_HEADERS.lower():
        return True
    title = finding.title.lower()
    return "missing" in title and "header" in title


def is_vulnerability_class(finding: Finding) -> bool:
    return finding.category.lower() in VULNERABILITY_CATEGORIES


def contextual_cvss(finding: Finding, context: ScanContextLabel, page_html: Optional[str] = None) -> float:
    """
    CVSS after context down-weighting. Only training targets are reduced;
    business and general targets keep the base score.
    """
    cvss = finding.cvss_score
    if context == ScanContextLabel.TRAINING:
        if is_missing_header(finding):
            cvss *= TRAINING_HEADER_FACTOR
        elif is_vulnerability_class(finding) and (
            INTENTIONAL_RE.search(page_html or "") or INTENTIONAL_RE.search(finding.description)
        ):
            cvss *= TRAINING_VULN_FACTOR
    return round(clamp(cvss, 0.0, 10.0), 2)


def apply_context(
    findings: List[Finding],
    context: ScanContextLabel,
    page_html: Optional[str] = None,
) -> List[Finding]:
    """Overlay contextual_cvss on every finding (returns new Finding objects)."""
    return [
        replace(f, contextual_cvss=contextual_cvss(f, context, page_html))
        for f in findings
    ]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calc_security_score(findings: List[Finding], context: ScanContextLabel, bonus_total: int = 0) -> int:
    """
    Final 0–100 score. Findings are expected to carry contextual_cvss
    (see apply_context); the base cvss_score is used where it is missing.
    """
    base, multiplier = score_parameters(context)

    if not findings:
        final = float(base + bonus_total)
    else:
        max_cvss = max(f.effective_cvss for f in findings)
        final = base - (max_cvss * multiplier) + bonus_total

    final = clamp(final, 0.0, 100.0)
    if context == ScanContextLabel.TRAINING:
        final = min(final, TRAINING_CEILING)
    return round_half_up(final)


def grade_from_score(score: float) -> str:
    """Letter grade, closed-open bands: 90 → A, 89 → B."""
    if score >= 90:
        return "A"
    elif score >= 80:
        return "B"
    elif score >= 70:
        return "C"
    elif score >= 60:
        return "D"
    else:
        return "F"
