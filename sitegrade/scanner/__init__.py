# sitegrade/scanner/__init__.py
"""
sitegrade scan engine.

Usage:
    from sitegrade.scanner import ScanOrchestrator

    report = ScanOrchestrator().run("https://example.com")
    report.score, report.grade, report.findings

Architecture:
    Orchestrator
    ├── Probes (run concurrently, one HTTP session each)
    │   ├── SecurityHeadersProbe     - HSTS, CSP, XFO, XCTO, Referrer, X-XSS, Permissions
    │   ├── ExposedFilesProbe        - .env, .git/config, admin panels ...
    │   ├── PlatformFingerprintProbe - WordPress version, Server header
    │   ├── ReflectedXSSProbe        - unescaped script reflection
    │   ├── CSRFFormProbe            - forms without a token
    │   ├── InsecureCookiesProbe     - Secure / HttpOnly / SameSite
    │   ├── OpenRedirectProbe        - redirect parameters
    │   ├── SQLInjectionErrorProbe   - database error signatures
    │   └── PIIExposureProbe         - personal emails, API keys (+ page bundle)
    │
    ├── FindingDeduplicator  - one finding per (category, title)
    ├── classify_context     - training / business / general
    ├── compute_bonus        - positive hygiene credit (≤ 10)
    ├── scoring              - contextual CVSS, 0–100 score, letter grade
    └── ScanReport           - what gets persisted
"""

from sitegrade.scanner.orchestrator import ScanOrchestrator
from sitegrade.scanner.report import ScanReport

__all__ = ["ScanOrchestrator", "ScanReport"]
