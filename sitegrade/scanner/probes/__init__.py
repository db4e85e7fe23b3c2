# sitegrade/scanner/probes/__init__.py
"""
Network probes.
Each probe inspects the target for one class of issue and returns Findings.
Probes do NOT score or classify context; they only report what they saw.
"""
from sitegrade.scanner.probes.headers import SecurityHeadersProbe
from sitegrade.scanner.probes.exposed_files import ExposedFilesProbe
from sitegrade.scanner.probes.platform import PlatformFingerprintProbe
from sitegrade.scanner.probes.xss import ReflectedXSSProbe
from sitegrade.scanner.probes.csrf import CSRFFormProbe
from sitegrade.scanner.probes.cookies import InsecureCookiesProbe
from sitegrade.scanner.probes.open_redirect import OpenRedirectProbe
from sitegrade.scanner.probes.sqli import SQLInjectionErrorProbe
from sitegrade.scanner.probes.pii import PIIExposureProbe

# Registry of all probes, in reporting order.
# The orchestrator runs every entry against each target.
ALL_PROBES = {
    "security_headers": SecurityHeadersProbe,
    "exposed_files": ExposedFilesProbe,
    "platform_fingerprint": PlatformFingerprintProbe,
    "reflected_xss": ReflectedXSSProbe,
    "csrf_form": CSRFFormProbe,
    "insecure_cookies": InsecureCookiesProbe,
    "open_redirect": OpenRedirectProbe,
    "sql_injection_error": SQLInjectionErrorProbe,
    "pii_exposure": PIIExposureProbe,
}

__all__ = [
    "SecurityHeadersProbe", "ExposedFilesProbe", "PlatformFingerprintProbe",
    "ReflectedXSSProbe", "CSRFFormProbe", "InsecureCookiesProbe",
    "OpenRedirectProbe", "SQLInjectionErrorProbe", "PIIExposureProbe",
    "ALL_PROBES",
]
