# sitegrade/scanner/templates.py
"""
Finding Template Registry.

Canonical source of truth for every finding type the scanner can produce.
Keyed by template_id (e.g. "missing-hsts", "exposed---env").

Used by:
    - Probes:     Build findings with fixed CVSS, impact and references
    - Scorer:     Categories drive the contextual down-weighting rules
    - Reporting:  Consistent titles, categories and reference links

Each template defines fixed values. Severity is not stored: it is derived
from cvss_score (see base.severity_from_cvss), optionally raised to a
severity_floor.

Placeholders in description:
    {version}  - detected platform version
    {server}   - Server header value
    {count}    - number of distinct matches
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from sitegrade.scanner.base import SEVERITY_ORDER, Finding, severity_from_cvss

# OWASP labels
OWASP_MISCONFIG = "A6: Security Misconfiguration"
OWASP_INJECTION = "A3: Injection"
OWASP_CSRF = "A8: Cross-Site Request Forgery (CSRF)"
OWASP_REDIRECT = "A1: Unvalidated Redirects and Forwards"

# Categories
CATEGORY_HEADERS = "Security Headers"
CATEGORY_EXPOSED_FILES = "Exposed Files"
CATEGORY_PLATFORM = "Platform Security"
CATEGORY_DISCLOSURE = "Information Disclosure"
CATEGORY_XSS = "Cross-Site Scripting"
CATEGORY_CSRF = "CSRF Protection"
CATEGORY_COOKIES = "Cookie Security"
CATEGORY_REDIRECT = "Open Redirect"
CATEGORY_SQLI = "SQL Injection"
CATEGORY_PII = "PII Exposure"
CATEGORY_CREDENTIALS = "Credential Exposure"


@dataclass(frozen=True)
class FindingTemplate:
    template_id: str
    title: str
    description: str
    category: str
    recommendation: str
    cvss_score: float
    impact_score: int
    owasp_category: str

    confidence: str = "high"
    references: Tuple[str, ...] = ()
    cvss_vector: Optional[str] = None

    # Lowest severity ever reported, regardless of the CVSS band
    severity_floor: Optional[str] = None

    @property
    def severity(self) -> str:
        banded = severity_from_cvss(self.cvss_score)
        if self.severity_floor and SEVERITY_ORDER[self.severity_floor] < SEVERITY_ORDER[banded]:
            return self.severity_floor
        return banded


# ═══════════════════════════════════════════════════════════════════════════
# REGISTRY
# ═══════════════════════════════════════════════════════════════════════════

_TEMPLATES: Dict[str, FindingTemplate] = {}


def _r(tmpl: FindingTemplate) -> FindingTemplate:
    """Register a template."""
    _TEMPLATES[tmpl.template_id] = tmpl
    return tmpl


def slugify(value: str) -> str:
    """Replace every non-alphanumeric character with '-'."""
    return re.sub(r"[^a-zA-Z0-9]", "-", value)


# ───────────────────────────────────────────────────────────────────────────
# Security headers
# ───────────────────────────────────────────────────────────────────────────

_r(FindingTemplate(
    template_id="missing-hsts",
    title="Missing HTTP Strict Transport Security (HSTS)",
    description=(
        "The site does not enforce HTTPS connections, allowing potential "
        "man-in-the-middle attacks"
    ),
    category=CATEGORY_HEADERS,
    recommendation=(
        'Add the Strict-Transport-Security header: '
        '"Strict-Transport-Security: max-age=31536000; includeSubDomains"'
    ),
    cvss_score=7.5,
    impact_score=15,
    owasp_category=OWASP_MISCONFIG,
    references=(
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Strict-Transport-Security",
        "https://owasp.org/www-community/controls/HTTP_Strict_Transport_Security",
        "https://hstspreload.org/",
    ),
))

_r(FindingTemplate(
    template_id="missing-csp",
    title="Missing Content Security Policy",
    description=(
        "No Content Security Policy header found, leaving the site vulnerable "
        "to XSS attacks"
    ),
    category=CATEGORY_HEADERS,
    recommendation=(
        "Implement a Content Security Policy header to control resource "
        "loading and prevent XSS"
    ),
    cvss_score=6.1,
    impact_score=10,
    owasp_category=OWASP_INJECTION,
    references=(
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/CSP",
        "https://csp-evaluator.withgoogle.com/",
        "https://content-security-policy.com/",
    ),
))

_r(FindingTemplate(
    template_id="missing-frame-options",
    title="Missing X-Frame-Options Header",
    description="Site may be vulnerable to clickjacking attacks through iframe embedding",
    category=CATEGORY_HEADERS,
    recommendation=(
        'Add X-Frame-Options header: "X-Frame-Options: DENY" or '
        '"X-Frame-Options: SAMEORIGIN"'
    ),
    cvss_score=5.4,
    impact_score=8,
    owasp_category=OWASP_MISCONFIG,
    references=(
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/X-Frame-Options",
        "https://owasp.org/www-community/attacks/Clickjacking",
    ),
))

_r(FindingTemplate(
    template_id="missing-content-type-options",
    title="Missing X-Content-Type-Options Header",
    description=(
        "Browser may perform MIME type sniffing, potentially executing "
        "malicious content"
    ),
    category=CATEGORY_HEADERS,
    recommendation='Add X-Content-Type-Options header: "X-Content-Type-Options: nosniff"',
    cvss_score=4.3,
    impact_score=6,
    owasp_category=OWASP_MISCONFIG,
    references=(
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/X-Content-Type-Options",
        "https://owasp.org/www-project-secure-headers/#x-content-type-options",
    ),
))

_r(FindingTemplate(
    template_id="missing-referrer-policy",
    title="Missing Referrer-Policy Header",
    description="Referrer information may leak sensitive data to external sites",
    category=CATEGORY_HEADERS,
    recommendation=(
        'Add Referrer-Policy header: '
        '"Referrer-Policy: strict-origin-when-cross-origin"'
    ),
    cvss_score=3.7,
    impact_score=3,
    owasp_category=OWASP_MISCONFIG,
    references=(
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Referrer-Policy",
        "https://web.dev/referrer-best-practices/",
    ),
))

_r(FindingTemplate(
    template_id="missing-xss-protection",
    title="Missing X-XSS-Protection Header",
    description="Legacy XSS protection not enabled (still useful for older browsers)",
    category=CATEGORY_HEADERS,
    recommendation='Add X-XSS-Protection header: "X-XSS-Protection: 1; mode=block"',
    cvss_score=3.1,
    impact_score=2,
    owasp_category=OWASP_INJECTION,
    confidence="medium",
    references=(
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/X-XSS-Protection",
        "https://owasp.org/www-project-secure-headers/#x-xss-protection",
    ),
))

_r(FindingTemplate(
    template_id="missing-permissions-policy",
    title="Missing Permissions-Policy Header",
    description="No control over browser features and APIs that can be used",
    category=CATEGORY_HEADERS,
    recommendation=(
        "Add Permissions-Policy header to control browser features: "
        '"Permissions-Policy: camera=(), microphone=(), geolocation=()"'
    ),
    cvss_score=2.7,
    impact_score=2,
    owasp_category=OWASP_MISCONFIG,
    confidence="medium",
    references=(
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Permissions-Policy",
        "https://www.w3.org/TR/permissions-policy-1/",
    ),
))

# Header name → template, in probe order
SECURITY_HEADER_TEMPLATES: Tuple[Tuple[str, str], ...] = (
    ("Strict-Transport-Security", "missing-hsts"),
    ("Content-Security-Policy", "missing-csp"),
    ("X-Frame-Options", "missing-frame-options"),
    ("X-Content-Type-Options", "missing-content-type-options"),
    ("Referrer-Policy", "missing-referrer-policy"),
    ("X-XSS-Protection", "missing-xss-protection"),
    ("Permissions-Policy", "missing-permissions-policy"),
)


# ───────────────────────────────────────────────────────────────────────────
# Exposed files
# ───────────────────────────────────────────────────────────────────────────

_ENV_REFERENCES = (
    "https://owasp.org/www-community/vulnerabilities/Improper_Error_Handling",
    "https://cheatsheetseries.owasp.org/cheatsheets/Logging_Cheat_Sheet.html",
)
_GIT_REFERENCES = (
    "https://owasp.org/www-community/attacks/Forced_browsing",
    "https://git-scm.com/docs/git-config",
)
_WORDPRESS_REFERENCES = (
    "https://wordpress.org/support/article/hardening-wordpress/",
    "https://owasp.org/www-project-web-security-testing-guide/",
)
_GENERAL_FILE_REFERENCES = (
    "https://owasp.org/www-community/attacks/Forced_browsing",
)


def _file_references(path: str) -> Tuple[str, ...]:
    if ".env" in path:
        return _ENV_REFERENCES
    if ".git" in path:
        return _GIT_REFERENCES
    if "wp-config" in path:
        return _WORDPRESS_REFERENCES
    return _GENERAL_FILE_REFERENCES


# (path, cvss, impact, description)
SENSITIVE_FILES: Tuple[Tuple[str, float, int, str], ...] = (
    ("/.env", 9.5, 30,
     "Environment variables may contain database passwords, API keys, and other secrets"),
    ("/.git/config", 9.0, 25,
     "Git configuration may expose repository information and access credentials"),
    ("/config.json", 7.5, 20,
     "Configuration files may contain sensitive application settings"),
    ("/wp-config.php", 9.5, 30,
     "WordPress configuration contains database credentials and security keys"),
    ("/.htaccess", 5.3, 10,
     "Apache configuration may reveal server setup details"),
    ("/admin", 7.1, 15,
     "Admin interface should not be publicly accessible without authentication"),
    ("/phpmyadmin", 8.2, 20,
     "Database administration tool should be restricted or removed"),
)


def exposed_file_template_id(path: str) -> str:
    return f"exposed-{slugify(path)}"


for _path, _cvss, _impact, _description in SENSITIVE_FILES:
    _r(FindingTemplate(
        template_id=exposed_file_template_id(_path),
        title=f"Exposed Sensitive File: {_path}",
        description=_description,
        category=CATEGORY_EXPOSED_FILES,
        recommendation=f"Immediately restrict access to {_path} or remove it from the web root",
        cvss_score=_cvss,
        impact_score=_impact,
        owasp_category=OWASP_MISCONFIG,
        references=_file_references(_path),
    ))


# ───────────────────────────────────────────────────────────────────────────
# Platform fingerprint
# ───────────────────────────────────────────────────────────────────────────

_r(FindingTemplate(
    template_id="wordpress-version-exposed",
    title="WordPress Version Exposed",
    description="WordPress version {version} is exposed in HTML",
    category=CATEGORY_PLATFORM,
    recommendation="Hide WordPress version information to reduce attack surface",
    cvss_score=3.1,
    impact_score=3,
    owasp_category=OWASP_MISCONFIG,
    references=_WORDPRESS_REFERENCES,
))

_r(FindingTemplate(
    template_id="server-disclosure",
    title="Server Information Disclosure",
    description="Server information exposed: {server}",
    category=CATEGORY_DISCLOSURE,
    recommendation="Configure server to hide version information",
    cvss_score=2.7,
    impact_score=2,
    owasp_category=OWASP_MISCONFIG,
    references=(
        "https://owasp.org/www-project-secure-headers/#server",
        "https://cheatsheetseries.owasp.org/cheatsheets/HTTP_Headers_Cheat_Sheet.html",
    ),
))


# ───────────────────────────────────────────────────────────────────────────
# Injection / request forgery heuristics
# ───────────────────────────────────────────────────────────────────────────

_r(FindingTemplate(
    template_id="reflected-xss",
    title="Potential Reflected XSS Vulnerability",
    description="User input appears to be reflected without proper sanitization",
    category=CATEGORY_XSS,
    recommendation="Implement proper input validation and output encoding",
    cvss_score=8.8,
    impact_score=20,
    owasp_category=OWASP_INJECTION,
    confidence="medium",
    references=(
        "https://owasp.org/www-community/attacks/xss/",
        "https://cheatsheetseries.owasp.org/cheatsheets/Cross_Site_Scripting_Prevention_Cheat_Sheet.html",
    ),
))

_r(FindingTemplate(
    template_id="missing-csrf",
    title="Forms May Lack CSRF Protection",
    description="Forms detected but no CSRF tokens found",
    category=CATEGORY_CSRF,
    recommendation="Implement CSRF tokens for all state-changing forms",
    cvss_score=6.5,
    impact_score=12,
    owasp_category=OWASP_CSRF,
    confidence="medium",
    references=(
        "https://owasp.org/www-community/attacks/csrf",
        "https://cheatsheetseries.owasp.org/cheatsheets/Cross-Site_Request_Forgery_Prevention_Cheat_Sheet.html",
    ),
))

_r(FindingTemplate(
    template_id="open-redirect",
    title="Open Redirect Vulnerability",
    description="Application redirects to external URLs without validation",
    category=CATEGORY_REDIRECT,
    recommendation="Validate redirect URLs against a whitelist of allowed domains",
    cvss_score=6.1,
    impact_score=12,
    owasp_category=OWASP_REDIRECT,
    references=(
        "https://owasp.org/www-project-web-security-testing-guide/v42/4-Web_Application_Security_Testing/11-Client-side_Testing/04-Testing_for_Client-side_URL_Redirect",
        "https://cheatsheetseries.owasp.org/cheatsheets/Unvalidated_Redirects_and_Forwards_Cheat_Sheet.html",
    ),
))

_r(FindingTemplate(
    template_id="sql-injection-error",
    title="Potential SQL Injection Vulnerability",
    description="Database error messages suggest potential SQL injection vulnerability",
    category=CATEGORY_SQLI,
    recommendation="Use parameterized queries and input validation to prevent SQL injection",
    cvss_score=8.8,
    impact_score=25,
    owasp_category=OWASP_INJECTION,
    confidence="medium",
    references=(
        "https://owasp.org/www-community/attacks/SQL_Injection",
        "https://cheatsheetseries.owasp.org/cheatsheets/SQL_Injection_Prevention_Cheat_Sheet.html",
    ),
))


# ───────────────────────────────────────────────────────────────────────────
# Cookies
# ───────────────────────────────────────────────────────────────────────────

_r(FindingTemplate(
    template_id="insecure-cookie",
    title="Insecure Cookie Configuration",
    description="Cookies are not marked with Secure flag, allowing transmission over HTTP",
    category=CATEGORY_COOKIES,
    recommendation="Add Secure flag to all cookies: Set-Cookie: name=value; Secure",
    cvss_score=5.4,
    impact_score=8,
    owasp_category=OWASP_MISCONFIG,
    references=(
        "https://owasp.org/www-community/controls/SecureCookieAttribute",
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Cookies#restrict_access_to_cookies",
    ),
))

_r(FindingTemplate(
    template_id="missing-httponly",
    title="Missing HttpOnly Cookie Flag",
    description="Cookies are accessible via JavaScript, increasing XSS risk",
    category=CATEGORY_COOKIES,
    recommendation="Add HttpOnly flag to cookies: Set-Cookie: name=value; HttpOnly",
    cvss_score=4.3,
    impact_score=6,
    owasp_category=OWASP_INJECTION,
    references=(
        "https://owasp.org/www-community/HttpOnly",
        "https://developer.mozilla.org/en-US/docs/Web/HTTP/Cookies#restrict_access_to_cookies",
    ),
))

_r(FindingTemplate(
    template_id="missing-samesite",
    title="Missing SameSite Cookie Attribute",
    description="Cookies lack SameSite protection against CSRF attacks",
    category=CATEGORY_COOKIES,
    recommendation="Add SameSite attribute: Set-Cookie: name=value; SameSite=Strict",
    cvss_score=3.5,
    impact_score=4,
    owasp_category=OWASP_CSRF,
    references=(
        "https://owasp.org/www-community/SameSite",
        "https://web.dev/samesite-cookies-explained/",
    ),
))


# ───────────────────────────────────────────────────────────────────────────
# PII / credentials
# ───────────────────────────────────────────────────────────────────────────

_r(FindingTemplate(
    template_id="pii-email-exposure",
    title="Email Addresses Exposed in HTML",
    description="Found {count} personal email address(es) exposed in the webpage source",
    category=CATEGORY_PII,
    recommendation=(
        "Remove email addresses from HTML source. Use contact forms or "
        "obfuscation techniques."
    ),
    cvss_score=7.5,
    impact_score=20,
    owasp_category=OWASP_MISCONFIG,
    references=(
        "https://owasp.org/www-community/vulnerabilities/Information_exposure_through_directory_listing",
        "https://cheatsheetseries.owasp.org/cheatsheets/Information_Exposure_Prevention_Cheat_Sheet.html",
    ),
))

_CREDENTIAL_REFERENCES = (
    "https://owasp.org/www-project-api-security/",
    "https://cheatsheetseries.owasp.org/cheatsheets/Secrets_Management_Cheat_Sheet.html",
)

# (display name, pattern, cvss)
CREDENTIAL_PATTERNS: Tuple[Tuple[str, "re.Pattern[str]", float], ...] = (
    ("Google/Firebase API Key", re.compile(r"AIza[0-9A-Za-z\-_]{35}"), 9.0),
    ("OpenAI API Key", re.compile(r"sk-[A-Za-z0-9]{32,}"), 9.5),
    ("AWS Access Key", re.compile(r"AKIA[0-9A-Z]{16}"), 9.5),
    ("Supabase API Key", re.compile(r"eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*"), 8.5),
    ("Stripe API Key", re.compile(r"sk_live_[0-9a-zA-Z]{24}"), 9.0),
    ("GitHub Token", re.compile(r"ghp_[A-Za-z0-9]{36}"), 8.0),
)


def credential_template_id(name: str) -> str:
    return f"credential-exposure-{slugify(name.lower())}"


for _name, _pattern, _cvss in CREDENTIAL_PATTERNS:
    _r(FindingTemplate(
        template_id=credential_template_id(_name),
        title=f"{_name} Exposed in HTML",
        description=f"Found {{count}} {_name}(s) exposed in the webpage source",
        category=CATEGORY_CREDENTIALS,
        recommendation=(
            "IMMEDIATELY revoke and rotate exposed API keys. Never expose API "
            "keys in client-side code."
        ),
        cvss_score=_cvss,
        impact_score=30,
        owasp_category=OWASP_MISCONFIG,
        references=_CREDENTIAL_REFERENCES,
        severity_floor="critical",
    ))


# ═══════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ═══════════════════════════════════════════════════════════════════════════

def get_template(template_id: str) -> Optional[FindingTemplate]:
    """Look up a template by ID."""
    return _TEMPLATES.get(template_id)


def get_all_templates() -> Dict[str, FindingTemplate]:
    """Return the full registry (read-only copy)."""
    return dict(_TEMPLATES)


def get_templates_by_category(category: str) -> List[FindingTemplate]:
    """Return all templates in a given category."""
    return [t for t in _TEMPLATES.values() if t.category == category]


def build_finding(
    template_id: str,
    evidence: Iterable[str] = (),
    **placeholders: object,
) -> Finding:
    """
    Instantiate a Finding from its template.

    Usage:
        build_finding("server-disclosure", evidence=["Server: nginx"], server="nginx")

    Raises KeyError for unknown template IDs: probes only emit catalogued checks.
    """
    tmpl = _TEMPLATES[template_id]
    try:
        description = tmpl.description.format(**placeholders)
    except KeyError:
        description = tmpl.description
    return Finding(
        id=tmpl.template_id,
        title=tmpl.title,
        description=description,
        category=tmpl.category,
        severity=tmpl.severity,
        recommendation=tmpl.recommendation,
        cvss_score=tmpl.cvss_score,
        owasp_category=tmpl.owasp_category,
        impact_score=tmpl.impact_score,
        evidence=tuple(e for e in evidence if e),
        reference_links=tmpl.references,
        confidence=tmpl.confidence,
        cvss_vector=tmpl.cvss_vector,
    )
