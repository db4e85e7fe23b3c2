# sitegrade/scans/__init__.py
"""
Public scan API.

Endpoints (no auth; guests are rate limited per client IP):
    POST /scans                  - queue a scan, returns an access token
    GET  /scans/<access_token>   - scan status, score and findings
"""

from .routes import scans_bp

__all__ = ["scans_bp"]
