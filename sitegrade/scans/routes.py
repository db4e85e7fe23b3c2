# =============================================================================
# File: sitegrade/scans/routes.py
# Description: Public scan routes: create a guest scan, fetch its results.
#   Scans run in a background thread so the HTTP request returns at once;
#   the client polls GET /scans/<access_token> until the status is final.
#
#   - POST /scans:                 sanitize + validate URL, rate limit, queue
#   - GET  /scans/<access_token>:  scan + findings while the token is valid
# =============================================================================

from __future__ import annotations

import logging
import secrets
import threading
from datetime import timedelta
from typing import Optional
from urllib.parse import urlparse

from flask import Blueprint, current_app, jsonify, request

from sitegrade.extensions import db
from sitegrade.models import Scan, ScanFinding, now_utc
from sitegrade.scanner import ScanOrchestrator

logger = logging.getLogger(__name__)

scans_bp = Blueprint("scans", __name__, url_prefix="/scans")

MAX_URL_LENGTH = 2048
DEFAULT_TOKEN_TTL_DAYS = 7

_STRIP_CHARS = str.maketrans("", "", "<>'\"")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def sanitize_url(raw: str) -> str:
    """Trim, lowercase and drop angle brackets and quotes."""
    return (raw or "").strip().lower().translate(_STRIP_CHARS)


def _validate_url(raw) -> tuple:
    """Returns (url, error_response). If valid, error is None."""
    if not raw or not isinstance(raw, str):
        return None, (jsonify(error="url is required"), 400)

    url = sanitize_url(raw)
    if len(url) > MAX_URL_LENGTH:
        return None, (jsonify(error=f"url must be at most {MAX_URL_LENGTH} characters"), 400)

    try:
        parsed = urlparse(url)
    except ValueError:
        return None, (jsonify(error="invalid url"), 400)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None, (jsonify(error="invalid url"), 400)

    return url, None


def client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.headers.get("X-Real-IP") or request.remote_addr or "unknown"


def _token_ttl() -> timedelta:
    days = current_app.config.get("SITEGRADE_TOKEN_TTL_DAYS", DEFAULT_TOKEN_TTL_DAYS)
    return timedelta(days=int(days))


def _build_orchestrator() -> ScanOrchestrator:
    factory = current_app.config.get("SCAN_ORCHESTRATOR_FACTORY") or ScanOrchestrator
    return factory()


def _start_scan(scan_id: int):
    """Run the scan inline (tests, SITEGRADE_RUN_INLINE) or in a background thread."""
    app = current_app._get_current_object()

    def _run():
        with app.app_context():
            scan = db.session.get(Scan, scan_id)
            if not scan:
                logger.error(f"Background scan: scan {scan_id} not found")
                return
            try:
                orchestrator = _build_orchestrator()
            except Exception as e:
                logger.exception(f"Could not set up scan {scan_id}")
                scan.status = "failed"
                scan.error_message = str(e)[:500]
                scan.completed_at = now_utc()
                db.session.commit()
                return
            orchestrator.execute(scan)
            logger.info(f"Background scan {scan_id} finished: {scan.status}")

    if app.config.get("SITEGRADE_RUN_INLINE"):
        _run()
        return

    thread = threading.Thread(target=_run, daemon=True, name=f"sitegrade-scan-{scan_id}")
    thread.start()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@scans_bp.post("")
def create_scan():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}

    url, err = _validate_url(body.get("url"))
    if err:
        return err

    ip = client_ip()
    limiter = current_app.extensions["scan_rate_limiter"]
    if not limiter.allow(ip):
        return jsonify(
            error="rate limit exceeded",
            message=(
                f"Maximum {limiter.limit} scans per 24 hours for guest users. "
                "Please sign up for unlimited scans."
            ),
        ), 429

    scan = Scan(
        url=url,
        status="pending",
        client_ip=ip,
        access_token=secrets.token_urlsafe(32),
        token_expires_at=now_utc() + _token_ttl(),
    )
    db.session.add(scan)
    db.session.commit()

    scan_id = scan.id
    access_token = scan.access_token
    logger.info(f"Guest scan {scan_id} created for {url} (client {ip})")

    _start_scan(scan_id)

    # Inline runs commit through their own app context session
    db.session.refresh(scan)
    return jsonify(
        id=scan_id,
        access_token=access_token,
        status=scan.status,
    ), 202


@scans_bp.get("/<access_token>")
def get_scan(access_token: str):
    scan: Optional[Scan] = (
        Scan.query
        .filter(Scan.access_token == access_token, Scan.token_expires_at > now_utc())
        .first()
    )
    if not scan:
        return jsonify(error="Scan not found or expired"), 404

    findings = (
        ScanFinding.query
        .filter_by(scan_id=scan.id)
        .order_by(ScanFinding.id.asc())
        .all()
    )

    return jsonify(
        scan=scan.to_dict(),
        findings=[f.to_dict() for f in findings],
    ), 200
