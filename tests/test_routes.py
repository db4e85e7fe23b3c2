from datetime import timedelta

import pytest

from sitegrade import create_app
from sitegrade.extensions import db
from sitegrade.models import Scan, ScanFinding, now_utc
from sitegrade.scanner import ScanOrchestrator
from sitegrade.scans.ratelimit import InMemoryRateLimiter
from tests.conftest import TARGET
from tests.fakes import SECURE_HEADERS, FakeResponse


@pytest.fixture
def make_app(tmp_path, monkeypatch, site):
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
    monkeypatch.delenv("SQLALCHEMY_DATABASE_URI", raising=False)

    def _make(**overrides):
        config = {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path}/test.db",
            "SITEGRADE_RUN_INLINE": True,
            "SCAN_ORCHESTRATOR_FACTORY": lambda: ScanOrchestrator(
                session_factory=site.session, probe_timeout=5,
            ),
        }
        config.update(overrides)
        return create_app(config)

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


def _post(client, url, ip="10.0.0.1"):
    return client.post("/scans", json={"url": url}, headers={"X-Forwarded-For": ip})


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.get_json() == {"status": "up and running"}


@pytest.mark.parametrize("body,message", [
    ({}, "url is required"),
    ({"url": ""}, "url is required"),
    ({"url": 42}, "url is required"),
    ({"url": "ftp://example.com"}, "invalid url"),
    ({"url": "not a url"}, "invalid url"),
    ({"url": "https://example.com/" + "a" * 2048}, "url must be at most 2048 characters"),
])
def test_create_scan_rejects_bad_urls(client, body, message):
    resp = client.post("/scans", json=body)

    assert resp.status_code == 400
    assert resp.get_json() == {"error": message}


@pytest.mark.parametrize("body", [["https://example.com"], "https://example.com", 42, None])
def test_create_scan_non_object_body_is_400(client, body):
    resp = client.post("/scans", json=body)

    assert resp.status_code == 400
    assert resp.get_json() == {"error": "url is required"}


def test_scan_lifecycle_for_clean_site(client, site):
    site.add(TARGET, FakeResponse(200, headers=SECURE_HEADERS))

    resp = _post(client, "  HTTPS://Example.com  ")

    assert resp.status_code == 202
    created = resp.get_json()
    assert created["status"] == "completed"
    assert created["access_token"]

    resp = client.get(f"/scans/{created['access_token']}")
    assert resp.status_code == 200
    payload = resp.get_json()
    scan = payload["scan"]
    assert scan["id"] == created["id"]
    assert scan["url"] == TARGET
    assert payload["findings"] == []
    # six site/header signals, nothing from the api/pii bucket
    assert scan["metadata"]["bonus_breakdown"]["total"] == 6
    assert scan["score"] == 96
    assert scan["grade"] == "A"
    assert scan["metadata"]["context"] == "general"
    assert scan["completed_at"] is not None


def test_findings_are_persisted_with_clamped_impact(client, site):
    site.add(TARGET, FakeResponse(200, text="<p>hi</p>", headers={"X-Frame-Options": "DENY"}))
    site.add(f"{TARGET}/.env", FakeResponse(200, text="SECRET=1"))

    token = _post(client, TARGET).get_json()["access_token"]
    payload = client.get(f"/scans/{token}").get_json()

    ids = [f["id"] for f in payload["findings"]]
    assert "missing-hsts" in ids
    assert "exposed---env" in ids
    assert all(0 <= f["impact_score"] <= 10 for f in payload["findings"])
    env = next(f for f in payload["findings"] if f["id"] == "exposed---env")
    assert env["severity"] == "critical"
    assert env["evidence"] == [f"File accessible at: {TARGET}/.env"]
    assert payload["scan"]["grade"] == "F"


def test_guest_rate_limit(make_app, site):
    app = make_app(SCAN_RATE_LIMITER=InMemoryRateLimiter(limit=2))
    client = app.test_client()

    assert _post(client, TARGET).status_code == 202
    assert _post(client, TARGET).status_code == 202
    resp = _post(client, TARGET)

    assert resp.status_code == 429
    assert resp.get_json() == {
        "error": "rate limit exceeded",
        "message": "Maximum 2 scans per 24 hours for guest users. Please sign up for unlimited scans.",
    }
    # other callers are unaffected
    assert _post(client, TARGET, ip="10.0.0.2").status_code == 202


def test_unknown_token_is_404(client):
    resp = client.get("/scans/nope")

    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Scan not found or expired"}


def test_expired_token_is_404(app, client):
    token = _post(client, TARGET).get_json()["access_token"]
    with app.app_context():
        scan = Scan.query.filter_by(access_token=token).one()
        scan.token_expires_at = now_utc() - timedelta(seconds=1)
        db.session.commit()

    assert client.get(f"/scans/{token}").status_code == 404


def test_orchestrator_setup_failure_marks_scan_failed(make_app):
    def broken_factory():
        raise RuntimeError("no probes available")

    client = make_app(SCAN_ORCHESTRATOR_FACTORY=broken_factory).test_client()

    created = _post(client, TARGET).get_json()
    assert created["status"] == "failed"

    scan = client.get(f"/scans/{created['access_token']}").get_json()["scan"]
    assert scan["error_message"] == "no probes available"


def test_execute_marks_failed_when_persistence_breaks(app, site, monkeypatch):
    def explode(*_args, **_kwargs):
        raise ValueError("disk full")

    monkeypatch.setattr(ScanFinding, "from_finding", classmethod(explode))
    site.add(TARGET, FakeResponse(200, text="<p>hi</p>"))

    with app.app_context():
        scan = Scan(url=TARGET, access_token="tok", token_expires_at=now_utc() + timedelta(days=1))
        db.session.add(scan)
        db.session.commit()

        report = ScanOrchestrator(session_factory=site.session, probe_timeout=5).execute(scan)

        assert report is None
        assert scan.status == "failed"
        assert scan.error_message == "disk full"
        assert ScanFinding.query.count() == 0


def test_unknown_route_returns_json_404(client):
    resp = client.get("/nowhere")

    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Not found"
