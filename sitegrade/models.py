from __future__ import annotations

from datetime import datetime, timezone

from .extensions import db


def now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


SCAN_STATUSES = ("pending", "running", "completed", "failed")


class Scan(db.Model):
    __tablename__ = "scan"

    id = db.Column(db.Integer, primary_key=True)
    url = db.Column(db.String(2048), nullable=False)

    # pending → running → completed | failed
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    score = db.Column(db.Integer, nullable=True)
    grade = db.Column(db.String(2), nullable=True)
    error_message = db.Column(db.String(500), nullable=True)

    # {context, bonus_breakdown, bonus_details, recommendations, disclaimer, errors}
    metadata_json = db.Column(db.JSON, nullable=True)

    # Guest access
    client_ip = db.Column(db.String(64), nullable=True, index=True)
    access_token = db.Column(db.String(64), nullable=False, unique=True, index=True)
    token_expires_at = db.Column(db.DateTime, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=now_utc)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    findings = db.relationship(
        "ScanFinding",
        backref="scan",
        cascade="all, delete-orphan",
        order_by="ScanFinding.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "status": self.status,
            "score": self.score,
            "grade": self.grade,
            "error_message": self.error_message,
            "metadata": self.metadata_json or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class ScanFinding(db.Model):
    __tablename__ = "scan_finding"

    id = db.Column(db.Integer, primary_key=True)
    scan_id = db.Column(
        db.Integer,
        db.ForeignKey("scan.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    check_id = db.Column(db.String(100), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(50), nullable=False)
    severity = db.Column(db.String(20), nullable=False)
    recommendation = db.Column(db.Text, nullable=True)
    confidence = db.Column(db.String(20), nullable=False, default="high")

    evidence_json = db.Column(db.JSON, nullable=True)
    reference_links_json = db.Column(db.JSON, nullable=True)

    cvss_score = db.Column(db.Float, nullable=False, default=0.0)
    cvss_vector = db.Column(db.String(100), nullable=True)
    contextual_cvss = db.Column(db.Float, nullable=True)
    owasp_category = db.Column(db.String(100), nullable=True)
    impact_score = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=now_utc)

    @classmethod
    def from_finding(cls, scan_id: int, finding) -> "ScanFinding":
        """Row for a scanner Finding; impact_score is clamped to 0–10 by Finding.to_dict()."""
        data = finding.to_dict()
        return cls(
            scan_id=scan_id,
            check_id=data["id"][:100],
            title=data["title"][:255],
            description=data["description"],
            category=data["category"][:50],
            severity=data["severity"],
            recommendation=data["recommendation"],
            confidence=data["confidence"],
            evidence_json=data["evidence"],
            reference_links_json=data["reference_links"],
            cvss_score=data["cvss_score"],
            cvss_vector=data["cvss_vector"],
            contextual_cvss=data["contextual_cvss"],
            owasp_category=data["owasp_category"],
            impact_score=data["impact_score"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.check_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "severity": self.severity,
            "recommendation": self.recommendation,
            "confidence": self.confidence,
            "evidence": self.evidence_json or [],
            "reference_links": self.reference_links_json or [],
            "cvss_score": self.cvss_score,
            "cvss_vector": self.cvss_vector,
            "contextual_cvss": self.contextual_cvss,
            "owasp_category": self.owasp_category,
            "impact_score": self.impact_score,
        }
