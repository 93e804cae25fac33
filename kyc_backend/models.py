import datetime as dt
import uuid

from sqlalchemy import Column, DateTime, Enum, Integer, String, Text
from sqlalchemy.types import JSON

from .db import Base
from .enums import AlertStatus, DocumentType, RecordStatus, RiskCategory

ALERT_RULE_RISK_CATEGORY = "risk-category"


def utcnow():
    """Naive UTC timestamp, the form SQLite hands back."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def new_id():
    return str(uuid.uuid4())


def _enum_column(enum_cls, **kwargs):
    return Column(
        Enum(enum_cls, native_enum=False, values_callable=lambda e: [m.value for m in e], validate_strings=True),
        **kwargs,
    )


def _iso(value):
    return value.isoformat() + "Z" if value else None


class VerificationRecord(Base):
    __tablename__ = "verification_records"

    id = Column(String, primary_key=True, index=True, default=new_id)
    created_at = Column(DateTime, default=utcnow, index=True)
    document_type = _enum_column(DocumentType, nullable=False)
    filename = Column(String)
    extracted_fields = Column(JSON)
    user_entered_name = Column(String)
    verified_name = Column(String)

    fraud_score = Column(Integer, nullable=False)
    risk_category = _enum_column(RiskCategory, nullable=False, index=True)
    risk_factors = Column(JSON)

    status = _enum_column(RecordStatus, default=RecordStatus.PENDING, nullable=False, index=True)
    reopen_count = Column(Integer, default=0, nullable=False)
    decided_at = Column(DateTime)
    decided_by = Column(String)
    review_history = Column(JSON)
    version = Column(Integer, default=1)

    def to_dict(self):
        return {
            "id": self.id,
            "document_type": self.document_type.value,
            "filename": self.filename,
            "extracted_fields": self.extracted_fields or {},
            "user_entered_name": self.user_entered_name,
            "verified_name": self.verified_name,
            "fraud_score": self.fraud_score,
            "risk_category": self.risk_category.value,
            "risk_factors": list(self.risk_factors or []),
            "status": self.status.value,
            "reopen_count": self.reopen_count,
            "created_at": _iso(self.created_at),
            "decided_at": _iso(self.decided_at),
            "decided_by": self.decided_by,
            "review_history": self.review_history or [],
            "version": self.version,
        }


class ComplianceAlert(Base):
    __tablename__ = "compliance_alerts"

    id = Column(String, primary_key=True, index=True, default=new_id)
    # Lookup key only; deliberately not a foreign key so records can be removed
    # while their alerts stay in the audit trail.
    record_id = Column(String, index=True, nullable=False)
    rule = Column(String, default=ALERT_RULE_RISK_CATEGORY, nullable=False)
    severity = _enum_column(RiskCategory, nullable=False)
    message = Column(Text)
    confidence_score = Column(Integer)
    status = _enum_column(AlertStatus, default=AlertStatus.ACTIVE, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow)
    resolved_at = Column(DateTime)

    def to_dict(self):
        return {
            "alert_id": self.id,
            "record_id": self.record_id,
            "rule": self.rule,
            "severity": self.severity.value,
            "message": self.message,
            "confidence_score": self.confidence_score,
            "status": self.status.value,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "resolved_at": _iso(self.resolved_at),
        }


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(String, index=True)
    timestamp = Column(DateTime, default=utcnow)
    event_type = Column(String, index=True)
    payload = Column(JSON)
