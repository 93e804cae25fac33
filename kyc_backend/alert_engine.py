"""Compliance alerts derived from record risk.

One active alert per record for the risk-category rule. Alerts are resolved,
never deleted, so the audit trail outlives the record that raised them.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from .audit import log_event
from .enums import AlertStatus, RiskCategory, coerce
from .exceptions import InvalidTransitionError, NotFoundError, ValidationError
from .metrics import metrics
from .models import ALERT_RULE_RISK_CATEGORY, ComplianceAlert, utcnow

logger = logging.getLogger(__name__)

TRIGGERING_CATEGORIES = (RiskCategory.MEDIUM, RiskCategory.HIGH)


def is_triggering(record) -> bool:
    return record.risk_category in TRIGGERING_CATEGORIES


def build_message(record) -> str:
    doc_type = record.document_type.value.upper()
    return (
        f"{record.risk_category.value.capitalize()} risk {doc_type} document "
        f"'{record.filename or record.id}' flagged (fraud score {record.fraud_score}%)"
    )


class AlertEngine:
    def __init__(self, session):
        self.session = session

    def _active_for(self, record_id: str, rule: str = ALERT_RULE_RISK_CATEGORY) -> Optional[ComplianceAlert]:
        return (
            self.session.query(ComplianceAlert)
            .filter(
                ComplianceAlert.record_id == record_id,
                ComplianceAlert.rule == rule,
                ComplianceAlert.status == AlertStatus.ACTIVE,
            )
            .first()
        )

    def _resolve(self, alert: ComplianceAlert, reason: str) -> ComplianceAlert:
        alert.status = AlertStatus.RESOLVED
        alert.resolved_at = utcnow()
        alert.updated_at = alert.resolved_at
        self.session.flush()
        log_event(self.session, alert.record_id, "ALERT_RESOLVED", {"alert_id": alert.id, "reason": reason})
        metrics.incr("alerts_resolved")
        return alert

    def evaluate(self, record) -> Optional[ComplianceAlert]:
        """Raise or refresh the record's alert; resolve it if the record no longer triggers."""
        if not is_triggering(record):
            self.resolve_if_stale(record)
            return None

        alert = self._active_for(record.id)
        if alert is not None:
            alert.severity = record.risk_category
            alert.confidence_score = record.fraud_score
            alert.message = build_message(record)
            alert.updated_at = utcnow()
            self.session.flush()
            log_event(self.session, record.id, "ALERT_REFRESHED", {
                "alert_id": alert.id,
                "severity": alert.severity.value,
                "confidence_score": alert.confidence_score,
            })
            return alert

        now = utcnow()
        alert = ComplianceAlert(
            record_id=record.id,
            rule=ALERT_RULE_RISK_CATEGORY,
            severity=record.risk_category,
            message=build_message(record),
            confidence_score=record.fraud_score,
            status=AlertStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        self.session.add(alert)
        self.session.flush()
        log_event(self.session, record.id, "ALERT_RAISED", {
            "alert_id": alert.id,
            "severity": alert.severity.value,
            "confidence_score": alert.confidence_score,
        })
        metrics.incr("alerts_raised")
        logger.info("raised %s alert %s for record %s", alert.severity.value, alert.id, record.id)
        return alert

    def resolve_if_stale(self, record) -> Optional[ComplianceAlert]:
        if is_triggering(record):
            return None
        alert = self._active_for(record.id)
        if alert is None:
            return None
        return self._resolve(alert, reason="reclassified")

    def resolve_for_record(self, record_id: str) -> List[ComplianceAlert]:
        alerts = (
            self.session.query(ComplianceAlert)
            .filter(ComplianceAlert.record_id == record_id, ComplianceAlert.status == AlertStatus.ACTIVE)
            .all()
        )
        return [self._resolve(a, reason="record deleted") for a in alerts]

    def get(self, alert_id: str) -> ComplianceAlert:
        alert = self.session.get(ComplianceAlert, alert_id)
        if alert is None:
            raise NotFoundError(f"Alert {alert_id} not found")
        return alert

    def resolve(self, alert_id: str) -> ComplianceAlert:
        alert = self.get(alert_id)
        if alert.status is AlertStatus.RESOLVED:
            raise InvalidTransitionError(f"Alert {alert_id} is already resolved")
        return self._resolve(alert, reason="resolved by admin")

    def list_active(self, severity=None) -> List[ComplianceAlert]:
        query = self.session.query(ComplianceAlert).filter(ComplianceAlert.status == AlertStatus.ACTIVE)
        if severity is not None:
            query = query.filter(ComplianceAlert.severity == coerce(RiskCategory, severity, ValidationError))
        return query.order_by(ComplianceAlert.created_at.desc(), ComplianceAlert.id.desc()).all()

    def list_alerts(self) -> List[ComplianceAlert]:
        return self.session.query(ComplianceAlert).order_by(ComplianceAlert.created_at.desc()).all()
