"""Entry points used by the API and by external exporters.

Each call opens its own session. Mutations run as a single transaction;
reads see committed state only.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Optional

from .admin_review import AdminReviewController
from .alert_engine import AlertEngine
from .audit import get_audit_timeline
from .config import MAX_REOPENS
from .db import SessionLocal, transaction
from .enums import DocumentType, coerce
from .exceptions import ValidationError
from .extraction import extract_document
from .record_store import RecordFilter, RecordStore, record_lock
from .risk_classifier import RiskClassifier
from .stats import compute, fraud_trends

logger = logging.getLogger(__name__)


class VerificationService:
    def __init__(self, session_factory=SessionLocal, classifier: Optional[RiskClassifier] = None,
                 max_reopens: Optional[int] = MAX_REOPENS, extractor=extract_document):
        self.session_factory = session_factory
        self.classifier = classifier
        self.max_reopens = max_reopens
        self.extractor = extractor

    @contextmanager
    def _session(self):
        session = self.session_factory()
        try:
            yield session
        finally:
            session.close()

    def _store(self, session) -> RecordStore:
        return RecordStore(session, classifier=self.classifier, max_reopens=self.max_reopens)

    def _controller(self, session) -> AdminReviewController:
        return AdminReviewController(session, store=self._store(session))

    def create_record(self, fields, fraud_score, document_type, filename, risk_factors=None,
                      user_entered_name=None, verified_name=None):
        with self._session() as session, transaction(session):
            return self._store(session).create(
                fields, fraud_score, document_type, filename,
                risk_factors=risk_factors,
                user_entered_name=user_entered_name,
                verified_name=verified_name,
            )

    def ingest_document(self, file_bytes, filename, document_type, user_entered_name=None):
        """Run external extraction, then create the record from its output."""
        doc_type = coerce(DocumentType, document_type, ValidationError)
        result = self.extractor(file_bytes, filename, doc_type.value, user_entered_name)
        return self.create_record(
            result["extracted_fields"],
            result["fraud_score"],
            doc_type,
            filename,
            risk_factors=result.get("risk_factors"),
            user_entered_name=user_entered_name,
            verified_name=result.get("verified_name"),
        )

    def decide_record(self, record_id, action, decided_by=None, comment=None):
        with self._session() as session:
            return self._controller(session).decide(record_id, action, decided_by=decided_by, comment=comment)

    def reopen_record(self, record_id, reopened_by=None, comment=None, risk_factors=None):
        with self._session() as session:
            return self._controller(session).reopen(
                record_id, reopened_by=reopened_by, comment=comment, risk_factors=risk_factors,
            )

    def delete_record(self, record_id):
        with record_lock(record_id):
            with self._session() as session, transaction(session):
                record = self._store(session).delete(record_id)
        return record

    def get_record(self, record_id):
        with self._session() as session:
            return self._store(session).get(record_id)

    def query_records(self, record_filter: Optional[RecordFilter] = None, limit: Optional[int] = None):
        with self._session() as session:
            return list(self._store(session).query(record_filter, limit=limit))

    def list_records(self, limit: Optional[int] = None):
        return self.query_records(limit=limit)

    def list_alerts(self):
        with self._session() as session:
            return AlertEngine(session).list_alerts()

    def list_active_alerts(self, severity=None):
        with self._session() as session:
            return AlertEngine(session).list_active(severity)

    def resolve_alert(self, alert_id):
        with self._session() as session:
            return self._controller(session).resolve_alert(alert_id)

    def compute_stats(self, now=None):
        with self._session() as session:
            records = self._store(session).list_records()
            alerts = AlertEngine(session).list_alerts()
        return compute(records, alerts, now=now)

    def fraud_trends(self, start=None, end=None):
        with self._session() as session:
            records = self._store(session).list_records()
        return fraud_trends(records, start=start, end=end)

    def audit_timeline(self, record_id):
        """Events for a record, oldest first. Deleted records keep their history."""
        with self._session() as session:
            timeline = get_audit_timeline(session, record_id)
            if not timeline:
                # raises NotFoundError for ids that never existed
                self._store(session).get(record_id)
            return timeline
