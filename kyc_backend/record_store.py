"""Authoritative store of verification records.

Methods stage their changes in the caller's session (flushed, not
committed). Callers wrap one logical operation in ``db.transaction`` and,
for mutations of an existing record, in ``record_lock``.
"""
from __future__ import annotations

import datetime as dt
import logging
import threading
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from .alert_engine import AlertEngine
from .audit import log_event
from .config import MAX_REOPENS
from .enums import DocumentType, RecordStatus, ReviewAction, RiskCategory, coerce
from .exceptions import InvalidTransitionError, NotFoundError, ValidationError
from .metrics import metrics
from .models import VerificationRecord, utcnow
from .review_workflow import (
    check_reopen_allowed,
    next_status_for,
    record_history,
)
from .risk_classifier import (
    ELEVATED_SCORE_FACTOR,
    HIGH_SCORE_FACTOR,
    RiskClassifier,
    default_classifier,
    validate_score,
)

logger = logging.getLogger(__name__)

# record_id -> [lock, callers holding or waiting on it]
_locks = {}
_locks_guard = threading.Lock()


@contextmanager
def record_lock(record_id: str):
    """Serialize mutations of one record within this process.

    An entry lives only while some caller holds or waits on it, so ids that
    never existed leave nothing behind.
    """
    with _locks_guard:
        entry = _locks.setdefault(record_id, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                _locks.pop(record_id, None)


def held_lock_count() -> int:
    with _locks_guard:
        return len(_locks)


@dataclass
class RecordFilter:
    status: Optional[RecordStatus] = None
    risk_category: Optional[RiskCategory] = None
    document_type: Optional[DocumentType] = None
    created_from: Optional[dt.datetime] = None
    created_to: Optional[dt.datetime] = None

    def __post_init__(self):
        if self.status is not None:
            self.status = coerce(RecordStatus, self.status, ValidationError)
        if self.risk_category is not None:
            self.risk_category = coerce(RiskCategory, self.risk_category, ValidationError)
        if self.document_type is not None:
            self.document_type = coerce(DocumentType, self.document_type, ValidationError)
        if self.created_from and self.created_to and self.created_from >= self.created_to:
            raise ValidationError("created_from must be earlier than created_to")

    def apply(self, query):
        if self.status is not None:
            query = query.filter(VerificationRecord.status == self.status)
        if self.risk_category is not None:
            query = query.filter(VerificationRecord.risk_category == self.risk_category)
        if self.document_type is not None:
            query = query.filter(VerificationRecord.document_type == self.document_type)
        if self.created_from is not None:
            query = query.filter(VerificationRecord.created_at >= self.created_from)
        if self.created_to is not None:
            query = query.filter(VerificationRecord.created_at < self.created_to)
        return query


def _explicit_factors(factors: Iterable[str]):
    derived = {HIGH_SCORE_FACTOR, ELEVATED_SCORE_FACTOR}
    return [f for f in factors or [] if f not in derived]


class RecordStore:
    def __init__(self, session, classifier: Optional[RiskClassifier] = None,
                 alerts: Optional[AlertEngine] = None, max_reopens: Optional[int] = MAX_REOPENS):
        self.session = session
        self.classifier = classifier or default_classifier
        self.alerts = alerts or AlertEngine(session)
        self.max_reopens = max_reopens

    def create(self, fields, fraud_score, document_type, filename, risk_factors=None,
               user_entered_name=None, verified_name=None) -> VerificationRecord:
        """Create a reviewable record, classify it and evaluate its alert."""
        doc_type = coerce(DocumentType, document_type, ValidationError)
        score = validate_score(fraud_score)
        if fields is None:
            fields = {}
        if not isinstance(fields, Mapping):
            raise ValidationError("extracted fields must be a mapping of field name to value")
        if risk_factors is not None and isinstance(risk_factors, (str, bytes)):
            raise ValidationError("risk_factors must be a list of labels")

        assessment = self.classifier.classify(score, risk_factors)

        record = VerificationRecord(
            document_type=doc_type,
            filename=filename,
            extracted_fields={str(k): "" if v is None else str(v) for k, v in fields.items()},
            user_entered_name=user_entered_name,
            verified_name=verified_name,
            fraud_score=score,
            risk_category=assessment.risk_category,
            risk_factors=list(assessment.risk_factors),
            status=RecordStatus.REVIEWABLE,
            reopen_count=0,
            created_at=utcnow(),
            review_history=[],
            version=1,
        )
        self.session.add(record)
        self.session.flush()

        log_event(self.session, record.id, "CREATED", {
            "document_type": doc_type.value,
            "filename": filename,
            "fraud_score": score,
            "risk_category": assessment.risk_category.value,
            "risk_factors": record.risk_factors,
            "extracted_fields": record.extracted_fields,
        })
        self.alerts.evaluate(record)
        metrics.incr("records_created")
        logger.info("created record %s (%s, score=%s)", record.id, assessment.risk_category.value, score)
        return record

    def get(self, record_id: str) -> VerificationRecord:
        record = self.session.get(VerificationRecord, record_id)
        if record is None:
            raise NotFoundError(f"Record {record_id} not found")
        return record

    def _compare_and_set(self, record: VerificationRecord, expected: RecordStatus, values: dict):
        updated = (
            self.session.query(VerificationRecord)
            .filter(VerificationRecord.id == record.id, VerificationRecord.status == expected)
            .update(values, synchronize_session="fetch")
        )
        if updated == 0:
            exists = (
                self.session.query(VerificationRecord.id)
                .filter(VerificationRecord.id == record.id)
                .first()
            )
            if exists is None:
                raise NotFoundError(f"Record {record.id} not found")
            # Another writer advanced the status first
            raise InvalidTransitionError(
                f"Record {record.id} is no longer '{expected.value}'"
            )

    def decide(self, record_id: str, action, decided_by: Optional[str] = None,
               comment: Optional[str] = None) -> VerificationRecord:
        """Move a reviewable record to approved or rejected.

        Deciding a record that is not reviewable is an error, including a
        repeat of the same decision.
        """
        action = coerce(ReviewAction, action, ValidationError)
        record = self.get(record_id)
        target = next_status_for(record.status, action)

        now = utcnow()
        self._compare_and_set(record, RecordStatus.REVIEWABLE, {
            VerificationRecord.status: target,
            VerificationRecord.decided_at: now,
            VerificationRecord.decided_by: decided_by,
            VerificationRecord.version: (record.version or 1) + 1,
        })
        record.review_history = record_history(record.review_history, decided_by or "admin", target.value.upper(), comment)
        self.session.flush()

        log_event(self.session, record.id, target.value.upper(), {
            "decided_by": decided_by,
            "comment": comment,
        })
        metrics.record_decision(action.value)
        return record

    def reopen(self, record_id: str, reopened_by: Optional[str] = None, comment: Optional[str] = None,
               risk_factors=None) -> VerificationRecord:
        """Return a decided record to review and reclassify it.

        The fraud score never changes; the category can only move if the
        classifier thresholds or the explicit risk factors did.
        """
        record = self.get(record_id)
        previous = record.status
        check_reopen_allowed(previous, record.reopen_count or 0, self.max_reopens)

        explicit = risk_factors if risk_factors is not None else _explicit_factors(record.risk_factors)
        assessment = self.classifier.classify(record.fraud_score, explicit)

        self._compare_and_set(record, previous, {
            VerificationRecord.status: RecordStatus.REVIEWABLE,
            VerificationRecord.reopen_count: (record.reopen_count or 0) + 1,
            VerificationRecord.decided_at: None,
            VerificationRecord.decided_by: None,
            VerificationRecord.risk_category: assessment.risk_category,
            VerificationRecord.risk_factors: list(assessment.risk_factors),
            VerificationRecord.version: (record.version or 1) + 1,
        })
        record.review_history = record_history(record.review_history, reopened_by or "admin", "REOPENED", comment)
        self.session.flush()

        log_event(self.session, record.id, "REOPENED", {
            "reopened_by": reopened_by,
            "comment": comment,
            "previous_status": previous.value,
            "reopen_count": record.reopen_count,
            "risk_category": record.risk_category.value,
        })
        metrics.incr("records_reopened")
        return record

    def delete(self, record_id: str) -> VerificationRecord:
        """Hard-remove a record; its active alerts are resolved, not dropped."""
        record = self.get(record_id)
        self.alerts.resolve_for_record(record.id)
        self.session.delete(record)
        self.session.flush()
        log_event(self.session, record_id, "DELETED", {
            "document_type": record.document_type.value,
            "filename": record.filename,
            "status": record.status.value,
        })
        metrics.incr("records_deleted")
        return record

    def query(self, record_filter: Optional[RecordFilter] = None, limit: Optional[int] = None) -> Iterator[VerificationRecord]:
        """Lazily yield matching records, newest first."""
        query = self.session.query(VerificationRecord)
        if record_filter is not None:
            query = record_filter.apply(query)
        query = query.order_by(VerificationRecord.created_at.desc(), VerificationRecord.id)
        if limit is not None:
            if limit < 0:
                raise ValidationError("limit must not be negative")
            query = query.limit(limit)
        for record in query.yield_per(100):
            yield record

    def list_records(self, limit: Optional[int] = None):
        return list(self.query(limit=limit))
