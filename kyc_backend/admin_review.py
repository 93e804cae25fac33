"""Human review decisions over verification records."""
from __future__ import annotations

import logging
from typing import Optional

from .alert_engine import AlertEngine
from .db import transaction
from .exceptions import InvalidTransitionError
from .metrics import metrics
from .record_store import RecordStore, record_lock

logger = logging.getLogger(__name__)


class AdminReviewController:
    """Runs each admin action as one locked, all-or-nothing transaction.

    Approving or rejecting a record does not resolve its alert: alerts track
    the risk signal, not the disposition of the record.
    """

    def __init__(self, session, store: Optional[RecordStore] = None, alerts: Optional[AlertEngine] = None):
        self.session = session
        self.alerts = alerts or (store.alerts if store else AlertEngine(session))
        self.store = store or RecordStore(session, alerts=self.alerts)

    def decide(self, record_id: str, action, decided_by: Optional[str] = None, comment: Optional[str] = None):
        with record_lock(record_id):
            try:
                with transaction(self.session):
                    record = self.store.decide(record_id, action, decided_by=decided_by, comment=comment)
                    self.alerts.resolve_if_stale(record)
            except InvalidTransitionError:
                metrics.incr("invalid_transitions")
                raise
        logger.info("record %s -> %s by %s", record_id, record.status.value, decided_by or "admin")
        return record

    def reopen(self, record_id: str, reopened_by: Optional[str] = None, comment: Optional[str] = None,
               risk_factors=None):
        with record_lock(record_id):
            try:
                with transaction(self.session):
                    record = self.store.reopen(record_id, reopened_by=reopened_by, comment=comment,
                                               risk_factors=risk_factors)
                    self.alerts.evaluate(record)
            except InvalidTransitionError:
                metrics.incr("invalid_transitions")
                raise
        logger.info("record %s reopened (count=%s)", record_id, record.reopen_count)
        return record

    def resolve_alert(self, alert_id: str):
        with transaction(self.session):
            return self.alerts.resolve(alert_id)
