import logging

from .models import AuditEvent, utcnow
from .privacy import redact

logger = logging.getLogger(__name__)


def log_event(session, record_id, event_type, payload):
    """Stage an audit event in the caller's transaction.

    The event is flushed, not committed: it lands together with the state
    change it describes or not at all.
    """
    masked_payload = redact(payload or {})
    event = AuditEvent(
        record_id=record_id,
        event_type=event_type,
        timestamp=utcnow(),
        payload=masked_payload,
    )
    session.add(event)
    session.flush()
    logger.info("audit %s record=%s", event_type, record_id)
    return event


def get_audit_timeline(session, record_id):
    events = (
        session.query(AuditEvent)
        .filter(AuditEvent.record_id == record_id)
        .order_by(AuditEvent.timestamp.asc(), AuditEvent.id.asc())
        .all()
    )
    return [
        {
            "timestamp": e.timestamp.isoformat() + "Z",
            "event_type": e.event_type,
            "payload": e.payload,
        }
        for e in events
    ]
