import datetime as dt
import logging
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from .config import LOG_LEVEL
from .db import init_db
from .enums import ReviewAction
from .exceptions import ExtractionError, InvalidTransitionError, NotFoundError, ValidationError
from .metrics import metrics
from .record_store import RecordFilter
from .schemas import CreateRecordRequest, DecisionRequest, ReopenRequest
from .service import VerificationService

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="KYC Verification Engine")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_service = VerificationService()


@app.on_event("startup")
def startup():
    init_db()


def get_service() -> VerificationService:
    return _service


def _raise_http(exc: Exception):
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ExtractionError):
        raise HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        raise HTTPException(status_code=400, detail=f"Invalid transition: {exc}")
    raise HTTPException(status_code=400, detail=str(exc))


def _day_start(value: Optional[dt.date]):
    return dt.datetime.combine(value, dt.time.min) if value else None


@app.post("/records")
def create_record(payload: CreateRecordRequest, service: VerificationService = Depends(get_service)):
    try:
        record = service.create_record(
            payload.fields,
            payload.fraud_score,
            payload.document_type,
            payload.filename,
            risk_factors=payload.risk_factors,
            user_entered_name=payload.user_entered_name,
            verified_name=payload.verified_name,
        )
    except ValidationError as exc:
        _raise_http(exc)
    return record.to_dict()


@app.post("/records/upload")
def upload_record(
    file: UploadFile = File(...),
    document_type: str = Form(...),
    user_entered_name: Optional[str] = Form(None),
    service: VerificationService = Depends(get_service),
):
    content = file.file.read()
    try:
        record = service.ingest_document(content, file.filename, document_type, user_entered_name)
    except (ValidationError, ExtractionError) as exc:
        _raise_http(exc)
    return record.to_dict()


@app.get("/records")
def list_records(
    status: Optional[str] = None,
    risk_category: Optional[str] = None,
    document_type: Optional[str] = None,
    created_from: Optional[dt.date] = None,
    created_to: Optional[dt.date] = None,
    limit: Optional[int] = None,
    service: VerificationService = Depends(get_service),
):
    try:
        record_filter = RecordFilter(
            status=status,
            risk_category=risk_category,
            document_type=document_type,
            created_from=_day_start(created_from),
            created_to=_day_start(created_to),
        )
        records = service.query_records(record_filter, limit=limit)
    except ValidationError as exc:
        _raise_http(exc)
    return [r.to_dict() for r in records]


@app.get("/records/{record_id}")
def get_record(record_id: str, service: VerificationService = Depends(get_service)):
    try:
        return service.get_record(record_id).to_dict()
    except NotFoundError as exc:
        _raise_http(exc)


@app.delete("/records/{record_id}")
def delete_record(record_id: str, service: VerificationService = Depends(get_service)):
    try:
        service.delete_record(record_id)
    except NotFoundError as exc:
        _raise_http(exc)
    return {"deleted": record_id}


def _decide(service, record_id, action, payload):
    payload = payload or DecisionRequest()
    try:
        record = service.decide_record(record_id, action, decided_by=payload.user, comment=payload.comment)
    except (NotFoundError, InvalidTransitionError, ValidationError) as exc:
        _raise_http(exc)
    return record.to_dict()


@app.post("/records/{record_id}/approve")
def approve_record(record_id: str, payload: Optional[DecisionRequest] = None,
                   service: VerificationService = Depends(get_service)):
    return _decide(service, record_id, ReviewAction.APPROVE, payload)


@app.post("/records/{record_id}/reject")
def reject_record(record_id: str, payload: Optional[DecisionRequest] = None,
                  service: VerificationService = Depends(get_service)):
    return _decide(service, record_id, ReviewAction.REJECT, payload)


@app.post("/records/{record_id}/reopen")
def reopen_record(record_id: str, payload: Optional[ReopenRequest] = None,
                  service: VerificationService = Depends(get_service)):
    payload = payload or ReopenRequest()
    try:
        record = service.reopen_record(
            record_id, reopened_by=payload.user, comment=payload.comment, risk_factors=payload.risk_factors,
        )
    except (NotFoundError, InvalidTransitionError) as exc:
        _raise_http(exc)
    return record.to_dict()


@app.get("/records/{record_id}/audit")
def record_audit(record_id: str, service: VerificationService = Depends(get_service)):
    try:
        timeline = service.audit_timeline(record_id)
    except NotFoundError as exc:
        _raise_http(exc)
    return {"record_id": record_id, "timeline": timeline}


@app.get("/alerts")
def list_alerts(severity: Optional[str] = None, service: VerificationService = Depends(get_service)):
    try:
        alerts = service.list_active_alerts(severity)
    except ValidationError as exc:
        _raise_http(exc)
    return [a.to_dict() for a in alerts]


@app.post("/alerts/{alert_id}/resolve")
def resolve_alert(alert_id: str, service: VerificationService = Depends(get_service)):
    try:
        alert = service.resolve_alert(alert_id)
    except (NotFoundError, InvalidTransitionError) as exc:
        _raise_http(exc)
    return alert.to_dict()


@app.get("/stats")
def get_stats(service: VerificationService = Depends(get_service)):
    return service.compute_stats().to_dict()


@app.get("/stats/trends")
def get_trends(start: Optional[dt.date] = None, end: Optional[dt.date] = None,
               service: VerificationService = Depends(get_service)):
    try:
        points = service.fraud_trends(start=start, end=end)
    except ValidationError as exc:
        _raise_http(exc)
    return [p.to_dict() for p in points]


@app.get("/export/records")
def export_records(service: VerificationService = Depends(get_service)):
    return [r.to_dict() for r in service.list_records()]


@app.get("/export/alerts")
def export_alerts(service: VerificationService = Depends(get_service)):
    return [a.to_dict() for a in service.list_alerts()]


@app.get("/metrics")
def get_metrics():
    return metrics.snapshot()
