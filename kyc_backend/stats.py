"""Dashboard statistics computed from record and alert snapshots.

Everything here is a pure function of its arguments; nothing is cached
between calls.
"""
from __future__ import annotations

import datetime as dt
import math
from collections import Counter, defaultdict
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Optional

from .config import RECENT_ALERT_WINDOW_HOURS
from .enums import AlertStatus, DocumentType, RecordStatus, RiskCategory
from .exceptions import ValidationError
from .models import utcnow


@dataclass
class AggregateStats:
    total_records: int = 0
    pending_status_count: int = 0
    processing_count: int = 0
    reviewable_count: int = 0
    approved_count: int = 0
    rejected_count: int = 0
    low_risk_count: int = 0
    medium_risk_count: int = 0
    high_risk_count: int = 0
    document_type_counts: Dict[str, int] = field(default_factory=dict)
    average_confidence_score: float = 0.0
    compliance_score: int = 100
    active_alerts: int = 0
    recent_alerts_24h: int = 0

    @property
    def verified_count(self) -> int:
        return self.approved_count

    @property
    def pending_count(self) -> int:
        """Records not yet decided, whatever stage they are in."""
        return self.pending_status_count + self.processing_count + self.reviewable_count

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["verified_count"] = self.verified_count
        data["pending_count"] = self.pending_count
        return data


@dataclass
class TrendPoint:
    date: dt.date
    average_fraud_score: float
    verified_count: int
    record_count: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "average_fraud_score": self.average_fraud_score,
            "verified_count": self.verified_count,
            "record_count": self.record_count,
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _mean(values: List[int]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def compliance_score(active_alerts: int, total_records: int) -> int:
    raw = 100 - (active_alerts / max(total_records, 1)) * 100
    return _round_half_up(max(0.0, min(100.0, raw)))


def compute(records: Iterable, alerts: Iterable, now: Optional[dt.datetime] = None,
            window_hours: int = RECENT_ALERT_WINDOW_HOURS) -> AggregateStats:
    records = list(records)
    alerts = list(alerts)
    now = now or utcnow()

    statuses = Counter(RecordStatus(r.status) for r in records)
    risks = Counter(RiskCategory(r.risk_category) for r in records if r.risk_category is not None)
    doc_types = Counter(DocumentType(r.document_type) for r in records)
    scores = [r.fraud_score for r in records if r.fraud_score is not None]

    active = sum(1 for a in alerts if AlertStatus(a.status) is AlertStatus.ACTIVE)
    cutoff = now - dt.timedelta(hours=window_hours)
    recent = sum(1 for a in alerts if a.created_at is not None and cutoff <= a.created_at <= now)

    total = len(records)
    return AggregateStats(
        total_records=total,
        pending_status_count=statuses[RecordStatus.PENDING],
        processing_count=statuses[RecordStatus.PROCESSING],
        reviewable_count=statuses[RecordStatus.REVIEWABLE],
        approved_count=statuses[RecordStatus.APPROVED],
        rejected_count=statuses[RecordStatus.REJECTED],
        low_risk_count=risks[RiskCategory.LOW],
        medium_risk_count=risks[RiskCategory.MEDIUM],
        high_risk_count=risks[RiskCategory.HIGH],
        document_type_counts={d.value: doc_types[d] for d in DocumentType},
        average_confidence_score=_mean(scores),
        compliance_score=compliance_score(active, total),
        active_alerts=active,
        recent_alerts_24h=recent,
    )


def fraud_trends(records: Iterable, start: Optional[dt.date] = None,
                 end: Optional[dt.date] = None) -> List[TrendPoint]:
    """Per-day average fraud score and verified count, one point per day.

    Days without records are reported with zeros so the series has no gaps.
    Without an explicit range the series spans the first to the last
    record creation day.
    """
    buckets = defaultdict(list)
    for r in records:
        if r.created_at is None:
            continue
        buckets[r.created_at.date()].append(r)

    if start is None and end is None and not buckets:
        return []
    if start is None:
        start = min(buckets) if buckets else end
        if end is not None:
            start = min(start, end)
    if end is None:
        end = max(max(buckets), start) if buckets else start
    if start > end:
        raise ValidationError(f"Trend range start {start} is after end {end}")

    points = []
    day = start
    while day <= end:
        bucket = buckets.get(day, [])
        points.append(TrendPoint(
            date=day,
            average_fraud_score=_mean([r.fraud_score for r in bucket if r.fraud_score is not None]),
            verified_count=sum(1 for r in bucket if RecordStatus(r.status) is RecordStatus.APPROVED),
            record_count=len(bucket),
        ))
        day += dt.timedelta(days=1)
    return points
