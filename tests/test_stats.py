import datetime as dt

import pytest

from kyc_backend.enums import AlertStatus, DocumentType, RecordStatus, RiskCategory
from kyc_backend.exceptions import ValidationError
from kyc_backend.models import ComplianceAlert, VerificationRecord
from kyc_backend.risk_classifier import classify
from kyc_backend.stats import compliance_score, compute, fraud_trends

NOW = dt.datetime(2026, 3, 10, 12, 0)


def make_record(score, status=RecordStatus.REVIEWABLE, created_at=NOW, doc=DocumentType.AADHAAR):
    return VerificationRecord(
        id=f"rec-{score}-{created_at:%d}",
        document_type=doc,
        filename="doc.png",
        fraud_score=score,
        risk_category=classify(score).risk_category,
        status=status,
        created_at=created_at,
    )


def make_alert(record, status=AlertStatus.ACTIVE, created_at=NOW):
    return ComplianceAlert(
        id=f"alert-{record.id}",
        record_id=record.id,
        severity=record.risk_category,
        confidence_score=record.fraud_score,
        status=status,
        created_at=created_at,
    )


class TestCompute:
    def test_mixed_scores(self):
        records = [make_record(10), make_record(50), make_record(85)]
        alerts = [make_alert(r) for r in records if r.risk_category is not RiskCategory.LOW]
        stats = compute(records, alerts, now=NOW)
        assert stats.total_records == 3
        assert stats.low_risk_count == 1
        assert stats.medium_risk_count == 1
        assert stats.high_risk_count == 1
        assert stats.average_confidence_score == 48.33
        assert stats.active_alerts == 2
        # 100 - 2/3 * 100 = 33.33
        assert stats.compliance_score == 33

    def test_empty_collections(self):
        stats = compute([], [], now=NOW)
        assert stats.total_records == 0
        assert stats.average_confidence_score == 0
        assert stats.compliance_score == 100
        assert stats.active_alerts == 0

    def test_status_and_document_counts(self):
        records = [
            make_record(10, RecordStatus.APPROVED, doc=DocumentType.PAN),
            make_record(20, RecordStatus.REJECTED),
            make_record(30, RecordStatus.REVIEWABLE, doc=DocumentType.OTHER),
            make_record(40, RecordStatus.PENDING),
        ]
        stats = compute(records, [], now=NOW)
        assert stats.approved_count == stats.verified_count == 1
        assert stats.rejected_count == 1
        assert stats.pending_count == 2
        assert stats.pending_status_count == 1
        assert stats.document_type_counts == {"aadhaar": 2, "pan": 1, "other": 1}
        data = stats.to_dict()
        assert data["verified_count"] == 1
        assert data["pending_count"] == 2
        assert data["pending_status_count"] == 1

    def test_resolved_alerts_do_not_count_as_active(self):
        record = make_record(90)
        stats = compute([record], [make_alert(record, AlertStatus.RESOLVED)], now=NOW)
        assert stats.active_alerts == 0
        assert stats.compliance_score == 100

    def test_recent_alert_window(self):
        record = make_record(90)
        alerts = [
            make_alert(record, created_at=NOW - dt.timedelta(hours=2)),
            make_alert(record, AlertStatus.RESOLVED, created_at=NOW - dt.timedelta(hours=23, minutes=59)),
            make_alert(record, created_at=NOW - dt.timedelta(hours=25)),
        ]
        assert compute([record], alerts, now=NOW).recent_alerts_24h == 2

    @pytest.mark.parametrize("active,total,expected", [
        (0, 0, 100), (0, 5, 100), (1, 2, 50), (1, 8, 88), (5, 3, 0), (1, 3, 67),
    ])
    def test_compliance_score(self, active, total, expected):
        assert compliance_score(active, total) == expected


class TestFraudTrends:
    def test_gaps_are_filled_with_zero(self):
        day1 = dt.datetime(2026, 3, 1, 10, 0)
        day5 = dt.datetime(2026, 3, 5, 16, 0)
        records = [
            make_record(20, RecordStatus.APPROVED, created_at=day1),
            make_record(40, created_at=day1),
            make_record(90, RecordStatus.APPROVED, created_at=day5),
        ]
        points = fraud_trends(records)
        assert len(points) == 5
        assert [p.date.day for p in points] == [1, 2, 3, 4, 5]
        assert points[0].average_fraud_score == 30.0
        assert points[0].verified_count == 1
        for p in points[1:4]:
            assert p.average_fraud_score == 0
            assert p.verified_count == 0
            assert p.record_count == 0
        assert points[4].average_fraud_score == 90.0

    def test_explicit_range(self):
        records = [make_record(50, created_at=dt.datetime(2026, 3, 3, 9, 0))]
        points = fraud_trends(records, start=dt.date(2026, 3, 1), end=dt.date(2026, 3, 7))
        assert len(points) == 7
        assert points[2].record_count == 1
        assert points[0].to_dict() == {
            "date": "2026-03-01", "average_fraud_score": 0.0, "verified_count": 0, "record_count": 0,
        }

    def test_no_records(self):
        assert fraud_trends([]) == []

    def test_inverted_range(self):
        with pytest.raises(ValidationError):
            fraud_trends([], start=dt.date(2026, 3, 5), end=dt.date(2026, 3, 1))
