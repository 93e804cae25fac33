"""Closed vocabularies for records, alerts and review actions."""
from __future__ import annotations

import enum


class DocumentType(str, enum.Enum):
    AADHAAR = "aadhaar"
    PAN = "pan"
    OTHER = "other"


class RecordStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    REVIEWABLE = "reviewable"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (RecordStatus.APPROVED, RecordStatus.REJECTED)


class RiskCategory(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AlertStatus(str, enum.Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


class ReviewAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


def coerce(enum_cls, value, error_cls):
    """Return ``value`` as a member of ``enum_cls`` or raise ``error_cls``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise error_cls(f"Unknown {enum_cls.__name__} '{value}' (expected one of: {allowed})") from None
