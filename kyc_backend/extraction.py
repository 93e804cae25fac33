"""Client for the external OCR/fraud-scoring service.

The service owns field extraction and scoring; this module only ships the
file over HTTP and normalizes the response. Failures are raised, never
replaced with made-up results.
"""
import hashlib
import logging

import requests

from .config import EXTRACTION_TIMEOUT, EXTRACTION_URL, USE_MOCK_EXTRACTOR
from .exceptions import ExtractionError
from .metrics import metrics, timed

logger = logging.getLogger(__name__)


def _normalize(data):
    if not isinstance(data, dict):
        raise ExtractionError(f"Unexpected extraction response: {str(data)[:200]}")
    score = data.get("fraud_score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ExtractionError(f"Extraction response has no numeric fraud_score: {score!r}")
    factors = data.get("risk_factors") or []
    if isinstance(factors, str):
        factors = [f.strip() for f in factors.split(",") if f.strip()]
    return {
        "extracted_fields": data.get("extracted_fields") or {},
        "fraud_score": int(round(score)),
        "verified_name": data.get("verified_name"),
        "risk_factors": list(factors),
    }


def _mock_extraction(file_bytes, filename, document_type, user_entered_name):
    """Deterministic stand-in for offline development."""
    digest = hashlib.sha256(file_bytes or b"").hexdigest()
    return {
        "extracted_fields": {
            "name": user_entered_name or "",
            "document_type": str(document_type),
            "source_file": filename,
        },
        "fraud_score": int(digest, 16) % 101,
        "verified_name": user_entered_name,
        "risk_factors": [],
    }


@timed
def extract_document(file_bytes, filename, document_type, user_entered_name=None, force_mock=False):
    metrics.incr("extraction_requests")
    if USE_MOCK_EXTRACTOR or force_mock:
        return _mock_extraction(file_bytes, filename, document_type, user_entered_name)

    try:
        resp = requests.post(
            EXTRACTION_URL,
            files={"file": (filename, file_bytes)},
            data={"document_type": str(document_type), "user_entered_name": user_entered_name or ""},
            timeout=EXTRACTION_TIMEOUT,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("extraction failed for %s: %s", filename, e)
        raise ExtractionError(f"Extraction failed: {e}") from e
    return _normalize(data)
