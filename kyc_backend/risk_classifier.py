"""Risk classification for verification records.

Maps a fraud score from the external scorer to a risk category and a
canonical list of risk factors. Deterministic and side-effect free so the
same inputs always give the same classification.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .config import RISK_HIGH_THRESHOLD, RISK_MEDIUM_THRESHOLD
from .enums import RiskCategory
from .exceptions import InvalidScoreError

HIGH_SCORE_FACTOR = "high-fraud-score"
ELEVATED_SCORE_FACTOR = "elevated-fraud-score"


@dataclass(frozen=True)
class RiskAssessment:
    risk_category: RiskCategory
    risk_factors: List[str] = field(default_factory=list)


def validate_score(score) -> int:
    # bool is an int subclass but never a valid score
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidScoreError(f"Fraud score must be an integer, got {score!r}")
    if score < 0 or score > 100:
        raise InvalidScoreError(f"Fraud score {score} outside [0, 100]")
    return score


def _dedupe(labels: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for label in labels:
        if label in seen:
            continue
        seen.add(label)
        out.append(label)
    return out


class RiskClassifier:
    """Score bands: ``[0, medium)`` low, ``[medium, high)`` medium, ``[high, 100]`` high."""

    def __init__(self, medium_threshold: int = RISK_MEDIUM_THRESHOLD, high_threshold: int = RISK_HIGH_THRESHOLD):
        if not 0 <= medium_threshold < high_threshold <= 100:
            raise ValueError(
                f"Invalid risk thresholds: medium={medium_threshold}, high={high_threshold}"
            )
        self.medium_threshold = medium_threshold
        self.high_threshold = high_threshold

    def category_for(self, score: int) -> RiskCategory:
        if score >= self.high_threshold:
            return RiskCategory.HIGH
        if score >= self.medium_threshold:
            return RiskCategory.MEDIUM
        return RiskCategory.LOW

    def derived_factors(self, category: RiskCategory) -> List[str]:
        if category is RiskCategory.HIGH:
            return [HIGH_SCORE_FACTOR]
        if category is RiskCategory.MEDIUM:
            return [ELEVATED_SCORE_FACTOR]
        return []

    def classify(self, fraud_score: int, explicit_factors: Optional[Iterable[str]] = None) -> RiskAssessment:
        """Classify ``fraud_score``; explicit factors come first, derived ones after."""
        score = validate_score(fraud_score)
        category = self.category_for(score)
        explicit = [str(f) for f in (explicit_factors or []) if str(f).strip()]
        factors = _dedupe(explicit + self.derived_factors(category))
        return RiskAssessment(risk_category=category, risk_factors=factors)


default_classifier = RiskClassifier()


def classify(fraud_score: int, explicit_factors: Optional[Iterable[str]] = None) -> RiskAssessment:
    return default_classifier.classify(fraud_score, explicit_factors)
