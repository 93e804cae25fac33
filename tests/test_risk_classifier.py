import pytest

from kyc_backend.enums import RiskCategory
from kyc_backend.exceptions import InvalidScoreError, ValidationError
from kyc_backend.risk_classifier import (
    ELEVATED_SCORE_FACTOR,
    HIGH_SCORE_FACTOR,
    RiskClassifier,
    classify,
)


class TestCategoryBands:
    @pytest.mark.parametrize("score", [0, 1, 15, 29])
    def test_low_band(self, score):
        assert classify(score).risk_category is RiskCategory.LOW

    @pytest.mark.parametrize("score", [30, 31, 50, 69])
    def test_medium_band(self, score):
        assert classify(score).risk_category is RiskCategory.MEDIUM

    @pytest.mark.parametrize("score", [70, 71, 85, 100])
    def test_high_band(self, score):
        assert classify(score).risk_category is RiskCategory.HIGH

    def test_boundaries(self):
        assert classify(29).risk_category is RiskCategory.LOW
        assert classify(30).risk_category is RiskCategory.MEDIUM
        assert classify(69).risk_category is RiskCategory.MEDIUM
        assert classify(70).risk_category is RiskCategory.HIGH

    def test_same_inputs_same_result(self):
        assert classify(55, ["blurry-photo"]) == classify(55, ["blurry-photo"])


class TestRiskFactors:
    def test_low_score_has_no_derived_factor(self):
        assert classify(10).risk_factors == []

    def test_derived_factor_by_band(self):
        assert classify(45).risk_factors == [ELEVATED_SCORE_FACTOR]
        assert classify(70).risk_factors == [HIGH_SCORE_FACTOR]

    def test_explicit_factors_first_then_derived(self):
        result = classify(90, ["name-mismatch", "tampered-photo"])
        assert result.risk_factors == ["name-mismatch", "tampered-photo", HIGH_SCORE_FACTOR]

    def test_duplicates_removed_keeping_first(self):
        result = classify(90, ["tampered-photo", "name-mismatch", "tampered-photo", HIGH_SCORE_FACTOR])
        assert result.risk_factors == ["tampered-photo", "name-mismatch", HIGH_SCORE_FACTOR]

    def test_explicit_factors_do_not_change_category(self):
        result = classify(10, ["a", "b", "c", "d"])
        assert result.risk_category is RiskCategory.LOW
        assert result.risk_factors == ["a", "b", "c", "d"]


class TestInvalidScores:
    @pytest.mark.parametrize("score", [-1, 101, 1000])
    def test_out_of_range(self, score):
        with pytest.raises(InvalidScoreError):
            classify(score)

    @pytest.mark.parametrize("score", [None, "50", 50.5, True])
    def test_not_an_integer(self, score):
        with pytest.raises(InvalidScoreError):
            classify(score)

    def test_invalid_score_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            classify(150)


class TestConfigurableThresholds:
    def test_custom_thresholds(self):
        classifier = RiskClassifier(medium_threshold=40, high_threshold=80)
        assert classifier.classify(39).risk_category is RiskCategory.LOW
        assert classifier.classify(40).risk_category is RiskCategory.MEDIUM
        assert classifier.classify(79).risk_category is RiskCategory.MEDIUM
        assert classifier.classify(80).risk_category is RiskCategory.HIGH

    @pytest.mark.parametrize("medium,high", [(70, 30), (50, 50), (-1, 70), (30, 101)])
    def test_rejects_bad_thresholds(self, medium, high):
        with pytest.raises(ValueError):
            RiskClassifier(medium_threshold=medium, high_threshold=high)
