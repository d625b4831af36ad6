"""
Unit tests for the course eligibility check.
"""

import pytest

from app.modules.applications.eligibility import (
    EligibilityScores,
    check_eligibility,
    format_percentage,
)

CRITERIA = [
    {"criteria": "10th grade", "minimumPercentage": 60},
    {"criteria": "12th grade", "minimumPercentage": 70},
]


class TestCheckEligibility:
    def test_tenth_below_minimum(self):
        result = check_eligibility(CRITERIA, EligibilityScores(tenth=55, twelfth=75))

        assert result.eligible is False
        assert result.failed_criteria == ["10th grade minimum: 60%"]

    def test_all_failures_reported(self):
        result = check_eligibility(CRITERIA, EligibilityScores(tenth=50, twelfth=65))

        assert result.failed_criteria == [
            "10th grade minimum: 60%",
            "12th grade minimum: 70%",
        ]

    def test_meets_every_criterion(self):
        result = check_eligibility(CRITERIA, EligibilityScores(tenth=60, twelfth=70))

        assert result.eligible is True
        assert result.failed_criteria == []

    def test_missing_score_fails_its_criterion(self):
        result = check_eligibility(CRITERIA, EligibilityScores(tenth=80))

        assert result.failed_criteria == ["12th grade minimum: 70%"]

    def test_criterion_without_minimum_is_ignored(self):
        criteria = [{"criteria": "12th with Physics and Mathematics"}]
        result = check_eligibility(criteria, EligibilityScores())

        assert result.eligible is True

    def test_unrelated_criterion_is_ignored(self):
        criteria = [{"criteria": "Entrance interview", "minimumPercentage": 90}]
        result = check_eligibility(criteria, EligibilityScores(tenth=10, twelfth=10))

        assert result.eligible is True

    def test_no_criteria(self):
        assert check_eligibility([], EligibilityScores()).eligible is True


@pytest.mark.parametrize("value, expected", [(60, "60"), (60.0, "60"), (62.5, "62.5")])
def test_format_percentage(value, expected):
    assert format_percentage(value) == expected
