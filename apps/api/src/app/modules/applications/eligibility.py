"""
Course Eligibility

Pure check of an applicant's scores against a course's eligibility list.

A criterion whose text mentions "10th" is compared with the 10th grade
percentage, "12th" with the 12th grade percentage (a criterion mentioning
both is checked against both). Every failing criterion is reported; a
missing score for a referenced level counts as a failure. Criteria without a
minimumPercentage impose no numeric bar.
"""

from dataclasses import dataclass, field
from typing import Any

LEVELS = (("10th", "tenth"), ("12th", "twelfth"))


@dataclass(frozen=True)
class EligibilityScores:
    tenth: float | None = None
    twelfth: float | None = None


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    failed_criteria: list[str] = field(default_factory=list)


def format_percentage(value: float) -> str:
    """60.0 -> "60", 62.5 -> "62.5"."""
    number = float(value)
    return str(int(number)) if number.is_integer() else str(number)


def check_eligibility(
    criteria: list[dict[str, Any]],
    scores: EligibilityScores,
) -> EligibilityResult:
    """
    Evaluate every criterion without short-circuiting.

    Args:
        criteria: Course eligibility entries ({"criteria", "minimumPercentage"})
        scores: Applicant percentages

    Returns:
        EligibilityResult listing failures as "10th grade minimum: 60%"
    """
    failed: list[str] = []

    for criterion in criteria:
        text = str(criterion.get("criteria", ""))
        minimum = criterion.get("minimumPercentage")
        if minimum is None:
            continue

        for marker, attribute in LEVELS:
            if marker not in text:
                continue
            score = getattr(scores, attribute)
            if score is None or score < minimum:
                failed.append(f"{marker} grade minimum: {format_percentage(minimum)}%")

    return EligibilityResult(eligible=not failed, failed_criteria=failed)
