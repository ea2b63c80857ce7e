"""
Percentage to grade-band conversion.

One table per classification group, selected by the education level of the
class an exam belongs to. Shared by online submission grading and the
offline bulk results entry.
"""
from typing import Dict, List, Optional, Tuple

PRIMARY = "primary"
SECONDARY = "secondary"
DEFAULT = "default"

EARLY_PRIMARY_LEVELS = ("playgroup", "pre_primary", "lower_primary", "upper_primary")
SECONDARY_LEVELS = ("junior_secondary", "senior_secondary")

EDUCATION_LEVELS: Dict[str, str] = {
    "playgroup": "Playgroup",
    "pre_primary": "Pre-Primary",
    "lower_primary": "Lower Primary (Grades 1-3)",
    "upper_primary": "Upper Primary (Grades 4-6)",
    "junior_secondary": "Junior Secondary (Grades 7-9)",
    "senior_secondary": "Senior Secondary (Grades 10-12)",
    "university": "University",
}

# (minimum percentage, grade, description), highest threshold first
GRADE_BANDS: Dict[str, List[Tuple[int, str, str]]] = {
    PRIMARY: [
        (75, "EE", "Exceeds Expectation"),
        (50, "ME", "Meets Expectation"),
        (25, "AE", "Approaches Expectation"),
        (0, "BE", "Below Expectation"),
    ],
    SECONDARY: [
        (75, "A", "Excellent"),
        (60, "B", "Good"),
        (50, "C", "Average"),
        (35, "D", "Below Average"),
        (0, "E", "Poor"),
    ],
    DEFAULT: [
        (70, "First Class", "First Class Honours"),
        (60, "Second Upper", "Second Class Upper"),
        (50, "Second Lower", "Second Class Lower"),
        (40, "Pass", "Pass"),
        (0, "Fail", "Fail"),
    ],
}


def classify(education_level: Optional[str]) -> str:
    if education_level in EARLY_PRIMARY_LEVELS:
        return PRIMARY
    if education_level in SECONDARY_LEVELS:
        return SECONDARY
    return DEFAULT


def grade_band(percentage: float, education_level: Optional[str]) -> str:
    bands = GRADE_BANDS[classify(education_level)]
    for threshold, grade, _ in bands:
        if percentage >= threshold:
            return grade
    # negative percentages fall through to the lowest band
    return bands[-1][1]


def grading_scale(education_level: Optional[str]) -> List[Dict]:
    """Band table for display: grade, description and inclusive integer range."""
    scale = []
    upper = 100
    for threshold, grade, label in GRADE_BANDS[classify(education_level)]:
        scale.append({"grade": grade, "label": label, "min": threshold, "max": upper})
        upper = threshold - 1
    return scale


def education_level_label(education_level: str) -> str:
    return EDUCATION_LEVELS.get(education_level, education_level)
