import pytest

from school_exams.infrastructure.grading.cbc_grades import (
    classify,
    education_level_label,
    grade_band,
    grading_scale,
)

PRIMARY_LEVELS = ["playgroup", "pre_primary", "lower_primary", "upper_primary"]


@pytest.mark.parametrize("level", PRIMARY_LEVELS)
@pytest.mark.parametrize(
    "percentage, expected",
    [(100, "EE"), (75.0, "EE"), (74.9, "ME"), (50.0, "ME"), (49.9, "AE"), (25, "AE"), (24.9, "BE"), (0, "BE")],
)
def test_primary_bands(level, percentage, expected):
    assert grade_band(percentage, level) == expected


@pytest.mark.parametrize("level", ["junior_secondary", "senior_secondary"])
@pytest.mark.parametrize(
    "percentage, expected",
    [(75.0, "A"), (74.9, "B"), (60, "B"), (59.9, "C"), (50, "C"), (49.9, "D"), (35, "D"), (34.9, "E")],
)
def test_secondary_bands(level, percentage, expected):
    assert grade_band(percentage, level) == expected


@pytest.mark.parametrize(
    "percentage, expected",
    [
        (70, "First Class"),
        (69.9, "Second Upper"),
        (60, "Second Upper"),
        (59.9, "Second Lower"),
        (50, "Second Lower"),
        (40.0, "Pass"),
        (39.9, "Fail"),
        (0, "Fail"),
    ],
)
def test_default_bands(percentage, expected):
    assert grade_band(percentage, "university") == expected


@pytest.mark.parametrize("level", [None, "", "college", "UPPER_PRIMARY"])
def test_unknown_levels_use_default_table(level):
    assert classify(level) == "default"
    assert grade_band(40, level) == "Pass"


def test_negative_percentage_gets_lowest_band():
    assert grade_band(-5, "lower_primary") == "BE"
    assert grade_band(-5, "senior_secondary") == "E"
    assert grade_band(-5, None) == "Fail"


def test_grading_scale_ranges_are_contiguous():
    assert grading_scale("upper_primary") == [
        {"grade": "EE", "label": "Exceeds Expectation", "min": 75, "max": 100},
        {"grade": "ME", "label": "Meets Expectation", "min": 50, "max": 74},
        {"grade": "AE", "label": "Approaches Expectation", "min": 25, "max": 49},
        {"grade": "BE", "label": "Below Expectation", "min": 0, "max": 24},
    ]
    secondary = grading_scale("junior_secondary")
    assert [b["grade"] for b in secondary] == ["A", "B", "C", "D", "E"]
    assert secondary[2] == {"grade": "C", "label": "Average", "min": 50, "max": 59}


def test_education_level_label():
    assert education_level_label("junior_secondary") == "Junior Secondary (Grades 7-9)"
    assert education_level_label("night_school") == "night_school"
