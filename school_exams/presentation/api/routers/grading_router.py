from fastapi import APIRouter

from school_exams.infrastructure.grading.cbc_grades import education_level_label, grading_scale
from school_exams.presentation.schemas.grading_schema import GradingScaleOut

router = APIRouter(prefix="/grading", tags=["Grading"])


@router.get("/scales/{education_level}", response_model=GradingScaleOut)
def get_grading_scale(education_level: str):
    return GradingScaleOut(
        education_level=education_level,
        label=education_level_label(education_level),
        bands=grading_scale(education_level),
    )
