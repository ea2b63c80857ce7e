import logging
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from school_exams.infrastructure.grading.cbc_grades import grade_band
from school_exams.infrastructure.grading.scoring import percentage_of
from school_exams.infrastructure.repositories.exam_catalog_repository import ExamCatalogRepository
from school_exams.infrastructure.repositories.exam_result_repository import ExamResultRepository
from school_exams.infrastructure.repositories.student_repository import StudentRepository
from school_exams.infrastructure.services.errors import ExamNotFound, ResultNotFound
from school_exams.infrastructure.security.caller import CallerIdentity
from school_exams.presentation.schemas.offline_result_schema import (
    BulkResultsRequest,
    ResultUpdateRequest,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_MARKS = 100


def _grade_entry(marks_obtained: float, max_marks: float, is_absent: bool, education_level: str) -> Optional[str]:
    if is_absent:
        return None
    return grade_band(percentage_of(marks_obtained, max_marks), education_level)


def _education_level(catalog: ExamCatalogRepository, exam, default_level: str) -> str:
    return catalog.get_education_level(exam) or default_level


def process_bulk_results(
    db: Session, request: BulkResultsRequest, caller: CallerIdentity, default_level: str
) -> Dict:
    catalog = ExamCatalogRepository(db)
    results = ExamResultRepository(db)

    exam = catalog.get_exam(request.exam_id, caller.school_id)
    if not exam:
        raise ExamNotFound("Exam not found")
    education_level = _education_level(catalog, exam, default_level)

    logger.info(
        f"User {caller.user_id} entering {len(request.results)} offline results for exam {exam.id}"
    )

    known_students = StudentRepository(db).existing_ids(
        (entry.student_id for entry in request.results if entry.student_id),
        caller.school_id,
    )

    rows: List[Dict] = []
    errors: List[Dict] = []
    for index, entry in enumerate(request.results):
        if not entry.student_id:
            errors.append({"student_id": None, "error": f"Row {index + 1}: student_id is required"})
            continue
        if entry.student_id not in known_students:
            errors.append({"student_id": entry.student_id, "error": f"Row {index + 1}: student not found"})
            continue
        max_marks = entry.max_marks if entry.max_marks is not None else DEFAULT_MAX_MARKS
        marks_obtained = entry.marks_obtained or 0
        rows.append(
            {
                "student_id": entry.student_id,
                "subject_id": entry.subject_id,
                "marks_obtained": marks_obtained,
                "max_marks": max_marks,
                "remarks": entry.remarks,
                "is_absent": entry.is_absent,
                "cbc_grade": _grade_entry(marks_obtained, max_marks, entry.is_absent, education_level),
            }
        )

    try:
        if rows:
            results.upsert_results(exam.id, rows)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Bulk results failed for exam {exam.id}: {e}", exc_info=True)
        raise

    logger.info(f"Bulk results for exam {exam.id} finished. Saved: {len(rows)}, Failed: {len(errors)}")
    return {"success_count": len(rows), "errors": errors}


def update_single_result(
    db: Session,
    exam_id: str,
    student_id: str,
    subject_id: Optional[str],
    request: ResultUpdateRequest,
    caller: CallerIdentity,
    default_level: str,
):
    catalog = ExamCatalogRepository(db)
    exam = catalog.get_exam(exam_id, caller.school_id)
    if not exam:
        raise ExamNotFound("Exam not found")
    education_level = _education_level(catalog, exam, default_level)

    values = {
        "marks_obtained": request.marks_obtained,
        "max_marks": request.max_marks,
        "remarks": request.remarks,
        "is_absent": request.is_absent,
        "cbc_grade": _grade_entry(
            request.marks_obtained, request.max_marks, request.is_absent, education_level
        ),
    }
    result = ExamResultRepository(db).update_result(exam_id, student_id, subject_id, values)
    if not result:
        raise ResultNotFound()
    logger.info(f"User {caller.user_id} updated result {result.id} for exam {exam_id}")
    return result
