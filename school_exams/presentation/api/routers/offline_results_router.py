import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from school_exams.application.results.offline_results_usecase import (
    process_bulk_results,
    update_single_result,
)
from school_exams.config import get_settings
from school_exams.infrastructure.repositories.exam_catalog_repository import ExamCatalogRepository
from school_exams.infrastructure.repositories.exam_result_repository import ExamResultRepository
from school_exams.infrastructure.security.caller import CallerIdentity
from school_exams.infrastructure.services.errors import ExamAttemptError
from school_exams.presentation.dependencies import admin_required, get_db, staff_required
from school_exams.presentation.schemas.offline_result_schema import (
    BulkResultsRequest,
    BulkResultsResponse,
    OfflineResultOut,
    OfflineResultRow,
    ResultUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/offline-results", tags=["Offline Results"])


def _subject_or_none(subject_id: str) -> Optional[str]:
    return None if subject_id in ("null", "none", "") else subject_id


@router.post("/bulk", response_model=BulkResultsResponse)
def bulk_results(
    request: BulkResultsRequest,
    db: Session = Depends(get_db),
    staff: CallerIdentity = Depends(staff_required),
):
    try:
        return process_bulk_results(db, request, staff, get_settings().default_education_level)
    except ExamAttemptError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error saving bulk results for exam {request.exam_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error saving results",
        )


@router.get("/{exam_id}", response_model=List[OfflineResultRow])
def list_results(
    exam_id: str,
    db: Session = Depends(get_db),
    staff: CallerIdentity = Depends(staff_required),
):
    if not ExamCatalogRepository(db).get_exam(exam_id, staff.school_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")

    try:
        rows = ExamResultRepository(db).list_results_for_exam(exam_id)
        logger.info(f"User {staff.user_id} fetched {len(rows)} results for exam {exam_id}")
        return [
            OfflineResultRow(
                **OfflineResultOut.model_validate(result).model_dump(),
                first_name=student.first_name,
                last_name=student.last_name,
                admission_number=student.admission_number,
                subject_name=subject.name if subject else None,
            )
            for result, student, subject in rows
        ]
    except Exception as e:
        logger.error(f"Error fetching results for exam {exam_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching results",
        )


@router.put("/{exam_id}/{student_id}/{subject_id}", response_model=OfflineResultOut)
def update_result(
    exam_id: str,
    student_id: str,
    subject_id: str,
    request: ResultUpdateRequest,
    db: Session = Depends(get_db),
    staff: CallerIdentity = Depends(staff_required),
):
    try:
        return update_single_result(
            db,
            exam_id,
            student_id,
            _subject_or_none(subject_id),
            request,
            staff,
            get_settings().default_education_level,
        )
    except ExamAttemptError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating result for exam {exam_id}, student {student_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating result",
        )


@router.post("/{exam_id}/publish")
def publish_results(
    exam_id: str,
    db: Session = Depends(get_db),
    admin: CallerIdentity = Depends(admin_required),
):
    if not ExamCatalogRepository(db).publish_results(exam_id, admin.school_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    return {"message": "Results published successfully"}
