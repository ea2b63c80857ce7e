import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from school_exams.application.exams.create_online_exam_usecase import create_online_exam
from school_exams.infrastructure.repositories.exam_catalog_repository import ExamCatalogRepository
from school_exams.infrastructure.security.caller import CallerIdentity
from school_exams.infrastructure.services.errors import ExamAttemptError
from school_exams.infrastructure.services.exam_attempt_service import ExamAttemptService
from school_exams.presentation.dependencies import (
    get_db,
    get_exam_attempt_service,
    staff_required,
    student_required,
)
from school_exams.presentation.schemas.online_exam_schema import (
    AnswerOut,
    AttemptOut,
    AttemptRecoveryResponse,
    AttemptResultRow,
    BreakdownItem,
    ExamOut,
    MyResultResponse,
    OnlineExamCreate,
    OnlineExamOut,
    QuestionAdminOut,
    QuestionOut,
    SaveAnswerRequest,
    StartAttemptResponse,
    SubmitAttemptResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/online-exams", tags=["Online Exams"])


# --------------------------------------------------
# Authoring (staff)
# --------------------------------------------------
@router.post("", response_model=OnlineExamOut, status_code=status.HTTP_201_CREATED)
def add_online_exam(
    data: OnlineExamCreate,
    db: Session = Depends(get_db),
    staff: CallerIdentity = Depends(staff_required),
):
    try:
        exam = create_online_exam(db, data, staff)
        return OnlineExamOut.model_validate(exam)
    except ValueError as e:
        logger.warning(f"Validation error creating online exam by user {staff.user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error creating online exam by user {staff.user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


@router.get("/{exam_id}/questions", response_model=List[QuestionAdminOut])
def list_exam_questions(
    exam_id: str,
    db: Session = Depends(get_db),
    staff: CallerIdentity = Depends(staff_required),
):
    """
    Questions with their correct answers, for staff reviewing an exam.
    """
    repo = ExamCatalogRepository(db)
    if not repo.get_exam(exam_id, staff.school_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    return repo.load_questions_for_exam(exam_id)


# --------------------------------------------------
# 1. Start / resume attempt
# --------------------------------------------------
@router.post("/{exam_id}/start", response_model=StartAttemptResponse)
def start_attempt(
    exam_id: str,
    current_user: CallerIdentity = Depends(student_required),
    service: ExamAttemptService = Depends(get_exam_attempt_service),
):
    """
    Starts the caller's attempt, or returns the existing one on refresh.
    Questions are returned without correct answers.
    """
    try:
        logger.info(f"User {current_user.user_id} starting online exam {exam_id}")
        started = service.start_attempt(exam_id, current_user)
        return StartAttemptResponse(
            message="Exam started" if started.created else "Exam already started",
            attempt=AttemptOut.model_validate(started.attempt),
            exam=ExamOut.model_validate(started.exam),
            questions=[QuestionOut.model_validate(q) for q in started.questions],
        )
    except ExamAttemptError as e:
        logger.warning(f"Start rejected for user {current_user.user_id}, exam {exam_id}: {e}")
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(
            f"Unexpected error starting exam {exam_id} for user {current_user.user_id}: {e}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


# --------------------------------------------------
# 2. Recover attempt after crash / refresh
# --------------------------------------------------
@router.get("/{exam_id}/attempt", response_model=AttemptRecoveryResponse)
def get_attempt(
    exam_id: str,
    current_user: CallerIdentity = Depends(student_required),
    service: ExamAttemptService = Depends(get_exam_attempt_service),
):
    try:
        recovered = service.get_attempt(exam_id, current_user)
        return AttemptRecoveryResponse(
            attempt=AttemptOut.model_validate(recovered.attempt),
            answers=[AnswerOut.model_validate(a) for a in recovered.answers],
        )
    except ExamAttemptError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(
            f"Unexpected error fetching attempt for exam {exam_id}, user {current_user.user_id}: {e}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


# --------------------------------------------------
# 3. Save / update an answer
# --------------------------------------------------
@router.post("/{exam_id}/answer", status_code=status.HTTP_200_OK)
def save_answer(
    exam_id: str,
    answer: SaveAnswerRequest,
    current_user: CallerIdentity = Depends(student_required),
    service: ExamAttemptService = Depends(get_exam_attempt_service),
):
    try:
        service.save_answer(exam_id, current_user, answer.question_id, answer.answer_text)
        return {"message": "Answer saved"}
    except ExamAttemptError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(
            f"Unexpected error saving answer for exam {exam_id}, user {current_user.user_id}: {e}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


# --------------------------------------------------
# 4. Final submission
# --------------------------------------------------
@router.post("/{exam_id}/submit", response_model=SubmitAttemptResponse)
def submit_attempt(
    exam_id: str,
    current_user: CallerIdentity = Depends(student_required),
    service: ExamAttemptService = Depends(get_exam_attempt_service),
):
    """
    Grades objective questions and records the result. Runs once per attempt.
    """
    try:
        logger.info(f"User {current_user.user_id} submitting online exam {exam_id}")
        result = service.submit_attempt(exam_id, current_user)
        return SubmitAttemptResponse(
            total_score=result.total_score,
            max_score=result.max_score,
            percentage=result.percentage,
            cbc_grade=result.cbc_grade,
            breakdown=[BreakdownItem(**item) for item in result.breakdown],
        )
    except ExamAttemptError as e:
        logger.warning(f"Submit rejected for user {current_user.user_id}, exam {exam_id}: {e}")
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(
            f"Unexpected error submitting exam {exam_id} for user {current_user.user_id}: {e}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


# --------------------------------------------------
# 5. Results (staff)
# --------------------------------------------------
@router.get("/{exam_id}/results", response_model=List[AttemptResultRow])
def get_results(
    exam_id: str,
    staff: CallerIdentity = Depends(staff_required),
    service: ExamAttemptService = Depends(get_exam_attempt_service),
):
    try:
        rows = service.get_results(exam_id, staff)
        return [
            AttemptResultRow(
                **AttemptOut.model_validate(attempt).model_dump(),
                first_name=student.first_name,
                last_name=student.last_name,
                admission_number=student.admission_number,
            )
            for attempt, student in rows
        ]
    except ExamAttemptError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error fetching results for exam {exam_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


# --------------------------------------------------
# 6. Own result (after submission)
# --------------------------------------------------
@router.get("/{exam_id}/my-result", response_model=MyResultResponse)
def get_my_result(
    exam_id: str,
    current_user: CallerIdentity = Depends(student_required),
    service: ExamAttemptService = Depends(get_exam_attempt_service),
):
    try:
        result = service.get_my_result(exam_id, current_user)
        return MyResultResponse(
            attempt=AttemptOut.model_validate(result.attempt),
            answers=[BreakdownItem(**item) for item in result.answers],
        )
    except ExamAttemptError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.error(
            f"Unexpected error fetching result for exam {exam_id}, user {current_user.user_id}: {e}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )
