import logging
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Session

from school_exams.infrastructure.db.models import Exam, ExamQuestion
from school_exams.infrastructure.grading.scoring import AUTO_GRADED_TYPES
from school_exams.infrastructure.repositories.exam_catalog_repository import ExamCatalogRepository
from school_exams.infrastructure.security.caller import CallerIdentity
from school_exams.presentation.schemas.online_exam_schema import OnlineExamCreate

logger = logging.getLogger(__name__)

TRUE_FALSE_OPTIONS = ["True", "False"]


def _as_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def create_online_exam(db: Session, data: OnlineExamCreate, caller: CallerIdentity) -> Exam:
    start_date = _as_utc_naive(data.start_date)
    end_date = _as_utc_naive(data.end_date)
    if start_date and end_date and end_date <= start_date:
        raise ValueError("end_date must be after start_date")
    if not data.questions:
        raise ValueError("An online exam needs at least one question")

    questions = []
    for index, q in enumerate(data.questions):
        options = q.options
        if q.question_type == "true_false" and not options:
            options = list(TRUE_FALSE_OPTIONS)
        if q.question_type == "multiple_choice" and (not options or len(options) < 2):
            raise ValueError(f"Question {index + 1}: multiple choice needs at least 2 options")
        if q.question_type in AUTO_GRADED_TYPES:
            if not q.correct_answer:
                raise ValueError(f"Question {index + 1}: correct_answer is required")
            normalized = [str(o).strip().lower() for o in options]
            if q.correct_answer.strip().lower() not in normalized:
                raise ValueError(f"Question {index + 1}: correct_answer must match one of the options")

        questions.append(
            ExamQuestion(
                order_index=q.order_index if q.order_index is not None else index,
                question_type=q.question_type,
                question_text=q.question_text,
                options=options if q.question_type in AUTO_GRADED_TYPES else None,
                correct_answer=q.correct_answer if q.question_type in AUTO_GRADED_TYPES else None,
                marks=q.marks,
            )
        )

    exam = Exam(
        school_id=caller.school_id,
        name=data.name,
        mode="online",
        class_id=data.class_id,
        start_date=start_date,
        end_date=end_date,
        duration_minutes=data.duration_minutes,
        instructions=data.instructions,
    )
    logger.info(f"User {caller.user_id} creating online exam '{data.name}' with {len(questions)} questions")
    return ExamCatalogRepository(db).create_exam(exam, questions)
