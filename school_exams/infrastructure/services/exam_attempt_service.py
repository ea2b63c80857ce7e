from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..db.base import utcnow
from ..db.models import (
    ATTEMPT_IN_PROGRESS,
    ATTEMPT_SUBMITTED,
    Exam,
    ExamAttempt,
    ExamAttemptAnswer,
    ExamQuestion,
    Student,
)
from ..grading.cbc_grades import grade_band
from ..grading.scoring import grade_attempt, percentage_of, question_marks, round_percentage
from ..repositories.exam_attempt_repository import ExamAttemptRepository
from ..repositories.exam_catalog_repository import ExamCatalogRepository
from ..repositories.exam_result_repository import ExamResultRepository
from ..repositories.student_repository import StudentRepository
from ..security.caller import CallerIdentity
from .errors import (
    AlreadySubmitted,
    AttemptNotFound,
    ExamAttemptError,
    ExamClosed,
    ExamNotFound,
    ExamNotYetOpen,
    NoActiveAttempt,
    NoSubmittedAttempt,
    NotAStudent,
    UnknownQuestion,
)

logger = logging.getLogger(__name__)


# ---------------------------
# Results
# ---------------------------

@dataclass
class StartedAttempt:
    attempt: ExamAttempt
    exam: Exam
    questions: List[ExamQuestion]
    created: bool


@dataclass
class RecoveredAttempt:
    attempt: ExamAttempt
    answers: List[ExamAttemptAnswer]


@dataclass
class SubmissionResult:
    total_score: int
    max_score: int
    percentage: int
    cbc_grade: str
    breakdown: List[Dict] = field(default_factory=list)


@dataclass
class MyResult:
    attempt: ExamAttempt
    answers: List[Dict]


def build_breakdown(
    questions: List[ExamQuestion],
    answers_by_question: Dict[str, ExamAttemptAnswer],
    scores: Optional[Dict] = None,
) -> List[Dict]:
    """
    Per-question view of a graded attempt. This is the only payload that
    carries correct answers to a student, and only once the attempt is graded.
    """
    breakdown = []
    for q in questions:
        answer = answers_by_question.get(q.id)
        if scores is not None:
            score = scores.get(q.id)
            marks_awarded = score.marks_awarded if score else 0
            is_correct = score.is_correct if score else None
        else:
            marks_awarded = answer.marks_awarded if answer else 0
            is_correct = answer.is_correct if answer else None
        breakdown.append(
            {
                "question_id": q.id,
                "question_text": q.question_text,
                "question_type": q.question_type,
                "options": q.options,
                "marks": q.marks,
                "marks_awarded": marks_awarded or 0,
                "is_correct": is_correct,
                "your_answer": answer.answer_text if answer else None,
                "correct_answer": q.correct_answer,
            }
        )
    return breakdown


# ---------------------------
# Exam Attempt Engine
# ---------------------------

class ExamAttemptService:
    """
    Lifecycle of a student's attempt at an online exam:
    start -> answer -> submit (auto-grade) -> results.

    Holds no state between calls. Every operation receives the caller
    explicitly.
    """

    def __init__(
        self,
        db: Session,
        *,
        catalog: ExamCatalogRepository,
        attempts: ExamAttemptRepository,
        results: ExamResultRepository,
        students: StudentRepository,
        default_education_level: str = "lower_primary",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self._catalog = catalog
        self._attempts = attempts
        self._results = results
        self._students = students
        self._default_education_level = default_education_level
        self._clock = clock

    # ---------------------------
    # Public API
    # ---------------------------

    def start_attempt(self, exam_id: str, caller: CallerIdentity) -> StartedAttempt:
        student = self._resolve_student(caller)

        exam = self._catalog.get_online_exam(exam_id, caller.school_id)
        if not exam:
            raise ExamNotFound()

        now = self._clock()
        if exam.start_date and now < exam.start_date:
            logger.warning(f"Exam {exam_id} not open yet for student_id={student.id}")
            raise ExamNotYetOpen()
        if exam.end_date and now > exam.end_date:
            logger.warning(f"Exam {exam_id} closed for student_id={student.id}")
            raise ExamClosed()

        questions = self._catalog.load_questions_for_exam(exam_id)
        max_score = sum(question_marks(q) for q in questions)

        attempt, created = self._attempts.create_attempt_if_absent(
            exam_id, student.id, max_score, now
        )
        if created:
            logger.info(
                f"Student {student.id} started exam {exam_id}: attempt={attempt.id}, max_score={max_score}"
            )
        else:
            logger.info(f"Student {student.id} resumed exam {exam_id}: attempt={attempt.id}")

        return StartedAttempt(attempt=attempt, exam=exam, questions=questions, created=created)

    def get_attempt(self, exam_id: str, caller: CallerIdentity) -> RecoveredAttempt:
        student = self._resolve_student(caller)
        attempt = self._attempts.get_attempt(exam_id, student.id)
        if not attempt:
            raise AttemptNotFound()
        answers = self._attempts.load_answers_for_attempt(attempt.id)
        logger.debug(f"Recovered attempt {attempt.id} with {len(answers)} answers")
        return RecoveredAttempt(attempt=attempt, answers=answers)

    def save_answer(
        self, exam_id: str, caller: CallerIdentity, question_id: str, answer_text: Optional[str]
    ) -> None:
        student = self._resolve_student(caller)
        attempt = self._attempts.get_in_progress_attempt(exam_id, student.id)
        if not attempt:
            logger.warning(f"Answer rejected, no active attempt: exam_id={exam_id}, student_id={student.id}")
            raise NoActiveAttempt()
        if not self._catalog.question_belongs_to_exam(exam_id, question_id):
            raise UnknownQuestion()

        self._attempts.upsert_answer(attempt.id, question_id, answer_text)
        logger.debug(f"Saved answer for attempt={attempt.id}, question_id={question_id}")

    def submit_attempt(self, exam_id: str, caller: CallerIdentity) -> SubmissionResult:
        student = self._resolve_student(caller)

        attempt = self._attempts.get_attempt(exam_id, student.id)
        if not attempt:
            raise NoActiveAttempt()
        if attempt.status == ATTEMPT_SUBMITTED:
            logger.warning(f"Duplicate submission: exam_id={exam_id}, student_id={student.id}")
            raise AlreadySubmitted()

        exam = self._catalog.get_exam(exam_id)
        if not exam:
            raise ExamNotFound()
        education_level = self._catalog.get_education_level(exam) or self._default_education_level

        questions = self._catalog.load_questions_for_exam(exam_id)
        answers = self._attempts.load_answers_for_attempt(attempt.id)
        answers_by_question = {a.question_id: a for a in answers}

        graded = grade_attempt(
            questions, {qid: a.answer_text for qid, a in answers_by_question.items()}
        )
        scores = graded.by_question()

        # Denominator is the value snapshotted when the attempt started
        max_score = attempt.max_score
        percentage = percentage_of(graded.total_score, max_score)
        cbc_grade = grade_band(percentage, education_level)

        submitted_at = self._clock()
        time_spent = max(0, int((submitted_at - attempt.started_at).total_seconds()))

        graded_answers = [
            {
                "id": answers_by_question[qid].id,
                "is_correct": score.is_correct,
                "marks_awarded": score.marks_awarded,
            }
            for qid, score in scores.items()
            if qid in answers_by_question
        ]

        try:
            if not self._attempts.finalize_attempt(
                attempt.id,
                graded_answers=graded_answers,
                submitted_at=submitted_at,
                total_score=graded.total_score,
                max_score=max_score,
                cbc_grade=cbc_grade,
                time_spent_seconds=time_spent,
            ):
                self.db.rollback()
                logger.warning(f"Attempt {attempt.id} was submitted concurrently")
                raise AlreadySubmitted()

            self._results.upsert_results(
                exam_id,
                [
                    {
                        "student_id": student.id,
                        "subject_id": None,
                        "marks_obtained": graded.total_score,
                        "max_marks": max_score,
                        "cbc_grade": cbc_grade,
                    }
                ],
            )
            self.db.commit()
        except ExamAttemptError:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Error submitting exam {exam_id} for student {student.id}: {e}", exc_info=True
            )
            raise

        logger.info(
            f"Student {student.id} submitted exam {exam_id}: "
            f"{graded.total_score}/{max_score} ({percentage:.1f}%), grade={cbc_grade}"
        )
        return SubmissionResult(
            total_score=graded.total_score,
            max_score=max_score,
            percentage=round_percentage(percentage),
            cbc_grade=cbc_grade,
            breakdown=build_breakdown(questions, answers_by_question, scores),
        )

    def get_results(self, exam_id: str, caller: CallerIdentity) -> List[Tuple[ExamAttempt, Student]]:
        """All attempts for an exam, best score first. Staff only."""
        if not self._catalog.get_exam(exam_id, caller.school_id):
            raise ExamNotFound("Exam not found")
        return self._attempts.list_attempts_with_students(exam_id)

    def get_my_result(self, exam_id: str, caller: CallerIdentity) -> MyResult:
        student = self._resolve_student(caller)
        attempt = self._attempts.get_attempt(exam_id, student.id)
        if not attempt or attempt.status == ATTEMPT_IN_PROGRESS:
            raise NoSubmittedAttempt()

        questions = self._catalog.load_questions_for_exam(exam_id)
        answers = self._attempts.load_answers_for_attempt(attempt.id)
        answers_by_question = {a.question_id: a for a in answers}
        return MyResult(attempt=attempt, answers=build_breakdown(questions, answers_by_question))

    # ---------------------------
    # Internals
    # ---------------------------

    def _resolve_student(self, caller: CallerIdentity) -> Student:
        if not caller.is_student:
            logger.warning(f"Non-student caller user_id={caller.user_id} role={caller.role}")
            raise NotAStudent("Students only")
        student = self._students.get_by_user_id(caller.user_id)
        if not student:
            raise NotAStudent()
        return student
