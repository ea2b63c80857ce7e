from datetime import datetime
from typing import Dict, List, Optional, Tuple
import logging
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from ..db.base import generate_uuid, utcnow
from ..db.models import (
    ATTEMPT_IN_PROGRESS,
    ATTEMPT_SUBMITTED,
    ExamAttempt,
    ExamAttemptAnswer,
    Student,
)

logger = logging.getLogger(__name__)


def _insert_for_dialect(dialect_name: str):
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif dialect_name in ("mysql", "mariadb"):
        from sqlalchemy.dialects.mysql import insert
    else:
        raise NotImplementedError(f"Answer upsert not supported on {dialect_name}")
    return insert


class ExamAttemptRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_attempt(self, exam_id: str, student_id: str) -> Optional[ExamAttempt]:
        return (
            self.db.query(ExamAttempt)
            .filter(ExamAttempt.exam_id == exam_id, ExamAttempt.student_id == student_id)
            .first()
        )

    def get_in_progress_attempt(self, exam_id: str, student_id: str) -> Optional[ExamAttempt]:
        return (
            self.db.query(ExamAttempt)
            .filter(
                ExamAttempt.exam_id == exam_id,
                ExamAttempt.student_id == student_id,
                ExamAttempt.status == ATTEMPT_IN_PROGRESS,
            )
            .first()
        )

    def create_attempt_if_absent(
        self, exam_id: str, student_id: str, max_score: int, started_at: datetime
    ) -> Tuple[ExamAttempt, bool]:
        """
        Inserts an in-progress attempt. The (exam_id, student_id) unique
        constraint decides races: on conflict the existing row is returned.
        Returns (attempt, created).
        """
        attempt = ExamAttempt(
            id=generate_uuid(),
            exam_id=exam_id,
            student_id=student_id,
            status=ATTEMPT_IN_PROGRESS,
            started_at=started_at,
            max_score=max_score,
        )
        self.db.add(attempt)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_attempt(exam_id, student_id)
            if existing is None:
                raise
            logger.info(f"Attempt already exists for exam_id={exam_id}, student_id={student_id}")
            return existing, False

        self.db.refresh(attempt)
        logger.info(f"Created attempt {attempt.id} for exam_id={exam_id}, student_id={student_id}")
        return attempt, True

    def upsert_answer(self, attempt_id: str, question_id: str, answer_text: Optional[str]) -> None:
        insert = _insert_for_dialect(self.db.get_bind().dialect.name)
        now = utcnow()
        stmt = insert(ExamAttemptAnswer).values(
            id=generate_uuid(),
            attempt_id=attempt_id,
            question_id=question_id,
            answer_text=answer_text,
            marks_awarded=0,
            updated_at=now,
        )
        if hasattr(stmt, "on_conflict_do_update"):
            stmt = stmt.on_conflict_do_update(
                index_elements=["attempt_id", "question_id"],
                set_={"answer_text": stmt.excluded.answer_text, "updated_at": now},
            )
        else:
            stmt = stmt.on_duplicate_key_update(answer_text=stmt.inserted.answer_text, updated_at=now)

        try:
            self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def load_answers_for_attempt(self, attempt_id: str) -> List[ExamAttemptAnswer]:
        return (
            self.db.query(ExamAttemptAnswer)
            .filter(ExamAttemptAnswer.attempt_id == attempt_id)
            .all()
        )

    def finalize_attempt(
        self,
        attempt_id: str,
        *,
        graded_answers: List[Dict],
        submitted_at: datetime,
        total_score: int,
        max_score: int,
        cbc_grade: str,
        time_spent_seconds: int,
    ) -> bool:
        """
        Flips the attempt to submitted and writes per-answer grades. Guarded on
        status so only one submission wins. Does not commit; returns False if
        the attempt was no longer in progress.
        """
        result = self.db.execute(
            update(ExamAttempt)
            .where(ExamAttempt.id == attempt_id, ExamAttempt.status == ATTEMPT_IN_PROGRESS)
            .values(
                status=ATTEMPT_SUBMITTED,
                submitted_at=submitted_at,
                total_score=total_score,
                max_score=max_score,
                cbc_grade=cbc_grade,
                time_spent_seconds=time_spent_seconds,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False

        if graded_answers:
            # ORM bulk UPDATE by primary key; each dict carries "id"
            self.db.execute(update(ExamAttemptAnswer), graded_answers)
        self.db.flush()
        return True

    def list_attempts_with_students(self, exam_id: str) -> List[Tuple[ExamAttempt, Student]]:
        return (
            self.db.query(ExamAttempt, Student)
            .join(Student, Student.id == ExamAttempt.student_id)
            .filter(ExamAttempt.exam_id == exam_id)
            .order_by(
                ExamAttempt.total_score.is_(None),
                ExamAttempt.total_score.desc(),
                Student.last_name,
            )
            .all()
        )
