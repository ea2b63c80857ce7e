from typing import Dict, List, Optional, Tuple
import logging
from sqlalchemy.orm import Session
from ..db.base import utcnow
from ..db.models import ExamResult, Student, Subject

logger = logging.getLogger(__name__)

RESULT_FIELDS = ("marks_obtained", "max_marks", "cbc_grade", "remarks", "is_absent")


class ExamResultRepository:
    def __init__(self, db: Session):
        self.db = db

    def _find(self, exam_id: str, student_id: str, subject_id: Optional[str]) -> Optional[ExamResult]:
        query = self.db.query(ExamResult).filter(
            ExamResult.exam_id == exam_id,
            ExamResult.student_id == student_id,
        )
        if subject_id is None:
            query = query.filter(ExamResult.subject_id.is_(None))
        else:
            query = query.filter(ExamResult.subject_id == subject_id)
        return query.first()

    def upsert_results(self, exam_id: str, rows: List[Dict]) -> int:
        """
        Create-or-update one aggregate row per (exam, student, subject).
        Existing rows are loaded in a single query. Flushes but does not
        commit, so callers decide the transaction boundary.
        """
        student_ids = {row["student_id"] for row in rows}
        existing: Dict[Tuple[str, Optional[str]], ExamResult] = {}
        if student_ids:
            for result in (
                self.db.query(ExamResult)
                .filter(ExamResult.exam_id == exam_id, ExamResult.student_id.in_(student_ids))
                .all()
            ):
                existing[(result.student_id, result.subject_id)] = result

        now = utcnow()
        for row in rows:
            key = (row["student_id"], row.get("subject_id"))
            result = existing.get(key)
            if result is None:
                result = ExamResult(
                    exam_id=exam_id,
                    student_id=row["student_id"],
                    subject_id=row.get("subject_id"),
                )
                self.db.add(result)
                existing[key] = result
            for name in RESULT_FIELDS:
                if name in row:
                    setattr(result, name, row[name])
            result.updated_at = now

        self.db.flush()
        logger.info(f"Upserted {len(rows)} result rows for exam_id={exam_id}")
        return len(rows)

    def update_result(
        self, exam_id: str, student_id: str, subject_id: Optional[str], values: Dict
    ) -> Optional[ExamResult]:
        result = self._find(exam_id, student_id, subject_id)
        if not result:
            return None
        for name in RESULT_FIELDS:
            if name in values:
                setattr(result, name, values[name])
        result.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(result)
        return result

    def list_results_for_exam(self, exam_id: str) -> List[Tuple[ExamResult, Student, Optional[Subject]]]:
        return (
            self.db.query(ExamResult, Student, Subject)
            .join(Student, Student.id == ExamResult.student_id)
            .outerjoin(Subject, Subject.id == ExamResult.subject_id)
            .filter(ExamResult.exam_id == exam_id)
            .order_by(Student.last_name, Student.first_name)
            .all()
        )
