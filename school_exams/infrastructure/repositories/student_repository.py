from typing import Iterable, Optional, Set
import logging
from sqlalchemy.orm import Session
from ..db.models import Student

logger = logging.getLogger(__name__)


class StudentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_user_id(self, user_id: str) -> Optional[Student]:
        student = self.db.query(Student).filter(Student.user_id == user_id).first()
        if not student:
            logger.warning(f"No student record for user_id={user_id}")
        return student

    def existing_ids(self, student_ids: Iterable[str], school_id: Optional[str] = None) -> Set[str]:
        ids = set(student_ids)
        if not ids:
            return set()
        query = self.db.query(Student.id).filter(Student.id.in_(ids))
        if school_id:
            query = query.filter(Student.school_id == school_id)
        rows = query.all()
        return {row[0] for row in rows}
