from typing import List, Optional
import logging
from sqlalchemy.orm import Session, joinedload
from ..db.models import Exam, ExamQuestion

logger = logging.getLogger(__name__)


class ExamCatalogRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_exam(self, exam_id: str, school_id: Optional[str] = None) -> Optional[Exam]:
        query = (
            self.db.query(Exam)
            .options(joinedload(Exam.school_class))
            .filter(Exam.id == exam_id)
        )
        if school_id:
            query = query.filter(Exam.school_id == school_id)
        return query.first()

    def get_online_exam(self, exam_id: str, school_id: Optional[str] = None) -> Optional[Exam]:
        query = (
            self.db.query(Exam)
            .options(joinedload(Exam.school_class))
            .filter(Exam.id == exam_id, Exam.mode == "online")
        )
        if school_id:
            query = query.filter(Exam.school_id == school_id)
        exam = query.first()
        if not exam:
            logger.warning(f"Online exam not found: exam_id={exam_id}")
        return exam

    def get_education_level(self, exam: Exam) -> Optional[str]:
        if exam.school_class is None:
            return None
        return exam.school_class.education_level

    def load_questions_for_exam(self, exam_id: str) -> List[ExamQuestion]:
        questions = (
            self.db.query(ExamQuestion)
            .filter(ExamQuestion.exam_id == exam_id)
            .order_by(ExamQuestion.order_index)
            .all()
        )
        logger.debug(f"Loaded {len(questions)} questions for exam_id={exam_id}")
        return questions

    def question_belongs_to_exam(self, exam_id: str, question_id: str) -> bool:
        return (
            self.db.query(ExamQuestion.id)
            .filter(ExamQuestion.exam_id == exam_id, ExamQuestion.id == question_id)
            .first()
            is not None
        )

    def create_exam(self, exam: Exam, questions: List[ExamQuestion]) -> Exam:
        try:
            self.db.add(exam)
            self.db.flush()  # get exam.id
            for question in questions:
                question.exam_id = exam.id
                self.db.add(question)
            self.db.commit()
            self.db.refresh(exam)
            logger.info(f"Created exam {exam.id} with {len(questions)} questions")
            return exam
        except Exception as e:
            logger.error(f"Error creating exam '{exam.name}': {e}", exc_info=True)
            self.db.rollback()
            raise

    def publish_results(self, exam_id: str, school_id: Optional[str] = None) -> bool:
        exam = self.get_exam(exam_id, school_id)
        if not exam:
            return False
        exam.is_results_published = True
        self.db.commit()
        logger.info(f"Published results for exam_id={exam_id}")
        return True
