from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship
from ..base import Base, generate_uuid, utcnow


class Exam(Base):
    __tablename__ = "exams"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    school_id = Column(String(36), index=True)
    name = Column(String, nullable=False)
    mode = Column(String(10), nullable=False, default="offline")  # offline / online
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    instructions = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_results_published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    school_class = relationship("SchoolClass", back_populates="exams")
    questions = relationship(
        "ExamQuestion",
        back_populates="exam",
        order_by="ExamQuestion.order_index",
        cascade="all, delete-orphan",
    )


class ExamQuestion(Base):
    __tablename__ = "exam_questions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    exam_id = Column(String(36), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    order_index = Column(Integer, nullable=False, default=0)
    question_type = Column(String(20), nullable=False)  # multiple_choice / true_false / short_answer
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=True)
    # Null for short_answer questions, which are graded by hand
    correct_answer = Column(Text, nullable=True)
    marks = Column(Integer, nullable=False, default=1)

    exam = relationship("Exam", back_populates="questions")
