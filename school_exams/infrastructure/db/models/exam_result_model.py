from sqlalchemy import Column, String, Text, DateTime, Boolean, Float, ForeignKey
from sqlalchemy.orm import relationship
from ..base import Base, generate_uuid, utcnow


class ExamResult(Base):
    """Aggregate score per exam, student and (optionally) subject."""

    __tablename__ = "exam_results"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    exam_id = Column(String(36), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(String(36), ForeignKey("subjects.id"), nullable=True)
    marks_obtained = Column(Float, nullable=False, default=0)
    max_marks = Column(Float, nullable=False, default=100)
    cbc_grade = Column(String(20), nullable=True)
    remarks = Column(Text, nullable=True)
    is_absent = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    student = relationship("Student")
    subject = relationship("Subject")
