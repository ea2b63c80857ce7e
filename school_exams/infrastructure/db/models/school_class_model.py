from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from ..base import Base, generate_uuid, utcnow


class SchoolClass(Base):
    __tablename__ = "classes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    school_id = Column(String(36), index=True)
    name = Column(String, nullable=False)
    section = Column(String, nullable=True)
    # playgroup, pre_primary, lower_primary, upper_primary,
    # junior_secondary, senior_secondary, university
    education_level = Column(String(30), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    students = relationship("Student", back_populates="school_class")
    exams = relationship("Exam", back_populates="school_class")
