from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from ..base import Base, generate_uuid, utcnow


class Student(Base):
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    school_id = Column(String(36), index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), unique=True, nullable=True)
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    admission_number = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("UserModel", back_populates="student")
    school_class = relationship("SchoolClass", back_populates="students")
    attempts = relationship("ExamAttempt", back_populates="student")
