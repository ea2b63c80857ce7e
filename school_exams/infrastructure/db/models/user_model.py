from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from ..base import Base, generate_uuid, utcnow


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    school_id = Column(String(36), index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=True)
    role = Column(String(20), nullable=False)  # admin / teacher / student / parent
    created_at = Column(DateTime, default=utcnow)

    student = relationship("Student", back_populates="user", uselist=False)
