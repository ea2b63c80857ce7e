from sqlalchemy import Column, String, DateTime
from ..base import Base, generate_uuid, utcnow


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    school_id = Column(String(36), index=True)
    name = Column(String, nullable=False)
    code = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=utcnow)
