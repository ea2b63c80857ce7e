from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from school_exams.config import get_settings
from .base import Base  # noqa: F401

settings = get_settings()

connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
