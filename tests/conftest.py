import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-school-exams-0123456789"

import uuid
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from school_exams.infrastructure.db.base import Base
from school_exams.infrastructure.db.models import (
    Exam,
    ExamQuestion,
    SchoolClass,
    Student,
    Subject,
    UserModel,
)
from school_exams.infrastructure.repositories.exam_attempt_repository import ExamAttemptRepository
from school_exams.infrastructure.repositories.exam_catalog_repository import ExamCatalogRepository
from school_exams.infrastructure.repositories.exam_result_repository import ExamResultRepository
from school_exams.infrastructure.repositories.student_repository import StudentRepository
from school_exams.infrastructure.security.caller import CallerIdentity
from school_exams.infrastructure.security.jwt_service import create_access_token
from school_exams.infrastructure.services.exam_attempt_service import ExamAttemptService

SCHOOL_ID = "school-1"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, 0))


@pytest.fixture
def service(db, clock):
    return ExamAttemptService(
        db,
        catalog=ExamCatalogRepository(db),
        attempts=ExamAttemptRepository(db),
        results=ExamResultRepository(db),
        students=StudentRepository(db),
        default_education_level="lower_primary",
        clock=clock,
    )


@pytest.fixture
def make_user(db):
    def _make(role: str, name: str = "Staff Member", school_id: str = SCHOOL_ID) -> UserModel:
        user = UserModel(
            school_id=school_id,
            name=name,
            email=f"{uuid.uuid4().hex}@school.test",
            role=role,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_student(db, make_user):
    def _make(
        first_name: str = "Amina",
        last_name: str = "Otieno",
        admission_number: str = None,
        school_id: str = SCHOOL_ID,
    ) -> Student:
        user = make_user("student", name=f"{first_name} {last_name}", school_id=school_id)
        student = Student(
            school_id=school_id,
            user_id=user.id,
            first_name=first_name,
            last_name=last_name,
            admission_number=admission_number or f"ADM-{uuid.uuid4().hex[:6]}",
        )
        db.add(student)
        db.commit()
        return student

    return _make


@pytest.fixture
def make_exam(db):
    def _make(
        questions=(),
        education_level="university",
        start_date=None,
        end_date=None,
        mode="online",
        name="Term 1 Science",
    ) -> Exam:
        school_class = None
        if education_level:
            school_class = SchoolClass(school_id=SCHOOL_ID, name="Class A", education_level=education_level)
            db.add(school_class)
            db.flush()

        exam = Exam(
            school_id=SCHOOL_ID,
            name=name,
            mode=mode,
            class_id=school_class.id if school_class else None,
            start_date=start_date,
            end_date=end_date,
            duration_minutes=30,
        )
        db.add(exam)
        db.flush()
        for index, q in enumerate(questions):
            db.add(ExamQuestion(exam_id=exam.id, order_index=index, **q))
        db.commit()
        db.refresh(exam)
        return exam

    return _make


@pytest.fixture
def make_subject(db):
    def _make(name: str = "Mathematics") -> Subject:
        subject = Subject(school_id=SCHOOL_ID, name=name)
        db.add(subject)
        db.commit()
        return subject

    return _make


@pytest.fixture
def objective_questions():
    return [
        {
            "question_type": "multiple_choice",
            "question_text": "Which letter comes first?",
            "options": ["A", "B", "C"],
            "correct_answer": "A",
            "marks": 2,
        },
        {
            "question_type": "true_false",
            "question_text": "Water boils at 100C at sea level.",
            "options": ["True", "False"],
            "correct_answer": "True",
            "marks": 3,
        },
    ]


@pytest.fixture
def caller_for():
    def _caller(student: Student) -> CallerIdentity:
        return CallerIdentity(user_id=student.user_id, role="student", school_id=SCHOOL_ID)

    return _caller


@pytest.fixture
def auth_headers():
    def _headers(user_id: str, role: str, school_id: str = SCHOOL_ID) -> dict:
        token = create_access_token({"user_id": user_id, "role": role, "school_id": school_id})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client(session_factory):
    from main import app
    from school_exams.presentation.dependencies import get_db

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
