import logging

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from school_exams.config import get_settings
from school_exams.infrastructure.db.session import SessionLocal
from school_exams.infrastructure.security.caller import (
    CallerIdentity,
    ROLE_ADMIN,
    ROLE_STUDENT,
    STAFF_ROLES,
)
from school_exams.infrastructure.security.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(token: str = Depends(oauth2_scheme)) -> CallerIdentity:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except jwt.InvalidTokenError as e:
        logger.warning(f"Token validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id")
    role = payload.get("role")
    if not user_id or not role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    logger.debug(f"Validated token for user_id: {user_id}")
    return CallerIdentity(
        user_id=str(user_id),
        role=str(role).lower(),
        school_id=payload.get("school_id"),
    )


def student_required(current_user: CallerIdentity = Depends(get_current_user)) -> CallerIdentity:
    if current_user.role != ROLE_STUDENT:
        logger.warning(f"Student-only access denied for user_id: {current_user.user_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Students only")
    return current_user


def staff_required(current_user: CallerIdentity = Depends(get_current_user)) -> CallerIdentity:
    if current_user.role not in STAFF_ROLES:
        logger.warning(f"Access denied for non-staff user_id: {current_user.user_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return current_user


def admin_required(current_user: CallerIdentity = Depends(get_current_user)) -> CallerIdentity:
    if current_user.role != ROLE_ADMIN:
        logger.warning(f"Access denied for non-admin user_id: {current_user.user_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    logger.info(f"Admin access granted for user_id: {current_user.user_id}")
    return current_user


def get_exam_attempt_service(db: Session = Depends(get_db)):
    from school_exams.infrastructure.repositories.exam_attempt_repository import ExamAttemptRepository
    from school_exams.infrastructure.repositories.exam_catalog_repository import ExamCatalogRepository
    from school_exams.infrastructure.repositories.exam_result_repository import ExamResultRepository
    from school_exams.infrastructure.repositories.student_repository import StudentRepository
    from school_exams.infrastructure.services.exam_attempt_service import ExamAttemptService

    return ExamAttemptService(
        db,
        catalog=ExamCatalogRepository(db),
        attempts=ExamAttemptRepository(db),
        results=ExamResultRepository(db),
        students=StudentRepository(db),
        default_education_level=get_settings().default_education_level,
    )
