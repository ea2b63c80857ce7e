from .user_model import UserModel
from .school_class_model import SchoolClass
from .student_model import Student
from .subject_model import Subject
from .exam_model import Exam, ExamQuestion
from .attempt_model import (
    ATTEMPT_IN_PROGRESS,
    ATTEMPT_SUBMITTED,
    ExamAttempt,
    ExamAttemptAnswer,
)
from .exam_result_model import ExamResult

__all__ = [
    "UserModel",
    "SchoolClass",
    "Student",
    "Subject",
    "Exam",
    "ExamQuestion",
    "ATTEMPT_IN_PROGRESS",
    "ATTEMPT_SUBMITTED",
    "ExamAttempt",
    "ExamAttemptAnswer",
    "ExamResult",
]
