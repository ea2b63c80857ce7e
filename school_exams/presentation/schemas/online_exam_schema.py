from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

QuestionType = Literal["multiple_choice", "true_false", "short_answer"]


# ------------------ Catalog ------------------

class ExamQuestionCreate(BaseModel):
    question_type: QuestionType
    question_text: str = Field(min_length=1)
    options: Optional[List[str]] = None
    correct_answer: Optional[str] = None
    marks: int = Field(default=1, ge=1)
    order_index: Optional[int] = None


class OnlineExamCreate(BaseModel):
    name: str = Field(min_length=1)
    class_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    instructions: Optional[str] = None
    questions: List[ExamQuestionCreate]


class ExamOut(BaseModel):
    id: str
    name: str
    mode: str
    class_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    instructions: Optional[str] = None
    is_results_published: bool = False

    class Config:
        from_attributes = True


class QuestionOut(BaseModel):
    """Question as shown to a student: never carries the correct answer."""

    id: str
    order_index: int
    question_type: str
    question_text: str
    options: Optional[List[str]] = None
    marks: int

    class Config:
        from_attributes = True


class QuestionAdminOut(QuestionOut):
    correct_answer: Optional[str] = None


class OnlineExamOut(ExamOut):
    questions: List[QuestionAdminOut] = []


# ------------------ Attempts ------------------

class AttemptOut(BaseModel):
    id: str
    exam_id: str
    student_id: str
    status: str
    started_at: datetime
    submitted_at: Optional[datetime] = None
    total_score: Optional[int] = None
    max_score: int
    cbc_grade: Optional[str] = None
    time_spent_seconds: Optional[int] = None

    class Config:
        from_attributes = True


class AnswerOut(BaseModel):
    id: str
    question_id: str
    answer_text: Optional[str] = None
    is_correct: Optional[bool] = None
    marks_awarded: int = 0

    class Config:
        from_attributes = True


class StartAttemptResponse(BaseModel):
    message: str
    attempt: AttemptOut
    exam: ExamOut
    questions: List[QuestionOut]


class AttemptRecoveryResponse(BaseModel):
    attempt: AttemptOut
    answers: List[AnswerOut]


class SaveAnswerRequest(BaseModel):
    question_id: str
    answer_text: Optional[str] = None


class BreakdownItem(BaseModel):
    question_id: str
    question_text: str
    question_type: str
    options: Optional[List[str]] = None
    marks: int
    marks_awarded: int
    is_correct: Optional[bool] = None
    your_answer: Optional[str] = None
    correct_answer: Optional[str] = None


class SubmitAttemptResponse(BaseModel):
    total_score: int
    max_score: int
    percentage: int
    cbc_grade: str
    breakdown: List[BreakdownItem]


class AttemptResultRow(AttemptOut):
    first_name: str
    last_name: str
    admission_number: Optional[str] = None


class MyResultResponse(BaseModel):
    attempt: AttemptOut
    answers: List[BreakdownItem]
