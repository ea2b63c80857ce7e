from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class OfflineResultEntry(BaseModel):
    student_id: Optional[str] = None
    subject_id: Optional[str] = None
    marks_obtained: float = Field(default=0, ge=0)
    max_marks: Optional[float] = Field(default=None, ge=0)
    remarks: Optional[str] = None
    is_absent: bool = False


class BulkResultsRequest(BaseModel):
    exam_id: str
    results: List[OfflineResultEntry] = Field(min_length=1)


class BulkResultError(BaseModel):
    student_id: Optional[str] = None
    error: str


class BulkResultsResponse(BaseModel):
    success_count: int
    errors: List[BulkResultError] = []


class ResultUpdateRequest(BaseModel):
    marks_obtained: float = Field(ge=0)
    max_marks: float = Field(default=100, ge=0)
    remarks: Optional[str] = None
    is_absent: bool = False


class OfflineResultOut(BaseModel):
    id: str
    exam_id: str
    student_id: str
    subject_id: Optional[str] = None
    marks_obtained: float
    max_marks: float
    cbc_grade: Optional[str] = None
    remarks: Optional[str] = None
    is_absent: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OfflineResultRow(OfflineResultOut):
    first_name: str
    last_name: str
    admission_number: Optional[str] = None
    subject_name: Optional[str] = None
