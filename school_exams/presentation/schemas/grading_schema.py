from typing import List

from pydantic import BaseModel


class GradeBandOut(BaseModel):
    grade: str
    label: str
    min: int
    max: int


class GradingScaleOut(BaseModel):
    education_level: str
    label: str
    bands: List[GradeBandOut]
