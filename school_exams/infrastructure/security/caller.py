from dataclasses import dataclass
from typing import Optional

ROLE_ADMIN = "admin"
ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"
ROLE_PARENT = "parent"

STAFF_ROLES = (ROLE_ADMIN, ROLE_TEACHER)


@dataclass(frozen=True)
class CallerIdentity:
    user_id: str
    role: str
    school_id: Optional[str] = None

    @property
    def is_student(self) -> bool:
        return self.role == ROLE_STUDENT
