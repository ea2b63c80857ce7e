class ExamAttemptError(ValueError):
    """Base for engine and result errors; routers map `status_code` onto the HTTP response."""

    status_code = 400
    kind = "ExamAttemptError"
    default_message = "Invalid exam request"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)


class NotAStudent(ExamAttemptError):
    status_code = 403
    kind = "NotAStudent"
    default_message = "Student record not found"


class ExamNotFound(ExamAttemptError):
    status_code = 404
    kind = "ExamNotFound"
    default_message = "Online exam not found"


class ExamNotYetOpen(ExamAttemptError):
    status_code = 403
    kind = "ExamNotYetOpen"
    default_message = "Exam has not started yet"


class ExamClosed(ExamAttemptError):
    status_code = 403
    kind = "ExamClosed"
    default_message = "Exam has ended"


class NoActiveAttempt(ExamAttemptError):
    status_code = 404
    kind = "NoActiveAttempt"
    default_message = "No active attempt found"


class AlreadySubmitted(ExamAttemptError):
    status_code = 409
    kind = "AlreadySubmitted"
    default_message = "Exam has already been submitted"


class AttemptNotFound(ExamAttemptError):
    status_code = 404
    kind = "AttemptNotFound"
    default_message = "No attempt found"


class NoSubmittedAttempt(ExamAttemptError):
    status_code = 404
    kind = "NoSubmittedAttempt"
    default_message = "No submitted attempt found"


class UnknownQuestion(ExamAttemptError):
    status_code = 400
    kind = "UnknownQuestion"
    default_message = "Question does not belong to this exam"


class ResultNotFound(ExamAttemptError):
    status_code = 404
    kind = "ResultNotFound"
    default_message = "Result not found"
