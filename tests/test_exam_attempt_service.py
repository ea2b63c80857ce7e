from datetime import timedelta

import pytest

from school_exams.infrastructure.db.models import (
    ExamAttempt,
    ExamAttemptAnswer,
    ExamQuestion,
    ExamResult,
)
from school_exams.infrastructure.security.caller import CallerIdentity
from school_exams.infrastructure.services.errors import (
    AlreadySubmitted,
    AttemptNotFound,
    ExamClosed,
    ExamNotFound,
    ExamNotYetOpen,
    NoActiveAttempt,
    NoSubmittedAttempt,
    NotAStudent,
    UnknownQuestion,
)


def _question_ids(exam):
    return [q.id for q in exam.questions]


# --------------------------------------------------
# Start
# --------------------------------------------------

def test_start_creates_in_progress_attempt_with_max_score(service, make_exam, make_student, caller_for, objective_questions, clock):
    exam = make_exam(objective_questions)
    student = make_student()

    started = service.start_attempt(exam.id, caller_for(student))

    assert started.created is True
    assert started.attempt.status == "in_progress"
    assert started.attempt.max_score == 5
    assert started.attempt.started_at == clock.now
    assert [q.order_index for q in started.questions] == [0, 1]


def test_repeated_start_returns_same_attempt(service, db, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    student = make_student()
    caller = caller_for(student)

    first = service.start_attempt(exam.id, caller)
    second = service.start_attempt(exam.id, caller)
    third = service.start_attempt(exam.id, caller)

    assert second.created is False
    assert first.attempt.id == second.attempt.id == third.attempt.id
    assert db.query(ExamAttempt).filter(ExamAttempt.exam_id == exam.id).count() == 1


def test_start_rejects_non_student_caller(service, make_exam, objective_questions):
    exam = make_exam(objective_questions)
    with pytest.raises(NotAStudent):
        service.start_attempt(exam.id, CallerIdentity(user_id="teacher-1", role="teacher"))


def test_start_rejects_student_role_without_record(service, make_exam, objective_questions):
    exam = make_exam(objective_questions)
    with pytest.raises(NotAStudent):
        service.start_attempt(exam.id, CallerIdentity(user_id="ghost", role="student"))


def test_start_rejects_offline_exam(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions, mode="offline")
    with pytest.raises(ExamNotFound):
        service.start_attempt(exam.id, caller_for(make_student()))


def test_start_rejects_exam_from_another_school(service, make_exam, make_student, objective_questions):
    exam = make_exam(objective_questions)
    student = make_student(school_id="school-2")
    caller = CallerIdentity(user_id=student.user_id, role="student", school_id="school-2")
    with pytest.raises(ExamNotFound):
        service.start_attempt(exam.id, caller)


def test_start_before_window_creates_nothing(service, db, make_exam, make_student, caller_for, objective_questions, clock):
    exam = make_exam(objective_questions, start_date=clock.now + timedelta(days=1))

    with pytest.raises(ExamNotYetOpen):
        service.start_attempt(exam.id, caller_for(make_student()))
    assert db.query(ExamAttempt).count() == 0


def test_start_after_window_is_closed(service, make_exam, make_student, caller_for, objective_questions, clock):
    exam = make_exam(
        objective_questions,
        start_date=clock.now - timedelta(days=2),
        end_date=clock.now - timedelta(hours=1),
    )
    with pytest.raises(ExamClosed):
        service.start_attempt(exam.id, caller_for(make_student()))


def test_start_inside_window(service, make_exam, make_student, caller_for, objective_questions, clock):
    exam = make_exam(
        objective_questions,
        start_date=clock.now - timedelta(minutes=5),
        end_date=clock.now + timedelta(hours=1),
    )
    assert service.start_attempt(exam.id, caller_for(make_student())).created is True


# --------------------------------------------------
# Answers
# --------------------------------------------------

def test_save_answer_overwrites_previous_text(service, db, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    caller = caller_for(make_student())
    started = service.start_attempt(exam.id, caller)
    question_id = _question_ids(exam)[0]

    service.save_answer(exam.id, caller, question_id, "B")
    service.save_answer(exam.id, caller, question_id, "C")
    service.save_answer(exam.id, caller, question_id, "C")

    answers = db.query(ExamAttemptAnswer).filter(ExamAttemptAnswer.attempt_id == started.attempt.id).all()
    assert len(answers) == 1
    assert answers[0].answer_text == "C"
    assert answers[0].is_correct is None


def test_save_answer_without_attempt(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    with pytest.raises(NoActiveAttempt):
        service.save_answer(exam.id, caller_for(make_student()), _question_ids(exam)[0], "A")


def test_save_answer_for_foreign_question(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    other = make_exam(objective_questions, name="Other exam")
    caller = caller_for(make_student())
    service.start_attempt(exam.id, caller)

    with pytest.raises(UnknownQuestion):
        service.save_answer(exam.id, caller, _question_ids(other)[0], "A")


def test_answers_frozen_after_submission(service, db, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    caller = caller_for(make_student())
    service.start_attempt(exam.id, caller)
    first_question = _question_ids(exam)[0]
    service.save_answer(exam.id, caller, first_question, "A")
    service.submit_attempt(exam.id, caller)

    with pytest.raises(NoActiveAttempt):
        service.save_answer(exam.id, caller, first_question, "B")
    db.expire_all()
    assert db.query(ExamAttemptAnswer).one().answer_text == "A"


# --------------------------------------------------
# Submit
# --------------------------------------------------

def test_full_objective_exam(service, db, make_exam, make_student, caller_for, objective_questions, clock):
    exam = make_exam(objective_questions, education_level="university")
    student = make_student()
    caller = caller_for(student)
    service.start_attempt(exam.id, caller)
    first, second = _question_ids(exam)
    service.save_answer(exam.id, caller, first, "a")
    service.save_answer(exam.id, caller, second, "false")
    clock.advance(minutes=12, seconds=30)

    result = service.submit_attempt(exam.id, caller)

    assert result.total_score == 2
    assert result.max_score == 5
    assert result.percentage == 40
    assert result.cbc_grade == "Pass"
    assert [item["is_correct"] for item in result.breakdown] == [True, False]
    assert [item["correct_answer"] for item in result.breakdown] == ["A", "True"]
    assert [item["your_answer"] for item in result.breakdown] == ["a", "false"]

    db.expire_all()
    attempt = db.query(ExamAttempt).one()
    assert attempt.status == "submitted"
    assert attempt.total_score == 2
    assert attempt.cbc_grade == "Pass"
    assert attempt.time_spent_seconds == 750
    assert attempt.submitted_at == clock.now

    stored = {a.question_id: a for a in db.query(ExamAttemptAnswer).all()}
    assert stored[first].is_correct is True and stored[first].marks_awarded == 2
    assert stored[second].is_correct is False and stored[second].marks_awarded == 0

    ledger = db.query(ExamResult).one()
    assert ledger.student_id == student.id
    assert ledger.subject_id is None
    assert (ledger.marks_obtained, ledger.max_marks, ledger.cbc_grade) == (2, 5, "Pass")


def test_short_answer_left_for_manual_grading(service, db, make_exam, make_student, caller_for):
    exam = make_exam(
        [{"question_type": "short_answer", "question_text": "Explain erosion.", "marks": 5}],
        education_level="junior_secondary",
    )
    caller = caller_for(make_student())
    service.start_attempt(exam.id, caller)
    service.save_answer(exam.id, caller, _question_ids(exam)[0], "my answer")

    result = service.submit_attempt(exam.id, caller)

    assert (result.total_score, result.max_score, result.percentage) == (0, 5, 0)
    assert result.cbc_grade == "E"
    db.expire_all()
    answer = db.query(ExamAttemptAnswer).one()
    assert answer.marks_awarded == 0
    assert answer.is_correct is None


def test_class_without_education_level_uses_primary_bands(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions, education_level=None)
    caller = caller_for(make_student())
    service.start_attempt(exam.id, caller)
    first, second = _question_ids(exam)
    service.save_answer(exam.id, caller, first, "A")
    service.save_answer(exam.id, caller, second, "True")

    assert service.submit_attempt(exam.id, caller).cbc_grade == "EE"


def test_unanswered_exam_scores_zero(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions, education_level="senior_secondary")
    caller = caller_for(make_student())
    service.start_attempt(exam.id, caller)

    result = service.submit_attempt(exam.id, caller)

    assert result.total_score == 0
    assert result.cbc_grade == "E"
    assert all(item["your_answer"] is None for item in result.breakdown)


def test_exam_without_questions_grades_zero_percent(service, make_exam, make_student, caller_for):
    exam = make_exam([], education_level="upper_primary")
    caller = caller_for(make_student())
    service.start_attempt(exam.id, caller)

    result = service.submit_attempt(exam.id, caller)

    assert (result.total_score, result.max_score, result.percentage, result.cbc_grade) == (0, 0, 0, "BE")


def test_max_score_snapshot_survives_mark_changes(service, db, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    caller = caller_for(make_student())
    service.start_attempt(exam.id, caller)

    question = db.query(ExamQuestion).filter(ExamQuestion.exam_id == exam.id, ExamQuestion.order_index == 1).one()
    question.marks = 10
    db.commit()

    result = service.submit_attempt(exam.id, caller)
    assert result.max_score == 5
    db.expire_all()
    assert db.query(ExamAttempt).one().max_score == 5


def test_second_submit_fails_and_keeps_score(service, db, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    caller = caller_for(make_student())
    service.start_attempt(exam.id, caller)
    first, _ = _question_ids(exam)
    service.save_answer(exam.id, caller, first, "A")
    service.submit_attempt(exam.id, caller)

    with pytest.raises(AlreadySubmitted):
        service.submit_attempt(exam.id, caller)

    db.expire_all()
    attempt = db.query(ExamAttempt).one()
    assert attempt.total_score == 2
    assert db.query(ExamResult).count() == 1


def test_submit_losing_status_race_leaves_winner_untouched(
    service, db, session_factory, monkeypatch, make_exam, make_student, caller_for, objective_questions
):
    exam = make_exam(objective_questions)
    student = make_student()
    caller = caller_for(student)
    service.start_attempt(exam.id, caller)
    first, _ = _question_ids(exam)
    service.save_answer(exam.id, caller, first, "A")

    stale = db.query(ExamAttempt).one()
    assert stale.status == "in_progress"

    # another request submits first
    other = session_factory()
    try:
        other.query(ExamAttempt).filter(ExamAttempt.id == stale.id).update(
            {"status": "submitted", "total_score": 4, "cbc_grade": "Upper Second"},
            synchronize_session=False,
        )
        other.commit()
    finally:
        other.close()

    monkeypatch.setattr(service._attempts, "get_attempt", lambda exam_id, student_id: stale)

    with pytest.raises(AlreadySubmitted):
        service.submit_attempt(exam.id, caller)

    db.expire_all()
    attempt = db.query(ExamAttempt).one()
    assert (attempt.status, attempt.total_score, attempt.cbc_grade) == ("submitted", 4, "Upper Second")
    answer = db.query(ExamAttemptAnswer).one()
    assert answer.marks_awarded == 0
    assert answer.is_correct is None
    assert db.query(ExamResult).filter(ExamResult.student_id == student.id).count() == 0

def test_submit_without_attempt(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    with pytest.raises(NoActiveAttempt):
        service.submit_attempt(exam.id, caller_for(make_student()))


def test_submit_updates_existing_ledger_row(service, db, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    student = make_student()
    db.add(ExamResult(exam_id=exam.id, student_id=student.id, marks_obtained=1, max_marks=5, cbc_grade="Fail"))
    db.commit()
    caller = caller_for(student)
    service.start_attempt(exam.id, caller)
    first, second = _question_ids(exam)
    service.save_answer(exam.id, caller, first, "A")
    service.save_answer(exam.id, caller, second, "TRUE")

    service.submit_attempt(exam.id, caller)

    db.expire_all()
    ledger = db.query(ExamResult).one()
    assert (ledger.marks_obtained, ledger.cbc_grade) == (5, "First Class")


# --------------------------------------------------
# Recovery and results
# --------------------------------------------------

def test_recovery_returns_attempt_and_answers(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    caller = caller_for(make_student())
    started = service.start_attempt(exam.id, caller)
    service.save_answer(exam.id, caller, _question_ids(exam)[1], "True")

    recovered = service.get_attempt(exam.id, caller)

    assert recovered.attempt.id == started.attempt.id
    assert [a.answer_text for a in recovered.answers] == ["True"]


def test_recovery_without_attempt(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    with pytest.raises(AttemptNotFound):
        service.get_attempt(exam.id, caller_for(make_student()))


def test_my_result_requires_submission(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    caller = caller_for(make_student())
    with pytest.raises(NoSubmittedAttempt):
        service.get_my_result(exam.id, caller)

    service.start_attempt(exam.id, caller)
    with pytest.raises(NoSubmittedAttempt):
        service.get_my_result(exam.id, caller)


def test_my_result_includes_correct_answers(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    caller = caller_for(make_student())
    service.start_attempt(exam.id, caller)
    first, _ = _question_ids(exam)
    service.save_answer(exam.id, caller, first, "B")
    service.submit_attempt(exam.id, caller)

    result = service.get_my_result(exam.id, caller)

    assert result.attempt.status == "submitted"
    assert [item["correct_answer"] for item in result.answers] == ["A", "True"]
    assert result.answers[0]["your_answer"] == "B"
    assert result.answers[0]["is_correct"] is False
    assert result.answers[1]["your_answer"] is None


def test_results_ordered_by_score(service, make_exam, make_student, caller_for, objective_questions):
    exam = make_exam(objective_questions)
    first, second = _question_ids(exam)

    low = caller_for(make_student("Brian", "Kamau"))
    high = caller_for(make_student("Cynthia", "Wanjiru"))
    pending = caller_for(make_student("David", "Mwangi"))
    for caller, answers in ((low, {first: "B"}), (high, {first: "A", second: "True"})):
        service.start_attempt(exam.id, caller)
        for qid, text in answers.items():
            service.save_answer(exam.id, caller, qid, text)
        service.submit_attempt(exam.id, caller)
    service.start_attempt(exam.id, pending)

    rows = service.get_results(exam.id, CallerIdentity(user_id="t1", role="teacher", school_id="school-1"))

    assert [student.last_name for _, student in rows] == ["Wanjiru", "Kamau", "Mwangi"]
    assert [attempt.total_score for attempt, _ in rows] == [5, 0, None]


def test_results_scoped_to_callers_school(service, make_exam, objective_questions):
    exam = make_exam(objective_questions)
    with pytest.raises(ExamNotFound):
        service.get_results(exam.id, CallerIdentity(user_id="t2", role="teacher", school_id="school-2"))
