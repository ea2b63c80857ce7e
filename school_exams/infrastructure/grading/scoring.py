import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

AUTO_GRADED_TYPES = ("multiple_choice", "true_false")


@dataclass
class QuestionScore:
    question_id: str
    marks_awarded: int = 0
    is_correct: Optional[bool] = None


@dataclass
class GradedAttempt:
    total_score: int = 0
    scores: List[QuestionScore] = field(default_factory=list)

    def by_question(self) -> Dict[str, QuestionScore]:
        return {s.question_id: s for s in self.scores}


def question_marks(question) -> int:
    return int(question.marks or 1)


def normalize_answer(text: str) -> str:
    return str(text).strip().lower()


def score_question(question, answer_text: Optional[str]) -> QuestionScore:
    score = QuestionScore(question_id=question.id)
    if question.question_type not in AUTO_GRADED_TYPES:
        # short_answer stays at zero until a teacher marks it
        return score
    if answer_text is None or not question.correct_answer:
        return score

    score.is_correct = normalize_answer(answer_text) == normalize_answer(question.correct_answer)
    score.marks_awarded = question_marks(question) if score.is_correct else 0
    return score


def grade_attempt(questions: Iterable, answers_by_question: Dict[str, Optional[str]]) -> GradedAttempt:
    """
    Scores every question independently. A question whose data cannot be
    scored is logged and counted as zero rather than failing the attempt.
    """
    graded = GradedAttempt()
    for question in questions:
        answer_text = answers_by_question.get(question.id)
        try:
            score = score_question(question, answer_text)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Could not grade question {getattr(question, 'id', None)}, scoring zero: {e}")
            score = QuestionScore(question_id=getattr(question, "id", None))
        graded.scores.append(score)
        graded.total_score += score.marks_awarded
    return graded


def percentage_of(score: float, max_score: float) -> float:
    if not max_score:
        return 0.0
    return score / max_score * 100


def round_percentage(percentage: float) -> int:
    # half-up, so 62.5 reports as 63
    return int(math.floor(percentage + 0.5))
