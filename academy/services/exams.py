from dataclasses import dataclass

from ..api import ApiError

GRADE_BANDS = ((90, "A+"), (80, "A"), (70, "B"), (60, "C"), (50, "D"))
PASS_PERCENT = 50
UNANSWERED = -1


def clean_questions(raw):
    """Validate authored questions and return them normalised."""
    if not isinstance(raw, list) or not raw:
        raise ApiError("Exam must have at least one question")
    out = []
    errors = {}
    for i, q in enumerate(raw, start=1):
        if not isinstance(q, dict):
            errors[f"question_{i}"] = "Question must be an object"
            continue
        text = str(q.get("question_text") or "").strip()
        options = [str(o).strip() for o in q.get("options") or []]
        correct = q.get("correct_option_index")
        if not text:
            errors[f"question_{i}"] = "Question text is required"
        elif len(options) < 2 or any(not o for o in options):
            errors[f"question_{i}"] = "At least two non-empty options are required"
        elif isinstance(correct, bool) or not isinstance(correct, int) \
                or not 0 <= correct < len(options):
            errors[f"question_{i}"] = "Correct option must point at one of the options"
        else:
            out.append({"question_text": text, "options": options,
                        "correct_option_index": correct})
    if errors:
        raise ApiError("Some questions are invalid", 400, errors)
    return out


def clean_answers(raw, n_questions):
    if raw is None:
        raw = []
    if not isinstance(raw, list):
        raise ApiError("answers must be a list")
    answers = []
    for a in raw[:n_questions]:
        if isinstance(a, bool) or not isinstance(a, int):
            answers.append(UNANSWERED)
        else:
            answers.append(a)
    answers.extend([UNANSWERED] * (n_questions - len(answers)))
    return answers


def letter_grade(percentage):
    for floor, letter in GRADE_BANDS:
        if percentage >= floor:
            return letter
    return "F"


@dataclass
class Score:
    score: int
    total_marks: int
    percentage: float
    grade: str
    is_passed: bool


def score_answers(questions, answers):
    total = len(questions)
    score = sum(1 for q, a in zip(questions, answers) if a == q["correct_option_index"])
    pct = round(score * 100.0 / total, 2) if total else 0.0
    return Score(score, total, pct, letter_grade(pct), pct >= PASS_PERCENT)


def remaining_seconds(duration_minutes, started_at, now):
    elapsed = int((now - started_at).total_seconds())
    return max(0, duration_minutes * 60 - elapsed)


def is_overtime(duration_minutes, started_at, now, grace_seconds):
    return (now - started_at).total_seconds() > duration_minutes * 60 + grace_seconds


def tab_warning(count, threshold):
    return "reported" if count >= threshold else "monitored"
