import logging

from flask import request, current_app
from flask_login import login_required, current_user

from ...api import ApiError, ok, get_json, get_or_404, commit, to_number, next_serial
from ...extensions import db
from ...models import Exam, ExamAttempt, SchoolClass
from ...services.exams import (clean_questions, clean_answers, score_answers,
                               remaining_seconds, is_overtime, tab_warning)
from ...utils import utcnow, parse_datetime, iso
from ..auth.routes import role_required
from . import bp

log = logging.getLogger(__name__)

AUTHORS = ("owner", "partner", "staff", "teacher")

def _next_exam_code():
    return next_serial(Exam.exam_code, "EXM-")

def _threshold():
    return current_app.config["TAB_SWITCH_REPORT_THRESHOLD"]

def _current_student():
    student = current_user.student
    if student is None:
        raise ApiError("No student record is linked to this account", 403)
    return student

def _student_exam(exam_id):
    exam = get_or_404(Exam, exam_id, "Exam")
    student = _current_student()
    if exam.class_id != student.class_id:
        raise ApiError("This exam is not for your class", 403)
    return exam, student

def _editable_exam(exam_id):
    exam = get_or_404(Exam, exam_id, "Exam")
    if current_user.role == "teacher" and exam.created_by_id != current_user.id:
        raise ApiError("You can only change exams you created", 403)
    return exam

def _overtime(exam, attempt, now):
    return is_overtime(exam.duration_minutes, attempt.started_at, now,
                       current_app.config["EXAM_GRACE_SECONDS"])

def _attempt(exam, student):
    return ExamAttempt.query.filter_by(exam_id=exam.id, student_id=student.id).one_or_none()

def _apply_fields(exam, data):
    if "title" in data:
        exam.title = str(data["title"] or "").strip()
    if "subject" in data:
        exam.subject = str(data["subject"] or "").strip()
    if not exam.title or not exam.subject:
        raise ApiError("Title and subject are required")
    if "class_id" in data:
        if not data["class_id"] or db.session.get(SchoolClass, data["class_id"]) is None:
            raise ApiError("Select a valid class")
        exam.class_id = data["class_id"]
    if "duration_minutes" in data:
        duration = to_number(data["duration_minutes"], "duration_minutes")
        if duration <= 0 or duration != int(duration):
            raise ApiError("Duration must be a whole number of minutes greater than 0")
        exam.duration_minutes = int(duration)
    try:
        if "start_time" in data:
            exam.start_time = parse_datetime(data["start_time"])
        if "end_time" in data:
            exam.end_time = parse_datetime(data["end_time"])
    except ValueError:
        raise ApiError("Exam window times must be ISO date-times")
    if exam.start_time and exam.end_time and not exam.start_time < exam.end_time:
        raise ApiError("Exam must end after it starts")
    for key in ("show_result", "instructions", "status"):
        if key in data:
            setattr(exam, key, bool(data[key]) if key == "show_result" else data[key])
    if "questions" in data:
        exam.questions = clean_questions(data["questions"])

def _finalize(exam, attempt, answers, auto, now):
    result = score_answers(exam.questions, answers)
    attempt.answers = answers
    attempt.score = result.score
    attempt.total_marks = result.total_marks
    attempt.percentage = result.percentage
    attempt.grade = result.grade
    attempt.is_passed = result.is_passed
    attempt.submitted_at = now
    attempt.status = "submitted"
    attempt.is_auto_submitted = bool(auto) or _overtime(exam, attempt, now)
    attempt.is_flagged = attempt.tab_switch_count >= _threshold()
    elapsed = int((now - attempt.started_at).total_seconds())
    attempt.time_taken_seconds = min(max(elapsed, 0), exam.duration_minutes * 60)

def _student_view(exam, attempt):
    d = exam.to_dict(with_answers=False)
    d.pop("questions")
    d["question_count"] = exam.total_marks
    d["attempt_status"] = attempt.status if attempt else "not_started"
    if attempt and attempt.status == "submitted" and exam.show_result:
        d["result"] = attempt.result_dict()
    return d

# ---------- Authoring ----------
@bp.get("")
@login_required
@role_required(*AUTHORS)
def list_exams():
    query = Exam.query
    class_id = request.args.get("class_id", type=int)
    if class_id:
        query = query.filter(Exam.class_id == class_id)
    subject = request.args.get("subject")
    if subject:
        query = query.filter(Exam.subject == subject)
    if current_user.role == "teacher":
        query = query.filter(Exam.created_by_id == current_user.id)
    items = query.order_by(Exam.created_at.desc(), Exam.id.desc()).all()
    out = []
    for e in items:
        d = e.to_dict(with_answers=False)
        d.pop("questions")
        d["question_count"] = e.total_marks
        d["attempt_count"] = len(e.attempts)
        out.append(d)
    return ok(out, count=len(out))

@bp.post("")
@login_required
@role_required(*AUTHORS)
def create_exam():
    data = get_json()
    missing = [k for k in ("title", "subject", "class_id", "questions") if not data.get(k)]
    if missing:
        raise ApiError("Title, subject, class and questions are required",
                       errors={k: "required" for k in missing})
    exam = Exam(exam_code=_next_exam_code(), created_by_id=current_user.id,
                duration_minutes=30, title="", subject="")
    _apply_fields(exam, data)
    db.session.add(exam)
    commit("Exam code already taken, please retry")
    log.info("exam %s created with %d questions", exam.exam_code, exam.total_marks)
    return ok(exam.to_dict(), "Exam created", 201)

@bp.get("/<int:exam_id>")
@login_required
@role_required(*AUTHORS)
def get_exam(exam_id):
    return ok(get_or_404(Exam, exam_id, "Exam").to_dict())

@bp.put("/<int:exam_id>")
@login_required
@role_required(*AUTHORS)
def update_exam(exam_id):
    exam = _editable_exam(exam_id)
    data = get_json()
    if "questions" in data and exam.attempts:
        raise ApiError("Questions cannot change once students have attempted the exam", 409)
    _apply_fields(exam, data)
    db.session.commit()
    return ok(exam.to_dict(), "Exam updated")

@bp.delete("/<int:exam_id>")
@login_required
@role_required(*AUTHORS)
def delete_exam(exam_id):
    exam = _editable_exam(exam_id)
    db.session.delete(exam)
    db.session.commit()
    log.info("exam %s deleted", exam.exam_code)
    return ok(message="Exam deleted")

@bp.get("/<int:exam_id>/results")
@login_required
@role_required(*AUTHORS)
def results(exam_id):
    exam = get_or_404(Exam, exam_id, "Exam")
    attempts = [a for a in exam.attempts if a.status == "submitted"]
    attempts.sort(key=lambda a: (-(a.score or 0), a.time_taken_seconds or 0))
    rows = []
    for rank, a in enumerate(attempts, start=1):
        d = a.to_dict()
        d["rank"] = rank
        d["student_no"] = a.student.student_no if a.student else None
        rows.append(d)
    passed = sum(1 for a in attempts if a.is_passed)
    return ok({
        "exam": {"id": exam.id, "title": exam.title, "total_marks": exam.total_marks},
        "results": rows,
        "summary": {
            "submitted": len(attempts),
            "passed": passed,
            "average_percentage": round(sum(a.percentage or 0 for a in attempts) / len(attempts), 2)
            if attempts else 0,
            "flagged": sum(1 for a in attempts if a.is_flagged),
        },
    })

# ---------- Taking ----------
@bp.get("/class/<int:class_id>")
@login_required
@role_required("student")
def class_exams(class_id):
    student = _current_student()
    if student.class_id != class_id:
        raise ApiError("You can only view exams of your own class", 403)
    exams = (Exam.query.filter_by(class_id=class_id, status="published")
             .order_by(Exam.created_at.desc()).all())
    attempts = {a.exam_id: a for a in student.exam_attempts}
    return ok([_student_view(e, attempts.get(e.id)) for e in exams], count=len(exams))

@bp.get("/<int:exam_id>/take")
@login_required
@role_required("student")
def take(exam_id):
    exam, student = _student_exam(exam_id)
    attempt = _attempt(exam, student)
    now = utcnow()
    if attempt is not None and attempt.status == "submitted":
        raise ApiError("You have already submitted this exam")

    if attempt is None:
        if exam.status != "published":
            raise ApiError("This exam is not open", 403)
        if exam.start_time and now < exam.start_time:
            raise ApiError("This exam has not started yet", 403)
        if exam.end_time and now > exam.end_time:
            raise ApiError("This exam has ended", 403)
        attempt = ExamAttempt(exam=exam, student=student, started_at=now,
                              answers=clean_answers(None, exam.total_marks))
        db.session.add(attempt)
        commit("Attempt already started")
        log.info("student %s started exam %s", student.student_no, exam.exam_code)
    elif _overtime(exam, attempt, now):
        _finalize(exam, attempt, attempt.answers, True, now)
        db.session.commit()
        log.info("exam %s auto-submitted for %s on resume", exam.exam_code, student.student_no)
        raise ApiError("Time is up, your saved answers were submitted")

    return ok({
        "exam": exam.to_dict(with_answers=False),
        "attempt": {"id": attempt.id, "started_at": iso(attempt.started_at),
                    "answers": attempt.answers, "tab_switch_count": attempt.tab_switch_count},
        "remaining_seconds": remaining_seconds(exam.duration_minutes, attempt.started_at, now),
    })

def _open_attempt(exam_id):
    exam, student = _student_exam(exam_id)
    attempt = _attempt(exam, student)
    if attempt is None:
        raise ApiError("Start the exam first", 404)
    if attempt.status == "submitted":
        raise ApiError("You have already submitted this exam")
    return exam, attempt

@bp.put("/<int:exam_id>/progress")
@login_required
@role_required("student")
def save_progress(exam_id):
    exam, attempt = _open_attempt(exam_id)
    data = get_json()
    now = utcnow()
    if _overtime(exam, attempt, now):
        _finalize(exam, attempt, attempt.answers, True, now)
        db.session.commit()
        log.info("exam %s auto-submitted for %s on late save", exam.exam_code,
                 attempt.student.student_no)
        raise ApiError("Time is up, your saved answers were submitted")
    attempt.answers = clean_answers(data.get("answers"), exam.total_marks)
    if "tab_switch_count" in data:
        count = int(to_number(data["tab_switch_count"], "tab_switch_count", minimum=0))
        # the client counter can lag behind the server, never move it backwards
        attempt.tab_switch_count = max(attempt.tab_switch_count, count)
    db.session.commit()
    return ok({"saved_at": iso(now), "tab_switch_count": attempt.tab_switch_count,
               "remaining_seconds": remaining_seconds(exam.duration_minutes,
                                                      attempt.started_at, now)},
              "Progress saved")

@bp.post("/<int:exam_id>/tab-switch")
@login_required
@role_required("student")
def tab_switch(exam_id):
    exam, attempt = _open_attempt(exam_id)
    attempt.tab_switch_count += 1
    warning = tab_warning(attempt.tab_switch_count, _threshold())
    if warning == "reported":
        attempt.is_flagged = True
        log.warning("student %s switched tabs %d times in exam %s",
                    attempt.student.student_no, attempt.tab_switch_count, exam.exam_code)
    db.session.commit()
    return ok({"tab_switch_count": attempt.tab_switch_count, "warning": warning,
               "threshold": _threshold()})

@bp.post("/<int:exam_id>/submit")
@login_required
@role_required("student")
def submit(exam_id):
    exam, attempt = _open_attempt(exam_id)
    data = get_json()
    now = utcnow()
    if _overtime(exam, attempt, now):
        # answers posted after the deadline are ignored
        _finalize(exam, attempt, attempt.answers, True, now)
    else:
        answers = clean_answers(data.get("answers", attempt.answers), exam.total_marks)
        _finalize(exam, attempt, answers, data.get("is_auto_submitted"), now)
    db.session.commit()
    log.info("exam %s submitted by %s: %s/%s%s", exam.exam_code, attempt.student.student_no,
             attempt.score, attempt.total_marks, " (flagged)" if attempt.is_flagged else "")
    body = {"status": attempt.status, "is_auto_submitted": attempt.is_auto_submitted,
            "is_flagged": attempt.is_flagged, "time_taken_seconds": attempt.time_taken_seconds}
    if exam.show_result:
        body["result"] = attempt.result_dict()
        return ok(body, "Exam submitted")
    return ok(body, "Exam submitted, results will be announced")

@bp.get("/student/my-results")
@login_required
@role_required("student")
def my_results():
    student = _current_student()
    rows = []
    for a in sorted(student.exam_attempts, key=lambda a: a.submitted_at or a.started_at,
                    reverse=True):
        if a.status != "submitted":
            continue
        d = {"exam_id": a.exam_id, "exam_title": a.exam.title, "subject": a.exam.subject,
             "submitted_at": iso(a.submitted_at), "show_result": a.exam.show_result}
        if a.exam.show_result:
            d.update(a.result_dict())
        rows.append(d)
    return ok(rows, count=len(rows))
