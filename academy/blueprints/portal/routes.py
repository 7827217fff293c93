import logging

from flask import request
from flask_login import login_required, logout_user, current_user

from ...api import ApiError, ok, get_json, get_or_404
from ...models import Lecture, TimetableEntry
from ...utils import WEEKDAYS
from ..auth.routes import role_required, authenticate
from ..lectures.routes import student_lectures, count_view
from . import bp

log = logging.getLogger(__name__)

def _student():
    student = current_user.student
    if student is None:
        raise ApiError("Student not found", 401)
    return student

def _profile(student):
    d = student.to_dict()
    d["class"] = student.school_class.to_dict() if student.school_class else None
    d["session"] = student.session.to_dict() if student.session else None
    d["fee_summary"] = {"total_fee": student.total_fee, "paid_amount": student.paid_amount,
                        "balance": student.balance, "fee_status": student.fee_status}
    return d

@bp.post("/login")
def login():
    u = authenticate(get_json(), roles=("student",))
    student = u.student
    if student is None or student.status != "active":
        logout_user()
        raise ApiError("Your admission is not active, contact the office", 403)
    return ok({"user": u.to_dict(), "student": _profile(student)}, "Welcome back")

@bp.post("/logout")
@login_required
@role_required("student")
def logout():
    logout_user()
    return ok(message="Logged out")

@bp.get("/me")
@login_required
@role_required("student")
def me():
    return ok(_profile(_student()))

@bp.get("/videos")
@login_required
@role_required("student")
def videos():
    items = student_lectures(_student(), request.args.get("subject"))
    return ok([lec.to_dict(hide_locked=True) for lec in items], count=len(items))

@bp.post("/videos/<int:lid>/view")
@login_required
@role_required("student")
def view_video(lid):
    lecture = get_or_404(Lecture, lid, "Video")
    if lecture.class_id != _student().class_id:
        raise ApiError("This video is not for your class", 403)
    return ok(count_view(lecture))

@bp.get("/schedule")
@login_required
@role_required("student")
def schedule():
    student = _student()
    entries = (TimetableEntry.query
               .filter_by(class_id=student.class_id, status="active")
               .order_by(TimetableEntry.start_time).all())
    by_day = {day: [] for day in WEEKDAYS}
    for e in entries:
        by_day.setdefault(e.day, []).append(e.to_dict())
    return ok(by_day, count=len(entries))
