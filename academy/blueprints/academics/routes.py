import logging

from flask import request
from flask_login import login_required

from ...api import ApiError, ok, get_json, get_or_404, commit
from ...extensions import db
from ...models import AcademicSession, SchoolClass, Student, Exam, Lecture, TimetableEntry
from ...models.academics import SESSION_STATUSES
from ...models.user import STAFF_ROLES
from ...utils import parse_date
from ..auth.routes import role_required
from . import bp

log = logging.getLogger(__name__)

SESSION_TYPES = ("regular", "etea", "mdcat")
CLASS_STATUSES = ("active", "inactive")

def _dates(data, obj=None):
    try:
        start = parse_date(data["start_date"]) if "start_date" in data else getattr(obj, "start_date", None)
        end = parse_date(data["end_date"]) if "end_date" in data else getattr(obj, "end_date", None)
    except ValueError:
        raise ApiError("Dates must be YYYY-MM-DD")
    if start and end and end < start:
        raise ApiError("End date cannot be before start date")
    return start, end

def _clean_subjects(raw):
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ApiError("subjects must be a list")
    out = []
    for s in raw:
        if isinstance(s, str):
            s = {"name": s, "fee": 0}
        name = str(s.get("name") or "").strip()
        fee = s.get("fee") or 0
        if not name:
            raise ApiError("Every subject needs a name")
        if isinstance(fee, bool) or not isinstance(fee, (int, float)) or fee < 0:
            raise ApiError(f"Fee for {name} must be 0 or more")
        out.append({"name": name, "fee": fee})
    return out

# ---------- Sessions ----------
@bp.get("/sessions")
@login_required
def list_sessions():
    query = AcademicSession.query
    status = request.args.get("status")
    if status:
        query = query.filter(AcademicSession.status == status)
    items = query.order_by(AcademicSession.start_date.desc(), AcademicSession.id.desc()).all()
    return ok([s.to_dict() for s in items], count=len(items))

@bp.get("/sessions/<int:sid>")
@login_required
def get_session(sid):
    return ok(get_or_404(AcademicSession, sid, "Session").to_dict())

@bp.post("/sessions")
@login_required
@role_required(*STAFF_ROLES)
def create_session():
    data = get_json()
    name = str(data.get("name") or "").strip()
    if not name:
        raise ApiError("Session name is required")
    status = data.get("status", "upcoming")
    if status not in SESSION_STATUSES:
        raise ApiError(f"Status must be one of {', '.join(SESSION_STATUSES)}")
    session_type = data.get("session_type", "regular")
    if session_type not in SESSION_TYPES:
        raise ApiError(f"Session type must be one of {', '.join(SESSION_TYPES)}")
    start, end = _dates(data)
    s = AcademicSession(name=name, status=status, session_type=session_type,
                        start_date=start, end_date=end)
    db.session.add(s)
    commit("A session with this name already exists")
    log.info("session %s created", s.name)
    return ok(s.to_dict(), "Session created", 201)

@bp.put("/sessions/<int:sid>")
@login_required
@role_required(*STAFF_ROLES)
def update_session(sid):
    s = get_or_404(AcademicSession, sid, "Session")
    data = get_json()
    if "name" in data:
        if not str(data["name"] or "").strip():
            raise ApiError("Session name is required")
        s.name = data["name"].strip()
    if "status" in data:
        if data["status"] not in SESSION_STATUSES:
            raise ApiError(f"Status must be one of {', '.join(SESSION_STATUSES)}")
        s.status = data["status"]
    if "session_type" in data:
        if data["session_type"] not in SESSION_TYPES:
            raise ApiError(f"Session type must be one of {', '.join(SESSION_TYPES)}")
        s.session_type = data["session_type"]
    s.start_date, s.end_date = _dates(data, s)
    commit("A session with this name already exists")
    return ok(s.to_dict(), "Session updated")

@bp.delete("/sessions/<int:sid>")
@login_required
@role_required("owner")
def delete_session(sid):
    s = get_or_404(AcademicSession, sid, "Session")
    if s.classes:
        raise ApiError("Session still has classes", 409)
    db.session.delete(s)
    db.session.commit()
    return ok(message="Session deleted")

# ---------- Classes ----------
@bp.get("/classes")
@login_required
def list_classes():
    query = SchoolClass.query
    session_id = request.args.get("session", type=int)
    if session_id:
        query = query.filter(SchoolClass.session_id == session_id)
    status = request.args.get("status")
    if status:
        query = query.filter(SchoolClass.status == status)
    group = request.args.get("group")
    if group:
        query = query.filter(SchoolClass.group == group)
    items = query.order_by(SchoolClass.grade_level, SchoolClass.title).all()
    return ok([c.to_dict() for c in items], count=len(items))

@bp.get("/classes/<int:cid>")
@login_required
def get_class(cid):
    c = get_or_404(SchoolClass, cid, "Class")
    d = c.to_dict()
    d["student_count"] = Student.query.filter_by(class_id=c.id, status="active").count()
    return ok(d)

@bp.post("/classes")
@login_required
@role_required(*STAFF_ROLES)
def create_class():
    data = get_json()
    title = str(data.get("title") or "").strip()
    grade = str(data.get("grade_level") or "").strip()
    if not title or not grade:
        raise ApiError("Class title and grade level are required")
    session_id = data.get("session_id")
    if not session_id or db.session.get(AcademicSession, session_id) is None:
        raise ApiError("Invalid session")
    status = data.get("status", "active")
    if status not in CLASS_STATUSES:
        raise ApiError("Status must be active or inactive")
    c = SchoolClass(title=title, grade_level=grade, group=data.get("group"), status=status,
                    subjects=_clean_subjects(data.get("subjects")), session_id=session_id)
    db.session.add(c)
    commit("This class already exists in the session")
    return ok(c.to_dict(), "Class created", 201)

@bp.put("/classes/<int:cid>")
@login_required
@role_required(*STAFF_ROLES)
def update_class(cid):
    c = get_or_404(SchoolClass, cid, "Class")
    data = get_json()
    for key in ("title", "grade_level"):
        if key in data:
            value = str(data[key] or "").strip()
            if not value:
                raise ApiError(f"{key} cannot be empty")
            setattr(c, key, value)
    if "group" in data:
        c.group = data["group"]
    if "status" in data:
        if data["status"] not in CLASS_STATUSES:
            raise ApiError("Status must be active or inactive")
        c.status = data["status"]
    if "session_id" in data:
        if db.session.get(AcademicSession, data["session_id"]) is None:
            raise ApiError("Invalid session")
        c.session_id = data["session_id"]
    if "subjects" in data:
        c.subjects = _clean_subjects(data["subjects"])
    commit("This class already exists in the session")
    return ok(c.to_dict(), "Class updated")

@bp.delete("/classes/<int:cid>")
@login_required
@role_required("owner")
def delete_class(cid):
    c = get_or_404(SchoolClass, cid, "Class")
    if c.students:
        raise ApiError("Class still has students", 409)
    in_use = [label for label, model in (("exams", Exam), ("lectures", Lecture),
                                         ("timetable entries", TimetableEntry))
              if model.query.filter_by(class_id=c.id).first() is not None]
    if in_use:
        raise ApiError(f"Class still has {', '.join(in_use)}", 409)
    db.session.delete(c)
    db.session.commit()
    return ok(message="Class deleted")
