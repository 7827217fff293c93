import logging
from collections import namedtuple

from flask import request
from flask_login import login_required, current_user

from ...api import ApiError, ok, get_json, get_or_404
from ...extensions import db
from ...models import TimetableEntry, SchoolClass, Teacher
from ...models.user import STAFF_ROLES
from ...utils import WEEKDAYS, parse_hhmm
from ..auth.routes import role_required
from . import bp

log = logging.getLogger(__name__)

Slot = namedtuple("Slot", "day start_time end_time")

def timeslot_overlap(a, b):
    if a.day != b.day:
        return False
    return not (a.end_time <= b.start_time or b.end_time <= a.start_time)

def _find_conflict(slot, class_id, teacher_id, room, exclude_id=None):
    query = TimetableEntry.query.filter(TimetableEntry.day == slot.day,
                                        TimetableEntry.status == "active")
    if exclude_id:
        query = query.filter(TimetableEntry.id != exclude_id)
    for other in query.all():
        if not timeslot_overlap(slot, other):
            continue
        if other.teacher_id == teacher_id:
            return other, "teacher"
        if room and other.room and other.room.strip().lower() == room.strip().lower():
            return other, "room"
        if other.class_id == class_id:
            return other, "class"
    return None, None

def _validated(data, entry=None):
    class_id = data.get("class_id", getattr(entry, "class_id", None))
    teacher_id = data.get("teacher_id", getattr(entry, "teacher_id", None))
    day = data.get("day", getattr(entry, "day", None))
    subject = str(data.get("subject", getattr(entry, "subject", "")) or "").strip()
    errors = {}
    if not class_id or db.session.get(SchoolClass, class_id) is None:
        errors["class_id"] = "Select a valid class"
    if not teacher_id or db.session.get(Teacher, teacher_id) is None:
        errors["teacher_id"] = "Select a valid teacher"
    if day not in WEEKDAYS:
        errors["day"] = "Day must be Monday to Saturday"
    if not subject:
        errors["subject"] = "Subject is required"
    try:
        start = parse_hhmm(data["start_time"]) if "start_time" in data else entry.start_time
        end = parse_hhmm(data["end_time"]) if "end_time" in data else entry.end_time
    except (KeyError, AttributeError, ValueError):
        errors["time"] = "Time format must be HH:MM"
        start = end = None
    if start and end and not start < end:
        errors["time"] = "End time must be later than start time"
    if errors:
        raise ApiError("Invalid timetable entry", 400, errors)
    return class_id, teacher_id, Slot(day, start, end), subject

def _check_free(slot, class_id, teacher_id, room, exclude_id=None):
    other, what = _find_conflict(slot, class_id, teacher_id, room, exclude_id)
    if other is not None:
        msg = (f"Conflicts with {other.subject} ({other.school_class.title}) "
               f"{other.day} {other.start_time:%H:%M}-{other.end_time:%H:%M}: same {what}")
        log.warning("timetable conflict: %s", msg)
        raise ApiError(msg, 409, {"conflict_id": other.id, "conflict_on": what})

@bp.get("")
@login_required
def list_entries():
    query = TimetableEntry.query
    class_id = request.args.get("class_id", type=int)
    role = current_user.role
    if role == "student":
        student = current_user.student
        query = query.filter(TimetableEntry.class_id == (student.class_id if student else -1))
    elif role == "teacher":
        query = query.filter(TimetableEntry.teacher_id == (current_user.teacher_id or -1))
    elif role == "partner" and current_user.teacher_id and not class_id:
        query = query.filter(TimetableEntry.teacher_id == current_user.teacher_id)

    if class_id and role != "student":
        query = query.filter(TimetableEntry.class_id == class_id)
    teacher_id = request.args.get("teacher_id", type=int)
    if teacher_id and role in ("owner", "staff", "partner"):
        query = query.filter(TimetableEntry.teacher_id == teacher_id)
    day = request.args.get("day")
    if day:
        query = query.filter(TimetableEntry.day == day)
    status = request.args.get("status")
    if status:
        query = query.filter(TimetableEntry.status == status)

    items = sorted(query.all(), key=lambda e: (WEEKDAYS.index(e.day) if e.day in WEEKDAYS else 99,
                                               e.start_time))
    return ok([e.to_dict() for e in items], count=len(items))

@bp.get("/<int:eid>")
@login_required
def get_entry(eid):
    return ok(get_or_404(TimetableEntry, eid, "Timetable entry").to_dict())

@bp.post("")
@login_required
@role_required(*STAFF_ROLES)
def create_entry():
    data = get_json()
    class_id, teacher_id, slot, subject = _validated(data)
    room = data.get("room")
    _check_free(slot, class_id, teacher_id, room)
    e = TimetableEntry(class_id=class_id, teacher_id=teacher_id, day=slot.day,
                       start_time=slot.start_time, end_time=slot.end_time,
                       subject=subject, room=room, status=data.get("status", "active"))
    db.session.add(e)
    db.session.commit()
    return ok(e.to_dict(), "Timetable entry created", 201)

@bp.put("/<int:eid>")
@login_required
@role_required(*STAFF_ROLES)
def update_entry(eid):
    e = get_or_404(TimetableEntry, eid, "Timetable entry")
    data = get_json()
    class_id, teacher_id, slot, subject = _validated(data, e)
    room = data.get("room", e.room)
    status = data.get("status", e.status)
    if status == "active":
        _check_free(slot, class_id, teacher_id, room, exclude_id=e.id)
    e.class_id, e.teacher_id, e.subject, e.room, e.status = class_id, teacher_id, subject, room, status
    e.day, e.start_time, e.end_time = slot
    db.session.commit()
    return ok(e.to_dict(), "Timetable entry updated")

@bp.delete("/<int:eid>")
@login_required
@role_required(*STAFF_ROLES)
def delete_entry(eid):
    e = get_or_404(TimetableEntry, eid, "Timetable entry")
    db.session.delete(e)
    db.session.commit()
    return ok(message="Timetable entry deleted")
