import logging

from flask import request, current_app
from flask_login import login_required, current_user

from ...api import ApiError, ok, get_json, get_or_404, commit
from ...extensions import db
from ...models import SchoolClass, Seat, Student
from ...models.seating import SIDES
from ...models.user import STAFF_ROLES
from ...services.pricing import seat_side
from ..auth.routes import role_required
from . import bp

log = logging.getLogger(__name__)

def ensure_seats(klass):
    """Lay out the class seat map on first use, one block per wing."""
    if klass.seats:
        return klass.seats
    rows = current_app.config["SEAT_ROWS"]
    per_row = current_app.config["SEATS_PER_ROW"]
    for side in SIDES:
        for n in range(1, rows * per_row + 1):
            klass.seats.append(Seat(side=side, seat_number=n, row=(n - 1) // per_row + 1,
                                    column=(n - 1) % per_row + 1))
    db.session.commit()
    log.info("seat map created for class %s: %d seats", klass.id, len(klass.seats))
    return klass.seats

def _booking_student(data):
    if current_user.role == "student":
        if current_user.student is None:
            raise ApiError("No student record is linked to this account", 403)
        return current_user.student
    if not data.get("student_id"):
        raise ApiError("Select the student to seat", errors={"student_id": "required"})
    return get_or_404(Student, data["student_id"], "Student")

@bp.get("/<int:class_id>")
@login_required
@role_required("student", *STAFF_ROLES)
def class_seats(class_id):
    klass = get_or_404(SchoolClass, class_id, "Class")
    if current_user.role == "student":
        student = current_user.student
        if student is None or student.class_id != klass.id:
            raise ApiError("You can only view seats of your own class", 403)
        side = seat_side(student.gender)
        seats = [s for s in ensure_seats(klass) if s.side == side]
        return ok({"seats": [s.to_dict(show_student=s.student_id == student.id) for s in seats],
                   "allowed_side": side, "student_gender": student.gender,
                   "my_seat": student.seat.to_dict() if student.seat else None})

    seats = ensure_seats(klass)
    side = request.args.get("side")
    if side:
        seats = [s for s in seats if s.side == side]
    summary = {w: {"total": sum(1 for s in klass.seats if s.side == w),
                   "taken": sum(1 for s in klass.seats if s.side == w and s.is_taken)}
               for w in SIDES}
    return ok({"seats": [s.to_dict() for s in seats], "summary": summary})

@bp.post("/book")
@login_required
@role_required("student", *STAFF_ROLES)
def book_seat():
    data = get_json()
    if not data.get("seat_id"):
        raise ApiError("Select a seat first", errors={"seat_id": "required"})
    seat = get_or_404(Seat, data["seat_id"], "Seat")
    student = _booking_student(data)
    if student.status != "active":
        raise ApiError("Only active students can book a seat")
    if student.class_id != seat.class_id:
        raise ApiError("This seat is not in the student's class", 403)
    allowed = seat_side(student.gender)
    if seat.side != allowed:
        raise ApiError(f"Gender restricted zone: {student.gender} students can only book "
                       f"{allowed} side seats", 403)
    if seat.student_id == student.id:
        raise ApiError("This is already your seat")
    if seat.is_taken:
        raise ApiError("Seat already taken", 409)
    if student.seat is not None:
        raise ApiError(f"Release seat {student.seat.label} before booking another", 409)
    seat.book(student)
    commit("Seat already taken")
    log.info("seat %s of class %s booked for %s", seat.label, seat.class_id, student.student_no)
    return ok(seat.to_dict(), f"Seat {seat.label} reserved")

@bp.post("/release")
@login_required
@role_required("student", *STAFF_ROLES)
def release_seat():
    data = get_json()
    if not data.get("seat_id"):
        raise ApiError("Select a seat first", errors={"seat_id": "required"})
    seat = get_or_404(Seat, data["seat_id"], "Seat")
    if not seat.is_taken:
        raise ApiError("Seat is not booked")
    if current_user.role == "student" and seat.student_id != current_user.student_id:
        raise ApiError("You can only release your own seat", 403)
    student_no = seat.student.student_no
    seat.release()
    db.session.commit()
    log.info("seat %s of class %s released from %s", seat.label, seat.class_id, student_no)
    return ok(seat.to_dict(), f"Seat {seat.label} released")
