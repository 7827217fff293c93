import logging

from flask import request
from flask_login import login_required, current_user
from sqlalchemy import func

from ...api import ApiError, ok, get_json, get_or_404, to_number
from ...extensions import db
from ...models import Teacher, PayoutRequest
from ...models.user import STAFF_ROLES
from ...utils import utcnow
from ..auth.routes import role_required
from ..expenses.routes import record_expense
from . import bp

log = logging.getLogger(__name__)

def _pending_summary():
    count, total = db.session.query(
        func.count(PayoutRequest.id), func.coalesce(func.sum(PayoutRequest.amount), 0)
    ).filter(PayoutRequest.status == "pending").one()
    return {"pending_count": count, "pending_total": total}

def _check_teacher_access(teacher_id):
    if current_user.role == "teacher" and current_user.teacher_id != teacher_id:
        raise ApiError("You can only manage your own payouts", 403)

def _pending_or_400(req):
    if req.status != "pending":
        raise ApiError(f"Request has already been {req.status}")

@bp.post("/request")
@login_required
@role_required("teacher", *STAFF_ROLES)
def create_request():
    data = get_json()
    if not data.get("teacher_id") or not data.get("amount"):
        raise ApiError("Teacher ID and valid amount are required")
    amount = to_number(data["amount"], "amount")
    if amount <= 0:
        raise ApiError("Teacher ID and valid amount are required")
    t = get_or_404(Teacher, data["teacher_id"], "Teacher")
    _check_teacher_access(t.id)

    if amount > t.balance_verified:
        raise ApiError(f"Insufficient balance. Available: PKR {t.balance_verified:g}")
    existing = PayoutRequest.query.filter_by(teacher_id=t.id, status="pending").first()
    if existing:
        raise ApiError(f"You already have a pending request for PKR {existing.amount:g}. "
                       "Please wait for approval.")

    req = PayoutRequest(teacher=t, amount=amount, notes=data.get("notes"))
    db.session.add(req)
    db.session.commit()
    log.info("payout request %s by %s for %s", req.id, t.teacher_no, amount)
    return ok(req.to_dict(), f"Payout request for PKR {amount:g} submitted successfully", 201)

@bp.get("/requests")
@login_required
@role_required("owner")
def list_requests():
    query = PayoutRequest.query
    status = request.args.get("status")
    if status:
        query = query.filter(PayoutRequest.status == status)
    teacher_id = request.args.get("teacher_id", type=int)
    if teacher_id:
        query = query.filter(PayoutRequest.teacher_id == teacher_id)
    items = query.order_by(PayoutRequest.requested_at.desc(), PayoutRequest.id.desc()).all()
    return ok([r.to_dict() for r in items], count=len(items), summary=_pending_summary())

@bp.get("/my-requests/<int:teacher_id>")
@login_required
@role_required("teacher", *STAFF_ROLES)
def my_requests(teacher_id):
    _check_teacher_access(teacher_id)
    items = (PayoutRequest.query.filter_by(teacher_id=teacher_id)
             .order_by(PayoutRequest.requested_at.desc(), PayoutRequest.id.desc())
             .limit(20).all())
    return ok([r.to_dict() for r in items], count=len(items))

@bp.post("/approve/<int:rid>")
@login_required
@role_required("owner")
def approve(rid):
    req = get_or_404(PayoutRequest, rid, "Payout request")
    _pending_or_400(req)
    t = req.teacher
    if req.amount > t.balance_verified:
        raise ApiError(f"Teacher's balance has changed. Available: PKR {t.balance_verified:g}, "
                       f"Requested: PKR {req.amount:g}")

    t.balance_verified -= req.amount
    t.total_paid = (t.total_paid or 0) + req.amount
    expense = record_expense(f"Salary: {t.name}", "Salaries", req.amount, t.name,
                             status="paid", description=f"Approved payout request {req.id}")
    db.session.flush()
    req.status = "approved"
    req.decided_by_id = current_user.id
    req.decided_at = utcnow()
    req.notes = get_json().get("notes") or req.notes or "Approved by owner"
    req.expense_id = expense.id
    db.session.commit()
    log.info("payout request %s approved: %s to %s", req.id, req.amount, t.teacher_no)
    return ok({"request": req.to_dict(), "expense": expense.to_dict()},
              f"Payout of PKR {req.amount:g} to {t.name} approved successfully")

@bp.post("/reject/<int:rid>")
@login_required
@role_required("owner")
def reject(rid):
    req = get_or_404(PayoutRequest, rid, "Payout request")
    _pending_or_400(req)
    reason = get_json().get("reason") or "No reason provided"
    req.status = "rejected"
    req.decided_by_id = current_user.id
    req.decided_at = utcnow()
    req.notes = reason
    db.session.commit()
    log.info("payout request %s rejected: %s", req.id, reason)
    return ok(req.to_dict(), "Payout request rejected")

@bp.get("/dashboard")
@login_required
@role_required("owner")
def dashboard():
    pending = (PayoutRequest.query.filter_by(status="pending")
               .order_by(PayoutRequest.requested_at.desc()).all())
    now = utcnow()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    approved_total, approved_count = db.session.query(
        func.coalesce(func.sum(PayoutRequest.amount), 0), func.count(PayoutRequest.id)
    ).filter(PayoutRequest.status == "approved",
             PayoutRequest.decided_at >= month_start).one()
    teachers = Teacher.query.filter(Teacher.balance_verified > 0).order_by(Teacher.name).all()
    return ok({
        "pending_requests": [r.to_dict() for r in pending],
        "pending_total": sum(r.amount for r in pending),
        "monthly_approved": {"total": approved_total, "count": approved_count},
        "teachers_with_balances": [t.to_dict() for t in teachers],
        "total_teacher_liability": sum(t.balance_verified for t in teachers),
    })
