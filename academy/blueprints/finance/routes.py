import logging

from flask import request
from flask_login import login_required, current_user
from sqlalchemy import func

from ...api import ApiError, ok, get_json, get_or_404, commit, to_number, next_serial
from ...extensions import db
from ...models import (Teacher, Student, FeeRecord, Expense, PayoutRequest, Refund,
                       DailyClosing, get_config)
from ...models.user import STAFF_ROLES
from ...services.pricing import fee_status
from ...services.splits import distribute, distribute_pool, refund_split
from ...utils import utcnow
from ..auth.routes import role_required
from ..expenses.routes import partner_names
from . import bp

log = logging.getLogger(__name__)

def _sum(column, *criteria):
    return db.session.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar()

def _period_starts():
    now = utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return today, today.replace(day=1)

def _pool_revenue(since, etea):
    """Academy share of fees since ``since``, net of refunds, for one pool."""
    kind = FeeRecord.split_type.like("ETEA%")
    if not etea:
        kind = ~kind
    collected = _sum(FeeRecord.academy_share, FeeRecord.created_at >= since, kind)
    refunded = db.session.query(func.coalesce(func.sum(Refund.pool_reversed), 0)) \
        .join(FeeRecord, Refund.fee_record_id == FeeRecord.id) \
        .filter(Refund.created_at >= since, kind).scalar()
    return collected - refunded

@bp.post("/close-day")
@login_required
@role_required("owner", "partner")
def close_day():
    teachers = Teacher.query.filter(Teacher.balance_floating > 0).all()
    moved = 0.0
    for t in teachers:
        moved += t.balance_floating
        t.balance_verified += t.balance_floating
        t.balance_floating = 0.0
    db.session.commit()
    log.info("day closed by %s: %s moved to verified for %d teachers",
             current_user.username, moved, len(teachers))
    return ok({"moved_total": moved, "teachers": len(teachers)},
              f"Day closed, PKR {moved:g} verified")

@bp.get("/dashboard-stats")
@login_required
@role_required(*STAFF_ROLES)
def dashboard_stats():
    today, month = _period_starts()
    by_status = dict(db.session.query(Student.fee_status, func.count(Student.id))
                     .filter(Student.status == "active")
                     .group_by(Student.fee_status).all())
    pending = db.session.query(func.count(PayoutRequest.id),
                               func.coalesce(func.sum(PayoutRequest.amount), 0)) \
        .filter(PayoutRequest.status == "pending").one()
    return ok({
        "fees_today": _sum(FeeRecord.amount, FeeRecord.created_at >= today),
        "fees_this_month": _sum(FeeRecord.amount, FeeRecord.created_at >= month),
        "pool_revenue_this_month": _pool_revenue(month, False) + _pool_revenue(month, True),
        "refunds_this_month": _sum(Refund.amount, Refund.created_at >= month),
        "expenses_paid_this_month": _sum(Expense.amount, Expense.status == "paid",
                                         Expense.paid_date >= month),
        "expenses_pending": _sum(Expense.amount, Expense.status == "pending"),
        "floating_total": _sum(Teacher.balance_floating),
        "verified_total": _sum(Teacher.balance_verified),
        "students": {
            "active": sum(by_status.values()),
            "paid": by_status.get("paid", 0),
            "partial": by_status.get("partial", 0),
            "unpaid": by_status.get("unpaid", 0),
        },
        "pending_payouts": {"count": pending[0], "total": pending[1]},
        "pending_closings": DailyClosing.query.filter_by(status="pending_verification").count(),
    })

@bp.get("/pool-status")
@login_required
@role_required("owner", "partner")
def pool_status():
    """This month's academy share, split between partners by the pool splits."""
    _, month = _period_starts()
    cfg = get_config()
    etea = _pool_revenue(month, True)
    tuition = _pool_revenue(month, False)
    names = partner_names()
    partners = {}
    for pool_name, amount, split in (("tuition", tuition, cfg.tuition_pool_split),
                                     ("etea", etea, cfg.etea_pool_split)):
        for row in distribute_pool(amount, split):
            entry = partners.setdefault(row["partner_key"], {
                "partner_key": row["partner_key"],
                "partner": names.get(row["partner_key"], row["partner_key"]),
                "tuition": 0, "etea": 0, "total": 0})
            entry[pool_name] += row["share"]
            entry["total"] += row["share"]
    db.session.commit()
    return ok({"tuition_pool": tuition, "etea_pool": etea,
               "partners": list(partners.values())})

# ---------- Refunds ----------
@bp.post("/refund")
@login_required
@role_required("owner")
def refund():
    data = get_json()
    if not data.get("fee_record_id"):
        raise ApiError("Select the receipt to refund", errors={"fee_record_id": "required"})
    rec = get_or_404(FeeRecord, data["fee_record_id"], "Fee record")
    reason = str(data.get("reason") or "").strip()
    if not reason:
        raise ApiError("A reason is required for every refund", errors={"reason": "required"})
    refundable = rec.amount - rec.refunded_amount
    amount = to_number(data.get("amount", refundable), "amount")
    if amount <= 0:
        raise ApiError("Amount must be greater than 0")
    if amount > refundable:
        raise ApiError(f"Only PKR {refundable:g} can still be refunded on {rec.receipt_no}")

    teacher_part, pool_part = refund_split(amount, rec.amount, rec.teacher_share)
    teacher = rec.teacher
    if teacher is not None and teacher_part > 0:
        from_floating = min(teacher.balance_floating, teacher_part)
        from_verified = teacher_part - from_floating
        if from_verified > teacher.balance_verified:
            raise ApiError(f"{teacher.name}'s share of this fee has already been paid out", 409)
        teacher.balance_floating -= from_floating
        teacher.balance_verified -= from_verified

    s = rec.student
    s.paid_amount = max((s.paid_amount or 0) - amount, 0)
    s.fee_status = fee_status(s.paid_amount, s.total_fee)
    now = utcnow()
    r = Refund(refund_no=next_serial(Refund.refund_no, f"RFD-{now:%Y%m%d}-"), fee_record=rec,
               student=s, amount=amount, teacher_reversed=teacher_part, pool_reversed=pool_part,
               reason=reason, refunded_by_id=current_user.id, created_at=now)
    db.session.add(r)
    commit("Refund number already used, please retry")
    log.info("refund %s on %s: %s (teacher %s, pool %s) by %s", r.refund_no, rec.receipt_no,
             amount, teacher_part, pool_part, current_user.username)
    return ok({"refund": r.to_dict(), "student": s.to_dict()},
              f"Refunded PKR {amount:g} on {rec.receipt_no}", 201)

@bp.get("/refunds")
@login_required
@role_required("owner", "partner")
def list_refunds():
    query = Refund.query
    student_id = request.args.get("student_id", type=int)
    if student_id:
        query = query.filter(Refund.student_id == student_id)
    items = query.order_by(Refund.created_at.desc(), Refund.id.desc()).all()
    return ok([r.to_dict() for r in items], count=len(items),
              total=sum(r.amount for r in items))

# ---------- Daily closing ----------
def _closing_figures(user, since):
    """Cash the user collected since ``since`` and what of it is theirs to keep."""
    cfg = get_config()
    records = FeeRecord.query.filter(FeeRecord.collected_by_id == user.id,
                                     FeeRecord.created_at >= since).all()
    teaching = sum(r.teacher_share for r in records
                   if r.teacher is not None and r.teacher.auth is not None
                   and r.teacher.auth.id == user.id)
    pools = {"tuition": 0, "etea": 0}
    for r in records:
        pools["etea" if r.split_type.startswith("ETEA") else "tuition"] += r.academy_share
    tuition_cut = distribute(pools["tuition"], cfg.tuition_pool_split).get(user.partner_key, 0)
    etea_cut = distribute(pools["etea"], cfg.etea_pool_split).get(user.partner_key, 0)
    total = sum(r.amount for r in records)
    share = teaching + tuition_cut + etea_cut
    breakdown = {"teaching": teaching, "tuition_pool": tuition_cut, "etea_pool": etea_cut}
    return records, total, share, breakdown

@bp.post("/daily-closing")
@login_required
@role_required("partner")
def daily_closing():
    data = get_json()
    today, _ = _period_starts()
    closing = DailyClosing.query.filter_by(partner_id=current_user.id,
                                           date=today.date()).one_or_none()
    if closing is not None and closing.status != "cancelled":
        raise ApiError("Today is already closed", 409)
    records, total, share, breakdown = _closing_figures(current_user, today)
    if not records:
        raise ApiError("Nothing was collected today")
    if closing is None:
        closing = DailyClosing(partner_id=current_user.id, date=today.date())
        db.session.add(closing)
    closing.total_amount = total
    closing.partner_share = share
    closing.handover_amount = total - share
    closing.breakdown = breakdown
    closing.record_count = len(records)
    closing.status = "pending_verification"
    closing.notes = data.get("notes")
    closing.verified_by_id = closing.verified_at = None
    commit("Today is already closed")
    log.info("daily closing by %s: collected %s, keeps %s, hands over %s",
             current_user.username, total, share, closing.handover_amount)
    return ok(closing.to_dict(),
              f"Day closed, hand over PKR {closing.handover_amount:g}", 201)

@bp.patch("/verify-closing/<int:cid>")
@login_required
@role_required("owner")
def verify_closing(cid):
    closing = get_or_404(DailyClosing, cid, "Closing")
    data = get_json()
    action = data.get("action", "verify")
    if action not in ("verify", "reject"):
        raise ApiError("Action must be verify or reject")
    if closing.status != "pending_verification":
        raise ApiError(f"Closing is already {closing.status.replace('_', ' ')}")
    closing.status = "verified" if action == "verify" else "cancelled"
    closing.verified_by_id = current_user.id
    closing.verified_at = utcnow()
    if data.get("notes"):
        closing.notes = data["notes"]
    db.session.commit()
    log.info("closing %s of %s %s by %s", closing.id, closing.date, closing.status,
             current_user.username)
    return ok(closing.to_dict(), "Handover verified" if action == "verify" else "Closing rejected")

@bp.get("/pending-closings")
@login_required
@role_required("owner")
def pending_closings():
    items = (DailyClosing.query.filter_by(status="pending_verification")
             .order_by(DailyClosing.date.desc(), DailyClosing.id.desc()).all())
    return ok([c.to_dict() for c in items], count=len(items),
              total_handover=sum(c.handover_amount for c in items))

@bp.get("/closings")
@login_required
@role_required("owner", "partner")
def closing_history():
    query = DailyClosing.query
    if current_user.role == "partner":
        query = query.filter(DailyClosing.partner_id == current_user.id)
    status = request.args.get("status")
    if status:
        query = query.filter(DailyClosing.status == status)
    items = query.order_by(DailyClosing.date.desc(), DailyClosing.id.desc()).all()
    return ok([c.to_dict() for c in items], count=len(items))
