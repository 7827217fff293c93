import logging
from datetime import date

from flask import request
from flask_login import login_required, current_user
from sqlalchemy import or_, func

from ...api import ApiError, ok, get_json, get_or_404, commit, to_number, next_serial
from ...extensions import db
from ...models import Teacher, TeacherPayment, FeeRecord, Expense
from ...models.user import STAFF_ROLES
from ...utils import utcnow
from ..auth.routes import role_required, new_account
from ..expenses.routes import record_expense
from . import bp

log = logging.getLogger(__name__)

ROLE_KINDS = ("staff", "partner", "owner")
COMPENSATION_TYPES = ("percentage", "fixed")
MONTHS = ("January", "February", "March", "April", "May", "June", "July",
          "August", "September", "October", "November", "December")

def _next_teacher_no():
    return next_serial(Teacher.teacher_no, "TCH-", width=3)

def _voucher_id(now):
    return next_serial(TeacherPayment.voucher_id, f"TP-{now:%Y%m}-")

def _salary_bill(now):
    return next_serial(Expense.bill_number, f"TESAL-{now:%Y%m}-")

def _apply_compensation(t, data):
    comp = data.get("compensation") or {}
    if not isinstance(comp, dict):
        raise ApiError("compensation must be an object")
    ctype = comp.get("type", data.get("compensation_type"))
    if ctype is not None:
        if ctype not in COMPENSATION_TYPES:
            raise ApiError("Compensation type must be percentage or fixed")
        t.compensation_type = ctype
    if "teacher_share" in comp or "teacher_share" in data:
        share = to_number(comp.get("teacher_share", data.get("teacher_share")), "teacher_share",
                          minimum=0, allow_none=True)
        if share is not None and share > 100:
            raise ApiError("teacher_share must be between 0 and 100")
        t.teacher_share = share
    if "fixed_salary" in comp or "fixed_salary" in data:
        t.fixed_salary = to_number(comp.get("fixed_salary", data.get("fixed_salary")),
                                   "fixed_salary", minimum=0)

def pay_teacher(teacher, amount, kind, month, year, notes=None, payment_method="cash"):
    """Voucher plus a paid salary expense; the caller commits."""
    now = utcnow()
    payment = TeacherPayment(voucher_id=_voucher_id(now), teacher=teacher, amount_paid=amount,
                             compensation_type=teacher.compensation_type, month=month, year=year,
                             payment_method=payment_method, status="paid", kind=kind,
                             notes=notes, payment_date=now)
    db.session.add(payment)
    teacher.total_paid = (teacher.total_paid or 0) + amount
    record_expense(f"Teacher Salary - {teacher.name}", "Salaries", amount, teacher.name,
                   status="paid", bill_number=_salary_bill(now),
                   description=notes or f"Salary payment for {teacher.name} ({teacher.subject})")
    return payment

# ---------- Records ----------
@bp.get("")
@login_required
@role_required(*STAFF_ROLES)
def list_teachers():
    query = Teacher.query
    status = request.args.get("status")
    if status:
        query = query.filter(Teacher.status == status)
    subject = request.args.get("subject")
    if subject:
        query = query.filter(Teacher.subject == subject)
    kw = (request.args.get("q") or "").strip()
    if kw:
        like = f"%{kw}%"
        query = query.filter(or_(Teacher.name.ilike(like), Teacher.teacher_no.ilike(like)))
    items = query.order_by(Teacher.name).all()
    return ok([t.to_dict() for t in items], count=len(items))

@bp.get("/<int:tid>")
@login_required
def get_teacher(tid):
    t = get_or_404(Teacher, tid, "Teacher")
    if current_user.role not in STAFF_ROLES and current_user.teacher_id != t.id:
        raise ApiError("You can only view your own profile", 403)
    return ok(t.to_dict())

@bp.post("")
@login_required
@role_required(*STAFF_ROLES)
def create_teacher():
    data = get_json()
    name = str(data.get("name") or "").strip()
    if not name:
        raise ApiError("Teacher name is required")
    role_kind = data.get("role_kind", "staff")
    if role_kind not in ROLE_KINDS:
        raise ApiError(f"Role must be one of {', '.join(ROLE_KINDS)}")
    t = Teacher(teacher_no=_next_teacher_no(), name=name, subject=data.get("subject"),
                phone=data.get("phone"), role_kind=role_kind, status=data.get("status", "active"))
    _apply_compensation(t, data)
    db.session.add(t)
    username = str(data.get("username") or "").strip() or t.teacher_no.lower()
    new_account(username, name, "teacher", teacher=t, phone=t.phone)
    commit("Username already exists")
    log.info("teacher %s (%s) created", t.teacher_no, t.name)
    d = t.to_dict()
    d["username"] = username
    return ok(d, "Teacher created", 201)

@bp.put("/<int:tid>")
@login_required
@role_required(*STAFF_ROLES)
def update_teacher(tid):
    t = get_or_404(Teacher, tid, "Teacher")
    data = get_json()
    for key in ("name", "subject", "phone", "status"):
        if key in data:
            setattr(t, key, data[key])
    if not (t.name or "").strip():
        raise ApiError("Teacher name is required")
    if "role_kind" in data:
        if data["role_kind"] not in ROLE_KINDS:
            raise ApiError(f"Role must be one of {', '.join(ROLE_KINDS)}")
        t.role_kind = data["role_kind"]
    _apply_compensation(t, data)
    if t.auth is not None:
        t.auth.full_name = t.name
    db.session.commit()
    return ok(t.to_dict(), "Teacher updated")

@bp.delete("/<int:tid>")
@login_required
@role_required("owner")
def delete_teacher(tid):
    t = get_or_404(Teacher, tid, "Teacher")
    if t.balance_verified > 0 or t.balance_pending > 0:
        raise ApiError("Teacher still has an unpaid balance", 409)
    if t.payments or t.payout_requests:
        raise ApiError("Teacher has payment history, mark the teacher inactive instead", 409)
    db.session.delete(t)
    db.session.commit()
    log.info("teacher %s deleted", t.teacher_no)
    return ok(message="Teacher deleted")

# ---------- Wallet ----------
@bp.get("/<int:tid>/wallet")
@login_required
@role_required(*STAFF_ROLES)
def wallet(tid):
    t = get_or_404(Teacher, tid, "Teacher")
    payments = (TeacherPayment.query.filter_by(teacher_id=t.id)
                .order_by(TeacherPayment.payment_date.desc()).limit(50).all())
    transactions = [{
        "id": p.id,
        "type": "debit",
        "amount": p.amount_paid,
        "description": f"{p.month} {p.year} - {p.notes or 'Salary Payment'}",
        "voucher_id": p.voucher_id,
        "created_at": p.to_dict()["payment_date"],
    } for p in payments]
    return ok(transactions, balance=t.balance_pending, balances=t.to_dict()["balance"])

@bp.post("/<int:tid>/wallet/credit")
@login_required
@role_required(*STAFF_ROLES)
def wallet_credit(tid):
    t = get_or_404(Teacher, tid, "Teacher")
    amount = to_number(get_json().get("amount"), "amount")
    if amount <= 0:
        raise ApiError("Valid amount is required")
    t.balance_pending += amount
    db.session.commit()
    log.info("credited %s to %s wallet, pending now %s", amount, t.teacher_no, t.balance_pending)
    return ok({"teacher_id": t.id, "teacher_name": t.name, "amount_added": amount},
              f"PKR {amount:g} added to wallet", new_balance=t.balance_pending)

@bp.post("/<int:tid>/wallet/debit")
@login_required
@role_required("owner", "partner")
def wallet_debit(tid):
    t = get_or_404(Teacher, tid, "Teacher")
    data = get_json()
    amount = to_number(data.get("amount"), "amount")
    if amount <= 0:
        raise ApiError("Valid amount is required")
    if amount > t.balance_pending:
        raise ApiError(f"Insufficient balance. Available: PKR {t.balance_pending:g}")
    today = date.today()
    t.balance_pending -= amount
    payment = pay_teacher(t, amount, "wallet", MONTHS[today.month - 1], today.year,
                          notes=data.get("description") or "Wallet Payment")
    commit("Voucher number already used, please retry")
    log.info("paid %s to %s from wallet, voucher %s", amount, t.teacher_no, payment.voucher_id)
    return ok(payment.to_dict(), f"PKR {amount:g} paid successfully", new_balance=t.balance_pending)

# ---------- Payouts ----------
@bp.post("/payout")
@login_required
@role_required("owner", "partner")
def payout():
    data = get_json()
    if not data.get("teacher_id") or not data.get("amount"):
        raise ApiError("Missing required fields: teacher_id, amount")
    t = get_or_404(Teacher, data["teacher_id"], "Teacher")
    amount = to_number(data["amount"], "amount")
    if amount <= 0:
        raise ApiError("Amount must be greater than 0")
    today = date.today()
    month = data.get("month") or MONTHS[today.month - 1]
    if month not in MONTHS:
        raise ApiError("Month must be a full month name")
    year = int(to_number(data.get("year") or today.year, "year", minimum=2000))

    existing = TeacherPayment.query.filter_by(teacher_id=t.id, month=month, year=year,
                                              kind="monthly", status="paid").first()
    if existing:
        log.warning("duplicate payout for %s %s %s", t.teacher_no, month, year)
        raise ApiError(f"Teacher already paid for {month} {year}", 400,
                       {"voucher_id": existing.voucher_id})
    payment = pay_teacher(t, amount, "monthly", month, year, notes=data.get("notes"),
                          payment_method=data.get("payment_method") or "cash")
    commit("Voucher number already used, please retry")
    log.info("monthly payout %s for %s: %s", payment.voucher_id, t.teacher_no, amount)
    return ok(payment.to_dict(), "Payment processed successfully", 201)

@bp.get("/payments/history")
@login_required
@role_required(*STAFF_ROLES)
def payment_history():
    query = TeacherPayment.query
    teacher_id = request.args.get("teacher_id", type=int)
    if teacher_id:
        query = query.filter(TeacherPayment.teacher_id == teacher_id)
    month = request.args.get("month")
    if month:
        query = query.filter(TeacherPayment.month == month)
    year = request.args.get("year", type=int)
    if year:
        query = query.filter(TeacherPayment.year == year)
    limit = min(max(request.args.get("limit", type=int) or 50, 1), 500)
    payments = query.order_by(TeacherPayment.payment_date.desc()).limit(limit).all()
    return ok({"payments": [p.to_dict() for p in payments],
               "total_paid": sum(p.amount_paid for p in payments),
               "count": len(payments)})

@bp.get("/recent-payouts")
@login_required
@role_required(*STAFF_ROLES)
def recent_payouts():
    payments = (TeacherPayment.query.filter_by(status="paid")
                .order_by(TeacherPayment.payment_date.desc(), TeacherPayment.id.desc())
                .limit(10).all())
    return ok([p.to_dict() for p in payments], count=len(payments))

@bp.get("/<int:tid>/revenue")
@login_required
def revenue(tid):
    t = get_or_404(Teacher, tid, "Teacher")
    if current_user.role not in STAFF_ROLES and current_user.teacher_id != t.id:
        raise ApiError("You can only view your own revenue", 403)
    records = (FeeRecord.query.filter_by(teacher_id=t.id)
               .order_by(FeeRecord.created_at.desc()).all())
    totals = db.session.query(
        func.coalesce(func.sum(FeeRecord.amount), 0),
        func.coalesce(func.sum(FeeRecord.teacher_share), 0),
        func.coalesce(func.sum(FeeRecord.academy_share), 0),
    ).filter(FeeRecord.teacher_id == t.id).one()
    return ok({
        "teacher": t.to_dict(),
        "records": [r.to_dict() for r in records],
        "totals": {"collected": totals[0], "teacher_share": totals[1], "academy_share": totals[2]},
    })
