import logging
from datetime import date

from flask import request
from flask_login import login_required, current_user
from sqlalchemy import func

from ...api import ApiError, ok, get_json, get_or_404, commit, to_number
from ...extensions import db
from ...models import Expense, ExpenseShare, Settlement, get_config
from ...models.user import User, STAFF_ROLES
from ...services.splits import expense_shares
from ...utils import utcnow, parse_date
from ..auth.routes import role_required
from . import bp

log = logging.getLogger(__name__)

POOLED = ("academy_cash", "joint_pool")
TEXT_FIELDS = ("title", "category", "vendor_name", "bill_number", "description")

def partner_names():
    rows = User.query.filter(User.partner_key.isnot(None)).all()
    return {u.partner_key: u.full_name for u in rows}

def _apply_shares(expense, split):
    names = partner_names()
    if expense.shares:
        expense.shares = []
        db.session.flush()
    for s in expense_shares(expense.amount, split, expense.paid_by_type):
        expense.shares.append(ExpenseShare(
            partner_key=s["partner_key"],
            partner_name=names.get(s["partner_key"], s["partner_key"].replace("_", " ").title()),
            amount=s["amount"], percentage=s["percentage"], status=s["status"]))

def record_expense(title, category, amount, vendor_name, paid_by_type="academy_cash",
                   status="pending", due_date=None, expense_date=None, **fields):
    """Add an expense with partner shares from the configured expense split.

    The caller commits.
    """
    split = dict(get_config().expense_split)
    if paid_by_type not in POOLED and paid_by_type not in split:
        raise ApiError(f"Unknown payer '{paid_by_type}'")
    today = date.today()
    e = Expense(title=title, category=category, amount=amount, vendor_name=vendor_name,
                paid_by_type=paid_by_type, status=status, split_ratio=split,
                due_date=due_date or today, expense_date=expense_date or today, **fields)
    if status == "paid":
        e.paid_date = utcnow()
    db.session.add(e)
    _apply_shares(e, split)
    return e

def _dates_or_400(data, *keys):
    try:
        return [parse_date(data.get(k)) for k in keys]
    except ValueError:
        raise ApiError("Dates must be YYYY-MM-DD")

@bp.get("")
@login_required
@role_required(*STAFF_ROLES)
def list_expenses():
    query = Expense.query
    category = request.args.get("category")
    if category and category != "all":
        query = query.filter(Expense.category == category)
    start, end = _dates_or_400(request.args, "start_date", "end_date")
    if start:
        query = query.filter(Expense.expense_date >= start)
    if end:
        query = query.filter(Expense.expense_date <= end)
    status = request.args.get("status")
    if status:
        query = query.filter(Expense.status == status)

    total_paid = query.filter(Expense.status == "paid") \
        .with_entities(func.coalesce(func.sum(Expense.amount), 0)).scalar()
    limit = min(max(request.args.get("limit", type=int) or 100, 1), 500)
    items = query.order_by(Expense.expense_date.desc(), Expense.id.desc()).limit(limit).all()
    return ok([e.to_dict() for e in items], count=len(items), total_amount=total_paid)

@bp.get("/<int:eid>")
@login_required
@role_required(*STAFF_ROLES)
def get_expense(eid):
    return ok(get_or_404(Expense, eid, "Expense").to_dict())

@bp.post("")
@login_required
@role_required(*STAFF_ROLES)
def create_expense():
    data = get_json()
    missing = [k for k in ("title", "category", "amount", "vendor_name", "due_date")
               if not data.get(k)]
    if missing:
        raise ApiError("Please provide title, category, amount, vendor name, and due date",
                       errors={k: "required" for k in missing})
    amount = to_number(data["amount"], "amount")
    if amount <= 0:
        raise ApiError("Amount must be greater than 0")
    due, spent = _dates_or_400(data, "due_date", "expense_date")
    status = data.get("status", "pending")
    if status not in ("pending", "paid"):
        raise ApiError("Status must be pending or paid")

    e = record_expense(data["title"].strip(), data["category"], amount, data["vendor_name"],
                       paid_by_type=data.get("paid_by_type") or "academy_cash", status=status,
                       due_date=due, expense_date=spent,
                       bill_number=data.get("bill_number"), description=data.get("description"))
    db.session.commit()
    log.info("expense %s (%s) %s recorded by %s, payer %s", e.id, e.category, e.amount,
             current_user.username, e.paid_by_type)
    msg = "Expense recorded"
    if e.has_partner_debt:
        msg += ", partner shares are owed to the payer"
    return ok(e.to_dict(), msg, 201)

@bp.put("/<int:eid>")
@login_required
@role_required(*STAFF_ROLES)
def update_expense(eid):
    e = get_or_404(Expense, eid, "Expense")
    data = get_json()
    for key in TEXT_FIELDS:
        if key in data:
            setattr(e, key, data[key])
    if not (e.title or "").strip() or not e.category or not e.vendor_name:
        raise ApiError("Title, category and vendor name cannot be empty")
    if "due_date" in data or "expense_date" in data:
        due, spent = _dates_or_400(data, "due_date", "expense_date")
        e.due_date = due or e.due_date
        e.expense_date = spent or e.expense_date

    reshare = False
    if "amount" in data:
        amount = to_number(data["amount"], "amount")
        if amount <= 0:
            raise ApiError("Amount must be greater than 0")
        reshare = amount != e.amount
        e.amount = amount
    if "paid_by_type" in data and data["paid_by_type"] != e.paid_by_type:
        if data["paid_by_type"] not in POOLED and data["paid_by_type"] not in (e.split_ratio or {}):
            raise ApiError(f"Unknown payer '{data['paid_by_type']}'")
        e.paid_by_type = data["paid_by_type"]
        reshare = True
    if reshare:
        _apply_shares(e, e.split_ratio or {})
    db.session.commit()
    return ok(e.to_dict(), "Expense updated")

@bp.patch("/<int:eid>/mark-paid")
@login_required
@role_required(*STAFF_ROLES)
def mark_paid(eid):
    e = get_or_404(Expense, eid, "Expense")
    if e.status == "paid":
        raise ApiError("Expense is already marked as paid")
    e.status = "paid"
    e.paid_date = utcnow()
    db.session.commit()
    log.info("expense %s marked paid", e.id)
    return ok(e.to_dict(), "Expense marked as paid")

@bp.patch("/<int:eid>/shares/<partner_key>/settle")
@login_required
@role_required("owner", "partner")
def settle_share(eid, partner_key):
    e = get_or_404(Expense, eid, "Expense")
    share = next((s for s in e.shares if s.partner_key == partner_key), None)
    if share is None:
        raise ApiError("No share for this partner", 404)
    if share.outstanding <= 0:
        raise ApiError("This share has nothing outstanding")
    share.settle(share.outstanding)
    db.session.commit()
    log.info("partner %s settled %s on expense %s", partner_key, share.amount, e.id)
    return ok(e.to_dict(), f"{share.partner_name} settled their share")

@bp.delete("/<int:eid>")
@login_required
@role_required("owner")
def delete_expense(eid):
    e = get_or_404(Expense, eid, "Expense")
    db.session.delete(e)
    db.session.commit()
    return ok(message="Expense deleted")

# ---------- Partner settlements ----------
SETTLEMENT_METHODS = ("cash", "bank_transfer", "adjustment")

def _unpaid_shares(partner_key=None):
    query = ExpenseShare.query.join(Expense).filter(ExpenseShare.status == "unpaid")
    if partner_key:
        query = query.filter(ExpenseShare.partner_key == partner_key)
    return query.order_by(Expense.expense_date, Expense.id).all()

def _debts():
    debts = {}
    for share in _unpaid_shares():
        entry = debts.setdefault(share.partner_key, {
            "partner_key": share.partner_key, "partner": share.partner_name,
            "outstanding": 0, "expenses": 0})
        entry["outstanding"] += share.outstanding
        entry["expenses"] += 1
    return debts

@bp.get("/settlements/overview")
@login_required
@role_required("owner", "partner")
def settlement_overview():
    debts = _debts()
    settled = dict(db.session.query(Settlement.partner_key, func.sum(Settlement.amount))
                   .filter(Settlement.status == "completed")
                   .group_by(Settlement.partner_key).all())
    names = partner_names()
    partners = []
    for key in sorted(set(names) | set(debts) | set(settled)):
        row = debts.get(key, {"partner_key": key, "partner": names.get(key, key),
                              "outstanding": 0, "expenses": 0})
        row["settled_total"] = settled.get(key, 0)
        partners.append(row)
    recent = (Settlement.query.filter_by(status="completed")
              .order_by(Settlement.created_at.desc(), Settlement.id.desc()).limit(10).all())
    return ok({"partners": partners,
               "total_outstanding": sum(p["outstanding"] for p in partners),
               "recent_settlements": [s.to_dict() for s in recent]})

@bp.post("/settlements/record")
@login_required
@role_required("owner")
def record_settlement():
    data = get_json()
    partner_key = str(data.get("partner_key") or "").strip()
    if not partner_key:
        raise ApiError("Select the partner who paid", errors={"partner_key": "required"})
    amount = to_number(data.get("amount"), "amount")
    if amount <= 0:
        raise ApiError("Amount must be greater than 0")
    method = data.get("method") or "cash"
    if method not in SETTLEMENT_METHODS:
        raise ApiError(f"Method must be one of {', '.join(SETTLEMENT_METHODS)}")

    shares = _unpaid_shares(partner_key)
    expense_ids = data.get("expense_ids")
    if expense_ids is not None:
        if not isinstance(expense_ids, list):
            raise ApiError("expense_ids must be a list")
        wanted = {eid: i for i, eid in enumerate(expense_ids)}
        shares = sorted((s for s in shares if s.expense_id in wanted),
                        key=lambda s: wanted[s.expense_id])
    outstanding = sum(s.outstanding for s in shares)
    if outstanding <= 0:
        raise ApiError("This partner has no outstanding expense shares")
    if amount > outstanding:
        raise ApiError(f"Amount exceeds the outstanding PKR {outstanding:g}")

    applied, left = [], amount
    for share in shares:
        if left <= 0:
            break
        used = share.settle(left)
        left -= used
        applied.append({"expense_id": share.expense_id, "title": share.expense.title,
                        "amount": used, "cleared": share.status == "paid"})
    s = Settlement(partner_key=partner_key, partner_name=shares[0].partner_name, amount=amount,
                   method=method, applied=applied, notes=data.get("notes"),
                   recorded_by_id=current_user.id)
    db.session.add(s)
    commit("Settlement could not be saved")
    remaining = _debts().get(partner_key, {}).get("outstanding", 0)
    log.info("settlement %s from %s: %s over %d expenses, %s still owed", s.id, partner_key,
             amount, len(applied), remaining)
    return ok({"settlement": s.to_dict(), "remaining_debt": remaining},
              f"Settlement recorded: PKR {amount:g} from {s.partner_name}", 201)

@bp.get("/settlements/history")
@login_required
@role_required("owner", "partner")
def settlement_history():
    query = Settlement.query
    partner_key = request.args.get("partner_key")
    if partner_key:
        query = query.filter(Settlement.partner_key == partner_key)
    items = query.order_by(Settlement.created_at.desc(), Settlement.id.desc()).all()
    return ok([s.to_dict() for s in items], count=len(items))

@bp.get("/partner-debts")
@login_required
@role_required("owner", "partner")
def partner_debts():
    expenses = []
    for share in _unpaid_shares():
        if not expenses or expenses[-1]["id"] != share.expense_id:
            expenses.append(share.expense.to_dict())
    debts = _debts()
    return ok(expenses, count=len(expenses),
              debt_summary={k: v["outstanding"] for k, v in debts.items()},
              total_debt=sum(v["outstanding"] for v in debts.values()))
