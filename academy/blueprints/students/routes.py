import logging
import secrets
import string
from datetime import date
from io import BytesIO

from flask import request, send_file
from flask_login import login_required, current_user
from sqlalchemy import or_, func

from ...api import (ApiError, ok, get_json, get_or_404, commit, page_args, paginate, to_number,
                   next_serial)
from ...extensions import db
from ...models import (Student, SchoolClass, AcademicSession, Teacher, FeeRecord,
                       PrintRecord, SessionPrice, get_config)
from ...models.user import STAFF_ROLES
from ...services.pricing import resolve_fee, fee_status, seat_prefix
from ...services.receipts import fee_receipt_pdf, admission_receipt_pdf
from ...services.splits import calculate_revenue_split, distribute_pool
from ...utils import utcnow, parse_date
from ..auth.routes import role_required, new_account
from . import bp

log = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "father_name", "gender", "group", "parent_cell", "student_cell", "address")
TOKEN_ALPHABET = string.ascii_uppercase + string.digits

def _next_student_no():
    return next_serial(Student.student_no, "STU-")

def _next_seat(gender):
    return next_serial(Student.seat_number, seat_prefix(gender), width=3)

def _subject_names(raw):
    if not isinstance(raw, list):
        return []
    return [s if isinstance(s, str) else str((s or {}).get("name") or "") for s in raw]

def _receipt_no(now):
    return next_serial(FeeRecord.receipt_no, f"RCP-{now:%Y%m%d}-")

def _teacher_role(teacher):
    if teacher is None:
        return "staff"
    if teacher.auth is not None and teacher.auth.role in ("owner", "partner"):
        return teacher.auth.role
    return teacher.role_kind

# ---------- Admission ----------
@bp.post("")
@login_required
@role_required(*STAFF_ROLES)
def admit_student():
    data = get_json()
    name = str(data.get("name") or "").strip()
    errors = {}
    if not name:
        errors["name"] = "Student name is required"
    if not str(data.get("parent_cell") or "").strip():
        errors["parent_cell"] = "Parent contact is required"
    klass = db.session.get(SchoolClass, data.get("class_id")) if data.get("class_id") else None
    if klass is None:
        errors["class_id"] = "Select a valid class"
    if errors:
        raise ApiError("Admission form is incomplete", 400, errors)

    session_id = data.get("session_id") or klass.session_id
    if db.session.get(AcademicSession, session_id) is None:
        raise ApiError("Invalid session")
    sp = SessionPrice.query.filter_by(session_id=session_id).one_or_none()
    cfg = get_config()

    custom_fee = to_number(data.get("custom_fee"), "custom_fee", minimum=0, allow_none=True)
    posted_total = to_number(data.get("total_fee"), "total_fee", minimum=0, allow_none=True)
    subjects = _subject_names(data.get("subjects"))
    quote = resolve_fee(session_price=sp.price if sp else None, custom_fee=custom_fee,
                        custom_mode=bool(data.get("custom_fee_mode")),
                        class_subjects=klass.subjects, default_fees=cfg.default_subject_fees,
                        selected_subjects=subjects, posted_total=posted_total)
    paid = to_number(data.get("paid_amount") or 0, "paid_amount", minimum=0)
    if paid > quote.total_fee:
        raise ApiError("Received amount cannot exceed total fee", 400,
                       {"paid_amount": "exceeds total fee"})

    try:
        admission_date = parse_date(data.get("admission_date")) or date.today()
    except ValueError:
        raise ApiError("admission_date must be YYYY-MM-DD")

    gender = data.get("gender") or "Male"
    s = Student(student_no=_next_student_no(), name=name, gender=gender,
                father_name=data.get("father_name"), group=data.get("group") or klass.group,
                subjects=subjects, parent_cell=data.get("parent_cell"),
                student_cell=data.get("student_cell"), address=data.get("address"),
                admission_date=admission_date, seat_number=_next_seat(gender),
                session_rate=quote.session_rate, discount_amount=quote.discount,
                total_fee=quote.total_fee, paid_amount=paid,
                fee_status=fee_status(paid, quote.total_fee),
                class_id=klass.id, session_id=session_id)
    db.session.add(s)
    new_account(s.student_no, name, "student", student=s)
    commit("Student number already taken, please retry")
    log.info("admitted %s (%s) total=%s paid=%s source=%s", s.student_no, s.name,
             s.total_fee, s.paid_amount, quote.source)
    d = s.to_dict()
    d["fee_source"] = quote.source
    return ok(d, f"Admission complete, student number {s.student_no}", 201)

# ---------- Records ----------
@bp.get("")
@login_required
@role_required(*STAFF_ROLES)
def list_students():
    page, per, sort, order = page_args("created_at", "desc")
    query = Student.query
    kw = (request.args.get("q") or "").strip()
    if kw:
        like = f"%{kw}%"
        query = query.filter(or_(Student.name.ilike(like), Student.student_no.ilike(like),
                                 Student.father_name.ilike(like), Student.parent_cell.ilike(like)))
    class_id = request.args.get("class", type=int)
    if class_id:
        query = query.filter(Student.class_id == class_id)
    session_id = request.args.get("session", type=int)
    if session_id:
        query = query.filter(Student.session_id == session_id)
    status_ = request.args.get("fee_status")
    if status_:
        query = query.filter(Student.fee_status == status_)
    status = request.args.get("status")
    if status:
        query = query.filter(Student.status == status)

    sort_map = {
        "created_at": Student.created_at,
        "student_no": Student.student_no,
        "name": Student.name,
        "total_fee": Student.total_fee,
        "paid": Student.paid_amount,
        "seat": Student.seat_number,
    }
    col = sort_map.get(sort, Student.created_at)
    query = query.order_by(col.desc() if order == "desc" else col.asc())
    items, meta = paginate(query, page, per)
    return ok([s.to_dict() for s in items], pagination=meta)

@bp.get("/<int:sid>")
@login_required
@role_required(*STAFF_ROLES)
def get_student(sid):
    s = get_or_404(Student, sid, "Student")
    d = s.to_dict()
    d["print_history"] = [p.to_dict() for p in s.prints]
    return ok(d)

@bp.put("/<int:sid>")
@login_required
@role_required(*STAFF_ROLES)
def update_student(sid):
    s = get_or_404(Student, sid, "Student")
    data = get_json()
    for key in PROFILE_FIELDS:
        if key in data:
            setattr(s, key, data[key])
    if not (s.name or "").strip():
        raise ApiError("Student name is required")
    if "subjects" in data:
        s.subjects = _subject_names(data["subjects"])
    if "class_id" in data:
        klass = get_or_404(SchoolClass, data["class_id"], "Class")
        if s.seat is not None and klass.id != s.class_id:
            s.seat.release()
        s.class_id = klass.id
    if "total_fee" in data or "paid_amount" in data or "discount_amount" in data:
        total = to_number(data.get("total_fee", s.total_fee), "total_fee", minimum=0)
        paid = to_number(data.get("paid_amount", s.paid_amount), "paid_amount", minimum=0)
        if paid > total:
            raise ApiError("Received amount cannot exceed total fee")
        s.total_fee, s.paid_amount = total, paid
        s.discount_amount = to_number(data.get("discount_amount", s.discount_amount),
                                      "discount_amount", minimum=0)
        s.fee_status = fee_status(paid, total)
    db.session.commit()
    return ok(s.to_dict(), "Student updated")

@bp.delete("/<int:sid>")
@login_required
@role_required("owner")
def delete_student(sid):
    s = get_or_404(Student, sid, "Student")
    if s.fee_records:
        raise ApiError("Student has fee records, withdraw the student instead", 409)
    db.session.delete(s)
    db.session.commit()
    log.info("student %s deleted by %s", s.student_no, current_user.username)
    return ok(message="Student deleted")

@bp.patch("/<int:sid>/withdraw")
@login_required
@role_required(*STAFF_ROLES)
def withdraw_student(sid):
    s = get_or_404(Student, sid, "Student")
    if s.status == "withdrawn":
        raise ApiError("Student is already withdrawn")
    s.status = "withdrawn"
    if s.auth is not None:
        s.auth.is_active_flag = False
    if s.seat is not None:
        s.seat.release()
    db.session.commit()
    log.info("student %s withdrawn", s.student_no)
    return ok(s.to_dict(), "Student withdrawn")

# ---------- Fees ----------
@bp.post("/<int:sid>/collect-fee")
@login_required
@role_required(*STAFF_ROLES)
def collect_fee(sid):
    s = get_or_404(Student, sid, "Student")
    data = get_json()
    month = str(data.get("month") or "").strip()
    if not data.get("amount") or not month:
        raise ApiError("Amount and month required")
    amount = to_number(data.get("amount"), "amount")
    if amount <= 0:
        raise ApiError("Amount must be greater than 0")
    if s.status == "withdrawn":
        raise ApiError("Cannot collect fees from a withdrawn student")

    teacher = None
    if data.get("teacher_id"):
        teacher = get_or_404(Teacher, data["teacher_id"], "Teacher")
    cfg = get_config()
    role = _teacher_role(teacher)
    subject = str(data.get("subject") or "").strip() or "General"
    split = calculate_revenue_split(
        amount, role,
        teacher_share=cfg.teacher_share, partner_100_rule=cfg.partner_100_rule,
        etea_commission=cfg.etea_commission,
        session_type=s.session.session_type if s.session else None,
        grade_level=s.school_class.grade_level if s.school_class else None,
        subject=subject,
        compensation_type=teacher.compensation_type if teacher else "percentage",
        own_share=teacher.teacher_share if teacher else None,
        tuition_pool=cfg.tuition_pool_split, etea_pool=cfg.etea_pool_split)
    if teacher is None:
        # no teacher to credit, the whole fee stays with the academy
        split.pool_revenue += split.teacher_revenue
        split.teacher_commission = split.teacher_tuition = 0
        pool_split = cfg.etea_pool_split if split.is_etea else cfg.tuition_pool_split
        split.pool = distribute_pool(split.pool_revenue, pool_split)

    now = utcnow()
    rec = FeeRecord(receipt_no=_receipt_no(now), student=s, teacher=teacher,
                    collected_by_id=current_user.id, amount=amount, month=month,
                    subject=subject, payment_method=data.get("payment_method") or "cash",
                    split_type=split.split_type, teacher_share=split.teacher_revenue,
                    academy_share=split.pool_revenue, notes=data.get("notes"), created_at=now)
    db.session.add(rec)

    s.paid_amount = (s.paid_amount or 0) + amount
    s.fee_status = fee_status(s.paid_amount, s.total_fee)

    if teacher is not None and split.teacher_revenue > 0:
        if role in ("owner", "partner"):
            teacher.balance_verified += split.teacher_revenue
        else:
            teacher.balance_floating += split.teacher_revenue
    commit("Receipt number already used, please retry")
    log.info("fee %s collected for %s: %s (%s) teacher=%s pool=%s", rec.receipt_no,
             s.student_no, amount, split.split_type, split.teacher_revenue, split.pool_revenue)
    return ok({"fee_record": rec.to_dict(), "split": split.to_dict(), "student": s.to_dict()},
              f"Fee collected! Receipt: {rec.receipt_no}", 201)

@bp.get("/<int:sid>/fees")
@login_required
@role_required(*STAFF_ROLES)
def fee_history(sid):
    s = get_or_404(Student, sid, "Student")
    records = (FeeRecord.query.filter_by(student_id=s.id)
               .order_by(FeeRecord.created_at.desc(), FeeRecord.id.desc()).all())
    total = db.session.query(func.coalesce(func.sum(FeeRecord.amount), 0)) \
        .filter(FeeRecord.student_id == s.id).scalar()
    return ok([r.to_dict() for r in records], count=len(records), total_collected=total)

# ---------- Receipts ----------
@bp.post("/<int:sid>/print")
@login_required
@role_required(*STAFF_ROLES)
def track_print(sid):
    s = get_or_404(Student, sid, "Student")
    version = len(s.prints) + 1
    suffix = "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(4))
    rec = PrintRecord(student=s, version=version,
                      receipt_id=f"TOKEN-{s.student_no}-{suffix}-V{version}")
    db.session.add(rec)
    commit("Print token collision, please retry")
    return ok({"receipt_id": rec.receipt_id, "version": version, "student": s.to_dict()})

@bp.get("/by-token/<token>")
@login_required
@role_required(*STAFF_ROLES)
def find_by_token(token):
    rec = PrintRecord.query.filter_by(receipt_id=token).one_or_none()
    if rec is None:
        raise ApiError("Invalid token", 404)
    d = rec.student.to_dict()
    d["print"] = rec.to_dict()
    return ok(d)

def _academy():
    cfg = get_config()
    db.session.commit()
    return {"name": cfg.academy_name, "address": cfg.academy_address, "phone": cfg.academy_phone}

def _pdf(data, filename):
    return send_file(BytesIO(data), mimetype="application/pdf", download_name=filename)

@bp.get("/<int:sid>/fees/<int:rid>/receipt.pdf")
@login_required
@role_required(*STAFF_ROLES)
def fee_receipt(sid, rid):
    rec = get_or_404(FeeRecord, rid, "Fee record")
    if rec.student_id != sid:
        raise ApiError("Fee record not found", 404)
    return _pdf(fee_receipt_pdf(rec, _academy()), f"{rec.receipt_no}.pdf")

@bp.get("/<int:sid>/prints/<token>/receipt.pdf")
@login_required
@role_required(*STAFF_ROLES)
def admission_receipt(sid, token):
    rec = PrintRecord.query.filter_by(receipt_id=token, student_id=sid).one_or_none()
    if rec is None:
        raise ApiError("Invalid token", 404)
    log.info("admission receipt %s rendered", rec.receipt_id)
    return _pdf(admission_receipt_pdf(rec.student, rec, _academy()), f"{rec.receipt_id}.pdf")
