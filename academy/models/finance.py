from ..extensions import db
from ..utils import utcnow, iso

class FeeRecord(db.Model):
    __tablename__ = "fee_record"
    id = db.Column(db.Integer, primary_key=True)
    receipt_no = db.Column(db.String(32), unique=True, nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("student.id"), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey("teacher.id", ondelete="SET NULL"))
    collected_by_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    amount = db.Column(db.Float, nullable=False)
    month = db.Column(db.String(16), nullable=False)
    subject = db.Column(db.String(64), nullable=False, default="General")
    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    split_type = db.Column(db.String(32), nullable=False)
    teacher_share = db.Column(db.Float, nullable=False, default=0.0)
    academy_share = db.Column(db.Float, nullable=False, default=0.0)
    notes = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    student = db.relationship("Student", back_populates="fee_records")
    teacher = db.relationship("Teacher")
    collected_by = db.relationship("User")
    refunds = db.relationship("Refund", back_populates="fee_record", order_by="Refund.id")
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_fee_amount_pos"),
    )

    @property
    def refunded_amount(self):
        return sum(r.amount for r in self.refunds)

    def to_dict(self):
        return {
            "id": self.id,
            "receipt_no": self.receipt_no,
            "student_id": self.student_id,
            "student_name": self.student.name if self.student else None,
            "teacher_id": self.teacher_id,
            "teacher_name": self.teacher.name if self.teacher else None,
            "collected_by": self.collected_by.full_name if self.collected_by else None,
            "amount": self.amount,
            "month": self.month,
            "subject": self.subject,
            "payment_method": self.payment_method,
            "split_type": self.split_type,
            "teacher_share": self.teacher_share,
            "academy_share": self.academy_share,
            "refunded_amount": self.refunded_amount,
            "notes": self.notes,
            "created_at": iso(self.created_at),
        }

class PrintRecord(db.Model):
    __tablename__ = "print_record"
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("student.id"), nullable=False)
    receipt_id = db.Column(db.String(64), unique=True, nullable=False)
    version = db.Column(db.Integer, nullable=False)
    printed_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    student = db.relationship("Student", back_populates="prints")

    def to_dict(self):
        return {"receipt_id": self.receipt_id, "version": self.version,
                "printed_at": iso(self.printed_at)}

class TeacherPayment(db.Model):
    __tablename__ = "teacher_payment"
    id = db.Column(db.Integer, primary_key=True)
    voucher_id = db.Column(db.String(32), unique=True, nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey("teacher.id"), nullable=False)
    amount_paid = db.Column(db.Float, nullable=False)
    compensation_type = db.Column(db.String(16), nullable=False, default="percentage")
    month = db.Column(db.String(16), nullable=False)   # "January"
    year = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    status = db.Column(db.String(16), nullable=False, default="paid")
    kind = db.Column(db.String(16), nullable=False, default="monthly")   # monthly|wallet
    notes = db.Column(db.String(255))
    payment_date = db.Column(db.DateTime, nullable=False, default=utcnow)

    teacher = db.relationship("Teacher", back_populates="payments")

    def to_dict(self):
        return {
            "id": self.id,
            "voucher_id": self.voucher_id,
            "teacher_id": self.teacher_id,
            "teacher_name": self.teacher.name if self.teacher else None,
            "subject": self.teacher.subject if self.teacher else None,
            "amount_paid": self.amount_paid,
            "compensation_type": self.compensation_type,
            "month": self.month,
            "year": self.year,
            "payment_method": self.payment_method,
            "status": self.status,
            "kind": self.kind,
            "notes": self.notes,
            "payment_date": iso(self.payment_date),
        }

class PayoutRequest(db.Model):
    __tablename__ = "payout_request"
    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey("teacher.id"), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")   # pending|approved|rejected
    requested_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    decided_by_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    decided_at = db.Column(db.DateTime)
    notes = db.Column(db.String(255))
    expense_id = db.Column(db.Integer, db.ForeignKey("expense.id", ondelete="SET NULL"))

    teacher = db.relationship("Teacher", back_populates="payout_requests")
    decided_by = db.relationship("User")
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_payout_amount_pos"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "teacher_name": self.teacher.name if self.teacher else None,
            "amount": self.amount,
            "status": self.status,
            "requested_at": iso(self.requested_at),
            "decided_by": self.decided_by.full_name if self.decided_by else None,
            "decided_at": iso(self.decided_at),
            "notes": self.notes,
            "expense_id": self.expense_id,
        }

class Expense(db.Model):
    __tablename__ = "expense"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(128), nullable=False)
    category = db.Column(db.String(64), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    vendor_name = db.Column(db.String(128), nullable=False)
    bill_number = db.Column(db.String(32))
    description = db.Column(db.String(255))
    due_date = db.Column(db.Date, nullable=False)
    expense_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")   # pending|paid
    paid_date = db.Column(db.DateTime)
    paid_by_type = db.Column(db.String(32), nullable=False, default="academy_cash")
    split_ratio = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    shares = db.relationship("ExpenseShare", back_populates="expense",
                             cascade="all, delete-orphan", order_by="ExpenseShare.id")
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_expense_amount_pos"),
    )

    @property
    def has_partner_debt(self):
        return any(s.status == "unpaid" for s in self.shares)

    def to_dict(self, with_shares=True):
        d = {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "amount": self.amount,
            "vendor_name": self.vendor_name,
            "bill_number": self.bill_number,
            "description": self.description,
            "due_date": iso(self.due_date),
            "expense_date": iso(self.expense_date),
            "status": self.status,
            "paid_date": iso(self.paid_date),
            "paid_by_type": self.paid_by_type,
            "split_ratio": self.split_ratio or {},
            "has_partner_debt": self.has_partner_debt,
            "created_at": iso(self.created_at),
        }
        if with_shares:
            d["shares"] = [s.to_dict() for s in self.shares]
        return d

class ExpenseShare(db.Model):
    __tablename__ = "expense_share"
    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expense.id"), nullable=False)
    partner_key = db.Column(db.String(32), nullable=False)
    partner_name = db.Column(db.String(128), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    percentage = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(8), nullable=False)   # n/a|paid|unpaid
    settled_amount = db.Column(db.Float, nullable=False, default=0.0)

    expense = db.relationship("Expense", back_populates="shares")
    __table_args__ = (
        db.UniqueConstraint("expense_id", "partner_key", name="uq_expense_partner"),
    )

    @property
    def outstanding(self):
        if self.status != "unpaid":
            return 0.0
        return round(self.amount - (self.settled_amount or 0), 2)

    def settle(self, amount):
        """Apply up to ``amount`` to this share and return what was used."""
        used = min(amount, self.outstanding)
        self.settled_amount = (self.settled_amount or 0) + used
        if self.outstanding <= 0:
            self.status = "paid"
        return used

    def to_dict(self):
        return {"partner_key": self.partner_key, "partner": self.partner_name,
                "amount": self.amount, "percentage": self.percentage, "status": self.status,
                "settled_amount": self.settled_amount or 0, "outstanding": self.outstanding}

class Refund(db.Model):
    __tablename__ = "refund"
    id = db.Column(db.Integer, primary_key=True)
    refund_no = db.Column(db.String(32), unique=True, nullable=False)
    fee_record_id = db.Column(db.Integer, db.ForeignKey("fee_record.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("student.id"), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    teacher_reversed = db.Column(db.Float, nullable=False, default=0.0)
    pool_reversed = db.Column(db.Float, nullable=False, default=0.0)
    reason = db.Column(db.String(255), nullable=False)
    refunded_by_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    fee_record = db.relationship("FeeRecord", back_populates="refunds")
    student = db.relationship("Student")
    refunded_by = db.relationship("User")
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_refund_amount_pos"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "refund_no": self.refund_no,
            "receipt_no": self.fee_record.receipt_no if self.fee_record else None,
            "student_id": self.student_id,
            "student_name": self.student.name if self.student else None,
            "amount": self.amount,
            "teacher_reversed": self.teacher_reversed,
            "pool_reversed": self.pool_reversed,
            "reason": self.reason,
            "refunded_by": self.refunded_by.full_name if self.refunded_by else None,
            "created_at": iso(self.created_at),
        }

class DailyClosing(db.Model):
    """A partner's end-of-day cash handover, verified later by the owner."""
    __tablename__ = "daily_closing"
    id = db.Column(db.Integer, primary_key=True)
    partner_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    total_amount = db.Column(db.Float, nullable=False, default=0.0)
    partner_share = db.Column(db.Float, nullable=False, default=0.0)
    handover_amount = db.Column(db.Float, nullable=False, default=0.0)
    breakdown = db.Column(db.JSON, nullable=False, default=dict)
    record_count = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(24), nullable=False, default="pending_verification")
    notes = db.Column(db.String(255))
    verified_by_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    verified_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    partner = db.relationship("User", foreign_keys=[partner_id])
    verified_by = db.relationship("User", foreign_keys=[verified_by_id])
    __table_args__ = (
        db.UniqueConstraint("partner_id", "date", name="uq_closing_partner_date"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "partner_id": self.partner_id,
            "partner": self.partner.full_name if self.partner else None,
            "date": iso(self.date),
            "total_amount": self.total_amount,
            "partner_share": self.partner_share,
            "handover_amount": self.handover_amount,
            "breakdown": self.breakdown or {},
            "record_count": self.record_count,
            "status": self.status,
            "notes": self.notes,
            "verified_by": self.verified_by.full_name if self.verified_by else None,
            "verified_at": iso(self.verified_at),
            "created_at": iso(self.created_at),
        }

class Settlement(db.Model):
    __tablename__ = "settlement"
    id = db.Column(db.Integer, primary_key=True)
    partner_key = db.Column(db.String(32), nullable=False)
    partner_name = db.Column(db.String(128), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    method = db.Column(db.String(16), nullable=False, default="cash")   # cash|bank_transfer|adjustment
    applied = db.Column(db.JSON, nullable=False, default=list)   # [{"expense_id", "title", "amount"}]
    notes = db.Column(db.String(255))
    status = db.Column(db.String(16), nullable=False, default="completed")
    recorded_by_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    recorded_by = db.relationship("User")
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_settlement_amount_pos"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "partner_key": self.partner_key,
            "partner": self.partner_name,
            "amount": self.amount,
            "method": self.method,
            "applied": self.applied or [],
            "notes": self.notes,
            "status": self.status,
            "recorded_by": self.recorded_by.full_name if self.recorded_by else None,
            "created_at": iso(self.created_at),
        }
