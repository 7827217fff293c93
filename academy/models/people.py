from ..extensions import db
from ..utils import utcnow, iso

FEE_STATUSES = ("paid", "partial", "unpaid")

class Student(db.Model):
    __tablename__ = "student"
    id = db.Column(db.Integer, primary_key=True)
    student_no = db.Column(db.String(32), unique=True, nullable=False)
    name = db.Column(db.String(64), nullable=False)
    father_name = db.Column(db.String(64))
    gender = db.Column(db.String(8), nullable=False, default="Male")
    group = db.Column(db.String(32))
    subjects = db.Column(db.JSON, nullable=False, default=list)
    parent_cell = db.Column(db.String(32))
    student_cell = db.Column(db.String(32))
    address = db.Column(db.String(255))
    admission_date = db.Column(db.Date)
    seat_number = db.Column(db.String(16))
    status = db.Column(db.String(16), nullable=False, default="active")   # active|withdrawn

    # fee snapshot at admission; session_rate is the list price before any discount
    session_rate = db.Column(db.Float)
    discount_amount = db.Column(db.Float, nullable=False, default=0.0)
    total_fee = db.Column(db.Float, nullable=False, default=0.0)
    paid_amount = db.Column(db.Float, nullable=False, default=0.0)
    fee_status = db.Column(db.String(16), nullable=False, default="unpaid")

    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id"))
    session_id = db.Column(db.Integer, db.ForeignKey("academic_session.id"))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    school_class = db.relationship("SchoolClass", back_populates="students")
    session = db.relationship("AcademicSession")
    auth = db.relationship("User", back_populates="student", uselist=False,
                           cascade="all, delete-orphan")
    fee_records = db.relationship("FeeRecord", back_populates="student",
                                  cascade="all, delete-orphan")
    prints = db.relationship("PrintRecord", back_populates="student",
                             cascade="all, delete-orphan", order_by="PrintRecord.version")
    exam_attempts = db.relationship("ExamAttempt", back_populates="student",
                                    cascade="all, delete-orphan")
    seat = db.relationship("Seat", back_populates="student", uselist=False)
    __table_args__ = (
        db.CheckConstraint("paid_amount >= 0", name="ck_student_paid_nonneg"),
        db.CheckConstraint("total_fee >= 0", name="ck_student_total_nonneg"),
    )

    @property
    def balance(self):
        return max(0.0, (self.total_fee or 0) - (self.paid_amount or 0))

    def to_dict(self):
        return {
            "id": self.id,
            "student_no": self.student_no,
            "name": self.name,
            "father_name": self.father_name,
            "gender": self.gender,
            "group": self.group,
            "subjects": self.subjects or [],
            "parent_cell": self.parent_cell,
            "student_cell": self.student_cell,
            "address": self.address,
            "admission_date": iso(self.admission_date),
            "seat_number": self.seat_number,
            "booked_seat": self.seat.label if self.seat else None,
            "status": self.status,
            "session_rate": self.session_rate,
            "discount_amount": self.discount_amount,
            "total_fee": self.total_fee,
            "paid_amount": self.paid_amount,
            "balance": self.balance,
            "fee_status": self.fee_status,
            "class_id": self.class_id,
            "class_title": self.school_class.title if self.school_class else None,
            "session_id": self.session_id,
            "session_name": self.session.name if self.session else None,
            "created_at": iso(self.created_at),
        }

class Teacher(db.Model):
    __tablename__ = "teacher"
    id = db.Column(db.Integer, primary_key=True)
    teacher_no = db.Column(db.String(32), unique=True, nullable=False)
    name = db.Column(db.String(64), nullable=False)
    subject = db.Column(db.String(64))
    phone = db.Column(db.String(32))
    role_kind = db.Column(db.String(16), nullable=False, default="staff")   # staff|partner|owner
    compensation_type = db.Column(db.String(16), nullable=False, default="percentage")   # percentage|fixed
    teacher_share = db.Column(db.Float)   # None -> academy default
    fixed_salary = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(16), nullable=False, default="active")

    balance_floating = db.Column(db.Float, nullable=False, default=0.0)
    balance_verified = db.Column(db.Float, nullable=False, default=0.0)
    balance_pending = db.Column(db.Float, nullable=False, default=0.0)
    total_paid = db.Column(db.Float, nullable=False, default=0.0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    auth = db.relationship("User", back_populates="teacher", uselist=False,
                           cascade="all, delete-orphan")
    timetable = db.relationship("TimetableEntry", back_populates="teacher",
                                cascade="all, delete-orphan")
    payments = db.relationship("TeacherPayment", back_populates="teacher",
                               cascade="all, delete-orphan")
    payout_requests = db.relationship("PayoutRequest", back_populates="teacher",
                                      cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "teacher_no": self.teacher_no,
            "name": self.name,
            "subject": self.subject,
            "phone": self.phone,
            "role_kind": self.role_kind,
            "compensation": {
                "type": self.compensation_type,
                "teacher_share": self.teacher_share,
                "fixed_salary": self.fixed_salary,
            },
            "status": self.status,
            "balance": {
                "floating": self.balance_floating,
                "verified": self.balance_verified,
                "pending": self.balance_pending,
            },
            "total_paid": self.total_paid,
            "user_id": self.auth.id if self.auth else None,
        }
