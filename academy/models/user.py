from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from ..extensions import db
from ..utils import utcnow, iso

ROLES = ("owner", "partner", "staff", "teacher", "student")
STAFF_ROLES = ("owner", "partner", "staff")

class User(UserMixin, db.Model):
    __tablename__ = "user"
    id = db.Column(db.Integer, primary_key=True)
    user_code = db.Column(db.String(32), unique=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    full_name = db.Column(db.String(128), nullable=False)
    role = db.Column(db.String(16), nullable=False)
    phone = db.Column(db.String(32))
    email = db.Column(db.String(128))
    partner_key = db.Column(db.String(32), unique=True)   # owner/partner only, keys the split tables
    is_active_flag = db.Column("is_active", db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    student_id = db.Column(db.Integer, db.ForeignKey("student.id", ondelete="CASCADE"))
    teacher_id = db.Column(db.Integer, db.ForeignKey("teacher.id", ondelete="CASCADE"))

    student = db.relationship("Student", back_populates="auth")
    teacher = db.relationship("Teacher", back_populates="auth")
    __table_args__ = (
        db.CheckConstraint(f"role IN {ROLES}", name="ck_user_role"),
    )

    @property
    def is_active(self):
        return bool(self.is_active_flag)

    def set_password(self, raw):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw):
        return check_password_hash(self.password_hash, raw or "")

    def to_dict(self):
        return {
            "id": self.id,
            "user_code": self.user_code,
            "username": self.username,
            "full_name": self.full_name,
            "role": self.role,
            "phone": self.phone,
            "email": self.email,
            "partner_key": self.partner_key,
            "is_active": self.is_active,
            "last_login": iso(self.last_login),
            "created_at": iso(self.created_at),
            "student_id": self.student_id,
            "teacher_id": self.teacher_id,
        }
