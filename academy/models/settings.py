from ..extensions import db
from ..utils import utcnow, iso

DEFAULT_SUBJECT_FEES = [
    {"name": "Biology", "fee": 3000},
    {"name": "Physics", "fee": 3000},
    {"name": "Chemistry", "fee": 2500},
    {"name": "Mathematics", "fee": 2500},
    {"name": "English", "fee": 2000},
]

def _split(a, b, c):
    return {"owner": a, "partner_a": b, "partner_b": c}

class AcademyConfig(db.Model):
    """The one academy-wide settings row; see ``get_config``."""
    __tablename__ = "academy_config"
    id = db.Column(db.Integer, primary_key=True)
    academy_name = db.Column(db.String(128), nullable=False, default="Academy")
    academy_logo = db.Column(db.String(255), nullable=False, default="")
    academy_address = db.Column(db.String(255), nullable=False, default="")
    academy_phone = db.Column(db.String(32), nullable=False, default="")

    teacher_share = db.Column(db.Float, nullable=False, default=70)
    academy_share = db.Column(db.Float, nullable=False, default=30)
    partner_100_rule = db.Column(db.Boolean, nullable=False, default=True)
    expense_split = db.Column(db.JSON, nullable=False, default=lambda: _split(40, 30, 30))
    tuition_pool_split = db.Column(db.JSON, nullable=False, default=lambda: _split(50, 30, 20))
    etea_pool_split = db.Column(db.JSON, nullable=False, default=lambda: _split(40, 30, 30))
    etea_commission = db.Column(db.Float, nullable=False, default=3000)
    english_fixed_salary = db.Column(db.Float, nullable=False, default=80000)
    default_subject_fees = db.Column(db.JSON, nullable=False, default=lambda: list(DEFAULT_SUBJECT_FEES))
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        prices = SessionPrice.query.order_by(SessionPrice.id).all()
        return {
            "academy_name": self.academy_name,
            "academy_logo": self.academy_logo,
            "academy_address": self.academy_address,
            "academy_phone": self.academy_phone,
            "salary_config": {"teacher_share": self.teacher_share,
                              "academy_share": self.academy_share},
            "partner_100_rule": self.partner_100_rule,
            "expense_split": self.expense_split,
            "tuition_pool_split": self.tuition_pool_split,
            "etea_pool_split": self.etea_pool_split,
            "etea_config": {"per_student_commission": self.etea_commission,
                            "english_fixed_salary": self.english_fixed_salary},
            "default_subject_fees": self.default_subject_fees or [],
            "session_prices": [p.to_dict() for p in prices],
            "updated_at": iso(self.updated_at),
        }

class SessionPrice(db.Model):
    __tablename__ = "session_price"
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("academic_session.id"),
                           unique=True, nullable=False)
    price = db.Column(db.Float, nullable=False, default=0)

    session = db.relationship("AcademicSession", back_populates="price")
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_session_price_nonneg"),
    )

    def to_dict(self):
        return {"session_id": self.session_id,
                "session_name": self.session.name if self.session else None,
                "price": self.price}

def get_config():
    cfg = AcademyConfig.query.order_by(AcademyConfig.id).first()
    if cfg is None:
        cfg = AcademyConfig()
        db.session.add(cfg)
        db.session.flush()
    return cfg
