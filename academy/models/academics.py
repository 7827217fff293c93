from ..extensions import db
from ..utils import utcnow, iso

SESSION_STATUSES = ("active", "upcoming", "completed")

class AcademicSession(db.Model):
    __tablename__ = "academic_session"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), unique=True, nullable=False)   # e.g. "MDCAT 2026"
    session_type = db.Column(db.String(16), nullable=False, default="regular")   # regular|etea|mdcat
    status = db.Column(db.String(16), nullable=False, default="upcoming")
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    classes = db.relationship("SchoolClass", back_populates="session")
    price = db.relationship("SessionPrice", back_populates="session", uselist=False,
                            cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "session_type": self.session_type,
            "status": self.status,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
        }

class SchoolClass(db.Model):
    __tablename__ = "school_class"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(64), nullable=False)
    grade_level = db.Column(db.String(32), nullable=False)   # "10th", "MDCAT", ...
    group = db.Column(db.String(32))
    status = db.Column(db.String(16), nullable=False, default="active")
    subjects = db.Column(db.JSON, nullable=False, default=list)   # [{"name": ..., "fee": ...}]
    session_id = db.Column(db.Integer, db.ForeignKey("academic_session.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    session = db.relationship("AcademicSession", back_populates="classes")
    students = db.relationship("Student", back_populates="school_class")
    seats = db.relationship("Seat", back_populates="school_class",
                            cascade="all, delete-orphan", order_by="Seat.id")
    __table_args__ = (
        db.UniqueConstraint("title", "session_id", name="uq_class_title_session"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "grade_level": self.grade_level,
            "group": self.group,
            "status": self.status,
            "subjects": self.subjects or [],
            "session": self.session.to_dict() if self.session else None,
        }
