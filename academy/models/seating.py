from ..extensions import db
from ..utils import utcnow, iso

SIDES = ("Left", "Right")

class Seat(db.Model):
    __tablename__ = "seat"
    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id"), nullable=False)
    side = db.Column(db.String(8), nullable=False)   # Left (female) | Right (male)
    seat_number = db.Column(db.Integer, nullable=False)
    row = db.Column(db.Integer, nullable=False)
    column = db.Column(db.Integer, nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("student.id", ondelete="SET NULL"),
                           unique=True)
    booked_at = db.Column(db.DateTime)

    school_class = db.relationship("SchoolClass", back_populates="seats")
    student = db.relationship("Student", back_populates="seat")
    __table_args__ = (
        db.UniqueConstraint("class_id", "side", "seat_number", name="uq_seat_class_side_number"),
        db.CheckConstraint(f"side IN {SIDES}", name="ck_seat_side"),
    )

    @property
    def is_taken(self):
        return self.student_id is not None

    @property
    def label(self):
        return f"{self.side[0]}-{chr(64 + self.row)}{self.column}"

    def book(self, student):
        self.student = student
        self.booked_at = utcnow()

    def release(self):
        self.student = None
        self.booked_at = None

    def to_dict(self, show_student=True):
        d = {
            "id": self.id,
            "class_id": self.class_id,
            "seat_number": self.seat_number,
            "label": self.label,
            "side": self.side,
            "position": {"row": self.row, "column": self.column},
            "is_taken": self.is_taken,
            "booked_at": iso(self.booked_at),
            "student": None,
        }
        if self.student is not None and show_student:
            d["student"] = {"id": self.student.id, "name": self.student.name,
                            "student_no": self.student.student_no}
        return d
