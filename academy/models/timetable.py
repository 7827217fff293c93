from ..extensions import db
from ..utils import utcnow, iso

class TimetableEntry(db.Model):
    __tablename__ = "timetable_entry"
    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id"), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey("teacher.id"), nullable=False)
    day = db.Column(db.String(12), nullable=False)   # Monday ... Saturday
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    subject = db.Column(db.String(64), nullable=False)
    room = db.Column(db.String(64))
    status = db.Column(db.String(16), nullable=False, default="active")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    school_class = db.relationship("SchoolClass")
    teacher = db.relationship("Teacher", back_populates="timetable")
    __table_args__ = (
        db.CheckConstraint("start_time < end_time", name="ck_timetable_order"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "class_id": self.class_id,
            "class_title": self.school_class.title if self.school_class else None,
            "teacher_id": self.teacher_id,
            "teacher_name": self.teacher.name if self.teacher else None,
            "day": self.day,
            "start_time": iso(self.start_time),
            "end_time": iso(self.end_time),
            "subject": self.subject,
            "room": self.room,
            "status": self.status,
        }
