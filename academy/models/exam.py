from ..extensions import db
from ..utils import utcnow, iso

class Exam(db.Model):
    __tablename__ = "exam"
    id = db.Column(db.Integer, primary_key=True)
    exam_code = db.Column(db.String(32), unique=True, nullable=False)
    title = db.Column(db.String(128), nullable=False)
    subject = db.Column(db.String(64), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id"), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=30)
    start_time = db.Column(db.DateTime)
    end_time = db.Column(db.DateTime)
    show_result = db.Column(db.Boolean, nullable=False, default=False)
    instructions = db.Column(db.Text)
    # [{"question_text": str, "options": [str], "correct_option_index": int}]
    questions = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(16), nullable=False, default="published")
    created_by_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    school_class = db.relationship("SchoolClass")
    created_by = db.relationship("User")
    attempts = db.relationship("ExamAttempt", back_populates="exam",
                               cascade="all, delete-orphan")
    __table_args__ = (
        db.CheckConstraint("duration_minutes > 0", name="ck_exam_duration_pos"),
    )

    @property
    def total_marks(self):
        return len(self.questions or [])

    def to_dict(self, with_answers=True):
        questions = self.questions or []
        if not with_answers:
            questions = [{"question_text": q["question_text"], "options": q["options"]}
                         for q in questions]
        return {
            "id": self.id,
            "exam_code": self.exam_code,
            "title": self.title,
            "subject": self.subject,
            "class_id": self.class_id,
            "class_title": self.school_class.title if self.school_class else None,
            "duration_minutes": self.duration_minutes,
            "start_time": iso(self.start_time),
            "end_time": iso(self.end_time),
            "show_result": self.show_result,
            "instructions": self.instructions,
            "status": self.status,
            "total_marks": self.total_marks,
            "questions": questions,
            "created_by": self.created_by.full_name if self.created_by else None,
            "created_at": iso(self.created_at),
        }

class ExamAttempt(db.Model):
    __tablename__ = "exam_attempt"
    id = db.Column(db.Integer, primary_key=True)
    exam_id = db.Column(db.Integer, db.ForeignKey("exam.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("student.id", ondelete="CASCADE"), nullable=False)
    answers = db.Column(db.JSON, nullable=False, default=list)
    started_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    submitted_at = db.Column(db.DateTime)
    status = db.Column(db.String(16), nullable=False, default="in_progress")   # in_progress|submitted
    tab_switch_count = db.Column(db.Integer, nullable=False, default=0)
    is_auto_submitted = db.Column(db.Boolean, nullable=False, default=False)
    is_flagged = db.Column(db.Boolean, nullable=False, default=False)
    score = db.Column(db.Integer)
    total_marks = db.Column(db.Integer)
    percentage = db.Column(db.Float)
    grade = db.Column(db.String(4))
    is_passed = db.Column(db.Boolean)
    time_taken_seconds = db.Column(db.Integer)

    exam = db.relationship("Exam", back_populates="attempts")
    student = db.relationship("Student", back_populates="exam_attempts")
    __table_args__ = (
        db.UniqueConstraint("exam_id", "student_id", name="uq_exam_student"),
    )

    def result_dict(self):
        return {
            "score": self.score,
            "total_marks": self.total_marks,
            "percentage": self.percentage,
            "grade": self.grade,
            "is_passed": self.is_passed,
        }

    def to_dict(self):
        d = self.result_dict()
        d.update({
            "id": self.id,
            "exam_id": self.exam_id,
            "exam_title": self.exam.title if self.exam else None,
            "student_id": self.student_id,
            "student_name": self.student.name if self.student else None,
            "status": self.status,
            "started_at": iso(self.started_at),
            "submitted_at": iso(self.submitted_at),
            "tab_switch_count": self.tab_switch_count,
            "is_auto_submitted": self.is_auto_submitted,
            "is_flagged": self.is_flagged,
            "time_taken_seconds": self.time_taken_seconds,
        })
        return d
