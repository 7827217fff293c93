from ..extensions import db
from ..utils import utcnow, iso

class Lecture(db.Model):
    __tablename__ = "lecture"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(128), nullable=False)
    youtube_url = db.Column(db.String(255), nullable=False)
    youtube_id = db.Column(db.String(16), nullable=False)
    thumbnail_url = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    subject = db.Column(db.String(64), nullable=False)
    is_locked = db.Column(db.Boolean, nullable=False, default=False)
    view_count = db.Column(db.Integer, nullable=False, default=0)
    class_id = db.Column(db.Integer, db.ForeignKey("school_class.id"), nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    school_class = db.relationship("SchoolClass")
    created_by = db.relationship("User")

    def to_dict(self, hide_locked=False):
        d = {
            "id": self.id,
            "title": self.title,
            "youtube_url": self.youtube_url,
            "youtube_id": self.youtube_id,
            "thumbnail_url": self.thumbnail_url,
            "description": self.description,
            "subject": self.subject,
            "is_locked": self.is_locked,
            "view_count": self.view_count,
            "class_id": self.class_id,
            "class_title": self.school_class.title if self.school_class else None,
            "teacher_name": self.created_by.full_name if self.created_by else None,
            "created_at": iso(self.created_at),
        }
        if hide_locked and self.is_locked:
            d["youtube_url"] = None
            d["youtube_id"] = None
        return d
