from ..extensions import db
from ..utils import utcnow, iso

class WebsiteConfig(db.Model):
    __tablename__ = "website_config"
    id = db.Column(db.Integer, primary_key=True)
    hero_section = db.Column(db.JSON, nullable=False,
                             default=lambda: {"title": "", "subtitle": "", "tagline": ""})
    admission_status = db.Column(db.JSON, nullable=False,
                                 default=lambda: {"is_open": True, "notice": "", "closed_message": ""})
    contact_info = db.Column(db.JSON, nullable=False,
                             default=lambda: {"phone": "", "mobile": "", "email": "",
                                              "address": "", "facebook": ""})
    featured_subjects = db.Column(db.JSON, nullable=False, default=list)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self, include_inactive=False):
        q = Announcement.query
        if not include_inactive:
            q = q.filter_by(active=True)
        items = q.order_by(Announcement.priority.desc(), Announcement.id.desc()).all()
        return {
            "hero_section": self.hero_section,
            "admission_status": self.admission_status,
            "contact_info": self.contact_info,
            "featured_subjects": self.featured_subjects or [],
            "announcements": [a.to_dict() for a in items],
            "updated_at": iso(self.updated_at),
        }

class Announcement(db.Model):
    __tablename__ = "announcement"
    id = db.Column(db.Integer, primary_key=True)
    text = db.Column(db.String(500), nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=True)
    priority = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {"id": self.id, "text": self.text, "active": self.active,
                "priority": self.priority, "created_at": iso(self.created_at)}

def get_website_config():
    cfg = WebsiteConfig.query.order_by(WebsiteConfig.id).first()
    if cfg is None:
        cfg = WebsiteConfig()
        db.session.add(cfg)
        db.session.flush()
    return cfg
