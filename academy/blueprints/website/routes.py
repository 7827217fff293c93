import logging

from flask_login import login_required, current_user

from ...api import ApiError, ok, get_json, get_or_404
from ...extensions import db
from ...models import Announcement, get_website_config
from ..auth.routes import role_required
from . import bp

log = logging.getLogger(__name__)

SECTIONS = ("hero_section", "admission_status", "contact_info")

def _announcement_fields(a, data):
    if "text" in data:
        a.text = str(data["text"] or "").strip()
    if not a.text:
        raise ApiError("Announcement text is required")
    if "active" in data:
        a.active = bool(data["active"])
    if "priority" in data:
        try:
            a.priority = int(data["priority"])
        except (TypeError, ValueError):
            raise ApiError("Priority must be a whole number")

@bp.get("/config")
def public_config():
    cfg = get_website_config()
    db.session.commit()
    owner = current_user.is_authenticated and current_user.role == "owner"
    return ok(cfg.to_dict(include_inactive=owner))

@bp.put("/config")
@login_required
@role_required("owner")
def update_config():
    cfg = get_website_config()
    data = get_json()
    for key in SECTIONS:
        if key in data:
            if not isinstance(data[key], dict):
                raise ApiError(f"{key} must be an object")
            merged = dict(getattr(cfg, key) or {})
            merged.update(data[key])
            setattr(cfg, key, merged)
    if "featured_subjects" in data:
        if not isinstance(data["featured_subjects"], list):
            raise ApiError("featured_subjects must be a list")
        cfg.featured_subjects = list(data["featured_subjects"])
    db.session.commit()
    log.info("website config updated by %s", current_user.username)
    return ok(cfg.to_dict(include_inactive=True), "Website updated")

@bp.patch("/admission-status")
@login_required
@role_required("owner")
def toggle_admissions():
    cfg = get_website_config()
    data = get_json()
    status = dict(cfg.admission_status or {})
    status["is_open"] = bool(data["is_open"]) if "is_open" in data else not status.get("is_open", True)
    for key in ("notice", "closed_message"):
        if key in data:
            status[key] = data[key] or ""
    cfg.admission_status = status
    db.session.commit()
    log.info("admissions %s", "opened" if status["is_open"] else "closed")
    return ok(status, "Admissions are open" if status["is_open"] else "Admissions are closed")

@bp.get("/public/announcements")
def public_announcements():
    items = (Announcement.query.filter_by(active=True)
             .order_by(Announcement.priority.desc(), Announcement.id.desc()).all())
    return ok([a.to_dict() for a in items], count=len(items))

@bp.post("/announcements")
@login_required
@role_required("owner")
def create_announcement():
    a = Announcement(text="")
    _announcement_fields(a, get_json())
    db.session.add(a)
    db.session.commit()
    return ok(a.to_dict(), "Announcement added", 201)

@bp.put("/announcements/<int:aid>")
@login_required
@role_required("owner")
def update_announcement(aid):
    a = get_or_404(Announcement, aid, "Announcement")
    _announcement_fields(a, get_json())
    db.session.commit()
    return ok(a.to_dict(), "Announcement updated")

@bp.delete("/announcements/<int:aid>")
@login_required
@role_required("owner")
def delete_announcement(aid):
    a = get_or_404(Announcement, aid, "Announcement")
    db.session.delete(a)
    db.session.commit()
    return ok(message="Announcement deleted")
