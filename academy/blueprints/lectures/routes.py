import logging

from flask import request
from flask_login import login_required, current_user

from ...api import ApiError, ok, get_json, get_or_404
from ...extensions import db
from ...models import Lecture, SchoolClass
from ...services.youtube import extract_video_id, thumbnail_url
from ..auth.routes import role_required
from . import bp

log = logging.getLogger(__name__)

AUTHORS = ("owner", "partner", "staff", "teacher")

def _can_edit(lecture):
    return current_user.role in ("owner", "partner", "staff") \
        or lecture.created_by_id == current_user.id

def _set_url(lecture, url):
    video_id = extract_video_id(url)
    if video_id is None:
        raise ApiError("Enter a valid YouTube link", errors={"youtube_url": "invalid"})
    lecture.youtube_url = url.strip()
    lecture.youtube_id = video_id
    lecture.thumbnail_url = thumbnail_url(video_id)

def student_lectures(student, subject=None):
    query = Lecture.query.filter_by(class_id=student.class_id)
    if subject:
        query = query.filter(Lecture.subject == subject)
    return query.order_by(Lecture.created_at.desc(), Lecture.id.desc()).all()

def count_view(lecture):
    if lecture.is_locked:
        raise ApiError("This lecture is locked", 403)
    lecture.view_count += 1
    db.session.commit()
    return {"id": lecture.id, "view_count": lecture.view_count}

@bp.post("/validate-url")
@login_required
def validate_url():
    url = str(get_json().get("url") or "")
    video_id = extract_video_id(url)
    if video_id is None:
        return ok({"valid": False, "youtube_id": None, "thumbnail_url": None},
                  "Not a recognised YouTube link")
    return ok({"valid": True, "youtube_id": video_id, "thumbnail_url": thumbnail_url(video_id)})

@bp.get("")
@login_required
@role_required(*AUTHORS)
def list_lectures():
    query = Lecture.query
    class_id = request.args.get("class_id", type=int)
    if class_id:
        query = query.filter(Lecture.class_id == class_id)
    subject = request.args.get("subject")
    if subject:
        query = query.filter(Lecture.subject == subject)
    items = query.order_by(Lecture.created_at.desc(), Lecture.id.desc()).all()
    return ok([lec.to_dict() for lec in items], count=len(items))

@bp.get("/my-lectures")
@login_required
@role_required(*AUTHORS)
def my_lectures():
    query = Lecture.query
    if current_user.role != "owner":
        query = query.filter(Lecture.created_by_id == current_user.id)
    items = query.order_by(Lecture.created_at.desc(), Lecture.id.desc()).all()
    return ok([lec.to_dict() for lec in items], count=len(items))

@bp.get("/my-classroom")
@login_required
@role_required("student")
def my_classroom():
    student = current_user.student
    if student is None:
        raise ApiError("No student record is linked to this account", 403)
    items = student_lectures(student, request.args.get("subject"))
    subjects = sorted({lec.subject for lec in items})
    return ok([lec.to_dict(hide_locked=True) for lec in items], count=len(items), subjects=subjects,
              class_title=student.school_class.title if student.school_class else None)

@bp.get("/<int:lid>")
@login_required
def get_lecture(lid):
    lecture = get_or_404(Lecture, lid, "Lecture")
    if current_user.role == "student":
        student = current_user.student
        if student is None or student.class_id != lecture.class_id:
            raise ApiError("This lecture is not for your class", 403)
        return ok(lecture.to_dict(hide_locked=True))
    return ok(lecture.to_dict())

@bp.post("")
@login_required
@role_required(*AUTHORS)
def create_lecture():
    data = get_json()
    title = str(data.get("title") or "").strip()
    subject = str(data.get("subject") or "").strip()
    errors = {}
    if not title:
        errors["title"] = "required"
    if not subject:
        errors["subject"] = "required"
    if not data.get("class_id") or db.session.get(SchoolClass, data["class_id"]) is None:
        errors["class_id"] = "Select a valid class"
    if errors:
        raise ApiError("Lecture details are incomplete", errors=errors)
    lecture = Lecture(title=title, subject=subject, class_id=data["class_id"],
                      description=data.get("description"), is_locked=bool(data.get("is_locked")),
                      created_by_id=current_user.id)
    _set_url(lecture, str(data.get("youtube_url") or data.get("url") or ""))
    db.session.add(lecture)
    db.session.commit()
    log.info("lecture %s (%s) added by %s", lecture.id, lecture.youtube_id, current_user.username)
    return ok(lecture.to_dict(), "Lecture added", 201)

@bp.put("/<int:lid>")
@login_required
@role_required(*AUTHORS)
def update_lecture(lid):
    lecture = get_or_404(Lecture, lid, "Lecture")
    if not _can_edit(lecture):
        raise ApiError("You can only edit your own lectures", 403)
    data = get_json()
    for key in ("title", "subject", "description"):
        if key in data:
            setattr(lecture, key, data[key])
    if not (lecture.title or "").strip() or not (lecture.subject or "").strip():
        raise ApiError("Title and subject are required")
    if "is_locked" in data:
        lecture.is_locked = bool(data["is_locked"])
    if "class_id" in data:
        if db.session.get(SchoolClass, data["class_id"]) is None:
            raise ApiError("Select a valid class")
        lecture.class_id = data["class_id"]
    if "youtube_url" in data or "url" in data:
        _set_url(lecture, str(data.get("youtube_url") or data.get("url") or ""))
    db.session.commit()
    return ok(lecture.to_dict(), "Lecture updated")

@bp.delete("/<int:lid>")
@login_required
@role_required(*AUTHORS)
def delete_lecture(lid):
    lecture = get_or_404(Lecture, lid, "Lecture")
    if not _can_edit(lecture):
        raise ApiError("You can only delete your own lectures", 403)
    db.session.delete(lecture)
    db.session.commit()
    return ok(message="Lecture deleted")

@bp.post("/<int:lid>/view")
@login_required
def view_lecture(lid):
    lecture = get_or_404(Lecture, lid, "Lecture")
    if current_user.role == "student":
        student = current_user.student
        if student is None or student.class_id != lecture.class_id:
            raise ApiError("This lecture is not for your class", 403)
    return ok(count_view(lecture))
