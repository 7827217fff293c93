import logging

from flask import request
from flask_login import login_required, current_user
from sqlalchemy import or_

from ...api import ApiError, ok, get_json, get_or_404, commit, page_args, paginate, next_serial
from ...extensions import db
from ...models.user import User, ROLES
from ..auth.routes import role_required, check_new_password
from . import bp

log = logging.getLogger(__name__)

ASSIGNABLE_ROLES = tuple(r for r in ROLES if r != "owner")
EDITABLE = ("full_name", "phone", "email")

@bp.get("")
@login_required
@role_required("owner")
def list_users():
    page, per, sort, order = page_args("created_at", "desc")
    query = User.query
    role = request.args.get("role")
    if role:
        query = query.filter(User.role == role)
    kw = (request.args.get("q") or "").strip()
    if kw:
        like = f"%{kw}%"
        query = query.filter(or_(User.username.ilike(like), User.full_name.ilike(like),
                                 User.user_code.ilike(like)))

    sort_map = {"created_at": User.created_at, "username": User.username,
                "name": User.full_name, "role": User.role}
    col = sort_map.get(sort, User.created_at)
    query = query.order_by(col.desc() if order == "desc" else col.asc())
    items, meta = paginate(query, page, per)
    return ok([u.to_dict() for u in items], pagination=meta)

@bp.post("")
@login_required
@role_required("owner")
def create_user():
    data = get_json()
    username = str(data.get("username") or "").strip()
    full_name = str(data.get("full_name") or "").strip()
    role = data.get("role")
    errors = {}
    if not username:
        errors["username"] = "required"
    if not full_name:
        errors["full_name"] = "required"
    if role not in ASSIGNABLE_ROLES:
        errors["role"] = f"must be one of {', '.join(ASSIGNABLE_ROLES)}"
    if errors:
        raise ApiError("Invalid user details", errors=errors)
    password = check_new_password(data.get("password"), "password")

    u = User(user_code=next_serial(User.user_code, f"{role.upper()}-", width=3), username=username,
             full_name=full_name, role=role, phone=data.get("phone"), email=data.get("email"),
             partner_key=data.get("partner_key") if role == "partner" else None)
    u.set_password(password)
    db.session.add(u)
    commit("Username already exists")
    log.info("user %s (%s) created", u.username, u.role)
    return ok(u.to_dict(), "User created", 201)

@bp.put("/<int:uid>")
@login_required
@role_required("owner")
def update_user(uid):
    u = get_or_404(User, uid, "User")
    data = get_json()
    for key in EDITABLE:
        if key in data:
            setattr(u, key, data[key])
    if not (u.full_name or "").strip():
        raise ApiError("Full name cannot be empty")
    if "role" in data and data["role"] != u.role:
        if u.role == "owner" or data["role"] not in ASSIGNABLE_ROLES:
            raise ApiError("Role cannot be changed to or from owner")
        u.role = data["role"]
    if "partner_key" in data and u.role in ("owner", "partner"):
        u.partner_key = data["partner_key"] or None
    commit("Partner key already assigned")
    return ok(u.to_dict(), "User updated")

@bp.delete("/<int:uid>")
@login_required
@role_required("owner")
def delete_user(uid):
    u = get_or_404(User, uid, "User")
    if u.id == current_user.id:
        raise ApiError("You cannot delete your own account")
    if u.role == "owner":
        raise ApiError("Owner accounts cannot be deleted", 403)
    db.session.delete(u)
    db.session.commit()
    log.info("user %s deleted by %s", u.username, current_user.username)
    return ok(message="User deleted")

@bp.patch("/<int:uid>/toggle-status")
@login_required
@role_required("owner")
def toggle_status(uid):
    u = get_or_404(User, uid, "User")
    if u.id == current_user.id:
        raise ApiError("You cannot deactivate your own account")
    u.is_active_flag = not u.is_active_flag
    db.session.commit()
    return ok(u.to_dict(), "User activated" if u.is_active else "User deactivated")
