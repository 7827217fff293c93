import logging
from functools import wraps

from flask import abort, current_app
from flask_login import login_user, logout_user, login_required, current_user

from ...api import ApiError, ok, get_json, get_or_404, commit, next_serial
from ...extensions import db
from ...models.user import User
from ...utils import utcnow
from . import bp

log = logging.getLogger(__name__)

MIN_PASSWORD = 6

def role_required(*roles):
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated or current_user.role not in roles:
                abort(403, description="You do not have permission for this action")
            return f(*args, **kwargs)
        return wrapper
    return deco

def authenticate(payload, roles=None):
    """Shared by the staff and student-portal logins."""
    if "token" in payload or "authToken" in payload:
        log.warning("login attempt carrying a token in the body")
        raise ApiError("Tokens are not accepted in the request body", 403)
    username = str(payload.get("username") or "").strip()
    password = payload.get("password") or ""
    if not username or not password:
        raise ApiError("Username and password are required")

    u = User.query.filter_by(username=username).one_or_none()
    if u is None or not u.check_password(password):
        log.warning("failed login for %r", username)
        raise ApiError("Invalid username or password", 401)
    if roles and u.role not in roles:
        raise ApiError("Invalid username or password", 401)
    if not u.is_active:
        raise ApiError("Account is deactivated, contact the owner", 403)

    u.last_login = utcnow()
    db.session.commit()
    login_user(u)
    log.info("user %s logged in", u.username)
    return u

def check_new_password(value, field="new_password"):
    if not value or len(value) < MIN_PASSWORD:
        raise ApiError(f"Password must be at least {MIN_PASSWORD} characters",
                       errors={field: "too short"})
    return value

@bp.post("/login")
def login():
    u = authenticate(get_json())
    return ok(u.to_dict(), "Login successful")

@bp.post("/logout")
@login_required
def logout():
    logout_user()
    return ok(message="Logged out")

@bp.get("/me")
@login_required
def me():
    return ok(current_user.to_dict())

@bp.post("/create-staff")
@login_required
@role_required("owner")
def create_staff():
    data = get_json()
    username = str(data.get("username") or "").strip()
    full_name = str(data.get("full_name") or "").strip()
    if not username or not full_name:
        raise ApiError("Username and full name are required")
    password = check_new_password(data.get("password"), "password")

    u = User(user_code=next_serial(User.user_code, "STAFF-", width=3), username=username,
             full_name=full_name, role="staff",
             phone=data.get("phone"), email=data.get("email"))
    u.set_password(password)
    db.session.add(u)
    commit("Username already exists")
    log.info("staff account %s created by %s", u.username, current_user.username)
    return ok(u.to_dict(), "Staff account created", 201)

@bp.get("/staff")
@login_required
@role_required("owner")
def list_staff():
    items = User.query.filter_by(role="staff").order_by(User.created_at.desc()).all()
    return ok([u.to_dict() for u in items], count=len(items))

@bp.patch("/staff/<int:uid>/toggle")
@login_required
@role_required("owner")
def toggle_staff(uid):
    u = get_or_404(User, uid, "Staff member")
    if u.role != "staff":
        raise ApiError("Only staff accounts can be toggled here")
    u.is_active_flag = not u.is_active_flag
    db.session.commit()
    state = "activated" if u.is_active else "deactivated"
    return ok(u.to_dict(), f"Staff account {state}")

@bp.post("/reset-password")
@login_required
@role_required("owner")
def reset_password():
    data = get_json()
    if not data.get("user_id"):
        raise ApiError("user_id is required")
    u = get_or_404(User, data.get("user_id"), "User")
    u.set_password(check_new_password(data.get("new_password")))
    db.session.commit()
    log.info("password of %s reset by %s", u.username, current_user.username)
    return ok(message=f"Password reset for {u.username}")

@bp.post("/change-password")
@login_required
def change_password():
    data = get_json()
    if not current_user.check_password(data.get("old_password")):
        raise ApiError("Current password is incorrect", errors={"old_password": "incorrect"})
    new = check_new_password(data.get("new_password"))
    if new != data.get("confirm_password"):
        raise ApiError("Passwords do not match", errors={"confirm_password": "mismatch"})
    current_user.set_password(new)
    db.session.commit()
    return ok(message="Password changed")

def new_account(username, full_name, role, **fields):
    """Login for a newly created student or teacher, with the default password."""
    u = User(username=username, full_name=full_name, role=role, **fields)
    u.set_password(current_app.config["DEFAULT_PASSWORD"])
    db.session.add(u)
    return u
