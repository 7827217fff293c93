import logging

from flask_login import login_required, current_user

from ...api import ApiError, ok, get_json
from ...extensions import db
from ...models import AcademicSession, SessionPrice, get_config
from ...models.user import STAFF_ROLES
from ...services.splits import validate_splits
from ..auth.routes import role_required
from . import bp

log = logging.getLogger(__name__)

IDENTITY = ("academy_name", "academy_logo", "academy_address", "academy_phone")
POOL_GROUPS = ("expense_split", "tuition_pool_split", "etea_pool_split")

def _non_negative(value):
    return not isinstance(value, bool) and isinstance(value, (int, float)) and value >= 0

def _subject_fees(raw, errors):
    if not isinstance(raw, list):
        errors["default_subject_fees"] = "must be a list"
        return None
    out = []
    for item in raw:
        if not isinstance(item, dict):
            errors["default_subject_fees"] = "each subject must be an object"
            return None
        name = str(item.get("name") or "").strip()
        fee = item.get("fee", 0)
        if not name or not _non_negative(fee):
            errors["default_subject_fees"] = "each subject needs a name and a fee of 0 or more"
            return None
        out.append({"name": name, "fee": fee})
    return out

def _session_prices(raw, errors):
    if not isinstance(raw, list):
        errors["session_prices"] = "must be a list"
        return None
    out = {}
    for item in raw:
        if not isinstance(item, dict):
            errors["session_prices"] = "each price must be an object"
            return None
        sid = item.get("session_id")
        price = item.get("price", 0)
        if not _non_negative(price):
            errors["session_prices"] = "prices must be 0 or more"
            return None
        if not isinstance(sid, int) or db.session.get(AcademicSession, sid) is None:
            errors["session_prices"] = f"session {sid} does not exist"
            return None
        out[sid] = price
    return out

@bp.get("")
@login_required
@role_required(*STAFF_ROLES)
def get_configuration():
    cfg = get_config()
    db.session.commit()
    return ok(cfg.to_dict())

@bp.route("", methods=["POST", "PUT"])
@login_required
@role_required("owner")
def update_configuration():
    cfg = get_config()
    data = get_json()

    salary = {"teacher_share": cfg.teacher_share, "academy_share": cfg.academy_share}
    if not isinstance(data.get("salary_config") or {}, dict):
        raise ApiError("salary_config must be an object")
    salary.update(data.get("salary_config") or {})
    groups = {"salary_config": salary}
    for name in POOL_GROUPS:
        groups[name] = data[name] if name in data else getattr(cfg, name)

    errors = validate_splits(groups)
    etea = data.get("etea_config") or {}
    if not isinstance(etea, dict):
        raise ApiError("etea_config must be an object")
    for key in ("per_student_commission", "english_fixed_salary"):
        if key in etea and not _non_negative(etea[key]):
            errors[f"etea_config.{key}"] = "must be 0 or more"
    fees = _subject_fees(data["default_subject_fees"], errors) \
        if "default_subject_fees" in data else None
    prices = _session_prices(data["session_prices"], errors) \
        if "session_prices" in data else None
    if errors:
        log.warning("configuration update rejected: %s", errors)
        raise ApiError("Configuration is invalid", 400, errors)

    for key in IDENTITY:
        if key in data:
            setattr(cfg, key, data[key] or "")
    cfg.teacher_share = salary["teacher_share"]
    cfg.academy_share = salary["academy_share"]
    if "partner_100_rule" in data:
        cfg.partner_100_rule = bool(data["partner_100_rule"])
    for name in POOL_GROUPS:
        # reassign so the JSON column is marked dirty
        setattr(cfg, name, dict(groups[name]))
    if "per_student_commission" in etea:
        cfg.etea_commission = etea["per_student_commission"]
    if "english_fixed_salary" in etea:
        cfg.english_fixed_salary = etea["english_fixed_salary"]
    if fees is not None:
        cfg.default_subject_fees = fees
    if prices is not None:
        for sid, price in prices.items():
            sp = SessionPrice.query.filter_by(session_id=sid).one_or_none()
            if sp is None:
                db.session.add(SessionPrice(session_id=sid, price=price))
            else:
                sp.price = price
    db.session.commit()
    log.info("configuration updated by %s", current_user.username)
    return ok(cfg.to_dict(), "Configuration saved")

@bp.get("/session-price/<int:session_id>")
@login_required
@role_required(*STAFF_ROLES)
def session_price(session_id):
    session = db.session.get(AcademicSession, session_id)
    sp = SessionPrice.query.filter_by(session_id=session_id).one_or_none()
    found = bool(sp and sp.price > 0)
    return ok({"found": found, "price": sp.price if found else 0,
               "session_name": session.name if session else None})
