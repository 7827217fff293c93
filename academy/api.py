"""JSON envelope shared by every blueprint.

Responses look like ``{"success": true, "data": ..., "message": ...}``;
failures carry ``success: false``, a message and optionally per-field
``errors``.
"""
import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError

from .extensions import db, login_manager
from .utils import last_number

log = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message, status=400, errors=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.errors = errors


def ok(data=None, message=None, status=200, **extra):
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    body.update(extra)
    return jsonify(body), status


def fail(message, status=400, errors=None):
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return jsonify(body), status


def get_json():
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ApiError("Request body must be a JSON object")
    return payload


def get_or_404(model, ident, label=None):
    obj = db.session.get(model, ident)
    if obj is None:
        raise ApiError(f"{label or model.__name__} not found", 404)
    return obj


def commit(conflict_message="Record already exists"):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        log.warning("integrity error: %s", conflict_message)
        raise ApiError(conflict_message, 409)


def page_args(default_sort, default_order="asc"):
    page = max(request.args.get("page", type=int) or 1, 1)
    per = min(max(request.args.get("per_page", type=int) or 20, 1), 100)
    sort = request.args.get("sort", default_sort)
    order = request.args.get("order", default_order)
    if order not in ("asc", "desc"):
        order = default_order
    return page, per, sort, order


def paginate(query, page, per):
    total = query.count()
    items = query.offset((page - 1) * per).limit(per).all()
    pages = max(1, (total + per - 1) // per)
    return items, {"page": page, "per_page": per, "total": total, "pages": pages}


def to_number(value, field, minimum=None, allow_none=False):
    if value in (None, ""):
        if allow_none:
            return None
        raise ApiError(f"{field} is required")
    if isinstance(value, bool):
        raise ApiError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ApiError(f"{field} must be a number")
    if minimum is not None and number < minimum:
        raise ApiError(f"{field} must be at least {minimum:g}")
    return number


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(err):
        if err.status >= 500:
            log.error("%s %s failed: %s", request.method, request.path, err.message)
        return fail(err.message, err.status, err.errors)

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return fail(err.description or err.name, err.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        db.session.rollback()
        log.exception("unhandled error on %s %s", request.method, request.path)
        return fail("Internal server error", 500)

    @login_manager.unauthorized_handler
    def unauthorized():
        return fail("Not authorized - please log in", 401)


def next_serial(column, prefix, width=4):
    """Next ``<prefix><nnnn>`` after the highest serial already stored."""
    codes = db.session.query(column).filter(column.like(f"{prefix}%")).all()
    highest = max((last_number(code) for (code,) in codes), default=0)
    return f"{prefix}{highest + 1:0{width}d}"
