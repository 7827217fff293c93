from flask import Blueprint

bp = Blueprint("website", __name__)

from . import routes  # noqa: E402,F401
