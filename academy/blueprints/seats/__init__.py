from flask import Blueprint

bp = Blueprint("seats", __name__)

from . import routes  # noqa: E402,F401
