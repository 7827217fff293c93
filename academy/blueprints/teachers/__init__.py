from flask import Blueprint

bp = Blueprint("teachers", __name__)

from . import routes  # noqa: E402,F401
