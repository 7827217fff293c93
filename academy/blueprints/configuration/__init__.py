from flask import Blueprint

bp = Blueprint("configuration", __name__)

from . import routes  # noqa: E402,F401
