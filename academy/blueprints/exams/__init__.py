from flask import Blueprint

bp = Blueprint("exams", __name__)

from . import routes  # noqa: E402,F401
