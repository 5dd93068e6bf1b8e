from flask import Blueprint

contributions_bp = Blueprint("contributions", __name__, url_prefix="/contributions")

from . import routes  # noqa: E402,F401
