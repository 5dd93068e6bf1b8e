from flask import Blueprint

fines_bp = Blueprint("fines", __name__, url_prefix="/fines")

from . import routes  # noqa: E402,F401
