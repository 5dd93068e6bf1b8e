from flask import Blueprint

extras_bp = Blueprint("extras", __name__, url_prefix="/extras")

from . import routes  # noqa: E402,F401
