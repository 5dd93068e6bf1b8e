from flask import render_template

from . import dashboard_bp
from ..auth.decorators import login_required
from ..fetch import FetchController
from ..pages import mounted, session_api


@dashboard_bp.route("/")
@login_required
async def index():
    async with session_api() as api:
        summary = FetchController(api.dashboard_summary, "dashboard summary")
        async with mounted(summary):
            return render_template("dashboard.html", summary=summary)
