from flask import abort, current_app, flash, render_template, request

from . import settings_bp
from ..auth.decorators import login_required, role_required
from ..auth.session import SessionContext
from ..errors import PortalError
from ..fetch import FetchController, error_message
from ..formatting import humanize
from ..models import SaccoSettings
from ..pages import back_to, mounted, session_api

ADMIN_ROLE = "ADMIN"

# (heading, [(field, label, input type, suffix)])
SECTIONS = [
    ("Financial Policy", [
        ("contribution_amount", "Monthly Contribution", "number", "KSH"),
        ("loan_interest_rate", "Loan Interest Rate", "number", "%"),
        ("loan_penalty_rate", "Loan Penalty Rate", "number", "%"),
        ("loan_duration", "Max Loan Duration", "number", "days"),
    ]),
    ("Deadlines & Timing", [
        ("contribution_day", "Contribution Day", "text", ""),
        ("days_to_deadline", "Days To Deadline", "number", "days"),
        ("deadline_time", "Deadline Time", "time", ""),
    ]),
    ("Fines & Penalties", [
        ("late_payment_fine_amount", "Late Payment Fine", "number", "KSH"),
        ("meeting_absent_fine_amount", "Meeting Absence Fine", "number", "KSH"),
        ("meeting_late_fine_amount", "Meeting Lateness Fine", "number", "KSH"),
    ]),
]


@settings_bp.route("/")
@login_required
async def index():
    editing = request.args.get("edit")
    if editing not in SaccoSettings.FIELDS:
        editing = None
    async with session_api() as api:
        settings = FetchController(api.get_settings, "settings")
        async with mounted(settings):
            return render_template(
                "settings.html",
                settings=settings,
                sections=SECTIONS,
                editing=editing,
                can_edit=SessionContext.current().has_role(ADMIN_ROLE),
            )


@settings_bp.route("/<field>", methods=["POST"])
@login_required
@role_required(ADMIN_ROLE)
async def update(field):
    """Change one setting. The backend expects the whole settings object."""
    if field not in SaccoSettings.FIELDS:
        abort(404)
    value = (request.form.get("value") or "").strip()
    if not value:
        flash(f"{humanize(field)} is required", "error")
        return back_to("settings.index", edit=field)
    try:
        async with session_api() as api:
            settings = (await api.get_settings()).data
            try:
                settings.set(field, value)
            except ValueError:
                flash(f"{humanize(field)} must be a number", "error")
                return back_to("settings.index", edit=field)
            if isinstance(getattr(settings, field), (int, float)) and getattr(settings, field) < 0:
                flash(f"{humanize(field)} cannot be negative", "error")
                return back_to("settings.index", edit=field)
            await api.update_settings(settings)
    except PortalError as e:
        current_app.logger.warning(f"Updating setting {field} failed: {e.message}")
        flash(error_message(e, "Error updating settings"), "error")
        return back_to("settings.index", edit=field)
    flash(f"{humanize(field)} updated!", "success")
    return back_to("settings.index")
