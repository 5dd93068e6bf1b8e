from datetime import datetime

from flask import current_app, flash, render_template, request

from . import contributions_bp
from ..auth.decorators import login_required
from ..errors import PortalError
from ..exports import excel_response, records_frame
from ..fetch import FetchController, error_message, fetch_all
from ..models import ContributionRequest
from ..pages import back_to, form_amount, form_int, mounted, session_api, submit

RECENT_PERIODS = 5

CONTRIBUTION_COLUMNS = {
    "period": "Period",
    "required": "Required",
    "member": "Member",
    "amount": "Amount",
    "paid_on": "Paid On",
    "late": "Late",
}


@contributions_bp.route("/")
@login_required
async def index():
    selected_id = request.args.get("period", type=int)
    async with session_api() as api:
        overview = FetchController(
            lambda: fetch_all(periods=api.list_periods, members=api.list_members),
            "contributions overview",
        )
        async with mounted(overview):
            data = overview.data or {}
            periods = data.get("periods") or []
            selected = next((p for p in periods if p.id == selected_id), None)
            return render_template(
                "contributions.html",
                overview=overview,
                periods=periods[:RECENT_PERIODS],
                all_periods=periods,
                members=data.get("members") or [],
                selected=selected,
                now=datetime.now().strftime("%Y-%m-%dT%H:%M"),
            )


@contributions_bp.route("/periods", methods=["POST"])
@login_required
async def create_period():
    period_date = (request.form.get("date") or "").strip()
    if not period_date:
        flash("Please pick a period date", "error")
        return back_to("contributions.index")
    async with session_api() as api:
        await submit(lambda: api.create_period(period_date), "Period created", "Failed to create period")
    return back_to("contributions.index")


@contributions_bp.route("/record", methods=["POST"])
@login_required
async def record():
    contribution = ContributionRequest(
        member_id=form_int("member_id"),
        period_id=form_int("period_id"),
        amount=form_amount("amount"),
        payment_date=request.form.get("payment_date") or None,
    )
    if not contribution.member_id or not contribution.period_id:
        flash("Please select both a member and a period", "error")
        return back_to("contributions.index")
    if contribution.amount <= 0:
        flash("Please enter a valid amount", "error")
        return back_to("contributions.index")
    async with session_api() as api:
        await submit(
            lambda: api.record_contribution(contribution),
            "Contribution recorded successfully",
            "Failed to record contribution",
        )
    return back_to("contributions.index")


@contributions_bp.route("/export.xlsx")
@login_required
async def export():
    """One row per contribution, with its period's date and requirement."""
    try:
        async with session_api() as api:
            resp = await api.list_periods()
    except PortalError as e:
        current_app.logger.error(f"Contribution export failed: {e.message}")
        flash(error_message(e, "Failed to export contributions"), "error")
        return back_to("contributions.index")
    rows = [
        {
            "period": p.date,
            "required": p.amount_required,
            "member": c.member_name,
            "amount": c.amount,
            "paid_on": c.payment_date,
            "late": c.late,
        }
        for p in resp.data
        for c in p.contributions
    ]
    return excel_response(records_frame(rows, CONTRIBUTION_COLUMNS), "Contributions", "contributions.xlsx")
