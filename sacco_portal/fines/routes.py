from datetime import date

from flask import abort, current_app, flash, render_template, request

from . import fines_bp
from ..auth.decorators import login_required
from ..errors import PortalError
from ..exports import excel_response, records_frame
from ..fetch import FetchController, error_message
from ..models import FineRequest, FineStatus, FineType
from ..pages import back_to, form_amount, form_int, mounted, session_api, submit

FINE_COLUMNS = {
    "id": "Fine ID",
    "member_name": "Member",
    "type": "Type",
    "amount": "Amount",
    "date": "Date",
    "status": "Status",
    "paid_date": "Paid On",
}


def _status_arg():
    try:
        return FineStatus(request.args.get("status", FineStatus.UNPAID.value))
    except ValueError:
        abort(400, "Unknown fine status")


def totals(fines):
    """Sum of fine amounts per status."""
    result = {FineStatus.PAID: 0.0, FineStatus.UNPAID: 0.0}
    for fine in fines or []:
        result[fine.status] += fine.amount
    return result


@fines_bp.route("/")
@login_required
async def index():
    status = _status_arg()
    async with session_api() as api:
        fines = FetchController(lambda: api.list_fines(status), f"{status.value.lower()} fines")
        members = FetchController(api.list_members, "members")
        async with mounted(fines, members):
            fine_totals = totals(fines.data)
            return render_template(
                "fines.html",
                fines=fines,
                members=members.data or [],
                members_error=members.error,
                status=status,
                statuses=list(FineStatus),
                fine_types=list(FineType),
                paid_total=fine_totals[FineStatus.PAID],
                unpaid_total=fine_totals[FineStatus.UNPAID],
                today=date.today().isoformat(),
            )


@fines_bp.route("/record", methods=["POST"])
@login_required
async def record():
    member_id = form_int("member_id")
    if not member_id:
        flash("Please select a member", "error")
        return back_to("fines.index")
    try:
        fine_type = FineType(request.form.get("type", FineType.LATE_MEETINGS.value))
    except ValueError:
        flash("Unknown fine type", "error")
        return back_to("fines.index")
    amount = form_amount("amount")
    if amount <= 0:
        flash("Please enter a valid amount", "error")
        return back_to("fines.index")
    fine = FineRequest(
        member_id=member_id,
        type=fine_type,
        amount=amount,
        fine_date=request.form.get("fine_date") or date.today().isoformat(),
    )
    async with session_api() as api:
        await submit(lambda: api.record_fine(fine), "Fine recorded!", "Error recording fine.")
    return back_to("fines.index")


@fines_bp.route("/<int:fine_id>/settle", methods=["POST"])
@login_required
async def settle(fine_id):
    async with session_api() as api:
        await submit(lambda: api.settle_fine(fine_id), "Fine Settled!", "Failed to settle.")
    return back_to("fines.index", status=FineStatus.UNPAID.value)


@fines_bp.route("/export.xlsx")
@login_required
async def export():
    status = _status_arg()
    try:
        async with session_api() as api:
            resp = await api.list_fines(status)
    except PortalError as e:
        current_app.logger.error(f"Fine export failed: {e.message}")
        flash(error_message(e, "Failed to export fines"), "error")
        return back_to("fines.index", status=status.value)
    return excel_response(records_frame(resp.data, FINE_COLUMNS), "Fines", f"fines_{status.value.lower()}.xlsx")
