from flask import abort, current_app, flash, render_template, request

from . import loans_bp
from .lifecycle import LoanLifecycle, allowed_actions
from ..auth.decorators import login_required
from ..auth.session import SessionContext
from ..errors import PortalError, ValidationError
from ..exports import excel_response, records_frame
from ..fetch import FetchController, error_message
from ..models import LoanStatus, VoteDecision
from ..pages import back_to, form_amount, mounted, session_api

LOAN_COLUMNS = {
    "id": "Loan ID",
    "member_no": "Member No",
    "member_name": "Member",
    "status": "Status",
    "requested_amount": "Requested",
    "approved_amount": "Approved",
    "interest_amount": "Interest",
    "paid_amount": "Paid",
    "request_date": "Requested On",
    "approved_date": "Approved On",
    "due_date": "Due",
    "duration": "Duration (days)",
}


async def _render_loans(template, status, **context):
    async with session_api() as api:
        loans = FetchController(lambda: api.list_loans(status), f"{status.value.lower()} loans")
        async with mounted(loans):
            return render_template(
                template,
                loans=loans,
                status=status,
                allowed_actions=allowed_actions,
                **context,
            )


async def _transition(action, redirect_to):
    """Run one lifecycle call, flash the result and reload ``redirect_to``."""
    async with session_api() as api:
        try:
            result = await action(LoanLifecycle(api))
        except ValidationError as e:
            flash(e.message, "error")
        else:
            flash(result.message, result.category)
    return back_to(redirect_to)


@loans_bp.route("/")
@login_required
async def active():
    return await _render_loans("loans/active.html", LoanStatus.DISBURSED)


@loans_bp.route("/pending")
@login_required
async def pending():
    return await _render_loans("loans/pending.html", LoanStatus.PENDING)


@loans_bp.route("/disbursements")
@login_required
async def disbursements():
    return await _render_loans("loans/disbursements.html", LoanStatus.APPROVED)


@loans_bp.route("/request", methods=["POST"])
@login_required
async def request_loan():
    member_id = SessionContext.current().member_id
    amount = form_amount("amount")
    return await _transition(lambda lc: lc.request(member_id, amount), "loans.pending")


@loans_bp.route("/<int:loan_id>/vote", methods=["POST"])
@login_required
async def vote(loan_id):
    try:
        decision = VoteDecision(request.form.get("decision", ""))
    except ValueError:
        abort(400, "Unknown vote decision")
    member_id = SessionContext.current().member_id
    return await _transition(lambda lc: lc.vote(loan_id, member_id, decision), "loans.pending")


@loans_bp.route("/<int:loan_id>/disburse", methods=["POST"])
@login_required
async def disburse(loan_id):
    return await _transition(lambda lc: lc.disburse(loan_id), "loans.disbursements")


@loans_bp.route("/<int:loan_id>/repay", methods=["POST"])
@login_required
async def repay(loan_id):
    amount = form_amount("amount")
    return await _transition(lambda lc: lc.repay(loan_id, amount), "loans.active")


@loans_bp.route("/export.xlsx")
@login_required
async def export():
    try:
        status = LoanStatus(request.args.get("status", LoanStatus.DISBURSED.value))
    except ValueError:
        abort(400, "Unknown loan status")
    try:
        async with session_api() as api:
            resp = await api.list_loans(status)
    except PortalError as e:
        current_app.logger.error(f"Loan export failed: {e.message}")
        flash(error_message(e, "Failed to export loans"), "error")
        return back_to("loans.active")
    df = records_frame(resp.data, LOAN_COLUMNS)
    return excel_response(df, "Loans", f"loans_{status.value.lower()}.xlsx")
