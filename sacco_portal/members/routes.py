from datetime import date

from flask import flash, render_template, request

from . import members_bp
from ..auth.decorators import login_required
from ..fetch import FetchController
from ..models import MemberRequest
from ..pages import back_to, form_int, mounted, session_api, submit


@members_bp.route("/")
@login_required
async def index():
    async with session_api() as api:
        members = FetchController(api.list_members, "members")
        async with mounted(members):
            return render_template("members.html", members=members, today=date.today().isoformat())


@members_bp.route("/save", methods=["POST"])
@login_required
async def save():
    """Create a member, or update one when the form carries its id."""
    member_id = form_int("id") or None
    member = MemberRequest(
        id=member_id,
        full_name=(request.form.get("full_name") or "").strip(),
        phone=(request.form.get("phone") or "").strip(),
        email=(request.form.get("email") or "").strip(),
        join_date=request.form.get("join_date") or date.today().isoformat(),
    )
    if not member.full_name or not member.phone or not member.email:
        flash("Name, phone and email are required", "error")
        return back_to("members.index")

    success = "Member updated successfully" if member_id else "Member created successfully"
    async with session_api() as api:
        await submit(lambda: api.save_member(member), success, "An error occurred while saving")
    return back_to("members.index")
