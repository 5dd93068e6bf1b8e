from urllib.parse import urlparse

from flask import current_app, flash, redirect, render_template, request, session, url_for

from . import auth_bp
from .session import SessionContext
from ..backend import SaccoApi
from ..errors import PortalError
from ..fetch import error_message


def safe_next(default_endpoint="dashboard.index"):
    """The local path to land on after login."""
    target = request.args.get("next") or request.form.get("next")
    if target:
        parsed = urlparse(target)
        if not parsed.scheme and not parsed.netloc and target.startswith("/"):
            return target
    return url_for(default_endpoint)


@auth_bp.route("/login", methods=["GET", "POST"])
async def login():
    ctx = SessionContext.current()
    if request.method == "GET":
        if ctx.is_authenticated:
            return redirect(url_for("dashboard.index"))
        return render_template("login.html", next=request.args.get("next", ""))

    email = (request.form.get("email") or "").strip()
    password = request.form.get("password") or ""
    if not email or not password:
        flash("Email and password required", "error")
        return render_template("login.html", email=email, next=request.form.get("next", "")), 400

    try:
        async with SaccoApi.from_app() as api:
            resp = await api.login(email, password)
        ctx.init(resp.data)
    except (PortalError, ValueError) as e:
        current_app.logger.info(f"Login failed for {email}: {e}")
        flash(error_message(e), "error")
        return render_template("login.html", email=email, next=request.form.get("next", "")), 401

    session.permanent = True
    current_app.logger.info(f"{email} signed in as {ctx.role}")
    return redirect(safe_next())


@auth_bp.route("/logout", methods=["GET", "POST"])
def logout():
    """Clear the session and go back to the login page."""
    SessionContext.current().teardown()
    return redirect(url_for("auth.login"))
