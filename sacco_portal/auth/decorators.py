from functools import wraps

from flask import current_app, flash, redirect, request, url_for

from .session import SessionContext


def login_required(view_func):
    """Redirect to auth.login unless the session holds an unexpired token.

    Works for both sync and async views.
    """
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        ctx = SessionContext.current()
        try:
            authenticated = ctx.is_authenticated
        except (TypeError, ValueError) as e:
            current_app.logger.error(f"Corrupted session: {e}")
            authenticated = False
        if not authenticated:
            if ctx.access_token:
                flash("Your session has expired. Please sign in again.", "error")
            ctx.teardown()
            return redirect(url_for("auth.login", next=request.path))
        return current_app.ensure_sync(view_func)(*args, **kwargs)
    return wrapper


def role_required(*roles):
    """Ensure the logged-in user has one of the required roles (e.g. 'ADMIN')."""
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(*args, **kwargs):
            if not SessionContext.current().has_role(*roles):
                flash("You are not allowed to do that.", "error")
                return redirect(url_for("dashboard.index"))
            return current_app.ensure_sync(view_func)(*args, **kwargs)
        return wrapper
    return decorator
