"""Helpers shared by the page blueprints."""
import asyncio
import math
from contextlib import asynccontextmanager

from flask import current_app, flash, g, redirect, request, url_for

from .auth.session import SessionContext
from .backend import SaccoApi
from .errors import PortalError
from .fetch import error_message


def session_api():
    """A backend client carrying the current session's bearer token."""
    return SaccoApi.from_app(token=SessionContext.current().access_token)


@asynccontextmanager
async def mounted(*controllers):
    """Mount ``controllers``, wait for their first loads, unmount on exit."""
    for controller in controllers:
        controller.mount()
    try:
        timeout = current_app.config.get("PAGE_RENDER_TIMEOUT")
        await asyncio.gather(*(c.settled(timeout) for c in controllers))
        # a page still loading reloads itself until its data arrives
        g.auto_refresh = any(c.loading for c in controllers)
        yield controllers
    finally:
        for controller in controllers:
            controller.unmount()


async def submit(call, success, fallback):
    """Run one mutation and flash its outcome. Returns True on success."""
    try:
        await call()
    except PortalError as e:
        current_app.logger.warning(f"{fallback} {e.message}")
        flash(error_message(e, fallback), "error")
        return False
    flash(success, "success")
    return True


def back_to(endpoint, **values):
    """Redirect to ``endpoint``; the page reloads everything it shows."""
    return redirect(url_for(endpoint, **values))


def form_int(name):
    """Integer form field, or 0 when missing or not a number."""
    try:
        return int(request.form.get(name) or 0)
    except ValueError:
        return 0


def form_amount(name):
    """Float form field, or 0.0 when missing, not a number or not finite."""
    try:
        value = float(request.form.get(name) or 0)
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def page_window(page, total_pages, max_visible=5):
    """Zero-based page numbers to show around ``page`` in a pager."""
    if total_pages <= 0:
        return []
    start = max(0, page - max_visible // 2)
    end = min(total_pages - 1, start + max_visible - 1)
    if end - start + 1 < max_visible:
        start = max(0, end - max_visible + 1)
    return list(range(start, end + 1))
