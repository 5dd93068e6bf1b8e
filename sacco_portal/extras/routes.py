from flask import abort, current_app, render_template, request

from . import extras_bp
from ..auth.decorators import login_required
from ..fetch import FetchController
from ..models import ExtraType
from ..pages import mounted, page_window, session_api


@extras_bp.route("/")
@login_required
async def index():
    try:
        extra_type = ExtraType(request.args.get("type", ExtraType.SURPLUS.value))
    except ValueError:
        abort(400, "Unknown extra type")
    page = max(request.args.get("page", 0, type=int), 0)
    size = current_app.config["EXTRAS_PAGE_SIZE"]

    async with session_api() as api:
        extras = FetchController(lambda: api.list_extras(page, size, extra_type), "extras")
        async with mounted(extras):
            total_pages = extras.data.meta.total_pages if extras.data else 0
            return render_template(
                "extras.html",
                extras=extras,
                extra_type=extra_type,
                extra_types=list(ExtraType),
                page=page,
                pages=page_window(page, total_pages),
                total_pages=total_pages,
            )
