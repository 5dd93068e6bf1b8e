import re
from datetime import date, datetime

STATUS_CLASSES = {
    "ACTIVE": "badge-green",
    "INACTIVE": "badge-gray",
    "SUSPENDED": "badge-red",
    "PENDING": "badge-yellow",
    "APPROVED": "badge-blue",
    "DISBURSED": "badge-green",
    "REPAID": "badge-gray",
    "REJECTED": "badge-red",
    "DEFAULTED": "badge-red",
    "CLEARED": "badge-green",
    "PAID": "badge-green",
    "UNPAID": "badge-red",
}


def _parse(value):
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def format_currency(amount, currency="KES"):
    return f"{currency} {float(amount or 0):,.2f}"


def format_date(value):
    parsed = _parse(value)
    return parsed.strftime("%d %b %Y") if parsed else (value or "")


def format_datetime(value):
    parsed = _parse(value)
    return parsed.strftime("%d %b %Y, %H:%M") if parsed else (value or "")


def format_month(value):
    parsed = _parse(value)
    return parsed.strftime("%B %Y") if parsed else (value or "")


def format_percent(value):
    return f"{float(value or 0):.1f}%"


def status_class(status):
    key = getattr(status, "value", status)
    return STATUS_CLASSES.get(key, "badge-gray")


def humanize(name):
    """'latePaymentFineAmount' or 'late_payment_fine_amount' -> 'Late payment fine amount'."""
    words = re.sub(r"(?<=[a-z])([A-Z])", r" \1", name).replace("_", " ").split()
    return " ".join(words).capitalize()


def register_filters(app):
    app.jinja_env.filters.update(
        currency=format_currency,
        date=format_date,
        datetime=format_datetime,
        month=format_month,
        percent=format_percent,
        status_class=status_class,
        humanize=humanize,
    )
