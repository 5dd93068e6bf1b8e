import asyncio
import os
from datetime import date

import click
from flask.cli import with_appcontext

from .backend import SaccoApi
from .errors import PortalError
from .formatting import format_currency
from .models import LoanStatus, MemberRequest


def _api():
    return SaccoApi.from_app(token=os.environ.get("SACCO_API_TOKEN"))


async def _save_member(member):
    async with _api() as api:
        return await api.save_member(member)


async def _list_loans(status):
    async with _api() as api:
        return await api.list_loans(status)


@click.command("create-member")
@click.argument("full_name")
@click.argument("phone")
@click.argument("email")
@click.option("--join-date", default=None, help="ISO date, defaults to today.")
@with_appcontext
def create_member(full_name, phone, email, join_date):
    """Register a member through the backend API."""
    member = MemberRequest(
        full_name=full_name,
        phone=phone,
        email=email,
        join_date=join_date or date.today().isoformat(),
    )
    try:
        asyncio.run(_save_member(member))
    except PortalError as e:
        raise click.ClickException(e.message)
    click.echo("Member created successfully.")


@click.command("list-loans")
@click.option(
    "--status",
    type=click.Choice([s.value for s in LoanStatus]),
    default=LoanStatus.PENDING.value,
    show_default=True,
)
@with_appcontext
def list_loans(status):
    """Print the loans in one status."""
    try:
        resp = asyncio.run(_list_loans(LoanStatus(status)))
    except PortalError as e:
        raise click.ClickException(e.message)
    if not resp.data:
        click.echo(f"No {status.lower()} loans.")
        return
    for loan in resp.data:
        click.echo(
            f"#{loan.id:<6} {loan.member_name:<30} "
            f"{format_currency(loan.principal):>18} paid {format_currency(loan.paid_amount)}"
        )


def register_cli(app):
    app.cli.add_command(create_member)
    app.cli.add_command(list_loans)
