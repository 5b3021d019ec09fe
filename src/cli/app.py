"""
Command-line entry point for the Khaata client.

Every command maps onto one screen function. Feedback is printed as toasts on
stderr; data goes to stdout as rich tables. A command exits with status 1
when its screen reports a failure.
"""

import datetime as dt
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from auth.context import AuthContext
from auth.guard import NotAuthenticatedError
from common.biometric import BiometricGate
from common.config import Settings, configure_logging
from common.khaata_api import KhaataClient
from common.toast import Toaster
from screens import (
    account,
    contacts,
    dashboard,
    group_khaata,
    mess,
    notifications,
    personal_khaata,
    reports,
    settings as settings_screen,
)
from screens.base import ScreenContext
from state.secure_store import SecureStore


T = TypeVar("T")

DATE_FORMATS = ["%Y-%m-%d"]

app = typer.Typer(name="khaata", help="Khaata - personal and group ledger client", add_completion=False)
contacts_app = typer.Typer(help="Contacts and their ledgers")
personal_app = typer.Typer(help="Personal income/expense ledger")
group_app = typer.Typer(help="Group (split) transactions")
mess_app = typer.Typer(help="Mess meal records and analytics")
reports_app = typer.Typer(help="Export PDF/CSV reports")
settings_app = typer.Typer(help="Biometric lock, backup and account deletion")
app.add_typer(contacts_app, name="contacts")
app.add_typer(personal_app, name="personal")
app.add_typer(group_app, name="group")
app.add_typer(mess_app, name="mess")
app.add_typer(reports_app, name="reports")
app.add_typer(settings_app, name="settings")

console = Console()
err_console = Console(stderr=True)


def make_client(settings: Settings) -> KhaataClient:
    return KhaataClient(base_url=settings.base_url, timeout=settings.timeout)


@app.callback()
def main(ctx: typer.Context) -> None:
    """Khaata ledger client. Configure with KHAATA_* environment variables."""
    try:
        settings = Settings.from_env()
    except RuntimeError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    configure_logging(settings.log_level)
    store = SecureStore.at_home(settings.home, fernet_key=settings.fernet_key)
    client = make_client(settings)
    ctx.call_on_close(client.close)
    auth = AuthContext(store, client)
    auth.load()
    ctx.obj = ScreenContext(auth=auth, toaster=Toaster(err_console), gate=BiometricGate(store))


def _run(ctx: typer.Context, screen: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a screen; a falsy result (None or False) becomes exit status 1."""
    sc: ScreenContext = ctx.obj
    try:
        result = screen(sc, *args, **kwargs)
    except NotAuthenticatedError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if result is None or result is False:
        raise typer.Exit(1)
    return result


def _day(value: Optional[dt.datetime]) -> Optional[dt.date]:
    return value.date() if value is not None else None


def _money(v: Optional[float]) -> str:
    return "-" if v is None else f"₹{v:,.2f}"


# --------------- Account ---------------
@app.command()
def login(
    ctx: typer.Context,
    email: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
) -> None:
    """Sign in and store the session."""
    _run(ctx, account.login, email, password)


@app.command()
def register(
    ctx: typer.Context,
    name: str = typer.Option(..., prompt=True),
    email: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    confirm_password: str = typer.Option(..., prompt="Confirm password", hide_input=True),
    verify_email: bool = typer.Option(True, "--verify-email/--no-verify-email", help="Create the account after an emailed code"),
) -> None:
    """Create an account. By default a code is emailed; finish with `verify-otp`."""
    _run(ctx, account.register, name, email, password, confirm_password, verify_email=verify_email)


@app.command("verify-otp")
def verify_otp(
    ctx: typer.Context,
    email: str = typer.Option(..., prompt=True),
    otp: str = typer.Option(..., prompt="Code"),
) -> None:
    """Finish sign-up with the emailed code."""
    _run(ctx, account.verify_otp, email, otp)


@app.command("resend-otp")
def resend_otp(ctx: typer.Context, email: str = typer.Option(..., prompt=True)) -> None:
    _run(ctx, account.resend_otp, email)


@app.command()
def logout(ctx: typer.Context) -> None:
    account.logout(ctx.obj)


@app.command()
def whoami(ctx: typer.Context) -> None:
    """Show the signed-in user."""
    sc: ScreenContext = ctx.obj
    user = sc.auth.user
    if user is None:
        err_console.print("[red]Please log in to continue.[/red]")
        raise typer.Exit(1)
    console.print(f"[bold]{user.name}[/bold] <{user.email}> (id {user.id})")


@app.command("change-password")
def change_password(
    ctx: typer.Context,
    current_password: str = typer.Option(..., prompt=True, hide_input=True),
    new_password: str = typer.Option(..., prompt=True, hide_input=True),
    confirm_new_password: str = typer.Option(..., prompt=True, hide_input=True),
) -> None:
    _run(ctx, account.change_password, current_password, new_password, confirm_new_password)


# --------------- Dashboard ---------------
@app.command("dashboard")
def show_dashboard(ctx: typer.Context) -> None:
    """Balance totals, top debtors and the monthly summary."""
    data = _run(ctx, dashboard.load_dashboard)
    t = data.totals
    console.print(f"Contacts: {t.total_contacts}")
    console.print(f"[green]You will receive:[/green] {_money(t.receivables)} from {t.contacts_owing} contact(s)")
    console.print(f"[red]You owe:[/red] {_money(t.payables)} to {t.contacts_you_owe} contact(s)")
    if t.top_owing:
        table = Table(title="Top owing")
        table.add_column("Name")
        table.add_column("Balance", justify="right")
        for name, balance in t.top_owing:
            table.add_row(name, _money(balance))
        console.print(table)
    if data.monthly:
        table = Table(title="Monthly summary")
        for col in ("Month", "You paid", "Friends paid", "Net"):
            table.add_column(col)
        for m in data.monthly:
            table.add_row(m.label or f"{m.year}-{m.month:02d}", _money(m.user_paid), _money(m.friend_paid), _money(m.net))
        console.print(table)
    if data.buckets:
        console.print("  ".join(f"{b.label}: {b.count}" for b in data.buckets))


# --------------- Contacts ---------------
@contacts_app.command("list")
def contacts_list(ctx: typer.Context, search: Optional[str] = typer.Option(None, "--search", "-s")) -> None:
    items = _run(ctx, contacts.list_contacts, search=search)
    table = Table(title="Contacts")
    for col in ("ID", "Name", "Phone", "Email", "Balance"):
        table.add_column(col)
    for c in items:
        table.add_row(c.id, c.name, c.phone, c.email or "", _money(c.balance))
    console.print(table)


@contacts_app.command("add")
def contacts_add(
    ctx: typer.Context,
    name: str = typer.Option(..., prompt=True),
    phone: str = typer.Option(..., prompt=True),
    email: Optional[str] = typer.Option(None),
) -> None:
    _run(ctx, contacts.add_contact, name, phone, email)


@contacts_app.command("show")
def contacts_show(ctx: typer.Context, contact_id: str) -> None:
    """A contact and its ledger."""
    detail = _run(ctx, contacts.contact_detail, contact_id)
    c = detail.contact
    console.print(f"[bold]{c.name}[/bold]  {c.phone}  {c.email or ''}  balance {_money(c.balance)}")
    table = Table(title="Transactions")
    for col in ("Date", "Payer", "Amount", "Note"):
        table.add_column(col)
    for tx in detail.transactions:
        table.add_row(tx.created_at or "", tx.payer, _money(tx.amount), tx.note or "")
    console.print(table)


@contacts_app.command("update")
def contacts_update(
    ctx: typer.Context,
    contact_id: str,
    name: str = typer.Option(..., prompt=True),
    phone: str = typer.Option(..., prompt=True),
    email: Optional[str] = typer.Option(None),
) -> None:
    _run(ctx, contacts.update_contact, contact_id, name, phone, email)


@contacts_app.command("delete")
def contacts_delete(ctx: typer.Context, contact_id: str, yes: bool = typer.Option(False, "--yes", "-y")) -> None:
    if not yes:
        typer.confirm("Delete this contact and its transactions?", abort=True)
    _run(ctx, contacts.delete_contact, contact_id)


@contacts_app.command("pay")
def contacts_pay(
    ctx: typer.Context,
    contact_id: str,
    amount: float,
    payer: str = typer.Option("USER", help="USER (you paid) or FRIEND (they paid)"),
    note: Optional[str] = typer.Option(None),
) -> None:
    """Record a payment in a contact's ledger."""
    _run(ctx, contacts.add_transaction, contact_id, amount, payer, note)


# --------------- Personal ledger ---------------
@personal_app.command("list")
def personal_list(
    ctx: typer.Context,
    type: Optional[str] = typer.Option(None, help="INCOME or EXPENSE"),
    start: Optional[dt.datetime] = typer.Option(None, formats=DATE_FORMATS),
    end: Optional[dt.datetime] = typer.Option(None, formats=DATE_FORMATS),
) -> None:
    ledger = _run(ctx, personal_khaata.list_transactions, type=type, start_date=_day(start), end_date=_day(end))
    s = ledger.summary
    console.print(
        f"Income {_money(s.total_income)}  Expense {_money(s.total_expense)}  "
        f"Net {_money(s.net_balance)}  ({s.total_transactions} entries)"
    )
    table = Table(title="Personal khaata")
    for col in ("ID", "Date", "Type", "Category", "Amount", "Description"):
        table.add_column(col)
    for tx in ledger.transactions:
        table.add_row(tx.id, tx.date or "", tx.type, tx.category, _money(tx.amount), tx.description)
    console.print(table)


@personal_app.command("add")
def personal_add(
    ctx: typer.Context,
    amount: float,
    type: str = typer.Option(..., help="INCOME or EXPENSE"),
    category: Optional[str] = typer.Option(None),
    description: Optional[str] = typer.Option(None),
    date: Optional[dt.datetime] = typer.Option(None, formats=DATE_FORMATS),
) -> None:
    _run(ctx, personal_khaata.add_transaction, amount, type, category=category, description=description, date=_day(date))


@personal_app.command("update")
def personal_update(
    ctx: typer.Context,
    transaction_id: str,
    amount: float,
    type: str = typer.Option(..., help="INCOME or EXPENSE"),
    category: Optional[str] = typer.Option(None),
    description: Optional[str] = typer.Option(None),
    date: Optional[dt.datetime] = typer.Option(None, formats=DATE_FORMATS),
) -> None:
    _run(
        ctx,
        personal_khaata.update_transaction,
        transaction_id,
        amount,
        type,
        category=category,
        description=description,
        date=_day(date),
    )


@personal_app.command("delete")
def personal_delete(ctx: typer.Context, transaction_id: str) -> None:
    _run(ctx, personal_khaata.delete_transaction, transaction_id)


# --------------- Group ledger ---------------
@group_app.command("list")
def group_list(ctx: typer.Context) -> None:
    items = _run(ctx, group_khaata.list_group_transactions)
    table = Table(title="Group transactions")
    for col in ("ID", "Description", "Total", "Per person", "Split", "Contacts"):
        table.add_column(col)
    for tx in items:
        table.add_row(
            tx.id,
            tx.description,
            _money(tx.total_amount),
            _money(tx.per_person_share),
            tx.split_mode,
            ", ".join(tx.contact_names),
        )
    console.print(table)


def _contact_ref(ref: Any) -> str:
    # Listings populate contacts as objects; creation returns bare ids
    if isinstance(ref, dict):
        return str(ref.get("_id") or ref.get("id") or "")
    return str(ref)


@group_app.command("show")
def group_show(ctx: typer.Context, transaction_id: str) -> None:
    """One group transaction with each participant's share."""
    tx = _run(ctx, group_khaata.group_transaction_detail, transaction_id)
    payer = tx.payer_name or ("You" if tx.payer_id == "USER" else _contact_ref(tx.payer_id))
    console.print(f"[bold]{tx.description}[/bold]  total {_money(tx.total_amount)}  paid by {payer}")
    table = Table(title=f"{tx.split_mode.capitalize()} split")
    table.add_column("Participant")
    table.add_column("Share", justify="right")
    manual = tx.individual_amounts or {}
    for i, ref in enumerate(tx.contact_ids):
        cid = _contact_ref(ref)
        name = tx.contact_names[i] if i < len(tx.contact_names) else cid
        share = manual.get(cid) if tx.split_mode == "manual" else tx.per_person_share
        table.add_row(name, _money(share))
    you = tx.user_amount if tx.split_mode == "manual" else tx.per_person_share
    table.add_row("You", _money(you))
    console.print(table)


def _parse_amounts(pairs: List[str]) -> Dict[str, float]:
    amounts: Dict[str, float] = {}
    for pair in pairs:
        cid, sep, raw = pair.partition("=")
        if not sep:
            raise typer.BadParameter(f"expected CONTACT_ID=AMOUNT, got {pair!r}")
        try:
            amounts[cid.strip()] = float(raw)
        except ValueError:
            raise typer.BadParameter(f"invalid amount in {pair!r}")
    return amounts


@group_app.command("create")
def group_create(
    ctx: typer.Context,
    total_amount: float,
    description: str,
    contact: List[str] = typer.Option([], "--contact", "-c", help="Contact id (repeatable)"),
    payer: str = typer.Option("USER", help="USER or the id of the contact who paid"),
    manual: List[str] = typer.Option([], "--amount", help="CONTACT_ID=AMOUNT for a manual split (repeatable)"),
    user_amount: float = typer.Option(0.0, help="Your own share in a manual split"),
) -> None:
    """Split an expense equally, or manually when --amount is given."""
    amounts = _parse_amounts(manual)
    _run(
        ctx,
        group_khaata.create_group_transaction,
        contact_ids=contact,
        total_amount=total_amount,
        description=description,
        payer_id=payer,
        split_mode="manual" if amounts else "equal",
        individual_amounts=amounts,
        user_amount=user_amount,
    )


# --------------- Mess ---------------
def _records_table(title: str, records: List[Any]) -> Table:
    table = Table(title=title)
    for col in ("ID", "Date", "Meal", "Persons", "Price"):
        table.add_column(col)
    for r in records:
        table.add_row(r.id, r.date[:10], r.meal_type, str(r.person_count), _money(r.price))
    return table


@mess_app.command("list")
def mess_list(ctx: typer.Context) -> None:
    console.print(_records_table("Mess records", _run(ctx, mess.list_records)))


@mess_app.command("add")
def mess_add(
    ctx: typer.Context,
    meal_type: str = typer.Argument(..., help="Breakfast, Lunch or Dinner"),
    price: float = typer.Argument(...),
    date: Optional[dt.datetime] = typer.Option(None, formats=DATE_FORMATS, help="Defaults to today"),
    persons: int = typer.Option(1),
) -> None:
    _run(ctx, mess.add_record, _day(date) or dt.date.today(), meal_type, price, persons)


@mess_app.command("delete")
def mess_delete(ctx: typer.Context, record_id: str) -> None:
    _run(ctx, mess.delete_record, record_id)


@mess_app.command("months")
def mess_months(ctx: typer.Context) -> None:
    for m in _run(ctx, mess.available_months):
        console.print(f"{m.label or f'{m.month_name} {m.year}'}: {m.total_meals} meals, {_money(m.total_amount)}")


def _print_report(title: str, report: Any) -> None:
    console.print(_records_table(title, report.records))
    if report.analytics:
        console.print_json(json.dumps(report.analytics, default=str))


@mess_app.command("monthly")
def mess_monthly(ctx: typer.Context, year: int, month: int) -> None:
    _print_report(f"Mess {year}-{month:02d}", _run(ctx, mess.monthly_report, year=year, month=month))


@mess_app.command("range")
def mess_range(
    ctx: typer.Context,
    start: dt.datetime = typer.Argument(..., formats=DATE_FORMATS),
    end: dt.datetime = typer.Argument(..., formats=DATE_FORMATS),
) -> None:
    report = _run(ctx, mess.date_range_report, start_date=start.date(), end_date=end.date())
    _print_report(f"Mess {start.date()} to {end.date()}", report)


# --------------- Reports ---------------
@reports_app.command("contact")
def reports_contact(
    ctx: typer.Context,
    contact_id: str,
    format: str = typer.Option("pdf", "--format", "-f"),
    out: Path = typer.Option(Path("."), "--out", "-o", file_okay=False),
) -> None:
    _run(ctx, reports.export_contact_report, contact_id, format=format, directory=out)


@reports_app.command("user")
def reports_user(
    ctx: typer.Context,
    format: str = typer.Option("pdf", "--format", "-f"),
    out: Path = typer.Option(Path("."), "--out", "-o", file_okay=False),
) -> None:
    _run(ctx, reports.export_user_report, format=format, directory=out)


# --------------- Settings ---------------
@settings_app.command("biometric")
def settings_biometric(ctx: typer.Context, enabled: bool = typer.Argument(..., help="true/false")) -> None:
    _run(ctx, settings_screen.set_biometric, enabled)


@settings_app.command("backup")
def settings_backup(ctx: typer.Context, out: Path = typer.Option(Path("."), "--out", "-o", file_okay=False)) -> None:
    _run(ctx, settings_screen.backup_data, directory=out)


@settings_app.command("delete-account")
def settings_delete_account(ctx: typer.Context, yes: bool = typer.Option(False, "--yes", "-y")) -> None:
    if not yes:
        typer.confirm("Delete your account and all of its data? This cannot be undone.", abort=True)
    _run(ctx, settings_screen.delete_account)


# --------------- Notifications ---------------
@app.command("notifications")
def show_notifications(ctx: typer.Context) -> None:
    items = _run(ctx, notifications.list_notifications)
    table = Table(title="Notifications")
    for col in ("Sent", "Contact", "Status", "Message"):
        table.add_column(col)
    for n in items:
        table.add_row(n.sent_at or n.created_at or "", n.contact_name or "", n.status or "", n.message or "")
    console.print(table)


__all__ = ["app", "make_client"]
