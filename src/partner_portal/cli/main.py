"""Partner Portal CLI — manage customers, plans, vouchers and payments.

Usage:
    portal login                                  # Prompt for credentials, store tokens
    portal status                                 # Show backend URL and login state
    portal dashboard                              # Customer / plan / transaction stats
    portal customers --search jane                # List your customers
    portal plans                                  # List billing plans
    portal vouchers                               # List your customers' vouchers
    portal buy-voucher <plan-id> <customer-id>    # Purchase a voucher
    portal transactions                           # List transactions
    portal pay <customer-id> 500 -n "March"       # Record a cash payment
    portal nas                                    # List NAS devices
    portal get /api/v1/customers/stats/           # Raw authenticated GET
    portal logout                                 # Forget stored tokens
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import logging
import sys
from typing import Optional

import click
import httpx
import structlog

from partner_portal import __version__
from partner_portal.auth.tokens import Credentials, FileTokenStore
from partner_portal.client import ApiClient
from partner_portal.config import settings
from partner_portal.errors import PortalError
from partner_portal.navigation import FORBIDDEN_ROUTE, LOGIN_ROUTE, Navigator
from partner_portal.resources import PortalApi
from partner_portal.schemas.billing import (
    CustomerType,
    PlanType,
    TransactionType,
    type_label,
)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


class ConsoleNavigator(Navigator):
    """Turns client redirects into hints on stderr."""

    MESSAGES = {
        LOGIN_ROUTE: "Not signed in. Run `portal login` to start a session.",
        FORBIDDEN_ROUTE: "Your account is not allowed to do that. Contact your administrator.",
    }

    def redirect(self, target: str) -> None:
        message = self.MESSAGES.get(target, f"Redirected to {target}")
        click.secho(message, fg="yellow", err=True)


def _client() -> ApiClient:
    """Build a client pointed at the configured backend with the on-disk token store."""
    return ApiClient(
        settings.api_url,
        FileTokenStore(settings.token_file),
        ConsoleNavigator(),
        timeout=settings.request_timeout,
    )


def _configure_logging(level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    Portal errors become a red message and exit code 1.
    """
    try:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No running loop — normal CLI invocation
            return asyncio.run(coro)
        else:
            # Already inside an event loop (e.g. test runner) — run in a thread
            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
                return pool.submit(asyncio.run, coro).result()
    except PortalError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    except httpx.ConnectError:
        click.secho(f"Error: backend not reachable at {settings.api_url}", fg="red", err=True)
        click.echo("Set PARTNER_PORTAL_API_URL to point at a running backend.", err=True)
        sys.exit(1)


def _pretty_json(data) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(_or_dash(row.get(k)))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _or_dash(value):
    return "—" if value is None or value == "" else value


def _full_name(details: Optional[dict]) -> str:
    if not details:
        return ""
    name = f"{details.get('first_name', '')} {details.get('last_name', '')}".strip()
    return name or details.get("username", "")


def format_bytes(num: int) -> str:
    """1536 → '1.5 KB'."""
    if not num:
        return "0 B"
    size = float(num)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{round(size, 2):g} {unit}"
        size /= 1024
    return f"{round(size, 2):g} TB"


def format_duration(seconds: int) -> str:
    """3725 → '1h 2m', 65 → '1m 5s'."""
    if not seconds:
        return "0s"
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="portal")
@click.option("--verbose", "-v", is_flag=True, help="Log HTTP activity to stderr")
def main(verbose: bool):
    """Partner Portal — billing, vouchers and payments from the terminal."""
    _configure_logging("DEBUG" if verbose else settings.log_level)


# ---------------------------------------------------------------------------
# portal login / logout / status
# ---------------------------------------------------------------------------


@main.command()
@click.option("--username", "-u", prompt=True, help="Portal username")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Portal password")
def login(username: str, password: str):
    """Sign in and store the session tokens."""
    _run(_login_impl(username, password))


async def _login_impl(username: str, password: str):
    async with _client() as c:
        await c.login(Credentials(username=username, password=password))
    click.secho(f"Logged in as {username}", fg="green")


@main.command()
def logout():
    """Forget the stored session tokens."""
    c = _client()
    c.logout()
    _run(c.aclose())
    click.echo("Logged out.")


@main.command()
def status():
    """Show the configured backend and whether a session is stored."""
    c = _client()
    try:
        click.echo(f"Backend:    {settings.api_url}")
        click.echo(f"Token file: {c.tokens.path}")
        if c.is_authenticated():
            click.secho("Session:    signed in", fg="green")
        else:
            click.secho("Session:    signed out", fg="yellow")
    finally:
        _run(c.aclose())


# ---------------------------------------------------------------------------
# portal dashboard
# ---------------------------------------------------------------------------


@main.command()
def dashboard():
    """Summary stats for customers, billing plans and transactions."""
    _run(_dashboard_impl())


async def _dashboard_impl():
    async with _client() as c:
        stats = await PortalApi(c).dashboard_stats()

    customers = stats["customers"]
    plans = stats["billing_plans"]
    txns = stats["transactions"]

    click.secho("Customers", bold=True)
    click.echo(f"  Total:          {customers.get('total_customers', 0)}")
    click.echo(f"  Total balance:  {customers.get('total_balance', 0)}")
    for code, count in (customers.get("by_type") or {}).items():
        click.echo(f"    {type_label(CustomerType, code):12s}  {count}")

    click.echo()
    click.secho("Billing plans", bold=True)
    click.echo(f"  Total:          {plans.get('total_plans', 0)}")
    click.echo(f"  Average price:  {plans.get('average_price', 0)}")
    click.echo(f"  Revenue potential: {plans.get('total_revenue_potential', 0)}")
    for code, count in (plans.get("by_type") or {}).items():
        click.echo(f"    {type_label(PlanType, code):12s}  {count}")

    click.echo()
    click.secho("Transactions", bold=True)
    click.echo(f"  Total:          {txns.get('total_transactions', 0)}")
    click.echo(f"  Total amount:   {txns.get('total_amount', 0)}")
    today = txns.get("today") or {}
    month = txns.get("this_month") or {}
    click.echo(f"  Today:          {today.get('count', 0)} ({today.get('amount', 0)})")
    click.echo(f"  This month:     {month.get('count', 0)} ({month.get('amount', 0)})")
    for code, entry in (txns.get("by_type") or {}).items():
        click.echo(
            f"    {type_label(TransactionType, code):12s}  "
            f"{entry.get('count', 0)} ({entry.get('total', 0)})"
        )


# ---------------------------------------------------------------------------
# portal customers
# ---------------------------------------------------------------------------


@main.command()
@click.option("--search", "-s", help="Filter by name, username or account number")
def customers(search: Optional[str]):
    """List customers you manage."""
    _run(_customers_impl(search))


async def _customers_impl(search: Optional[str]):
    async with _client() as c:
        items = await PortalApi(c).customers.list_mine(search=search)

    if not items:
        click.echo("No customers found.")
        return

    rows = [
        {
            "id": cust.get("id"),
            "account_no": cust.get("account_no"),
            "name": _full_name(cust.get("user_details")),
            "type": type_label(CustomerType, cust["customer_type"])
            if cust.get("customer_type") is not None else None,
            "balance": cust.get("balance"),
        }
        for cust in items
    ]
    click.secho(f"Customers ({len(rows)}):", bold=True)
    click.echo()
    _print_table(rows, [
        ("Account", "account_no", 12),
        ("Name", "name", 28),
        ("Type", "type", 8),
        ("Balance", "balance", 10),
        ("ID", "id", 36),
    ])


# ---------------------------------------------------------------------------
# portal plans
# ---------------------------------------------------------------------------


@main.command()
def plans():
    """List billing plans."""
    _run(_plans_impl())


async def _plans_impl():
    async with _client() as c:
        items = await PortalApi(c).billing_plans.list_all()

    if not items:
        click.echo("No billing plans found.")
        return

    rows = [
        {
            **plan,
            "type": type_label(PlanType, plan["plan_type"])
            if plan.get("plan_type") is not None else None,
            "validity": f"{plan.get('valid_for', '')} {plan.get('valid_for_type', '')}".strip(),
        }
        for plan in items
    ]
    click.secho(f"Billing plans ({len(rows)}):", bold=True)
    click.echo()
    _print_table(rows, [
        ("Name", "display_name", 24),
        ("Type", "type", 12),
        ("Price", "price", 10),
        ("Valid for", "validity", 14),
        ("ID", "id", 36),
    ])


# ---------------------------------------------------------------------------
# portal vouchers / buy-voucher
# ---------------------------------------------------------------------------


@main.command()
def vouchers():
    """List vouchers of the customers you manage."""
    _run(_vouchers_impl())


async def _vouchers_impl():
    async with _client() as c:
        items = await PortalApi(c).vouchers.list_mine()

    if not items:
        click.echo("No vouchers found.")
        return

    rows = [
        {
            "username": v.get("rad_username"),
            "plan": (v.get("billing_plan") or {}).get("display_name"),
            "customer": (v.get("customer") or {}).get("account_no"),
            "data": format_bytes(v.get("total_packets_used") or 0),
            "time": format_duration(v.get("total_time_used") or 0),
            "expiry": v.get("expiry"),
        }
        for v in items
    ]
    click.secho(f"Vouchers ({len(rows)}):", bold=True)
    click.echo()
    _print_table(rows, [
        ("Username", "username", 14),
        ("Plan", "plan", 20),
        ("Customer", "customer", 12),
        ("Data used", "data", 10),
        ("Time used", "time", 10),
        ("Expiry", "expiry", 25),
    ])


@main.command("buy-voucher")
@click.argument("billing_plan_id")
@click.argument("customer_id")
def buy_voucher(billing_plan_id: str, customer_id: str):
    """Purchase a voucher on BILLING_PLAN_ID for CUSTOMER_ID."""
    _run(_buy_voucher_impl(billing_plan_id, customer_id))


async def _buy_voucher_impl(billing_plan_id: str, customer_id: str):
    async with _client() as c:
        result = await PortalApi(c).vouchers.purchase(billing_plan_id, customer_id)

    click.secho("Voucher purchased.", fg="green")
    if isinstance(result, dict) and result.get("rad_username"):
        click.echo(f"  Username: {result['rad_username']}")
        click.echo(f"  Password: {result.get('rad_password', '—')}")


# ---------------------------------------------------------------------------
# portal transactions / pay
# ---------------------------------------------------------------------------


@main.command()
def transactions():
    """List payment transactions."""
    _run(_transactions_impl())


async def _transactions_impl():
    async with _client() as c:
        items = await PortalApi(c).transactions.list_all()

    if not items:
        click.echo("No transactions found.")
        return

    rows = [
        {
            **t,
            "type": t.get("type_display") or type_label(TransactionType, t.get("type", "?")),
            "reversed": "yes" if t.get("reversed") else "",
        }
        for t in items
    ]
    click.secho(f"Transactions ({len(rows)}):", bold=True)
    click.echo()
    _print_table(rows, [
        ("Date", "created_at", 25),
        ("Account", "customer_account_no", 12),
        ("Type", "type", 12),
        ("Amount", "amount", 10),
        ("Balance", "balance", 10),
        ("Reversed", "reversed", 8),
        ("Narrative", "narrative", 30),
    ])


@main.command()
@click.argument("customer_id")
@click.argument("amount", type=click.FloatRange(min=0, min_open=True))
@click.option("--narrative", "-n", help="Free-text note for the payment")
def pay(customer_id: str, amount: float, narrative: Optional[str]):
    """Record a cash payment of AMOUNT for CUSTOMER_ID."""
    _run(_pay_impl(customer_id, amount, narrative))


async def _pay_impl(customer_id: str, amount: float, narrative: Optional[str]):
    async with _client() as c:
        await PortalApi(c).transactions.create(customer_id, amount, narrative)
    click.secho(f"Recorded payment of {amount:g} for {customer_id}", fg="green")


# ---------------------------------------------------------------------------
# portal nas
# ---------------------------------------------------------------------------


@main.command()
def nas():
    """List NAS devices available to your billing plans."""
    _run(_nas_impl())


async def _nas_impl():
    async with _client() as c:
        items = await PortalApi(c).nas.list_all()

    if not items:
        click.echo("No NAS devices found.")
        return

    click.secho(f"NAS devices ({len(items)}):", bold=True)
    click.echo()
    _print_table(items, [
        ("Name", "name", 24),
        ("IP", "nas_ip", 16),
        ("ID", "id", 36),
    ])


# ---------------------------------------------------------------------------
# portal get
# ---------------------------------------------------------------------------


@main.command("get")
@click.argument("path")
def get_path(path: str):
    """Authenticated GET of PATH, printed as JSON."""
    _run(_get_impl(path))


async def _get_impl(path: str):
    if not path.startswith("/"):
        path = f"/{path}"
    async with _client() as c:
        data = await c.get(path)
    click.echo(_pretty_json(data))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
