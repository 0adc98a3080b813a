# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/tradedesk/cli.py
# Commands Legend (run from the backend directory, FLASK_APP=wsgi.py):
#
# Schema:
# - flask system init-db              create missing tables (idempotent)
# - flask system reset-db --yes       DEV/TEST only: drop and recreate everything
# - flask system init --org "Acme" --code ACME --username owner --email owner@acme.test
#                                     first org + OWNER account in one step
#
# Tenants and people:
# - flask orgs list | create --name --code | deactivate --org-id
# - flask users list | create --username --email [--name]
# - flask members add --org-id 1 --username alice --role STAFF
#
# Read-only inspection:
# - flask orders list --org-id 1 [--customer-id 3] [--status PAID]
# - flask stock show --org-id 1 --product-id 7
# - flask stock low --org-id 1

import click
from flask.cli import with_appcontext

from .constants import MEMBER_ROLES, ORDER_STATUSES
from .errors import ActionError
from .extensions import db
from .models import Member, Organization, User
from .services import membership_service, order_service, stock_service
from .services.auth_service import PasswordValidationError, create_user


def _fail(message: str) -> None:
    click.echo(f"FAIL {message}", err=True)


def _table(headers: list[tuple[str, int]], rows: list[tuple]) -> None:
    width = sum(w for _, w in headers) + len(headers)
    click.echo("=" * width)
    click.echo(" ".join(f"{h:<{w}}" for h, w in headers))
    click.echo("=" * width)
    for row in rows:
        click.echo(" ".join(f"{str(v):<{w}}" for v, (_, w) in zip(row, headers)))
    click.echo("=" * width)


def _find_user(username: str) -> User | None:
    return db.session.query(User).filter_by(username=username).first()


# =============================================================================
# system
# =============================================================================


@click.group("system")
def system_group():
    """Schema and first-run bootstrap."""


@system_group.command("init-db")
@with_appcontext
def init_db():
    """Create missing tables. Existing tables and data are left untouched."""
    db.create_all()
    click.echo("PASS Schema is up to date.")


@system_group.command("reset-db")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@with_appcontext
def reset_db(yes):
    """Drop every table and recreate the schema. Deletes all data."""
    if not yes:
        click.confirm("WARN Every order, product and user will be deleted. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database recreated.")


@system_group.command("init")
@click.option("--org", "org_name", required=True, help="Organization name")
@click.option("--code", required=True, help="Organization short code")
@click.option("--username", required=True)
@click.option("--email", required=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def init_system(org_name, code, username, email, password):
    """Create tables, one organization and its OWNER in a single step."""
    db.create_all()

    org = db.session.query(Organization).filter_by(code=code).first()
    if org is None:
        org = Organization(name=org_name, code=code, is_active=True)
        db.session.add(org)
        db.session.commit()
        click.echo(f"PASS Organization {org.code} created (ID {org.id})")
    else:
        click.echo(f"SKIP Organization {org.code} already exists (ID {org.id})")

    user = _find_user(username)
    if user is None:
        try:
            user = create_user(username=username, email=email, password=password)
        except (PasswordValidationError, ValueError) as e:
            _fail(str(e))
            raise SystemExit(1)
        click.echo(f"PASS User {user.username} created (ID {user.id})")

    try:
        membership_service.add_member(org.id, user.id, "OWNER")
    except ActionError as e:
        db.session.rollback()
        click.echo(f"SKIP {e.message}")
    else:
        click.echo(f"PASS {user.username} is OWNER of {org.code}")


# =============================================================================
# orgs
# =============================================================================


@click.group("orgs")
def orgs_group():
    """Organization (tenant) management."""


@orgs_group.command("list")
@with_appcontext
def list_orgs():
    orgs = db.session.query(Organization).order_by(Organization.id.asc()).all()
    if not orgs:
        click.echo("No organizations.")
        return

    rows = []
    for org in orgs:
        members = db.session.query(Member).filter_by(org_id=org.id, is_active=True).count()
        rows.append((org.id, org.name, org.code or "-", "yes" if org.is_active else "no", members))
    _table([("ID", 5), ("Name", 30), ("Code", 12), ("Active", 7), ("Members", 8)], rows)


@orgs_group.command("create")
@click.option("--name", required=True, help="Organization name")
@click.option("--code", required=True, help="Short code (unique)")
@with_appcontext
def create_org(name, code):
    if db.session.query(Organization.id).filter_by(code=code).first():
        _fail(f"Organization code '{code}' is taken")
        raise SystemExit(1)

    org = Organization(name=name, code=code, is_active=True)
    db.session.add(org)
    db.session.commit()
    click.echo(f"PASS Organization {org.code} created (ID {org.id})")


@orgs_group.command("deactivate")
@click.option("--org-id", type=int, required=True)
@with_appcontext
def deactivate_org(org_id):
    """Block every request for an organization without deleting its data."""
    org = db.session.get(Organization, org_id)
    if org is None:
        _fail(f"Organization {org_id} not found")
        raise SystemExit(1)
    org.is_active = False
    db.session.commit()
    click.echo(f"PASS Organization {org.code or org.id} deactivated")


# =============================================================================
# users / members
# =============================================================================


@click.group("users")
def users_group():
    """User accounts. Users are global; access comes from memberships."""


@users_group.command("create")
@click.option("--username", prompt=True)
@click.option("--email", prompt=True)
@click.option("--name", default=None, help="Display name")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user_cli(username, email, name, password):
    """Create a user. Passwords need 8+ chars with upper, lower, digit and symbol."""
    try:
        user = create_user(username=username, email=email, password=password, name=name)
    except (PasswordValidationError, ValueError) as e:
        _fail(str(e))
        raise SystemExit(1)
    click.echo(f"PASS User {user.username} created (ID {user.id})")


@users_group.command("list")
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users.")
        return

    rows = []
    for user in users:
        memberships = membership_service.list_memberships(user.id)
        roles = ", ".join(f"{m.org_id}:{m.role}" for m in memberships) or "none"
        rows.append((user.id, user.username, user.email, "yes" if user.is_active else "no", roles))
    _table([("ID", 5), ("Username", 20), ("Email", 30), ("Active", 7), ("Memberships", 30)], rows)


@click.group("members")
def members_group():
    """Organization memberships."""


@members_group.command("add")
@click.option("--org-id", type=int, required=True)
@click.option("--username", required=True, help="Existing username")
@click.option("--role", type=click.Choice(MEMBER_ROLES, case_sensitive=False), default="STAFF", show_default=True)
@with_appcontext
def add_member_cli(org_id, username, role):
    user = _find_user(username)
    if user is None:
        _fail(f"User '{username}' not found")
        raise SystemExit(1)

    try:
        member = membership_service.add_member(org_id, user.id, role)
    except ActionError as e:
        db.session.rollback()
        _fail(e.message)
        raise SystemExit(1)
    click.echo(f"PASS {username} is {member.role} in organization {org_id}")


# =============================================================================
# orders / stock (read-only)
# =============================================================================


@click.group("orders")
def orders_group():
    """Order inspection."""


@orders_group.command("list")
@click.option("--org-id", type=int, required=True)
@click.option("--customer-id", type=int, default=None)
@click.option("--status", type=click.Choice(ORDER_STATUSES, case_sensitive=False), default=None)
@with_appcontext
def list_orders_cli(org_id, customer_id, status):
    orders = order_service.list_orders(org_id, customer_id=customer_id, status=status.upper() if status else None)
    if not orders:
        click.echo("No orders.")
        return
    rows = [
        (o["id"], o["order_number"], o["status"], o["customer_id"], o["final_amount"], o["created_at"])
        for o in orders
    ]
    _table([("ID", 6), ("Number", 18), ("Status", 17), ("Customer", 9), ("Final", 12), ("Created", 22)], rows)


@click.group("stock")
def stock_group():
    """Stock inspection."""


@stock_group.command("show")
@click.option("--org-id", type=int, required=True)
@click.option("--product-id", type=int, required=True)
@with_appcontext
def show_stock(org_id, product_id):
    try:
        summary = stock_service.get_stock_summary(org_id, product_id)
        batches = stock_service.get_stock_batches(org_id, product_id)
    except ActionError as e:
        _fail(e.message)
        raise SystemExit(1)

    click.echo(f"Available: {summary['available_quantity']} {summary['unit']} ({summary['mode']} mode)")
    rows = [
        (b["id"], b["batch_number"] or "-", b["quantity_available"], b["unit_cost"], b["purchase_date"])
        for b in batches
    ]
    if rows:
        _table([("Batch", 6), ("Number", 14), ("Qty", 12), ("Cost", 10), ("Purchased", 22)], rows)


@stock_group.command("low")
@click.option("--org-id", type=int, required=True)
@with_appcontext
def low_stock(org_id):
    """Products at or below their reorder point."""
    rows = [
        (p["product_id"], p["name"], p["sku"] or "-", p["available_quantity"], p["reorder_point"])
        for p in stock_service.get_low_stock_products(org_id)
    ]
    if not rows:
        click.echo("No products below their reorder point.")
        return
    _table([("ID", 6), ("Name", 30), ("SKU", 12), ("Available", 14), ("Reorder at", 14)], rows)


def register_commands(app):
    """Attach every command group to app.cli."""
    for group in (system_group, orgs_group, users_group, members_group, orders_group, stock_group):
        app.cli.add_command(group)
