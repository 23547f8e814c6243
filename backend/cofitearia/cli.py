# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/cofitearia/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-password admin123]
#   Idempotent bootstrap: tables, default settings, admin owner, sample menu with stock.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--role STAFF] [--all]
# - python -m flask users create --username maria --first-name Maria --last-name Cruz --role STAFF
#   Prompts for the password if --password is omitted.
#
# Permissions:
# - python -m flask perms list [--role MANAGER]
# - python -m flask perms check admin VOID_SALE
#
# Inspection (debug only):
# - python -m flask inspect tables
#   Dump users, products, inventory items and settings as text tables.
# - python -m flask inspect low-stock
#   Low and critical stock report.

from types import SimpleNamespace

import click
from flask.cli import with_appcontext

from .errors import CofiteariaError
from .extensions import db
from .models import InventoryItem, Product, SystemSetting, User
from .money import format_money
from .permissions import ALL_ROLES, PERMISSION_DEFINITIONS, Role, has_permission, permissions_for, role_display_name
from .services import auth_service, catalog_service, inventory_service, settings_service

DEFAULT_ADMIN_USERNAME = "admin"

# (name, description, price, category)
SAMPLE_PRODUCTS = [
    ("Classic Milk Tea", "Traditional black tea with milk and tapioca pearls", "45.00", "Beverages"),
    ("Taro Milk Tea", "Creamy taro flavored milk tea", "50.00", "Beverages"),
    ("Matcha Latte", "Premium matcha green tea latte", "55.00", "Beverages"),
    ("Tapioca Pearls", "Extra chewy tapioca pearls", "15.00", "Add-ons"),
    ("Jelly", "Fruit jelly topping", "12.00", "Add-ons"),
]

SAMPLE_STOCK = {"current_stock": 100, "minimum_stock": 20, "maximum_stock": 500}


def _fail(message: str) -> None:
    click.echo(f"FAIL {message}", err=True)
    raise SystemExit(1)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-password', default='admin123', show_default=True, help='Password for the default owner account')
@with_appcontext
def init_system(admin_password):
    """
    Initialize the shop: tables, default settings, the default owner
    account and a sample menu with opening stock. Safe to re-run.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing Cofitearia...")

    db.create_all()
    click.echo("PASS Tables ready")

    added = settings_service.seed_default_settings()
    click.echo(f"PASS Default settings ({added} added)")

    try:
        admin = db.session.query(User).filter_by(username=DEFAULT_ADMIN_USERNAME).first()
        if admin is None:
            admin = auth_service.create_user(
                username=DEFAULT_ADMIN_USERNAME,
                password=admin_password,
                first_name="System",
                last_name="Administrator",
                role=Role.OWNER,
                email="admin@cofitearia.com",
            )
            click.echo(f"PASS Created owner account: {admin.username}")
        else:
            click.echo(f"PASS Using existing owner account: {admin.username}")

        if db.session.query(Product.id).first() is None:
            for name, description, price, category in SAMPLE_PRODUCTS:
                product = catalog_service.create_product({
                    "name": name,
                    "description": description,
                    "price": price,
                    "category": category,
                })
                inventory_service.create_inventory_item(product.id, dict(SAMPLE_STOCK))
            click.echo(f"PASS Created {len(SAMPLE_PRODUCTS)} sample products with stock")
        else:
            click.echo("PASS Products already present; sample menu skipped")
    except CofiteariaError as e:
        _fail(f"Initialization failed: {e}")

    click.echo("\nDONE Cofitearia initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--role', type=click.Choice(ALL_ROLES, case_sensitive=False), help='Filter by role')
@click.option('--all', 'show_all', is_flag=True, help='Include inactive users')
@with_appcontext
def list_users(role, show_all):
    """List users with their roles."""
    users = auth_service.list_users(role=role, include_inactive=show_all)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<28} {'Role':<12} {'Active':<8}")
    click.echo("=" * 90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.full_name:<28} {user.role:<12} {active_str:<8}")

    click.echo("=" * 90 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--email', default=None, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ALL_ROLES, case_sensitive=False), default=Role.STAFF, show_default=True)
@with_appcontext
def create_user_cli(username, first_name, last_name, email, password, role):
    """Create a new user. Password must be at least 6 characters."""
    try:
        user = auth_service.create_user(
            username=username,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=role,
            email=email,
        )
    except CofiteariaError as e:
        _fail(f"Failed to create user: {e}")

    click.echo(f"PASS Created user: {user.username} with role '{role_display_name(user.role)}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(ALL_ROLES, case_sensitive=False), help='Show only actions granted to this role')
def list_permissions_cli(role):
    """List actions, optionally only those a role is granted."""
    subject = SimpleNamespace(role=role.upper(), is_active=True) if role else None

    click.echo(f"\n{'=' * 80}")
    click.echo(f"Permissions for role: {role.upper()}" if role else "All Permissions")
    click.echo(f"{'=' * 80}\n")

    current_category = None
    shown = 0
    for code, description, category in sorted(PERMISSION_DEFINITIONS, key=lambda p: (p[2], p[0])):
        if subject is not None and not has_permission(subject, code):
            continue
        if category != current_category:
            if current_category:
                click.echo("")
            click.echo(f"CATEGORY {category}")
            click.echo("-" * 80)
            current_category = category
        click.echo(f"  {code:<28} {description}")
        shown += 1

    click.echo(f"\n Total: {shown} permissions\n")


@perms_group.command('check')
@click.argument('username')
@click.argument('permission_code')
@with_appcontext
def check_permission_cli(username, permission_code):
    """Check if a user has a specific permission."""
    try:
        user = auth_service.get_user_by_username(username)
    except CofiteariaError:
        _fail(f"User '{username}' not found")

    if has_permission(user, permission_code):
        click.echo(f"PASS User '{username}' HAS permission '{permission_code}'")
    else:
        click.echo(f"FAIL User '{username}' DOES NOT HAVE permission '{permission_code}'")

    click.echo(f"\nUser role: {role_display_name(user.role)}")
    click.echo(f"Total permissions: {len(permissions_for(user))}")


@click.group('inspect')
def inspect_group():
    """Read-only debugging dumps."""


def _table(title: str, header: str, rows: list[str], width: int = 100) -> None:
    click.echo(f"\n=== {title} ===")
    click.echo(header)
    click.echo("-" * width)
    for row in rows:
        click.echo(row)
    if not rows:
        click.echo("(empty)")


@inspect_group.command('tables')
@with_appcontext
def inspect_tables():
    """Dump users, products, inventory items and settings."""
    users = db.session.query(User).order_by(User.id).all()
    _table(
        "USERS",
        f"{'ID':<5} {'Username':<15} {'Name':<25} {'Role':<12} {'Active':<8}",
        [
            f"{u.id:<5} {u.username:<15} {u.full_name:<25} {u.role:<12} {('Yes' if u.is_active else 'No'):<8}"
            for u in users
        ],
    )

    symbol = settings_service.get_currency_symbol()
    products = db.session.query(Product).order_by(Product.id).all()
    _table(
        "PRODUCTS",
        f"{'ID':<5} {'Name':<25} {'Price':<14} {'Category':<15} {'Barcode':<15} {'Active':<8}",
        [
            f"{p.id:<5} {p.name:<25} {format_money(p.price, symbol):<14} {(p.category or ''):<15} "
            f"{(p.barcode or ''):<15} {('Yes' if p.is_active else 'No'):<8}"
            for p in products
        ],
    )

    items = db.session.query(InventoryItem).order_by(InventoryItem.id).all()
    _table(
        "INVENTORY ITEMS",
        f"{'ID':<5} {'Product':<25} {'Stock':<8} {'Min':<8} {'Max':<8} {'Status':<10} {'Active':<8}",
        [
            f"{i.id:<5} {(i.product.name if i.product else '?'):<25} {i.current_stock:<8} "
            f"{i.minimum_stock:<8} {i.maximum_stock:<8} {i.stock_status:<10} {('Yes' if i.is_active else 'No'):<8}"
            for i in items
        ],
    )

    settings = db.session.query(SystemSetting).order_by(SystemSetting.key).all()
    _table(
        "SYSTEM SETTINGS",
        f"{'Key':<25} {'Value':<20} {'Description'}",
        [f"{s.key:<25} {(s.value or ''):<20} {s.description or ''}" for s in settings],
    )
    click.echo("")


@inspect_group.command('low-stock')
@with_appcontext
def inspect_low_stock():
    """Low and critical stock report."""
    critical = inventory_service.list_critical_stock()
    critical_ids = {i.id for i in critical}
    low = [i for i in inventory_service.list_low_stock() if i.id not in critical_ids]

    if not critical and not low:
        click.echo("PASS All stock levels adequate")
        return

    for label, items in (("CRITICAL", critical), ("LOW", low)):
        if not items:
            continue
        click.echo(f"\n{label} ({len(items)})")
        for item in items:
            click.echo(f"  {item.stock_summary()} (reorder {item.reorder_quantity})")
    click.echo("")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(inspect_group)
