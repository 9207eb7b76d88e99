# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, default categories, and default users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --email staff2@stockroom.local --password "Password123!" --role Staff
#   Create a user (prompts if options are omitted).
#
# Stock inspection:
# - python -m flask stock low [--threshold 5] [--limit 20]
#   List items whose quantity is below the low-stock threshold.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User, ROLES, ROLE_ADMIN, ROLE_STAFF
from .services.auth_service import create_user, PasswordValidationError
from .services.category_service import seed_default_categories
from .services.stock_service import list_low_stock
from .validation import ValidationError, ConflictError

DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = (
    ("admin@stockroom.local", "Administrator", ROLE_ADMIN),
    ("staff@stockroom.local", "Staff Member", ROLE_STAFF),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the stockroom: tables, default categories, default users.

    Creates:
    - Categories: Furniture, Electronics, Goods, Technology
    - Users: admin@stockroom.local (Admin), staff@stockroom.local (Staff)
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing stockroom...")

    db.create_all()

    created = seed_default_categories()
    click.echo(f"PASS Created {created} default categories")

    click.echo("\nUSERS Creating default users...")
    for email, full_name, role in DEFAULT_USERS:
        existing = db.session.query(User).filter_by(email=email).first()
        if existing:
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        try:
            create_user(email, DEFAULT_PASSWORD, full_name, role)
            click.echo(f"PASS Created user: {email} with role '{role}'")
        except (ValidationError, ConflictError) as e:
            db.session.rollback()
            click.echo(f"FAIL Failed to create user '{email}': {e}")

    click.echo("\n" + "=" * 60)
    click.echo("DONE Stockroom Initialized Successfully!")
    click.echo("=" * 60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin -> admin@stockroom.local / Password123!")
    click.echo("   staff -> staff@stockroom.local / Password123!")
    click.echo("")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the activity log!
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


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--full-name', default='', help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, full_name, password, role):
    """
    Create a new active user.

    The password needs 8+ characters with an uppercase letter, a lowercase
    letter, a digit and a symbol.
    """
    try:
        user = create_user(email, password, full_name, role)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        raise SystemExit(1)
    except (ValidationError, ConflictError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Email':<35} {'Name':<25} {'Role':<8} {'Active'}")
    click.echo("=" * 90)

    for user in users:
        active = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {user.full_name:<25} {user.role:<8} {active}")

    click.echo("=" * 90 + "\n")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('low')
@click.option('--threshold', type=int, default=None, help='Quantity below which an item counts as low (default: LOW_STOCK_THRESHOLD)')
@click.option('--limit', type=int, default=None, help='Show at most this many items')
@with_appcontext
def low_stock(threshold, limit):
    """List items under the low-stock threshold, lowest quantity first."""
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)

    items = list_low_stock(threshold, limit=limit)
    if not items:
        click.echo(f"No items below {threshold}.")
        return

    click.echo(f"{'ID':<6} {'Name':<40} {'Category':<20} {'Qty':>6}")
    for item in items:
        category = item.category.name if item.category else ""
        click.echo(f"{item.id:<6} {item.name:<40} {category:<20} {item.quantity:>6}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
