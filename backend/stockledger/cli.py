# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent). Use "flask db upgrade" once migrations are in play.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users create --name "Admin" --email admin@stock.local --password "Password123" --role admin
#   Create a user (prompts if options are omitted).
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users hash-password
#   Print a bcrypt hash for a password (for manual seeding).
#
# Inventory inspection:
# - python -m flask stock low --limit 20
#   List active products at or below their low-stock threshold.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired/revoked session tokens older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, ROLES
from .services.auth_service import create_user, hash_password, PasswordValidationError
from .services import dashboard_service, session_service
from .validation import ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask users create' to add an admin.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create a new user (password must be at least 8 characters)."""
    try:
        user = create_user(name=name, email=email, password=password, role=role)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except ConflictError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{user.role}'")
    click.echo(f"     User ID: {user.id}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<30} {'Role':<8} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<20} {user.email:<30} {user.role:<8} {active_str}")

    click.echo("="*80 + "\n")


@users_group.command('hash-password')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password to hash')
def hash_password_cli(password):
    """Print a bcrypt hash for manual seeding."""
    try:
        click.echo(hash_password(password))
    except PasswordValidationError as e:
        raise click.ClickException(str(e))


@click.group('stock')
def stock_group():
    """Inventory inspection commands."""


@stock_group.command('low')
@click.option('--limit', type=int, default=10, show_default=True, help='Maximum products to list')
@with_appcontext
def low_stock_cli(limit):
    """List active products at or below their low-stock threshold."""
    products = dashboard_service.list_low_stock(limit=limit)
    if not products:
        click.echo("No low-stock products.")
        return

    click.echo(f"{'ID':<5} {'SKU':<16} {'Name':<30} {'Qty':>6} {'Threshold':>10}")
    for p in products:
        click.echo(f"{p.id:<5} {p.sku:<16} {p.name:<30} {p.quantity:>6} {p.low_stock_threshold:>10}")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} session tokens.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(maintenance_group)
