# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/thumma/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, store settings and the default CEO/Admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete expired or revoked session tokens older than 30 days.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --username somchai --name "Somchai" --role "Store Staff"
#   Create a user with the default password (must be changed at first login).
#
# End of day:
# - python -m flask shifts close --username admin
#   Close the current shift on behalf of a user.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import ROLE_ADMIN, ROLE_CEO, ROLES
from .services import cache, session_service, shift_service, user_service
from .services.auth_service import DEFAULT_PASSWORD, PasswordValidationError
from .services.settings_service import ensure_store_settings


DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default=DEFAULT_ADMIN_USERNAME, help='Username of the first CEO/Admin account')
@click.option('--password', default=DEFAULT_ADMIN_PASSWORD, help='Password of the first CEO/Admin account')
@with_appcontext
def init_system(username, password):
    """
    Initialize Thumma POS: tables, store settings and a default CEO/Admin user.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing Thumma POS...")

    db.create_all()
    click.echo("PASS Tables ready")

    settings = ensure_store_settings()
    click.echo(f"PASS Store settings ready: {settings.store_name.get('en', '')}")

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        click.echo(f"PASS Using existing user: {existing.username} (ID: {existing.id})")
    else:
        try:
            user = user_service.create_user(
                {
                    "username": username,
                    "name": "Administrator",
                    "roles": [ROLE_CEO, ROLE_ADMIN],
                    "password": password,
                },
                None,
            )
        except PasswordValidationError as e:
            raise click.ClickException(str(e))
        click.echo(f"PASS Created user: {user.username} / {password}")

    click.echo("DONE Thumma POS initialized")


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
    click.echo("CREATE Creating all tables...")
    db.create_all()
    cache.invalidate_all()
    click.echo("PASS Database reset. Run 'flask system init' to bootstrap.")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired or revoked session tokens older than 30 days."""
    count = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {count} old sessions")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Active':<8} {'Roles'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        roles = ", ".join(user.roles or []) or "-"
        click.echo(f"{user.id:<5} {user.username:<20} {user.name:<25} {active_str:<8} {roles}")

    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Login name')
@click.option('--name', prompt=True, help='Display name')
@click.option('--role', 'roles', multiple=True, type=click.Choice(ROLES), required=True, help='Role (repeatable)')
@with_appcontext
def create_user_cmd(username, name, roles):
    """Create a user with the default password; it must be changed at first login."""
    user = user_service.create_user({"username": username, "name": name, "roles": list(roles)}, None)
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}), temporary password {DEFAULT_PASSWORD}")


@click.group('shifts')
def shifts_group():
    """End of day commands."""


@shifts_group.command('close')
@click.option('--username', required=True, help='User closing the shift')
@with_appcontext
def close_shift_cmd(username):
    """Close the current shift and print its totals."""
    user = db.session.query(User).filter_by(username=username, is_active=True).first()
    if not user:
        raise click.ClickException(f"Active user not found: {username}")
    try:
        report = shift_service.close_shift(user)
    except shift_service.ShiftError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Closed shift {report.id}")
    click.echo(f"     Transactions: {report.total_transactions}")
    click.echo(f"     Sales:        {report.total_sales_cents / 100:,.2f}")
    click.echo(f"     Profit:       {report.total_profit_cents / 100:,.2f}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(shifts_group)
