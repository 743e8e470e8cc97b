# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/bizledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables (if missing) and the "admin" account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username ana --password "Password123!" [--admin]
#
# Counters / reports:
# - python -m flask counters show
# - python -m flask reports close-month --year 2026 --month 9
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import counter_service, reporting_service, session_service
from .services.auth_service import (
    ADMIN_USERNAME,
    PasswordValidationError,
    UserError,
    create_user,
    ensure_admin_user,
)
from .services.reporting_service import ReportError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-password', default=None, help='Password for the bootstrap admin (defaults to DEFAULT_ADMIN_PASSWORD)')
@with_appcontext
def init_system(admin_password):
    """
    Create missing tables and the bootstrap admin account.

    Safe to run repeatedly: an existing "admin" account is left untouched.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing bizledger...")

    db.create_all()
    click.echo("PASS Tables ready")

    try:
        user, created = ensure_admin_user(admin_password)
    except PasswordValidationError as e:
        raise click.ClickException(f"Admin password rejected: {e}")

    if created:
        click.echo(f"PASS Created admin account '{user.username}' (ID: {user.id})")
    else:
        click.echo(f"WARN  Admin account '{ADMIN_USERNAME}' already exists, skipping...")

    click.echo("DONE bizledger initialized")


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
    """Partner account commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all partner accounts."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Admin':<7} {'Active'}")
    for user in users:
        click.echo(
            f"{user.id:<5} {user.username:<20} {(user.email or '-'):<30} "
            f"{'Yes' if user.is_admin else 'No':<7} {'Yes' if user.is_active else 'No'}"
        )


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--email', default=None)
@click.option('--first-name', default=None)
@click.option('--last-name', default=None)
@click.option('--admin', 'is_admin', is_flag=True, help='Grant the admin flag')
@with_appcontext
def create_user_cli(username, password, email, first_name, last_name, is_admin):
    """Create a partner account."""
    try:
        user = create_user(
            username=username,
            password=password,
            email=email,
            first_name=first_name,
            last_name=last_name,
            is_admin=is_admin,
        )
    except (PasswordValidationError, UserError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, admin={user.is_admin})")


@click.group('counters')
def counters_group():
    """Sequence counter inspection."""


@counters_group.command('show')
@with_appcontext
def show_counters():
    """Print last_seq per domain (0 when no record has been numbered yet)."""
    for domain, value in counter_service.list_counters().items():
        click.echo(f"{domain:<10} {value}")


@click.group('reports')
def reports_group():
    """Reporting commands."""


@reports_group.command('close-month')
@click.option('--year', type=int, required=True)
@click.option('--month', type=int, required=True)
@click.option('--as-user', 'username', default=ADMIN_USERNAME, show_default=True, help='Admin account recorded as author')
@with_appcontext
def close_month_cli(year, month, username):
    """Persist the monthly summary for YEAR-MONTH (re-running overwrites it)."""
    actor = db.session.query(User).filter_by(username=username).first()
    if not actor:
        raise click.ClickException(f"User '{username}' not found")

    try:
        summary = reporting_service.close_month(actor, year, month)
    except ReportError as e:
        raise click.ClickException(str(e))

    click.echo(
        f"PASS {year:04d}-{month:02d}: sales {summary.total_sales:.2f} ({summary.sales_count}), "
        f"balance {summary.balance:.2f}"
    )


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired or revoked session tokens older than the cutoff."""
    deleted = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} session tokens older than {older_than_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(counters_group)
    app.cli.add_command(reports_group)
    app.cli.add_command(maintenance_group)
