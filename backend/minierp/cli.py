# Overview: Flask CLI command groups for database bootstrap and user administration.

# backend/minierp/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Database:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Admin" --email admin@example.com --password "secret1" --role admin
#   Create a user (prompts if options are omitted).
# - python -m flask users deactivate admin@example.com
# - python -m flask users activate admin@example.com

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, ROLES
from .services.auth_service import create_user, set_active
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """Database bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db_cli():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("OK Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db_cli(yes):
    """Drop and recreate every table. Deletes all data."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("OK Database reset")


@click.group('users')
def users_group():
    """User inspection and administration."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        state = "active" if user.is_active else "INACTIVE"
        click.echo(f"{user.id:>4}  {user.email:<40} {user.role:<8} {state}")


@users_group.command('create')
@click.option('--name', prompt=True, help='Full name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), default='staff', show_default=True, help='Role')
@click.option('--department', default=None, help='Department')
@with_appcontext
def create_user_cli(name, email, password, role, department):
    """Create a new user. Password must be at least 6 characters."""
    try:
        user = create_user(name, email, password, role=role, department=department)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"OK Created user id={user.id} email={user.email} role={user.role}")


@users_group.command('deactivate')
@click.argument('email')
@with_appcontext
def deactivate_user_cli(email):
    """Block logins for an account. Issued tokens stay valid until they expire."""
    try:
        user = set_active(email, False)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"OK Deactivated {user.email}")


@users_group.command('activate')
@click.argument('email')
@with_appcontext
def activate_user_cli(email):
    try:
        user = set_active(email, True)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"OK Activated {user.email}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
