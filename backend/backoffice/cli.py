# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin/user accounts.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username admin --email admin@backoffice.local --password "Password123!" --role admin
# - python -m flask users grant-role admin seller
#
# Materials:
# - python -m flask materials seed
#   Insert a few sample raw materials (skips names that already exist).
# - python -m flask materials adjust <material_id> -- -5
#   Atomic stock adjustment (clamped at zero).
#
# Workflow runs:
# - python -m flask workflows list --status failed
# - python -m flask workflows resume <run_id>

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Material, User
from .models.auth import ROLE_ADMIN, ROLE_USER, VALID_ROLES
from .services import inventory_service, workflow_service
from .services.auth_service import AuthError, PasswordValidationError, assign_role, create_user
from .services.inventory_service import InventoryError
from .services.workflow_service import WorkflowError
from .validation import ConflictError, NotFoundError


DEFAULT_PASSWORD = "Password123!"

SAMPLE_MATERIALS = [
    ("Rice", "Grain", "white", "12000.00", 100),
    ("Sugar", "Sweetener", "white", "15000.00", 50),
    ("Cooking Oil", "Oil", "yellow", "18000.00", 40),
    ("Red Chili", "Spice", "red", "45000.00", 10),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables and default accounts.

    Users: admin/admin@backoffice.local (admin), staff/staff@backoffice.local (user).
    Passwords default to "Password123!".

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing back office...")
    db.create_all()

    defaults = [
        ("admin", "admin@backoffice.local", ROLE_ADMIN),
        ("staff", "staff@backoffice.local", ROLE_USER),
    ]
    for username, email, role in defaults:
        existing = db.session.query(User).filter_by(username=username).first()
        if existing:
            click.echo(f"PASS Using existing user: {username}")
            continue
        create_user(username, email, DEFAULT_PASSWORD, roles=[role])
        click.echo(f"PASS Created user: {username} ({role})")

    click.echo("DONE Back office initialized")


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
    click.echo("BUILD Recreating schema...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    users = db.session.query(User).order_by(User.username.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.username:<20} {user.email:<32} {status:<9} {','.join(user.role_names)}")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), default=ROLE_USER, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
    """Create a user with one role."""
    try:
        user = create_user(username, email, password, roles=[role])
    except (AuthError, PasswordValidationError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created user {user.username} (ID: {user.id}) with role {role}")


@users_group.command('grant-role')
@click.argument('username')
@click.argument('role', type=click.Choice(list(VALID_ROLES)))
@with_appcontext
def grant_role_cli(username, role):
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User {username} not found")
        return
    assign_role(user.id, role)
    click.echo(f"PASS Granted {role} to {username}")


@click.group('materials')
def materials_group():
    """Material master data helpers."""


@materials_group.command('seed')
@with_appcontext
def seed_materials_cli():
    created = 0
    for name, category, color, price, quantity in SAMPLE_MATERIALS:
        if db.session.query(Material).filter_by(name=name).first():
            continue
        db.session.add(Material(name=name, category=category, color=color, price=Decimal(price), quantity=quantity))
        created += 1
    db.session.commit()
    click.echo(f"PASS Seeded {created} material(s)")


@materials_group.command('adjust')
@click.argument('material_id')
@click.argument('delta', type=int)
@with_appcontext
def adjust_material_cli(material_id, delta):
    try:
        adjustment = inventory_service.adjust_stock(material_id, delta)
    except InventoryError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(
        f"PASS quantity={adjustment.quantity} applied={adjustment.applied_delta} "
        f"(requested {adjustment.requested_delta})"
    )


@click.group('workflows')
def workflows_group():
    """Inspect and resume workflow runs."""


@workflows_group.command('list')
@click.option('--status', type=click.Choice([
    workflow_service.RUN_STATUS_RUNNING,
    workflow_service.RUN_STATUS_COMPLETED,
    workflow_service.RUN_STATUS_FAILED,
]), help='Filter by status')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def list_runs_cli(status, limit):
    runs = workflow_service.list_runs(status=status, limit=limit)
    if not runs:
        click.echo("No workflow runs found")
        return
    for run in runs:
        click.echo(
            f"{run.id}  {run.kind:<14} {run.status:<10} "
            f"step={run.current_step or '-':<24} {run.error or ''}"
        )


@workflows_group.command('resume')
@click.argument('run_id')
@with_appcontext
def resume_run_cli(run_id):
    try:
        run = workflow_service.resume_workflow(run_id)
    except (NotFoundError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return
    except WorkflowError as e:
        click.echo(f"FAIL run {e.run_id} failed again at {e.failed_step}: {e.run.error if e.run else e}")
        return
    click.echo(f"PASS run {run.id} {run.status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(materials_group)
    app.cli.add_command(workflows_group)
