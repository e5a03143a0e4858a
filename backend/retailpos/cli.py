# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/retailpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--name "Demo Shop"] [--subdomain demo]
#   Idempotent bootstrap: creates the shop, admin/cashier users and sample products.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shop (tenant) management:
# - python -m flask tenants list
# - python -m flask tenants create --name "Corner Shop" --subdomain corner
#
# User inspection/bootstrap:
# - python -m flask users list --subdomain demo
# - python -m flask users create --subdomain demo --username jane --role cashier
#   Create a user (prompts if options are omitted).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import USER_ROLES
from .storage import get_storage
from .services.auth_service import PasswordValidationError
from .services.bootstrap_service import DEFAULT_PASSWORD, bootstrap_shop, create_tenant
from .services import user_service
from .validation import ConflictError, ValidationError


def _ensure_schema():
    # SQL storage needs the tables; `flask db upgrade` is the migration path
    if get_storage().name == "sql":
        db.create_all()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--name', default='Demo Shop', help='Shop name')
@click.option('--subdomain', default='demo', help='Shop subdomain (used as shop id at login)')
@with_appcontext
def init_system(name, subdomain):
    """
    Initialize a shop: tenant, default users and sample products.

    Creates:
    - The shop (if its subdomain is not taken yet)
    - Users: admin (role admin), cashier (role cashier)
    - Sample products: Coca Cola (CC-500), Bread (BR-001)
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing RetailPOS shop...")
    _ensure_schema()

    try:
        result = bootstrap_shop(get_storage(), name=name, subdomain=subdomain)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return

    tenant = result.tenant
    if result.tenant_created:
        click.echo(f"PASS Created shop: {tenant.name} (ID: {tenant.id}, Subdomain: {tenant.subdomain})")
    else:
        click.echo(f"PASS Using existing shop: {tenant.name} (ID: {tenant.id})")

    for username in result.users_created:
        click.echo(f"PASS Created user: {username}")
    for sku in result.products_created:
        click.echo(f"PASS Created product: {sku}")

    click.echo("\n" + "="*60)
    click.echo("DONE RetailPOS Shop Initialized Successfully!")
    click.echo("="*60)
    click.echo(f"\nShop ID for login: {tenant.subdomain}")
    if result.users_created:
        click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
        for username in result.users_created:
            click.echo(f"   {username:<9} -> {DEFAULT_PASSWORD}")
    click.echo("")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if get_storage().name != "sql":
        click.echo("FAIL reset-db only applies to STORAGE_BACKEND=sql")
        return

    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# SHOP (TENANT) MANAGEMENT COMMANDS
# =============================================================================

@click.group('tenants')
def tenants_group():
    """Shop (tenant) management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all shops."""
    storage = get_storage()
    tenants = storage.list_tenants()

    if not tenants:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Subdomain':<20} {'Active':<8} {'Users'}")
    click.echo("="*80)

    for tenant in tenants:
        user_count = len(storage.list_users(tenant.id))
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.subdomain:<20} {active_str:<8} {user_count}")

    click.echo("="*80 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Shop name')
@click.option('--subdomain', required=True, help='Subdomain (unique)')
@with_appcontext
def create_tenant_cli(name, subdomain):
    """Create a new shop (tenant)."""
    _ensure_schema()
    try:
        tenant = create_tenant(get_storage(), name=name, subdomain=subdomain)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created shop: {tenant.name} (ID: {tenant.id}, Subdomain: {tenant.subdomain})")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


def _tenant_or_fail(subdomain):
    tenant = get_storage().get_tenant_by_subdomain(subdomain)
    if tenant is None:
        click.echo(f"FAIL Shop '{subdomain}' not found")
    return tenant


@users_group.command('list')
@click.option('--subdomain', required=True, help='Shop subdomain')
@with_appcontext
def list_users(subdomain):
    """List all users of a shop with their roles."""
    tenant = _tenant_or_fail(subdomain)
    if tenant is None:
        return

    users = get_storage().list_users(tenant.id)
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<16} {'Active'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email or '-':<30} {user.role:<16} {active_str}")

    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--subdomain', required=True, help='Shop subdomain')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', default=None, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(USER_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(subdomain, username, email, password, role):
    """
    Create a new user in a shop.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    tenant = _tenant_or_fail(subdomain)
    if tenant is None:
        return

    payload = {"username": username, "password": password, "role": role}
    if email:
        payload["email"] = email

    try:
        user = user_service.create_user(get_storage(), tenant.id, payload)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    current_app.logger.info("User created via CLI: tenant=%s user=%s role=%s", tenant.id, user.id, role)
    click.echo(f"PASS Created user: {username} with role '{role}'")
    click.echo(f"     Shop: {tenant.name} (ID: {tenant.id})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(users_group)
