# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/duka/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--business "Duka Shoes"] [--store "Main Duka"]
#   Idempotent bootstrap: creates tables, a business, a store and an admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Business / store management:
# - python -m flask businesses list
# - python -m flask businesses create --name "Duka Shoes"
# - python -m flask stores add --business-id 1 --name "Moi Avenue" [--code MOI]
#
# Users:
# - python -m flask users list --business-id 1
# - python -m flask users create --business-id 1 --username jane --email jane@duka.local --role staff --store-id 2

import click
from flask.cli import with_appcontext

from .errors import DukaError
from .extensions import db
from .models import Business, Store, User
from .models.auth import ROLE_ADMIN, ROLES
from .services import staff_service, tenant_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--business', 'business_name', default='Duka Shoes', help='Business name')
@click.option('--store', 'store_name', default='Main Duka', help='First store name')
@click.option('--admin', 'admin_username', default='admin', help='Admin username')
@click.option('--admin-email', default='admin@duka.local', help='Admin email')
@with_appcontext
def init_system(business_name, store_name, admin_username, admin_email):
    """
    Initialize the system: schema, a business, its first store and an admin.

    Safe to run twice; existing rows are reused.
    """
    click.echo("START Initializing duka stock system...")
    db.create_all()

    business = db.session.query(Business).filter_by(name=business_name).first()
    if not business:
        business = tenant_service.create_business(business_name)
        click.echo(f"PASS Created business: {business.name} (ID: {business.id})")
    else:
        click.echo(f"PASS Using existing business: {business.name} (ID: {business.id})")

    store = db.session.query(Store).filter_by(business_id=business.id, name=store_name).first()
    if not store:
        store = tenant_service.add_store(business.id, store_name)
        click.echo(f"PASS Created store: {store.name} (ID: {store.id})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    admin = db.session.query(User).filter_by(business_id=business.id, username=admin_username).first()
    if admin:
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
    else:
        admin = staff_service.create_user(business.id, admin_username, admin_email, ROLE_ADMIN)
        click.echo(f"PASS Created admin: {admin.username} (ID: {admin.id})")

    click.echo("\nDONE System initialized.")
    click.echo(f"Send header X-User-Id: {admin.id} through the gateway to act as the admin.")


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


@click.group('businesses')
def businesses_group():
    """Business (tenant) management."""


@businesses_group.command('list')
@with_appcontext
def list_businesses():
    businesses = tenant_service.list_businesses()
    if not businesses:
        click.echo("No businesses found.")
        return
    for business in businesses:
        status = "active" if business.is_active else "inactive"
        stores = ", ".join(s.name for s in tenant_service.list_stores(business.id)) or "-"
        click.echo(f"{business.id:>4}  {business.name}  [{status}]  stores: {stores}")


@businesses_group.command('create')
@click.option('--name', required=True, help='Business name')
@with_appcontext
def create_business(name):
    try:
        business = tenant_service.create_business(name)
    except DukaError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created business: {business.name} (ID: {business.id})")


@click.group('stores')
def stores_group():
    """Store (duka) management."""


@stores_group.command('add')
@click.option('--business-id', type=int, required=True)
@click.option('--name', required=True, help='Store name, e.g. "Moi Avenue"')
@click.option('--code', default=None, help='Optional short code')
@with_appcontext
def add_store(business_id, name, code):
    try:
        store = tenant_service.add_store(business_id, name, code=code)
    except DukaError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created store: {store.name} (ID: {store.id}, Business: {business_id})")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@click.option('--business-id', type=int, required=True)
@with_appcontext
def list_users(business_id):
    users = staff_service.list_business_users(business_id)
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.role:<12} store={user.store_id or '-'}  [{status}]")


@users_group.command('create')
@click.option('--business-id', type=int, required=True)
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--role', type=click.Choice(ROLES), default='staff', show_default=True)
@click.option('--store-id', type=int, default=None, help='Required for staff and staff-admin')
@with_appcontext
def create_user(business_id, username, email, role, store_id):
    try:
        user = staff_service.create_user(business_id, username, email, role, store_id=store_id)
    except DukaError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(businesses_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(users_group)
