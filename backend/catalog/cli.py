# Overview: Flask CLI command groups for bootstrap, admin accounts, backups and catalog transfer.

# backend/catalog/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent: ensures tables/indexes, seeds categories if empty, upserts the bootstrap admin.
#
# Admin accounts:
# - python -m flask admins list
#   List admin accounts.
# - python -m flask admins create --email admin@example.com --name "Admin" --password "..."
#   Create an admin (prompts if options are omitted).
# - python -m flask admins bootstrap --email admin@example.com --password "..."
#   Create or reset an admin by email (hash, name, role).
#
# Backups:
# - python -m flask backups create
#   Write backup-YYYYMMDD-HHMMSS.db next to the database.
# - python -m flask backups list
#   List backups, newest first.
#
# Catalog transfer:
# - python -m flask catalog export --format json|csv [--type products] [--output FILE]
# - python -m flask catalog import FILE [--format json|csv]

import json
import os

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import get_store
from .persistence import PersistenceError
from .schema import init_schema
from .services import auth_service, backup_service, transfer_service
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Ensure schema and reference data, then apply the bootstrap admin.

    Safe to run repeatedly.
    """
    store = get_store()
    click.echo("START Initializing catalog database...")
    init_schema(store)
    click.echo(f"PASS Schema ready at {store.path}")

    admin_id = auth_service.ensure_bootstrap_admin(store, current_app.config)
    if admin_id:
        click.echo(f"PASS Bootstrap admin ready (ID: {admin_id})")
    else:
        click.echo("WARN ADMIN_EMAIL / ADMIN_PASSWORD not set and no admin_seed.json found")
    click.echo("DONE")


@click.group('admins')
def admins_group():
    """Admin account commands."""


@admins_group.command('list')
@with_appcontext
def list_admins_cli():
    """List all admin accounts."""
    admins = auth_service.list_admins(get_store())
    if not admins:
        click.echo("No admins found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Email':<35} {'Name':<25} {'Role'}")
    click.echo("=" * 80)
    for admin in admins:
        click.echo(f"{admin.id:<5} {admin.email:<35} {(admin.name or ''):<25} {admin.role}")
    click.echo("=" * 80 + "\n")


@admins_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', default='', help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin_cli(email, name, password):
    """Create a new admin account."""
    try:
        admin_id = auth_service.create_admin(get_store(), email=email, password=password, name=name)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created admin {email} (ID: {admin_id})")


@admins_group.command('bootstrap')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', default=None, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def bootstrap_admin_cli(email, name, password):
    """Create the admin, or reset its password if the email exists."""
    try:
        admin_id, created = auth_service.bootstrap_admin_upsert(
            get_store(), email=email, password=password, name=name
        )
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {'Created' if created else 'Updated'} admin {email} (ID: {admin_id})")


@click.group('backups')
def backups_group():
    """Database backup commands."""


@backups_group.command('create')
@with_appcontext
def create_backup_cli():
    """Write a timestamped full copy of the database."""
    try:
        backup = backup_service.create_backup(get_store(), current_app.config["BACKUP_DIR"])
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {backup['name']} ({backup['size_label']})")


@backups_group.command('list')
@with_appcontext
def list_backups_cli():
    """List backups, newest first."""
    backups = backup_service.list_backups(current_app.config["BACKUP_DIR"])
    if not backups:
        click.echo("No backups found.")
        return
    for backup in backups:
        click.echo(f"{backup['name']:<32} {backup['size_label']:>10}  {backup['updated_at']}")


@click.group('catalog')
def catalog_group():
    """Catalog export/import commands."""


@catalog_group.command('export')
@click.option('--format', 'fmt', type=click.Choice(['json', 'csv']), default='json', help='Export format')
@click.option('--type', 'kind', default='categories', help='CSV entity: products, variants, inventory, categories')
@click.option('--output', type=click.Path(dir_okay=False, writable=True), default=None, help='Write to file instead of stdout')
@with_appcontext
def export_cli(fmt, kind, output):
    """Export the catalog."""
    store = get_store()
    if fmt == 'csv':
        body = transfer_service.export_csv(store, kind)
    else:
        body = json.dumps(transfer_service.export_json(store), indent=2, ensure_ascii=False)

    if output:
        with open(output, "w", encoding="utf-8", newline="") as fh:
            fh.write(body)
        click.echo(f"PASS Wrote {output}")
    else:
        click.echo(body)


@catalog_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--format', 'fmt', type=click.Choice(['json', 'csv']), default=None,
              help='Defaults to the file extension')
@with_appcontext
def import_cli(path, fmt):
    """Import a JSON export, or products from CSV/XLSX."""
    store = get_store()
    with open(path, "rb") as fh:
        raw = fh.read()

    filename = os.path.basename(path)
    fmt = fmt or ("json" if filename.lower().endswith(".json") else "csv")
    try:
        if fmt == 'json':
            summary = transfer_service.import_json(store, transfer_service.parse_json_import(raw))
        else:
            summary = transfer_service.import_products_file(store, raw, filename=filename)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    except PersistenceError as e:
        raise click.ClickException(f"Import applied in memory but not saved: {e}")

    for key, value in summary.items():
        click.echo(f"{key:<22} {value}")
    click.echo("DONE")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(admins_group)
    app.cli.add_command(backups_group)
    app.cli.add_command(catalog_group)
