# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/garment_ledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, canonical sizes and the store settings row.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed-sizes
#   Insert any missing canonical size (XS..XXXL).
#
# Inventory:
# - python -m flask inventory refresh-totals [--product-id <uuid>]
#   Recompute the cached per-product quantity_in_stock from the variant cells.
#
# Invoices:
# - python -m flask invoices next-number [--prefix INV]
#   Print the number the next invoice would get (nothing is reserved).

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import catalog_service, inventory_service, settings_service
from .services.sequence_service import peek_next_number


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the ledger database.

    Creates:
    - All tables (if missing)
    - Canonical sizes XS..XXXL
    - The store settings row with defaults
    """
    click.echo("START Initializing garment ledger...")

    db.create_all()
    click.echo("PASS Tables ready")

    created = catalog_service.seed_default_sizes()
    click.echo(f"PASS Sizes seeded: {len(created)} new")

    settings = settings_service.get_settings()
    click.echo(f"PASS Store settings: {settings.store_name} (tax {settings.tax_rate_bps / 100:.2f}%)")

    click.echo("\nDONE System initialized")


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


@click.group('catalog')
def catalog_group():
    """Catalog reference data."""


@catalog_group.command('seed-sizes')
@with_appcontext
def seed_sizes():
    created = catalog_service.seed_default_sizes()
    if not created:
        click.echo("PASS All canonical sizes already exist")
        return
    click.echo(f"PASS Created sizes: {', '.join(s.name for s in created)}")


@click.group('inventory')
def inventory_group():
    """Stock maintenance."""


@inventory_group.command('refresh-totals')
@click.option('--product-id', type=click.UUID, default=None, help='Only refresh this product')
@with_appcontext
def refresh_totals(product_id):
    """Rewrite each product's cached quantity_in_stock from its variant cells."""
    totals = inventory_service.refresh_stock_projection(product_id)
    if product_id is not None and not totals:
        raise click.ClickException(f"Product {product_id} not found")
    for pid, total in sorted(totals.items()):
        click.echo(f"  {pid}  {total}")
    click.echo(f"PASS Refreshed {len(totals)} product(s)")


@click.group('invoices')
def invoices_group():
    """Invoice numbering."""


@invoices_group.command('next-number')
@click.option('--prefix', default=None, help='Invoice number prefix (defaults to INVOICE_NUMBER_PREFIX)')
@with_appcontext
def next_number(prefix):
    click.echo(peek_next_number(prefix))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(invoices_group)
