# Overview: Flask CLI command groups for locations and branch inventory.

# backend/almacen/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Database:
# - python -m flask db upgrade
#   Apply migrations (Flask-Migrate).
#
# Locations:
# - python -m flask locations list
#   List all businesses.
# - python -m flask locations create --name "Sucursal Centro" [--address "..."]
#   Create a business.
#
# Inventory:
# - python -m flask inventory show --business-id 1 [--search coca] [--category BEBIDA]
#   Print the branch listing (first page unless --page is given).
# - python -m flask inventory adjust --product-id 7 --business-id 1 --delta -2 --reason LOSS --actor "Ana"
#   Quick +/- stock change, logged immediately.

import click
from flask.cli import with_appcontext

from .services.business_service import BusinessNotFoundError, create_business, list_businesses
from .services.catalog_service import ProductNotFoundError, list_branch_inventory
from .services.reconcile_service import ReconcileError, quick_adjust
from .validation import ConflictError, ValidationError, parse_reason


@click.group('locations')
def locations_group():
    """Business (selling location) commands."""


@locations_group.command('list')
@with_appcontext
def list_locations():
    """List all businesses."""
    businesses = list_businesses()
    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\n" + "=" * 50)
    click.echo(f"{'ID':<5} {'Name'}")
    click.echo("=" * 50)
    for b in businesses:
        click.echo(f"{b.id:<5} {b.name}")
    click.echo("=" * 50 + "\n")


@locations_group.command('create')
@click.option('--name', required=True, help='Business name (unique)')
@click.option('--address', default=None, help='Street address')
@with_appcontext
def create_location(name, address):
    """Create a business."""
    try:
        business = create_business(name, address)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created business: {business.name} (ID: {business.id})")


@click.group('inventory')
def inventory_group():
    """Branch inventory commands."""


@inventory_group.command('show')
@click.option('--business-id', type=int, required=True, help='Business ID')
@click.option('--search', default=None, help='Name / code search')
@click.option('--category', default=None, help='Category filter')
@click.option('--page', type=int, default=1, help='Page number')
@with_appcontext
def show_inventory(business_id, search, category, page):
    """Print the branch inventory listing."""
    listing = list_branch_inventory(business_id, search=search, category=category, page=page)
    items = listing["items"]
    if not items:
        click.echo("No products in stock for this business.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<6} {'Name':<45} {'Price':>12} {'Stock':>8}  Level")
    click.echo("=" * 90)
    for it in items:
        price = f"{it['default_selling_cents'] / 100:,.2f}"
        click.echo(f"{it['id']:<6} {it['name'][:45]:<45} {price:>12} {it['branch_stock']:>8}  {it['stock_level']}")
    click.echo("=" * 90)
    p = listing["pagination"]
    click.echo(f"Page {p['page']}/{p['total_pages']} ({p['total']} products)\n")


@inventory_group.command('adjust')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--business-id', type=int, required=True, help='Business ID')
@click.option('--delta', type=int, required=True, help='Units to add (negative to remove)')
@click.option('--reason', default='CORRECTION', help='CORRECTION, LOSS or EXPIRY')
@click.option('--actor', default=None, help='Name recorded in the activity log')
@with_appcontext
def adjust_inventory(product_id, business_id, delta, reason, actor):
    """Quick +/- stock change on one business."""
    try:
        result = quick_adjust(product_id, business_id, delta, parse_reason(reason), actor)
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        return
    except ProductNotFoundError:
        click.echo(f"FAIL Product ID {product_id} not found")
        return
    except BusinessNotFoundError:
        click.echo(f"FAIL Business ID {business_id} not found")
        return
    except ReconcileError as e:
        click.echo(f"FAIL {e} ({e.operation})")
        return

    if result.warning:
        click.echo(f"FAIL {result.warning}")
        return
    line = f"{result.status.upper()} {result.business_name}: {result.old} -> {result.new}"
    if result.lost_cash_cents is not None:
        line += f" (lost {result.lost_cash_cents / 100:,.2f})"
    click.echo(line)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(locations_group)
    app.cli.add_command(inventory_group)
