# Overview: Flask CLI command groups for bootstrap, stock maintenance and reporting.

# backend/packledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "packledger:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask products list [--all]
# - python -m flask products create --sku APL-1 --name Apples --unit-type weight-kg --price 3.5 --stock 100
#
# Stock maintenance:
# - python -m flask stock set-total 1 42 --actor admin-1 --note "Inventory count"
#   Correct total_stock after a physical count; current_stock moves by the same delta.
# - python -m flask stock movements 1 --limit 20
#   Show the latest ledger movements of a product.
#
# Reporting:
# - python -m flask revenue report --range 30
#   Revenue of completed packlists per point of sale and product.

import click
from flask.cli import with_appcontext

from .errors import DomainError
from .extensions import db
from .services import packlist_service, products_service, revenue_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    click.echo("BUILD  Creating tables...")
    db.create_all()
    click.echo("PASS Database ready.")


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

    click.echo("PASS Database reset complete.")


@click.group('products')
def products_group():
    """Product catalog commands."""


@products_group.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Show inactive products too')
@with_appcontext
def list_products_cli(show_all):
    """
    List products with their stock levels.

    Example:
        flask products list
        flask products list --all
    """
    products = products_service.list_products(active_only=not show_all)
    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "=" * 96)
    click.echo(f"{'ID':<5} {'SKU':<14} {'Name':<28} {'Unit':<10} {'Price':>9} {'Total':>10} {'Current':>10} {'Active':>7}")
    click.echo("=" * 96)
    for p in products:
        click.echo(
            f"{p.id:<5} {p.sku:<14} {p.name[:28]:<28} {p.unit_type.value:<10} "
            f"{p.base_price:>9.2f} {p.total_stock:>10g} {p.current_stock:>10g} {'yes' if p.is_active else 'no':>7}"
        )
    click.echo("=" * 96)


@products_group.command('create')
@click.option('--sku', required=True)
@click.option('--name', required=True)
@click.option('--unit-type', default='piece', show_default=True, help='piece, weight-kg or weight-g')
@click.option('--price', 'base_price', type=float, default=0.0, show_default=True)
@click.option('--stock', 'initial_stock', type=float, default=0.0, show_default=True)
@with_appcontext
def create_product_cli(sku, name, unit_type, base_price, initial_stock):
    """Create a product."""
    try:
        product = products_service.create_product(
            sku=sku,
            name=name,
            unit_type=unit_type,
            base_price=base_price,
            initial_stock=initial_stock,
            actor_id="cli",
        )
    except DomainError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created product {product.name} (ID: {product.id}, SKU: {product.sku})")


@click.group('stock')
def stock_group():
    """Stock ledger maintenance."""


@stock_group.command('set-total')
@click.argument('product_id', type=int)
@click.argument('new_total', type=float)
@click.option('--actor', 'actor_id', default='cli', show_default=True, help='Recorded as last_stock_updated_by')
@click.option('--note', default=None, help='Reason for the correction')
@with_appcontext
def set_total_cli(product_id, new_total, actor_id, note):
    """
    Correct total_stock after a physical count.

    current_stock moves by the same delta, so existing reservations stay
    reserved.
    """
    try:
        product = products_service.set_total_stock(product_id, new_total, actor_id=actor_id, note=note)
    except DomainError as e:
        raise click.ClickException(str(e))
    click.echo(
        f"PASS Product {product.id}: total_stock={product.total_stock:g} "
        f"current_stock={product.current_stock:g} reserved={product.reserved_stock:g}"
    )


@stock_group.command('movements')
@click.argument('product_id', type=int)
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def movements_cli(product_id, limit):
    """Show the latest ledger movements of a product, newest first."""
    try:
        movements = products_service.list_stock_movements(product_id, limit=limit)
    except DomainError as e:
        raise click.ClickException(str(e))

    if not movements:
        click.echo("No movements recorded.")
        return

    for m in movements:
        ref = f"packlist={m.packlist_id}" if m.packlist_id else (f"order={m.order_id}" if m.order_id else "")
        click.echo(
            f"{m.created_at:%Y-%m-%d %H:%M}  {m.reason:<18} total {m.total_delta:+g} -> {m.total_after:g}  "
            f"available {m.available_delta:+g} -> {m.available_after:g}  {ref} {m.actor_id or ''}".rstrip()
        )


@click.group('revenue')
def revenue_group():
    """Revenue reporting."""


@revenue_group.command('report')
@click.option('--range', 'time_range', type=click.Choice(sorted(revenue_service.TIME_RANGES)), default='30', show_default=True)
@with_appcontext
def revenue_report_cli(time_range):
    """Print revenue per point of sale and per product."""
    report = revenue_service.compute_revenue(packlist_service.list_completed_packlists(), time_range)
    if not report.has_data:
        click.echo("No completed packlists yet.")
        return

    for title, entities in (("Points of sale", report.by_pos), ("Products", report.by_product)):
        click.echo(f"\n{title} (range: {report.time_range})")
        click.echo("-" * 48)
        if not entities:
            click.echo("  no revenue in range")
        for entity in entities:
            click.echo(f"  {entity.entity_name[:32]:<32} {entity.total_revenue:>12.2f}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(revenue_group)
