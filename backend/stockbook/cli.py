# Overview: Flask CLI command groups for bootstrap, stock inspection and reports.

# backend/stockbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to stockbook (PowerShell: $env:FLASK_APP="stockbook").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock ledger:
# - python -m flask stock list [--search brake]
#   List stock items, newest first.
# - python -m flask stock add --code P100 --name "Brake pad" --quantity 10 --sell-price 1500
#   Create a stock item.
# - python -m flask stock seed names.txt
#   Seed an empty ledger with one zeroed item per line (codes P001, P002, ...).
#
# Reports:
# - python -m flask reports finance [--year 2024] [--month 5]
#   Sales, purchases, outstanding debt and other expenses.
# - python -m flask reports profit [--year 2024] [--month 5]
#   Revenue and profit of paid sales, per day.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import reporting_service, stock_service
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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


@click.group('stock')
def stock_group():
    """Stock ledger commands."""


@stock_group.command('list')
@click.option('--search', help='Filter by code or name substring')
@with_appcontext
def list_stock(search):
    """List stock items, newest first."""
    items = stock_service.list_stock_items(search=search)

    if not items:
        click.echo("No stock items found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Code':<10} {'Name':<35} {'Qty':>6} {'Sell':>10} {'Wholesale':>10} {'Cost':>10}")
    click.echo("="*90)

    for item in items:
        click.echo(
            f"{item.id:<5} {item.product_code:<10} {item.product_name[:35]:<35} {item.quantity:>6} "
            f"{item.sell_price:>10} {item.wholesale_price:>10} {item.cost_price:>10}"
        )

    click.echo("="*90 + "\n")


@stock_group.command('add')
@click.option('--code', required=True, help='Product code (unique)')
@click.option('--name', required=True, help='Product name')
@click.option('--category', help='Category')
@click.option('--quantity', type=int, default=0, show_default=True)
@click.option('--sell-price', type=int, default=0, show_default=True)
@click.option('--wholesale-price', type=int, default=0, show_default=True)
@click.option('--cost-price', type=int, default=0, show_default=True)
@with_appcontext
def add_stock(code, name, category, quantity, sell_price, wholesale_price, cost_price):
    """Create a stock item."""
    payload = {
        "product_code": code,
        "product_name": name,
        "quantity": quantity,
        "sell_price": sell_price,
        "wholesale_price": wholesale_price,
        "cost_price": cost_price,
    }
    if category:
        payload["category"] = category

    try:
        item = stock_service.add_stock_item(payload)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created stock item {item.product_code} (ID: {item.id})")


@stock_group.command('seed')
@click.argument('names_file', type=click.File('r'))
@with_appcontext
def seed_stock(names_file):
    """Seed an empty ledger from a file with one product name per line."""
    names = [line.strip() for line in names_file if line.strip()]
    items = stock_service.seed_stock_items(names)

    if not items:
        click.echo("SKIP Stock ledger is not empty (or no names given); nothing seeded.")
        return

    click.echo(f"PASS Seeded {len(items)} stock items ({items[0].product_code}..{items[-1].product_code})")


@click.group('reports')
def reports_group():
    """Read-only reports."""


@reports_group.command('finance')
@click.option('--year', type=int, help='Filter by year')
@click.option('--month', type=click.IntRange(1, 12), help='Filter by month (any year unless --year)')
@with_appcontext
def finance_report(year, month):
    """Sales, purchases, outstanding debt and other expenses."""
    summary = reporting_service.finance_summary(year=year, month=month)

    click.echo(f"Total sales:       {summary['total_sales']:>14}")
    click.echo(f"Total purchases:   {summary['total_purchases']:>14}")
    click.echo(f"Outstanding debt:  {summary['outstanding_debt']:>14}")
    click.echo(f"Other expenses:    {summary['other_expenses']:>14}")
    click.echo(f"Net:               {summary['net']:>14}")


@reports_group.command('profit')
@click.option('--year', type=int, help='Filter by year')
@click.option('--month', type=click.IntRange(1, 12), help='Filter by month (any year unless --year)')
@with_appcontext
def profit_report(year, month):
    """Revenue and profit of paid sales, per day."""
    summary = reporting_service.sales_summary(year=year, month=month)
    days = reporting_service.sales_by_day(year=year, month=month)

    click.echo("\n" + "="*60)
    click.echo(f"{'Date':<12} {'Invoices':>10} {'Revenue':>16} {'Profit':>16}")
    click.echo("="*60)
    for day in days:
        click.echo(f"{day['date']:<12} {day['invoice_count']:>10} {day['total_amount']:>16} {day['profit']:>16}")
    click.echo("="*60)
    click.echo(f"{'Total':<12} {summary['invoice_count']:>10} {summary['total_revenue']:>16} {summary['total_profit']:>16}\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(reports_group)
