# Overview: Flask CLI command groups for bootstrap, schedule repair, and maintenance.

# backend/credit_ledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app credit_ledger <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask --app credit_ledger system init-db
#   Create all tables (idempotent).
# - python -m flask --app credit_ledger system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Installment inspection/repair:
# - python -m flask --app credit_ledger installments reschedule --sale-id 12
#   Re-run the monthly reschedule for one sale (no-op when already consistent).
# - python -m flask --app credit_ledger installments overdue [--today 2023-07-01]
#   List pending installments past their due date.
#
# Maintenance:
# - python -m flask --app credit_ledger maintenance purge-transactions --yes [--cancelled-only] [--retention-days 365]
#   Hard-delete payment transactions. Installment balances are not touched.

from datetime import date

import click
from flask.cli import with_appcontext

from .errors import NotFoundError
from .extensions import db
from .services import installment_service
from .services import maintenance_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create the ledger tables if they do not exist."""
    db.create_all()
    click.echo("PASS Ledger tables ready.")


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


@click.group('installments')
def installments_group():
    """Installment schedule inspection and repair."""


@installments_group.command('reschedule')
@click.option('--sale-id', type=int, required=True, help='Sale ID')
@with_appcontext
def reschedule_cli(sale_id):
    """Recompute the due dates of the pending installments of a sale."""
    try:
        updates = installment_service.reschedule_sale(sale_id)
    except NotFoundError as e:
        raise click.ClickException(str(e))

    if not updates:
        click.echo(f"Sale {sale_id}: schedule already consistent.")
        return

    for update in updates:
        click.echo(f"  installment {update.installment_id} -> {update.new_due_date.isoformat()}")
    click.echo(f"PASS Rescheduled {len(updates)} installment(s) of sale {sale_id}.")


@installments_group.command('overdue')
@click.option('--today', 'today_str', help='Evaluate as of this ISO date (default: today, UTC)')
@with_appcontext
def overdue_cli(today_str):
    """List pending installments past their due date."""
    day = date.fromisoformat(today_str) if today_str else None
    rows = installment_service.get_overdue(today=day)

    if not rows:
        click.echo("No overdue installments.")
        return

    click.echo(f"\n{'Sale':<22} {'#':>3} {'Due':<12} {'Balance':>12}  Customer")
    click.echo("-" * 72)
    for row in rows:
        click.echo(
            f"{row['sale_number']:<22} {row['installment_number']:>3} {row['due_date']:<12} "
            f"{row['balance_cents'] / 100:>12.2f}  {row['customer_name']}"
        )
    click.echo(f"\nTotal: {len(rows)} overdue installment(s)")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('purge-transactions')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@click.option('--cancelled-only', is_flag=True, help='Only delete reverted (cancelled) transactions')
@click.option('--retention-days', type=int, default=None, help='Only delete transactions older than this')
@with_appcontext
def purge_transactions_cli(yes, cancelled_only, retention_days):
    """
    Hard-delete payment transactions.

    Installment paid amounts and balances are left as they are.
    """
    if not yes:
        click.confirm("WARN This will DELETE payment history. Are you sure?", abort=True)

    deleted = maintenance_service.purge_payment_transactions(
        cancelled_only=cancelled_only,
        retention_days=retention_days,
    )
    click.echo(f"Deleted {deleted} payment transaction(s).")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(installments_group)
    app.cli.add_command(maintenance_group)
