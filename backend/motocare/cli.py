# Overview: Flask CLI command groups for bootstrap, stock inspection, imports and reports.

# backend/motocare/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent: stores the default collections (demo workshop data unless
#   MOTOCARE_SEED_DEMO_DATA=0) for every collection not stored yet.
# - python -m flask system reset --yes
#   DEV/TEST only: delete every stored collection and store the defaults again.
#
# Inventory:
# - python -m flask inventory import-csv price_list.csv --branch main
#   Upsert parts from the shop's CSV price list and stock them into the branch.
# - python -m flask inventory stock --branch q2
#   Print on-hand quantity per part for a branch.
# - python -m flask inventory check-drift
#   Compare cached branch stock with the ledger projection (exit code 1 on drift).
#
# Reports:
# - python -m flask reports revenue --branch main --start 2025-10-01 --end 2025-10-31 --period week
#   Revenue, cost and profit per period.

import click
from flask.cli import with_appcontext

from .services import import_service, ledger_service, reporting_service, state_service
from .services.import_service import CsvImportError
from .services.ledger_service import LedgerError
from .services.reporting_service import ReportError
from .time_utils import parse_iso_date, utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Store default collections that are not stored yet."""
    created = state_service.initialize()
    if created:
        click.echo(f"PASS Stored defaults for: {', '.join(created)}")
    else:
        click.echo("PASS All collections already stored, nothing to do")


@system_group.command('reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_system(yes):
    """
    DANGER: Delete every stored collection and store the defaults again.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)
    created = state_service.initialize(reset=True)
    click.echo(f"PASS Reset complete, stored {len(created)} collections")


@click.group('inventory')
def inventory_group():
    """Stock inspection and bulk import."""


@inventory_group.command('import-csv')
@click.argument('csv_file', type=click.File('r', encoding='utf-8-sig'))
@click.option('--branch', 'branch_id', default=None, help='Branch to stock into (default: selected branch)')
@with_appcontext
def import_csv(csv_file, branch_id):
    """Import parts from the shop's CSV price list."""
    text = csv_file.read()

    def command(state):
        return import_service.import_parts_csv(state, text, branch_id or state.current_branch_id)

    try:
        result = state_service.run_command(command)
    except (CsvImportError, LedgerError) as e:
        raise click.ClickException(str(e))
    summary = result.summary
    click.echo(f"PASS Added {summary.added}, updated {summary.updated}, skipped {summary.skipped}")


@inventory_group.command('stock')
@click.option('--branch', 'branch_id', default=None, help='Branch id (default: selected branch)')
@with_appcontext
def show_stock(branch_id):
    """Print on-hand quantity per part."""
    state = state_service.load_state()
    branch_id = branch_id or state.current_branch_id
    if branch_id not in state.store_settings.branch_ids():
        raise click.ClickException(f"Unknown branch: {branch_id}")

    click.echo(f"\nStock at {state.store_settings.branch_name(branch_id)} ({branch_id}):")
    click.echo("-" * 72)
    click.echo(f"{'ID':<10} {'SKU':<16} {'Qty':>6}  {'Status':<13} Name")
    click.echo("-" * 72)
    for part in state.parts:
        qty = part.stock_in(branch_id)
        click.echo(f"{part.id:<10} {part.sku:<16} {qty:>6}  {reporting_service.stock_status(qty):<13} {part.name}")
    summary = reporting_service.inventory_summary(state.parts, branch_id)
    click.echo("-" * 72)
    click.echo(f"Total units: {summary['total_quantity']}  Value: {summary['total_value']:,} VND")


@inventory_group.command('check-drift')
@with_appcontext
def check_drift():
    """Compare cached branch stock with the ledger projection."""
    drift = ledger_service.stock_drift(state_service.load_state())
    if not drift:
        click.echo("PASS Cached stock matches the ledger")
        return
    click.echo(f"FAIL {len(drift)} part/branch figures disagree with the ledger:")
    for part_id, branch_id, cached, projected in drift:
        click.echo(f"  {part_id} @ {branch_id}: cached={cached} projected={projected}")
    raise SystemExit(1)


@click.group('reports')
def reports_group():
    """Reporting commands."""


@reports_group.command('revenue')
@click.option('--branch', 'branch_id', default=None, help='Branch id (default: selected branch)')
@click.option('--start', default=None, help='First day (YYYY-MM-DD)')
@click.option('--end', default=None, help='Last day (YYYY-MM-DD, default today)')
@click.option('--period', type=click.Choice(reporting_service.PERIODS), default='day')
@click.option('--cost-basis', type=click.Choice(reporting_service.COST_BASES), default='current')
@with_appcontext
def revenue(branch_id, start, end, period, cost_basis):
    """Revenue, cost and profit per period."""
    state = state_service.load_state()
    branch_id = branch_id or state.current_branch_id
    try:
        end_date = parse_iso_date(end) if end else utcnow().date()
        start_date = parse_iso_date(start) if start else end_date.replace(day=1)
    except ValueError:
        raise click.ClickException("Dates must be YYYY-MM-DD")

    try:
        lines = reporting_service.revenue_lines(state, branch_id, cost_basis=cost_basis)
        report = reporting_service.revenue_report(lines, start_date, end_date, period=period)
    except ReportError as e:
        raise click.ClickException(str(e))

    click.echo(f"\nRevenue for {branch_id} from {report['start']} to {report['end']} by {period}:")
    click.echo("-" * 60)
    for row in report["series"]:
        click.echo(f"{row['label']:<12} {row['revenue']:>14,} {row['cost']:>14,} {row['profit']:>14,}")
    totals = report["totals"]
    click.echo("-" * 60)
    click.echo(f"{'Total':<12} {totals['revenue']:>14,} {totals['cost']:>14,} {totals['profit']:>14,}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(reports_group)
