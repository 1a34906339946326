# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/eno/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables and the CEO account from ENO_CEO_EMAIL / ENO_CEO_PASSWORD (idempotent).
# - python -m flask system cleanup-sessions --retention-days 30
#   Purge expired or revoked sessions older than the retention window.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask users create-ceo --email ceo@eno.local --password "Password123"
#   Create the CEO account if none exists.
# - python -m flask users list
#   List accounts with role, partner and active status.
# - python -m flask users invite --email p@partner.local --role partner --partner-id PAT001
#   Issue an invitation token (printed, no mail is sent).
#
# Partners / accounting:
# - python -m flask partners reassign-codes
#   Repair missing, malformed or duplicated partner codes.
# - python -m flask accounting reset --yes
#   Delete all transactions, standard orders, partner fees and salaries.
#
# Exports:
# - python -m flask export --type accounting --type partners --format xlsx --output ./out.xlsx

from pathlib import Path

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Profile
from .permissions import Role
from .services import auth_service, maintenance_service, partner_service, table_service
from .time_utils import utcnow
from .validation import ConflictError, NotFoundError, ValidationError


def _ceo_actor() -> Profile:
    actor = db.session.query(Profile).filter_by(role=Role.CEO.value, is_active=True).order_by(Profile.created_at).first()
    if actor is None:
        raise click.ClickException("No active CEO account. Run 'python -m flask users create-ceo' first.")
    return actor


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create missing tables and bootstrap the CEO account.

    Uses ENO_CEO_EMAIL, ENO_CEO_PASSWORD and ENO_CEO_FULL_NAME; skips the
    account step when they are not set.
    """
    click.echo("START Initializing Eno data service...")
    db.create_all()
    click.echo("PASS Tables ready")

    email = current_app.config.get("ENO_CEO_EMAIL")
    password = current_app.config.get("ENO_CEO_PASSWORD")
    if not email or not password:
        click.echo("SKIP ENO_CEO_EMAIL / ENO_CEO_PASSWORD not set; no CEO account created")
        return

    try:
        profile, created = auth_service.ensure_ceo(
            email=email, password=password, full_name=current_app.config.get("ENO_CEO_FULL_NAME"),
        )
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    state = "Created" if created else "Using existing"
    click.echo(f"PASS {state} CEO account: {profile.email}")


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


@system_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """
    Purge expired or revoked sessions.

    Default retention: 30 days.
    """
    deleted = maintenance_service.cleanup_sessions(retention_days=retention_days)
    click.echo(f"DELETE Removed {deleted} session(s) older than {retention_days} days.")


@click.group('users')
def users_group():
    """Account bootstrap and inspection commands."""


@users_group.command('create-ceo')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', default=None, help='Display name')
@with_appcontext
def create_ceo_cli(email, password, full_name):
    """Create the CEO account if none exists."""
    try:
        profile, created = auth_service.ensure_ceo(
            email=email,
            password=password,
            full_name=full_name or current_app.config.get("ENO_CEO_FULL_NAME"),
        )
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    if created:
        click.echo(f"PASS Created CEO account {profile.email} (ID: {profile.id})")
    else:
        click.echo(f"SKIP A CEO account already exists: {profile.email}")


@users_group.command('list')
@click.option('--role', type=click.Choice([r.value for r in Role]), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all accounts."""
    query = db.session.query(Profile)
    if role:
        query = query.filter_by(role=role)

    users = query.order_by(Profile.created_at).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'Email':<32} {'Name':<24} {'Role':<12} {'Partner':<10} {'Active':<8} {'Extra permissions'}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        extra = ", ".join(user.permissions) or "-"
        click.echo(
            f"{user.email:<32} {(user.full_name or '-'):<24} {user.role:<12} "
            f"{(user.partner_id or '-'):<10} {active_str:<8} {extra}"
        )

    click.echo("="*100 + "\n")


@users_group.command('invite')
@click.option('--email', required=True, help='Invitee email')
@click.option('--role', type=click.Choice([r.value for r in Role]), default='partner', show_default=True)
@click.option('--partner-id', default=None, help='Partner code (required for partner accounts)')
@click.option('--full-name', default=None, help='Invitee display name')
@with_appcontext
def invite_user_cli(email, role, partner_id, full_name):
    """Issue an invitation on behalf of the CEO and print its token."""
    try:
        invitation, token = auth_service.invite_user(
            actor=_ceo_actor(), email=email, role=role, partner_id=partner_id, full_name=full_name,
        )
    except (ValidationError, ConflictError, NotFoundError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Invitation for {invitation.email} ({invitation.role}) expires {invitation.expires_at:%Y-%m-%d}")
    click.echo(f"TOKEN {token}")


@click.group('partners')
def partners_group():
    """Partner maintenance commands."""


@partners_group.command('reassign-codes')
@with_appcontext
def reassign_codes_cli():
    """Give every partner a valid, unique partner code."""
    updated = partner_service.reassign_partner_codes(actor=_ceo_actor())
    if not updated:
        click.echo("PASS All partner codes are valid")
        return
    for partner in updated:
        click.echo(f"UPDATE {partner['id']:<10} -> {partner['partner_code']}  {partner['name']}")
    click.echo(f"PASS Reassigned {len(updated)} partner code(s)")


@click.group('accounting')
def accounting_group():
    """Accounting maintenance commands."""


@accounting_group.command('reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_accounting_cli(yes):
    """DANGER: delete all transactions, standard orders, partner fees and salaries."""
    if not yes:
        click.confirm("WARN This will DELETE ALL ACCOUNTING DATA. Are you sure?", abort=True)

    counts = maintenance_service.reset_accounting_data(actor=_ceo_actor())
    for table, count in counts.items():
        click.echo(f"DELETE {table}: {count}")
    click.echo("PASS Accounting data reset")


@click.command('export')
@click.option('--type', 'categories', multiple=True, required=True,
              type=click.Choice(['accounting', 'salaries', 'partners', 'products', 'stockMovements', 'users']),
              help='Data category (repeatable)')
@click.option('--format', 'fmt', type=click.Choice(['xlsx', 'pdf']), default='xlsx', show_default=True)
@click.option('--output', type=click.Path(dir_okay=False, writable=True), default=None,
              help='Output file (defaults to export_eno_livraison_<date>.<format>)')
@with_appcontext
def export_cli(categories, fmt, output):
    """Export data as seen by the CEO."""
    from .dashboard import exports

    actor = _ceo_actor()
    sections = exports.collect_sections(
        list(categories),
        lambda table: table_service.select(table, profile=actor),
    )
    now = utcnow()
    payload = exports.build_xlsx(sections) if fmt == "xlsx" else exports.build_pdf(sections, generated_at=now)

    path = Path(output or exports.export_filename(fmt, now.date()))
    path.write_bytes(payload)
    rows = sum(len(section.rows) for section in sections)
    click.echo(f"PASS Wrote {rows} row(s) in {len(sections)} sheet(s) to {path}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(partners_group)
    app.cli.add_command(accounting_group)
    app.cli.add_command(export_cli)
