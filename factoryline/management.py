"""
Management commands for deployment and maintenance
"""
import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.material_ledger import drift_report


@click.command('init-db')
@click.option('--admin-email', default=None, help='Create an admin user with this email')
@with_appcontext
def init_db_command(admin_email):
    """Create all tables (local/dev); production uses `flask db upgrade`."""
    db.create_all()
    click.echo('✅ Database tables created/verified')

    if admin_email:
        _create_user(admin_email, is_admin=True)


@click.command('create-user')
@click.argument('email')
@click.option('--admin', is_flag=True, default=False, help='Grant delete privileges')
@with_appcontext
def create_user_command(email, admin):
    """Create an API user and print its bearer token"""
    _create_user(email, is_admin=admin)


def _create_user(email, is_admin=False):
    existing = User.query.filter_by(email=email).first()
    if existing:
        raise click.ClickException(f'User {email} already exists')
    user = User(email=email, is_admin=is_admin, is_active=True)
    token = user.issue_token()
    db.session.add(user)
    db.session.commit()
    click.echo(f"✅ Created {'admin ' if is_admin else ''}user {email}")
    click.echo(f'   API token: {token}')
    return user


@click.command('check-ledger')
@with_appcontext
def check_ledger_command():
    """Compare each material's stock counter with its FIFO lot ledger"""
    rows = drift_report()
    if not rows:
        click.echo('ℹ️  No raw materials found.')
        return

    drifted = [row for row in rows if not row['is_valid']]
    for row in rows:
        marker = '✅' if row['is_valid'] else '❌'
        click.echo(
            f"{marker} {row['material_name']}: counter={row['counter']} "
            f"ledger={row['ledger_total']} diff={row['difference']} {row['unit']}"
        )

    if drifted:
        raise click.ClickException(f'{len(drifted)} material(s) out of sync with their lot ledger')
    click.echo(f'✅ All {len(rows)} material(s) in sync')


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(init_db_command)
    app.cli.add_command(create_user_command)
    app.cli.add_command(check_ledger_command)
