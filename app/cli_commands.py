"""
Flask CLI commands.

Commands:
- flask init-db: Create all tables
- flask create-staff: Create a staff user
"""

import click
import re
from app.database import get_session, create_tables
from app.exceptions import BusinessLogicError
from app.models import StaffRole
from app.services.auth_service import create_staff_user

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create the database schema."""
        create_tables()
        click.echo(click.style('✅ Database tables created', fg='green'))

    @app.cli.command('create-staff')
    @click.option('--email', prompt=True, help='Staff email (as known to the identity provider)')
    @click.option('--name', default=None, help='Display name')
    @click.option(
        '--role',
        type=click.Choice([r.value for r in StaffRole], case_sensitive=False),
        default=StaffRole.CASHIER.value,
        show_default=True
    )
    def create_staff(email, name, role):
        """Create a staff user allowed to operate the POS."""
        if not re.match(EMAIL_PATTERN, email):
            raise click.BadParameter('Use the format user@example.com', param_hint='--email')

        try:
            user = create_staff_user(get_session(), email, name=name, role=role)
        except BusinessLogicError as e:
            raise click.ClickException(e.message)

        click.echo(click.style('\n✅ Staff user created', fg='green', bold=True))
        click.echo(f'   Email: {user.email}')
        click.echo(f'   Role: {user.role}')
        click.echo(f'   ID: {user.id}')
