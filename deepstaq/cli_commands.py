"""
Flask CLI commands for database maintenance.

Commands:
- flask init-db: Create all tables
- flask audit-ledger: Replay every product's ledger and report negative history
"""
import click

from deepstaq.database import create_tables, get_session
from deepstaq.models import Product, StockMovement
from deepstaq.services.ledger import first_negative_balance


def audit_ledgers(session, tenant_id=None):
    """
    Replay the movement history of every product (optionally one tenant).

    Returns:
        List of (product, failing_date, balance) for products whose balance
        is negative at some date.
    """
    query = session.query(Product)
    if tenant_id:
        query = query.filter(Product.user_id == tenant_id)

    findings = []
    for product in query.order_by(Product.id.asc()).all():
        movements = session.query(StockMovement).filter(
            StockMovement.user_id == product.user_id,
            StockMovement.product_id == product.id
        ).all()
        violation = first_negative_balance(product.opening_stock, movements)
        if violation is not None:
            findings.append((product, violation[0], violation[1]))
    return findings


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table that does not exist yet."""
        create_tables()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('audit-ledger')
    @click.option('--user-id', default=None, help='Only audit this tenant')
    def audit_ledger_command(user_id):
        """Report products whose stock goes negative at some date."""
        findings = audit_ledgers(get_session(), user_id)

        if not findings:
            click.echo(click.style('All ledgers are consistent.', fg='green'))
            return

        for product, failing_date, balance in findings:
            when = failing_date.isoformat() if failing_date else 'opening'
            click.echo(click.style(
                f'Product {product.id} ({product.name}, user {product.user_id}): '
                f'balance {balance} on {when}',
                fg='red'
            ))
        raise click.exceptions.Exit(1)
