import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import inspect as sa_inspect

from beanbase.extensions import db
from beanbase.utils.logging_utils import get_logger

logger = get_logger("app")


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create the bean, link and audit tables (idempotent)."""
    db.create_all()
    tables = sorted(sa_inspect(db.engine).get_table_names())
    logger.info("init-db tables=%s", tables)
    click.echo(f"✔ Database ready: {', '.join(tables)}")


@click.command("drop-db")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@with_appcontext
def drop_db_command(yes: bool):
    """Drop every table managed by BeanBase."""
    if not yes:
        click.confirm(f"Drop all tables in {current_app.config['SQLALCHEMY_DATABASE_URI']}?", abort=True)
    db.drop_all()
    logger.warning("drop-db executed")
    click.echo("✔ Dropped all tables")
