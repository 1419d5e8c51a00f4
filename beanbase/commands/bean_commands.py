import json

import click
from flask.cli import AppGroup

from beanbase.errors import BeanBaseError
from beanbase.extensions import db
from beanbase.facade import get_beanbase
from beanbase.schemas import AuditLogSchema, BeanSchema
from beanbase.utils.model_utils.audit_log_utils import list_events

bean_cli = AppGroup("bean", help="Inspect and create beans.")


def _parse_assignment(assignment: str):
    if "=" not in assignment:
        raise click.BadParameter(f"expected KEY=VALUE, got {assignment!r}")
    key, raw = assignment.split("=", 1)
    try:
        value = json.loads(raw)
    except ValueError:
        value = raw
    return key.strip(), value


@bean_cli.command("show")
@click.argument("bean_type")
@click.argument("bean_id", type=int)
def show_command(bean_type: str, bean_id: int):
    """Print one bean as JSON."""
    try:
        bean = get_beanbase().read(bean_id, bean_type)
    except BeanBaseError as exc:
        raise click.ClickException(str(exc))
    click.echo(json.dumps(BeanSchema().dump(bean), default=str, sort_keys=True))


@bean_cli.command("create")
@click.argument("bean_type")
@click.argument("assignments", nargs=-1)
@click.option("--exclude", "excluded", multiple=True, help="Key to drop from the data")
@click.option("--unique", "unique", multiple=True, help="Field of the group whose combined values must be unique")
@click.option("--require", "required", multiple=True, help="Field that must be present and non-empty")
def create_command(bean_type: str, assignments, excluded, unique, required):
    """Create and save a bean from KEY=VALUE pairs (values are parsed as JSON when possible)."""
    data = dict(_parse_assignment(item) for item in assignments)
    beanbase = get_beanbase()
    try:
        bean = beanbase.create(bean_type, data, list(excluded) or None)
        if required:
            beanbase.completeness_check(bean, required)
        if unique:
            beanbase.set_unique(bean, unique)
        beanbase.save(bean)
    except BeanBaseError as exc:
        raise click.ClickException(str(exc))
    click.echo(json.dumps(BeanSchema().dump(bean), default=str, sort_keys=True))


@bean_cli.command("history")
@click.argument("bean_type")
@click.argument("bean_id", type=int, required=False)
@click.option("--limit", type=int, default=20, show_default=True)
def history_command(bean_type: str, bean_id, limit: int):
    """Print the audit trail of a bean type, or of one bean."""
    events = list_events(db.session, bean_type=bean_type, bean_id=bean_id, limit=limit)
    for entry in AuditLogSchema(many=True).dump(events):
        click.echo(json.dumps(entry, default=str, sort_keys=True))
