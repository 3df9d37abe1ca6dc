"""Query commands: show the SQL a list request would run."""

import click

from tablegate.cli.tables_cmd import load_registry, resolve_metadata_path
from tablegate.core.errors import UnknownTable
from tablegate.query.builder import DIALECTS, build
from tablegate.query.parser import DEFAULT_LIMIT, MAX_LIMIT, parse, parse_page


@click.group()
def query():
    """Query inspection commands."""
    pass


@query.command()
@click.argument("table")
@click.option("--filters", default=None, help="e.g. 'status:eq:active,price:gt:10'")
@click.option("--order", default=None, help="e.g. 'price,desc;name'")
@click.option("--q", "search", default=None, help="Free-text search.")
@click.option("--limit", default=None)
@click.option("--offset", default=None)
@click.option(
    "--dialect",
    type=click.Choice(sorted(DIALECTS)),
    default="sqlite",
    show_default=True,
)
@click.option(
    "--strict-types",
    is_flag=True,
    default=False,
    help="Drop filter values that do not match the field type.",
)
def explain(
    table: str,
    filters: str | None,
    order: str | None,
    search: str | None,
    limit: str | None,
    offset: str | None,
    dialect: str,
    strict_types: bool,
):
    """Print the COUNT and SELECT statements for a list request on TABLE.

    Permissions are not applied; owner scoping is not shown.
    """
    registry = load_registry(resolve_metadata_path())
    try:
        config = registry.get_config(table)
    except UnknownTable:
        click.echo(f"Error: table '{table}' is not configured", err=True)
        raise SystemExit(1)

    parsed = parse(filters, order, search, config, strict_types=strict_types)
    page, page_errors = parse_page(limit, offset, DEFAULT_LIMIT, MAX_LIMIT)
    plan = build(
        parsed.filters, parsed.sort, parsed.search, page, config, dialect=DIALECTS[dialect]
    )

    count = plan.count_statement()
    select = plan.select_statement()
    click.echo(click.style("COUNT", bold=True))
    click.echo(f"  {count.sql}")
    click.echo(f"  params: {list(count.params)}")
    click.echo(click.style("SELECT", bold=True))
    click.echo(f"  {select.sql}")
    click.echo(f"  params: {list(select.params)}")

    warnings = parsed.errors + page_errors
    if warnings:
        click.echo(click.style(f"\n{len(warnings)} segment(s) dropped:", fg="yellow"))
        for w in warnings:
            field = f" ({w.field})" if w.field else ""
            click.echo(click.style(f"  {w.param}[{w.index}]{field}: {w.reason}", fg="yellow"))
