"""TableGate CLI entry point."""

import click


@click.group()
def cli():
    """TableGate - permission-aware REST access to generator tables."""
    pass


# Register subcommand groups
from tablegate.cli.tables_cmd import tables  # noqa: E402
from tablegate.cli.query_cmd import query  # noqa: E402

cli.add_command(tables)
cli.add_command(query)
