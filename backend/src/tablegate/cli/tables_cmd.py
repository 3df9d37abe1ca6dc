"""Table configuration commands: validate and list."""

from pathlib import Path

import click

from tablegate.registry.loader import TableRegistry
from tablegate.registry.validator import validate_metadata_dir, validate_yaml_file
from tablegate.settings import Settings


def resolve_metadata_path() -> Path:
    """Metadata directory from TABLEGATE_METADATA_PATH or the repo root."""
    cwd = Path.cwd()
    base_path = cwd.parent if cwd.name == "backend" else cwd
    return Settings.from_env(base_path).metadata_path


def load_registry(metadata_path: Path) -> TableRegistry:
    """Load the registry, exiting with status 1 on a configuration error."""
    try:
        registry = TableRegistry(metadata_path)
        registry.load_all()
    except (ValueError, KeyError) as e:
        click.echo(click.style(f"Table configuration is invalid: {e}", fg="red"), err=True)
        raise SystemExit(1)
    return registry


@click.group()
def tables():
    """Table configuration commands."""
    pass


@tables.command()
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors.",
)
@click.option(
    "--path",
    "target_path",
    default=None,
    type=click.Path(exists=True, path_type=Path),
    help="Validate a single YAML file instead of the whole metadata directory.",
)
def validate(strict: bool, target_path: Path | None):
    """Validate table YAML files against the JSON Schema."""
    metadata_path = resolve_metadata_path()

    if target_path is not None:
        schema_issues = validate_yaml_file(target_path)
        if strict:
            for issue in schema_issues:
                issue.severity = "error"
    else:
        if not metadata_path.exists():
            click.echo(f"Error: Metadata directory not found at {metadata_path}", err=True)
            raise SystemExit(1)
        schema_issues = validate_metadata_dir(metadata_path, strict=strict)

    errors = [i for i in schema_issues if i.severity == "error"]
    warnings = [i for i in schema_issues if i.severity == "warning"]

    for issue in schema_issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(
            click.style(
                f"\n{len(errors)} schema error(s) found"
                + (f", {len(warnings)} warning(s)" if warnings else ""),
                fg="red",
                bold=True,
            )
        )
        raise SystemExit(1)

    if warnings:
        click.echo(click.style(f"{len(warnings)} warning(s) found.", fg="yellow"))

    # Loader checks only make sense for the whole directory
    if target_path is None:
        registry = load_registry(metadata_path)
        names = registry.list_tables()
        click.echo(f"\nLoaded {len(names)} tables:")
        for name in sorted(names):
            config = registry.get_config(name)
            owner = f", owner: {config.owner_field}" if config.owner_field else ""
            click.echo(f"  ✓ {name} ({len(config.fields)} fields{owner})")

    click.echo(click.style("\nAll table configuration is valid.", fg="green", bold=True))


@tables.command("list")
def list_cmd():
    """Show configured tables and their queryable fields."""
    registry = load_registry(resolve_metadata_path())

    if not registry.tables:
        click.echo("No tables configured.")
        return

    for name in sorted(registry.list_tables()):
        config = registry.get_config(name)
        click.echo(click.style(name, bold=True) + f"  (primary key: {config.primary_key})")
        if config.owner_field:
            click.echo(f"  owner field: {config.owner_field}")
        click.echo(f"  filterable: {', '.join(sorted(config.filterable)) or '-'}")
        click.echo(f"  sortable:   {', '.join(sorted(config.sortable)) or '-'}")
        click.echo(f"  searchable: {', '.join(f.name for f in config.fields if f.searchable) or '-'}")
