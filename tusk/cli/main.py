"""CLI commands for tusk."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from tusk.config import TuskConfig, TuskSettings
from tusk.core.models import DatabaseReport
from tusk.ddl import SchemaExtractor
from tusk.exceptions import ConfigurationError
from tusk.ordering import OrderingAllocator
from tusk.process import ProcessRunner
from tusk.queries import QueryRunner
from tusk.scaffold import write_faker_scaffold, write_init_sql, write_query_scaffold
from tusk.seeder import SeedDispatcher
from tusk.sync import check_connectivity, sync_artifacts

force_option = click.option("--force", "-f", is_flag=True, help="Overwrite @lock protected files")
dry_run_option = click.option("--dry-run", "-d", is_flag=True, help="Simulate execution")


class Context:
    def __init__(self, root: Path):
        self.settings = TuskSettings(root=root)

    def load_config(self) -> TuskConfig:
        return self.settings.load_config()

    def runner(self) -> ProcessRunner:
        return ProcessRunner.from_settings(self.settings)


def _finish(reports: list[DatabaseReport]) -> None:
    """Echo per-database summaries; exit 1 if anything failed."""
    for report in reports:
        click.echo(report.summary())
        for item in report.failed:
            reason = item.detail.splitlines()[0] if item.detail else "failed"
            click.echo(f"  ✗ {item.name}: {reason}", err=True)
    if any(not report.ok for report in reports):
        sys.exit(1)


@click.group()
@click.version_option(package_name="tusk")
@click.option("--root", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Project root (default: current directory)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, root: Optional[Path], verbose: bool) -> None:
    """tusk - generate SQL artifacts for a local PostgreSQL mirror."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
    )
    ctx.obj = Context(root or Path.cwd())


def _run(action):
    """Turn configuration errors into a clean exit."""
    try:
        return action()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command("generate:db:init")
@force_option
@dry_run_option
@click.pass_obj
def generate_db_init(obj: Context, force: bool, dry_run: bool) -> None:
    """Generate the database creation script (000_init.sql)."""
    _run(lambda: write_init_sql(obj.settings, obj.load_config(), force, dry_run))


@cli.command("generate:db:ddl")
@click.option("--database", "-b", help="Process only this database")
@force_option
@dry_run_option
@click.pass_obj
def generate_db_ddl(obj: Context, database: Optional[str], force: bool, dry_run: bool) -> None:
    """Extract schema from remote databases and sanitize it for local use."""

    def action():
        extractor = SchemaExtractor(
            obj.load_config(), obj.settings, obj.runner(), OrderingAllocator(), force, dry_run
        )
        return extractor.run(database)

    _finish(_run(action))


@cli.command("generate:db:seed")
@click.option("--database", "-b", help="Process only this database")
@force_option
@dry_run_option
@click.pass_obj
def generate_db_seed(obj: Context, database: Optional[str], force: bool, dry_run: bool) -> None:
    """Generate seed data artifacts for every seed table."""

    def action():
        dispatcher = SeedDispatcher(
            obj.load_config(),
            obj.settings,
            allocator=OrderingAllocator(),
            runner=obj.runner(),
            force=force,
            dry_run=dry_run,
        )
        return dispatcher.run(database)

    _finish(_run(action))


@cli.command("generate:db:query")
@click.option("--file", "file", help="Template in the queries directory (default: all)")
@click.option("--force", is_flag=True, help="Overwrite @lock protected files")
@dry_run_option
@click.pass_obj
def generate_db_query(obj: Context, file: Optional[str], force: bool, dry_run: bool) -> None:
    """Execute remote query templates and generate local seed artifacts."""

    def action():
        runner = QueryRunner(obj.load_config(), obj.settings, obj.runner(), force, dry_run)
        return [runner.run(file)]

    _finish(_run(action))


@cli.command("generate:config:faker")
@click.option("--table", default="example_table", help="Table the definition is for")
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Definition file (default: <faker dir>/example_faker.yaml)")
@force_option
@dry_run_option
@click.pass_obj
def generate_config_faker(
    obj: Context, table: str, output: Optional[Path], force: bool, dry_run: bool
) -> None:
    """Write a generator definition scaffold."""
    path = output or obj.settings.resolve(obj.settings.faker_dir) / "example_faker.yaml"
    if not write_faker_scaffold(path, table, force, dry_run):
        sys.exit(1)


@cli.command("generate:config:query")
@click.option("--table", default="example_table", help="Table to scaffold a query for")
@force_option
@dry_run_option
@click.pass_obj
def generate_config_query(obj: Context, table: str, force: bool, dry_run: bool) -> None:
    """Write a query template scaffold."""
    try:
        config = obj.load_config()
    except ConfigurationError:
        config = None
    write_query_scaffold(obj.settings, config, table, force, dry_run)


@cli.command("ops:db:check")
@click.option("--database", "-b", help="Check only this database")
@dry_run_option
@click.pass_obj
def ops_db_check(obj: Context, database: Optional[str], dry_run: bool) -> None:
    """Verify connectivity and permissions for remote sources."""
    _finish(_run(lambda: check_connectivity(obj.load_config(), obj.runner(), database, dry_run)))


@cli.command("ops:db:sync")
@dry_run_option
@click.pass_obj
def ops_db_sync(obj: Context, dry_run: bool) -> None:
    """Apply 600-series sync artifacts to the local databases."""
    _finish([sync_artifacts(obj.settings, obj.runner(), dry_run)])


if __name__ == "__main__":
    cli()
