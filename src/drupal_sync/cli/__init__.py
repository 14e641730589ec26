"""CLI module for copying and sanitizing Drupal databases between site aliases.

Usage:
    drupal-sync aliases
    drupal-sync sql-sync @prod @local --sanitize
    drupal-sync sql-sync @prod @local --no-dump --source-dump=/tmp/prod.sql.gz
    drupal-sync sql-sync @prod @stage --create-db --sanitize-email=user+%uid@test.com --yes
    drupal-sync sql-sanitize @local --sanitize-password=no
    drupal-sync extensions @local --type theme --status enabled

Commands:
    aliases       - List configured site aliases
    sql-sync      - Copy the source database onto the destination
    sql-sanitize  - Scrub passwords, emails and sessions on a site
    extensions    - List a site's modules or themes
"""

import argparse
import asyncio
import sys
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from drupal_sync.config.loader import load_alias_config
from drupal_sync.config.models import AliasConfig
from drupal_sync.exceptions import DrupalSyncError
from drupal_sync.extensions import ExtensionShim
from drupal_sync.factory import get_db_spec, get_runner, resolve_alias, resolve_url
from drupal_sync.log import configure_logging
from drupal_sync.sql.executor import EngineQueryExecutor, QueryExecutor
from drupal_sync.sql.models import SyncOptions, SyncResult
from drupal_sync.sql.sanitize import collect_sanitize_operations, resolve_settings
from drupal_sync.sql.sync import run_sync, sanitize_site

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _load_config(args: argparse.Namespace) -> AliasConfig | None:
    """Load the alias file, printing the error and returning None on failure."""
    config_path = Path(args.config) if getattr(args, "config", None) else None
    try:
        return load_alias_config(config_path, env_prefix=getattr(args, "env_prefix", ""))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


def _confirm(message: str) -> bool:
    console.print()
    console.print(message)
    return Confirm.ask("Continue?", default=False, console=console)


def _print_result(result: SyncResult) -> int:
    if result.aborted:
        console.print("[yellow]Aborted.[/yellow]")
        return 0

    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    if result.success:
        console.print()
        console.print(
            f"[bold green]v[/bold green] Synced [bold]@{result.source}[/bold] -> "
            f"[bold cyan]@{result.destination}[/bold cyan]"
        )
        for operation in result.operations:
            console.print(f"  [dim]-[/dim] {operation.description}")
        return 0

    console.print()
    console.print(f"[bold red]x[/bold red] {result.error}")
    if result.failed_step:
        console.print(f"  Failed step: [bold]{result.failed_step}[/bold]")
    return 1


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_sql_sync(args: argparse.Namespace) -> int:
    """Async implementation for sql-sync command.

    Returns:
        0 on success or user abort, 1 on failure.
    """
    config = _load_config(args)
    if config is None:
        return 1

    try:
        options = SyncOptions(
            create_db=args.create_db,
            no_dump=args.no_dump,
            sanitize=args.sanitize,
            sanitize_password=args.sanitize_password,
            sanitize_email=args.sanitize_email,
            strict=args.strict,
            gzip=not args.no_gzip,
            simulate=args.simulate,
            yes=args.yes,
            source_dump=args.source_dump,
            target_dump=args.target_dump,
            structure_tables_key=args.structure_tables_key,
            skip_tables_key=args.skip_tables_key,
            tables_list=args.tables_list,
            extra_dump=args.extra_dump,
        )
    except ValidationError as e:
        console.print(f"[red]Error: {e.errors()[0]['msg']}[/red]")
        return 1

    executor: QueryExecutor | None = None
    if args.direct and args.sanitize and not args.simulate:
        try:
            spec = get_db_spec(resolve_alias(config, args.destination, side="destination"))
        except DrupalSyncError as e:
            console.print(f"[red]Error: {e}[/red]")
            return 1
        executor = EngineQueryExecutor(resolve_url(spec))

    console.print("Syncing database...", style="dim")
    console.print(f"  Source: [bold]{args.source}[/bold]")
    console.print(f"  Destination: [bold cyan]{args.destination}[/bold cyan]")

    runner = get_runner(config, simulate=args.simulate)
    try:
        result = await run_sync(
            args.source,
            args.destination,
            config=config,
            options=options,
            runner=runner,
            confirm=_confirm,
            executor=executor,
        )
    finally:
        if executor is not None:
            await executor.close()

    return _print_result(result)


async def _async_sql_sanitize(args: argparse.Namespace) -> int:
    """Async implementation for sql-sanitize command.

    Returns:
        0 on success or user abort, 1 on failure.
    """
    config = _load_config(args)
    if config is None:
        return 1

    try:
        alias = resolve_alias(config, args.alias)
        spec = get_db_spec(alias)
    except DrupalSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    settings = resolve_settings(
        alias,
        config.sanitize,
        password=args.sanitize_password,
        email=args.sanitize_email,
    )

    # Preview only; sanitize_site() registers its own queue
    preview = collect_sanitize_operations(alias, settings)
    console.print("The following operations will be done on the target database:")
    for description in preview.descriptions():
        console.print(f"  * {description}")

    if not args.yes and not Confirm.ask("Do you want to sanitize the database?", default=False, console=console):
        console.print("[yellow]Aborted.[/yellow]")
        return 0

    runner = get_runner(config, simulate=args.simulate)
    executor: QueryExecutor | None = None
    if args.direct and not args.simulate:
        executor = EngineQueryExecutor(resolve_url(spec))

    try:
        await sanitize_site(alias, runner, settings, executor)
    except DrupalSyncError as e:
        console.print(f"\n[bold red]x[/bold red] {e}")
        return 1
    finally:
        if executor is not None:
            await executor.close()

    console.print(f"[bold green]v[/bold green] Sanitized [bold cyan]@{alias.name}[/bold cyan]")
    return 0


async def _async_extensions(args: argparse.Namespace) -> int:
    """Async implementation for extensions command.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_config(args)
    if config is None:
        return 1

    try:
        alias = resolve_alias(config, args.alias)
        shim = ExtensionShim(get_runner(config), alias)
        extensions = await shim.list_extensions(args.type, args.status)
    except DrupalSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    table = Table(
        title=f"{args.type.capitalize()}s on @{alias.name}",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Name")
    table.add_column("Package", style="dim")
    table.add_column("Status")
    table.add_column("Version", style="dim")

    for ext in extensions:
        status = f"[green]{ext.status}[/green]" if ext.enabled else ext.status
        table.add_row(ext.name, ext.package, status, ext.version or "")

    console.print(table)
    return 0


# ============================================================================
# Command wrappers
# ============================================================================


def cmd_sql_sync(args: argparse.Namespace) -> int:
    """Copy a database between aliases.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_sql_sync(args))


def cmd_sql_sanitize(args: argparse.Namespace) -> int:
    """Sanitize a site's database.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_sql_sanitize(args))


def cmd_extensions(args: argparse.Namespace) -> int:
    """List a site's modules or themes.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_extensions(args))


def cmd_aliases(args: argparse.Namespace) -> int:
    """List configured aliases.

    Reads only the local TOML config -- no drush calls.

    Returns:
        0 on success, 1 if the alias file is missing or invalid.
    """
    config = _load_config(args)
    if config is None:
        return 1

    table = Table(title="Site Aliases", show_header=True, header_style="bold")
    table.add_column("Alias")
    table.add_column("Host")
    table.add_column("Database")
    table.add_column("Description")

    for name, alias in config.aliases.items():
        if alias.database is not None:
            db = f"{alias.database.driver}:{alias.database.database}"
        else:
            db = "[yellow]none[/yellow]"
        table.add_row(f"[bold cyan]@{name}[/bold cyan]", alias.host or "local", db, alias.description)

    console.print(table)
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def _add_sanitize_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--sanitize-password",
        help='Password to set for all users, or "no" to keep passwords',
    )
    parser.add_argument(
        "--sanitize-email",
        help='Email pattern (supports %%uid, %%mail, %%name), or "no" to keep emails',
    )
    parser.add_argument(
        "--direct",
        action="store_true",
        help="Run sanitize SQL over a direct database connection instead of drush sql:query",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drupal-sync",
        description="Copy and sanitize Drupal databases between site aliases",
    )

    # Global options
    parser.add_argument(
        "--config",
        "-c",
        help="Path to aliases.toml (default: $DRUPAL_SYNC_ALIASES or ./aliases.toml)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DRUPAL_SYNC_ALIASES)"
        ),
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # aliases command
    p_aliases = subparsers.add_parser("aliases", help="List configured site aliases")
    p_aliases.set_defaults(func=cmd_aliases)

    # sql-sync command
    p_sync = subparsers.add_parser(
        "sql-sync",
        help="Copy the source database onto the destination",
    )
    p_sync.add_argument("source", help="Source alias (e.g., @prod)")
    p_sync.add_argument("destination", help="Destination alias (e.g., @local)")
    p_sync.add_argument("--create-db", action="store_true", help="Create the destination database first")
    p_sync.add_argument("--no-dump", action="store_true", help="Reuse an existing dump (needs --source-dump)")
    p_sync.add_argument("--sanitize", action="store_true", help="Sanitize the destination after import")
    p_sync.add_argument(
        "--strict",
        type=int,
        choices=[0, 1],
        help="Forwarded to sql:query; 0 disables SQL strict mode during import",
    )
    p_sync.add_argument("--source-dump", help="Dump path on the source")
    p_sync.add_argument("--target-dump", help="Dump path on the destination (kept after import)")
    p_sync.add_argument("--no-gzip", action="store_true", help="Do not compress the dump")
    p_sync.add_argument("--structure-tables-key", help="Forwarded to sql:dump")
    p_sync.add_argument("--skip-tables-key", help="Forwarded to sql:dump")
    p_sync.add_argument("--tables-list", help="Forwarded to sql:dump")
    p_sync.add_argument("--extra-dump", help="Forwarded to sql:dump")
    p_sync.add_argument("--simulate", action="store_true", help="Print drush commands without running them")
    p_sync.add_argument("--yes", "-y", action="store_true", help="Skip the confirmation prompt")
    _add_sanitize_arguments(p_sync)
    p_sync.set_defaults(func=cmd_sql_sync)

    # sql-sanitize command
    p_sanitize = subparsers.add_parser(
        "sql-sanitize",
        help="Scrub passwords, emails and sessions on a site",
    )
    p_sanitize.add_argument("alias", help="Site alias to sanitize")
    p_sanitize.add_argument("--simulate", action="store_true", help="Print drush commands without running them")
    p_sanitize.add_argument("--yes", "-y", action="store_true", help="Skip the confirmation prompt")
    _add_sanitize_arguments(p_sanitize)
    p_sanitize.set_defaults(func=cmd_sql_sanitize)

    # extensions command
    p_ext = subparsers.add_parser("extensions", help="List a site's modules or themes")
    p_ext.add_argument("alias", help="Site alias")
    p_ext.add_argument("--type", choices=["module", "theme"], default="module")
    p_ext.add_argument("--status", choices=["enabled", "disabled"])
    p_ext.set_defaults(func=cmd_extensions)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
