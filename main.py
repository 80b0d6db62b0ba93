"""
Main entry point for RBAC tools
Console commands for RBAC export/import and route log analysis
"""
import logging
from typing import Optional

import typer

from config import DATABASE_NAME, SNAPSHOT_PATH, LOG_LEVEL, LOG_FORMAT, EXIT_OK
from database import get_db_connection, init_database
from rbac_console import RbacConsole

app = typer.Typer(name="rbac-tools", help="RBAC configuration and route log tools")
rbac_app = typer.Typer(help="Export and import RBAC configuration")
route_log_app = typer.Typer(help="Route log analysis and management")
app.add_typer(rbac_app, name="rbac")
app.add_typer(route_log_app, name="route-log")


@app.callback()
def main(
    ctx: typer.Context,
    db: str = typer.Option(DATABASE_NAME, "--db", help="SQLite database file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Role-based access control console tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else LOG_LEVEL, format=LOG_FORMAT, force=True
    )
    ctx.obj = {'db': db}


def open_console(ctx, snapshot_path=None):
    """Open the database for this invocation and build the console"""
    conn = get_db_connection(ctx.obj['db'])
    ctx.call_on_close(conn.close)
    init_database(conn)
    return RbacConsole(conn, snapshot_path)


def finish(code):
    if code != EXIT_OK:
        raise typer.Exit(code)


@app.command("init-db")
def init_db(ctx: typer.Context):
    """Create RBAC and route log tables."""
    open_console(ctx)
    typer.secho("RBAC database initialized successfully", fg=typer.colors.GREEN)


@rbac_app.command("export")
def rbac_export(
    ctx: typer.Context,
    file: str = typer.Option(SNAPSHOT_PATH, "--file", help="Snapshot file"),
):
    """Export rules, roles, permissions and hierarchy to the snapshot file."""
    finish(open_console(ctx, file).handle_rbac_export())


@rbac_app.command("import")
def rbac_import(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Skip confirmation"),
    file: str = typer.Option(SNAPSHOT_PATH, "--file", help="Snapshot file"),
):
    """Import RBAC configuration. Existing roles are preserved."""
    finish(open_console(ctx, file).handle_rbac_import(force))


@route_log_app.callback(invoke_without_command=True)
def route_log(ctx: typer.Context):
    """Route log analysis and management."""
    if ctx.invoked_subcommand is None:
        RbacConsole.display_route_log_help()


@route_log_app.command("help")
def route_log_help():
    """Show route log commands and examples."""
    RbacConsole.display_route_log_help()


@route_log_app.command("export")
def route_log_export(
    ctx: typer.Context,
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Role to analyze"),
    date_from: Optional[str] = typer.Option(None, "--from", "-f", help="Start date (YYYY-MM-DD)"),
    date_to: Optional[str] = typer.Option(None, "--to", "-t", help="End date (YYYY-MM-DD)"),
    max_id: Optional[int] = typer.Option(None, "--maxId", "-m", help="Ignore records with higher ID"),
    create: bool = typer.Option(False, "--create", "-c", help="Create permissions for new routes"),
    ignore_role_filter: bool = typer.Option(
        False, "--ignoreRoleFilter", "-i", help="Check routes logged for any role"
    ),
):
    """Export unique routes used by a role and check their permissions."""
    console = open_console(ctx)
    finish(console.handle_route_export(
        role, date_from, date_to, max_id, create, ignore_role_filter
    ))


@route_log_app.command("stats")
def route_log_stats(
    ctx: typer.Context,
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Role filter"),
    date_from: Optional[str] = typer.Option(None, "--from", "-f", help="Start date (YYYY-MM-DD)"),
    date_to: Optional[str] = typer.Option(None, "--to", "-t", help="End date (YYYY-MM-DD)"),
    max_id: Optional[int] = typer.Option(None, "--maxId", "-m", help="Ignore records with higher ID"),
):
    """Show route usage statistics."""
    finish(open_console(ctx).handle_route_stats(role, date_from, date_to, max_id))


@route_log_app.command("clear")
def route_log_clear(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Skip confirmation"),
):
    """Clear route log table and reset auto increment."""
    finish(open_console(ctx).handle_route_clear(force))


if __name__ == "__main__":
    app()
