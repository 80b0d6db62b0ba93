"""
Console front-end for RBAC tools
Renders export/import and route log results, handles confirmations
"""
import typer
from tabulate import tabulate

from access_resolver import AccessResolver
from config import EXIT_OK, EXIT_ERROR, EXIT_DATAERR
from exceptions import NotFoundError, ValidationError, SnapshotIOError, StorageError
from rbac_snapshot import RbacSnapshotManager
from rbac_store import RbacStore
from route_log_manager import RouteLogManager

GREEN = typer.colors.GREEN
YELLOW = typer.colors.YELLOW
RED = typer.colors.RED
CYAN = typer.colors.CYAN


def out(message, color=None, nl=True):
    typer.secho(message, fg=color, nl=nl)


def err(message, color=RED):
    typer.secho(message, fg=color, err=True)


class RbacConsole:
    """
    Administrative interface over the RBAC graph and the route log
    """

    def __init__(self, conn, snapshot_path=None):
        self.store = RbacStore(conn)
        self.resolver = AccessResolver(self.store)
        self.snapshot_manager = RbacSnapshotManager(conn, self.store, snapshot_path)
        self.route_log_manager = RouteLogManager(conn, self.store, self.resolver)

    # RBAC snapshot

    def handle_rbac_export(self):
        """Export RBAC configuration to the snapshot file"""
        out("\nExporting RBAC configuration:", YELLOW)
        try:
            summary = self.snapshot_manager.export_snapshot()
        except SnapshotIOError as e:
            err(f"Error: {e.message}")
            return EXIT_ERROR

        out(f"  Rules: {summary['rules']}", GREEN)
        out(f"  Roles: {summary['roles']}, permissions: {summary['permissions']}", GREEN)
        out(f"  Hierarchy assignments: {summary['children']}", GREEN)
        out(f"\nRBAC configuration exported to: {summary['path']}", GREEN)
        return EXIT_OK

    def handle_rbac_import(self, force=False):
        """Import RBAC configuration from the snapshot file"""
        try:
            snapshot = self.snapshot_manager.load_snapshot()
        except NotFoundError as e:
            err(f"\nError: {e.message}")
            err("Please run: rbac-tools rbac export\n", YELLOW)
            return EXIT_ERROR
        except SnapshotIOError as e:
            err(f"\nError: {e.message}")
            return EXIT_ERROR

        if not force:
            confirmed = typer.confirm(
                "\nWARNING: This will recreate all permissions and assignments "
                "(existing roles will be preserved). Do you want to continue?"
            )
            if not confirmed:
                return EXIT_OK

        out("Clearing existing RBAC data and importing...", YELLOW)
        try:
            summary = self.snapshot_manager.import_snapshot(snapshot)
        except StorageError as e:
            err(f"\nImport failed, no changes were applied: {e}")
            return EXIT_ERROR

        out(f"\n  Added rules: {summary['rules']}", GREEN)
        out(f"  Added roles: {summary['roles_added']}", GREEN)
        for name in summary['roles_skipped']:
            out(f"  Skipped role: {name} (already exists)", YELLOW)
        out(f"  Added permissions: {summary['permissions']}", GREEN)
        out(f"  Added children: {summary['children']}", GREEN)
        out("\nRBAC configuration imported successfully!", GREEN)
        return EXIT_OK

    # Route log

    @staticmethod
    def display_route_log_help():
        """Display route log commands and examples"""
        out("\nRoute Log Management", YELLOW)
        out("==================\n", YELLOW)

        commands = {
            'help': 'Show this help message',
            'export --role=name [--from=date] [--to=date] [--maxId=id] [--create] [--ignoreRoleFilter]':
                'Export unique routes used by specific role (with --maxId to limit by record ID)',
            'stats [--role=name] [--from=date] [--to=date] [--maxId=id]':
                'Show route usage statistics',
            'clear [--force]': 'Clear route log table and reset auto increment',
        }
        for command, description in commands.items():
            out(f"route-log {command}", GREEN)
            out(f"    {description}\n")

        out("Examples:", YELLOW)
        out("    rbac-tools route-log export --role=editor --from=2025-03-01")
        out("    rbac-tools route-log export --role=admin --maxId=1000")
        out("    rbac-tools route-log export --role=admin --ignoreRoleFilter")
        out("    rbac-tools route-log export --role=editor --create")
        out("    rbac-tools route-log stats --role=editor --from=2025-03-01 --to=2025-03-31")
        out("    rbac-tools route-log clear\n")
        return EXIT_OK

    def handle_route_export(self, role, date_from=None, date_to=None, max_id=None,
                            create=False, ignore_role_filter=False):
        """Show routes checked against the role and optionally create permissions"""
        try:
            report = self.route_log_manager.export_routes(
                role, date_from, date_to, max_id, ignore_role_filter
            )
        except ValidationError as e:
            err(f"\nError: {e.message}")
            return EXIT_DATAERR

        if not report.routes:
            suffix = "" if ignore_role_filter else f" for role '{role}'"
            err(f"\nNo routes found{suffix}")
            return EXIT_OK

        title = "All logged routes checked" if ignore_role_filter else "Routes used by role"
        out(f"\n{title} for role '{role}':\n", YELLOW)

        for entry in report.routes:
            out(f"'{entry.route}'", GREEN if entry.access.has_access else YELLOW, nl=False)
            for code in entry.error_codes:
                out(f" [ERROR {code}]", RED, nl=False)
            if entry.access.has_access:
                for note in entry.access.describe(entry.route):
                    out(f" [{note}]", GREEN, nl=False)
            else:
                out(" [UNAUTHORIZED]", RED, nl=False)
            out("")

        out(f"\nTotal: {report.total} unique routes", YELLOW)

        if report.unauthorized:
            out(f"\nUnauthorized routes for role '{role}':", RED)
            for route in report.unauthorized:
                out(f"  {route}", RED)
            out(f"\nTotal unauthorized: {len(report.unauthorized)} routes", RED)

        if not create:
            if report.new_routes:
                out(f"\nTIP: Found {len(report.new_routes)} new route(s) "
                    f"that can be added as permissions", CYAN)
                out(f"Use: rbac-tools route-log export --role={role} --create", CYAN)
            return EXIT_OK

        if not report.new_routes:
            out("\nAll routes already exist as permissions.", GREEN)
            return EXIT_OK

        if typer.confirm(f"\nCreate {len(report.new_routes)} new permissions?"):
            try:
                created = self.route_log_manager.create_permissions(report.new_routes)
            except StorageError as e:
                err(f"\nCould not create permissions: {e}")
                return EXIT_ERROR
            for route in created:
                out(f"  Added permission: {route}", GREEN)
        return EXIT_OK

    def handle_route_stats(self, role=None, date_from=None, date_to=None, max_id=None):
        """Show route usage statistics"""
        try:
            report = self.route_log_manager.get_statistics(role, date_from, date_to, max_id)
        except ValidationError as e:
            err(f"\nError: {e.message}")
            return EXIT_DATAERR

        if not report.stats:
            suffix = f" for role '{role}'" if role else ""
            err(f"\nNo route statistics found{suffix}")
            return EXIT_OK

        out("\nRoute usage statistics:", YELLOW)
        out(f"\nTotal requests: {report.total_requests}, "
            f"Errors: {report.total_errors} ({report.error_rate}%)\n", YELLOW)

        table_data = []
        for stat in report.stats:
            table_data.append([
                stat.route,
                stat.role,
                stat.error_count if stat.error_count > 0 else '-',
                stat.count,
            ])

        headers = ["Route", "Role", "Errors", "Count"]
        out(tabulate(table_data, headers=headers, tablefmt="grid"))
        return EXIT_OK

    def handle_route_clear(self, force=False):
        """Clear the route log after confirmation"""
        err("\nWARNING: All logs will be deleted. This cannot be undone.")
        if not force and not typer.confirm("Continue?"):
            return EXIT_OK

        count = self.route_log_manager.clear_log()
        out("\nRoute log table has been cleared and auto increment reset.", GREEN)
        out(f"Deleted records: {count}", GREEN)
        return EXIT_OK
