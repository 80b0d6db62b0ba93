"""
Route Usage Aggregator for RBAC tools
Cross-references logged routes with the RBAC graph and summarizes usage
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from audit import (
    get_route_error_codes, get_route_statistics, count_route_logs, delete_route_logs
)
from config import DATE_FORMAT, ROUTE_PERMISSION_DESCRIPTION
from database import transaction
from exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class RouteAccess:
    route: str
    access: object
    error_codes: list = field(default_factory=list)


@dataclass
class RouteReport:
    """Routes checked for one role"""
    role: str
    ignore_role_filter: bool = False
    routes: list = field(default_factory=list)
    unauthorized: list = field(default_factory=list)
    new_routes: list = field(default_factory=list)

    @property
    def total(self):
        return len(self.routes)


@dataclass
class RouteStat:
    route: str
    role: str
    count: int
    error_count: int


@dataclass
class RouteStatsReport:
    stats: list = field(default_factory=list)
    total_requests: int = 0
    total_errors: int = 0
    error_rate: float = 0


def validate_date(value, name):
    """Dates are accepted as YYYY-MM-DD only"""
    if not value:
        return None
    try:
        datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        raise ValidationError(f"Invalid {name} date '{value}', expected YYYY-MM-DD")
    return value


def validate_max_id(value):
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid maxId '{value}', expected an integer")


class RouteLogManager:
    """
    Analyzes the route audit log against the RBAC graph
    """

    def __init__(self, conn, store, resolver):
        self.conn = conn
        self.store = store
        self.resolver = resolver

    def _filters(self, role, date_from, date_to, max_id):
        return {
            'role': role,
            'date_from': validate_date(date_from, 'from'),
            'date_to': validate_date(date_to, 'to'),
            'max_id': validate_max_id(max_id),
        }

    def export_routes(self, role, date_from=None, date_to=None, max_id=None,
                      ignore_role_filter=False):
        """
        Check every distinct logged route against the role's permissions.
        With ignore_role_filter, routes logged for any role are checked.
        """
        if not role:
            raise ValidationError("Role parameter is required")

        filters = self._filters(
            None if ignore_role_filter else role, date_from, date_to, max_id
        )
        report = RouteReport(role=role, ignore_role_filter=ignore_role_filter)

        for route, error_codes in get_route_error_codes(self.conn, filters):
            access = self.resolver.resolve_access(role, route)
            report.routes.append(RouteAccess(route, access, error_codes))
            if not access.has_access:
                report.unauthorized.append(route)

        if report.routes:
            report.new_routes = self.find_new_routes(r.route for r in report.routes)

        logger.info(
            "Checked %d routes for role '%s': %d unauthorized, %d new",
            report.total, role, len(report.unauthorized), len(report.new_routes)
        )
        return report

    def find_new_routes(self, routes):
        """Routes that have no permission item yet, sorted"""
        routes = set(routes)
        existing = self.store.get_permission_names(routes)
        return sorted(routes - existing)

    def create_permissions(self, routes):
        """
        Create one bare permission per route. Callers confirm beforehand.
        Returns the created permission names.
        """
        created = []
        with transaction(self.conn):
            for route in sorted(set(routes)):
                self.store.create_permission(
                    route, ROUTE_PERMISSION_DESCRIPTION.format(route=route)
                )
                created.append(route)
        self.resolver.refresh()
        return created

    def get_statistics(self, role=None, date_from=None, date_to=None, max_id=None):
        """
        Request and error counts per (route, role) with overall totals
        """
        filters = self._filters(role, date_from, date_to, max_id)
        report = RouteStatsReport()

        for row in get_route_statistics(self.conn, filters):
            report.stats.append(RouteStat(
                route=row['route'],
                role=row['role'],
                count=row['count'],
                error_count=row['error_count'] or 0,
            ))

        report.total_requests = sum(stat.count for stat in report.stats)
        report.total_errors = sum(stat.error_count for stat in report.stats)
        if report.total_requests > 0:
            report.error_rate = round(report.total_errors / report.total_requests * 100, 2)
        return report

    def clear_log(self):
        """
        Delete all route log records and reset the id counter.
        Returns the number of records present before deletion.
        """
        with transaction(self.conn):
            count = count_route_logs(self.conn)
            delete_route_logs(self.conn)
        logger.info("Route log cleared, %d records deleted", count)
        return count
