"""
Route audit log for RBAC tools
Records route accesses and provides filtered, grouped queries over them
"""
import json
import logging

from config import ROUTE_LOG_TABLE, DAY_START, DAY_END

logger = logging.getLogger(__name__)


def log_route_access(conn, user_id, role, route, method, params=None,
                     error_code=None, created_at=None):
    """
    Append one route access to the audit log
    Returns the new row id
    """
    columns = ['user_id', 'role', 'route', 'method', 'params', 'error_code']
    values = [
        user_id, role, route, method,
        json.dumps(params) if params is not None else None,
        error_code,
    ]
    if created_at is not None:
        columns.append('created_at')
        values.append(created_at)

    cursor = conn.execute(f"""
        INSERT INTO {ROUTE_LOG_TABLE} ({', '.join(columns)})
        VALUES ({', '.join('?' * len(columns))})
    """, values)
    conn.commit()
    return cursor.lastrowid


def _apply_filters(query, params, filters):
    """Append WHERE conditions for role, date range and id ceiling"""
    if filters.get('role'):
        query += " AND role = ?"
        params.append(filters['role'])

    if filters.get('date_from'):
        query += " AND created_at >= ?"
        params.append(f"{filters['date_from']} {DAY_START}")

    if filters.get('date_to'):
        query += " AND created_at <= ?"
        params.append(f"{filters['date_to']} {DAY_END}")

    if filters.get('max_id') is not None:
        query += " AND id <= ?"
        params.append(filters['max_id'])

    return query


def get_route_error_codes(conn, filters=None):
    """
    Distinct logged routes with the distinct error codes seen for each
    Returns list of (route, [error codes]) sorted by route
    """
    if filters is None:
        filters = {}

    query = f"""
        SELECT route, GROUP_CONCAT(DISTINCT error_code) AS error_codes
        FROM {ROUTE_LOG_TABLE}
        WHERE route IS NOT NULL
    """
    params = []
    query = _apply_filters(query, params, filters)
    query += " GROUP BY route ORDER BY route"

    routes = []
    for row in conn.execute(query, params).fetchall():
        codes = []
        if row['error_codes']:
            codes = sorted(
                {int(code) for code in str(row['error_codes']).split(',') if code.strip()}
            )
        routes.append((row['route'], codes))
    return routes


def get_route_statistics(conn, filters=None):
    """
    Request and error counts grouped by route and role, busiest first
    """
    if filters is None:
        filters = {}

    query = f"""
        SELECT route, role, COUNT(*) AS count,
               SUM(CASE WHEN error_code IS NOT NULL THEN 1 ELSE 0 END) AS error_count
        FROM {ROUTE_LOG_TABLE}
        WHERE route IS NOT NULL
    """
    params = []
    query = _apply_filters(query, params, filters)
    query += " GROUP BY route, role ORDER BY count DESC, route, role"

    return conn.execute(query, params).fetchall()


def count_route_logs(conn):
    return conn.execute(f"SELECT COUNT(*) FROM {ROUTE_LOG_TABLE}").fetchone()[0]


def delete_route_logs(conn):
    """Delete every log row and reset the id counter"""
    deleted = conn.execute(f"DELETE FROM {ROUTE_LOG_TABLE}").rowcount
    conn.execute("DELETE FROM sqlite_sequence WHERE name = ?", (ROUTE_LOG_TABLE,))
    logger.info("Deleted %d route log records", deleted)
    return deleted
