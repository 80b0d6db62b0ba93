"""
Configuration file for RBAC tools
Defines item kinds, table names, file locations and system constants
"""
import os

# Auth item kinds (stored in auth_item.type)
ROLE_TYPE = 1
PERMISSION_TYPE = 2

# RBAC graph tables
RULE_TABLE = "auth_rule"
ITEM_TABLE = "auth_item"
ITEM_CHILD_TABLE = "auth_item_child"

# Route audit log table
ROUTE_LOG_TABLE = "route_log"

# Wildcard patterns
WILDCARD_SUFFIX = "/*"
GLOBAL_WILDCARD = "/*"

# Description given to permissions created from logged routes
ROUTE_PERMISSION_DESCRIPTION = "Route: {route}"

# System settings
DATABASE_NAME = os.environ.get("RBAC_DATABASE", "rbac_system.db")
SNAPSHOT_PATH = os.environ.get(
    "RBAC_SNAPSHOT_PATH", os.path.join("migrations", "data", "rbac.json")
)
DATE_FORMAT = "%Y-%m-%d"
DAY_START = "00:00:00"
DAY_END = "23:59:59"

# Logging
LOG_LEVEL = os.environ.get("RBAC_LOG_LEVEL", "WARNING")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DATAERR = 65
