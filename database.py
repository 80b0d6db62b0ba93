"""
Database management for RBAC tools
Handles SQLite connection, schema initialization and transactions
"""
import logging
import sqlite3
from contextlib import contextmanager

from config import (
    DATABASE_NAME, RULE_TABLE, ITEM_TABLE, ITEM_CHILD_TABLE, ROUTE_LOG_TABLE
)

logger = logging.getLogger(__name__)


def get_db_connection(db_path=None):
    """Create and return database connection"""
    conn = sqlite3.connect(db_path or DATABASE_NAME)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(conn):
    """
    Run a block of statements as one logical transaction.
    Commits on success, rolls back and re-raises on any error.
    """
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def init_database(conn):
    """
    Initialize database with the RBAC graph tables and the route audit log
    """
    cursor = conn.cursor()

    # Custom rules, opaque serialized payload keyed by name
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {RULE_TABLE} (
            name TEXT PRIMARY KEY NOT NULL,
            data BLOB,
            created_at INTEGER,
            updated_at INTEGER
        )
    """)

    # Roles (type 1) and permissions (type 2)
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {ITEM_TABLE} (
            name TEXT PRIMARY KEY NOT NULL,
            type INTEGER NOT NULL,
            description TEXT,
            rule_name TEXT,
            data BLOB,
            created_at INTEGER,
            updated_at INTEGER
        )
    """)
    cursor.execute(f"""
        CREATE INDEX IF NOT EXISTS idx_{ITEM_TABLE}_type ON {ITEM_TABLE} (type)
    """)

    # Hierarchy edges: child is granted to parent
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {ITEM_CHILD_TABLE} (
            parent TEXT NOT NULL,
            child TEXT NOT NULL,
            PRIMARY KEY (parent, child),
            FOREIGN KEY (parent) REFERENCES {ITEM_TABLE} (name)
                ON DELETE CASCADE ON UPDATE CASCADE,
            FOREIGN KEY (child) REFERENCES {ITEM_TABLE} (name)
                ON DELETE CASCADE ON UPDATE CASCADE
        )
    """)

    # Route audit log, one row per observed request
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {ROUTE_LOG_TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            role TEXT NOT NULL,
            route TEXT,
            method TEXT NOT NULL,
            params TEXT,  -- GET/POST parameters in JSON format
            error_code INTEGER,  -- HTTP error code if request failed
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)
    for column in ('user_id', 'role', 'created_at'):
        cursor.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{ROUTE_LOG_TABLE}_{column}
            ON {ROUTE_LOG_TABLE} ({column})
        """)

    conn.commit()
    logger.info("RBAC database schema initialized")
