"""
Shared fixtures: an in-memory RBAC database and helpers to populate it
"""
import pytest

from access_resolver import AccessResolver
from audit import log_route_access
from config import ROLE_TYPE, PERMISSION_TYPE
from database import get_db_connection, init_database
from rbac_store import RbacStore


class GraphBuilder:
    """Populates the RBAC tables for a test"""

    def __init__(self, conn, store):
        self.conn = conn
        self.store = store

    def role(self, name, description=None, rule_name=None, data=None):
        return self._item(name, ROLE_TYPE, description, rule_name, data)

    def permission(self, name, description=None, rule_name=None, data=None):
        return self._item(name, PERMISSION_TYPE, description, rule_name, data)

    def rule(self, name, data=b''):
        self.store.insert_rule({'name': name, 'data': data, 'created_at': 1, 'updated_at': 1})
        self.conn.commit()
        return self

    def child(self, parent, *children):
        for child in children:
            self.store.add_child(parent, child)
        self.conn.commit()
        return self

    def _item(self, name, item_type, description, rule_name, data):
        self.store.insert_item({
            'name': name,
            'type': item_type,
            'description': description,
            'rule_name': rule_name,
            'data': data,
            'created_at': 1,
            'updated_at': 1,
        })
        self.conn.commit()
        return self


def make_connection(path=":memory:"):
    conn = get_db_connection(path)
    init_database(conn)
    return conn


@pytest.fixture
def conn():
    conn = make_connection()
    yield conn
    conn.close()


@pytest.fixture
def store(conn):
    return RbacStore(conn)


@pytest.fixture
def builder(conn, store):
    return GraphBuilder(conn, store)


@pytest.fixture
def resolver(store):
    return AccessResolver(store)


@pytest.fixture
def log_route(conn):
    """Append a route log row; role defaults to 'editor'"""
    def _log(route, role='editor', error_code=None, created_at=None, user_id=1, method='GET'):
        return log_route_access(
            conn, user_id, role, route, method,
            error_code=error_code, created_at=created_at
        )
    return _log


@pytest.fixture
def db_file(tmp_path):
    """An on-disk database shared between the test and console invocations"""
    path = str(tmp_path / "rbac.db")
    conn = make_connection(path)
    yield path, conn
    conn.close()


@pytest.fixture
def second_database():
    """A separate in-memory database, e.g. the target of an import"""
    connections = []

    def _open():
        conn = make_connection()
        connections.append(conn)
        store = RbacStore(conn)
        return conn, store, GraphBuilder(conn, store)

    yield _open
    for conn in connections:
        conn.close()
