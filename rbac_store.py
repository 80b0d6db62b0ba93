"""
RBAC graph store
Reads and writes rules, roles, permissions and hierarchy edges
"""
import logging
import time
from collections import defaultdict

from config import (
    ROLE_TYPE, PERMISSION_TYPE, RULE_TABLE, ITEM_TABLE, ITEM_CHILD_TABLE
)

logger = logging.getLogger(__name__)

RULE_COLUMNS = ('name', 'data', 'created_at', 'updated_at')
ITEM_COLUMNS = (
    'name', 'type', 'description', 'rule_name', 'data', 'created_at', 'updated_at'
)
EDGE_COLUMNS = ('parent', 'child')


class RbacGraph:
    """
    In-memory adjacency view of the hierarchy, built once from the store.
    Children and parents keep the store's edge order.
    """

    def __init__(self, items, edges):
        self.items = items
        self._children = defaultdict(list)
        self._parents = defaultdict(list)
        for parent, child in edges:
            self._children[parent].append(child)
            self._parents[child].append(parent)

    def get_item(self, name):
        return self.items.get(name)

    def is_role(self, name):
        item = self.items.get(name)
        return item is not None and item['type'] == ROLE_TYPE

    def is_permission(self, name):
        item = self.items.get(name)
        return item is not None and item['type'] == PERMISSION_TYPE

    def get_immediate_children(self, name):
        """Items one hop below the given item, keyed by name"""
        return {
            child: self.items[child]
            for child in self._children.get(name, [])
            if child in self.items
        }

    def get_descendant_permissions(self, name):
        """
        All permissions reachable from the given item through any number
        of hierarchy edges, keyed by name
        """
        permissions = {}
        seen = {name}
        stack = list(reversed(self._children.get(name, [])))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            if self.is_permission(current):
                permissions[current] = self.items[current]
            stack.extend(reversed(self._children.get(current, [])))
        return permissions

    def get_parent_permissions(self, name):
        """Parents of the given item that are themselves permissions"""
        return [
            parent for parent in self._parents.get(name, [])
            if self.is_permission(parent)
        ]


class RbacStore:
    """
    Query interface over the RBAC tables of one database connection
    """

    def __init__(self, conn):
        self.conn = conn

    def find_role(self, name):
        """Return the role item with the given name, or None"""
        cursor = self.conn.execute(f"""
            SELECT * FROM {ITEM_TABLE} WHERE name = ? AND type = ?
        """, (name, ROLE_TYPE))
        row = cursor.fetchone()
        return dict(row) if row else None

    def load_graph(self):
        """Fetch every item and edge into an RbacGraph"""
        cursor = self.conn.execute(f"""
            SELECT name, type, description, rule_name FROM {ITEM_TABLE}
            ORDER BY rowid
        """)
        items = {row['name']: dict(row) for row in cursor.fetchall()}

        cursor = self.conn.execute(f"""
            SELECT parent, child FROM {ITEM_CHILD_TABLE} ORDER BY rowid
        """)
        edges = [(row['parent'], row['child']) for row in cursor.fetchall()]

        logger.debug("Loaded RBAC graph: %d items, %d edges", len(items), len(edges))
        return RbacGraph(items, edges)

    def get_descendant_permissions(self, role_name):
        return self.load_graph().get_descendant_permissions(role_name)

    def get_immediate_children(self, item_name):
        return self.load_graph().get_immediate_children(item_name)

    def get_parent_permissions(self, permission_name):
        return self.load_graph().get_parent_permissions(permission_name)

    def get_permission_names(self, names=None):
        """
        Names of existing permissions, optionally restricted to the given names
        """
        cursor = self.conn.execute(f"""
            SELECT name FROM {ITEM_TABLE} WHERE type = ?
        """, (PERMISSION_TYPE,))
        existing = {row['name'] for row in cursor.fetchall()}
        if names is not None:
            existing &= set(names)
        return existing

    def create_permission(self, name, description=None):
        """
        Insert a bare permission item, not linked to any role.
        Raises sqlite3.IntegrityError if an item with this name exists.
        """
        now = int(time.time())
        item = {
            'name': name,
            'type': PERMISSION_TYPE,
            'description': description,
            'rule_name': None,
            'data': None,
            'created_at': now,
            'updated_at': now,
        }
        self.insert_item(item)
        logger.info("Created permission '%s'", name)
        return item

    # Bulk access used by snapshot export/import

    def get_rules(self):
        cursor = self.conn.execute(f"""
            SELECT {', '.join(RULE_COLUMNS)} FROM {RULE_TABLE} ORDER BY name
        """)
        return [dict(row) for row in cursor.fetchall()]

    def get_items(self):
        cursor = self.conn.execute(f"""
            SELECT {', '.join(ITEM_COLUMNS)} FROM {ITEM_TABLE} ORDER BY type, name
        """)
        return [dict(row) for row in cursor.fetchall()]

    def get_edges(self):
        cursor = self.conn.execute(f"""
            SELECT parent, child FROM {ITEM_CHILD_TABLE} ORDER BY parent, child
        """)
        return [dict(row) for row in cursor.fetchall()]

    def delete_edges(self):
        return self.conn.execute(f"DELETE FROM {ITEM_CHILD_TABLE}").rowcount

    def delete_rules(self):
        return self.conn.execute(f"DELETE FROM {RULE_TABLE}").rowcount

    def delete_permissions(self):
        return self.conn.execute(f"""
            DELETE FROM {ITEM_TABLE} WHERE type = ?
        """, (PERMISSION_TYPE,)).rowcount

    def insert_rule(self, rule):
        self._insert(RULE_TABLE, RULE_COLUMNS, rule)

    def insert_item(self, item):
        self._insert(ITEM_TABLE, ITEM_COLUMNS, item)

    def insert_edge(self, edge):
        self._insert(ITEM_CHILD_TABLE, EDGE_COLUMNS, edge)

    def add_child(self, parent, child):
        self.insert_edge({'parent': parent, 'child': child})

    def _insert(self, table, columns, values):
        placeholders = ', '.join('?' * len(columns))
        self.conn.execute(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
            [values.get(column) for column in columns]
        )
