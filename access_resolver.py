"""
Access Resolver for RBAC tools
Decides whether a role can reach a route and explains how
"""
import logging
from dataclasses import dataclass, field

from config import WILDCARD_SUFFIX, GLOBAL_WILDCARD

logger = logging.getLogger(__name__)


@dataclass
class AccessInfo:
    """Outcome of a route access check for one role"""
    has_access: bool = False
    inherited_from: str = None
    wildcard: str = None
    permission_chain: list = field(default_factory=list)

    def describe(self, route):
        """
        Annotations shown next to an authorized route.
        The route itself is dropped from the head of the permission chain.
        """
        notes = []
        if self.inherited_from:
            notes.append(f"Inherited from: {self.inherited_from}")
        if self.wildcard:
            notes.append(f"Wildcard: {self.wildcard}")

        chain = list(self.permission_chain)
        if chain and chain[0] == route:
            chain = chain[1:]
        if chain:
            notes.append("Permission: " + " -> ".join(chain))
        return notes

    def to_dict(self):
        return {
            'hasAccess': self.has_access,
            'inheritedFrom': self.inherited_from,
            'wildcard': self.wildcard,
            'permission': list(self.permission_chain),
        }


def wildcard_candidates(route):
    """
    Prefix wildcards for a route, innermost first.
    'a/b/c' gives 'a/b/*' then 'a/*'; a leading '/' is never stripped.
    """
    candidates = []
    current = route
    pos = current.rfind('/')
    while pos > 0:
        current = current[:pos]
        candidates.append(current + WILDCARD_SUFFIX)
        pos = current.rfind('/')
    return candidates


class AccessResolver:
    """
    Resolves route access against the RBAC hierarchy.
    The graph is loaded once and reused until refresh() is called.
    """

    def __init__(self, store):
        self.store = store
        self._graph = None

    @property
    def graph(self):
        if self._graph is None:
            self._graph = self.store.load_graph()
        return self._graph

    def refresh(self):
        """Drop the cached graph so the next check reloads it"""
        self._graph = None

    def resolve_access(self, role, route):
        """
        Check if the role has access to the route through an exact
        permission, a prefix wildcard, or the global wildcard
        """
        if not self.graph.is_role(role):
            logger.debug("Role '%s' not found, treating '%s' as no access", role, route)
            return AccessInfo()

        all_permissions = self.graph.get_descendant_permissions(role)
        direct_permissions = {
            name: item
            for name, item in self.graph.get_immediate_children(role).items()
            if self.graph.is_permission(name)
        }

        if route in all_permissions:
            return self._grant(role, route, None, direct_permissions)

        for pattern in wildcard_candidates(route):
            if pattern in all_permissions:
                return self._grant(role, pattern, pattern, direct_permissions)

        if GLOBAL_WILDCARD in all_permissions:
            return self._grant(role, GLOBAL_WILDCARD, GLOBAL_WILDCARD, direct_permissions)

        return AccessInfo()

    def _grant(self, role, permission, wildcard, direct_permissions):
        if permission in direct_permissions:
            inherited_from = None
        else:
            inherited_from = self.find_parent_with_permission(role, permission)
        return AccessInfo(
            has_access=True,
            inherited_from=inherited_from,
            wildcard=wildcard,
            permission_chain=self.build_permission_chain(permission),
        )

    def find_parent_with_permission(self, role, permission):
        """
        First immediate child role whose own permission set contains
        the permission, or None
        """
        for name in self.graph.get_immediate_children(role):
            if not self.graph.is_role(name):
                continue
            if permission in self.graph.get_descendant_permissions(name):
                return name
        return None

    def build_permission_chain(self, permission_name, visited=None):
        """
        Permission followed by its permission-type parents, depth first.
        Each name appears at most once.
        """
        if visited is None:
            visited = set()
        if permission_name in visited:
            return []
        visited.add(permission_name)

        chain = [permission_name]
        for parent in self.graph.get_parent_permissions(permission_name):
            chain.extend(self.build_permission_chain(parent, visited))
        return chain
