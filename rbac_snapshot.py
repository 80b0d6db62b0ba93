"""
RBAC snapshot export and import
Moves the authorization graph between environments as a JSON file
"""
import base64
import binascii
import json
import logging
import os

from config import ROLE_TYPE, PERMISSION_TYPE, SNAPSHOT_PATH
from database import transaction
from exceptions import NotFoundError, SnapshotIOError, DuplicateKeyError

logger = logging.getLogger(__name__)

SNAPSHOT_SECTIONS = ('rules', 'items', 'children')

# Keys every entry of a section must carry
REQUIRED_KEYS = {
    'rules': ('name',),
    'items': ('name', 'type'),
    'children': ('parent', 'child'),
}


def encode_data(value):
    """Opaque payloads are stored as base64 text in the snapshot"""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.encode('utf-8')
    return base64.b64encode(value).decode('ascii')


def decode_data(value):
    if value is None:
        return None
    return base64.b64decode(value, validate=True)


class RbacSnapshotManager:
    """
    Exports the whole RBAC graph to a snapshot file and restores it
    with merge semantics: roles are preserved, everything else replaced
    """

    def __init__(self, conn, store, path=None):
        self.conn = conn
        self.store = store
        self.path = path or SNAPSHOT_PATH

    def build_snapshot(self):
        """Collect rules, items and hierarchy in export order"""
        rules = self.store.get_rules()
        for rule in rules:
            rule['data'] = encode_data(rule['data'])

        items = self.store.get_items()
        for item in items:
            item['data'] = encode_data(item['data'])

        return {
            'rules': rules,
            'items': items,
            'children': self.store.get_edges(),
        }

    def export_snapshot(self):
        """
        Write the snapshot file, replacing any previous export.
        Returns a summary of exported counts.
        """
        snapshot = self.build_snapshot()

        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as handle:
                json.dump(snapshot, handle, indent=4, ensure_ascii=False)
                handle.write('\n')
        except OSError as e:
            raise SnapshotIOError(f"Could not write to file: {self.path} ({e})", self.path) from e

        summary = {
            'rules': len(snapshot['rules']),
            'roles': sum(1 for item in snapshot['items'] if item['type'] == ROLE_TYPE),
            'permissions': sum(1 for item in snapshot['items'] if item['type'] == PERMISSION_TYPE),
            'children': len(snapshot['children']),
            'path': self.path,
        }
        logger.info("Exported RBAC snapshot to %s: %s", self.path, summary)
        return summary

    def load_snapshot(self):
        """Read and validate the snapshot file"""
        if not os.path.exists(self.path):
            raise NotFoundError(f"RBAC export file not found: {self.path}")

        try:
            with open(self.path, encoding='utf-8') as handle:
                snapshot = json.load(handle)
        except (OSError, ValueError) as e:
            raise SnapshotIOError(f"Could not read file: {self.path} ({e})", self.path) from e

        self.validate_snapshot(snapshot)
        return snapshot

    def validate_snapshot(self, snapshot):
        """
        Check sections, required keys, item kinds and payload encoding,
        so a bad file is rejected before anything is deleted
        """
        if not isinstance(snapshot, dict):
            raise SnapshotIOError(f"Malformed snapshot: {self.path}", self.path)

        for section in SNAPSHOT_SECTIONS:
            entries = snapshot.get(section)
            if not isinstance(entries, list):
                raise SnapshotIOError(
                    f"Malformed snapshot: missing '{section}' in {self.path}", self.path
                )
            for position, entry in enumerate(entries):
                where = f"{section}[{position}]"
                if not isinstance(entry, dict):
                    raise SnapshotIOError(f"Malformed snapshot: {where} is not an object", self.path)
                missing = [key for key in REQUIRED_KEYS[section] if entry.get(key) is None]
                if missing:
                    raise SnapshotIOError(
                        f"Malformed snapshot: {where} is missing {', '.join(missing)}", self.path
                    )
                if section == 'items' and entry['type'] not in (ROLE_TYPE, PERMISSION_TYPE):
                    raise SnapshotIOError(
                        f"Malformed snapshot: {where} has unknown type {entry['type']!r}", self.path
                    )
                if section != 'children':
                    try:
                        decode_data(entry.get('data'))
                    except (binascii.Error, TypeError):
                        raise SnapshotIOError(
                            f"Malformed snapshot: {where} data is not valid base64", self.path
                        )

    def import_snapshot(self, snapshot=None):
        """
        Replace permissions, rules and hierarchy with the snapshot contents.
        Existing roles are kept; snapshot roles are only added when missing.
        Storage errors roll the import back and propagate.
        """
        if snapshot is None:
            snapshot = self.load_snapshot()
        else:
            self.validate_snapshot(snapshot)

        summary = {
            'rules': 0,
            'roles_added': 0,
            'roles_skipped': [],
            'permissions': 0,
            'children': 0,
        }

        with transaction(self.conn):
            # Clear in reverse dependency order
            deleted_edges = self.store.delete_edges()
            deleted_rules = self.store.delete_rules()
            deleted_permissions = self.store.delete_permissions()
            logger.info(
                "Cleared %d children, %d rules, %d permissions",
                deleted_edges, deleted_rules, deleted_permissions
            )

            for rule in snapshot['rules']:
                self.store.insert_rule(dict(rule, data=decode_data(rule.get('data'))))
                summary['rules'] += 1
                logger.debug("Added rule: %s", rule['name'])

            for item in snapshot['items']:
                item = dict(item, data=decode_data(item.get('data')))
                if item['type'] == ROLE_TYPE:
                    try:
                        self.store.insert_item(item)
                    except DuplicateKeyError:
                        logger.warning("Skipped role: %s (already exists)", item['name'])
                        summary['roles_skipped'].append(item['name'])
                        continue
                    summary['roles_added'] += 1
                    logger.debug("Added role: %s", item['name'])
                else:
                    self.store.insert_item(item)
                    summary['permissions'] += 1
                    logger.debug("Added permission: %s", item['name'])

            for child in snapshot['children']:
                self.store.insert_edge(child)
                summary['children'] += 1
                logger.debug("Added child: %s to parent: %s", child['child'], child['parent'])

        logger.info("Imported RBAC snapshot from %s", self.path)
        return summary
