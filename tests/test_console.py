"""
Tests for the console commands
"""
import os

import pytest
from typer.testing import CliRunner

from audit import log_route_access
from main import app
from rbac_store import RbacStore

runner = CliRunner()


@pytest.fixture
def database(db_file):
    """On-disk database with a small hierarchy and three logged requests"""
    path, conn = db_file
    store = RbacStore(conn)
    for name, item_type in (('editor', 1), ('/post/index', 2), ('/post/*', 2)):
        store.insert_item({'name': name, 'type': item_type, 'created_at': 1, 'updated_at': 1})
    store.add_child('editor', '/post/*')
    conn.commit()

    log_route_access(conn, 1, 'editor', '/post/index', 'GET')
    log_route_access(conn, 1, 'editor', '/post/index', 'GET', error_code=404)
    log_route_access(conn, 2, 'editor', '/site/report', 'POST')
    return path, conn


def invoke(path, *args, **kwargs):
    return runner.invoke(app, ['--db', path, *args], **kwargs)


def test_route_log_help(database):
    path, _ = database
    result = invoke(path, 'route-log')
    assert result.exit_code == 0
    assert 'Route Log Management' in result.output


def test_route_log_export_requires_role(database):
    path, _ = database
    result = invoke(path, 'route-log', 'export')
    assert result.exit_code == 65
    assert 'Role parameter is required' in result.output


def test_route_log_export(database):
    path, _ = database
    result = invoke(path, 'route-log', 'export', '--role', 'editor')
    assert result.exit_code == 0
    assert "'/post/index' [ERROR 404] [Wildcard: /post/*]" in result.output
    assert "'/site/report' [UNAUTHORIZED]" in result.output
    assert 'Total: 2 unique routes' in result.output
    assert 'TIP: Found 1 new route(s)' in result.output


def test_route_log_export_no_routes(database):
    path, _ = database
    result = invoke(path, 'route-log', 'export', '-r', 'viewer')
    assert result.exit_code == 0
    assert "No routes found for role 'viewer'" in result.output


def test_route_log_export_create(database):
    path, conn = database
    result = invoke(path, 'route-log', 'export', '--role', 'editor', '--create', input='y\n')
    assert result.exit_code == 0
    assert 'Added permission: /site/report' in result.output
    assert '/site/report' in RbacStore(conn).get_permission_names()


def test_route_log_stats(database):
    path, _ = database
    result = invoke(path, 'route-log', 'stats')
    assert result.exit_code == 0
    assert 'Total requests: 3, Errors: 1 (33.33%)' in result.output
    assert '/site/report' in result.output


def test_route_log_stats_max_id(database):
    path, _ = database
    result = invoke(path, 'route-log', 'stats', '--maxId', '1')
    assert 'Total requests: 1, Errors: 0 (0.0%)' in result.output


def test_route_log_clear(database):
    path, _ = database
    result = invoke(path, 'route-log', 'clear', '--force')
    assert result.exit_code == 0
    assert 'Deleted records: 3' in result.output


def test_route_log_clear_declined(database):
    path, conn = database
    result = invoke(path, 'route-log', 'clear', input='n\n')
    assert result.exit_code == 0
    assert conn.execute('SELECT COUNT(*) FROM route_log').fetchone()[0] == 3


def test_rbac_export_and_import(database, tmp_path):
    path, conn = database
    snapshot = str(tmp_path / 'data' / 'rbac.json')

    result = invoke(path, 'rbac', 'export', '--file', snapshot)
    assert result.exit_code == 0
    assert os.path.exists(snapshot)

    result = invoke(path, 'rbac', 'import', '--force', '--file', snapshot)
    assert result.exit_code == 0
    assert 'Skipped role: editor' in result.output
    assert RbacStore(conn).get_permission_names() == {'/post/index', '/post/*'}


def test_rbac_import_missing_snapshot(database, tmp_path):
    path, _ = database
    result = invoke(path, 'rbac', 'import', '--file', str(tmp_path / 'missing.json'))
    assert result.exit_code == 1
    assert 'not found' in result.output


def test_rbac_import_declined(database, tmp_path):
    path, conn = database
    snapshot = str(tmp_path / 'rbac.json')
    invoke(path, 'rbac', 'export', '--file', snapshot)
    RbacStore(conn).create_permission('/extra')
    conn.commit()

    result = invoke(path, 'rbac', 'import', '--file', snapshot, input='n\n')
    assert result.exit_code == 0
    assert '/extra' in RbacStore(conn).get_permission_names()


def test_rbac_export_unwritable(database, tmp_path):
    path, _ = database
    blocker = tmp_path / 'blocker'
    blocker.write_text('file')
    result = invoke(path, 'rbac', 'export', '--file', str(blocker / 'rbac.json'))
    assert result.exit_code == 1
    assert 'Could not write to file' in result.output


def test_route_log_zero_max_id_is_empty_result(database):
    path, _ = database
    result = invoke(path, 'route-log', 'stats', '--maxId', '0')
    assert result.exit_code == 0
    assert 'No route statistics found' in result.output

    result = invoke(path, 'route-log', 'export', '--role', 'editor', '--maxId', '0')
    assert result.exit_code == 0
    assert "No routes found for role 'editor'" in result.output


def test_rbac_import_bad_payload(database, tmp_path):
    path, conn = database
    snapshot = tmp_path / 'rbac.json'
    snapshot.write_text(
        '{"rules": [{"name": "isAuthor", "data": "O:12:\\"AuthorRule\\""}],'
        ' "items": [], "children": []}'
    )

    result = invoke(path, 'rbac', 'import', '--force', '--file', str(snapshot))

    assert result.exit_code == 1
    assert 'not valid base64' in result.output
    assert 'Clearing existing RBAC data' not in result.output
    assert RbacStore(conn).get_permission_names() == {'/post/index', '/post/*'}
