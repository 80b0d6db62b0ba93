"""
Tests for the RBAC graph store queries
"""
import sqlite3

import pytest


@pytest.fixture
def hierarchy(builder):
    (builder.role('admin').role('editor')
        .permission('/post/*').permission('/post/update').permission('managePosts')
        .child('admin', 'editor', '/post/*')
        .child('editor', 'managePosts')
        .child('managePosts', '/post/update'))
    return builder


def test_find_role(store, hierarchy):
    assert store.find_role('editor')['name'] == 'editor'
    assert store.find_role('managePosts') is None
    assert store.find_role('ghost') is None


def test_descendant_permissions_are_transitive(store, hierarchy):
    assert set(store.get_descendant_permissions('admin')) == {
        '/post/*', 'managePosts', '/post/update'
    }
    assert set(store.get_descendant_permissions('editor')) == {'managePosts', '/post/update'}


def test_immediate_children_keep_edge_order(store, hierarchy):
    assert list(store.get_immediate_children('admin')) == ['editor', '/post/*']


def test_parent_permissions_skip_roles(store, hierarchy):
    hierarchy.child('admin', '/post/update')
    assert store.get_parent_permissions('/post/update') == ['managePosts']


def test_create_permission_rejects_existing_name(conn, store, hierarchy):
    with pytest.raises(sqlite3.IntegrityError):
        store.create_permission('editor', 'Route: editor')


def test_permission_names_restricted(store, hierarchy):
    assert store.get_permission_names(['/post/*', '/missing', 'editor']) == {'/post/*'}
