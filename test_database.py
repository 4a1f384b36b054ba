"""
Tests for the preferences database.
"""

import pytest

from database import Database, FILTERS_KEY, init_database


@pytest.fixture
def db():
    database = Database(':memory:')
    yield database
    database.close()


def test_store_and_get_preference(db):
    assert db.store_user_preference('dx_cluster_source', 'hamqth')
    assert db.get_user_preference('dx_cluster_source') == 'hamqth'
    assert db.store_user_preference('dx_cluster_source', 'pota')
    assert db.get_user_preference('dx_cluster_source') == 'pota'


def test_missing_preference(db):
    assert db.get_user_preference('nope') is None
    assert db.get_json_preference('nope') is None


def test_json_preference(db):
    db.store_json_preference(FILTERS_KEY, {'bands': ['20m'], 'spotRetentionMinutes': 15})
    assert db.get_json_preference(FILTERS_KEY) == {'bands': ['20m'], 'spotRetentionMinutes': 15}


def test_malformed_json_reads_as_missing(db):
    db.store_user_preference(FILTERS_KEY, '{broken')
    assert db.get_json_preference(FILTERS_KEY) is None


def test_delete_preference(db):
    db.store_user_preference('key', 'value')
    assert db.delete_user_preference('key') is True
    assert db.delete_user_preference('key') is False


def test_file_database(tmp_path):
    path = str(tmp_path / 'prefs' / 'test.db')
    Database(path).store_user_preference('key', 'value')

    reopened = Database(path)
    assert reopened.get_user_preference('key') == 'value'
    assert reopened.get_database_stats()['total_preferences'] == 1


def test_init_database():
    database = init_database(':memory:')
    assert database.store_user_preference('key', 'value') is True
    assert database.get_user_preference('key') == 'value'
    database.close()
