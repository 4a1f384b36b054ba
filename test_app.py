#!/usr/bin/env python3
"""
Tests for the application factory and the HTTP API.
"""

import json
import logging
import os
from unittest.mock import patch

from app_factory import create_app
from config import TestingConfig, get_config
from models import Spot
from utils.background_tasks import TaskManager
from utils.logging_config import setup_logging

SOLAR = {'sfi': 150, 'ssn': 100, 'kIndex': 2, 'source': 'NOAA SWPC', 'timestamp': ''}


def _batch():
    return [
        Spot(spotter='W1AW', call='JA1XYZ', freq='14.074', comment='FT8 FN42<>PM95', source='HamQTH'),
        Spot(spotter='DL1ABC', call='VK2ABC', freq='7.030', comment='CW', source='HamQTH'),
    ]


def test_app_creation():
    """The application can be created from a config name."""
    app = create_app('testing')
    assert app.config['TESTING'] is True
    assert app.config['TASK_MANAGER'] is None
    assert 'cache_manager' in app.extensions
    app.extensions['cache_manager'].shutdown()


def test_config_loading():
    assert get_config('testing') is TestingConfig
    assert get_config('nope').DEBUG is False
    assert TestingConfig.validate() == []
    assert TestingConfig.poll_interval() == TestingConfig.SPOT_POLL_INTERVAL


def test_low_memory_limits():
    class LowMemory(TestingConfig):
        LOW_MEMORY_MODE = True

    assert LowMemory.view_limits() == (50, 25)
    assert LowMemory.poll_interval() == 60


def test_logging_setup():
    with patch.dict(os.environ, {'FLASK_ENV': 'testing'}):
        logger = setup_logging('test', level='WARNING')
    assert len(logger.handlers) == 1
    assert logger.name == 'test'
    assert logger.level == logging.WARNING


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'
    assert response.get_json()['tasks'] == {}


def test_health_reports_tasks(client, app):
    task_manager = TaskManager()
    task_manager.add_task('poll_spots', lambda: None, interval_seconds=30)
    task_manager.run_now('poll_spots')
    app.config['TASK_MANAGER'] = task_manager

    data = client.get('/api/health').get_json()

    assert data['polling'] is False
    assert data['tasks']['poll_spots']['runs'] == 1
    assert data['tasks']['poll_spots']['interval'] == 30


def test_sources(client):
    data = client.get('/api/dxcluster/sources').get_json()
    assert [source['id'] for source in data['sources']][0] == 'auto'
    assert len(data['sources']) == 6


def test_spots_polls_and_returns_list(client, service):
    with patch.object(service.spots_provider, 'fetch_spots', return_value=(_batch(), 'hamqth')) as fetch:
        response = client.get('/api/dxcluster/spots?source=hamqth')

    assert response.status_code == 200
    fetch.assert_called_once_with('hamqth')
    spots = response.get_json()
    assert {spot['call'] for spot in spots} == {'JA1XYZ', 'VK2ABC'}
    assert spots[0]['timestamp'] > 0


def test_spots_with_filter_parameter(client, service):
    filters = json.dumps({'bands': ['40m']})
    with patch.object(service.spots_provider, 'fetch_spots', return_value=(_batch(), 'hamqth')):
        response = client.get('/api/dxcluster/spots', query_string={'filters': filters})

    assert [spot['call'] for spot in response.get_json()] == ['VK2ABC']


def test_spots_all_sources_empty(client, service):
    with patch.object(service.spots_provider, 'fetch_spots', return_value=([], None)):
        response = client.get('/api/dxcluster/spots')
    assert response.status_code == 200
    assert response.get_json() == []


def test_spots_unknown_source(client):
    response = client.get('/api/dxcluster/spots?source=telnet')
    assert response.status_code == 400
    assert 'telnet' in response.get_json()['error']


def test_spots_bad_filter_json(client):
    response = client.get('/api/dxcluster/spots', query_string={'filters': '{oops'})
    assert response.status_code == 400


def test_filters_parameter_must_be_an_object(client, service):
    with patch.object(service.spots_provider, 'fetch_spots', return_value=([], None)) as fetch:
        for raw in ('[1]', '5', '"x"'):
            assert client.get('/api/dxcluster/paths', query_string={'filters': raw}).status_code == 400
            response = client.get('/api/dxcluster/spots', query_string={'filters': raw})
            assert response.status_code == 400
            assert 'JSON object' in response.get_json()['error']
    fetch.assert_not_called()


def test_status_loading_flag(client, service):
    assert client.get('/api/dxcluster/status').get_json()['loading'] is True

    with patch.object(service.spots_provider, 'fetch_spots', return_value=(_batch(), 'hamqth')):
        client.get('/api/dxcluster/spots')

    status = client.get('/api/dxcluster/status').get_json()
    assert status['loading'] is False
    assert status['total_spots'] == 2
    assert status['last_source'] == 'hamqth'
    assert status['retention_minutes'] == 30


def test_paths(client, service):
    service.store.merge(_batch(), service.store.next_sequence())

    paths = client.get('/api/dxcluster/paths').get_json()

    assert {entry['dxCall'] for entry in paths} == {'JA1XYZ', 'VK2ABC'}
    assert all(entry['path'] for entry in paths)


def test_paths_bad_filter_json(client):
    response = client.get('/api/dxcluster/paths', query_string={'filters': '[1,'})
    assert response.status_code == 400


def test_filters_round_trip(client, service):
    assert client.get('/api/dxcluster/filters').get_json()['spotRetentionMinutes'] == 30

    response = client.post('/api/dxcluster/filters',
                           json={'bands': ['20m'], 'spotRetentionMinutes': 10})
    assert response.status_code == 200
    assert response.get_json()['filters']['bands'] == ['20m']

    saved = client.get('/api/dxcluster/filters').get_json()
    assert saved['bands'] == ['20m']
    assert saved['spotRetentionMinutes'] == 10
    assert service.store.retention_minutes == 10


def test_filters_rejects_non_object(client):
    response = client.post('/api/dxcluster/filters', json=['20m'])
    assert response.status_code == 400


def test_source_selection(client):
    assert client.get('/api/dxcluster/source').get_json()['source'] == 'auto'
    assert client.post('/api/dxcluster/source', json={'source': 'pota'}).status_code == 200
    assert client.get('/api/dxcluster/source').get_json()['source'] == 'pota'
    assert client.post('/api/dxcluster/source', json={'source': 'telnet'}).status_code == 400
    assert client.post('/api/dxcluster/source', json=['pota']).status_code == 400


def test_propagation(client, service):
    with patch.object(service.solar_provider, 'get_solar_indices', return_value=dict(SOLAR)):
        response = client.get('/api/propagation?deLat=40&deLon=-75&dxLat=51.5&dxLon=0')

    assert response.status_code == 200
    data = response.get_json()
    assert len(data['currentBands']) == 10
    assert len(data['hourlyPredictions']['20m']) == 24
    assert data['solarData']['sfi'] == 150


def test_propagation_bad_coordinates(client):
    assert client.get('/api/propagation?deLat=95&deLon=0&dxLat=0&dxLon=0').status_code == 400
    assert client.get('/api/propagation?deLat=40&deLon=-75').status_code == 400


def test_solar_indices(client, service):
    history = {'sfi': {'current': 150, 'history': []}}
    with patch.object(service.solar_provider, 'get_solar_history', return_value=history):
        response = client.get('/api/solar-indices')
    assert response.get_json() == history


def test_internal_errors_are_json(client, service):
    with patch.object(service, 'path_view', side_effect=RuntimeError('boom')):
        response = client.get('/api/dxcluster/paths')
    assert response.status_code == 500
    assert response.get_json() == {'error': 'Internal server error'}


def test_cache_stats_and_clear(client, app):
    app.extensions['cache_manager'].set('solar', 'indices', dict(SOLAR))

    stats = client.get('/api/cache/stats').get_json()
    assert stats['caches']['solar']['entries'] == 1

    response = client.post('/api/cache/clear', json={'cache_type': 'solar'})
    assert response.get_json()['removed'] == 1
    assert client.post('/api/cache/clear', json={'cache_type': 'nope'}).status_code == 400
    assert client.post('/api/cache/clear').status_code == 200
