"""
Tests for the spot feed adapters and the shared HTTP helper.
"""

import threading
from unittest.mock import Mock, patch

import pytest
import requests

from config import TestingConfig
from data_sources.http_client import TimedRequest, USER_AGENT
from data_sources.spot_sources import (
    AUTO_SOURCE_ORDER, SPOT_SOURCES, DXCacheSource, DXSpiderProxySource, HamQTHSource,
    POTASource, SOTASource, build_sources, normalize_frequency, normalize_time, source_urls,
)


@pytest.mark.parametrize('value, unit, expected', [
    ('14025.0', 'khz', '14.025'),
    ('14.025', 'mhz', '14.025'),
    ('14025', 'mhz', '14.025'),
    ('7.074', 'khz', '7.074'),
    (14074000, 'khz', '14.074'),
    (50.313, 'mhz', '50.313'),
    ('472', 'khz', '0.472'),
    (472.0, 'khz', '0.472'),
])
def test_normalize_frequency(value, unit, expected):
    assert normalize_frequency(value, unit) == expected


@pytest.mark.parametrize('value', [None, '', 'abc', 0, -7.0, True])
def test_normalize_frequency_rejects_bad_values(value):
    assert normalize_frequency(value) is None


@pytest.mark.parametrize('value, expected', [
    ('2149 2025-05-27', '21:49z'),
    ('0930', '09:30z'),
    ('09:30', '09:30z'),
    ('2149Z', '21:49z'),
    ('2025-05-27T21:49:00Z', '21:49z'),
    ('2025-05-27T23:49:00+02:00', '21:49z'),
    ('2025-05-27 21:49:00', '21:49z'),
    ('21:49:00', '21:49z'),
    ('21:49:00Z', '21:49z'),
    (1700000000, '22:13z'),
    (1700000000000, '22:13z'),
    ('1700000000', '22:13z'),
])
def test_normalize_time(value, expected):
    assert normalize_time(value) == expected


@pytest.mark.parametrize('value', [None, '', '2599', 'garbage', '2025-05-27'])
def test_normalize_time_unparseable(value):
    assert normalize_time(value) == ''


def test_hamqth_parses_caret_lines():
    payload = (
        "DL1ABC^14025.0^ja1xyz^CW 599^2149 2025-05-27^^^EU^20M^Japan^339\n"
        "bad^line\n"
        "no carets here\n"
        "W1AW^7074.0^VK2ABC^FT8 -12dB^0915 2025-05-27^^^NA^40M^Australia^150\n"
    )
    spots = HamQTHSource('http://example').parse(payload)

    assert [s.call for s in spots] == ['JA1XYZ', 'VK2ABC']
    first = spots[0]
    assert first.spotter == 'DL1ABC'
    assert first.freq == '14.025'
    assert first.comment == 'CW 599'
    assert first.time == '21:49z'
    assert first.source == 'HamQTH'


def test_proxy_accepts_field_aliases():
    payload = [
        {'dxCall': 'vk2abc', 'frequency': '14.205', 'de': 'w1aw', 'info': 'SSB',
         'timestamp': '2025-05-27T12:00:00Z'},
        {'call': 'K1ABC', 'freqKhz': 7074, 'spotter': 'N0CALL', 'spotterGrid': 'fn20',
         'dxGrid': 'FN42'},
        {'freq': '14.000', 'spotter': 'W1AW'},
        {'call': 'JA1XYZ', 'freq': 'n/a'},
        'not a record',
    ]
    spots = DXSpiderProxySource('http://example').parse(payload)

    assert len(spots) == 2
    assert spots[0].call == 'VK2ABC'
    assert spots[0].freq == '14.205'
    assert spots[0].spotter == 'W1AW'
    assert spots[0].comment == 'SSB'
    assert spots[0].time == '12:00z'
    assert spots[1].freq == '7.074'
    assert spots[1].spotter_grid == 'FN20'
    assert spots[1].dx_grid == 'FN42'


def test_proxy_accepts_wrapped_payload():
    payload = {'spots': [{'call': 'K1ABC', 'freq': '14.074', 'spotter': 'W1AW'}]}
    assert len(DXSpiderProxySource('http://example').parse(payload)) == 1


def test_parse_caps_batch_size():
    payload = [{'call': f'K{i}ABC', 'freq': '14.074', 'spotter': 'W1AW'} for i in range(80)]
    assert len(DXSpiderProxySource('http://example').parse(payload)) == 50


def test_dxcache_frequency_in_khz():
    payload = [{'spotted': 'EA8XX', 'frequency': '21074', 'spotter': 'G4ABC',
                'message': 'FT8', 'when': '1230'}]
    spot = DXCacheSource('http://example').parse(payload)[0]
    assert spot.call == 'EA8XX'
    assert spot.freq == '21.074'
    assert spot.source == 'WA0O DX Cache'
    assert spot.time == '12:30z'


def test_pota_comment_carries_reference_and_mode():
    payload = [{'activator': 'K4SWL', 'frequency': '14062', 'spotter': 'W4XYZ',
                'comments': 'tnx', 'spotTime': '2025-05-27T14:05:00', 'reference': 'US-1234',
                'mode': 'CW', 'grid6': 'em85'}]
    spot = POTASource('http://example').parse(payload)[0]
    assert spot.comment == 'US-1234 CW tnx'
    assert spot.freq == '14.062'
    assert spot.dx_grid == 'EM85'
    assert spot.time == '14:05z'


def test_sota_comment_carries_summit():
    payload = [{'activatorCallsign': 'G4XYZ/P', 'frequency': '7.032', 'callsign': 'DL1ABC',
                'comments': '', 'timeStamp': '2025-05-27T10:15:00', 'associationCode': 'G',
                'summitCode': 'LD-001', 'mode': 'CW'}]
    spot = SOTASource('http://example').parse(payload)[0]
    assert spot.call == 'G4XYZ/P'
    assert spot.comment == 'G/LD-001 CW'
    assert spot.freq == '7.032'


def test_fetch_returns_empty_on_exception():
    source = DXSpiderProxySource('http://example')
    with patch.object(TimedRequest, 'get_json', side_effect=RuntimeError('boom')):
        assert source.fetch() == []


def test_fetch_returns_empty_on_network_failure():
    session = Mock()
    session.get.side_effect = requests.ConnectionError('refused')
    source = HamQTHSource('http://example', session=session)
    assert source.fetch() == []


def test_fetch_parses_response():
    response = Mock()
    response.json.return_value = [{'call': 'K1ABC', 'freq': '14.074', 'spotter': 'W1AW'}]
    session = Mock()
    session.get.return_value = response

    spots = DXSpiderProxySource('http://example', session=session).fetch()

    assert [s.call for s in spots] == ['K1ABC']
    _, kwargs = session.get.call_args
    assert kwargs['headers']['User-Agent'] == USER_AGENT


def test_sota_sends_accept_header():
    session = Mock()
    session.get.return_value.json.return_value = []
    SOTASource('http://example', session=session).fetch()
    _, kwargs = session.get.call_args
    assert kwargs['headers']['Accept'] == 'application/json'


class TestTimedRequest:

    def test_timeout_sets_last_error(self):
        session = Mock()
        session.get.side_effect = requests.Timeout()
        req = TimedRequest('http://example', timeout=3, session=session)
        assert req.get_json() is None
        assert req.last_error == 'timeout after 3s'

    def test_connect_timeout_is_capped(self):
        session = Mock()
        session.get.return_value.text = 'ok'
        TimedRequest('http://example', timeout=10, session=session).get_text()
        _, kwargs = session.get.call_args
        assert kwargs['timeout'] == (5.0, 10)

    def test_cancelled_request_is_not_sent(self):
        session = Mock()
        req = TimedRequest('http://example', session=session)
        req.cancel()
        assert req.get_text() is None
        assert req.last_error == 'cancelled'
        session.get.assert_not_called()

    def test_cancel_during_request_discards_response(self):
        event = threading.Event()
        session = Mock()

        def slow_get(*args, **kwargs):
            event.set()
            return Mock(text='late')

        session.get.side_effect = slow_get
        req = TimedRequest('http://example', cancel_event=event, session=session)
        assert req.get_text() is None
        assert req.cancelled

    def test_http_error_status(self):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError('503 Server Error')
        session = Mock()
        session.get.return_value = response
        req = TimedRequest('http://example', session=session)
        assert req.get_json() is None
        assert '503' in req.last_error

    def test_invalid_json(self):
        response = Mock()
        response.json.side_effect = ValueError('Expecting value')
        session = Mock()
        session.get.return_value = response
        req = TimedRequest('http://example', session=session)
        assert req.get_json() is None
        assert req.last_error.startswith('invalid JSON')


def test_registry_matches_auto_order():
    assert tuple(SPOT_SOURCES) == AUTO_SOURCE_ORDER


def test_build_sources_uses_configured_urls():
    sources = build_sources(TestingConfig)
    assert set(sources) == set(AUTO_SOURCE_ORDER)
    assert sources['hamqth'].url == TestingConfig.HAMQTH_URL
    assert sources['proxy'].url.endswith('/api/dxcluster/spots?limit=50')
    assert sources['pota'].timeout == 8.0
    assert source_urls(TestingConfig)['sota'] == TestingConfig.SOTA_URL
