"""
Tests for the spot source selection policy.
"""

import threading
from unittest.mock import Mock

import pytest
import requests

from models import Spot
from data_sources.spot_sources import DXSpiderProxySource, HamQTHSource
from data_sources.spots_data import SpotsDataProvider


class StaticSource:
    """Adapter stand-in returning a fixed batch."""

    def __init__(self, name, spots=()):
        self.name = name
        self.spots = list(spots)
        self.calls = 0

    def fetch(self, cancel_event=None):
        self.calls += 1
        return list(self.spots)


def _spot(call, source='test'):
    return Spot(spotter='W1AW', call=call, freq='14.074', source=source)


@pytest.fixture
def sources():
    return {
        'proxy': StaticSource('DX Spider Proxy'),
        'hamqth': StaticSource('HamQTH', [_spot('JA1XYZ', 'HamQTH')]),
        'dxcache': StaticSource('WA0O DX Cache', [_spot('VK2ABC')]),
        'pota': StaticSource('POTA'),
        'sota': StaticSource('SOTA'),
    }


def test_auto_falls_through_to_first_non_empty(sources):
    provider = SpotsDataProvider(sources=sources)

    spots, used = provider.fetch_spots('auto')

    assert used == 'hamqth'
    assert [s.call for s in spots] == ['JA1XYZ']
    assert sources['proxy'].calls == 1
    # Later sources are never asked once one produced spots
    assert sources['dxcache'].calls == 0


def test_auto_with_every_source_empty(sources):
    sources['hamqth'].spots = []
    sources['dxcache'].spots = []
    provider = SpotsDataProvider(sources=sources)

    assert provider.fetch_spots('auto') == ([], None)
    assert all(source.calls == 1 for source in sources.values())


def test_explicit_source(sources):
    provider = SpotsDataProvider(sources=sources)

    spots, used = provider.fetch_spots('DXCache')

    assert used == 'dxcache'
    assert [s.call for s in spots] == ['VK2ABC']
    assert sources['proxy'].calls == 0


def test_explicit_source_with_nothing(sources):
    provider = SpotsDataProvider(sources=sources)
    assert provider.fetch_spots('pota') == ([], None)


def test_unknown_source_raises(sources):
    provider = SpotsDataProvider(sources=sources)
    with pytest.raises(ValueError):
        provider.fetch_spots('telnet')


def test_cancelled_auto_fetch_stops(sources):
    event = threading.Event()
    event.set()
    provider = SpotsDataProvider(sources=sources)

    assert provider.fetch_spots('auto', cancel_event=event) == ([], None)
    assert sources['proxy'].calls == 0


def test_custom_order(sources):
    provider = SpotsDataProvider(sources=sources, order=('dxcache', 'hamqth'))
    _, used = provider.fetch_spots()
    assert used == 'dxcache'


def test_requires_config_or_sources():
    with pytest.raises(ValueError):
        SpotsDataProvider()


def test_source_name(sources):
    provider = SpotsDataProvider(sources=sources)
    assert provider.source_name('hamqth') == 'HamQTH'
    assert provider.source_name(None) is None
    assert provider.source_name('nope') is None


def test_list_sources_puts_auto_first():
    listing = SpotsDataProvider.list_sources()
    assert [entry['id'] for entry in listing] == ['auto', 'proxy', 'hamqth', 'dxcache', 'pota', 'sota']
    assert all(entry['name'] and entry['description'] for entry in listing)


def test_auto_after_timeout_keeps_only_the_next_feed():
    proxy_session = Mock()
    proxy_session.get.side_effect = requests.Timeout()
    hamqth_session = Mock()
    hamqth_session.get.return_value.text = (
        "DL1ABC^14025.0^JA1XYZ^CW 599^2149 2025-05-27^^^EU^20M^Japan^339\n"
    )
    provider = SpotsDataProvider(sources={
        'proxy': DXSpiderProxySource('http://proxy', session=proxy_session),
        'hamqth': HamQTHSource('http://hamqth', session=hamqth_session),
    })

    spots, used = provider.fetch_spots('auto')

    assert used == 'hamqth'
    assert [(s.call, s.source) for s in spots] == [('JA1XYZ', 'HamQTH')]
    proxy_session.get.assert_called_once()
