"""
Tests for the accumulated spot store.
"""

import pytest

from models import Spot
from utils.spot_store import SpotStore


def _spot(call, freq='14.074', spotter='W1AW', comment=''):
    return Spot(spotter=spotter, call=call, freq=freq, comment=comment, source='HamQTH')


def test_merge_deduplicates_by_identity():
    store = SpotStore()
    store.merge([_spot('JA1XYZ', comment='first')], store.next_sequence(), now=100.0)
    store.merge([_spot('JA1XYZ', comment='again'), _spot('JA1XYZ', spotter='DL1ABC')],
                store.next_sequence(), now=160.0)

    spots = store.snapshot()
    assert len(spots) == 2
    refreshed = [s for s in spots if s.spotter == 'W1AW'][0]
    assert refreshed.comment == 'again'
    assert refreshed.last_seen == 160.0


def test_same_call_on_new_frequency_is_a_new_spot():
    store = SpotStore()
    store.merge([_spot('JA1XYZ'), _spot('JA1XYZ', freq='7.074')], store.next_sequence(), now=1.0)
    assert len(store) == 2


def test_out_of_order_poll_is_discarded():
    store = SpotStore()
    early = store.next_sequence()
    late = store.next_sequence()

    assert store.merge([_spot('VK2ABC')], late, now=10.0) is True
    assert store.merge([_spot('JA1XYZ')], early, now=11.0) is False

    assert [s.call for s in store.snapshot()] == ['VK2ABC']
    assert store.applied_sequence == late
    assert store.stats()['rejected_merges'] == 1


def test_retention_evicts_on_merge():
    store = SpotStore(retention_minutes=30)
    store.merge([_spot('JA1XYZ')], store.next_sequence(), now=1000.0)
    store.merge([_spot('VK2ABC')], store.next_sequence(), now=1000.0 + 31 * 60)
    assert [s.call for s in store.snapshot()] == ['VK2ABC']


def test_spot_at_retention_boundary_is_kept():
    store = SpotStore(retention_minutes=30)
    store.merge([_spot('JA1XYZ')], store.next_sequence(), now=1000.0)
    assert store.evict(now=1000.0 + 30 * 60) == 0
    assert len(store) == 1


def test_set_retention_evicts_immediately():
    store = SpotStore(retention_minutes=30)
    store.merge([_spot('JA1XYZ')], store.next_sequence(), now=0.0)
    store.merge([_spot('VK2ABC')], store.next_sequence(), now=600.0)

    assert store.set_retention(5, now=660.0) == 1
    assert store.retention_minutes == 5
    assert [s.call for s in store.snapshot()] == ['VK2ABC']


def test_size_cap_drops_oldest():
    store = SpotStore(max_size=3)
    store.merge([_spot('OLD1'), _spot('OLD2'), _spot('OLD3')], store.next_sequence(), now=0.0)
    store.merge([_spot('NEW1'), _spot('NEW2')], store.next_sequence(), now=10.0)

    calls = {s.call for s in store.snapshot()}
    assert len(calls) == 3
    assert {'NEW1', 'NEW2'} <= calls


def test_snapshot_is_newest_first_and_detached():
    store = SpotStore()
    store.merge([_spot('FIRST')], store.next_sequence(), now=1.0)
    store.merge([_spot('SECOND')], store.next_sequence(), now=2.0)

    snapshot = store.snapshot()
    assert [s.call for s in snapshot] == ['SECOND', 'FIRST']

    snapshot[0].comment = 'changed'
    assert store.snapshot()[0].comment == ''


def test_clear():
    store = SpotStore()
    store.merge([_spot('JA1XYZ')], store.next_sequence(), now=1.0)
    store.clear()
    assert len(store) == 0


@pytest.mark.parametrize('kwargs', [{'retention_minutes': 0}, {'max_size': 0}])
def test_rejects_non_positive_limits(kwargs):
    with pytest.raises(ValueError):
        SpotStore(**kwargs)


def test_set_retention_rejects_non_positive():
    with pytest.raises(ValueError):
        SpotStore().set_retention(0)
