from datetime import timedelta

import pytest
from django.core.cache.backends.locmem import LocMemCache

from exchange.cache_utils import LiveRateCache, generate_cache_key, get_cache_timeout
from exchange.exceptions import UpstreamError, ValidationError
from tests.fakes import FakeClock, FakeRateClient, upstream_down, utc


@pytest.fixture
def clock():
    return FakeClock(utc(2024, 1, 1))


@pytest.fixture
def client():
    return FakeRateClient(default_rates={'USD': 1, 'CAD': 1.35, 'EUR': 0.92})


@pytest.fixture
def live_cache(client, clock):
    backend = LocMemCache('live-rates-test', {})
    backend.clear()
    return LiveRateCache(client, cache=backend, ttl=timedelta(hours=3), clock=clock)


def test_two_lookups_within_ttl_make_one_provider_call(live_cache, client, clock):
    first = live_cache.get_rate('USD', 'CAD')
    clock.advance(hours=2, minutes=59)
    second = live_cache.get_rate('USD', 'CAD')

    assert client.calls == [('latest', 'USD')]
    assert first.rate == second.rate == 1.35
    assert not first.cached
    assert second.cached


def test_targets_of_one_base_share_a_fetch(live_cache, client):
    live_cache.get_rate('USD', 'CAD')
    eur = live_cache.get_rate('usd', 'eur')

    assert client.calls == [('latest', 'USD')]
    assert eur.rate == 0.92


def test_expired_entry_triggers_exactly_one_refetch(live_cache, client, clock):
    live_cache.get_rate('USD', 'CAD')
    clock.advance(hours=3)

    refreshed = live_cache.get_rate('USD', 'CAD')
    live_cache.get_rate('USD', 'CAD')

    assert client.calls == [('latest', 'USD'), ('latest', 'USD')]
    assert not refreshed.cached
    assert refreshed.fetched_at == clock.now


def test_bypass_forces_refresh_and_replaces_entry(live_cache, client):
    live_cache.get_rate('USD', 'CAD')
    client.default_rates = {'CAD': 1.40}

    bypassed = live_cache.get_rate('USD', 'CAD', bypass_cache=True)
    cached = live_cache.get_rate('USD', 'CAD')

    assert bypassed.rate == 1.40
    assert cached.rate == 1.40
    assert cached.cached
    assert len(client.calls) == 2


def test_bases_are_cached_independently(live_cache, client):
    live_cache.get_rate('USD', 'CAD')
    live_cache.get_rate('CAD', 'EUR')

    assert client.calls == [('latest', 'USD'), ('latest', 'CAD')]


def test_provider_failure_on_miss_propagates(clock):
    client = FakeRateClient(latest={'USD': upstream_down()})
    live_cache = LiveRateCache(client, cache=LocMemCache('live-rates-failing', {}), clock=clock)

    with pytest.raises(UpstreamError):
        live_cache.get_rate('USD', 'CAD')


def test_unknown_target_is_a_validation_error(live_cache):
    with pytest.raises(ValidationError):
        live_cache.get_rate('USD', 'XXX')


def test_cached_payload_carries_cache_timestamp(live_cache, clock):
    assert 'cacheTimestamp' not in live_cache.get_rate('USD', 'CAD').as_dict()

    payload = live_cache.get_rate('USD', 'CAD').as_dict()
    assert payload['cached'] is True
    assert payload['cacheTimestamp'] == clock.now.isoformat()
    assert payload['base'] == 'USD'


def test_default_ttl_comes_from_settings(client):
    live_cache = LiveRateCache(client, cache=LocMemCache('live-rates-defaults', {}))
    assert live_cache.ttl == timedelta(hours=3)
    assert get_cache_timeout('live_rates') == 10800


def test_cache_key_is_stable():
    assert generate_cache_key('live_rates', {'base': 'USD'}) == generate_cache_key('live_rates', {'base': 'USD'})
    assert generate_cache_key('live_rates', {'base': 'USD'}) != generate_cache_key('live_rates', {'base': 'CAD'})
