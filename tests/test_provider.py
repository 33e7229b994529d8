from datetime import date

import pytest
import requests

from exchange.exceptions import UnsupportedOperation, UpstreamError
from exchange.provider import ExchangeRateApiClient, HistoricalRates, LatestRates
from tests.fakes import FakeResponse, FakeSession

LATEST_PAYLOAD = {
    'result': 'success',
    'time_last_update_utc': 'Fri, 27 Mar 2020 00:00:00 +0000',
    'time_next_update_utc': 'Sat, 28 Mar 2020 00:00:00 +0000',
    'base_code': 'USD',
    'conversion_rates': {'USD': 1, 'CAD': 1.4187, 'EUR': 0.9013},
}

HISTORY_PAYLOAD = {
    'result': 'success',
    'year': 2024,
    'month': 1,
    'day': 2,
    'base_code': 'USD',
    'conversion_rates': {'USD': 1, 'CAD': 1.3312},
}


def _client(session, **kwargs):
    return ExchangeRateApiClient(api_key='secret', base_url='https://rates.test/v6/', session=session, **kwargs)


def test_fetch_latest_normalizes_payload():
    session = FakeSession(FakeResponse(LATEST_PAYLOAD))
    latest = _client(session).fetch_latest('usd')

    assert isinstance(latest, LatestRates)
    assert latest.base == 'USD'
    assert latest.rates['CAD'] == 1.4187
    assert latest.next_update == 'Sat, 28 Mar 2020 00:00:00 +0000'

    request = session.requests[0]
    assert request['url'] == 'https://rates.test/v6/secret/latest/USD'
    assert request['headers']['Accept'] == 'application/json'
    assert 'User-Agent' in request['headers']


def test_fetch_historical_builds_dated_url_and_echoes_date():
    session = FakeSession(FakeResponse(HISTORY_PAYLOAD))
    historical = _client(session).fetch_historical('USD', date(2024, 1, 2))

    assert isinstance(historical, HistoricalRates)
    assert historical.date == date(2024, 1, 2)
    assert session.requests[0]['url'] == 'https://rates.test/v6/secret/history/USD/2024/1/2'

    snapshot = historical.snapshot()
    assert snapshot.date == date(2024, 1, 2)
    assert snapshot.rates['CAD'] == 1.3312


def test_latest_snapshot_is_filed_under_given_day():
    latest = LatestRates(base='USD', rates={'CAD': 1.35})
    assert latest.snapshot(date(2024, 5, 1)).date == date(2024, 5, 1)


def test_plan_upgrade_error_is_unsupported_for_history():
    payload = {'result': 'error', 'error-type': 'plan-upgrade-required'}
    session = FakeSession(FakeResponse(payload, status_code=403))

    with pytest.raises(UnsupportedOperation):
        _client(session).fetch_historical('USD', date(2024, 1, 2))


def test_history_disabled_never_calls_out():
    session = FakeSession(FakeResponse(HISTORY_PAYLOAD))

    with pytest.raises(UnsupportedOperation):
        _client(session, history_enabled=False).fetch_historical('USD', date(2024, 1, 2))
    assert session.requests == []


def test_provider_error_on_latest_is_upstream_error():
    payload = {'result': 'error', 'error-type': 'invalid-key'}
    with pytest.raises(UpstreamError, match='invalid-key'):
        _client(FakeSession(FakeResponse(payload, status_code=403))).fetch_latest('USD')


@pytest.mark.parametrize(
    'response',
    [
        FakeResponse(LATEST_PAYLOAD, status_code=500),
        FakeResponse(LATEST_PAYLOAD, content_type='text/html'),
        FakeResponse(None),
        FakeResponse({'result': 'success', 'base_code': 'USD'}),
        FakeResponse({**LATEST_PAYLOAD, 'base_code': 'EUR'}),
    ],
    ids=['server-error', 'html', 'invalid-json', 'no-rates', 'wrong-base'],
)
def test_bad_responses_raise_upstream_error(response):
    with pytest.raises(UpstreamError):
        _client(FakeSession(response)).fetch_latest('USD')


def test_non_json_content_type_fails_even_on_success_status():
    response = FakeResponse(LATEST_PAYLOAD, status_code=200, content_type='text/plain')
    with pytest.raises(UpstreamError, match='Expected JSON'):
        _client(FakeSession(response)).fetch_latest('USD')


def test_network_failure_is_upstream_error():
    session = FakeSession(exc=requests.exceptions.ConnectTimeout('timed out'))
    with pytest.raises(UpstreamError):
        _client(session).fetch_latest('USD')


def test_mismatched_history_date_is_rejected():
    session = FakeSession(FakeResponse({**HISTORY_PAYLOAD, 'day': 3}))
    with pytest.raises(UpstreamError):
        _client(session).fetch_historical('USD', date(2024, 1, 2))
