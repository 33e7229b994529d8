import json
from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.test import Client

from transactions.models import UserTransaction

pytestmark = pytest.mark.django_db

VALID_BODY = {
    'date': '2024-01-15',
    'baseCurrency': 'usd',
    'targetCurrency': 'CAD',
    'baseAmount': 100,
    'targetAmount': '135.20',
    'exchangeRate': 1.352,
    'transactionType': 'buy',
    'description': 'Airport kiosk',
}


@pytest.fixture
def user():
    return get_user_model().objects.create_user(username='alex', password='pw-123456')


@pytest.fixture
def signed_in(client, user):
    client.force_login(user)
    return client


def _record(user, day, base='USD', target='CAD', **extra):
    fields = {
        'base_amount': Decimal('100'),
        'target_amount': Decimal('135'),
        'exchange_rate': Decimal('1.35'),
        'transaction_type': 'exchange',
    }
    fields.update(extra)
    return UserTransaction.objects.create(user=user, date=day, base_currency=base, target_currency=target, **fields)


def _post(client, body):
    return client.post('/transactions/', data=json.dumps(body), content_type='application/json')


def test_anonymous_requests_are_rejected(client):
    assert client.get('/transactions/').status_code == 401
    assert _post(client, VALID_BODY).status_code == 401


def test_create_transaction(signed_in, user):
    response = _post(signed_in, VALID_BODY)

    assert response.status_code == 201
    body = response.json()['transaction']
    assert body['baseCurrency'] == 'USD'
    assert body['targetAmount'] == 135.2
    assert body['exchangeRate'] == 1.352
    assert UserTransaction.objects.get().user == user


def test_create_requires_all_fields(signed_in):
    body = {key: value for key, value in VALID_BODY.items() if key != 'exchangeRate'}

    response = _post(signed_in, body)

    assert response.status_code == 400
    assert 'exchangeRate' in response.json()['error']
    assert not UserTransaction.objects.exists()


@pytest.mark.parametrize(
    'override',
    [
        {'transactionType': 'gift'},
        {'baseAmount': -5},
        {'baseAmount': 'lots'},
        {'targetCurrency': 'CANADA'},
        {'date': '15-01-2024'},
        {'baseAmount': '1e20'},
        {'targetAmount': 100000000000000},
        {'exchangeRate': '1e300'},
        {'baseAmount': '0.00001'},
    ],
)
def test_create_rejects_invalid_values(signed_in, override):
    assert _post(signed_in, {**VALID_BODY, **override}).status_code == 400


def test_create_rejects_non_json_body(signed_in):
    response = signed_in.post('/transactions/', data='not json', content_type='application/json')
    assert response.status_code == 400


def test_list_is_scoped_to_user_and_newest_first(signed_in, user):
    other = get_user_model().objects.create_user(username='sam', password='pw-123456')
    _record(user, date(2024, 1, 1))
    _record(user, date(2024, 1, 5))
    _record(other, date(2024, 1, 3))

    transactions = signed_in.get('/transactions/').json()['transactions']

    assert [txn['date'] for txn in transactions] == ['2024-01-05', '2024-01-01']


def test_list_filters(signed_in, user):
    _record(user, date(2024, 1, 1))
    _record(user, date(2024, 1, 10), base='EUR', target='USD')
    _record(user, date(2024, 1, 20), target='EUR')

    in_range = signed_in.get('/transactions/', {'startDate': '2024-01-05', 'endDate': '2024-01-31'}).json()
    by_base = signed_in.get('/transactions/', {'baseCurrency': 'eur'}).json()
    by_target = signed_in.get('/transactions/', {'targetCurrency': 'EUR'}).json()

    assert [txn['date'] for txn in in_range['transactions']] == ['2024-01-20', '2024-01-10']
    assert [txn['baseCurrency'] for txn in by_base['transactions']] == ['EUR']
    assert [txn['date'] for txn in by_target['transactions']] == ['2024-01-20']


def test_list_rejects_bad_filter_dates(signed_in):
    assert signed_in.get('/transactions/', {'startDate': 'yesterday'}).status_code == 400


def test_amount_too_large_for_the_column_is_a_bad_request(signed_in):
    response = _post(signed_in, {**VALID_BODY, 'baseAmount': '1e20'})

    assert response.status_code == 400
    assert response.json() == {'success': False, 'error': 'baseAmount must be less than 100000000000000'}
    assert not UserTransaction.objects.exists()


def test_amounts_are_rounded_to_the_column_scale(signed_in):
    response = _post(signed_in, {**VALID_BODY, 'baseAmount': '1234.56789', 'exchangeRate': '1.123456789'})

    assert response.status_code == 201
    stored = UserTransaction.objects.get()
    assert stored.base_amount == Decimal('1234.5679')
    assert stored.exchange_rate == Decimal('1.12345679')


def test_post_from_the_browser_needs_the_csrf_token(user):
    browser = Client(enforce_csrf_checks=True)
    browser.force_login(user)

    assert _post(browser, VALID_BODY).status_code == 403

    browser.get('/transactions/')
    token = browser.cookies['csrftoken'].value
    response = browser.post(
        '/transactions/',
        data=json.dumps(VALID_BODY),
        content_type='application/json',
        HTTP_X_CSRFTOKEN=token,
    )

    assert response.status_code == 201
    assert UserTransaction.objects.count() == 1
