from celery import shared_task
from django.conf import settings
import logging

from .date_utils import utc_now
from .db_utils import RateStore, pairs_from_snapshot
from .exceptions import ExchangeRateError
from .provider import ExchangeRateApiClient

logger = logging.getLogger(__name__)


def sync_base_currency(base_currency, store, client, today):
    """Store today's missing targets for one base. Returns the per-base result record."""
    latest = client.fetch_latest(base_currency)
    pairs = pairs_from_snapshot(latest.snapshot(today))

    stored_targets = store.targets_on(latest.base, today)
    missing = [pair for pair in pairs if pair.target_currency not in stored_targets]
    # the day is logged as fetched even when nothing new was written
    store.upsert(missing, fetched_day=(latest.base, today))
    if not missing:
        logger.info(f"{base_currency} rates for {today} already up to date")
        return {'status': 'up_to_date', 'stored': 0}

    logger.info(f"Stored {len(missing)} {base_currency} rates for {today}")
    return {'status': 'stored', 'stored': len(missing)}


def sync_latest_rates(base_currencies=None, store=None, client=None, clock=utc_now):
    """
    Pull the latest rates for each configured base and persist the targets
    missing for today. A failing base is recorded and does not stop the others.
    """
    base_currencies = base_currencies or settings.EXCHANGE_RATE_SYNC_BASES
    store = store or RateStore()
    client = client or ExchangeRateApiClient.from_settings()
    today = clock().date()

    results = {}
    for base_currency in base_currencies:
        try:
            results[base_currency] = sync_base_currency(base_currency, store, client, today)
        except ExchangeRateError as e:
            logger.error(f"Failed to sync rates for {base_currency}: {str(e)}")
            results[base_currency] = {'status': 'error', 'error': str(e)}

    return {'date': today.isoformat(), 'results': results}


@shared_task
def sync_latest_rates_task():
    """
    Fetch today's latest exchange rates for the configured base currencies.
    Scheduled by Celery beat once a day.
    """
    report = sync_latest_rates()
    failed = [base for base, result in report['results'].items() if result['status'] == 'error']
    if failed:
        logger.warning(f"Exchange rate sync finished with failures for: {', '.join(failed)}")
    return report
