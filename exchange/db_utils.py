from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import StoreError
from .models import ExchangeRateFetch, ExchangeRatePair

logger = logging.getLogger(__name__)

RATE_QUANTUM = Decimal('1e-8')


def normalize_rate(value):
    """Return ``value`` as a positive Decimal at stored precision, or None when unusable."""
    if isinstance(value, bool):
        return None
    try:
        rate = Decimal(str(value)).quantize(RATE_QUANTUM)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not rate.is_finite() or rate <= 0:
        return None
    return rate


@dataclass(frozen=True)
class RatePair:
    """One persisted (date, base, target) -> rate fact."""
    date: date
    base_currency: str
    target_currency: str
    rate: Decimal
    created_at: datetime = None

    @property
    def key(self):
        return (self.date, self.base_currency, self.target_currency)


def pairs_from_snapshot(snapshot, created_at=None):
    """Explode a provider table into RatePairs, skipping the base itself and unusable rates."""
    created_at = created_at or timezone.now()
    base = snapshot.base.upper()
    pairs = []
    for target_currency, value in snapshot.rates.items():
        target = str(target_currency).upper()
        if target == base:
            continue
        rate = normalize_rate(value)
        if rate is None:
            logger.warning(f"Dropping unusable rate {value!r} for {base}/{target} on {snapshot.date}")
            continue
        pairs.append(RatePair(snapshot.date, base, target, rate, created_at))
    return pairs


class RateStore:
    """Persistence of daily rate pairs on top of the Django ORM."""

    def upsert(self, pairs, fetched_day=None):
        """Insert or replace pairs keyed on (date, base, target). Idempotent.

        ``fetched_day`` is an optional ``(base_currency, date)`` marking that the
        pairs are the provider's whole table for that day; it is written in the
        same transaction.
        """
        # last write wins within one batch too
        latest = {pair.key: pair for pair in pairs}
        if not latest and fetched_day is None:
            return 0

        rows = [
            ExchangeRatePair(
                date=pair.date,
                base_currency=pair.base_currency,
                target_currency=pair.target_currency,
                rate=pair.rate,
                created_at=pair.created_at or timezone.now(),
            )
            for pair in latest.values()
        ]
        try:
            with transaction.atomic():
                if rows:
                    ExchangeRatePair.objects.bulk_create(
                        rows,
                        update_conflicts=True,
                        unique_fields=['date', 'base_currency', 'target_currency'],
                        update_fields=['rate', 'created_at'],
                    )
                if fetched_day is not None:
                    base_currency, on = fetched_day
                    ExchangeRateFetch.objects.bulk_create(
                        [ExchangeRateFetch(date=on, base_currency=base_currency, target_count=len(rows))],
                        update_conflicts=True,
                        unique_fields=['date', 'base_currency'],
                        update_fields=['target_count', 'fetched_at'],
                    )
        except DatabaseError as e:
            logger.error(f"Failed to upsert {len(rows)} exchange rate pairs: {str(e)}")
            raise StoreError(f"Failed to save exchange rates: {str(e)}") from e
        return len(rows)

    def query(self, base_currency, target_currencies, start_date, end_date):
        """Pairs for ``base_currency`` within the inclusive date window.

        An empty ``target_currencies`` matches every target.
        """
        try:
            query = ExchangeRatePair.objects.filter(
                base_currency=base_currency,
                date__gte=start_date,
                date__lte=end_date,
            )
            if target_currencies:
                query = query.filter(target_currency__in=list(target_currencies))

            return [
                RatePair(row.date, row.base_currency, row.target_currency, row.rate, row.created_at)
                for row in query
            ]
        except DatabaseError as e:
            logger.error(f"Failed to query exchange rates for {base_currency}: {str(e)}")
            raise StoreError(f"Failed to read exchange rates: {str(e)}") from e

    def targets_on(self, base_currency, on):
        """Set of target codes already stored for ``base_currency`` on ``on``."""
        try:
            return set(
                ExchangeRatePair.objects.filter(base_currency=base_currency, date=on)
                .values_list('target_currency', flat=True)
            )
        except DatabaseError as e:
            logger.error(f"Failed to read stored targets for {base_currency} on {on}: {str(e)}")
            raise StoreError(f"Failed to read exchange rates: {str(e)}") from e

    def fetched_days(self, base_currency, start_date, end_date):
        """Days in the inclusive window whose whole provider table was stored for ``base_currency``."""
        try:
            return set(
                ExchangeRateFetch.objects.filter(
                    base_currency=base_currency,
                    date__gte=start_date,
                    date__lte=end_date,
                ).values_list('date', flat=True)
            )
        except DatabaseError as e:
            logger.error(f"Failed to read fetch log for {base_currency}: {str(e)}")
            raise StoreError(f"Failed to read exchange rates: {str(e)}") from e
