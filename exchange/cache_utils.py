from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional
import hashlib
import json
import logging

from django.conf import settings
from django.core.cache import caches

from .date_utils import utc_now
from .exceptions import ValidationError

logger = logging.getLogger(__name__)


def generate_cache_key(prefix, params):
    """Generate a stable cache key based on a prefix and params dict."""
    param_str = json.dumps(params, sort_keys=True)
    param_hash = hashlib.md5(param_str.encode()).hexdigest()
    return f"{prefix}:{param_hash}"


def get_cache_timeout(cache_type):
    """Lookup timeout seconds from settings for a given cache type."""
    return settings.CACHE_TIMEOUT.get(cache_type, 300)


@dataclass(frozen=True)
class LiveRateCacheEntry:
    """Full conversion table for one base, stored and replaced as a single value."""
    base_currency: str
    rates: Dict[str, float]
    fetched_at: datetime
    last_updated: Optional[str] = None
    next_update: Optional[str] = None


@dataclass(frozen=True)
class LiveRate:
    base: str
    target: str
    rate: float
    cached: bool
    fetched_at: datetime
    last_updated: Optional[str] = None
    next_update: Optional[str] = None

    def as_dict(self):
        data = {
            'base': self.base,
            'target': self.target,
            'rate': self.rate,
            'cached': self.cached,
            'lastUpdated': self.last_updated,
            'nextUpdate': self.next_update,
        }
        if self.cached:
            data['cacheTimestamp'] = self.fetched_at.isoformat()
        return data


class LiveRateCache:
    """Time-bounded cache of the provider's latest table, keyed by base currency.

    Expiry is checked lazily against ``fetched_at`` with the injected clock; the
    Django cache timeout only evicts entries that nobody reads any more.
    """

    prefix = 'live_rates'

    def __init__(self, client, cache=None, ttl=None, clock=utc_now):
        self.client = client
        self.cache = cache if cache is not None else caches[settings.LIVE_RATE_CACHE_ALIAS]
        self.ttl = ttl if ttl is not None else timedelta(seconds=get_cache_timeout(self.prefix))
        self.clock = clock

    def cache_key(self, base_currency):
        return generate_cache_key(self.prefix, {'base': base_currency})

    def is_fresh(self, entry):
        return self.clock() - entry.fetched_at < self.ttl

    def lookup(self, base_currency):
        """Fresh entry for ``base_currency`` or None."""
        entry = self.cache.get(self.cache_key(base_currency))
        if entry is not None and self.is_fresh(entry):
            return entry
        return None

    def refresh(self, base_currency):
        """Fetch the latest table for ``base_currency`` and replace its entry."""
        latest = self.client.fetch_latest(base_currency)
        entry = LiveRateCacheEntry(
            base_currency=latest.base,
            rates=dict(latest.rates),
            fetched_at=self.clock(),
            last_updated=latest.last_updated,
            next_update=latest.next_update,
        )
        self.cache.set(self.cache_key(base_currency), entry, int(self.ttl.total_seconds()))
        logger.debug(f"Refreshed live rates for {base_currency} ({len(entry.rates)} targets)")
        return entry

    def get_rate(self, base_currency, target_currency, bypass_cache=False):
        """Rate for one pair, served from the base's cached table when it is still fresh."""
        base_currency = base_currency.upper()
        entry = None if bypass_cache else self.lookup(base_currency)
        was_cached = entry is not None
        if entry is None:
            entry = self.refresh(base_currency)

        target_currency = target_currency.upper()
        if target_currency not in entry.rates:
            raise ValidationError(f"No rate for {entry.base_currency}/{target_currency}")

        return LiveRate(
            base=entry.base_currency,
            target=target_currency,
            rate=entry.rates[target_currency],
            cached=was_cached,
            fetched_at=entry.fetched_at,
            last_updated=entry.last_updated,
            next_update=entry.next_update,
        )
