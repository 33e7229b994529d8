"""Client for the exchangerate-api.com v6 rate provider.

The provider answers ``/latest/{base}`` and ``/history/{base}/{y}/{m}/{d}``
with slightly different payloads. Both are parsed into their own response
type here and consumed elsewhere through the common :class:`RateSnapshot`.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional

import requests
from django.conf import settings

from .exceptions import UnsupportedOperation, UpstreamError

logger = logging.getLogger(__name__)

# error-type values returned by the history endpoint when the plan or data set cannot serve it
UNSUPPORTED_ERROR_TYPES = frozenset({'plan-upgrade-required', 'no-data-available'})


@dataclass(frozen=True)
class RateSnapshot:
    """Conversion table for one base currency on one calendar day."""

    base: str
    date: date
    rates: Mapping[str, float]


@dataclass(frozen=True)
class LatestRates:
    base: str
    rates: Mapping[str, float]
    last_updated: Optional[str] = None
    next_update: Optional[str] = None

    def snapshot(self, on):
        """Latest rates carry no date of their own; ``on`` is the day they are filed under."""
        return RateSnapshot(base=self.base, date=on, rates=self.rates)


@dataclass(frozen=True)
class HistoricalRates:
    base: str
    rates: Mapping[str, float]
    date: date

    def snapshot(self, on=None):
        return RateSnapshot(base=self.base, date=self.date, rates=self.rates)


@dataclass
class ExchangeRateApiClient:
    """Thin wrapper around the provider HTTP API. No caching, no retries."""

    api_key: str
    base_url: str = 'https://v6.exchangerate-api.com/v6'
    timeout: int = 15
    user_agent: str = 'Mozilla/5.0 (compatible; FXTracker/1.0)'
    history_enabled: bool = True
    session: requests.Session = field(default_factory=requests.Session)

    @classmethod
    def from_settings(cls):
        return cls(
            api_key=settings.EXCHANGE_RATE_API_KEY,
            base_url=settings.EXCHANGE_RATE_API_BASE_URL,
            timeout=settings.EXCHANGE_RATE_API_TIMEOUT,
            user_agent=settings.EXCHANGE_RATE_API_USER_AGENT,
            history_enabled=settings.EXCHANGE_RATE_HISTORY_ENABLED,
        )

    def fetch_latest(self, base):
        payload = self._get(f"latest/{base.upper()}")
        return LatestRates(
            base=self._base_code(payload, base),
            rates=self._conversion_rates(payload),
            last_updated=payload.get('time_last_update_utc'),
            next_update=payload.get('time_next_update_utc'),
        )

    def fetch_historical(self, base, on):
        if not self.history_enabled:
            raise UnsupportedOperation("Historical rates are disabled for the configured provider")

        path = f"history/{base.upper()}/{on.year}/{on.month}/{on.day}"
        payload = self._get(path, historical=True)

        try:
            echoed = date(int(payload['year']), int(payload['month']), int(payload['day']))
        except (KeyError, TypeError, ValueError):
            echoed = on
        if echoed != on:
            raise UpstreamError(f"Provider answered {echoed.isoformat()} for {on.isoformat()}")

        return HistoricalRates(
            base=self._base_code(payload, base),
            rates=self._conversion_rates(payload),
            date=echoed,
        )

    def _get(self, path, historical=False):
        url = f"{self.base_url.rstrip('/')}/{self.api_key}/{path}"
        headers = {
            'User-Agent': self.user_agent,
            'Accept': 'application/json',
        }

        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Rate provider request failed for {path}: {str(e)}")
            raise UpstreamError(f"Rate provider request failed: {str(e)}") from e

        content_type = response.headers.get('Content-Type', '')
        if 'application/json' not in content_type:
            raise UpstreamError(
                f"Expected JSON response, got {content_type or 'no content type'} (status {response.status_code})"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(f"Rate provider returned invalid JSON: {str(e)}") from e

        if not isinstance(payload, dict):
            raise UpstreamError("Rate provider returned an unexpected payload")

        if payload.get('result') == 'error':
            error_type = payload.get('error-type', 'unknown-error')
            if historical and error_type in UNSUPPORTED_ERROR_TYPES:
                raise UnsupportedOperation(f"Historical rates unavailable: {error_type}")
            raise UpstreamError(f"Rate provider error: {error_type}")

        if not response.ok:
            raise UpstreamError(
                f"Exchange rate API responded with status: {response.status_code} {response.reason}"
            )

        return payload

    @staticmethod
    def _base_code(payload, requested):
        base_code = payload.get('base_code')
        if not isinstance(base_code, str) or not base_code:
            raise UpstreamError("Rate provider response is missing base_code")
        if base_code.upper() != requested.upper():
            raise UpstreamError(f"Rate provider answered base {base_code} for {requested}")
        return base_code.upper()

    @staticmethod
    def _conversion_rates(payload):
        rates = payload.get('conversion_rates')
        if not isinstance(rates, dict) or not rates:
            raise UpstreamError("Rate provider response is missing conversion_rates")
        return dict(rates)
