"""Gap-fill reconciliation of stored daily rates against the rate provider.

For a requested window the reconciler reads what the store already holds,
works out which days are not fully covered for the requested targets, and
fetches those days one by one in ascending order. Each fetched day is
upserted before the next one is requested, so an interrupted run leaves a
clean prefix behind and a rerun derives the same remaining gap.

A day whose provider table was stored once is never fetched again, even when
a requested code is absent from that table. The base itself is never stored
and is answered as ``1.0``.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from functools import reduce

from .date_utils import date_range, utc_now
from .db_utils import pairs_from_snapshot
from .exceptions import StoreError, UnsupportedOperation, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

IDENTITY_RATE = 1.0


@dataclass(frozen=True)
class DateRangeQuery:
    """Inclusive ``[start_date, end_date]`` window for one base and a set of targets."""

    start_date: date
    end_date: date
    base_currency: str
    target_currencies: frozenset = frozenset()

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValidationError("startDate must not be after endDate")

    @property
    def required_targets(self):
        """Requested targets that can be stored, i.e. everything but the base."""
        return self.target_currencies - {self.base_currency}


@dataclass(frozen=True)
class DailyRates:
    date: date
    base: str
    rates: dict

    def as_dict(self):
        return {'date': self.date.isoformat(), 'base': self.base, 'rates': dict(self.rates)}


@dataclass(frozen=True)
class ReconciliationResult:
    query: DateRangeQuery
    rates: list
    fetched_records: int
    complete: bool = True

    @property
    def total_records(self):
        return len(self.rates)

    def as_dict(self):
        return {
            'base': self.query.base_currency,
            'symbols': sorted(self.query.target_currencies),
            'startDate': self.query.start_date.isoformat(),
            'endDate': self.query.end_date.isoformat(),
            'totalRecords': self.total_records,
            'fetchedRecords': self.fetched_records,
            'complete': self.complete,
            'rates': [daily.as_dict() for daily in self.rates],
        }


@dataclass(frozen=True)
class _FillState:
    """Accumulator threaded through the per-date fold."""

    pairs: tuple = ()
    fetched_dates: tuple = ()
    timed_out: bool = False


@dataclass
class GapFillReconciler:
    store: object
    client: object
    clock: object = field(default=utc_now)

    def reconcile(self, query, deadline=None):
        """Fill the gaps of ``query`` and return the assembled, date-sorted series.

        A ``StoreError`` while reading the existing rows propagates. Per-date
        provider or store failures are logged and leave that date out. An
        ``UpstreamError`` while fetching today's latest rates propagates.
        ``complete`` is true only when every day up to today carries every
        requested target.
        """
        stored = self.store.query(
            query.base_currency, query.target_currencies, query.start_date, query.end_date
        )
        fetched_days = self.store.fetched_days(query.base_currency, query.start_date, query.end_date)
        missing = self.missing_dates(query, stored, fetched_days)

        state = reduce(
            lambda acc, missing_date: self._fill_date(acc, query, missing_date, deadline),
            missing,
            _FillState(),
        )

        if missing:
            logger.info(
                f"Reconciled {query.base_currency} {query.start_date}..{query.end_date}: "
                f"{len(state.fetched_dates)}/{len(missing)} missing dates fetched"
            )

        rates = self._group_by_date(
            query,
            list(stored) + list(state.pairs),
            set(fetched_days) | set(state.fetched_dates),
        )
        return ReconciliationResult(
            query=query,
            rates=rates,
            fetched_records=len(state.fetched_dates),
            complete=not state.timed_out and self._covers_window(query, rates),
        )

    def missing_dates(self, query, stored, fetched_days=()):
        """Ascending days in the window that still need a provider fetch.

        A day is covered once its provider table was stored (``fetched_days``)
        or once every required target has a stored row. Without explicit
        targets a day counts as present once anything is stored for it. Days
        after today (UTC) are never reported, the provider has no rates for
        them yet.
        """
        required = query.required_targets
        covered = {}
        for pair in stored:
            covered.setdefault(pair.date, set()).add(pair.target_currency)

        missing = []
        for day in date_range(query.start_date, self._last_day(query)):
            if day in fetched_days:
                continue
            targets = covered.get(day)
            if not targets or not required <= targets:
                missing.append(day)
        return missing

    def _last_day(self, query):
        return min(query.end_date, self.clock().date())

    def _covers_window(self, query, rates):
        by_date = {daily.date: daily.rates for daily in rates}
        required = query.required_targets
        return all(
            day in by_date and required <= set(by_date[day])
            for day in date_range(query.start_date, self._last_day(query))
        )

    def _fill_date(self, state, query, missing_date, deadline):
        if state.timed_out:
            return state
        if deadline is not None and self.clock() >= deadline:
            logger.warning(
                f"Reconciliation deadline reached for {query.base_currency}, "
                f"stopping before {missing_date.isoformat()}"
            )
            return replace(state, timed_out=True)

        snapshot = self._fetch(query.base_currency, missing_date)
        if snapshot is None:
            return state

        pairs = pairs_from_snapshot(snapshot)
        try:
            self.store.upsert(pairs, fetched_day=(query.base_currency, missing_date))
        except StoreError as e:
            logger.error(f"Could not persist rates for {query.base_currency} on {missing_date}: {str(e)}")
            return state

        absent = query.required_targets - {pair.target_currency for pair in pairs}
        if absent:
            logger.info(
                f"Provider has no {query.base_currency} rate for {', '.join(sorted(absent))} "
                f"on {missing_date}"
            )

        return replace(
            state,
            pairs=state.pairs + tuple(pairs),
            fetched_dates=state.fetched_dates + (missing_date,),
        )

    def _fetch(self, base_currency, missing_date):
        if missing_date == self.clock().date():
            # no fallback day to substitute, failures propagate
            return self.client.fetch_latest(base_currency).snapshot(missing_date)

        try:
            return self.client.fetch_historical(base_currency, missing_date).snapshot()
        except UnsupportedOperation as e:
            logger.warning(f"Skipping {base_currency} on {missing_date}: {str(e)}")
        except UpstreamError as e:
            logger.warning(f"Failed to fetch {base_currency} rates for {missing_date}: {str(e)}")
        return None

    @staticmethod
    def _group_by_date(query, pairs, covered_days=()):
        by_date = {}
        for pair in pairs:
            if query.target_currencies and pair.target_currency not in query.target_currencies:
                continue
            by_date.setdefault(pair.date, {})[pair.target_currency] = float(pair.rate)

        if query.base_currency in query.target_currencies:
            for day in set(by_date) | set(covered_days):
                by_date.setdefault(day, {})[query.base_currency] = IDENTITY_RATE

        return [
            DailyRates(date=day, base=query.base_currency, rates=by_date[day])
            for day in sorted(by_date)
            if by_date[day]
        ]
