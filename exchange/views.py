from django.apps import apps
from django.conf import settings
from django.http import JsonResponse
from django.views import View
from datetime import timedelta
import hmac
import logging

from .date_utils import parse_date
from .exceptions import StoreError, UpstreamError, ValidationError
from .reconciler import DateRangeQuery
from .tasks import sync_latest_rates

logger = logging.getLogger(__name__)

TRUTHY = {'1', 'true', 'yes', 'on'}


def error_response(message, status):
    return JsonResponse({'success': False, 'error': message}, status=status)


def parse_symbols(symbols):
    return frozenset(s.strip().upper() for s in symbols.split(',') if s.strip())


class ExchangeServiceMixin:
    """Resolves the per-process collaborators built by the exchange app config.

    Any of them can be replaced per view through ``as_view(**initkwargs)``.
    """
    reconciler = None
    live_rate_cache = None
    rate_store = None
    rate_client = None

    def service(self, name):
        configured = getattr(self, name)
        if configured is not None:
            return configured
        return getattr(apps.get_app_config('exchange'), name)


class ExchangeRateView(ExchangeServiceMixin, View):
    """
    get a daily rate series, filling gaps from the provider
    """

    def get(self, request):
        try:
            start_date = request.GET.get('startDate')
            if not start_date:
                raise ValidationError('startDate parameter is required')

            reconciler = self.service('reconciler')
            now = reconciler.clock()

            base_currency = (request.GET.get('base') or 'USD').strip().upper()
            end_date = request.GET.get('endDate')  # empty means today
            query = DateRangeQuery(
                start_date=parse_date(start_date, 'startDate'),
                end_date=parse_date(end_date, 'endDate') if end_date else now.date(),
                base_currency=base_currency,
                target_currencies=parse_symbols(request.GET.get('symbols', '')),
            )

            deadline = now + timedelta(seconds=settings.EXCHANGE_RATE_RECONCILE_TIMEOUT)
            result = reconciler.reconcile(query, deadline=deadline)
            return JsonResponse(result.as_dict())

        except ValidationError as e:
            return error_response(str(e), 400)
        except StoreError as e:
            return error_response(f'Database error: {str(e)}', 500)
        except UpstreamError as e:
            return error_response(f'API request failed: {str(e)}', 502)


class ExchangeRateHistoryView(ExchangeServiceMixin, View):
    """
    get the last N days of one currency pair for charting
    """

    def get(self, request):
        try:
            base_currency = request.GET.get('base', '').strip().upper()
            requested = [s.strip().upper() for s in request.GET.get('symbols', '').split(',') if s.strip()]
            if not base_currency or not requested:
                raise ValidationError('Base and symbols are required')

            try:
                days = int(request.GET.get('days', '7'))
            except ValueError:
                raise ValidationError('days must be an integer') from None
            if not 1 <= days <= 365:
                raise ValidationError('days must be between 1 and 365')

            reconciler = self.service('reconciler')
            now = reconciler.clock()
            query = DateRangeQuery(
                start_date=now.date() - timedelta(days=days - 1),
                end_date=now.date(),
                base_currency=base_currency,
                target_currencies=frozenset(requested),
            )
            deadline = now + timedelta(seconds=settings.EXCHANGE_RATE_RECONCILE_TIMEOUT)
            result = reconciler.reconcile(query, deadline=deadline)

            # chart series follows the first requested symbol
            symbol = requested[0]
            data = [
                {'date': daily.date.isoformat(), 'rate': daily.rates[symbol]}
                for daily in result.rates
                if symbol in daily.rates
            ]
            return JsonResponse({
                'base': base_currency,
                'symbols': symbol,
                'days': days,
                'data': data,
            })

        except ValidationError as e:
            return error_response(str(e), 400)
        except StoreError as e:
            return error_response(f'Database error: {str(e)}', 500)
        except UpstreamError as e:
            return error_response(f'API request failed: {str(e)}', 502)


class LiveRateView(ExchangeServiceMixin, View):
    """
    get the latest rate for one pair
    """

    def get(self, request):
        base_currency = request.GET.get('base', '').strip()
        target_currency = request.GET.get('target', '').strip()
        if not base_currency or not target_currency:
            return error_response('base and target are required', 400)

        skip_cache = request.GET.get('skipCache', '').lower() in TRUTHY

        try:
            live_rate = self.service('live_rate_cache').get_rate(
                base_currency, target_currency, bypass_cache=skip_cache
            )
        except ValidationError as e:
            return error_response(str(e), 400)
        except UpstreamError as e:
            logger.error(f"Live exchange rate lookup failed for {base_currency}: {str(e)}")
            return error_response('Failed to fetch live exchange rates', 502)

        return JsonResponse(live_rate.as_dict())


class SyncTriggerView(ExchangeServiceMixin, View):
    """
    run the daily rate sync, called by an external scheduler
    """

    def get(self, request):
        secret = settings.CRON_SECRET
        auth_header = request.headers.get('Authorization', '')
        if not secret or not hmac.compare_digest(auth_header.encode(), f'Bearer {secret}'.encode()):
            return error_response('Unauthorized', 401)

        report = sync_latest_rates(
            store=self.service('rate_store'),
            client=self.service('rate_client'),
        )
        return JsonResponse({'success': True, **report})
