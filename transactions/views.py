from decimal import Decimal, InvalidOperation
import json
import logging

from django.db import DatabaseError
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import ensure_csrf_cookie

from exchange.date_utils import parse_date
from exchange.exceptions import ValidationError
from exchange.views import error_response

from .models import UserTransaction

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    'date',
    'baseCurrency',
    'targetCurrency',
    'baseAmount',
    'targetAmount',
    'exchangeRate',
    'transactionType',
)


def _currency(value, field):
    code = str(value).strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(f"{field} must be a 3-letter currency code")
    return code


def _positive_decimal(value, field, model_field):
    """Positive amount rounded to the column's scale, rejected when it would not fit the column."""
    column = UserTransaction._meta.get_field(model_field)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field} must be positive")

    step = Decimal(1).scaleb(-column.decimal_places)
    limit = Decimal(10) ** (column.max_digits - column.decimal_places)
    try:
        amount = amount.quantize(step)
    except InvalidOperation:
        raise ValidationError(f"{field} must be less than {limit}") from None
    if amount >= limit:
        raise ValidationError(f"{field} must be less than {limit}")
    if amount <= 0:
        raise ValidationError(f"{field} must be at least {step:f}")
    return amount


@method_decorator(ensure_csrf_cookie, name='get')
class TransactionListView(View):
    """
    list and record the signed-in user's currency exchanges

    Posting is session authenticated and CSRF checked: a GET hands out the
    csrftoken cookie, which the frontend echoes back in X-CSRFToken.
    """

    def dispatch(self, request, *args, **kwargs):
        if not request.user.is_authenticated:
            return error_response('Unauthorized', 401)
        return super().dispatch(request, *args, **kwargs)

    def get(self, request):
        try:
            query = UserTransaction.objects.filter(user=request.user)

            start_date = request.GET.get('startDate')
            end_date = request.GET.get('endDate')
            base_currency = request.GET.get('baseCurrency')
            target_currency = request.GET.get('targetCurrency')

            if start_date:
                query = query.filter(date__gte=parse_date(start_date, 'startDate'))
            if end_date:
                query = query.filter(date__lte=parse_date(end_date, 'endDate'))
            if base_currency:
                query = query.filter(base_currency=base_currency.upper())
            if target_currency:
                query = query.filter(target_currency=target_currency.upper())

            transactions = [txn.as_dict() for txn in query.order_by('-date', '-created_at')]
            return JsonResponse({'transactions': transactions})

        except ValidationError as e:
            return error_response(str(e), 400)
        except DatabaseError as e:
            logger.error(f"Failed to list transactions: {str(e)}")
            return error_response('Database error', 500)

    def post(self, request):
        try:
            try:
                body = json.loads(request.body or b'{}')
            except ValueError:
                raise ValidationError('Request body must be JSON') from None
            if not isinstance(body, dict):
                raise ValidationError('Request body must be a JSON object')

            missing = [name for name in REQUIRED_FIELDS if body.get(name) in (None, '')]
            if missing:
                raise ValidationError(f"Missing required fields: {', '.join(missing)}")

            transaction_type = str(body['transactionType']).lower()
            if transaction_type not in UserTransaction.TransactionType.values:
                raise ValidationError('transactionType is not supported')

            transaction = UserTransaction.objects.create(
                user=request.user,
                date=parse_date(body['date']),
                base_currency=_currency(body['baseCurrency'], 'baseCurrency'),
                target_currency=_currency(body['targetCurrency'], 'targetCurrency'),
                base_amount=_positive_decimal(body['baseAmount'], 'baseAmount', 'base_amount'),
                target_amount=_positive_decimal(body['targetAmount'], 'targetAmount', 'target_amount'),
                exchange_rate=_positive_decimal(body['exchangeRate'], 'exchangeRate', 'exchange_rate'),
                transaction_type=transaction_type,
                description=str(body.get('description') or ''),
            )
            transaction.refresh_from_db()
            return JsonResponse({'transaction': transaction.as_dict()}, status=201)

        except ValidationError as e:
            return error_response(str(e), 400)
        except DatabaseError as e:
            logger.error(f"Failed to record transaction: {str(e)}")
            return error_response('Database error', 500)
