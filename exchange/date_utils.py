"""Calendar helpers shared by the reconciler, the sync job and the views."""

from datetime import date, datetime, timedelta, timezone

from .exceptions import ValidationError


def utc_now():
    """Default clock: aware UTC ``datetime``."""
    return datetime.now(timezone.utc)


def parse_date(value, field='date'):
    """Parse an ISO ``YYYY-MM-DD`` string, raising ``ValidationError`` on bad input."""

    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format") from None


def date_range(start, end):
    """Yield every calendar day in the inclusive window ``[start, end]``."""

    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
