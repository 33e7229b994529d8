class ExchangeRateError(Exception):
    """Base class for exchange rate errors."""


class UpstreamError(ExchangeRateError):
    """Rate provider unreachable, non-2xx, non-JSON or malformed payload."""


class UnsupportedOperation(ExchangeRateError):
    """Requested provider operation is not available (e.g. history on a free plan)."""


class StoreError(ExchangeRateError):
    """Persistence failure in the rate store."""


class ValidationError(ExchangeRateError):
    """Missing or malformed request parameters."""
