from django.apps import AppConfig


class ExchangeConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'exchange'

    def ready(self):
        from .cache_utils import LiveRateCache
        from .db_utils import RateStore
        from .provider import ExchangeRateApiClient
        from .reconciler import GapFillReconciler

        # one client and one live cache per process, shared by every request
        self.rate_client = ExchangeRateApiClient.from_settings()
        self.rate_store = RateStore()
        self.live_rate_cache = LiveRateCache(self.rate_client)
        self.reconciler = GapFillReconciler(self.rate_store, self.rate_client)
