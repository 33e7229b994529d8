from django.urls import path
from . import views

urlpatterns = [
    path('exchange-rate', views.ExchangeRateView.as_view(), name='exchange_rate'),
    path('exchange-rate/history', views.ExchangeRateHistoryView.as_view(), name='exchange_rate_history'),
    path('exchange-rate/live', views.LiveRateView.as_view(), name='exchange_rate_live'),
    path('cron/exchange-rates', views.SyncTriggerView.as_view(), name='sync_exchange_rates'),
]
