from django.db import models
from django.utils import timezone


class ExchangeRatePair(models.Model):
    """Daily rate for one base/target currency pair."""
    date = models.DateField()  # Rate date
    base_currency = models.CharField(max_length=3)
    target_currency = models.CharField(max_length=3)
    rate = models.DecimalField(max_digits=18, decimal_places=8)
    created_at = models.DateTimeField(default=timezone.now)  # Persist time

    class Meta:
        db_table = 'exchange_rate_pairs'
        indexes = [
            models.Index(fields=['base_currency', 'date'], name='rate_pair_base_date_idx'),
            models.Index(fields=['created_at'], name='rate_pair_created_idx'),
        ]
        ordering = ['date', 'target_currency']
        constraints = [
            models.UniqueConstraint(
                fields=['date', 'base_currency', 'target_currency'],
                name='unique_rate_pair_per_day',
            ),
        ]

    def __str__(self):
        return f"{self.base_currency}/{self.target_currency}: {self.rate} ({self.date})"


class ExchangeRateFetch(models.Model):
    """A provider table that was fully stored for one base on one day."""
    date = models.DateField()
    base_currency = models.CharField(max_length=3)
    target_count = models.PositiveIntegerField(default=0)
    fetched_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'exchange_rate_fetches'
        ordering = ['date']
        constraints = [
            models.UniqueConstraint(
                fields=['date', 'base_currency'],
                name='unique_rate_fetch_per_day',
            ),
        ]

    def __str__(self):
        return f"{self.base_currency} fetched for {self.date} ({self.target_count} targets)"
