from django.conf import settings
from django.db import models
from django.utils import timezone


class UserTransaction(models.Model):
    """Manually logged currency exchange."""

    class TransactionType(models.TextChoices):
        BUY = 'buy'
        SELL = 'sell'
        TRANSFER = 'transfer'
        EXCHANGE = 'exchange'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='fx_transactions')
    date = models.DateField()
    base_currency = models.CharField(max_length=3)
    target_currency = models.CharField(max_length=3)
    base_amount = models.DecimalField(max_digits=18, decimal_places=4)
    target_amount = models.DecimalField(max_digits=18, decimal_places=4)
    exchange_rate = models.DecimalField(max_digits=18, decimal_places=8)
    transaction_type = models.CharField(max_length=10, choices=TransactionType.choices)
    description = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'user_transactions'
        indexes = [
            models.Index(fields=['user', 'date'], name='user_txn_user_date_idx'),
        ]
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.date} {self.transaction_type} {self.base_amount} {self.base_currency} -> {self.target_currency}"

    def as_dict(self):
        return {
            'id': self.pk,
            'date': self.date.isoformat(),
            'baseCurrency': self.base_currency,
            'targetCurrency': self.target_currency,
            'baseAmount': float(self.base_amount),
            'targetAmount': float(self.target_amount),
            'exchangeRate': float(self.exchange_rate),
            'transactionType': self.transaction_type,
            'description': self.description,
            'createdAt': self.created_at.isoformat(),
        }
