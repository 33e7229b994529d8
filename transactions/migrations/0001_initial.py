from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='UserTransaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('base_currency', models.CharField(max_length=3)),
                ('target_currency', models.CharField(max_length=3)),
                ('base_amount', models.DecimalField(decimal_places=4, max_digits=18)),
                ('target_amount', models.DecimalField(decimal_places=4, max_digits=18)),
                ('exchange_rate', models.DecimalField(decimal_places=8, max_digits=18)),
                ('transaction_type', models.CharField(
                    choices=[('buy', 'Buy'), ('sell', 'Sell'), ('transfer', 'Transfer'), ('exchange', 'Exchange')],
                    max_length=10,
                )),
                ('description', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='fx_transactions',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'db_table': 'user_transactions',
                'ordering': ['-date', '-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'date'], name='user_txn_user_date_idx'),
                ],
            },
        ),
    ]
