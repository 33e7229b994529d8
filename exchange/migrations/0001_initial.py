from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ExchangeRatePair',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('base_currency', models.CharField(max_length=3)),
                ('target_currency', models.CharField(max_length=3)),
                ('rate', models.DecimalField(decimal_places=8, max_digits=18)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'db_table': 'exchange_rate_pairs',
                'ordering': ['date', 'target_currency'],
                'indexes': [
                    models.Index(fields=['base_currency', 'date'], name='rate_pair_base_date_idx'),
                    models.Index(fields=['created_at'], name='rate_pair_created_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        fields=('date', 'base_currency', 'target_currency'),
                        name='unique_rate_pair_per_day',
                    ),
                ],
            },
        ),
    ]
