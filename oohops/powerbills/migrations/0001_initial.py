# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('assets', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AssetPowerBill',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('bill_month', models.DateField(help_text='First day of the billed month')),
                ('unique_service_number', models.CharField(blank=True, max_length=50)),
                ('consumer_name', models.CharField(blank=True, max_length=200)),
                ('bill_date', models.DateField(blank=True, null=True)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('bill_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('energy_charges', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('fixed_charges', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('arrears', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_due', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('payment_status', models.CharField(choices=[('Pending', 'Pending'), ('Paid', 'Paid')], default='Pending', max_length=20)),
                ('paid_date', models.DateField(blank=True, null=True)),
                ('payment_reference', models.CharField(blank=True, max_length=100)),
                ('is_anomaly', models.BooleanField(default=False)),
                ('anomaly_type', models.CharField(blank=True, max_length=50)),
                ('anomaly_details', models.JSONField(blank=True, default=dict)),
                ('source', models.CharField(choices=[('manual', 'Manual'), ('fetched', 'Fetched')], default='manual', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='power_bills', to='assets.mediaasset')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='power_bills', to='core.company')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='power_bills', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'asset_power_bills',
                'ordering': ['-bill_month', 'asset'],
                'unique_together': {('asset', 'bill_month')},
            },
        ),
        migrations.CreateModel(
            name='PowerBillJob',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('job_type', models.CharField(default='monthly_fetch', max_length=30)),
                ('job_status', models.CharField(choices=[('running', 'Running'), ('completed', 'Completed'), ('failed', 'Failed')], default='running', max_length=20)),
                ('result', models.JSONField(blank=True, default=dict)),
                ('error_message', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('asset', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='power_bill_jobs', to='assets.mediaasset')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='power_bill_jobs', to='core.company')),
            ],
            options={
                'db_table': 'power_bill_jobs',
                'ordering': ['-created_at'],
            },
        ),
    ]
