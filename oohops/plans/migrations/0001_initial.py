# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('clients', '0001_initial'),
        ('assets', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Plan',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('plan_code', models.CharField(max_length=30)),
                ('plan_name', models.CharField(max_length=200)),
                ('plan_type', models.CharField(choices=[('Quotation', 'Quotation'), ('Proposal', 'Proposal'), ('Estimate', 'Estimate')], default='Quotation', max_length=20)),
                ('status', models.CharField(choices=[('Draft', 'Draft'), ('Pending Approval', 'Pending Approval'), ('Approved', 'Approved'), ('Rejected', 'Rejected'), ('Sent', 'Sent'), ('Converted', 'Converted')], default='Draft', max_length=20)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('gst_percent', models.DecimalField(decimal_places=2, default=Decimal('18.00'), max_digits=5)),
                ('manual_discount_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('display_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('printing_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('mounting_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('gross_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('taxable_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('gst_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('grand_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('total_assets', models.PositiveIntegerField(default=0)),
                ('share_token', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('notes', models.TextField(blank=True)),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='plans', to='clients.client')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='plans', to='core.company')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_plans', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'plans',
                'ordering': ['-created_at'],
                'unique_together': {('company', 'plan_code')},
            },
        ),
        migrations.CreateModel(
            name='PlanItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('card_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('base_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('sales_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('printing_charges', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('mounting_charges', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('booked_days', models.PositiveIntegerField(default=1)),
                ('billing_mode', models.CharField(choices=[('FULL_MONTH', 'Full Month'), ('PRORATA_30', 'Pro-rata (30-day)'), ('DAILY', 'Daily')], default='PRORATA_30', max_length=20)),
                ('daily_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('rent_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('discount_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('discount_percent', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=7)),
                ('profit_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('profit_percent', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=9)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='plan_items', to='assets.mediaasset')),
                ('plan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='plans.plan')),
            ],
            options={
                'db_table': 'plan_items',
                'ordering': ['id'],
                'unique_together': {('plan', 'asset')},
            },
        ),
        migrations.CreateModel(
            name='PlanApproval',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('level', models.CharField(choices=[('L1', 'Level 1'), ('L2', 'Level 2'), ('L3', 'Level 3')], max_length=5)),
                ('required_role', models.CharField(max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('comments', models.TextField(blank=True)),
                ('acted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('approver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='plan_approvals', to=settings.AUTH_USER_MODEL)),
                ('plan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='approvals', to='plans.plan')),
            ],
            options={
                'db_table': 'plan_approvals',
                'ordering': ['plan', 'level'],
                'unique_together': {('plan', 'level')},
            },
        ),
    ]
