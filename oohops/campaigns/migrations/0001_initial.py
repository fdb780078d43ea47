# Generated manually
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('clients', '0001_initial'),
        ('assets', '0001_initial'),
        ('plans', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Campaign',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('campaign_code', models.CharField(max_length=30)),
                ('campaign_name', models.CharField(max_length=200)),
                ('status', models.CharField(choices=[('Draft', 'Draft'), ('Upcoming', 'Upcoming'), ('Running', 'Running'), ('Completed', 'Completed'), ('Cancelled', 'Cancelled'), ('Archived', 'Archived')], default='Draft', max_length=20)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('gst_percent', models.DecimalField(decimal_places=2, default=Decimal('18.00'), max_digits=5)),
                ('manual_discount_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('billing_cycle', models.CharField(choices=[('one_time', 'One Time'), ('monthly', 'Monthly')], default='one_time', max_length=20)),
                ('display_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('printing_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('mounting_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('gross_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('taxable_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('gst_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('grand_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('total_assets', models.PositiveIntegerField(default=0)),
                ('public_token', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('notes', models.TextField(blank=True)),
                ('proofs_notified_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='campaigns', to='clients.client')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='campaigns', to='core.company')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_campaigns', to=settings.AUTH_USER_MODEL)),
                ('plan', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='campaigns', to='plans.plan')),
            ],
            options={
                'db_table': 'campaigns',
                'ordering': ['-start_date', '-created_at'],
                'unique_together': {('company', 'campaign_code')},
            },
        ),
        migrations.CreateModel(
            name='CampaignAsset',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('location', models.CharField(blank=True, max_length=500)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('area', models.CharField(blank=True, max_length=200)),
                ('media_type', models.CharField(blank=True, max_length=100)),
                ('dimensions', models.CharField(blank=True, max_length=50)),
                ('total_sqft', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('illumination_type', models.CharField(blank=True, max_length=20)),
                ('card_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('negotiated_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('printing_charges', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('mounting_charges', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('booking_start_date', models.DateField()),
                ('booking_end_date', models.DateField()),
                ('booked_days', models.PositiveIntegerField(default=1)),
                ('billing_mode', models.CharField(choices=[('FULL_MONTH', 'Full Month'), ('PRORATA_30', 'Pro-rata (30-day)'), ('DAILY', 'Daily')], default='PRORATA_30', max_length=20)),
                ('daily_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('rent_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('installation_status', models.CharField(choices=[('Pending', 'Pending'), ('Assigned', 'Assigned'), ('Installed', 'Installed'), ('PhotoUploaded', 'Photo Uploaded'), ('Verified', 'Verified'), ('Completed', 'Completed'), ('Failed', 'Failed')], default='Pending', max_length=20)),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='campaign_assets', to='assets.mediaasset')),
                ('campaign', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='campaign_assets', to='campaigns.campaign')),
                ('mounter', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='mounting_tasks', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'campaign_assets',
                'ordering': ['campaign', 'id'],
                'unique_together': {('campaign', 'asset')},
            },
        ),
        migrations.CreateModel(
            name='ProofPhoto',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('photo_type', models.CharField(choices=[('newspaper', 'Newspaper'), ('geotag', 'Geo-tagged'), ('traffic1', 'Traffic View 1'), ('traffic2', 'Traffic View 2'), ('other', 'Other')], default='other', max_length=20)),
                ('image', models.ImageField(upload_to='proofs/%Y/%m/')),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('client_upload_id', models.CharField(blank=True, max_length=64, null=True)),
                ('approval_status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('rejection_reason', models.TextField(blank=True)),
                ('uploaded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('campaign_asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='photos', to='campaigns.campaignasset')),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reviewed_proof_photos', to=settings.AUTH_USER_MODEL)),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='proof_photos', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'proof_photos',
                'ordering': ['-uploaded_at'],
                'constraints': [models.UniqueConstraint(fields=('campaign_asset', 'client_upload_id'), name='unique_proof_client_upload')],
            },
        ),
    ]
