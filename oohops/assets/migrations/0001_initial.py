# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='MediaAsset',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('media_asset_code', models.CharField(max_length=50)),
                ('media_type', models.CharField(max_length=100)),
                ('category', models.CharField(choices=[('OOH', 'OOH'), ('DOOH', 'DOOH'), ('Transit', 'Transit')], default='OOH', max_length=20)),
                ('city', models.CharField(max_length=100)),
                ('area', models.CharField(max_length=200)),
                ('location', models.CharField(max_length=500)),
                ('district', models.CharField(blank=True, max_length=100)),
                ('state', models.CharField(blank=True, max_length=100)),
                ('direction', models.CharField(blank=True, max_length=100)),
                ('illumination_type', models.CharField(choices=[('Non-Lit', 'Non-Lit'), ('Front-Lit', 'Front-Lit'), ('Back-Lit', 'Back-Lit'), ('Digital', 'Digital')], default='Non-Lit', max_length=20)),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('dimensions', models.CharField(max_length=50)),
                ('is_multi_face', models.BooleanField(default=False)),
                ('faces', models.JSONField(blank=True, default=list)),
                ('total_sqft', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('card_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('base_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('printing_rate_default', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('mounting_rate_default', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('status', models.CharField(choices=[('Available', 'Available'), ('Booked', 'Booked'), ('Blocked', 'Blocked'), ('Maintenance', 'Maintenance'), ('Expired', 'Expired')], default='Available', max_length=20)),
                ('ownership', models.CharField(choices=[('own', 'Own'), ('rented', 'Rented')], default='own', max_length=10)),
                ('booked_from', models.DateField(blank=True, null=True)),
                ('booked_to', models.DateField(blank=True, null=True)),
                ('is_public', models.BooleanField(default=True)),
                ('qr_code', models.ImageField(blank=True, null=True, upload_to='qr_codes/')),
                ('image', models.ImageField(blank=True, null=True, upload_to='assets/')),
                ('search_tokens', models.JSONField(blank=True, default=list)),
                ('search_text', models.TextField(blank=True, default='')),
                ('duplicate_group_id', models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ('unique_service_number', models.CharField(blank=True, max_length=50, null=True)),
                ('service_number', models.CharField(blank=True, max_length=50, null=True)),
                ('consumer_name', models.CharField(blank=True, max_length=200, null=True)),
                ('ero', models.CharField(blank=True, max_length=100, null=True)),
                ('section_name', models.CharField(blank=True, max_length=100, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='media_assets', to='core.company')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_assets', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'media_assets',
                'ordering': ['media_asset_code'],
                'unique_together': {('company', 'media_asset_code')},
            },
        ),
    ]
