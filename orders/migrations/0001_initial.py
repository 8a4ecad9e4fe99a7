import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, default='', max_length=150)),
                ('phone', models.CharField(blank=True, default='', max_length=20)),
                ('address', models.CharField(blank=True, default='', max_length=255)),
                ('city', models.CharField(max_length=100)),
                ('state', models.CharField(max_length=100)),
                ('pincode', models.CharField(max_length=8, validators=[django.core.validators.RegexValidator('^[0-9]{4,8}$', 'Invalid pincode')])),
                ('payment_method', models.CharField(default='Razorpay', max_length=32)),
                ('items', models.JSONField(default=list)),
                ('total', models.PositiveBigIntegerField(default=0, help_text='Minor currency units (paise)')),
                ('currency', models.CharField(default='INR', max_length=8)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid'), ('shipped', 'Shipped'), ('delivered', 'Delivered'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=12)),
                ('upi_txn_id', models.CharField(blank=True, db_index=True, default='', max_length=128)),
                ('upi_payer_name', models.CharField(blank=True, default='', max_length=150)),
                ('razorpay_order_id', models.CharField(blank=True, db_index=True, default='', max_length=64)),
                ('razorpay_payment_id', models.CharField(blank=True, default='', max_length=64)),
                ('applied_coupon', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-created_at', '-id'),
            },
        ),
    ]
