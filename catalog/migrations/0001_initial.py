import catalog.utils
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.CharField(default=catalog.utils.generate_product_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('price', models.PositiveIntegerField(default=0, help_text='Price in minor currency units (paise)')),
                ('stock', models.PositiveIntegerField(default=0)),
                ('track_inventory_by_size', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ('title',),
            },
        ),
        migrations.CreateModel(
            name='SizeStock',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=16)),
                ('qty', models.PositiveIntegerField(default=0)),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='size_inventory', to='catalog.product')),
            ],
            options={
                'ordering': ('product', 'position', 'id'),
            },
        ),
        migrations.AddConstraint(
            model_name='sizestock',
            constraint=models.UniqueConstraint(fields=('product', 'code'), name='uniq_size_per_product'),
        ),
    ]
