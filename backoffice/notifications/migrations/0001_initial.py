# Generated manually

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('organizations', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category', models.CharField(choices=[('orders', 'Orders'), ('stock', 'Stock'), ('messages', 'Messages')], max_length=20)),
                ('type', models.CharField(choices=[('new_order', 'New Order'), ('delivered', 'Delivered'), ('cancelled', 'Cancelled'), ('status_change', 'Status Change'), ('low_stock', 'Low Stock'), ('out_of_stock', 'Out of Stock'), ('client', 'Client'), ('courier', 'Courier'), ('message', 'Message')], max_length=20)),
                ('title', models.CharField(max_length=255)),
                ('message', models.TextField()),
                ('is_read', models.BooleanField(default=False)),
                ('related_model', models.CharField(blank=True, max_length=50)),
                ('related_id', models.CharField(blank=True, max_length=50)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='notifications_sent', to=settings.AUTH_USER_MODEL)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to='organizations.organization')),
            ],
            options={
                'db_table': 'notifications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['organization', 'is_read'], name='notification_org_read_idx'),
                    models.Index(fields=['organization', 'category'], name='notification_org_cat_idx'),
                ],
            },
        ),
    ]
