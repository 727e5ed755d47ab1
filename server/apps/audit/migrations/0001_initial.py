import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('source_address', models.CharField(help_text='Client IP address (first X-Forwarded-For hop)', max_length=64)),
                ('client_signature', models.CharField(help_text='Client User-Agent string', max_length=512)),
                ('file_id', models.UUIDField(blank=True, db_index=True, null=True)),
                ('event_kind', models.CharField(choices=[('DOWNLOAD_OK', 'Download succeeded'), ('NOT_FOUND', 'File not found'), ('EXPIRED', 'File expired'), ('RATE_LIMITED', 'Rate limited'), ('AUTH_FAILED', 'Authentication failed'), ('UPLOAD_OK', 'Upload succeeded'), ('UPLOAD_FAILED', 'Upload failed')], db_index=True, max_length=32)),
                ('detail', models.JSONField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Audit Event',
                'verbose_name_plural': 'Audit Events',
                'ordering': ['-timestamp'],
            },
        ),
    ]
