import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='EncryptedFile',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('blob', models.FileField(help_text='Ciphertext location in storage', max_length=255, upload_to='')),
                ('iv', models.CharField(help_text='Base64 AES-GCM IV, unique per encryption', max_length=32, unique=True)),
                ('filename', models.CharField(max_length=255)),
                ('mime_type', models.CharField(max_length=255)),
                ('size_bytes', models.BigIntegerField(help_text='Ciphertext size in bytes')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('expires_at', models.DateTimeField(db_index=True)),
                ('download_count', models.PositiveIntegerField(default=0)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='encrypted_files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Encrypted File',
                'verbose_name_plural': 'Encrypted Files',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['owner', '-created_at'], name='sharing_owner_recent_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('expires_at__gte', models.F('created_at'))), name='sharing_expiry_after_creation'),
                    models.CheckConstraint(condition=models.Q(('size_bytes__gte', 0)), name='sharing_size_non_negative'),
                ],
            },
        ),
    ]
