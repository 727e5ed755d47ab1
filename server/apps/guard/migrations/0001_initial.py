from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='RateLimitWindow',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('policy', models.CharField(max_length=32)),
                ('source_address', models.CharField(max_length=64)),
                ('window_started_at', models.DateTimeField(help_text='Start of the current counting window')),
                ('hits', models.PositiveIntegerField(default=0, help_text='Requests seen in the current window')),
            ],
            options={
                'verbose_name': 'Rate Limit Window',
                'verbose_name_plural': 'Rate Limit Windows',
            },
        ),
        migrations.AddConstraint(
            model_name='ratelimitwindow',
            constraint=models.UniqueConstraint(fields=('policy', 'source_address'), name='guard_policy_source_unique'),
        ),
    ]
