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
            name='AbbreviationSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('priority', models.CharField(choices=[('normal', 'Normal'), ('medium', 'Medium'), ('high', 'High')], max_length=10)),
                ('year', models.PositiveSmallIntegerField()),
                ('month', models.PositiveSmallIntegerField()),
                ('last_value', models.PositiveIntegerField(default=0)),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(fields=('priority', 'year', 'month'), name='unique_abbreviation_sequence'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Task',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('abbreviation', models.CharField(editable=False, max_length=255, unique=True)),
                ('description', models.TextField(max_length=2000)),
                ('due_date', models.DateField(default=django.utils.timezone.localdate)),
                ('priority', models.CharField(choices=[('normal', 'Normal'), ('medium', 'Medium'), ('high', 'High')], default='normal', max_length=10)),
                ('state', models.CharField(choices=[('open', 'Open'), ('on_hold', 'On Hold'), ('completed', 'Completed')], default='open', max_length=20)),
                ('on_hold_reason', models.TextField(blank=True, default='')),
                ('requested_date', models.DateField(blank=True, null=True)),
                ('requested_date_reason', models.TextField(blank=True, null=True)),
                ('is_request_date_extension_approved', models.BooleanField(blank=True, null=True)),
                ('remarks', models.CharField(blank=True, default='', max_length=500)),
                ('files', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='assigned_tasks', to=settings.AUTH_USER_MODEL)),
                ('created_user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='created_tasks', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'constraints': [
                    models.CheckConstraint(
                        condition=(
                            (models.Q(('state', 'on_hold')) & ~models.Q(('on_hold_reason', '')))
                            | (~models.Q(('state', 'on_hold')) & models.Q(('on_hold_reason', '')))
                        ),
                        name='task_on_hold_reason_matches_state',
                    ),
                    models.CheckConstraint(
                        condition=(
                            models.Q(('requested_date__isnull', True), ('requested_date_reason__isnull', True))
                            | models.Q(('requested_date__isnull', False), ('requested_date_reason__isnull', False))
                        ),
                        name='task_extension_request_complete',
                    ),
                ],
            },
        ),
    ]
