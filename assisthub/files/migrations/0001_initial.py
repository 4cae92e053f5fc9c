# Generated manually
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
            name='FileAttachment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('file', models.FileField(max_length=500, upload_to='attachments/%Y/%m/')),
                ('storage_path', models.CharField(db_index=True, max_length=500)),
                ('content_type', models.CharField(blank=True, max_length=100)),
                ('size', models.PositiveBigIntegerField(default=0)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('linked_type', models.CharField(choices=[('project', 'Progetto'), ('client', 'Cliente'), ('team', 'Team'), ('user', 'Utente')], max_length=10)),
                ('linked_id', models.PositiveBigIntegerField()),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'file_attachments',
                'ordering': ['-uploaded_at'],
                'indexes': [models.Index(fields=['linked_type', 'linked_id'], name='files_link_idx')],
            },
        ),
    ]
