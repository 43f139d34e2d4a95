import uuid

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
            name='Folder',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('color', models.CharField(blank=True, default='', help_text='Hex color code for UI display (e.g., #FF5733)', max_length=7)),
                ('storage_prefix', models.CharField(help_text='Container path in object storage', max_length=1024)),
                ('is_public', models.BooleanField(default=False)),
                ('public_link', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='children', to='drive.folder')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='folders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Folder',
                'verbose_name_plural': 'Folders',
                'ordering': ['name'],
                'base_manager_name': 'all_objects',
                'indexes': [
                    models.Index(fields=['user', 'parent'], name='folders_user_parent_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('is_deleted', False)), fields=('user', 'parent', 'name'), name='folders_active_sibling_name_unique'),
                    models.UniqueConstraint(condition=models.Q(('is_deleted', False), ('parent__isnull', True)), fields=('user', 'name'), name='folders_active_root_name_unique'),
                ],
            },
            managers=[
                ('all_objects', models.Manager()),
            ],
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('original_name', models.CharField(help_text='Filename as uploaded', max_length=255)),
                ('extension', models.CharField(blank=True, default='', help_text='Lowercase extension without dot', max_length=16)),
                ('description', models.TextField(blank=True, default='')),
                ('mime_type', models.CharField(max_length=255)),
                ('size_bytes', models.BigIntegerField(help_text='File size in bytes')),
                ('checksum_sha256', models.CharField(db_index=True, help_text='SHA256 hash for integrity verification', max_length=64)),
                ('storage_key', models.CharField(help_text='Object key in storage', max_length=1024, unique=True)),
                ('is_public', models.BooleanField(default=False)),
                ('public_link', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('download_count', models.PositiveIntegerField(default=0)),
                ('last_accessed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('folder', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='files', to='drive.folder')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-created_at'],
                'base_manager_name': 'all_objects',
                'indexes': [
                    models.Index(fields=['user', 'folder'], name='files_user_folder_idx'),
                    models.Index(fields=['mime_type'], name='files_mime_type_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('is_deleted', False)), fields=('user', 'folder', 'name', 'extension'), name='files_active_folder_name_unique'),
                    models.UniqueConstraint(condition=models.Q(('folder__isnull', True), ('is_deleted', False)), fields=('user', 'name', 'extension'), name='files_active_root_name_unique'),
                    models.CheckConstraint(condition=models.Q(('size_bytes__gte', 0)), name='files_size_bytes_non_negative'),
                ],
            },
            managers=[
                ('all_objects', models.Manager()),
            ],
        ),
    ]
