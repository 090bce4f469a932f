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
            name='Entry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('kind', models.CharField(choices=[('file', 'File'), ('folder', 'Folder')], max_length=6)),
                ('size_bytes', models.BigIntegerField(default=0, help_text='Content length in bytes, 0 for folders')),
                ('mime_type', models.CharField(blank=True, help_text='Content type of a file, empty for folders', max_length=255, null=True)),
                ('virtual_path', models.TextField(help_text='Path shown to the user, e.g. /Documents/report.pdf')),
                ('blob_key', models.CharField(blank=True, help_text='Object key in the blob store, empty for folders', max_length=1024, null=True)),
                ('is_starred', models.BooleanField(default=False)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('is_shared', models.BooleanField(default=False)),
                ('share_token', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='drive_entries', to=settings.AUTH_USER_MODEL)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='children', to='drive.entry')),
            ],
            options={
                'verbose_name': 'Entry',
                'verbose_name_plural': 'Entries',
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['owner', 'parent'], name='drive_owner_parent_idx'),
                    models.Index(fields=['owner', 'kind'], name='drive_owner_kind_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('is_deleted', False), ('kind', 'folder')), fields=('owner', 'parent', 'name'), name='drive_folder_name_unique'),
                    models.UniqueConstraint(condition=models.Q(('is_deleted', False), ('kind', 'folder'), ('parent__isnull', True)), fields=('owner', 'name'), name='drive_root_folder_name_unique'),
                    models.CheckConstraint(condition=models.Q(('kind', 'file'), models.Q(('blob_key__isnull', True), ('mime_type__isnull', True), ('size_bytes', 0)), _connector='OR'), name='drive_folder_has_no_content'),
                    models.CheckConstraint(condition=models.Q(models.Q(('deleted_at__isnull', False), ('is_deleted', True)), models.Q(('deleted_at__isnull', True), ('is_deleted', False)), _connector='OR'), name='drive_deleted_at_matches_flag'),
                    models.CheckConstraint(condition=models.Q(models.Q(('is_shared', True), ('share_token__isnull', False)), models.Q(('is_shared', False), ('share_token__isnull', True)), _connector='OR'), name='drive_share_token_matches_flag'),
                ],
            },
        ),
    ]
