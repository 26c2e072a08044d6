from django.db import migrations

from booking.maintenance import add_overlap_exclusion, drop_overlap_exclusion


def forwards(apps, schema_editor):
    add_overlap_exclusion(schema_editor)


def backwards(apps, schema_editor):
    drop_overlap_exclusion(schema_editor)


class Migration(migrations.Migration):

    dependencies = [
        ('booking', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(forwards, backwards),
    ]
