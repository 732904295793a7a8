# Generated manually for standalone django-barcodes package

import django.db.models.functions.text
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("django_barcodes", "0001_initial"),
    ]

    operations = [
        migrations.RemoveConstraint(
            model_name="coderecord",
            name="barcodes_unique_code_per_module",
        ),
        migrations.AddConstraint(
            model_name="coderecord",
            constraint=models.UniqueConstraint(
                models.F("module"),
                django.db.models.functions.text.Upper("code"),
                name="barcodes_unique_code_ci_per_module",
            ),
        ),
    ]
