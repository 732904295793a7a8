# Generated manually for standalone django-barcodes package

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


MODULE_CHOICES = [
    ("member", "Member"),
    ("game", "Game"),
    ("book", "Book"),
    ("film", "Film"),
    ("disc", "Disc"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="FormatConfig",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "module",
                    models.CharField(
                        choices=MODULE_CHOICES,
                        help_text="Catalog module whose codes this config renders",
                        max_length=20,
                    ),
                ),
                ("organisation_id", models.CharField(blank=True, default="", max_length=255)),
                ("structure_id", models.CharField(blank=True, default="", max_length=255)),
                ("group_id", models.CharField(blank=True, default="", max_length=255)),
                (
                    "pattern",
                    models.CharField(
                        default="{PREFIX}{SEQ8}",
                        help_text="Token pattern, e.g. '{PREFIX}{YEAR4}{SEQ6}'",
                        max_length=255,
                    ),
                ),
                (
                    "prefix",
                    models.CharField(
                        help_text="Value of the {PREFIX} token, e.g. 'JEU'",
                        max_length=10,
                    ),
                ),
                (
                    "sequence_reset",
                    models.CharField(
                        choices=[
                            ("never", "Never"),
                            ("yearly", "Yearly"),
                            ("monthly", "Monthly"),
                            ("daily", "Daily"),
                        ],
                        default="never",
                        help_text="Calendar period after which the sequence restarts at 1",
                        max_length=10,
                    ),
                ),
                (
                    "current_sequence",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Last sequence number consumed in the current period",
                    ),
                ),
                (
                    "current_period",
                    models.CharField(
                        blank=True,
                        help_text="Period marker (2026, 202610, 20261019); null when never reset",
                        max_length=10,
                        null=True,
                    ),
                ),
                (
                    "burn_cancelled",
                    models.BooleanField(
                        default=False,
                        help_text="Cancelled codes are burned and can never be restored",
                    ),
                ),
                (
                    "locked",
                    models.BooleanField(
                        default=False,
                        help_text="Structural fields are frozen once a lot has been reserved",
                    ),
                ),
                ("locked_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("module", "organisation_id", "structure_id", "group_id"),
                        name="barcodes_unique_format_per_context",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Lot",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "module",
                    models.CharField(choices=MODULE_CHOICES, db_index=True, max_length=20),
                ),
                ("quantity", models.PositiveIntegerField()),
                ("first_code", models.CharField(max_length=50)),
                ("last_code", models.CharField(max_length=50)),
                ("first_sequence", models.PositiveBigIntegerField()),
                ("last_sequence", models.PositiveBigIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("cancelled", "Cancelled")],
                        db_index=True,
                        default="active",
                        max_length=10,
                    ),
                ),
                ("printed_at", models.DateTimeField(blank=True, help_text="First print", null=True)),
                ("reprint_count", models.PositiveIntegerField(default=0)),
                ("used_count", models.PositiveIntegerField(default=0)),
                ("cancelled_count", models.PositiveIntegerField(default=0)),
                (
                    "completed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When every code of the lot had been used (informational)",
                        null=True,
                    ),
                ),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="barcode_lots",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "format_config",
                    models.ForeignKey(
                        blank=True,
                        help_text="Config the codes were rendered with (burn policy source)",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lots",
                        to="django_barcodes.formatconfig",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 1)),
                        name="barcodes_lot_quantity_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            (
                                "used_count__lte",
                                models.F("quantity") - models.F("cancelled_count"),
                            )
                        ),
                        name="barcodes_lot_counters_within_quantity",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CodeRecord",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("module", models.CharField(choices=MODULE_CHOICES, max_length=20)),
                ("code", models.CharField(max_length=50)),
                (
                    "sequence",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Sequence the code was rendered from (null for ad-hoc codes)",
                        null=True,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("reserved", "Reserved"),
                            ("used", "Used"),
                            ("cancelled", "Cancelled"),
                            ("burned", "Burned"),
                        ],
                        default="reserved",
                        max_length=10,
                    ),
                ),
                (
                    "entity_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="ID of the catalog entity holding the code (CharField for UUID support)",
                        max_length=255,
                    ),
                ),
                ("reserved_at", models.DateTimeField(blank=True, null=True)),
                ("used_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "lot",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="codes",
                        to="django_barcodes.lot",
                    ),
                ),
            ],
            options={
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["module", "status"], name="barcodes_code_module_status"),
                    models.Index(fields=["lot", "status"], name="barcodes_code_lot_status"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("module", "code"),
                        name="barcodes_unique_code_per_module",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("status", "used"), ("entity_id", ""), _connector="OR"),
                        name="barcodes_entity_only_when_used",
                    ),
                ],
            },
        ),
    ]
