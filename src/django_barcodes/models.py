"""FormatConfig, Lot and CodeRecord models for reserved barcodes.

- FormatConfig: How codes of one module are rendered, per context
- Lot: One batch reservation of sequential codes
- CodeRecord: One issued code string and its lifecycle status

Status changes go through django_barcodes.services.ReservationService.
Direct model manipulation bypasses the lot counters and is unsupported.
"""

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.db.models.functions import Upper

from django_barcodes import allocator
from django_barcodes.conf import DEFAULT_PATTERN
from django_barcodes.context import BarcodeContext
from django_barcodes.exceptions import LotCounterMismatchError
from django_barcodes.results import CodeSummary, LotStats


class Module(models.TextChoices):
    MEMBER = 'member', 'Member'
    GAME = 'game', 'Game'
    BOOK = 'book', 'Book'
    FILM = 'film', 'Film'
    DISC = 'disc', 'Disc'


class SequenceReset(models.TextChoices):
    NEVER = allocator.RESET_NEVER, 'Never'
    YEARLY = allocator.RESET_YEARLY, 'Yearly'
    MONTHLY = allocator.RESET_MONTHLY, 'Monthly'
    DAILY = allocator.RESET_DAILY, 'Daily'


class TimeStampedModel(models.Model):
    """Abstract base model with created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# =============================================================================
# FormatConfig
# =============================================================================

class FormatConfigQuerySet(models.QuerySet):
    """Custom queryset for FormatConfig model."""

    def for_module(self, module):
        return self.filter(module=module)

    def for_context(self, context):
        """Return configs scoped exactly to the given context."""
        return self.filter(**BarcodeContext.normalize(context).as_filter())


class FormatConfig(TimeStampedModel):
    """
    Code format of one module within one context.

    Created lazily with defaults on first access. Once the first lot is
    reserved the config is locked: pattern, prefix and sequence_reset
    can no longer change so printed labels stay decodable.

    Usage:
        config = FormatConfig.objects.create(module='game', prefix='JEU')
        config.render(1)  # 'JEU00000001'
    """

    STRUCTURAL_FIELDS = frozenset({'pattern', 'prefix', 'sequence_reset'})
    EDITABLE_FIELDS = STRUCTURAL_FIELDS | {'burn_cancelled'}

    module = models.CharField(
        max_length=20,
        choices=Module.choices,
        help_text="Catalog module whose codes this config renders",
    )

    # Context ids - CharField for UUID support, '' means unset
    organisation_id = models.CharField(max_length=255, blank=True, default='')
    structure_id = models.CharField(max_length=255, blank=True, default='')
    group_id = models.CharField(max_length=255, blank=True, default='')

    pattern = models.CharField(
        max_length=255,
        default=DEFAULT_PATTERN,
        help_text="Token pattern, e.g. '{PREFIX}{YEAR4}{SEQ6}'",
    )
    prefix = models.CharField(
        max_length=10,
        help_text="Value of the {PREFIX} token, e.g. 'JEU'",
    )
    sequence_reset = models.CharField(
        max_length=10,
        choices=SequenceReset.choices,
        default=SequenceReset.NEVER,
        help_text="Calendar period after which the sequence restarts at 1",
    )
    current_sequence = models.PositiveBigIntegerField(
        default=0,
        help_text="Last sequence number consumed in the current period",
    )
    current_period = models.CharField(
        max_length=10,
        null=True,
        blank=True,
        help_text="Period marker (2026, 202610, 20261019); null when never reset",
    )
    burn_cancelled = models.BooleanField(
        default=False,
        help_text="Cancelled codes are burned and can never be restored",
    )
    locked = models.BooleanField(
        default=False,
        help_text="Structural fields are frozen once a lot has been reserved",
    )
    locked_at = models.DateTimeField(null=True, blank=True)

    objects = FormatConfigQuerySet.as_manager()

    class Meta:
        app_label = 'django_barcodes'
        constraints = [
            models.UniqueConstraint(
                fields=['module', 'organisation_id', 'structure_id', 'group_id'],
                name='barcodes_unique_format_per_context',
            ),
        ]

    def __str__(self):
        return f"{self.module} ({self.context}): {self.pattern}"

    @property
    def context(self) -> BarcodeContext:
        return BarcodeContext(
            organisation_id=self.organisation_id,
            structure_id=self.structure_id,
            group_id=self.group_id,
        )

    def render(self, sequence: int, when=None) -> str:
        """Render the code for a sequence number with this config's pattern."""
        return allocator.render(self.pattern, sequence, self.prefix, when)


# =============================================================================
# Lot
# =============================================================================

class LotStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    CANCELLED = 'cancelled', 'Cancelled'


class LotQuerySet(models.QuerySet):
    """Custom queryset for Lot model."""

    def for_module(self, module):
        return self.filter(module=module)

    def active(self):
        return self.filter(status=LotStatus.ACTIVE)

    def cancelled(self):
        return self.filter(status=LotStatus.CANCELLED)


class Lot(TimeStampedModel):
    """
    A batch of sequential codes reserved in one transaction.

    used_count and cancelled_count are denormalized and updated in the
    same transaction as the code transitions that move them.
    """

    module = models.CharField(max_length=20, choices=Module.choices, db_index=True)
    format_config = models.ForeignKey(
        FormatConfig,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='lots',
        help_text="Config the codes were rendered with (burn policy source)",
    )
    quantity = models.PositiveIntegerField()
    first_code = models.CharField(max_length=50)
    last_code = models.CharField(max_length=50)
    first_sequence = models.PositiveBigIntegerField()
    last_sequence = models.PositiveBigIntegerField()
    status = models.CharField(
        max_length=10,
        choices=LotStatus.choices,
        default=LotStatus.ACTIVE,
        db_index=True,
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='barcode_lots',
    )

    printed_at = models.DateTimeField(null=True, blank=True, help_text="First print")
    reprint_count = models.PositiveIntegerField(default=0)

    used_count = models.PositiveIntegerField(default=0)
    cancelled_count = models.PositiveIntegerField(default=0)
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When every code of the lot had been used (informational)",
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = LotQuerySet.as_manager()

    class Meta:
        app_label = 'django_barcodes'
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=1),
                name='barcodes_lot_quantity_positive',
            ),
            models.CheckConstraint(
                condition=Q(used_count__lte=F('quantity') - F('cancelled_count')),
                name='barcodes_lot_counters_within_quantity',
            ),
        ]

    def __str__(self):
        return f"Lot {self.pk} ({self.module}): {self.first_code}..{self.last_code}"

    @property
    def available_count(self) -> int:
        return self.quantity - self.used_count - self.cancelled_count

    @property
    def is_complete(self) -> bool:
        return self.used_count == self.quantity

    @property
    def percent_used(self) -> int:
        return round(self.used_count * 100 / self.quantity) if self.quantity else 0

    def check_counters(self) -> None:
        """
        Raise if the counters left their valid range.

        Counters are never corrected silently.
        """
        if (
            self.used_count < 0
            or self.cancelled_count < 0
            or self.used_count + self.cancelled_count > self.quantity
        ):
            raise LotCounterMismatchError(
                self.pk, self.used_count, self.cancelled_count, self.quantity
            )

    def stats(self):
        """Return a LotStats snapshot of this lot."""
        return LotStats(
            id=self.pk,
            module=self.module,
            quantity=self.quantity,
            first_code=self.first_code,
            last_code=self.last_code,
            status=self.status,
            created_at=self.created_at,
            printed_at=self.printed_at,
            reprint_count=self.reprint_count,
            used_count=self.used_count,
            cancelled_count=self.cancelled_count,
            available_count=self.available_count,
            percent_used=self.percent_used,
            is_complete=self.is_complete,
        )


# =============================================================================
# CodeRecord
# =============================================================================

class CodeStatus(models.TextChoices):
    RESERVED = 'reserved', 'Reserved'
    USED = 'used', 'Used'
    CANCELLED = 'cancelled', 'Cancelled'
    BURNED = 'burned', 'Burned'


class CodeRecordQuerySet(models.QuerySet):
    """Custom queryset for CodeRecord model."""

    def for_module(self, module):
        return self.filter(module=module)

    def reserved(self):
        return self.filter(status=CodeStatus.RESERVED)

    def used(self):
        return self.filter(status=CodeStatus.USED)


class CodeRecord(TimeStampedModel):
    """
    One issued code string of one module.

    Codes reserved in a lot start as 'reserved'; codes assigned ad hoc
    (no lot) are created directly as 'used'.
    """

    module = models.CharField(max_length=20, choices=Module.choices)
    code = models.CharField(max_length=50)
    sequence = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Sequence the code was rendered from (null for ad-hoc codes)",
    )
    lot = models.ForeignKey(
        Lot,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='codes',
    )
    status = models.CharField(
        max_length=10,
        choices=CodeStatus.choices,
        default=CodeStatus.RESERVED,
    )
    entity_id = models.CharField(
        max_length=255,
        blank=True,
        default='',
        help_text="ID of the catalog entity holding the code (CharField for UUID support)",
    )

    reserved_at = models.DateTimeField(null=True, blank=True)
    used_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = CodeRecordQuerySet.as_manager()

    class Meta:
        app_label = 'django_barcodes'
        ordering = ['code']
        constraints = [
            # Scanners may send any case; one label is one code
            models.UniqueConstraint(
                'module',
                Upper('code'),
                name='barcodes_unique_code_ci_per_module',
            ),
            models.CheckConstraint(
                condition=Q(status=CodeStatus.USED) | Q(entity_id=''),
                name='barcodes_entity_only_when_used',
            ),
        ]
        indexes = [
            models.Index(fields=['module', 'status'], name='barcodes_code_module_status'),
            models.Index(fields=['lot', 'status'], name='barcodes_code_lot_status'),
        ]

    def __str__(self):
        return f"{self.code} ({self.module}, {self.status})"

    def summary(self):
        """Return a CodeSummary snapshot of this record."""
        return CodeSummary(
            id=self.pk,
            code=self.code,
            status=self.status,
            lot_id=self.lot_id,
            entity_id=self.entity_id,
            reserved_at=self.reserved_at,
            used_at=self.used_at,
            cancelled_at=self.cancelled_at,
        )
