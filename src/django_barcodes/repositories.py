"""Storage adapters for code records and lots.

CodeRecord rows of every module live in one table with a module
discriminator. A CodeRepository is bound to one module so callers never
forget the module filter; get_code_repository() looks the adapter up in
the module table.

All lookups taking `lock=True` must run inside transaction.atomic().
"""

from typing import Iterable, Optional, Union

from django.db.models.functions import Upper
from django.utils import timezone

from django_barcodes.exceptions import (
    CodeNotFoundError,
    InvalidModuleError,
    LotNotFoundError,
)
from django_barcodes.models import CodeRecord, CodeStatus, Lot, Module


class CodeRepository:
    """CodeRecord access scoped to one module."""

    def __init__(self, module: str):
        self.module = module

    def __repr__(self):
        return f"CodeRepository({self.module!r})"

    def queryset(self):
        return CodeRecord.objects.for_module(self.module)

    def _lookup(self, code_or_id: Union[int, str]) -> dict:
        # Integers address the primary key, strings the code itself (any case)
        if isinstance(code_or_id, int) and not isinstance(code_or_id, bool):
            return {'pk': code_or_id}
        return {'code__iexact': str(code_or_id).strip()}

    def find(self, code_or_id, lock: bool = False) -> Optional[CodeRecord]:
        """Return the record or None."""
        qs = self.queryset()
        if lock:
            qs = qs.select_for_update()
        return qs.filter(**self._lookup(code_or_id)).first()

    def get(self, code_or_id, lock: bool = False) -> CodeRecord:
        """
        Return the record for a code string or primary key.

        Raises:
            CodeNotFoundError: No record in this module
        """
        record = self.find(code_or_id, lock=lock)
        if record is None:
            raise CodeNotFoundError(self.module, code_or_id)
        return record

    def exists(self, code: str) -> bool:
        """True if the code exists in any status."""
        return self.queryset().filter(code__iexact=code.strip()).exists()

    def taken_among(self, codes: Iterable[str]) -> set[str]:
        """Return the subset of codes that already exist in any status, ignoring case."""
        codes = list(codes)
        taken = set(
            self.queryset()
            .annotate(code_upper=Upper('code'))
            .filter(code_upper__in=[code.upper() for code in codes])
            .values_list('code_upper', flat=True)
        )
        return {code for code in codes if code.upper() in taken}

    def is_reserved_or_used(self, code: str) -> bool:
        return self.queryset().filter(
            code__iexact=code.strip(),
            status__in=[CodeStatus.RESERVED, CodeStatus.USED],
        ).exists()

    def bulk_reserve(self, lot: Lot, allocated: list[tuple[int, str]], now=None) -> list[CodeRecord]:
        """Insert one 'reserved' record per (sequence, code) pair of a lot."""
        now = now or timezone.now()
        return CodeRecord.objects.bulk_create([
            CodeRecord(
                module=self.module,
                code=code,
                sequence=sequence,
                lot=lot,
                status=CodeStatus.RESERVED,
                reserved_at=now,
            )
            for sequence, code in allocated
        ])

    def create_used(self, code: str, entity_id: str, now=None) -> CodeRecord:
        """Record a code that was never reserved as used by an entity."""
        now = now or timezone.now()
        return CodeRecord.objects.create(
            module=self.module,
            code=code,
            status=CodeStatus.USED,
            entity_id=entity_id,
            reserved_at=now,
            used_at=now,
        )

    def reserved_in_lot(self, lot: Lot):
        return self.queryset().filter(lot=lot, status=CodeStatus.RESERVED)

    def in_lot(self, lot: Lot):
        return self.queryset().filter(lot=lot).order_by('code')

    def available(self):
        """Reserved codes, oldest reservation first."""
        return self.queryset().reserved().order_by('reserved_at', 'code')


class LotRepository:
    """Lot access."""

    def queryset(self):
        return Lot.objects.all()

    def get(self, lot_id, lock: bool = False) -> Lot:
        """
        Return the lot.

        Raises:
            LotNotFoundError: No lot with this id
        """
        qs = self.queryset()
        if lock:
            qs = qs.select_for_update()
        lot = qs.filter(pk=lot_id).first()
        if lot is None:
            raise LotNotFoundError(lot_id)
        return lot

    def create(self, **fields) -> Lot:
        return Lot.objects.create(**fields)

    def for_module(self, module: str, status: Optional[str] = None):
        qs = self.queryset().for_module(module)
        if status:
            qs = qs.filter(status=status)
        return qs.order_by('-created_at', '-id')


CODE_REPOSITORIES = {module: CodeRepository(module) for module in Module.values}


def get_code_repository(module: str, repositories=None) -> CodeRepository:
    """
    Look up the code repository of a module.

    Raises:
        InvalidModuleError: Unknown module
    """
    repositories = CODE_REPOSITORIES if repositories is None else repositories
    try:
        return repositories[module]
    except (KeyError, TypeError):
        raise InvalidModuleError(module)
