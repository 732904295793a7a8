"""Reservation services for barcode lots and the code lifecycle.

ReservationService is the only writer of CodeRecord.status and of the
lot counters. Every operation touching more than one row runs inside
one transaction:

- reserve_lot(): Reserve N sequential codes as a lot, lock the format
- assign_code(): Give a reserved (or never-reserved) code to an entity
- cancel_code() / restore_code(): Reversible cancellation, optional burn
- cancel_lot(): Cancel every still-reserved code of a lot
- mark_lot_printed(): Print bookkeeping
- read-only listings, previews, statistics and scan resolution

Lifecycle:
    reserved -> used                (assign)
    reserved <-> cancelled          (cancel / restore)
    reserved, cancelled -> burned   (cancel with burn policy)
"""

import logging
from typing import Callable, Optional

from django.db import DatabaseError, transaction
from django.db.models import Count, Sum
from django.utils import timezone

from django_barcodes import allocator, conf, formats, scanning
from django_barcodes.exceptions import (
    AlreadyBurnedError,
    AlreadyCancelledError,
    AlreadyUsedError,
    CodeCancelledError,
    CodeModuleMismatchError,
    InvalidQuantityError,
    LotAlreadyCancelledError,
    NotCancelledError,
)
from django_barcodes.models import CodeRecord, CodeStatus, Lot, LotStatus, Module
from django_barcodes.repositories import (
    CODE_REPOSITORIES,
    CodeRepository,
    LotRepository,
    get_code_repository,
)
from django_barcodes.results import (
    LotCancellation,
    LotDetail,
    ModuleStats,
    Page,
    ReservationResult,
    ScanResult,
)

logger = logging.getLogger(__name__)


def _creator(actor) -> dict:
    """Lot creator fields from a user instance or a bare user id."""
    if isinstance(actor, (int, str)):
        return {'created_by_id': actor}
    return {'created_by': actor}


class ReservationService:
    """
    Orchestrates format configs, lots and code records.

    Repositories and the clock are injected so tests and hosts can
    substitute them.

    Usage:
        service = ReservationService()
        result = service.reserve_lot('game', 50, actor=user)
        service.assign_code('game', result.codes[0], entity_id=game.pk)
    """

    def __init__(
        self,
        lots: Optional[LotRepository] = None,
        codes: Optional[dict[str, CodeRepository]] = None,
        clock: Callable = timezone.now,
    ):
        self.lots = lots or LotRepository()
        self.codes = codes if codes is not None else CODE_REPOSITORIES
        self.clock = clock

    def _codes(self, module: str) -> CodeRepository:
        return get_code_repository(module, self.codes)

    # =========================================================================
    # Format configuration
    # =========================================================================

    def get_config(self, module: str, context=None):
        return formats.get_or_create_config(module, context)

    def list_configs(self, context=None):
        return formats.list_configs(context)

    def update_config(self, module: str, context=None, **patch):
        return formats.update_config(module, context, **patch)

    def preview_next_code(self, module: str, context=None):
        """
        Show the format and the code the next reservation would start with.

        Read-only: a pending period reset is taken into account but not saved.
        """
        repo = self._codes(module)
        now = self.clock()
        config = formats.get_or_create_config(module, context)
        start = formats.pending_sequence(config, now)
        next_sequence = allocator.find_next_available(
            config,
            repo.exists,
            when=timezone.localdate(now),
            max_attempts=conf.max_probe_attempts(),
            start=start + 1,
        )
        return formats.build_preview(config, next_sequence, now)

    def list_tokens(self):
        return formats.list_tokens(self.clock())

    def fallback_code(self, module: str, entity_id, context=None) -> str:
        return formats.fallback_code(module, entity_id, context)

    # =========================================================================
    # Reservation
    # =========================================================================

    def reserve_lot(self, module: str, quantity: int, context=None, actor=None) -> ReservationResult:
        """
        Reserve `quantity` sequential codes as one lot.

        Codes already present in the module in any status are skipped.
        The lot, its codes, the new sequence counter and the format lock
        are committed together or not at all. Storage failures re-run the
        whole reservation from a clean read, up to BARCODES_RESERVE_RETRIES.

        Args:
            module: Catalog module (member, game, book, film, disc)
            quantity: Number of codes, 1..BARCODES_MAX_LOT_SIZE
            context: Optional organisation/structure/group scope
            actor: User creating the lot

        Returns:
            ReservationResult with the lot and its codes in sequence order

        Raises:
            InvalidModuleError: Unknown module
            InvalidQuantityError: Quantity out of range
            SequenceExhaustedError: No free sequence left
        """
        repo = self._codes(module)
        maximum = conf.max_lot_size()
        if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= maximum:
            raise InvalidQuantityError(quantity, maximum)

        attempts = max(conf.reserve_retries(), 1)
        for attempt in range(1, attempts + 1):
            try:
                result = self._reserve_lot_once(repo, quantity, context, actor)
            except DatabaseError as e:
                if attempt >= attempts:
                    raise
                logger.warning(
                    "Reservation of %s %s codes failed (attempt %s/%s), retrying: %s",
                    quantity, module, attempt, attempts, e,
                )
                continue

            logger.info(
                "Reserved lot %s: %s %s codes %s..%s",
                result.lot.pk, quantity, module, result.codes[0], result.codes[-1],
            )
            return result

    def _reserve_lot_once(self, repo: CodeRepository, quantity: int, context, actor) -> ReservationResult:
        now = self.clock()
        with transaction.atomic():
            config = formats.lock_config_for_update(repo.module, context)
            formats.apply_period_reset(config, now)

            allocated = allocator.allocate(
                config,
                quantity,
                repo.taken_among,
                when=timezone.localdate(now),
                max_attempts=conf.max_probe_attempts(),
            )
            first_sequence, first_code = allocated[0]
            last_sequence, last_code = allocated[-1]

            lot = self.lots.create(
                module=repo.module,
                format_config=config,
                quantity=quantity,
                first_code=first_code,
                last_code=last_code,
                first_sequence=first_sequence,
                last_sequence=last_sequence,
                **_creator(actor),
            )
            repo.bulk_reserve(lot, allocated, now)

            config.current_sequence = last_sequence
            config.save(update_fields=['current_sequence', 'updated_at'])
            formats.lock_config(config, now)

        return ReservationResult(
            lot=lot,
            codes=[code for _, code in allocated],
            first_sequence=first_sequence,
            last_sequence=last_sequence,
        )

    # =========================================================================
    # Code lifecycle
    # =========================================================================

    def _burn_policy(self, lot: Optional[Lot]) -> bool:
        """Burn policy of the config a lot was reserved under."""
        return bool(lot is not None and lot.format_config_id and lot.format_config.burn_cancelled)

    def _locked_lot(self, record: CodeRecord) -> Optional[Lot]:
        if not record.lot_id:
            return None
        return self.lots.get(record.lot_id, lock=True)

    def assign_code(self, module: str, code: str, entity_id) -> CodeRecord:
        """
        Assign a code to a catalog entity.

        A reserved code becomes used. A code that was never reserved is
        recorded directly as used, outside any lot; existing records are
        always looked up first so a cancelled or burned code is never
        duplicated.

        Raises:
            CodeModuleMismatchError: The code's prefix belongs to another module
            AlreadyUsedError: Code already assigned
            AlreadyBurnedError: Code burned
            CodeCancelledError: Code cancelled; restore it first
        """
        repo = self._codes(module)
        code = code.strip()
        owner = scanning.detect_module(code)
        if owner is not None and owner != module:
            raise CodeModuleMismatchError(module, code, owner)

        entity_id = str(entity_id)
        now = self.clock()
        with transaction.atomic():
            record = repo.find(code, lock=True)
            if record is None:
                record = repo.create_used(code, entity_id, now)
                logger.warning(
                    "Code %s (%s) assigned to entity %s without reservation",
                    code, module, entity_id,
                )
                return record

            if record.status == CodeStatus.USED:
                raise AlreadyUsedError(module, record.code, record.entity_id)
            if record.status == CodeStatus.BURNED:
                raise AlreadyBurnedError(module, record.code)
            if record.status == CodeStatus.CANCELLED:
                raise CodeCancelledError(module, record.code)

            lot = self._locked_lot(record)

            record.status = CodeStatus.USED
            record.entity_id = entity_id
            record.used_at = now
            record.save(update_fields=['status', 'entity_id', 'used_at', 'updated_at'])

            if lot is not None:
                lot.used_count += 1
                lot.check_counters()
                update_fields = ['used_count', 'updated_at']
                if lot.is_complete and lot.completed_at is None:
                    lot.completed_at = now
                    update_fields.append('completed_at')
                    logger.info("Lot %s complete: all %s codes used", lot.pk, lot.quantity)
                lot.save(update_fields=update_fields)

        return record

    def cancel_code(self, module: str, code_or_id, burn: Optional[bool] = None) -> CodeRecord:
        """
        Cancel a reserved code, or burn it.

        burn=None applies the burn policy of the format config the code's
        lot was reserved under; codes outside a lot are only cancelled.
        Burning an already-cancelled code is allowed and leaves the lot
        counters unchanged.

        Raises:
            CodeNotFoundError: Unknown code
            AlreadyUsedError: Code assigned to an entity
            AlreadyBurnedError: Code already burned
            AlreadyCancelledError: Code already cancelled and not burning
        """
        repo = self._codes(module)
        now = self.clock()
        with transaction.atomic():
            record = repo.get(code_or_id, lock=True)
            if record.status == CodeStatus.USED:
                raise AlreadyUsedError(module, record.code, record.entity_id)
            if record.status == CodeStatus.BURNED:
                raise AlreadyBurnedError(module, record.code)

            lot = self._locked_lot(record)
            if burn is None:
                burn = self._burn_policy(lot)

            if record.status == CodeStatus.CANCELLED:
                if not burn:
                    raise AlreadyCancelledError(module, record.code)
                record.status = CodeStatus.BURNED
                record.save(update_fields=['status', 'updated_at'])
                return record

            record.status = CodeStatus.BURNED if burn else CodeStatus.CANCELLED
            record.cancelled_at = now
            record.save(update_fields=['status', 'cancelled_at', 'updated_at'])

            if lot is not None:
                lot.cancelled_count += 1
                lot.check_counters()
                lot.save(update_fields=['cancelled_count', 'updated_at'])

        return record

    def restore_code(self, module: str, code_or_id) -> CodeRecord:
        """
        Return a cancelled code to 'reserved'. Exact inverse of cancel_code.

        Codes of a cancelled lot stay cancelled.

        Raises:
            CodeNotFoundError: Unknown code
            NotCancelledError: Code is not cancelled
            LotAlreadyCancelledError: The code's lot is cancelled
        """
        repo = self._codes(module)
        with transaction.atomic():
            record = repo.get(code_or_id, lock=True)
            if record.status != CodeStatus.CANCELLED:
                raise NotCancelledError(module, record.code, record.status)

            lot = self._locked_lot(record)
            if lot is not None and lot.status == LotStatus.CANCELLED:
                raise LotAlreadyCancelledError(lot.pk)

            record.status = CodeStatus.RESERVED
            record.cancelled_at = None
            record.save(update_fields=['status', 'cancelled_at', 'updated_at'])

            if lot is not None:
                lot.cancelled_count -= 1
                lot.check_counters()
                lot.save(update_fields=['cancelled_count', 'updated_at'])

        return record

    def cancel_lot(self, lot_id, burn: Optional[bool] = None) -> LotCancellation:
        """
        Cancel every reserved code of a lot and the lot itself.

        Used codes are untouched. burn=None applies the burn policy of the
        lot's format config.

        Raises:
            LotNotFoundError: Unknown lot
            LotAlreadyCancelledError: Lot already cancelled
        """
        now = self.clock()
        with transaction.atomic():
            lot = self.lots.get(lot_id, lock=True)
            if lot.status == LotStatus.CANCELLED:
                raise LotAlreadyCancelledError(lot_id)

            repo = self._codes(lot.module)
            if burn is None:
                burn = self._burn_policy(lot)

            transitioned = repo.reserved_in_lot(lot).update(
                status=CodeStatus.BURNED if burn else CodeStatus.CANCELLED,
                cancelled_at=now,
                updated_at=now,
            )

            lot.cancelled_count += transitioned
            lot.check_counters()
            lot.status = LotStatus.CANCELLED
            lot.cancelled_at = now
            lot.save(update_fields=['cancelled_count', 'status', 'cancelled_at', 'updated_at'])

        logger.info(
            "Lot %s cancelled: %s codes %s",
            lot.pk, transitioned, 'burned' if burn else 'cancelled',
        )
        return LotCancellation(stats=lot.stats(), transitioned=transitioned, burned=burn)

    def mark_lot_printed(self, lot_id, reprint: bool = False) -> Lot:
        """
        Record a print of a lot's labels.

        The first print sets printed_at; reprints increment reprint_count.

        Raises:
            LotNotFoundError: Unknown lot
        """
        now = self.clock()
        with transaction.atomic():
            lot = self.lots.get(lot_id, lock=True)
            if lot.printed_at is None:
                lot.printed_at = now
                lot.save(update_fields=['printed_at', 'updated_at'])
                logger.info("Lot %s printed", lot.pk)
            elif reprint:
                lot.reprint_count += 1
                lot.save(update_fields=['reprint_count', 'updated_at'])
                logger.info("Lot %s reprinted (%s)", lot.pk, lot.reprint_count)
        return lot

    # =========================================================================
    # Queries
    # =========================================================================

    def list_lots(self, module: str, status: Optional[str] = None, page: int = 1, limit: Optional[int] = None) -> Page:
        """Lots of a module, newest first."""
        self._codes(module)
        limit = limit or conf.page_size()
        page = max(page, 1)
        qs = self.lots.for_module(module, status)
        offset = (page - 1) * limit
        return Page(
            items=[lot.stats() for lot in qs[offset:offset + limit]],
            total=qs.count(),
            page=page,
            limit=limit,
        )

    def get_lot_detail(self, lot_id) -> LotDetail:
        """
        Raises:
            LotNotFoundError: Unknown lot
        """
        lot = self.lots.get(lot_id)
        repo = self._codes(lot.module)
        return LotDetail(
            stats=lot.stats(),
            created_by_id=lot.created_by_id,
            codes=[record.summary() for record in repo.in_lot(lot)],
        )

    def list_available_codes(self, module: str, page: int = 1, limit: Optional[int] = None) -> Page:
        """Reserved codes of a module, oldest reservation first."""
        repo = self._codes(module)
        limit = limit or conf.page_size()
        page = max(page, 1)
        qs = repo.available()
        offset = (page - 1) * limit
        return Page(
            items=[record.summary() for record in qs[offset:offset + limit]],
            total=qs.count(),
            page=page,
            limit=limit,
        )

    def is_code_reserved_or_used(self, module: str, code: str) -> bool:
        return self._codes(module).is_reserved_or_used(code)

    def resolve_scanned_code(self, raw_code: str) -> ScanResult:
        return scanning.resolve(raw_code, self.codes)

    def get_stats(self, context=None) -> dict[str, ModuleStats]:
        """Per-module totals across every lot, with the context's format."""
        stats = {}
        for module in Module.values:
            repo = self._codes(module)
            config = formats.get_or_create_config(module, context)
            totals = self.lots.for_module(module).aggregate(
                lots=Count('id'),
                codes=Sum('quantity'),
                used=Sum('used_count'),
                cancelled=Sum('cancelled_count'),
            )
            stats[module] = ModuleStats(
                prefix=config.prefix,
                locked=config.locked,
                current_sequence=config.current_sequence,
                total_lots=totals['lots'],
                total_codes=totals['codes'] or 0,
                total_used=totals['used'] or 0,
                total_cancelled=totals['cancelled'] or 0,
                total_available=repo.available().count(),
            )
        return stats
