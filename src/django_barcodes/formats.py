"""Format configuration services.

- get_or_create_config(): Lazily create the config of a (module, context)
- lock_config_for_update(): Same, holding a row lock for the transaction
- update_config(): Edit a config, refusing structural edits once locked
- apply_period_reset(): Restart the sequence when the calendar period changes
- lock_config(): Freeze the format after its first reservation
- build_preview(), list_tokens(), fallback_code(): read-only helpers
"""

import logging
from datetime import datetime
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from django_barcodes import allocator, conf
from django_barcodes.context import BarcodeContext
from django_barcodes.exceptions import FormatLockedError, InvalidFormatError, InvalidModuleError
from django_barcodes.models import FormatConfig, Module, SequenceReset
from django_barcodes.results import FormatPreview

logger = logging.getLogger(__name__)

PREVIEW_SEQUENCE = 42


def _check_module(module: str) -> None:
    if module not in Module.values:
        raise InvalidModuleError(module)


def get_or_create_config(module: str, context=None) -> FormatConfig:
    """
    Return the config of a module in a context, creating it with defaults.

    Defaults: pattern '{PREFIX}{SEQ8}', the module's default prefix and
    no sequence reset. Handles concurrent creation via IntegrityError retry.

    Raises:
        InvalidModuleError: Unknown module
    """
    _check_module(module)
    context = BarcodeContext.normalize(context)
    lookup = {'module': module, **context.as_filter()}

    config = FormatConfig.objects.filter(**lookup).first()
    if config is not None:
        return config

    try:
        with transaction.atomic():
            return FormatConfig.objects.create(
                **lookup,
                pattern=conf.default_pattern(),
                prefix=conf.default_prefix(module),
                sequence_reset=SequenceReset.NEVER,
            )
    except IntegrityError:
        # Race condition: another request created it
        return FormatConfig.objects.get(**lookup)


def lock_config_for_update(module: str, context=None) -> FormatConfig:
    """
    Return the config with its row locked until the transaction ends.

    Serializes reservations of the same (module, context).
    """
    config = get_or_create_config(module, context)
    return FormatConfig.objects.select_for_update().get(pk=config.pk)


def list_configs(context=None) -> list[FormatConfig]:
    """Return the config of every module in a context, creating missing ones."""
    return [get_or_create_config(module, context) for module in Module.values]


def _validate_patch(config: FormatConfig, patch: dict) -> None:
    unknown = set(patch) - FormatConfig.EDITABLE_FIELDS
    if unknown:
        raise InvalidFormatError(config.module, f"unknown fields {', '.join(sorted(unknown))}")

    if 'pattern' in patch:
        pattern = patch['pattern'] or ''
        if not pattern or len(pattern) > 255:
            raise InvalidFormatError(config.module, "pattern must be 1-255 characters")
        known = {token.key for token in allocator.TOKENS}
        unknown_tokens = [key for key in allocator.pattern_tokens(pattern) if key not in known]
        if unknown_tokens:
            raise InvalidFormatError(
                config.module, f"unknown tokens {', '.join(unknown_tokens)}"
            )
        if allocator.sequence_capacity(pattern) is None:
            raise InvalidFormatError(config.module, "pattern needs a SEQ token")

    if 'prefix' in patch:
        prefix = patch['prefix'] or ''
        if not prefix or len(prefix) > 10:
            raise InvalidFormatError(config.module, "prefix must be 1-10 characters")
        owner = conf.prefix_table().get(prefix.upper())
        if owner is None:
            owner = (
                FormatConfig.objects.filter(prefix__iexact=prefix)
                .exclude(module=config.module)
                .values_list('module', flat=True)
                .first()
            )
        if owner is not None and owner != config.module:
            raise InvalidFormatError(
                config.module, f"prefix '{prefix}' already belongs to module '{owner}'"
            )

    if 'sequence_reset' in patch and patch['sequence_reset'] not in SequenceReset.values:
        raise InvalidFormatError(
            config.module, f"unknown sequence_reset '{patch['sequence_reset']}'"
        )


def update_config(module: str, context=None, **patch) -> FormatConfig:
    """
    Update a config.

    Once locked, pattern, prefix and sequence_reset are frozen; any patch
    naming one of them fails. burn_cancelled stays editable.

    Usage:
        update_config('game', pattern='{PREFIX}{YEAR2}{SEQ6}', prefix='JX')
        update_config('game', burn_cancelled=True)

    Raises:
        FormatLockedError: Structural field in the patch of a locked config
        InvalidFormatError: Unknown field or invalid value
    """
    with transaction.atomic():
        config = lock_config_for_update(module, context)

        structural = FormatConfig.STRUCTURAL_FIELDS & set(patch)
        if config.locked and structural:
            raise FormatLockedError(module, structural)
        _validate_patch(config, patch)

        for field, value in patch.items():
            setattr(config, field, value)
        config.save()
        return config


def apply_period_reset(config: FormatConfig, now: Optional[datetime] = None) -> FormatConfig:
    """
    Restart the sequence if the calendar period changed.

    Must run right before any allocation that reads current_sequence.
    A second call within the same period is a no-op.
    """
    period = allocator.current_period(config.sequence_reset, timezone.localdate(now))
    if period is None or period == config.current_period:
        return config

    logger.debug(
        "Sequence reset for %s (%s): period %s -> %s",
        config.module, config.context, config.current_period, period,
    )
    config.current_sequence = 0
    config.current_period = period
    config.save(update_fields=['current_sequence', 'current_period', 'updated_at'])
    return config


def lock_config(config: FormatConfig, now: Optional[datetime] = None) -> FormatConfig:
    """Freeze the structural fields of a config. Idempotent."""
    if config.locked:
        return config
    config.locked = True
    config.locked_at = now or timezone.now()
    config.save(update_fields=['locked', 'locked_at', 'updated_at'])
    logger.info("Format locked for %s (%s): %s", config.module, config.context, config.pattern)
    return config


def pending_sequence(config: FormatConfig, now: Optional[datetime] = None) -> int:
    """Counter value an allocation would start after, without saving a reset."""
    period = allocator.current_period(config.sequence_reset, timezone.localdate(now))
    if period is not None and period != config.current_period:
        return 0
    return config.current_sequence


def build_preview(config: FormatConfig, next_sequence: int, now: Optional[datetime] = None) -> FormatPreview:
    today = timezone.localdate(now)
    return FormatPreview(
        module=config.module,
        pattern=config.pattern,
        prefix=config.prefix,
        sequence_reset=config.sequence_reset,
        locked=config.locked,
        burn_cancelled=config.burn_cancelled,
        example=config.render(PREVIEW_SEQUENCE, today),
        next_code=config.render(next_sequence, today),
        next_sequence=next_sequence,
    )


def list_tokens(now: Optional[datetime] = None) -> list[dict]:
    """Every pattern token with a description and an example for today."""
    today = timezone.localdate(now)
    return [
        {
            'key': token.key,
            'token': token.placeholder,
            'description': token.description,
            'example': allocator.render(token.placeholder, 1, 'JEU', today),
        }
        for token in allocator.TOKENS
    ]


def fallback_code(module: str, entity_id, context=None) -> str:
    """
    Code for an entity created without pre-printed stock.

    Format: {PREFIX} + entity id zero-padded, e.g. 'JEU00000123'.
    """
    config = get_or_create_config(module, context)
    return f"{config.prefix}{str(entity_id).zfill(conf.fallback_pad_width())}"
