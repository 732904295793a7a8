"""Scan-time validation of raw barcode input.

detect_module() maps a code's prefix to its module using the static
prefix table (default prefixes plus historical aliases) and the prefixes
configured in FormatConfig rows. resolve() then reports whether the code
can be assigned.
"""

from typing import Optional

from django_barcodes import conf
from django_barcodes.exceptions import NotRecognizedError
from django_barcodes.models import CodeStatus, FormatConfig
from django_barcodes.repositories import get_code_repository
from django_barcodes.results import ScanResult


def known_prefixes() -> dict[str, str]:
    """Prefix -> module, static table first, then configured prefixes."""
    table = conf.prefix_table()
    configured = (
        FormatConfig.objects.values_list('prefix', 'module')
        .order_by('prefix', 'module')
        .distinct()
    )
    for prefix, module in configured:
        table.setdefault(prefix.upper(), module)
    return table


def detect_module(code: str) -> Optional[str]:
    """
    Return the module owning a code, or None if no prefix matches.

    The longest matching prefix wins.
    """
    if not code:
        return None
    normalized = code.strip().upper()
    for prefix, module in sorted(known_prefixes().items(), key=lambda item: -len(item[0])):
        if normalized.startswith(prefix):
            return module
    return None


def resolve(raw_code: str, repositories=None) -> ScanResult:
    """
    Describe a scanned code.

    - unknown prefix: invalid
    - known prefix, no record: valid with a warning (externally printed stock)
    - used: invalid, with the owning entity
    - burned: invalid
    - cancelled: valid, must be restored before it is assigned
    - reserved: valid, ready to assign
    """
    code = (raw_code or '').strip()
    module = detect_module(code)
    if module is None:
        return ScanResult(
            code=code,
            valid=False,
            reserved=False,
            module=None,
            message="Code not recognized (unknown prefix)",
        )

    record = get_code_repository(module, repositories).find(code)
    if record is None:
        return ScanResult(
            code=code,
            valid=True,
            reserved=False,
            module=module,
            message="Code was never reserved; it can still be used",
            warning=True,
        )

    result = ScanResult(
        code=record.code,
        valid=False,
        reserved=True,
        module=module,
        message='',
        status=record.status,
        code_id=record.pk,
    )
    if record.status == CodeStatus.USED:
        result.message = "Code is already used"
        result.entity_id = record.entity_id
    elif record.status == CodeStatus.BURNED:
        result.message = "Code is burned and can no longer be used"
    elif record.status == CodeStatus.CANCELLED:
        result.valid = True
        result.reactivate_on_use = True
        result.message = "Code was cancelled and will be reactivated on use"
    else:
        result.valid = True
        result.message = "Reserved code available"
    return result


def resolve_or_raise(raw_code: str, repositories=None) -> ScanResult:
    """
    Like resolve(), but raise for an unknown prefix.

    Raises:
        NotRecognizedError: No known prefix matches
    """
    result = resolve(raw_code, repositories)
    if result.module is None:
        raise NotRecognizedError(result.code)
    return result
