"""Django Barcodes - Reserved barcode lots and sequence allocation.

Provides:
- FormatConfig: Per-module code format (pattern, prefix, sequence reset, lock)
- Lot: Batch reservation of sequential codes with usage counters
- CodeRecord: One row per issued code with its lifecycle status
- ReservationService: Reserve, assign, cancel, restore and inspect codes
- resolve(): Map a scanned code to its module and current status

Usage:
    INSTALLED_APPS = [
        ...
        'django_barcodes',
    ]

    from django_barcodes.services import ReservationService

    service = ReservationService()
    result = service.reserve_lot('game', 50, actor=request.user)
    result.codes  # ['JEU00000001', ..., 'JEU00000050']

See conf.py for all configuration options.
"""

__version__ = "0.1.0"
