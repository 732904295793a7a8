"""Django Barcodes configuration.

All settings can be overridden in your Django settings.py.

Example:
    # settings.py
    BARCODES_MAX_LOT_SIZE = 500
    BARCODES_LEGACY_PREFIXES = {'MUS': 'disc', 'ADH': 'member'}
"""

from django.conf import settings


DEFAULT_PATTERN = '{PREFIX}{SEQ8}'

DEFAULT_PREFIXES = {
    'member': 'USA',
    'game': 'JEU',
    'book': 'LIV',
    'film': 'FLM',
    'disc': 'DSQ',
}

# Historical prefixes still found on printed stock
LEGACY_PREFIXES = {
    'MUS': 'disc',
}


def get_setting(name: str, default=None):
    """Get a setting with BARCODES_ prefix."""
    return getattr(settings, f"BARCODES_{name}", default)


def max_lot_size() -> int:
    """Largest quantity a single lot may reserve."""
    return get_setting('MAX_LOT_SIZE', 1000)


def reserve_retries() -> int:
    """How many times reserve_lot re-runs after a storage failure."""
    return get_setting('RESERVE_RETRIES', 3)


def max_probe_attempts() -> int:
    """Consecutive collisions tolerated while probing for a free sequence."""
    return get_setting('MAX_PROBE_ATTEMPTS', 10000)


def default_pattern() -> str:
    return get_setting('DEFAULT_PATTERN', DEFAULT_PATTERN)


def default_prefix(module: str) -> str:
    """Prefix given to a lazily-created format config."""
    prefixes = {**DEFAULT_PREFIXES, **get_setting('DEFAULT_PREFIXES', {})}
    return prefixes.get(module, module.upper()[:3])


def prefix_table() -> dict[str, str]:
    """Static prefix -> module table used by the scan resolver."""
    table = {prefix: module for module, prefix in DEFAULT_PREFIXES.items()}
    table.update({
        prefix: module
        for module, prefix in get_setting('DEFAULT_PREFIXES', {}).items()
    })
    table.update(get_setting('LEGACY_PREFIXES', LEGACY_PREFIXES))
    return {prefix.upper(): module for prefix, module in table.items()}


def fallback_pad_width() -> int:
    return get_setting('FALLBACK_PAD_WIDTH', 8)


def page_size() -> int:
    return get_setting('PAGE_SIZE', 20)


# =============================================================================
# DEFAULT SETTINGS REFERENCE
# =============================================================================

# BARCODES_MAX_LOT_SIZE = 1000  # Upper bound of a lot quantity
# BARCODES_RESERVE_RETRIES = 3  # Storage failure retries for reserve_lot
# BARCODES_MAX_PROBE_ATTEMPTS = 10000  # Collision budget before SequenceExhaustedError
# BARCODES_DEFAULT_PATTERN = '{PREFIX}{SEQ8}'
# BARCODES_DEFAULT_PREFIXES = {'game': 'JEU', ...}  # Merged over the built-in prefixes
# BARCODES_LEGACY_PREFIXES = {'MUS': 'disc'}  # Historical aliases for scanning
# BARCODES_FALLBACK_PAD_WIDTH = 8  # Padding of {PREFIX} + entity id fallback codes
# BARCODES_PAGE_SIZE = 20  # Default page size for list operations
