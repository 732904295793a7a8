"""Code rendering and sequence probing.

Pure functions with no database access:
- render(): substitute pattern tokens into a code string
- current_period(): period marker for a sequence reset policy
- find_next_available(): first free sequence after a config's counter
- allocate(): collect N free sequences, probing candidates in batches

Token vocabulary:
    {PREFIX}  module prefix          {YEAR4} 2026    {YEAR2} 26
    {MONTH2}  01..12                 {MONTH} 1..12
    {DAY2}    01..31                 {DAY}   1..31
    {SEQ4} {SEQ6} {SEQ8} {SEQ10}     zero-padded sequence number

Unknown tokens are left in the output as literal text.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date as date_type
from typing import Callable, Iterable, Optional

from django_barcodes.exceptions import SequenceExhaustedError

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\{([A-Z0-9_]+)\}")

SEQUENCE_WIDTHS = {
    'SEQ4': 4,
    'SEQ6': 6,
    'SEQ8': 8,
    'SEQ10': 10,
}

RESET_NEVER = 'never'
RESET_YEARLY = 'yearly'
RESET_MONTHLY = 'monthly'
RESET_DAILY = 'daily'

PROBE_BATCH_SIZE = 200


@dataclass(frozen=True)
class Token:
    """A pattern token with its UI description."""

    key: str
    description: str

    @property
    def placeholder(self) -> str:
        return '{' + self.key + '}'


TOKENS = [
    Token('PREFIX', 'Module prefix (e.g. JEU, LIV)'),
    Token('YEAR4', 'Four-digit year'),
    Token('YEAR2', 'Two-digit year'),
    Token('MONTH2', 'Two-digit month'),
    Token('MONTH', 'Month without leading zero'),
    Token('DAY2', 'Two-digit day'),
    Token('DAY', 'Day without leading zero'),
    Token('SEQ4', 'Sequence number, 4 digits'),
    Token('SEQ6', 'Sequence number, 6 digits'),
    Token('SEQ8', 'Sequence number, 8 digits'),
    Token('SEQ10', 'Sequence number, 10 digits'),
]


def _token_values(sequence: int, prefix: str, when: date_type) -> dict[str, str]:
    values = {
        'PREFIX': prefix,
        'YEAR4': f"{when.year:04d}",
        'YEAR2': f"{when.year % 100:02d}",
        'MONTH2': f"{when.month:02d}",
        'MONTH': str(when.month),
        'DAY2': f"{when.day:02d}",
        'DAY': str(when.day),
    }
    for key, width in SEQUENCE_WIDTHS.items():
        values[key] = str(sequence).zfill(width)
    return values


def render(pattern: str, sequence: int, prefix: str, when: Optional[date_type] = None) -> str:
    """
    Render a code string from a pattern.

    Args:
        pattern: Token pattern, e.g. '{PREFIX}{YEAR4}{SEQ8}'
        sequence: Sequence number substituted into SEQ tokens
        prefix: Value of the PREFIX token
        when: Date used for date tokens (defaults to today)

    Returns:
        The rendered code. Unknown tokens are kept verbatim.

    Example:
        >>> render('{PREFIX}{SEQ8}', 1, 'JEU')
        'JEU00000001'
    """
    values = _token_values(sequence, prefix, when or date_type.today())
    return TOKEN_RE.sub(lambda m: values.get(m.group(1), m.group(0)), pattern)


def pattern_tokens(pattern: str) -> list[str]:
    """Return the token keys used in a pattern, known or not."""
    return TOKEN_RE.findall(pattern)


def sequence_capacity(pattern: str) -> Optional[int]:
    """
    Largest sequence the pattern can render without overflowing a SEQ token.

    Returns None when the pattern has no SEQ token.
    """
    widths = [SEQUENCE_WIDTHS[key] for key in pattern_tokens(pattern) if key in SEQUENCE_WIDTHS]
    if not widths:
        return None
    return 10 ** min(widths) - 1


def current_period(sequence_reset: str, when: Optional[date_type] = None) -> Optional[str]:
    """
    Period marker for a reset policy: '2026', '202610', '20261019' or None.
    """
    when = when or date_type.today()
    if sequence_reset == RESET_YEARLY:
        return f"{when.year:04d}"
    if sequence_reset == RESET_MONTHLY:
        return f"{when.year:04d}{when.month:02d}"
    if sequence_reset == RESET_DAILY:
        return f"{when.year:04d}{when.month:02d}{when.day:02d}"
    return None


def _check_capacity(config, sequence: int) -> None:
    capacity = sequence_capacity(config.pattern)
    if capacity is not None and sequence > capacity:
        raise SequenceExhaustedError(
            config.module,
            sequence,
            f"pattern '{config.pattern}' holds at most {capacity}",
        )


def find_next_available(
    config,
    is_taken: Callable[[str], bool],
    when: Optional[date_type] = None,
    max_attempts: int = 10000,
    start: Optional[int] = None,
) -> int:
    """
    Find the first sequence after config.current_sequence whose code is free.

    Args:
        config: Object with module, pattern, prefix and current_sequence
        is_taken: Called with each candidate code; True means skip it
        when: Date for date tokens
        max_attempts: Collisions tolerated before giving up
        start: First candidate (defaults to current_sequence + 1)

    Returns:
        The free sequence number.

    Raises:
        SequenceExhaustedError: Budget spent or pattern width overflowed
    """
    sequence = config.current_sequence + 1 if start is None else start
    for _ in range(max_attempts):
        _check_capacity(config, sequence)
        code = render(config.pattern, sequence, config.prefix, when)
        if not is_taken(code):
            return sequence
        logger.debug("Sequence %s of %s collides with %s", sequence, config.module, code)
        sequence += 1
    raise SequenceExhaustedError(
        config.module, sequence, f"{max_attempts} consecutive codes already taken"
    )


def allocate(
    config,
    quantity: int,
    taken_among: Callable[[list[str]], Iterable[str]],
    when: Optional[date_type] = None,
    max_attempts: int = 10000,
) -> list[tuple[int, str]]:
    """
    Collect `quantity` free (sequence, code) pairs after config.current_sequence.

    Candidates are rendered in batches and handed to `taken_among`, which
    returns the subset that already exists. The collision budget counts
    consecutive skips, so sparse collisions never exhaust it.

    Raises:
        SequenceExhaustedError: Budget spent or pattern width overflowed
    """
    allocated: list[tuple[int, str]] = []
    issued: set[str] = set()
    capacity = sequence_capacity(config.pattern)
    sequence = config.current_sequence + 1
    misses = 0

    while len(allocated) < quantity:
        _check_capacity(config, sequence)
        stop = sequence + PROBE_BATCH_SIZE
        if capacity is not None:
            stop = min(stop, capacity + 1)
        batch = [
            (candidate, render(config.pattern, candidate, config.prefix, when))
            for candidate in range(sequence, stop)
        ]

        taken = set(taken_among([code for _, code in batch]))
        for candidate, code in batch:
            sequence = candidate + 1
            if code in taken or code in issued:
                misses += 1
                if misses >= max_attempts:
                    raise SequenceExhaustedError(
                        config.module, candidate, f"{max_attempts} consecutive codes already taken"
                    )
                continue
            misses = 0
            allocated.append((candidate, code))
            issued.add(code)
            if len(allocated) == quantity:
                break

    return allocated
