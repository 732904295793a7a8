"""Structured results returned by the reservation service.

Plain dataclasses so an HTTP layer can serialize them with
dataclasses.asdict() without touching the ORM.
"""

from dataclasses import dataclass, field
from datetime import datetime
from math import ceil
from typing import Any, Generic, Optional, TypeVar

T = TypeVar('T')


@dataclass
class Page(Generic[T]):
    """One page of a paginated listing."""

    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0


@dataclass
class LotStats:
    """Counters and print metadata of a lot."""

    id: int
    module: str
    quantity: int
    first_code: str
    last_code: str
    status: str
    created_at: Optional[datetime]
    printed_at: Optional[datetime]
    reprint_count: int
    used_count: int
    cancelled_count: int
    available_count: int
    percent_used: int
    is_complete: bool


@dataclass
class CodeSummary:
    id: int
    code: str
    status: str
    lot_id: Optional[int]
    entity_id: str
    reserved_at: Optional[datetime]
    used_at: Optional[datetime]
    cancelled_at: Optional[datetime]


@dataclass
class LotDetail:
    """A lot with every code it reserved, ordered by code."""

    stats: LotStats
    created_by_id: Optional[Any]
    codes: list[CodeSummary] = field(default_factory=list)


@dataclass
class ReservationResult:
    """Outcome of reserve_lot."""

    lot: Any
    codes: list[str]
    first_sequence: int
    last_sequence: int


@dataclass
class LotCancellation:
    stats: LotStats
    transitioned: int
    burned: bool


@dataclass
class FormatPreview:
    """What the format of a module looks like, without reserving anything."""

    module: str
    pattern: str
    prefix: str
    sequence_reset: str
    locked: bool
    burn_cancelled: bool
    example: str
    next_code: str
    next_sequence: int


@dataclass
class ModuleStats:
    prefix: str
    locked: bool
    current_sequence: int
    total_lots: int
    total_codes: int
    total_used: int
    total_cancelled: int
    total_available: int


@dataclass
class ScanResult:
    """
    What a scanned code is and whether it can be assigned.

    valid: the code may be assigned (possibly after confirmation)
    reserved: a CodeRecord exists for the code
    warning: recognised prefix but never reserved (externally printed stock)
    reactivate_on_use: the code is cancelled and must be restored first
    """

    code: str
    valid: bool
    reserved: bool
    module: Optional[str]
    message: str
    status: Optional[str] = None
    code_id: Optional[int] = None
    entity_id: Optional[str] = None
    warning: bool = False
    reactivate_on_use: bool = False
