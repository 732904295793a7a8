"""Exceptions for django-barcodes."""


class BarcodeError(Exception):
    """Base exception for barcode errors."""

    pass


class InvalidModuleError(BarcodeError):
    """Module name is not one of the supported catalog modules."""

    def __init__(self, module: str, message: str = None):
        self.module = module
        super().__init__(message or f"Unknown barcode module '{module}'")


class CodeModuleMismatchError(InvalidModuleError):
    """A code's prefix belongs to another module than the one requested."""

    def __init__(self, module: str, code: str, owner_module: str):
        self.code = code
        self.owner_module = owner_module
        super().__init__(
            module,
            f"Code '{code}' belongs to module '{owner_module}', not '{module}'",
        )


class InvalidQuantityError(BarcodeError):
    """Lot quantity is outside the allowed range."""

    def __init__(self, quantity, maximum: int):
        self.quantity = quantity
        self.maximum = maximum
        super().__init__(f"Quantity must be between 1 and {maximum}, got {quantity}")


class FormatError(BarcodeError):
    """Base exception for format configuration errors."""

    pass


class FormatLockedError(FormatError):
    """Structural format fields cannot change once codes have been issued."""

    def __init__(self, module: str, fields):
        self.module = module
        self.fields = sorted(fields)
        super().__init__(
            f"Format for module '{module}' is locked; "
            f"cannot change {', '.join(self.fields)}"
        )


class InvalidFormatError(FormatError):
    """A format update carries an unknown field or an invalid value."""

    def __init__(self, module: str, reason: str):
        self.module = module
        self.reason = reason
        super().__init__(f"Invalid format for module '{module}': {reason}")


class SequenceExhaustedError(BarcodeError):
    """No free sequence number could be found."""

    def __init__(self, module: str, sequence: int, reason: str):
        self.module = module
        self.sequence = sequence
        super().__init__(
            f"Sequence exhausted for module '{module}' at {sequence}: {reason}"
        )


class CodeNotFoundError(BarcodeError):
    """No code record matches the given code or id."""

    def __init__(self, module: str, code):
        self.module = module
        self.code = code
        super().__init__(f"Code '{code}' not found in module '{module}'")


class NotRecognizedError(BarcodeError):
    """A scanned code does not start with any known prefix."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Code '{code}' not recognized (unknown prefix)")


class InvalidTransitionError(BarcodeError):
    """Base exception for code lifecycle violations."""

    status = ''

    def __init__(self, module: str, code: str, message: str):
        self.module = module
        self.code = code
        super().__init__(f"[{module}] {code}: {message}")


class AlreadyUsedError(InvalidTransitionError):
    """Code is already assigned to an entity."""

    status = 'used'

    def __init__(self, module: str, code: str, entity_id=None):
        self.entity_id = entity_id
        suffix = f" by entity {entity_id}" if entity_id else ""
        super().__init__(module, code, f"already used{suffix}")


class AlreadyBurnedError(InvalidTransitionError):
    """Code has been burned and can never be used again."""

    status = 'burned'

    def __init__(self, module: str, code: str):
        super().__init__(module, code, "already burned")


class AlreadyCancelledError(InvalidTransitionError):
    """Code is already cancelled."""

    status = 'cancelled'

    def __init__(self, module: str, code: str):
        super().__init__(module, code, "already cancelled")


class CodeCancelledError(InvalidTransitionError):
    """Cancelled codes must be restored before they can be assigned."""

    status = 'cancelled'

    def __init__(self, module: str, code: str):
        super().__init__(module, code, "cancelled; restore it before assigning")


class NotCancelledError(InvalidTransitionError):
    """Only cancelled codes can be restored."""

    def __init__(self, module: str, code: str, status: str):
        self.status = status
        super().__init__(module, code, f"cannot restore a code with status '{status}'")


class LotError(BarcodeError):
    """Base exception for lot errors."""

    pass


class LotNotFoundError(LotError):
    """No lot exists with the given id."""

    def __init__(self, lot_id):
        self.lot_id = lot_id
        super().__init__(f"Lot {lot_id} not found")


class LotAlreadyCancelledError(LotError):
    """Lot has already been cancelled."""

    def __init__(self, lot_id):
        self.lot_id = lot_id
        super().__init__(f"Lot {lot_id} is already cancelled")


class LotCounterMismatchError(LotError):
    """A denormalized lot counter would leave its valid range."""

    def __init__(self, lot_id, used: int, cancelled: int, quantity: int):
        self.lot_id = lot_id
        self.used = used
        self.cancelled = cancelled
        self.quantity = quantity
        super().__init__(
            f"Lot {lot_id} counters out of range: "
            f"used={used}, cancelled={cancelled}, quantity={quantity}"
        )
