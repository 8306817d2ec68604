class SaveError(Exception):
    """Base exception for save editing errors."""


class SaveIOError(SaveError):
    """Raised when a save or backup file cannot be read, copied or written."""


class FormatError(SaveError):
    """Raised when decoded save bytes are not a valid JSON document."""


class PreconditionError(SaveError):
    """Raised when an operation runs without a loaded save or on a malformed section."""


class ReferenceDataError(SaveError):
    """Raised when the reference store cannot be opened or queried."""


class ReferenceLookupMiss(SaveError):
    """Raised when the reference store has no row for an item identifier."""

    def __init__(self, key: int, column: str = "ItemDataID") -> None:
        self.key = key
        self.column = column
        super().__init__(f"No Items row with {column} = {key}")


class UnrecognizedTier(SaveError):
    """Raised when a MaxCount value does not belong to a known tier."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        super().__init__(f"Unhandled MaxCount tier: {capacity}")
